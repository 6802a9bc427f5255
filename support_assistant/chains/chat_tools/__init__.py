"""Assistant capabilities: package barrel exports."""

from .definitions import Capability, CapabilityDeps, CapabilityScope
from .dispatcher import ToolInvocationRecord, execute_tool, execute_tool_calls
from .registry import build_capabilities, build_scope, capability_map
from .tools_images import IMAGE_TOOL, run_image_request

__all__ = [
    "Capability",
    "CapabilityDeps",
    "CapabilityScope",
    "ToolInvocationRecord",
    "execute_tool",
    "execute_tool_calls",
    "build_capabilities",
    "build_scope",
    "capability_map",
    "IMAGE_TOOL",
    "run_image_request",
]
