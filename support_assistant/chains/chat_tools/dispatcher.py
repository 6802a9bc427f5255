"""Concurrent execution of model-requested capability calls."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from support_assistant.core.logging import get_logger

from .definitions import Capability

logger = get_logger(__name__)


@dataclass
class ToolInvocationRecord:
    """Outcome of one requested call. Exactly one of result/error is set."""

    capability_name: str
    arguments: dict[str, Any]
    tool_call_id: str
    result: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def content(self) -> str:
        return self.result if self.error is None else self.error


def error_text(name: str, message: str) -> str:
    return f"Error executing {name}: {message}"


async def execute_tool(
    capabilities: dict[str, Capability],
    tool_call: dict[str, Any],
    timeout: float | None = None,
) -> ToolInvocationRecord:
    """
    Execute one tool call; never raises.

    Unknown names, capability exceptions and timeouts become error text
    on the returned record.
    """
    name = tool_call.get("name") or ""
    args = tool_call.get("args") or {}
    record = ToolInvocationRecord(capability_name=name, arguments=args, tool_call_id=tool_call.get("id") or "")

    capability = capabilities.get(name)
    if capability is None:
        record.error = error_text(name, f"Unknown tool: {name}")
        logger.warning(f"Model requested unknown tool {name}")
        return record

    try:
        logger.info(f"Executing tool {name}")
        if timeout:
            record.result = await asyncio.wait_for(capability.invoke(args), timeout=timeout)
        else:
            record.result = await capability.invoke(args)
    except asyncio.TimeoutError:
        record.error = error_text(name, f"timed out after {timeout}s")
        logger.warning(f"Tool {name} timed out after {timeout}s")
    except Exception as e:
        record.error = error_text(name, str(e))
        logger.warning(f"Error executing tool {name}: {e}", exc_info=True)
    return record


async def execute_tool_calls(
    capabilities: dict[str, Capability],
    tool_calls: list[dict[str, Any]],
    timeout: float | None = None,
) -> list[ToolInvocationRecord]:
    """Run all calls concurrently; records come back in request order."""
    if not tool_calls:
        return []
    return list(await asyncio.gather(*(execute_tool(capabilities, call, timeout) for call in tool_calls)))
