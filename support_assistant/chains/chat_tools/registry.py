"""Per-request capability set.

Capabilities are rebuilt for every turn from the request's scope; nothing
is registered globally. The returned list doubles as the dispatch table
(see ``capability_map``).
"""

from __future__ import annotations

from support_assistant.core.content_sanitizer import sanitize_host, strip_angle_brackets
from support_assistant.core.logging import get_logger

from .definitions import Capability, CapabilityDeps, CapabilityScope
from .tools_campaigns import build_campaign_capabilities
from .tools_images import build_image_capabilities
from .tools_search import build_search_capabilities
from .tools_user import build_user_capabilities, page_context_capability

logger = get_logger(__name__)


def build_scope(
    host: str,
    user: str | None = None,
    images: list[str] | None = None,
    page_context: str | None = None,
    max_images: int = 2,
) -> CapabilityScope:
    """Sanitize raw request values into a capability scope.

    Host, user and page context have angle brackets stripped; only the
    most recent ``max_images`` images are kept.
    """
    kept_images = [i for i in images or [] if i]
    kept_images = kept_images[-max_images:] if max_images > 0 else []
    cleaned_context = strip_angle_brackets(page_context).strip() or None
    return CapabilityScope(
        host=sanitize_host(strip_angle_brackets(host)),
        user=strip_angle_brackets(user).strip() or None,
        images=tuple(kept_images),
        page_context=cleaned_context,
    )


async def build_capabilities(scope: CapabilityScope, deps: CapabilityDeps) -> list[Capability]:
    """
    Build the capability list available to the model for one turn.

    Args:
        scope: Sanitized request scope (see ``build_scope``)
        deps: Injected service clients

    Returns:
        Capabilities with unique names, in a stable order
    """
    capabilities: list[Capability] = []
    capabilities.extend(await build_search_capabilities(scope, deps))
    capabilities.extend(build_image_capabilities(scope, deps))
    capabilities.extend(build_user_capabilities(scope, deps))
    capabilities.extend(build_campaign_capabilities(scope, deps))
    if scope.page_context:
        capabilities.append(page_context_capability(scope.page_context))

    unique: list[Capability] = []
    seen: set[str] = set()
    for capability in capabilities:
        if capability.name in seen:
            logger.warning(f"Duplicate capability name dropped: {capability.name}")
            continue
        seen.add(capability.name)
        unique.append(capability)

    logger.debug(f"Built {len(unique)} capabilities for host={scope.host}")
    return unique


def capability_map(capabilities: list[Capability]) -> dict[str, Capability]:
    return {c.name: c for c in capabilities}
