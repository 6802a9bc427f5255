"""Image generation/editing and image description capabilities."""

from __future__ import annotations

from typing import Any

from support_assistant.core.image_service import IMAGE_SIZES

from .definitions import Capability, CapabilityDeps, CapabilityScope

IMAGE_TOOL = "imageTool"
IMAGE_TO_TEXT_TOOL = "imageToTextTool"

NO_IMAGES = "no images attached"


async def run_image_request(
    prompt: str,
    scope: CapabilityScope,
    deps: CapabilityDeps,
    size: str = IMAGE_SIZES[0],
) -> str:
    """Edit the attached images when present, otherwise generate from text."""
    if size not in IMAGE_SIZES:
        size = IMAGE_SIZES[0]
    if scope.images:
        return await deps.images.edit(prompt, list(scope.images), size)
    return await deps.images.generate(prompt, size)


def _image_capability(scope: CapabilityScope, deps: CapabilityDeps) -> Capability:
    async def _run(args: dict[str, Any]) -> str:
        return await run_image_request(
            args.get("query", ""), scope, deps, size=args.get("size") or deps.settings.IMAGE_SIZE
        )

    return Capability(
        name=IMAGE_TOOL,
        description=(
            "Generate an image, or edit the images the user attached. "
            'Always use it if the prompt contains "/imagine".'
        ),
        input_schema={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Prompt for generating or editing the image"},
                "size": {
                    "type": "string",
                    "enum": list(IMAGE_SIZES),
                    "default": IMAGE_SIZES[0],
                    "description": "Image size",
                },
            },
            "required": ["query"],
        },
        handler=_run,
    )


def _image_to_text_capability(scope: CapabilityScope, deps: CapabilityDeps) -> Capability:
    async def _run(args: dict[str, Any]) -> str:
        if not scope.images:
            return NO_IMAGES
        # Describe the most recent attachment
        return await deps.images.describe(args.get("query", ""), scope.images[-1])

    return Capability(
        name=IMAGE_TO_TEXT_TOOL,
        description="Answer questions about the image the user attached (describe, read text, identify)",
        input_schema={
            "type": "object",
            "properties": {"query": {"type": "string", "description": "What to find out about the image"}},
            "required": ["query"],
        },
        handler=_run,
    )


def build_image_capabilities(scope: CapabilityScope, deps: CapabilityDeps) -> list[Capability]:
    return [_image_capability(scope, deps), _image_to_text_capability(scope, deps)]
