"""Image generation, editing and description via OpenAI.

Generated images are uploaded to the platform image store and returned as
links. Failures are reported as text so the model can tell the user.
"""

from __future__ import annotations

import base64

import httpx
from openai import AsyncOpenAI

from support_assistant.core.errors import PlatformApiError
from support_assistant.core.logging import get_logger
from support_assistant.core.platform_api import PlatformApiClient

logger = get_logger(__name__)

IMAGE_GENERATION_ERROR = "Error while generating image"
IMAGE_EDIT_ERROR = f"{IMAGE_GENERATION_ERROR}(editing error)"
IMAGE_PROCESSING_ERROR = "Error image processing"
IMAGE_SIZES = ("1024x1024", "1536x1024", "1024x1536")


class ImageService:
    """Generate-from-text, edit-from-reference and describe-image."""

    def __init__(
        self,
        client: AsyncOpenAI,
        platform_api: PlatformApiClient,
        model: str = "gpt-image-1",
        vision_model: str = "gpt-4o-mini",
        quality: str = "medium",
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = client
        self._platform = platform_api
        self._model = model
        self._vision_model = vision_model
        self._quality = quality
        self._timeout = timeout
        self._http = httpx.AsyncClient(timeout=30, transport=transport)

    async def aclose(self) -> None:
        """Close the download client and the OpenAI client it was given."""
        await self._http.aclose()
        await self._client.close()

    async def _download(self, url: str) -> bytes | None:
        try:
            response = await self._http.get(url)
            response.raise_for_status()
            return response.content
        except httpx.HTTPError as e:
            logger.warning(f"Failed to download image {url}: {e}")
            return None

    async def _upload(self, image_b64: str, error_text: str) -> str:
        try:
            return await self._platform.upload_image(image_b64)
        except PlatformApiError as e:
            logger.warning(str(e))
            return error_text

    async def generate(self, prompt: str, size: str = "1024x1024") -> str:
        try:
            response = await self._client.images.generate(
                model=self._model,
                prompt=prompt,
                size=size,
                quality=self._quality,
                output_format="webp",
                n=1,
                timeout=self._timeout,
            )
            image_b64 = response.data[0].b64_json if response.data else None
        except Exception as e:
            logger.warning(f"Image generation failed: {e}")
            return IMAGE_GENERATION_ERROR

        if not image_b64:
            return IMAGE_GENERATION_ERROR
        return await self._upload(image_b64, IMAGE_GENERATION_ERROR)

    async def edit(self, prompt: str, image_urls: list[str], size: str = "1024x1024") -> str:
        """Edit from reference images; falls back to generation if none download."""
        files = []
        for index, url in enumerate(image_urls):
            content = await self._download(url)
            if content:
                files.append((f"image{index}.webp", content, "image/webp"))

        if not files:
            return await self.generate(prompt, size)

        try:
            response = await self._client.images.edit(
                model=self._model,
                image=files,
                prompt=prompt,
                size=size,
                quality=self._quality,
                output_format="webp",
                n=1,
                timeout=self._timeout,
            )
            image_b64 = response.data[0].b64_json if response.data else None
        except Exception as e:
            logger.warning(f"Image edit failed: {e}")
            return IMAGE_EDIT_ERROR

        if not image_b64:
            return IMAGE_EDIT_ERROR
        return await self._upload(image_b64, IMAGE_EDIT_ERROR)

    async def describe(self, prompt: str, image_url: str) -> str:
        content = await self._download(image_url)
        if not content:
            return IMAGE_PROCESSING_ERROR

        data_url = f"data:image/webp;base64,{base64.b64encode(content).decode()}"
        try:
            response = await self._client.chat.completions.create(
                model=self._vision_model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt},
                            {"type": "image_url", "image_url": {"url": data_url}},
                        ],
                    }
                ],
                timeout=60,
            )
        except Exception as e:
            logger.warning(f"Image description failed: {e}")
            return IMAGE_PROCESSING_ERROR

        return response.choices[0].message.content or IMAGE_PROCESSING_ERROR
