"""Tenant content API client.

Async httpx wrapper around the platform REST API. Every request carries the
tenant in the ``Access-Host`` header. Helpers return ``None`` (or an empty
value) when the API is unreachable or answers with an error, so a missing
fact degrades the answer instead of failing the turn. Image upload is the
exception: it raises ``PlatformApiError`` so callers can report the failure.
"""

from __future__ import annotations

import base64
from typing import Any

import httpx

from support_assistant.core.errors import PlatformApiError
from support_assistant.core.logging import get_logger

logger = get_logger(__name__)


class PlatformApiClient:
    """Client for https://<APP_HOST>/api endpoints."""

    def __init__(
        self,
        app_host: str,
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=f"https://{app_host}/api",
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        host: str | None = None,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any | None:
        headers = {"Content-Type": "application/json"}
        if host:
            headers["Access-Host"] = host

        try:
            response = await self._client.request(
                method, path, headers=headers, json=json, params=params
            )
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Platform API {method} {path} failed: {e}")
            return None

    # ------------------------------------------------------------------
    # Site
    # ------------------------------------------------------------------

    async def get_site_description(self, host: str) -> str:
        data = await self._request("GET", "/sites/description", host=host)
        if not isinstance(data, dict):
            return ""
        return data.get("result") or ""

    async def get_site_configuration(self, host: str) -> dict[str, Any]:
        data = await self._request("GET", "/sites/configuration", host=host)
        return data if isinstance(data, dict) else {}

    async def get_owner_contact(self, host: str) -> dict[str, Any] | None:
        data = await self._request("GET", "/sites/owner", host=host)
        return data if isinstance(data, dict) else None

    # ------------------------------------------------------------------
    # Campaigns and objects
    # ------------------------------------------------------------------

    async def get_active_campaign_objects(self, host: str) -> list[dict[str, Any]]:
        data = await self._request("POST", "/wobjects/active-campaigns", host=host, json={})
        if not isinstance(data, dict):
            return []
        return data.get("wobjects") or []

    async def general_search(
        self,
        host: str,
        string: str,
        user_limit: int = 5,
        wobjects_limit: int = 15,
    ) -> dict[str, Any] | None:
        data = await self._request(
            "POST",
            "/generalSearch",
            host=host,
            json={"string": string, "userLimit": user_limit, "wobjectsLimit": wobjects_limit},
        )
        return data if isinstance(data, dict) else None

    async def search_objects_in_area(
        self,
        host: str,
        box: dict[str, list[float]],
        object_type: str | None = None,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        payload: dict[str, Any] = {"box": box, "limit": limit}
        if object_type:
            payload["object_type"] = object_type
        data = await self._request("POST", "/wobjects/search-area", host=host, json=payload)
        if not isinstance(data, dict):
            return []
        return data.get("wobjects") or []

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_user(self, user_name: str) -> dict[str, Any] | None:
        data = await self._request("GET", f"/user/{user_name}")
        return data if isinstance(data, dict) and data else None

    async def get_recent_titles(self, user_name: str, host: str) -> str:
        data = await self._request("POST", f"/user/{user_name}/blog/title", host=host, json={})
        if not isinstance(data, dict):
            return ""
        titles = [p.get("title") for p in data.get("result") or []]
        return ",".join(t for t in titles if t)

    async def get_guest_mana(self, user_name: str) -> float | None:
        data = await self._request("GET", f"/guest/{user_name}/mana")
        if not isinstance(data, dict) or data.get("result") is None:
            return None
        return float(data["result"])

    async def is_guest_import_active(self, user_name: str) -> bool:
        data = await self._request("GET", f"/guest/{user_name}/import-status")
        return bool(isinstance(data, dict) and data.get("result"))

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    async def upload_image(self, image_b64: str, timeout: float = 60.0) -> str:
        """
        Upload a base64 webp image and return its public URL.

        Raises:
            PlatformApiError: If the upload fails or returns no URL
        """
        try:
            files = {"file": ("image.webp", base64.b64decode(image_b64), "image/webp")}
            response = await self._client.post("/image", files=files, timeout=timeout)
            response.raise_for_status()
            link = (response.json() or {}).get("image")
        except (httpx.HTTPError, ValueError) as e:
            raise PlatformApiError(f"Image upload failed: {e}") from e

        if not link:
            raise PlatformApiError("Image upload returned no link")
        return link
