"""Bridge to the remote video host (Mux) that transcodes chapter videos.

The chapter and course services only need two operations: create an asset
for a source URL and delete an asset by id. ``VideoHost`` describes that
contract; ``MuxVideoHost`` implements it on the Mux REST API with httpx.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Protocol

import httpx
from fastapi import status

from courseforge.config.settings import get_settings
from courseforge.middleware.error_handlers import ExternalServiceError


logger = logging.getLogger(__name__)


class VideoHostError(ExternalServiceError):
    """The video host rejected a request or could not be reached."""

    def __init__(self, detail: str) -> None:
        super().__init__("Video host", detail)


@dataclass(frozen=True)
class VideoAsset:
    """Identifiers of a remote asset."""

    asset_id: str
    playback_id: str | None


class VideoHost(Protocol):
    """Operations the services need from a video host."""

    async def create_asset(self, source_url: str) -> VideoAsset:
        """Request a new asset transcoded from ``source_url``."""
        ...

    async def delete_asset(self, asset_id: str) -> None:
        """Delete a remote asset."""
        ...


class MuxVideoHost:
    """Mux Video API client.

    Assets are created with a public playback policy outside test mode, so the
    returned playback id can be streamed directly by learners.
    """

    def __init__(
        self,
        token_id: str,
        token_secret: str,
        base_url: str = "https://api.mux.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Mux client.

        Args:
            token_id: Mux access token id
            token_secret: Mux access token secret
            base_url: API root, overridable for proxies and tests
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self._auth = httpx.BasicAuth(token_id, token_secret)
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            auth=self._auth,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def create_asset(self, source_url: str) -> VideoAsset:
        """Create an asset for ``source_url`` and return its asset and playback ids."""
        payload = {
            "input": [{"url": source_url}],
            "playback_policy": ["public"],
            "test": False,
        }
        try:
            async with self._client() as client:
                response = await client.post("/video/v1/assets", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning("Mux rejected asset creation with status %s", e.response.status_code)
            raise VideoHostError(f"asset creation failed with status {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.warning("Mux asset creation failed: %s", type(e).__name__)
            raise VideoHostError("asset creation failed") from e

        data: dict[str, Any] = response.json().get("data") or {}
        asset_id = data.get("id")
        if not asset_id:
            raise VideoHostError("asset creation returned no asset id")

        playback_ids = data.get("playback_ids") or []
        playback_id = playback_ids[0].get("id") if playback_ids else None

        logger.info("Created Mux asset %s", asset_id)
        return VideoAsset(asset_id=asset_id, playback_id=playback_id)

    async def delete_asset(self, asset_id: str) -> None:
        """Delete an asset; an asset the host no longer knows counts as deleted."""
        try:
            async with self._client() as client:
                response = await client.delete(f"/video/v1/assets/{asset_id}")
            if response.status_code == status.HTTP_404_NOT_FOUND:
                logger.info("Mux asset %s already gone", asset_id)
                return
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning("Mux rejected deletion of %s with status %s", asset_id, e.response.status_code)
            raise VideoHostError(f"asset deletion failed with status {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.warning("Mux asset deletion failed: %s", type(e).__name__)
            raise VideoHostError("asset deletion failed") from e

        logger.info("Deleted Mux asset %s", asset_id)


@lru_cache
def get_video_host() -> VideoHost:
    """Get the configured video host instance.

    Cached so the same client configuration is reused for the process lifetime.
    """
    settings = get_settings()
    if not settings.MUX_TOKEN_ID or not settings.MUX_TOKEN_SECRET:
        logger.warning("MUX_TOKEN_ID/MUX_TOKEN_SECRET not set; video uploads will be rejected by Mux")
    return MuxVideoHost(
        token_id=settings.MUX_TOKEN_ID,
        token_secret=settings.MUX_TOKEN_SECRET,
        base_url=settings.MUX_API_URL,
        timeout=settings.MUX_REQUEST_TIMEOUT,
    )
