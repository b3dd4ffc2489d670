"""HTTP client for the external asset host that stores product images.

The host exposes two calls:

    POST   {ASSET_HOST_URL}/assets              multipart "file" + "folder"
           -> {"url": str, "storage_id": str}
    DELETE {ASSET_HOST_URL}/assets/{storage_id}

Every failure (transport error, non-2xx status, malformed body) is raised as
``UpstreamFailure`` so callers only deal with the domain taxonomy.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

import httpx

from libs.common.config import get_settings
from libs.common.exceptions import UpstreamFailure
from libs.common.logging import get_logger, get_request_id

logger = get_logger(__name__)


@dataclass(frozen=True)
class StoredAsset:
    url: str
    storage_id: str


class AssetHostClient:
    """Thin async wrapper around the asset host API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        folder: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.folder = folder
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def _headers(self) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        request_id = get_request_id()
        if request_id:
            headers["X-Request-ID"] = request_id
        return headers

    async def upload(
        self, filename: str, data: bytes, content_type: str = "image/jpeg"
    ) -> StoredAsset:
        """Upload one file and return its public URL and storage id."""
        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self.base_url}/assets",
                    headers=self._headers(),
                    data={"folder": self.folder},
                    files={"file": (filename, data, content_type)},
                )
                response.raise_for_status()
                payload = response.json()
            return StoredAsset(url=payload["url"], storage_id=payload["storage_id"])
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            logger.warning("Asset upload failed for %s: %s", filename, exc)
            raise UpstreamFailure("Failed to upload images") from exc

    async def delete(self, storage_id: str) -> None:
        """Delete a stored asset. A missing asset counts as deleted."""
        try:
            async with self._client() as client:
                response = await client.delete(
                    f"{self.base_url}/assets/{storage_id}", headers=self._headers()
                )
                if response.status_code != 404:
                    response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Asset delete failed for %s: %s", storage_id, exc)
            raise UpstreamFailure("Failed to delete images") from exc


@lru_cache
def _default_client() -> AssetHostClient:
    settings = get_settings()
    return AssetHostClient(
        base_url=settings.ASSET_HOST_URL,
        api_key=settings.ASSET_HOST_API_KEY,
        folder=settings.ASSET_HOST_FOLDER,
        timeout=settings.ASSET_HOST_TIMEOUT,
    )


def get_asset_host() -> AssetHostClient:
    """FastAPI dependency returning the shared asset host client."""
    return _default_client()
