"""Apache Tika extraction client."""

from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional

import aiofiles
import httpx
import structlog

from digest.clients.base import ExtractionClient
from digest.config import get_extraction_settings
from digest.core.exceptions import ExtractionError

logger = structlog.get_logger()

UPLOAD_CHUNK_SIZE = 64 * 1024


async def _read_chunks(file_path: Path) -> AsyncIterator[bytes]:
    async with aiofiles.open(file_path, "rb") as f:
        while True:
            chunk = await f.read(UPLOAD_CHUNK_SIZE)
            if not chunk:
                break
            yield chunk


class TikaClient(ExtractionClient):
    """Client for the Tika server ``/meta`` and ``/tika`` endpoints."""

    def __init__(
        self,
        host: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize the Tika client.

        Args:
            host: Tika server base URL (default from settings)
            timeout: Request timeout in seconds (default from settings)
            http_client: Preconfigured HTTPX client, mainly for tests
        """
        settings = get_extraction_settings()

        self.host = (host or settings.host).rstrip("/")
        self.timeout = timeout or settings.timeout_seconds

        self._client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout, connect=10.0))
        return self._client

    async def _put(self, file_path: Path, endpoint: str, accept: str) -> httpx.Response:
        client = self._get_client()
        url = f"{self.host}{endpoint}"
        try:
            response = await client.put(
                url,
                content=_read_chunks(file_path),
                headers={"Accept": accept},
            )
            response.raise_for_status()
        except (httpx.HTTPError, OSError) as e:
            raise ExtractionError(f"Tika request to {endpoint} failed: {e}") from e
        return response

    async def extract_metadata(self, file_path: Path) -> Dict[str, Any]:
        """Return the metadata fields Tika reports for the file."""
        response = await self._put(file_path, "/meta", "application/json")
        try:
            payload = response.json()
        except ValueError as e:
            raise ExtractionError(f"Tika metadata response is not JSON: {e}", stage="metadata") from e

        if not isinstance(payload, dict):
            raise ExtractionError("Tika metadata response is not an object", stage="metadata")
        return payload

    async def extract_text(self, file_path: Path) -> str:
        """Return the plain text Tika extracts from the file."""
        response = await self._put(file_path, "/tika", "text/plain")
        return response.text

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
