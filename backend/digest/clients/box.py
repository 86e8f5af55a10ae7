"""Box document store client."""

from typing import AsyncIterator, Optional

import httpx
import structlog

from digest.clients.base import DocumentStoreClient
from digest.config import get_document_store_settings
from digest.core.exceptions import ContentRetrievalError, CredentialRefreshError
from digest.documents.models import TokenPair

logger = structlog.get_logger()


class BoxClient(DocumentStoreClient):
    """Box API client for refresh grants and file downloads.

    Example:
        ```python
        box = BoxClient()
        tokens = await box.refresh_tokens(service.refresh_token)
        async for chunk in box.open_read_stream(file.source.id, tokens.access_token):
            ...
        await box.close()
        ```
    """

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        auth_url: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize the Box client.

        Args:
            client_id: OAuth client ID (default from settings)
            client_secret: OAuth client secret (default from settings)
            auth_url: Token endpoint (default from settings)
            api_url: Content API base URL (default from settings)
            timeout: Request timeout in seconds (default from settings)
            http_client: Preconfigured HTTPX client, mainly for tests
        """
        settings = get_document_store_settings()

        self.client_id = client_id if client_id is not None else settings.client_id
        self.client_secret = client_secret if client_secret is not None else settings.client_secret
        self.auth_url = (auth_url or settings.auth_url).rstrip("/")
        self.api_url = (api_url or settings.api_url).rstrip("/")
        self.timeout = timeout or settings.timeout_seconds

        self._client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout, connect=10.0))
        return self._client

    async def refresh_tokens(self, refresh_token: str) -> TokenPair:
        """Run a refresh-token grant against the token endpoint."""
        client = self._get_client()
        try:
            response = await client.post(
                self.auth_url,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": refresh_token,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
            )
        except httpx.HTTPError as e:
            raise CredentialRefreshError(f"Token refresh request failed: {e}") from e

        if response.status_code != 200:
            raise CredentialRefreshError(
                f"Token refresh rejected with status {response.status_code}"
            )

        try:
            payload = response.json()
            tokens = TokenPair(
                access_token=payload["access_token"],
                refresh_token=payload["refresh_token"],
            )
        except (ValueError, KeyError, TypeError) as e:
            raise CredentialRefreshError(f"Malformed token response: {e}") from e

        logger.debug("box_tokens_refreshed")
        return tokens

    async def open_read_stream(self, source_id: str, access_token: str) -> AsyncIterator[bytes]:
        """Stream file content, following the download redirect."""
        client = self._get_client()
        url = f"{self.api_url}/files/{source_id}/content"
        try:
            async with client.stream(
                "GET",
                url,
                headers={"Authorization": f"Bearer {access_token}"},
                follow_redirects=True,
            ) as response:
                if response.status_code != 200:
                    raise ContentRetrievalError(
                        f"Download of {source_id} failed with status {response.status_code}"
                    )
                async for chunk in response.aiter_bytes():
                    yield chunk
        except httpx.HTTPError as e:
            raise ContentRetrievalError(f"Download of {source_id} failed: {e}") from e

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
