"""Copies a file from the document store into staging."""

import asyncio
from pathlib import Path
from typing import Optional

import aiofiles
import structlog

from digest.clients.base import DocumentStoreClient
from digest.config import get_document_store_settings
from digest.core.exceptions import ContentRetrievalError, CredentialRefreshError
from digest.documents.models import File, Service
from digest.documents.staging import StagingRun, TempStagingManager
from digest.documents.store import ResultStore

logger = structlog.get_logger()


class ContentRetriever:
    """Refreshes credentials and stages file bytes locally.

    Any failure here is fatal for the run: without staged bytes no
    enrichment stage can proceed.
    """

    def __init__(
        self,
        document_store: DocumentStoreClient,
        results: ResultStore,
        staging: TempStagingManager,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Initialize content retriever.

        Args:
            document_store: Client for the remote document store
            results: Best-effort persistence for refreshed credentials
            staging: Staging manager that allocates the local path
            timeout: Seconds allowed for the refresh and for the download
        """
        self.document_store = document_store
        self.results = results
        self.staging = staging
        self.timeout = timeout or get_document_store_settings().timeout_seconds

    async def retrieve(self, file: File, service: Service, run: StagingRun) -> Path:
        """
        Stage a file's content.

        Args:
            file: File to fetch
            service: Owning service; its tokens are replaced in place
            run: Staging run that owns the local copy

        Returns:
            Path of the staged file

        Raises:
            CredentialRefreshError: If the refresh grant fails
            ContentRetrievalError: If the content cannot be streamed
        """
        await self._refresh_credentials(service)

        path = self.staging.stage(run, file.id, file.extension_hint)
        try:
            size = await asyncio.wait_for(
                self._download(file.source.id, service.access_token or "", path),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise ContentRetrievalError(
                f"Download timed out after {self.timeout} seconds", file_id=file.id
            ) from e
        except ContentRetrievalError:
            raise
        except OSError as e:
            raise ContentRetrievalError(f"Could not write staged file: {e}", file_id=file.id) from e

        logger.info("file_staged", file_id=file.id, path=str(path), size_bytes=size)
        return path

    async def _refresh_credentials(self, service: Service) -> None:
        try:
            tokens = await asyncio.wait_for(
                self.document_store.refresh_tokens(service.refresh_token),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise CredentialRefreshError(
                f"Token refresh timed out after {self.timeout} seconds"
            ) from e

        service.access_token = tokens.access_token
        service.refresh_token = tokens.refresh_token
        await self.results.save_service(service)

    async def _download(self, source_id: str, access_token: str, path: Path) -> int:
        size = 0
        async with aiofiles.open(path, "wb") as f:
            async for chunk in self.document_store.open_read_stream(source_id, access_token):
                await f.write(chunk)
                size += len(chunk)
        return size
