"""Socket client for the named-entity tagging server."""

import asyncio
from typing import Optional

import structlog

from digest.clients.base import EntityTaggingClient
from digest.config import get_entity_tagging_settings
from digest.core.exceptions import EntityTaggingError

logger = structlog.get_logger()


class NERSocketClient(EntityTaggingClient):
    """One connection per call: send a line of text, read one tagged line back."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        timeout: Optional[float] = None,
        read_limit: Optional[int] = None,
    ) -> None:
        """Initialize the tagging client.

        Args:
            host: Server host (default from settings)
            port: Server port (default from settings)
            timeout: Timeout for the whole round trip in seconds
            read_limit: Maximum response size in bytes
        """
        settings = get_entity_tagging_settings()

        self.host = host or settings.host
        self.port = port or settings.port
        self.timeout = timeout or settings.timeout_seconds
        self.read_limit = read_limit or settings.read_limit_bytes

    async def tag(self, text: str) -> str:
        try:
            return await asyncio.wait_for(self._round_trip(text), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise EntityTaggingError(
                f"No response from tagger within {self.timeout}s", stage="entities"
            ) from e
        except (OSError, ValueError) as e:
            # ValueError covers a response line longer than read_limit
            raise EntityTaggingError(f"Tagger round trip failed: {e}", stage="entities") from e

    async def _round_trip(self, text: str) -> str:
        reader, writer = await asyncio.open_connection(self.host, self.port, limit=self.read_limit)
        try:
            writer.write(text.encode("utf-8") + b"\n")
            await writer.drain()
            data = await reader.readline()
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as e:
                logger.debug("ner_close_failed", error=str(e))

        if not data:
            raise EntityTaggingError("Tagger closed the connection without a response", stage="entities")
        return data.decode("utf-8", errors="replace")
