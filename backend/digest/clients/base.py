"""Interfaces for the services the pipeline calls."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, AsyncIterator, Dict

from digest.documents.models import TokenPair


class DocumentStoreClient(ABC):
    """Remote store that owns file bytes and OAuth credentials."""

    @abstractmethod
    async def refresh_tokens(self, refresh_token: str) -> TokenPair:
        """
        Exchange a refresh token for a new token pair.

        Args:
            refresh_token: Current refresh token

        Returns:
            New access and refresh tokens

        Raises:
            CredentialRefreshError: If the grant is rejected or fails
        """
        pass

    @abstractmethod
    def open_read_stream(self, source_id: str, access_token: str) -> AsyncIterator[bytes]:
        """
        Stream the bytes of a file.

        Args:
            source_id: File identifier in the store's namespace
            access_token: Valid access token

        Returns:
            Async iterator of byte chunks

        Raises:
            ContentRetrievalError: If the stream cannot be opened or read
        """
        pass

    async def close(self) -> None:
        """Release any held connections."""
        return None


class ExtractionClient(ABC):
    """Metadata and text extraction service."""

    @abstractmethod
    async def extract_metadata(self, file_path: Path) -> Dict[str, Any]:
        """
        Extract structured metadata from a local file.

        Raises:
            ExtractionError: On transport or parse failure
        """
        pass

    @abstractmethod
    async def extract_text(self, file_path: Path) -> str:
        """
        Extract raw plain text from a local file.

        Raises:
            ExtractionError: On transport failure
        """
        pass

    async def close(self) -> None:
        """Release any held connections."""
        return None


class EntityTaggingClient(ABC):
    """Named-entity tagger reached over a socket."""

    @abstractmethod
    async def tag(self, text: str) -> str:
        """
        Send text for tagging and return the raw tagged payload.

        Raises:
            EntityTaggingError: On connection or protocol failure
        """
        pass


class RenderingToolchain(ABC):
    """External tools that produce previews."""

    @abstractmethod
    async def render_first_page(self, source: Path, destination: Path) -> Path:
        """
        Render the first page of a PDF (or image-capable file) to an image.

        Raises:
            RenderError: If the tool fails or produces no output
        """
        pass

    @abstractmethod
    async def convert_to_pdf(self, source: Path, destination: Path) -> Path:
        """
        Convert an office or text document to PDF.

        Raises:
            RenderError: If the tool fails or produces no output
        """
        pass


class PreviewSink(ABC):
    """Receives generated preview images before staging is released."""

    @abstractmethod
    async def publish(self, file_id: str, image_path: Path) -> None:
        """
        Take over a preview image.

        The image is deleted when the run's staging is released, so an
        implementation must copy or upload it before returning.
        """
        pass
