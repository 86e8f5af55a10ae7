"""In-memory fakes for the pipeline collaborators."""

import asyncio
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from digest.clients.base import (
    DocumentStoreClient,
    EntityTaggingClient,
    ExtractionClient,
    PreviewSink,
    RenderingToolchain,
)
from digest.core.exceptions import PersistenceError, RecordNotFoundError
from digest.documents.models import File, FileSource, Service, TokenPair
from digest.documents.staging import StagingRun, TempStagingManager


class InMemoryRecordStore:
    """Record store keeping copies of saved records."""

    def __init__(self) -> None:
        self.files: Dict[str, File] = {}
        self.services: Dict[str, Service] = {}
        self.file_saves: List[File] = []
        self.service_saves: List[Service] = []
        self.fail_saves = False
        self.fail_loads = False

    async def initialize(self) -> None:
        return None

    async def close(self) -> None:
        return None

    async def find_file(self, file_id: str) -> File:
        if self.fail_loads:
            raise ConnectionError("database unavailable")
        if file_id not in self.files:
            raise RecordNotFoundError("File", file_id)
        return self.files[file_id].model_copy(deep=True)

    async def find_service(self, service_id: str) -> Service:
        if service_id not in self.services:
            raise RecordNotFoundError("Service", service_id)
        return self.services[service_id].model_copy(deep=True)

    async def save_file(self, file: File) -> None:
        if self.fail_saves:
            raise PersistenceError("disk full")
        self.files[file.id] = file.model_copy(deep=True)
        self.file_saves.append(file.model_copy(deep=True))

    async def save_service(self, service: Service) -> None:
        if self.fail_saves:
            raise PersistenceError("disk full")
        self.services[service.id] = service.model_copy(deep=True)
        self.service_saves.append(service.model_copy(deep=True))


class FakeDocumentStore(DocumentStoreClient):
    """Document store serving fixed bytes."""

    def __init__(self, content: bytes = b"%PDF-1.4 fake") -> None:
        self.content = content
        self.refresh_error: Optional[Exception] = None
        self.stream_error: Optional[Exception] = None
        self.hang_refresh = False
        self.hang_stream = False
        self.refresh_calls: List[str] = []
        self.stream_calls: List[Tuple[str, str]] = []

    async def refresh_tokens(self, refresh_token: str) -> TokenPair:
        self.refresh_calls.append(refresh_token)
        if self.hang_refresh:
            await asyncio.Event().wait()
        if self.refresh_error is not None:
            raise self.refresh_error
        return TokenPair(access_token="access-2", refresh_token="refresh-2")

    async def open_read_stream(self, source_id: str, access_token: str) -> AsyncIterator[bytes]:
        self.stream_calls.append((source_id, access_token))
        if self.hang_stream:
            await asyncio.Event().wait()
        if self.stream_error is not None:
            raise self.stream_error
        half = len(self.content) // 2
        yield self.content[:half]
        yield self.content[half:]


class FakeExtraction(ExtractionClient):
    """Extraction service with canned responses."""

    def __init__(self) -> None:
        self.metadata: Dict[str, Any] = {"Content-Type": "application/pdf"}
        self.text = "Alice met Bob\nin Paris."
        self.metadata_error: Optional[Exception] = None
        self.text_error: Optional[Exception] = None
        self.calls: List[Tuple[str, Path]] = []

    async def extract_metadata(self, file_path: Path) -> Dict[str, Any]:
        self.calls.append(("metadata", file_path))
        if self.metadata_error is not None:
            raise self.metadata_error
        return dict(self.metadata)

    async def extract_text(self, file_path: Path) -> str:
        self.calls.append(("text", file_path))
        if self.text_error is not None:
            raise self.text_error
        return self.text


class FakeTagger(EntityTaggingClient):
    """Tagger returning a fixed payload."""

    def __init__(self) -> None:
        self.response = "<PERSON>Alice</PERSON> met <PERSON>Bob</PERSON> in <LOCATION>Paris</LOCATION>."
        self.error: Optional[Exception] = None
        self.calls: List[str] = []

    async def tag(self, text: str) -> str:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.response


class FakeRenderer(RenderingToolchain):
    """Renderer that writes placeholder output files."""

    def __init__(self) -> None:
        self.render_error: Optional[Exception] = None
        self.convert_error: Optional[Exception] = None
        self.calls: List[Tuple[str, Path, Path]] = []

    async def render_first_page(self, source: Path, destination: Path) -> Path:
        self.calls.append(("render", source, destination))
        if self.render_error is not None:
            raise self.render_error
        destination.write_bytes(b"png")
        return destination

    async def convert_to_pdf(self, source: Path, destination: Path) -> Path:
        self.calls.append(("convert", source, destination))
        if self.convert_error is not None:
            raise self.convert_error
        destination.write_bytes(b"%PDF")
        return destination

    @property
    def converted(self) -> bool:
        return any(kind == "convert" for kind, _, _ in self.calls)


class RecordingSink(PreviewSink):
    """Preview sink remembering what it received."""

    def __init__(self) -> None:
        self.published: List[Tuple[str, Path, bool]] = []

    async def publish(self, file_id: str, image_path: Path) -> None:
        self.published.append((file_id, image_path, image_path.exists()))


class CountingStagingManager(TempStagingManager):
    """Staging manager that counts releases."""

    def __init__(self, base_dir: Path) -> None:
        super().__init__(base_dir)
        self.release_count = 0
        self.runs: List[StagingRun] = []

    async def begin(self, file_id: str) -> StagingRun:
        run = await super().begin(file_id)
        self.runs.append(run)
        return run

    async def release(self, run: StagingRun) -> None:
        self.release_count += 1
        await super().release(run)


def make_file(file_id: str = "file-1", name: str = "report.pdf") -> File:
    return File(id=file_id, service_id="svc-1", name=name, source=FileSource(id="box-42"))

