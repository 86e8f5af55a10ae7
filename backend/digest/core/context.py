"""Explicit wiring of the collaborators a pipeline run uses."""

from dataclasses import dataclass, field
from pathlib import Path

import structlog

from digest.clients.base import (
    DocumentStoreClient,
    EntityTaggingClient,
    ExtractionClient,
    PreviewSink,
    RenderingToolchain,
)
from digest.clients.box import BoxClient
from digest.clients.ner import NERSocketClient
from digest.clients.render import ImageMagickToolchain
from digest.clients.sink import LoggingPreviewSink
from digest.clients.tika import TikaClient
from digest.config import get_settings
from digest.documents.staging import TempStagingManager
from digest.documents.store import RecordStore, ResultStore

logger = structlog.get_logger()


@dataclass
class PipelineContext:
    """Everything a pipeline run talks to.

    Built once per process and passed down; nothing here is global.
    """

    records: RecordStore
    document_store: DocumentStoreClient
    extraction: ExtractionClient
    tagger: EntityTaggingClient
    renderer: RenderingToolchain
    staging: TempStagingManager
    preview_sink: PreviewSink = field(default_factory=LoggingPreviewSink)
    results: ResultStore = field(init=False)

    def __post_init__(self) -> None:
        self.results = ResultStore(self.records)

    @classmethod
    def from_settings(cls) -> "PipelineContext":
        """Build the production context from environment settings."""
        settings = get_settings()
        return cls(
            records=RecordStore(),
            document_store=BoxClient(),
            extraction=TikaClient(),
            tagger=NERSocketClient(),
            renderer=ImageMagickToolchain(),
            staging=TempStagingManager(Path(settings.staging_dir)),
        )

    async def close(self) -> None:
        """Close network clients and the database engine."""
        await self.document_store.close()
        await self.extraction.close()
        await self.records.close()
        logger.info("pipeline_context_closed")
