"""Clients for the services the pipeline depends on."""

from digest.clients.base import (
    DocumentStoreClient,
    EntityTaggingClient,
    ExtractionClient,
    PreviewSink,
    RenderingToolchain,
)
from digest.clients.box import BoxClient
from digest.clients.ner import NERSocketClient
from digest.clients.render import ImageMagickToolchain, ProcessResult, ProcessRunner
from digest.clients.sink import LoggingPreviewSink
from digest.clients.tika import TikaClient

__all__ = [
    # Interfaces
    "DocumentStoreClient",
    "ExtractionClient",
    "EntityTaggingClient",
    "RenderingToolchain",
    "PreviewSink",
    # Implementations
    "BoxClient",
    "TikaClient",
    "NERSocketClient",
    "ImageMagickToolchain",
    "ProcessRunner",
    "ProcessResult",
    "LoggingPreviewSink",
]
