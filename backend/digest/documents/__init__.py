"""File records, staging and persistence for the enrichment pipeline."""

from digest.documents.models import (
    ENTITY_CATEGORIES,
    EntityTags,
    File,
    FileSource,
    Service,
    TokenPair,
)
from digest.documents.staging import StagingRun, TempStagingManager
from digest.documents.store import RecordStore, ResultStore

__all__ = [
    # Models
    "File",
    "FileSource",
    "Service",
    "TokenPair",
    "EntityTags",
    "ENTITY_CATEGORIES",
    # Staging and persistence
    "TempStagingManager",
    "StagingRun",
    "RecordStore",
    "ResultStore",
]
