"""Core pipeline components."""

from digest.core.exceptions import (
    ConfigurationError,
    ContentRetrievalError,
    CredentialRefreshError,
    DigestError,
    EntityTaggingError,
    ExtractionError,
    FatalPipelineError,
    InvalidTransitionError,
    PersistenceError,
    RecordNotFoundError,
    RenderError,
    StageError,
)

__all__ = [
    "DigestError",
    "FatalPipelineError",
    "RecordNotFoundError",
    "CredentialRefreshError",
    "ContentRetrievalError",
    "StageError",
    "ExtractionError",
    "EntityTaggingError",
    "RenderError",
    "PersistenceError",
    "InvalidTransitionError",
    "ConfigurationError",
]
