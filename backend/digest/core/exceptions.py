"""Custom exceptions for Box Digest."""


class DigestError(Exception):
    """Base exception for digest errors."""
    pass


class FatalPipelineError(DigestError):
    """Raised when a pipeline run cannot continue."""

    def __init__(self, message: str, file_id: str = ""):
        super().__init__(message)
        self.file_id = file_id


class RecordNotFoundError(FatalPipelineError):
    """Raised when a File or Service record does not exist."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found: {record_id}", file_id=record_id)
        self.kind = kind
        self.record_id = record_id


class CredentialRefreshError(FatalPipelineError):
    """Raised when the document store rejects a refresh grant."""
    pass


class ContentRetrievalError(FatalPipelineError):
    """Raised when file bytes cannot be streamed into staging."""
    pass


class StageError(DigestError):
    """Raised inside an enrichment stage; absorbed at the stage boundary."""

    def __init__(self, message: str, stage: str = ""):
        super().__init__(message)
        self.stage = stage


class ExtractionError(StageError):
    """Raised when metadata or text extraction fails."""
    pass


class EntityTaggingError(StageError):
    """Raised when the entity tagging round trip fails."""
    pass


class RenderError(StageError):
    """Raised when conversion or rendering fails."""

    def __init__(self, message: str, command: str = "", returncode: int = 0, output: str = ""):
        super().__init__(message, stage="preview")
        self.command = command
        self.returncode = returncode
        self.output = output


class PersistenceError(DigestError):
    """Raised when a record cannot be saved."""
    pass


class InvalidTransitionError(DigestError):
    """Raised when the coordinator attempts an undeclared state transition."""
    pass


class ConfigurationError(DigestError):
    """Raised when configuration is invalid."""
    pass
