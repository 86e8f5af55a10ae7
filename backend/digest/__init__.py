"""Box Digest document enrichment worker."""

from digest.core.context import PipelineContext
from digest.core.pipeline import PipelineCoordinator
from digest.types import PipelineRun, PipelineState, StageResult, StageStatus

__version__ = "0.1.0"

__all__ = [
    "PipelineContext",
    "PipelineCoordinator",
    "PipelineRun",
    "PipelineState",
    "StageResult",
    "StageStatus",
]
