"""Base class for enrichment stages."""

import time
from abc import ABC, abstractmethod
from typing import Optional

import structlog

from digest.core.context import PipelineContext
from digest.types import StageInput, StageResult, StageStatus

logger = structlog.get_logger()


class EnrichmentStage(ABC):
    """One independently fallible enrichment step.

    Subclasses implement :meth:`execute`. :meth:`run` is the stage boundary:
    it absorbs every ordinary exception so a failing stage never stops the
    stages after it.
    """

    name: str = "stage"

    def __init__(self, context: PipelineContext) -> None:
        self.context = context

    @abstractmethod
    async def execute(self, job: StageInput) -> StageResult:
        """
        Perform the stage and persist its contribution.

        Args:
            job: File and staged path for the current run

        Returns:
            StageResult with SUCCEEDED or SKIPPED status
        """
        pass

    async def run(self, job: StageInput) -> StageResult:
        """Execute the stage, converting failures into a FAILED result."""
        start = time.monotonic()
        try:
            result = await self.execute(job)
        except Exception as e:
            result = StageResult(
                stage=self.name,
                status=StageStatus.FAILED,
                detail=str(e) or type(e).__name__,
            )
            logger.error(
                "stage_failed",
                stage=self.name,
                file_id=job.file.id,
                error=str(e),
                error_type=type(e).__name__,
            )
        else:
            logger.info(
                "stage_finished",
                stage=self.name,
                file_id=job.file.id,
                status=result.status.value,
                detail=result.detail,
            )

        result.execution_time_ms = (time.monotonic() - start) * 1000
        return result

    def succeeded(self, detail: Optional[str] = None) -> StageResult:
        return StageResult(stage=self.name, status=StageStatus.SUCCEEDED, detail=detail)

    def skipped(self, reason: str) -> StageResult:
        return StageResult(stage=self.name, status=StageStatus.SKIPPED, detail=reason)
