"""Pipeline coordinator: one enrichment run per file ID."""

from datetime import datetime
from typing import Dict, FrozenSet, List, Optional, Tuple

import structlog

from digest.core.context import PipelineContext
from digest.core.exceptions import FatalPipelineError, InvalidTransitionError
from digest.documents.models import File, Service
from digest.documents.retriever import ContentRetriever
from digest.documents.staging import StagingRun
from digest.stages import EnrichmentStage, EntityStage, MetadataStage, PreviewStage, TextStage
from digest.types import PipelineRun, PipelineState, StageInput

logger = structlog.get_logger()

S = PipelineState

TRANSITIONS: Dict[PipelineState, FrozenSet[PipelineState]] = {
    S.IDLE: frozenset({S.RETRIEVING, S.FAILED}),
    S.RETRIEVING: frozenset({S.METADATA_STAGE, S.CLEANUP}),
    # Stage states may only jump to CLEANUP when the run is cancelled
    S.METADATA_STAGE: frozenset({S.TEXT_STAGE, S.CLEANUP}),
    S.TEXT_STAGE: frozenset({S.ENTITY_STAGE, S.CLEANUP}),
    S.ENTITY_STAGE: frozenset({S.PREVIEW_STAGE, S.CLEANUP}),
    S.PREVIEW_STAGE: frozenset({S.CLEANUP}),
    S.CLEANUP: frozenset({S.COMPLETED, S.FAILED}),
    S.COMPLETED: frozenset(),
    S.FAILED: frozenset(),
}


class PipelineCoordinator:
    """Runs retrieval, the four enrichment stages and cleanup for a file.

    Only record loading and content retrieval can fail a run. Stage
    failures are recorded on the run and the next stage still executes.
    Cleanup happens exactly once for every run that reached retrieval.

    Example:
        ```python
        context = PipelineContext.from_settings()
        coordinator = PipelineCoordinator(context)

        run = await coordinator.handle("5a1f...")
        if run.ok:
            ...  # acknowledge the message
        ```
    """

    def __init__(
        self,
        context: PipelineContext,
        retriever: Optional[ContentRetriever] = None,
    ) -> None:
        """
        Initialize the coordinator.

        Args:
            context: Collaborators for every run
            retriever: Content retriever (built from the context if None)
        """
        self.context = context
        self.retriever = retriever or ContentRetriever(
            context.document_store,
            context.results,
            context.staging,
        )
        self.stages: List[Tuple[PipelineState, EnrichmentStage]] = [
            (S.METADATA_STAGE, MetadataStage(context)),
            (S.TEXT_STAGE, TextStage(context)),
            (S.ENTITY_STAGE, EntityStage(context)),
            (S.PREVIEW_STAGE, PreviewStage(context)),
        ]

    async def handle(self, file_id: str) -> PipelineRun:
        """
        Process one file ID end to end.

        Args:
            file_id: ID of the File record to enrich

        Returns:
            The finished run; ``run.ok`` is False only for fatal errors
        """
        run = PipelineRun(file_id=file_id)
        logger.info("pipeline_started", file_id=file_id)

        try:
            file, service = await self._load(file_id)
        except Exception as e:
            self._fail(run, e)
            self._transition(run, S.FAILED)
            return self._finish(run)

        self._transition(run, S.RETRIEVING)
        staging_run: Optional[StagingRun] = None
        try:
            try:
                staging_run = await self.context.staging.begin(file.id)
                staged_path = await self.retriever.retrieve(file, service, staging_run)
            except Exception as e:
                self._fail(run, e)
            else:
                job = StageInput(file=file, staged_path=staged_path, staging=staging_run)
                for state, stage in self.stages:
                    self._transition(run, state)
                    run.stage_results.append(await stage.run(job))
        finally:
            await self._cleanup(run, staging_run)

        self._transition(run, S.FAILED if run.error else S.COMPLETED)
        return self._finish(run)

    async def _load(self, file_id: str) -> Tuple[File, Service]:
        file = await self.context.records.find_file(file_id)
        service = await self.context.records.find_service(file.service_id)
        # Every run starts with its results unset; stored values are overwritten
        file.metadata = None
        file.text = None
        file.ner = None
        return file, service

    async def _cleanup(self, run: PipelineRun, staging_run: Optional[StagingRun]) -> None:
        self._transition(run, S.CLEANUP)
        run.cleanup_count += 1
        if staging_run is None:
            return
        try:
            await self.context.staging.release(staging_run)
        except Exception as e:
            logger.warning("cleanup_failed", file_id=run.file_id, error=str(e))

    def _transition(self, run: PipelineRun, target: PipelineState) -> None:
        if target not in TRANSITIONS[run.state]:
            raise InvalidTransitionError(
                f"Cannot move from {run.state.value} to {target.value}"
            )
        logger.debug(
            "pipeline_transition",
            file_id=run.file_id,
            source=run.state.value,
            target=target.value,
        )
        run.transitions.append((run.state, target))
        run.state = target

    def _fail(self, run: PipelineRun, error: Exception) -> None:
        run.error = str(error) or type(error).__name__
        run.error_type = type(error).__name__
        logger.error(
            "pipeline_fatal_error",
            file_id=run.file_id,
            state=run.state.value,
            error=run.error,
            error_type=run.error_type,
            expected=isinstance(error, FatalPipelineError),
        )

    def _finish(self, run: PipelineRun) -> PipelineRun:
        run.finished_at = datetime.utcnow()
        logger.info(
            "pipeline_finished",
            file_id=run.file_id,
            state=run.state.value,
            stages={r.stage: r.status.value for r in run.stage_results},
            duration_ms=round((run.finished_at - run.started_at).total_seconds() * 1000, 1),
        )
        return run
