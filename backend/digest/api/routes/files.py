"""File processing endpoints."""

from typing import List, Optional

import structlog
from fastapi import APIRouter, HTTPException, Request, status
from pydantic import BaseModel

from digest.core.pipeline import PipelineCoordinator

logger = structlog.get_logger()

router = APIRouter(prefix="/files", tags=["files"])


class StageResultResponse(BaseModel):
    """Outcome of one stage."""

    stage: str
    status: str
    detail: Optional[str] = None
    execution_time_ms: float


class DigestResponse(BaseModel):
    """Summary of a pipeline run."""

    file_id: str
    state: str
    ok: bool
    stages: List[StageResultResponse]
    error: Optional[str] = None
    error_type: Optional[str] = None
    started_at: str
    finished_at: Optional[str] = None


def get_coordinator(request: Request) -> PipelineCoordinator:
    """Coordinator built by the application lifespan."""
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Pipeline is not initialized",
        )
    return coordinator


@router.post("/{file_id}/digest", response_model=DigestResponse)
async def digest_file(file_id: str, request: Request) -> DigestResponse:
    """
    Run the enrichment pipeline for one file outside the queue.

    Args:
        file_id: File record ID

    Returns:
        Run summary; a fatal failure is reported with status 422
    """
    coordinator = get_coordinator(request)
    run = await coordinator.handle(file_id)

    body = DigestResponse.model_validate(run.to_dict())
    if not run.ok:
        logger.warning("manual_digest_failed", file_id=file_id, error=run.error)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=body.model_dump(),
        )
    return body
