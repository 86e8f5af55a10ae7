"""Type definitions for pipeline runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from digest.documents.models import File
    from digest.documents.staging import StagingRun


class PipelineState(str, Enum):
    """States of a single pipeline run."""

    IDLE = "idle"
    RETRIEVING = "retrieving"
    METADATA_STAGE = "metadata_stage"
    TEXT_STAGE = "text_stage"
    ENTITY_STAGE = "entity_stage"
    PREVIEW_STAGE = "preview_stage"
    CLEANUP = "cleanup"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineState.COMPLETED, PipelineState.FAILED)


class StageStatus(str, Enum):
    """Outcome of one enrichment stage."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class StageResult:
    """Result of one enrichment stage."""

    stage: str
    status: StageStatus
    detail: Optional[str] = None
    execution_time_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage,
            "status": self.status.value,
            "detail": self.detail,
            "execution_time_ms": round(self.execution_time_ms, 1),
        }


@dataclass
class StageInput:
    """What every stage works on during a run."""

    file: File
    staged_path: Path
    staging: StagingRun


@dataclass
class PipelineRun:
    """State and history of one pipeline run."""

    file_id: str
    state: PipelineState = PipelineState.IDLE
    transitions: List[Tuple[PipelineState, PipelineState]] = field(default_factory=list)
    stage_results: List[StageResult] = field(default_factory=list)
    cleanup_count: int = 0
    error: Optional[str] = None
    error_type: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None

    @property
    def ok(self) -> bool:
        """True when the run completed, with or without partial enrichment."""
        return self.state == PipelineState.COMPLETED

    @property
    def visited(self) -> List[PipelineState]:
        """States entered during the run, in order."""
        return [PipelineState.IDLE] + [target for _, target in self.transitions]

    def result_for(self, stage: str) -> Optional[StageResult]:
        for result in self.stage_results:
            if result.stage == stage:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_id": self.file_id,
            "state": self.state.value,
            "ok": self.ok,
            "stages": [r.to_dict() for r in self.stage_results],
            "error": self.error,
            "error_type": self.error_type,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }
