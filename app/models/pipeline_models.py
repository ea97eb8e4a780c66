"""Data models for the document processing pipeline.

Each document carries one status per stage. Status writes are validated
against ``ALLOWED_TRANSITIONS``; returning a stage to ``pending`` is only
possible through an explicit reset.
"""

from enum import Enum
from typing import Dict, FrozenSet, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class StageStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class PipelineStage(str, Enum):
    """Pipeline stages; the level of a stage is its position (1-based)."""

    EXTRACTION = "extraction"
    CLASSIFICATION = "classification"
    METADATA = "metadata"
    CHUNKING = "chunking"

    @property
    def level(self) -> int:
        return list(PipelineStage).index(self) + 1

    @property
    def status_column(self) -> str:
        return f"{self.value}_status"

    @classmethod
    def up_to(cls, level: int) -> List["PipelineStage"]:
        """Stages that run for a processing level."""
        return [stage for stage in cls if stage.level <= level]


MIN_LEVEL = 1
MAX_LEVEL = len(PipelineStage)

ALLOWED_TRANSITIONS: Dict[StageStatus, FrozenSet[StageStatus]] = {
    StageStatus.PENDING: frozenset({StageStatus.RUNNING}),
    StageStatus.RUNNING: frozenset({StageStatus.COMPLETED, StageStatus.FAILED}),
    StageStatus.COMPLETED: frozenset(),
    StageStatus.FAILED: frozenset(),
}


def can_transition(current: StageStatus, target: StageStatus, reset: bool = False) -> bool:
    """Check a status write against the transition table.

    Args:
        current: Status currently persisted
        target: Status about to be written
        reset: Whether the write is a reprocess reset

    Returns:
        True if the write is allowed
    """
    if reset:
        return target == StageStatus.PENDING
    return target in ALLOWED_TRANSITIONS[current]


class StageMetrics(BaseModel):
    elapsed_ms: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    estimated_cost_usd: float = 0.0


class StageOutcome(BaseModel):
    """What happened to one stage in one run."""

    stage: PipelineStage
    status: StageStatus
    skipped: bool = False
    error: Optional[str] = None
    raw_response: Optional[str] = None
    metrics: StageMetrics = Field(default_factory=StageMetrics)


class PipelineRunResult(BaseModel):
    """Run report returned by the orchestrator; failures are reported, not raised."""

    document_id: UUID
    level: int
    success: bool
    stages: List[StageOutcome] = Field(default_factory=list)
    failed_stage: Optional[PipelineStage] = None
    error: Optional[str] = None
    completed_steps: int = 0
    failed_steps: int = 0
    total_elapsed_ms: int = 0
    total_tokens: int = 0
    estimated_cost_usd: float = 0.0

