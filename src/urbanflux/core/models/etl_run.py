"""
EtlRun model: the persisted record of one pipeline execution.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

from .run_stats import RunStats
from .service_request import ServiceRequest


class RunMode(str, Enum):
    """How much of the source a run processes."""

    FULL = "full"
    INCREMENTAL = "incremental"

    @classmethod
    def parse(cls, value: "str | RunMode") -> "RunMode":
        if isinstance(value, RunMode):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Invalid ETL mode: {value}") from None


class RunStatus(str, Enum):
    """
    Lifecycle of a run: RUNNING -> COMPLETED or RUNNING -> FAILED.

    Both terminal states are final.
    """

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not RunStatus.RUNNING

    def can_transition_to(self, target: "RunStatus") -> bool:
        return self is RunStatus.RUNNING and target.is_terminal


class Watermark(BaseModel):
    """
    Resume point taken from the most recently completed run.

    Attributes:
        run_id: Run the watermark was recorded by
        last_created_at: Latest created_at loaded by that run
        last_unique_key: unique_key paired with last_created_at
        run_mode: Mode of that run
    """

    run_id: UUID
    last_created_at: datetime | None = None
    last_unique_key: int | None = None
    run_mode: RunMode

    def covers(self, record: ServiceRequest) -> bool:
        """
        Check whether a record was already processed by the watermark's run.

        Records are ordered by (created_at, unique_key); anything at or
        before the watermark position is covered.
        """
        if self.last_created_at is None:
            return False
        if record.created_at != self.last_created_at:
            return record.created_at < self.last_created_at
        return self.last_unique_key is not None and record.unique_key <= self.last_unique_key


class EtlRun(BaseModel):
    """
    One end-to-end execution of the pipeline.

    Attributes:
        run_id: Unique identifier of the attempt
        run_mode: full or incremental
        status: Current lifecycle state
        dataset_name: Optional label of the source processed
        started_at: When the run was registered
        completed_at: When the run reached a terminal state
        last_created_at: Watermark timestamp recorded at completion
        last_unique_key: Watermark key recorded at completion
        stats: Final counters (zero while running)
        error_message: Failure reason for failed runs
    """

    run_id: UUID
    run_mode: RunMode
    status: RunStatus = RunStatus.RUNNING
    dataset_name: str | None = None
    started_at: datetime
    completed_at: datetime | None = None
    last_created_at: datetime | None = None
    last_unique_key: int | None = None
    stats: RunStats = Field(default_factory=RunStats)
    error_message: str | None = None

    def watermark(self) -> Watermark:
        return Watermark(
            run_id=self.run_id,
            last_created_at=self.last_created_at,
            last_unique_key=self.last_unique_key,
            run_mode=self.run_mode,
        )
