"""Data models for workflow run state."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ActivityRecord(BaseModel):
    """Record of an individual activity execution."""

    name: str
    type: str
    started_at: datetime = Field(default_factory=_now)
    completed_at: Optional[datetime] = None
    status: str = "running"
    detail: Optional[str] = None

    def close(self, status: str, detail: Optional[str] = None) -> None:
        self.status = status
        self.detail = detail
        self.completed_at = _now()


class RunResult(BaseModel):
    """Terminal outcome returned to the caller of a workflow run."""

    run_id: str
    status: RunStatus
    output: Optional[Any] = None
    error: Optional[str] = None
    fault_name: Optional[str] = None
    duration_ms: float


class RunContext(BaseModel):
    """State of one workflow invocation."""

    id: str
    workflow_name: str
    start_time: datetime = Field(default_factory=_now)
    end_time: Optional[datetime] = None
    duration_ms: Optional[float] = None
    status: RunStatus = RunStatus.RUNNING
    variables: dict[str, Any] = Field(default_factory=dict)
    current_activity_index: int = 0
    input_payload: Any = None
    output_payload: Optional[Any] = None
    error_message: Optional[str] = None
    fault_name: Optional[str] = None
    history: list[ActivityRecord] = Field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status is not RunStatus.RUNNING

    def finish(
        self,
        duration_ms: float,
        error: Optional[str] = None,
        fault_name: Optional[str] = None,
    ) -> None:
        """Move the run to its terminal status."""
        self.end_time = _now()
        self.duration_ms = duration_ms
        if error is None:
            self.status = RunStatus.COMPLETED
        else:
            self.status = RunStatus.FAILED
            self.error_message = error
            self.fault_name = fault_name

    def to_result(self) -> RunResult:
        return RunResult(
            run_id=self.id,
            status=self.status,
            output=self.output_payload if self.status is RunStatus.COMPLETED else None,
            error=self.error_message,
            fault_name=self.fault_name,
            duration_ms=self.duration_ms if self.duration_ms is not None else 0.0,
        )
