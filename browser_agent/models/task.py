"""Task run records and HTTP request/response models."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class TaskStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class TaskRun:
    """Bookkeeping for one task execution."""

    task_id: str
    description: str
    status: TaskStatus = TaskStatus.PENDING
    final_answer: str | None = None
    iterations: int = 0
    error: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None


class TaskRequest(BaseModel):
    """Request model for the task endpoint."""

    task: str = Field(..., min_length=1, max_length=8000)


class TaskResponse(BaseModel):
    """Response model for the task endpoint."""

    task_id: str
    final_answer: str
    iterations: int


class TaskRunResponse(BaseModel):
    """Response model for task lookups."""

    task_id: str
    task: str
    status: TaskStatus
    final_answer: str | None = None
    iterations: int = 0
    error: str | None = None
    created_at: datetime
    finished_at: datetime | None = None

    @classmethod
    def from_run(cls, run: TaskRun) -> "TaskRunResponse":
        return cls(
            task_id=run.task_id,
            task=run.description,
            status=run.status,
            final_answer=run.final_answer,
            iterations=run.iterations,
            error=run.error,
            created_at=run.created_at,
            finished_at=run.finished_at,
        )


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str
