"""Schemas for background task state."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED})


class TaskProgressUpdate(BaseModel):
    text: str = Field(description="Progress message")
    value: float = Field(ge=0.0, le=1.0, description="Progress fraction")


class TaskInfo(BaseModel):
    """Current state of one background task, as returned by the status endpoint."""

    model_config = ConfigDict(validate_assignment=False)

    task_id: str
    task_type: str
    status: TaskStatus
    start_time: datetime
    end_time: datetime | None = None
    progress: float = 0.0
    progress_text: str = ""
    result: dict[str, Any] | None = None
    error: str | None = None


class TaskStartResponse(BaseModel):
    task_id: str = Field(description="Identifier used to poll /api/tasks/<task_id>/status")
    status: TaskStatus
    status_url: str
