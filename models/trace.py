"""Trace models — append-only record of one generation run.

One trace covers the text stage of a lesson; when images are requested a
second, independent trace covers the image stage.  Both share the
``started → completed | failed`` lifecycle.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from models.base import CamelModel
from models.lesson import utcnow


class TraceStatus(str, Enum):
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"


class TraceKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"


class Attempt(CamelModel):
    """One call to one provider (or one model of an image provider)."""

    provider_name: str
    model: str = ""
    request_summary: str = ""
    response_summary: str | None = None
    error: str | None = None
    duration_ms: int = 0
    success: bool = False
    timestamp: datetime = Field(default_factory=utcnow)


class Trace(CamelModel):
    id: str
    subject_id: str
    kind: TraceKind = TraceKind.TEXT
    status: TraceStatus = TraceStatus.STARTED
    request_data: dict[str, Any] = Field(default_factory=dict)
    response_data: dict[str, Any] | None = None
    attempts: list[Attempt] = Field(default_factory=list)

    # Text stage
    provider_used: str | None = None
    fallback_providers: list[str] = Field(default_factory=list)

    # Image stage
    models_tried: list[str] = Field(default_factory=list)
    model_used: str | None = None

    error_message: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None
    total_duration_ms: int | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (TraceStatus.COMPLETED, TraceStatus.FAILED)
