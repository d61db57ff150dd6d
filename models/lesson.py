"""Lesson row model as persisted by the Lesson Store."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import Field

from models.base import CamelModel
from models.request import ContentOptions


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LessonStatus(str, Enum):
    GENERATING = "generating"
    GENERATED = "generated"
    ERROR = "error"


class ImageRecord(CamelModel):
    """Metadata of one image that was generated, uploaded and attached to a lesson."""

    url: str
    prompt: str
    hint: str
    path: str = ""
    spliced: bool = True


class Lesson(CamelModel):
    id: str
    title: str
    outline: str
    content_options: ContentOptions = Field(default_factory=ContentOptions)
    content: str | None = None
    status: LessonStatus = LessonStatus.GENERATING
    provider_used: str | None = None
    generated_images: list[ImageRecord] = Field(default_factory=list)
    degraded: bool = False
    image_generation_failed: bool = False
    image_error_message: str | None = None
    error_message: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


def title_from_outline(outline: str, limit: int = 50) -> str:
    """Derive a display title: the outline, truncated with an ellipsis."""
    outline = outline.strip()
    if len(outline) > limit:
        return outline[:limit] + "..."
    return outline
