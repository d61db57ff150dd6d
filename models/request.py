"""Inbound request models for lesson generation."""

from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict, Field

from models.base import CamelModel

GradeLevel = Literal["2", "3", "4", "5", "6", "7", "8"]
LearningStyle = Literal["reading and visual", "reading"]


class ContentOptions(CamelModel):
    """Style and size knobs forwarded to the text prompt."""

    model_config = ConfigDict(frozen=True)

    grade_level: GradeLevel = "2"
    sections: int = Field(default=4, ge=1, le=20)
    learning_style: LearningStyle = "reading"
    include_examples: bool = True
    include_exercises: bool = True
    generate_images: bool = True


class GenerationRequest(CamelModel):
    """Immutable input to a single generation run."""

    model_config = ConfigDict(frozen=True)

    outline: str
    content_options: ContentOptions = Field(default_factory=ContentOptions)

    def summary(self, limit: int = 200) -> str:
        """Short human-readable description used in trace attempts."""
        return f"Generate lesson: {self.outline[:limit]}"


class LessonCreateRequest(CamelModel):
    """POST /api/lessons — request body.

    ``outline`` defaults to empty so that a missing outline reaches the
    pipeline's own validation and is reported as a 400, not a 422.
    """

    outline: str = ""
    content_options: ContentOptions = Field(default_factory=ContentOptions)
