"""Lesson endpoints — create, list, read and delete lessons.

``POST /api/lessons`` inserts the ``generating`` row and returns it at
once; generation runs as a background task and writes the terminal
status when done.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query

from errors import InputValidationError
from models.base import CamelModel
from models.lesson import Lesson
from models.request import LessonCreateRequest
from models.trace import Trace
from services.asset_store import get_asset_store
from services.lesson_pipeline import get_lesson_pipeline
from services.lesson_store import get_lesson_store
from services.trace_store import get_trace_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/lessons", tags=["lessons"])


class LessonResponse(CamelModel):
    lesson: Lesson


class LessonListResponse(CamelModel):
    lessons: list[Lesson]
    limit: int
    offset: int


class LessonDeleteResponse(CamelModel):
    success: bool
    deleted_images: int = 0


class LessonTracesResponse(CamelModel):
    traces: list[Trace]


@router.get("", response_model=LessonListResponse)
async def list_lessons(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
):
    lessons = await get_lesson_store().list(limit=limit, offset=offset)
    return LessonListResponse(lessons=lessons, limit=limit, offset=offset)


@router.post("", response_model=LessonResponse)
async def create_lesson(req: LessonCreateRequest, background_tasks: BackgroundTasks):
    """Create a lesson row and start generating its content."""
    pipeline = get_lesson_pipeline()
    try:
        lesson, request = await pipeline.start_lesson(req)
    except InputValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.exception("Failed to create lesson")
        raise HTTPException(status_code=500, detail="Failed to create lesson") from e

    background_tasks.add_task(pipeline.run, lesson.id, request)
    return LessonResponse(lesson=lesson)


@router.get("/{lesson_id}", response_model=LessonResponse)
async def get_lesson(lesson_id: str):
    lesson = await get_lesson_store().read(lesson_id)
    if lesson is None:
        raise HTTPException(status_code=404, detail="Lesson not found")
    return LessonResponse(lesson=lesson)


@router.delete("/{lesson_id}", response_model=LessonDeleteResponse)
async def delete_lesson(lesson_id: str):
    """Delete a lesson together with its uploaded images."""
    store = get_lesson_store()
    if await store.read(lesson_id) is None:
        raise HTTPException(status_code=404, detail="Lesson not found")

    deleted_images = 0
    try:
        deleted_images = await get_asset_store().delete_prefix(lesson_id)
    except Exception:
        logger.warning("Failed to delete images of lesson %s", lesson_id, exc_info=True)

    await store.delete(lesson_id)
    logger.info("Lesson %s deleted (%d image(s))", lesson_id, deleted_images)
    return LessonDeleteResponse(success=True, deleted_images=deleted_images)


@router.get("/{lesson_id}/traces", response_model=LessonTracesResponse)
async def get_lesson_traces(lesson_id: str):
    """Text and image traces recorded for one lesson, newest first."""
    traces = await get_trace_store().list_by_subject(lesson_id)
    return LessonTracesResponse(traces=traces)
