"""Trace endpoints — list, read and delete generation traces.

``build_trace_router`` produces the same CRUD surface for each trace
kind; this module mounts it for text traces at ``/api/traces``.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query

from errors import TraceNotFoundError
from models.base import CamelModel
from models.trace import Trace, TraceKind
from services.trace_store import get_trace_store

logger = logging.getLogger(__name__)


class TraceResponse(CamelModel):
    trace: Trace


class TraceListResponse(CamelModel):
    traces: list[Trace]
    limit: int
    offset: int


class TraceDeleteResponse(CamelModel):
    success: bool
    deleted: int = 0


async def _read_trace(trace_id: str, kind: TraceKind) -> Trace:
    trace = await get_trace_store().read(trace_id)
    if trace is None or trace.kind != kind:
        raise TraceNotFoundError(trace_id)
    return trace


def build_trace_router(prefix: str, kind: TraceKind) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[f"{kind.value}-traces"])

    @router.get("", response_model=TraceListResponse)
    async def list_traces(
        limit: int = Query(default=50, ge=1, le=200),
        offset: int = Query(default=0, ge=0),
    ):
        traces = await get_trace_store().list(kind=kind, limit=limit, offset=offset)
        return TraceListResponse(traces=traces, limit=limit, offset=offset)

    @router.delete("", response_model=TraceDeleteResponse)
    async def delete_all_traces(delete_all: bool = Query(default=False, alias="deleteAll")):
        if not delete_all:
            raise HTTPException(status_code=400, detail="Pass deleteAll=true to delete every trace")
        deleted = await get_trace_store().delete_all(kind)
        logger.info("Deleted %d %s trace(s)", deleted, kind.value)
        return TraceDeleteResponse(success=True, deleted=deleted)

    @router.get("/{trace_id}", response_model=TraceResponse)
    async def get_trace(trace_id: str):
        try:
            trace = await _read_trace(trace_id, kind)
        except TraceNotFoundError as e:
            raise HTTPException(status_code=404, detail="Trace not found") from e
        return TraceResponse(trace=trace)

    @router.delete("/{trace_id}", response_model=TraceDeleteResponse)
    async def delete_trace(trace_id: str):
        try:
            await _read_trace(trace_id, kind)
        except TraceNotFoundError as e:
            raise HTTPException(status_code=404, detail="Trace not found") from e
        await get_trace_store().delete(trace_id)
        return TraceDeleteResponse(success=True, deleted=1)

    return router


router = build_trace_router("/api/traces", TraceKind.TEXT)
