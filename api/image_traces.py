"""Image trace endpoints — same surface as ``/api/traces`` for image runs."""

from api.traces import build_trace_router
from models.trace import TraceKind

router = build_trace_router("/api/image-traces", TraceKind.IMAGE)
