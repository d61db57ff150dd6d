"""Telemetry sink — exception capture, messages and latency spans.

The pipeline reports through a :class:`TelemetrySink`.  Every call is
fire-and-forget: a failing sink is logged and never fails the run.
The default :class:`LoggingTelemetrySink` writes to the standard logger.
"""

from __future__ import annotations

import contextlib
import logging
import time
from typing import Any, Iterator, Protocol

logger = logging.getLogger(__name__)

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class TelemetrySink(Protocol):
    def capture_exception(self, error: BaseException, tags: dict[str, Any] | None = None) -> None: ...

    def capture_message(
        self, text: str, level: str = "info", extra: dict[str, Any] | None = None
    ) -> None: ...

    def start_span(self, name: str, op: str = "") -> contextlib.AbstractContextManager: ...


class LoggingTelemetrySink:
    """Telemetry sink backed by :mod:`logging`."""

    def __init__(self, logger_name: str = "telemetry") -> None:
        self._log = logging.getLogger(logger_name)

    def capture_exception(self, error: BaseException, tags: dict[str, Any] | None = None) -> None:
        self._log.error(
            "%s: %s %s", type(error).__name__, error, tags or {},
            exc_info=(type(error), error, error.__traceback__),
        )

    def capture_message(
        self, text: str, level: str = "info", extra: dict[str, Any] | None = None
    ) -> None:
        self._log.log(_LEVELS.get(level, logging.INFO), "%s %s", text, extra or {})

    @contextlib.contextmanager
    def start_span(self, name: str, op: str = "") -> Iterator[dict[str, Any]]:
        span: dict[str, Any] = {"name": name, "op": op}
        t0 = time.monotonic()
        try:
            yield span
        finally:
            span["duration_ms"] = int((time.monotonic() - t0) * 1000)
            self._log.info("span %s [%s] took %dms", name, op or "-", span["duration_ms"])


class SafeTelemetry:
    """Wraps a sink so that sink failures never propagate to the caller."""

    def __init__(self, sink: TelemetrySink) -> None:
        self._sink = sink

    @property
    def sink(self) -> TelemetrySink:
        return self._sink

    def capture_exception(self, error: BaseException, **tags: Any) -> None:
        try:
            self._sink.capture_exception(error, tags)
        except Exception:
            logger.warning("Telemetry capture_exception failed", exc_info=True)

    def capture_message(self, text: str, level: str = "info", **extra: Any) -> None:
        try:
            self._sink.capture_message(text, level, extra)
        except Exception:
            logger.warning("Telemetry capture_message failed", exc_info=True)

    @contextlib.contextmanager
    def span(self, name: str, op: str = "") -> Iterator[None]:
        """Bracket a phase for latency visibility.

        Exceptions raised by the wrapped block propagate unchanged; only
        failures of the sink itself are swallowed.
        """
        try:
            cm = self._sink.start_span(name, op)
            cm.__enter__()
        except Exception:
            logger.warning("Telemetry start_span failed for %s", name, exc_info=True)
            yield
            return

        try:
            yield
        except BaseException as exc:
            try:
                cm.__exit__(type(exc), exc, exc.__traceback__)
            except Exception:
                logger.warning("Telemetry span close failed for %s", name, exc_info=True)
            raise
        else:
            try:
                cm.__exit__(None, None, None)
            except Exception:
                logger.warning("Telemetry span close failed for %s", name, exc_info=True)


_telemetry: SafeTelemetry | None = None


def get_telemetry() -> SafeTelemetry:
    """Return the process-wide telemetry wrapper (logging sink by default)."""
    global _telemetry
    if _telemetry is None:
        _telemetry = SafeTelemetry(LoggingTelemetrySink())
    return _telemetry


def set_telemetry(sink: TelemetrySink) -> SafeTelemetry:
    """Install a different sink (e.g. a vendor SDK bridge) for the process."""
    global _telemetry
    _telemetry = SafeTelemetry(sink)
    return _telemetry
