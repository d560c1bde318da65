"""Structured logging helpers with build/phase correlation context."""

from __future__ import annotations

import contextvars
import logging
import time
import uuid
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)

_BUILD_ID_VAR: contextvars.ContextVar[str] = contextvars.ContextVar(
    "build_id", default="-"
)
_PHASE_VAR: contextvars.ContextVar[str] = contextvars.ContextVar(
    "phase", default="-"
)

LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | build=%(build_id)s | phase=%(phase)s | "
    "%(name)s | %(message)s"
)


class _BuildContextFilter(logging.Filter):
    """Inject build correlation fields into all log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.build_id = _BUILD_ID_VAR.get("-")
        record.phase = _PHASE_VAR.get("-")
        return True


def _ensure_filter_on_root_handlers() -> None:
    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        has_filter = any(isinstance(f, _BuildContextFilter) for f in handler.filters)
        if not has_filter:
            handler.addFilter(_BuildContextFilter())


def configure_structured_logging(level: int = logging.INFO) -> None:
    """Configure root logging format with build/phase context."""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    else:
        root_logger.setLevel(level)
        formatter = logging.Formatter(LOG_FORMAT)
        for handler in root_logger.handlers:
            handler.setFormatter(formatter)
    _ensure_filter_on_root_handlers()


def set_build_id(build_id: str | None = None) -> str:
    """Set or generate the build correlation ID."""
    value = build_id or uuid.uuid4().hex[:12]
    _BUILD_ID_VAR.set(value)
    return value


def get_build_id() -> str:
    """Get current build correlation ID."""
    return _BUILD_ID_VAR.get("-")


def get_phase() -> str:
    """Get the currently active pipeline phase name."""
    return _PHASE_VAR.get("-")


@contextmanager
def phase_scope(phase: str) -> Iterator[None]:
    """Tag emitted logs with ``phase`` and log how long the phase took."""
    token = _PHASE_VAR.set(phase)
    started = time.perf_counter()
    try:
        yield
    finally:
        logger.info("Phase %s finished in %.2fs", phase, time.perf_counter() - started)
        _PHASE_VAR.reset(token)
