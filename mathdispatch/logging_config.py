"""
MathDispatch — Logging Configuration
=====================================

What:  Logging setup plus a per-dispatch correlation id.
Why:   A single editor action can trigger several dispatches (configuration,
       showimage, getmathml). The correlation id ties together every log line
       emitted while one ``invoke`` runs: converter failures, retries,
       non-2xx responses.
How:   ``invoke`` stores a short id in a ContextVar; ``CorrelationIdFilter``
       copies it onto every record so the format string can print it.

The package never calls ``setup_logging`` on import. Library code only logs
through module loggers; the host decides whether to use this setup or its own.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Optional

from mathdispatch.config import settings

# What: Coroutine-local storage for the current dispatch id
# Why ContextVar: ``ainvoke`` calls may interleave on one event loop
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s [%(correlation_id)s]: %(message)s"


def new_correlation_id() -> str:
    """Short uuid; 8 chars is enough to correlate lines in a log file."""
    return str(uuid.uuid4())[:8]


class CorrelationIdFilter(logging.Filter):
    """Attaches ``record.correlation_id`` so LOG_FORMAT never raises KeyError."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = correlation_id_var.get()
        return True


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging for hosts that embed the dispatcher.

    What:    StreamHandler on stdout with the correlation-aware format.
    When:    Once, at host startup, before the first ``initialize``.

    Args:
        level: Overrides ``settings.log_level`` when given.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())

    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    # httpx logs every request at INFO
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
