"""Logging for the API server and the Streamlit UI.

Every line carries the thread name and, inside ``log_context(...)``, the id
of the application being processed, so the interleaved output of the apply
workers can be followed one application at a time::

    12:00:01  INFO  apply_0  jobswipe.store  [3f2a..]  Application 3f2a.. -> demo
"""
from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from typing import Iterator

_LOG_DIR = Path(
    os.environ.get("JOBSWIPE_LOG_DIR")
    or Path(__file__).resolve().parent.parent / "logs"
)
_FORMAT = "%(asctime)s  %(levelname)-8s  %(threadName)s  %(name)s  [%(application)s]  %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"
# Chatty below WARNING and not ours.
_QUIET = ("urllib3", "httpx", "openai", "watchdog")

_application: ContextVar[str] = ContextVar("application", default="-")
_configured = False


class ApplicationContextFilter(logging.Filter):
    """Stamps ``record.application`` with the id set by ``log_context``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.application = _application.get()
        return True


@contextmanager
def log_context(application_id: str) -> Iterator[None]:
    token = _application.set(application_id)
    try:
        yield
    finally:
        _application.reset(token)


def get_logger(name: str) -> logging.Logger:
    """Return a named logger; configures root handlers on first call."""
    global _configured
    if not _configured:
        _configure()
        _configured = True
    return logging.getLogger(name)


def _file_logging_enabled() -> bool:
    return os.environ.get("JOBSWIPE_LOG_FILE", "true").lower() not in ("0", "false", "no")


def _handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FMT))
    handler.addFilter(ApplicationContextFilter())
    return handler


def _configure() -> None:
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    for name in _QUIET:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    if root.handlers:
        return

    root.addHandler(_handler(logging.StreamHandler(sys.stdout), level))

    if not _file_logging_enabled():
        return
    try:
        _LOG_DIR.mkdir(parents=True, exist_ok=True)
        log_file = _LOG_DIR / f"jobswipe_{datetime.now().strftime('%Y-%m-%d')}.log"
        root.addHandler(_handler(logging.FileHandler(log_file, encoding="utf-8"), logging.DEBUG))
    except OSError:
        pass
