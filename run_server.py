#!/usr/bin/env python3
"""Entry point to run the JobSwipe API server."""
from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

import uvicorn

from jobswipe.config import ensure_dirs, get_env, get_int
from jobswipe.log import get_logger

log = get_logger(__name__)


if __name__ == "__main__":
    ensure_dirs()
    host = get_env("JOBSWIPE_HOST", "127.0.0.1")
    port = get_int("JOBSWIPE_PORT", 8000)
    log.info("Starting JobSwipe API on http://%s:%d", host, port)
    uvicorn.run(
        "jobswipe.api:build_app",
        factory=True,
        host=host,
        port=port,
        log_level=get_env("LOG_LEVEL", "info").lower(),
    )
