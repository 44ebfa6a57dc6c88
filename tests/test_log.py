"""
Tests for the per-application logging context.
"""

import logging

from jobswipe.log import ApplicationContextFilter, log_context


def record():
    return logging.LogRecord("jobswipe.queue", logging.INFO, __file__, 1, "msg", None, None)


def test_context_stamps_application_id():
    f = ApplicationContextFilter()
    with log_context("app-1"):
        inside = record()
        assert f.filter(inside) is True
    outside = record()
    f.filter(outside)

    assert inside.application == "app-1"
    assert outside.application == "-"


def test_contexts_nest():
    f = ApplicationContextFilter()
    with log_context("outer"):
        with log_context("inner"):
            r = record()
            f.filter(r)
        assert r.application == "inner"
        r = record()
        f.filter(r)
        assert r.application == "outer"
