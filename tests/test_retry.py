"""
Tests for the retry decorator and the dispatcher.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from jobswipe.dispatch import Dispatcher
from jobswipe.retry import is_transient, raise_for_transient, retry


class TestRetry:
    def test_retries_then_succeeds(self):
        calls = []

        @retry(max_attempts=3, base_delay=0.01, retryable=(ConnectionError,))
        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ConnectionError("reset")
            return "ok"

        with patch("jobswipe.retry.time.sleep") as sleep:
            assert flaky() == "ok"
        assert len(calls) == 3
        assert sleep.call_count == 2

    def test_non_retryable_propagates_at_once(self):
        calls = []

        @retry(max_attempts=3, retryable=(ConnectionError,))
        def broken():
            calls.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            broken()
        assert len(calls) == 1

    def test_last_error_is_reraised(self):
        @retry(max_attempts=2, base_delay=0.01, retryable=(TimeoutError,))
        def always():
            raise TimeoutError("slow")

        with patch("jobswipe.retry.time.sleep"), pytest.raises(TimeoutError):
            always()


    def test_predicate_vetoes_a_retryable_error(self):
        calls = []

        @retry(max_attempts=3, retryable=(OSError,), should_retry=lambda exc: "busy" in str(exc))
        def fetch():
            calls.append(1)
            raise OSError("not found")

        with pytest.raises(OSError):
            fetch()
        assert len(calls) == 1

    def test_zero_attempts_is_rejected(self):
        with pytest.raises(ValueError):
            retry(max_attempts=0)


def http_reply(status):
    r = MagicMock()
    r.status_code = status
    return r


class TestTransient:
    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    def test_busy_replies_are_transient(self, status):
        with pytest.raises(requests.HTTPError) as info:
            raise_for_transient(http_reply(status))
        assert is_transient(info.value)

    @pytest.mark.parametrize("status", [200, 201, 400, 401, 403, 404])
    def test_other_replies_pass_through(self, status):
        reply = http_reply(status)
        assert raise_for_transient(reply) is reply

    def test_connection_errors_are_transient(self):
        assert is_transient(requests.ConnectionError("reset"))
        assert is_transient(requests.Timeout("slow"))
        assert not is_transient(requests.HTTPError("404", response=http_reply(404)))
        assert not is_transient(ValueError("bad json"))


class TestDispatcher:
    def test_inline_mode_resolves_immediately(self):
        future = Dispatcher(max_workers=0).submit(lambda x: x * 2, 21)
        assert future.done()
        assert future.result() == 42

    def test_inline_mode_captures_exceptions(self):
        def fail():
            raise RuntimeError("nope")

        future = Dispatcher(max_workers=0).submit(fail)
        assert isinstance(future.exception(), RuntimeError)

    def test_pool_mode(self):
        d = Dispatcher(max_workers=2)
        try:
            assert d.submit(sum, [1, 2, 3]).result(timeout=5) == 6
        finally:
            d.shutdown()
