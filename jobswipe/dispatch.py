"""Fire-and-forget execution of outbound calls."""
from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

from jobswipe.log import get_logger

log = get_logger(__name__)


class Dispatcher:
    """Runs callables off the caller's thread and hands back a Future.

    With ``max_workers=0`` calls run inline and the returned Future is already
    resolved; the feed treats both modes the same way.
    """

    def __init__(self, max_workers: int = 4, name: str = "dispatch") -> None:
        self._pool: ThreadPoolExecutor | None = None
        if max_workers > 0:
            self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=name)

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        if self._pool is not None:
            future = self._pool.submit(fn, *args, **kwargs)
        else:
            future = Future()
            try:
                future.set_result(fn(*args, **kwargs))
            except Exception as exc:
                future.set_exception(exc)
        future.add_done_callback(_log_failure(getattr(fn, "__qualname__", repr(fn))))
        return future

    def shutdown(self, wait: bool = True) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=wait)


def _log_failure(label: str) -> Callable[[Future], None]:
    def callback(future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            log.warning("%s failed: %s", label, exc)

    return callback
