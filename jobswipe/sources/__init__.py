from .base import JobSource, SourceError
from .demo import DemoSource
from .hh import HHSource

from jobswipe.log import get_logger

log = get_logger(__name__)

__all__ = [
    "JobSource", "SourceError", "DemoSource", "HHSource",
    "get_source",
]


def get_source(env_getter) -> JobSource:
    name = env_getter("JOB_SOURCE", "hh").lower() or "hh"

    if name == "demo":
        log.info("Registered source: built-in demo postings")
        return DemoSource()

    if name != "hh":
        log.warning("Unknown JOB_SOURCE=%r, falling back to HeadHunter", name)
    log.info("Registered source: HeadHunter (api.hh.ru)")
    return HHSource()
