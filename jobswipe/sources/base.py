from abc import ABC, abstractmethod

from jobswipe.models import Filters, Page


class SourceError(Exception):
    """The job feed could not be fetched."""


class JobSource(ABC):
    @abstractmethod
    def fetch_page(self, filters: Filters, page: int) -> Page:
        """Return page ``page`` (0-based) of postings matching ``filters``."""

    def decided_ids(self, profile_id: str) -> set[str]:
        """Candidate ids the backend already holds a swipe for."""
        return set()
