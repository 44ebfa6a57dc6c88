"""
Shared fixtures: fake providers, fake job sources and inline executors.
"""

import os
import tempfile

# Set environment BEFORE importing jobswipe so config and logging pick it up.
os.environ["JOBSWIPE_LOG_FILE"] = "false"
os.environ["JOBSWIPE_DATA_DIR"] = tempfile.mkdtemp(prefix="jobswipe-test-")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["JOB_SOURCE"] = "demo"

from typing import Dict, List, Optional

import pytest

from jobswipe.cover_letter import CoverLetterGenerator
from jobswipe.feed import Outbox
from jobswipe.models import Candidate, Filters, Page, SwipeDecision
from jobswipe.providers import ProviderError, TextGenerationProvider
from jobswipe.queue import ApplicationQueue
from jobswipe.sources.base import JobSource, SourceError
from jobswipe.store import Store


class FakeProvider(TextGenerationProvider):
    """Returns canned text or raises, and records every prompt."""

    def __init__(self, name: str, reply: Optional[str] = None, error: Optional[Exception] = None,
                 max_profile_chars: int = 6000):
        self.name = name
        self.reply = reply
        self.error = error
        self.max_profile_chars = max_profile_chars
        self.prompts: List[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if not self.reply:
            raise ProviderError(f"{self.name}: empty completion")
        return self.reply


class PagedSource(JobSource):
    """Serves pre-built pages by index and counts fetches."""

    def __init__(self, pages: List[List[Candidate]], decided: Optional[Dict[str, set]] = None,
                 fail_on: Optional[set] = None):
        self.pages = pages
        self.decided = decided or {}
        self.fail_on = fail_on or set()
        self.calls: List[tuple] = []

    def fetch_page(self, filters: Filters, page: int) -> Page:
        self.calls.append((filters, page))
        if page in self.fail_on:
            raise SourceError(f"page {page} unavailable")
        items = self.pages[page] if page < len(self.pages) else []
        return Page(items=list(items), has_more=page + 1 < len(self.pages), total=sum(map(len, self.pages)))

    def decided_ids(self, profile_id: str) -> set:
        return set(self.decided.get(profile_id, set()))


class RecordingOutbox(Outbox):
    def __init__(self):
        self.swipes: List[SwipeDecision] = []
        self.applications: List[Candidate] = []

    def record_swipe(self, decision, profile_id):
        self.swipes.append(decision)
        return {"ok": True}

    def submit_application(self, candidate, profile_text, is_demo, profile_id):
        self.applications.append(candidate)
        return {"status": "queued", "applicationId": f"app-{candidate.id}"}


def make_candidates(*ids: str) -> List[Candidate]:
    return [Candidate(id=i, title=f"Job {i}", company=f"Company {i}") for i in ids]


@pytest.fixture
def store(tmp_path):
    return Store(tmp_path / "data")


@pytest.fixture
def generator():
    return CoverLetterGenerator([
        FakeProvider("primary", reply="I have 3 years of Go experience and led a migration to Kubernetes."),
    ])


@pytest.fixture
def queue(store, generator):
    """Queue whose tasks run inline, so results are visible on return."""
    q = ApplicationQueue(store, generator, max_workers=0)
    yield q
    q.shutdown()


@pytest.fixture
def backend_engineer():
    return Candidate(id="42", title="Backend Engineer", company="Acme")
