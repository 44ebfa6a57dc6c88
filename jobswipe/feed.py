"""Session-scoped swipe feed: candidate cursor, undo history and pagination.

The cursor is owned by a single UI thread.  Outbound calls (page fetches,
swipe records, application submissions) go through a ``Dispatcher`` and are
never awaited by ``decide()``; their results are folded back into the state
only from the owning thread, in ``poll()``.

Undo is logical: it moves the cursor back and forgets the local decision, but
the swipe record and any application already dispatched stay sent.
"""
from __future__ import annotations

import concurrent.futures
from abc import ABC, abstractmethod
from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from jobswipe.dispatch import Dispatcher
from jobswipe.log import get_logger
from jobswipe.models import Candidate, Direction, Filters, Page, SwipeDecision
from jobswipe.sources.base import JobSource

log = get_logger(__name__)


class Outbox(ABC):
    """Side effects of a decision, sent to the backend."""

    @abstractmethod
    def record_swipe(self, decision: SwipeDecision, profile_id: str) -> Any:
        pass

    @abstractmethod
    def submit_application(
        self,
        candidate: Candidate,
        profile_text: str,
        is_demo: bool,
        profile_id: str,
    ) -> Any:
        pass


class FeedView(str, Enum):
    CARD = "card"
    LOADING = "loading"
    LOAD_MORE = "load-more"
    EXHAUSTED = "exhausted"


@dataclass
class FeedState:
    candidates: list[Candidate] = field(default_factory=list)
    position: int = 0
    undo_stack: list[int] = field(default_factory=list)
    session_decided: set[str] = field(default_factory=set)
    confirmed_decided: set[str] = field(default_factory=set)
    page: int = 0
    has_more: bool = True
    filters: Filters = field(default_factory=Filters)
    decisions: list[SwipeDecision] = field(default_factory=list)

    @property
    def decided_ids(self) -> set[str]:
        return self.session_decided | self.confirmed_decided

    @property
    def exhausted(self) -> bool:
        return self.position >= len(self.candidates)


@dataclass
class _PendingPage:
    future: Future
    index: int
    generation: int


class FeedCursor:
    def __init__(
        self,
        source: JobSource,
        outbox: Outbox | None = None,
        *,
        dispatcher: Dispatcher | None = None,
        filters: Filters | None = None,
        profile_id: str = "",
        profile_text: str = "",
        demo: bool = True,
    ) -> None:
        self._source = source
        self._outbox = outbox
        self._dispatcher = dispatcher or Dispatcher(max_workers=0)
        self.profile_id = profile_id
        self.profile_text = profile_text
        self.demo = demo
        self.state = FeedState(filters=filters or Filters())
        self.last_error: str | None = None
        self.applications: list[Future] = []
        self._pending_page: _PendingPage | None = None
        self._generation = 0
        self._swipes_in_flight: dict[str, Future] = {}

    # ── Reading ──────────────────────────────────────────────────────────

    def next(self) -> Candidate | None:
        """The candidate currently on top of the stack, if any."""
        s = self.state
        if s.position < len(s.candidates):
            return s.candidates[s.position]
        return None

    @property
    def loading(self) -> bool:
        return self._pending_page is not None

    @property
    def can_undo(self) -> bool:
        return bool(self.state.undo_stack)

    @property
    def view(self) -> FeedView:
        s = self.state
        if not s.exhausted:
            return FeedView.CARD
        if self.loading:
            return FeedView.LOADING
        if s.has_more:
            return FeedView.LOAD_MORE
        return FeedView.EXHAUSTED

    # ── Session lifecycle ────────────────────────────────────────────────

    def start(self) -> None:
        self._refresh_confirmed()
        self._fetch(0)

    def apply_filters(self, filters: Filters) -> None:
        log.info("Filters changed → %s", filters.as_params() or "none")
        self._restart(filters)

    def reset(self) -> None:
        """Start over: reload page 1, keep only server-confirmed decisions."""
        self._refresh_confirmed()
        self._restart(self.state.filters)

    def _restart(self, filters: Filters) -> None:
        self._generation += 1
        self._pending_page = None
        self.state = FeedState(
            filters=filters,
            confirmed_decided=self.state.confirmed_decided,
            decisions=self.state.decisions,
        )
        self._fetch(0)

    def _refresh_confirmed(self) -> None:
        if not self.profile_id:
            return
        try:
            ids = self._source.decided_ids(self.profile_id)
        except Exception as exc:
            log.warning("Could not load decided ids for %s: %s", self.profile_id, exc)
            return
        self.state.confirmed_decided |= set(ids)
        log.debug("Loaded %d server-confirmed decisions", len(ids))

    # ── Decisions ────────────────────────────────────────────────────────

    def decide(self, direction: Direction, candidate_id: str | None = None) -> SwipeDecision | None:
        """Decide the top candidate and advance.

        ``candidate_id`` pins the decision to a specific card: if the top card
        is already a different one (a repeated tap landed after the first one
        advanced the feed) the call does nothing.
        """
        current = self.next()
        if current is None:
            log.debug("decide(%s) with nothing on screen", direction.value)
            return None
        if candidate_id is not None and candidate_id != current.id:
            log.debug("decide(%s) for %s ignored, top card is %s", direction.value, candidate_id, current.id)
            return None

        s = self.state
        decision = SwipeDecision(candidate_id=current.id, direction=direction)
        s.decisions.append(decision)
        s.session_decided.add(current.id)
        s.undo_stack.append(s.position)
        s.position += 1
        log.info("Swiped %s on %s (%s @ %s)", direction.value, current.id, current.title, current.company)

        if self._outbox is not None:
            self._swipes_in_flight[current.id] = self._dispatcher.submit(
                self._outbox.record_swipe, decision, self.profile_id
            )
            if direction is Direction.ACCEPT:
                self.applications.append(
                    self._dispatcher.submit(
                        self._outbox.submit_application,
                        current,
                        self.profile_text,
                        self.demo,
                        self.profile_id,
                    )
                )
        return decision

    def undo(self) -> Candidate | None:
        s = self.state
        if not s.undo_stack:
            return None
        s.position = s.undo_stack.pop()
        restored = s.candidates[s.position]
        s.session_decided.discard(restored.id)
        s.confirmed_decided.discard(restored.id)
        log.info("Undo → %s is back on top", restored.id)
        return restored

    # ── Pagination ───────────────────────────────────────────────────────

    def load_more(self) -> bool:
        """Request the next page.  Returns False when nothing was started."""
        self.poll()
        if self._pending_page is not None or not self.state.has_more:
            return False
        self._fetch(self.state.page)
        return True

    def wait(self, timeout: float | None = None) -> None:
        """Block until the in-flight page (if any) arrives, then fold it in."""
        pending = self._pending_page
        if pending is not None:
            concurrent.futures.wait([pending.future], timeout=timeout)
        self.poll()

    def poll(self) -> bool:
        """Fold finished background work into the state.  True if it changed."""
        changed = self._reap_swipes()
        pending = self._pending_page
        if pending is None or not pending.future.done():
            return changed
        self._pending_page = None
        if pending.generation != self._generation:
            return changed
        try:
            page = pending.future.result()
        except Exception as exc:
            self.last_error = str(exc)
            log.warning("Page %d failed to load: %s", pending.index, exc)
            return True
        self.last_error = None
        self._integrate(page, pending.index)
        return True

    def _fetch(self, index: int) -> None:
        future = self._dispatcher.submit(self._source.fetch_page, self.state.filters, index)
        self._pending_page = _PendingPage(future=future, index=index, generation=self._generation)
        self.poll()

    def _integrate(self, page: Page, index: int) -> None:
        s = self.state
        known = {c.id for c in s.candidates} | s.decided_ids | set(self._swipes_in_flight)
        fresh: list[Candidate] = []
        for candidate in page.items:
            if candidate.id in known:
                continue
            known.add(candidate.id)
            fresh.append(candidate)

        s.candidates.extend(fresh)
        s.page = index + 1
        s.has_more = page.has_more
        log.info(
            "Page %d: %d new of %d (has_more=%s, total=%d)",
            index, len(fresh), len(page.items), page.has_more, page.total,
        )
        if not fresh and page.has_more:
            self._fetch(s.page)

    def _reap_swipes(self) -> bool:
        """Promote acknowledged swipe records to server-confirmed decisions."""
        s = self.state
        upcoming = {c.id for c in s.candidates[s.position:]}
        changed = False
        for cid, future in list(self._swipes_in_flight.items()):
            if not future.done():
                continue
            del self._swipes_in_flight[cid]
            changed = True
            if future.exception() is None and cid not in upcoming:
                s.confirmed_decided.add(cid)
        return changed
