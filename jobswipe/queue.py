"""Fire-and-forget application pipeline.

``submit()`` stores a pending record and returns its id at once.  The rest
runs on the queue's own worker threads::

    generate cover letter -> store it -> demo?  -> demo
                                      -> submit -> success | failed

Every record leaves ``pending`` exactly once.  Anything unexpected is caught
at the task boundary and recorded as ``failed``.
"""
from __future__ import annotations

import concurrent.futures
import threading
from concurrent.futures import Future
from dataclasses import dataclass

from jobswipe.config import get_int
from jobswipe.cover_letter import CoverLetterGenerator
from jobswipe.dispatch import Dispatcher
from jobswipe.identity import IdentityProvider, NotAuthenticated
from jobswipe.log import get_logger, log_context
from jobswipe.models import ApplicationStatus, Candidate
from jobswipe.store import Store
from jobswipe.submission import SubmissionError, Submitter

log = get_logger(__name__)

GENERIC_FAILURE = "Internal error while processing the application"
INTERRUPTED_REASON = "Interrupted by server restart"

# A live request must not be answered with a demo or failed record.
_LIVE_REUSABLE = (ApplicationStatus.PENDING, ApplicationStatus.SUCCESS)


@dataclass(frozen=True)
class ApplicationRequest:
    candidate: Candidate
    profile_text: str = ""
    is_demo: bool = True
    profile_id: str = ""


class ApplicationQueue:
    def __init__(
        self,
        store: Store,
        generator: CoverLetterGenerator,
        identity: IdentityProvider | None = None,
        submitter: Submitter | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.store = store
        self.generator = generator
        self.identity = identity
        self.submitter = submitter
        if max_workers is None:
            max_workers = get_int("APPLY_WORKERS", 4)
        self._dispatcher = Dispatcher(max_workers=max_workers, name="apply")
        self._submit_lock = threading.Lock()
        self._futures: set[Future] = set()
        self._futures_lock = threading.Lock()

    @property
    def pending_count(self) -> int:
        with self._futures_lock:
            return sum(1 for f in self._futures if not f.done())

    def submit(self, request: ApplicationRequest) -> str:
        """Create the pending record, schedule the work, return the record id."""
        candidate = request.candidate
        with self._submit_lock:
            reusable = None if request.is_demo or not request.profile_id else _LIVE_REUSABLE
            existing = self.store.find_active_application(
                request.profile_id, candidate.id, statuses=reusable
            )
            if existing is not None:
                log.info(
                    "Application for %s already exists (%s, %s)",
                    candidate.id, existing.id, existing.status.value,
                )
                return existing.id
            record = self.store.create_application(
                candidate.id,
                profile_id=request.profile_id,
                title=candidate.title,
                company=candidate.company,
            )

        future = self._dispatcher.submit(self._run, record.id, request)
        with self._futures_lock:
            self._futures.add(future)
        future.add_done_callback(self._forget)
        return record.id

    def recover_interrupted(self) -> int:
        """Fail records left pending by a previous process.

        Call before the first ``submit()``: no task of this process owns a
        pending record yet, so each one found was abandoned.
        """
        stale = self.store.pending_applications()
        for record in stale:
            self.store.finish_application(
                record.id, ApplicationStatus.FAILED, error_reason=INTERRUPTED_REASON
            )
        if stale:
            log.warning("Failed %d application(s) interrupted by a restart", len(stale))
        return len(stale)

    def _forget(self, future: Future) -> None:
        with self._futures_lock:
            self._futures.discard(future)

    def _run(self, application_id: str, request: ApplicationRequest) -> None:
        with log_context(application_id):
            try:
                self._process(application_id, request)
            except Exception:
                log.exception("Application %s crashed", application_id)
                try:
                    self.store.finish_application(
                        application_id, ApplicationStatus.FAILED, error_reason=GENERIC_FAILURE
                    )
                except Exception:
                    log.exception("Could not record failure of application %s", application_id)

    def _process(self, application_id: str, request: ApplicationRequest) -> None:
        candidate = request.candidate
        letter = self.generator.generate(request.profile_text, candidate)
        self.store.set_cover_letter(application_id, letter)

        if request.is_demo or not request.profile_id:
            self.store.finish_application(application_id, ApplicationStatus.DEMO)
            return

        try:
            external_id = self._submit_external(request.profile_id, candidate, letter)
        except SubmissionError as exc:
            log.warning("Application %s not submitted: %s", application_id, exc)
            self.store.finish_application(
                application_id, ApplicationStatus.FAILED, error_reason=str(exc)
            )
            return

        self.store.finish_application(
            application_id, ApplicationStatus.SUCCESS, external_id=external_id
        )

    def _submit_external(self, profile_id: str, candidate: Candidate, letter: str) -> str:
        if self.identity is None or self.submitter is None:
            raise NotAuthenticated("Not authenticated with the job board")
        session = self.identity.session(profile_id)
        # The resume is read once here; a selection change after this point
        # applies to the next application only.
        resume_id = session.require_resume()
        token = session.tokens.get_valid()
        return self.submitter.apply(token, candidate.id, resume_id, letter)

    def drain(self, timeout: float | None = None) -> bool:
        """Wait for scheduled tasks.  True if none is left running."""
        with self._futures_lock:
            futures = list(self._futures)
        _, not_done = concurrent.futures.wait(futures, timeout=timeout)
        return not not_done

    def shutdown(self, wait: bool = True) -> None:
        self._dispatcher.shutdown(wait=wait)
