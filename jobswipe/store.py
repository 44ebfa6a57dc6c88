"""Persist swipes and applications in CSV tables with file locking.

Two files live in the data directory: ``swipes.csv`` (append-only) and
``applications.csv`` (rewritten on every status change).  A process-wide
lock serializes read-modify-write cycles between server threads; advisory
``fcntl`` locks keep other processes from reading a half-written file.
"""
from __future__ import annotations

import csv
import fcntl
import threading
import uuid
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from jobswipe.log import get_logger
from jobswipe.models import ApplicationRecord, ApplicationStatus, Direction

log = get_logger(__name__)

SWIPE_HEADERS: list[str] = ["profile_id", "candidate_id", "direction", "created_at"]
APPLICATION_HEADERS: list[str] = [
    "id", "profile_id", "candidate_id", "title", "company", "cover_letter",
    "status", "error_reason", "external_id", "created_at", "updated_at",
]


def _lock(f, exclusive: bool = True) -> None:
    """Advisory file lock (Unix fcntl)."""
    try:
        op = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(f.fileno(), op)
    except (OSError, AttributeError):
        pass


def _unlock(f) -> None:
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    except (OSError, AttributeError):
        pass


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _to_record(row: dict[str, str]) -> ApplicationRecord:
    return ApplicationRecord(
        id=row["id"],
        profile_id=row.get("profile_id", ""),
        candidate_id=row.get("candidate_id", ""),
        title=row.get("title", ""),
        company=row.get("company", ""),
        cover_letter=row.get("cover_letter") or None,
        status=ApplicationStatus(row.get("status") or ApplicationStatus.PENDING.value),
        error_reason=row.get("error_reason") or None,
        external_id=row.get("external_id") or None,
        created_at=row.get("created_at", ""),
        updated_at=row.get("updated_at", ""),
    )


def _to_row(record: ApplicationRecord) -> dict[str, str]:
    row = asdict(record)
    row["status"] = record.status.value
    return {k: "" if row[k] is None else str(row[k]) for k in APPLICATION_HEADERS}


class Store:
    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)
        self.swipes_csv = self.data_dir / "swipes.csv"
        self.applications_csv = self.data_dir / "applications.csv"
        self._lock = threading.RLock()
        self._ensure()

    # ── file plumbing ────────────────────────────────────────────────────

    def _ensure(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        for path, headers in (
            (self.swipes_csv, SWIPE_HEADERS),
            (self.applications_csv, APPLICATION_HEADERS),
        ):
            if not path.exists():
                with open(path, "w", newline="", encoding="utf-8") as f:
                    _lock(f)
                    csv.writer(f).writerow(headers)
                    _unlock(f)
                log.info("Created %s", path.name)

    def _read(self, path: Path) -> list[dict[str, str]]:
        with open(path, "r", newline="", encoding="utf-8") as f:
            _lock(f, exclusive=False)
            rows = list(csv.DictReader(f))
            _unlock(f)
        return rows

    def _append(self, path: Path, headers: list[str], row: dict[str, str]) -> None:
        with open(path, "a", newline="", encoding="utf-8") as f:
            _lock(f)
            csv.DictWriter(f, fieldnames=headers).writerow(row)
            _unlock(f)

    def _rewrite(self, path: Path, headers: list[str], rows: list[dict[str, str]]) -> None:
        with open(path, "w", newline="", encoding="utf-8") as f:
            _lock(f)
            w = csv.DictWriter(f, fieldnames=headers)
            w.writeheader()
            w.writerows(rows)
            _unlock(f)

    # ── swipes ───────────────────────────────────────────────────────────

    def record_swipe(
        self,
        profile_id: str,
        candidate_id: str,
        direction: Direction,
    ) -> tuple[dict[str, str], bool]:
        """Insert a swipe unless the same one is already stored.

        Returns the stored row and whether it was created by this call.
        """
        with self._lock:
            for row in self._read(self.swipes_csv):
                if (
                    row["profile_id"] == profile_id
                    and row["candidate_id"] == candidate_id
                    and row["direction"] == direction.value
                ):
                    return row, False
            row = {
                "profile_id": profile_id,
                "candidate_id": candidate_id,
                "direction": direction.value,
                "created_at": _now(),
            }
            self._append(self.swipes_csv, SWIPE_HEADERS, row)
        log.debug("Stored swipe %s on %s for %r", direction.value, candidate_id, profile_id)
        return row, True

    def decided_ids(self, profile_id: str) -> set[str]:
        with self._lock:
            rows = self._read(self.swipes_csv)
        return {r["candidate_id"] for r in rows if r["profile_id"] == profile_id}

    # ── applications ─────────────────────────────────────────────────────

    def create_application(
        self,
        candidate_id: str,
        profile_id: str = "",
        title: str = "",
        company: str = "",
    ) -> ApplicationRecord:
        now = _now()
        record = ApplicationRecord(
            id=uuid.uuid4().hex,
            candidate_id=candidate_id,
            profile_id=profile_id,
            title=title,
            company=company,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._append(self.applications_csv, APPLICATION_HEADERS, _to_row(record))
        log.info("Application %s created for %s [pending]", record.id, candidate_id)
        return record

    def get_application(self, application_id: str) -> ApplicationRecord | None:
        with self._lock:
            rows = self._read(self.applications_csv)
        for row in rows:
            if row["id"] == application_id:
                return _to_record(row)
        return None

    def list_applications(self, profile_id: str | None = None) -> list[ApplicationRecord]:
        """Newest first.  ``None`` lists every profile."""
        with self._lock:
            rows = self._read(self.applications_csv)
        records = [
            _to_record(r) for r in rows
            if profile_id is None or r["profile_id"] == profile_id
        ]
        records.reverse()
        return records

    def find_active_application(
        self,
        profile_id: str,
        candidate_id: str,
        statuses: Iterable[ApplicationStatus] | None = None,
    ) -> ApplicationRecord | None:
        """Most recent application for the pair whose status is in ``statuses``.

        By default anything that has not failed counts.
        """
        if statuses is None:
            statuses = set(ApplicationStatus) - {ApplicationStatus.FAILED}
        wanted = set(statuses)
        for record in self.list_applications(profile_id):
            if record.candidate_id == candidate_id and record.status in wanted:
                return record
        return None

    def pending_applications(self) -> list[ApplicationRecord]:
        """Records still waiting for their terminal transition, oldest first."""
        with self._lock:
            rows = self._read(self.applications_csv)
        return [_to_record(r) for r in rows if r["status"] == ApplicationStatus.PENDING.value]

    def _update(self, application_id: str, mutate) -> bool:
        with self._lock:
            rows = self._read(self.applications_csv)
            for i, row in enumerate(rows):
                if row["id"] != application_id:
                    continue
                record = _to_record(row)
                if not mutate(record):
                    return False
                record.updated_at = _now()
                rows[i] = _to_row(record)
                self._rewrite(self.applications_csv, APPLICATION_HEADERS, rows)
                return True
        return False

    def set_cover_letter(self, application_id: str, text: str) -> bool:
        def mutate(record: ApplicationRecord) -> bool:
            if record.status is not ApplicationStatus.PENDING:
                return False
            record.cover_letter = text
            return True

        return self._update(application_id, mutate)

    def update_cover_letter(self, application_id: str, text: str) -> bool:
        """User edit of a generated letter.  Refused while the letter is still being written."""
        def mutate(record: ApplicationRecord) -> bool:
            if record.status is ApplicationStatus.PENDING:
                return False
            record.cover_letter = text
            return True

        done = self._update(application_id, mutate)
        if done:
            log.info("Cover letter of application %s edited", application_id)
        return done

    def finish_application(
        self,
        application_id: str,
        status: ApplicationStatus,
        *,
        error_reason: str | None = None,
        external_id: str | None = None,
    ) -> bool:
        """Move a pending record into a terminal status.  False if refused."""
        if not status.terminal:
            raise ValueError(f"{status.value} is not a terminal status")

        def mutate(record: ApplicationRecord) -> bool:
            if record.status is not ApplicationStatus.PENDING:
                log.warning(
                    "Refusing %s → %s for application %s",
                    record.status.value, status.value, application_id,
                )
                return False
            record.status = status
            record.error_reason = error_reason
            record.external_id = external_id
            return True

        done = self._update(application_id, mutate)
        if done:
            log.info("Application %s → %s%s", application_id, status.value,
                     f" ({error_reason})" if error_reason else "")
        return done
