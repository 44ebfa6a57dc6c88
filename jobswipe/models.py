"""Data models for candidates, swipe decisions and applications."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class Direction(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


class ApplicationStatus(str, Enum):
    """Lifecycle of an application record.

    ``pending`` covers the whole background run, including cover-letter
    generation.  Every record leaves ``pending`` exactly once, into one of the
    terminal statuses.
    """

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    DEMO = "demo"

    @property
    def terminal(self) -> bool:
        return self is not ApplicationStatus.PENDING


@dataclass(frozen=True)
class Candidate:
    id: str
    title: str
    company: str
    salary_text: str = ""
    description: str = ""
    tags: tuple[str, ...] = ()
    location: str = ""
    employment_type: str = ""
    url: str = ""

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["tags"] = list(self.tags)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Candidate:
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            company=data.get("company", ""),
            salary_text=data.get("salary_text", "") or "",
            description=data.get("description", "") or "",
            tags=tuple(data.get("tags") or ()),
            location=data.get("location", "") or "",
            employment_type=data.get("employment_type", "") or "",
            url=data.get("url", "") or "",
        )


@dataclass(frozen=True)
class SwipeDecision:
    candidate_id: str
    direction: Direction
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class Filters:
    """Feed query.  Empty strings and ``"all"`` mean "not filtered"."""

    keyword: str = ""
    area: str = ""
    employment: str = ""
    schedule: str = ""
    experience: str = ""

    def as_params(self) -> dict[str, str]:
        return {
            k: v for k, v in asdict(self).items()
            if v and v != "all"
        }


@dataclass
class Page:
    items: list[Candidate]
    has_more: bool
    total: int = 0


@dataclass
class ApplicationRecord:
    id: str
    candidate_id: str
    profile_id: str = ""
    title: str = ""
    company: str = ""
    cover_letter: str | None = None
    status: ApplicationStatus = ApplicationStatus.PENDING
    error_reason: str | None = None
    external_id: str | None = None
    created_at: str = ""
    updated_at: str = ""
