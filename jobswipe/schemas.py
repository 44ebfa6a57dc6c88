"""Request and response bodies of the HTTP API.

Fields are snake_case in Python and camelCase on the wire.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from jobswipe.models import ApplicationRecord, ApplicationStatus, Candidate, Direction

CANDIDATE_ID_PATTERN = r"^[A-Za-z0-9_.:-]+$"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CandidatePayload(CamelModel):
    id: str = Field(..., pattern=CANDIDATE_ID_PATTERN, max_length=64)
    title: str = ""
    company: str = ""
    salary_text: str = ""
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    location: str = ""
    employment_type: str = ""
    url: str = ""

    @classmethod
    def from_candidate(cls, c: Candidate) -> CandidatePayload:
        return cls(
            id=c.id,
            title=c.title,
            company=c.company,
            salary_text=c.salary_text,
            description=c.description,
            tags=list(c.tags),
            location=c.location,
            employment_type=c.employment_type,
            url=c.url,
        )

    def to_candidate(self) -> Candidate:
        return Candidate(
            id=self.id,
            title=self.title,
            company=self.company,
            salary_text=self.salary_text,
            description=self.description,
            tags=tuple(self.tags),
            location=self.location,
            employment_type=self.employment_type,
            url=self.url,
        )


class JobsPage(CamelModel):
    items: List[CandidatePayload]
    has_more: bool
    total: int = 0


class DecidedIds(CamelModel):
    ids: List[str]


class SwipeRequest(CamelModel):
    candidate_id: str = Field(..., pattern=CANDIDATE_ID_PATTERN, max_length=64)
    direction: Direction
    profile_id: Optional[str] = None


class OkResponse(CamelModel):
    ok: bool = True


class ApplyRequest(CamelModel):
    candidate_id: str = Field(..., pattern=CANDIDATE_ID_PATTERN, max_length=64)
    candidate_snapshot: CandidatePayload
    profile_text: str = Field("", max_length=50_000)
    is_demo: bool = True
    profile_id: Optional[str] = None

    @model_validator(mode="after")
    def snapshot_matches_id(self) -> ApplyRequest:
        if self.candidate_snapshot.id != self.candidate_id:
            raise ValueError("candidateSnapshot.id must equal candidateId")
        return self


class ApplyResponse(CamelModel):
    status: Literal["queued"] = "queued"
    application_id: str


class ApplicationOut(CamelModel):
    id: str
    candidate_id: str
    profile_id: str = ""
    title: str = ""
    company: str = ""
    cover_letter: Optional[str] = None
    status: ApplicationStatus
    error_reason: Optional[str] = None
    external_id: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_record(cls, r: ApplicationRecord) -> ApplicationOut:
        return cls(
            id=r.id,
            candidate_id=r.candidate_id,
            profile_id=r.profile_id,
            title=r.title,
            company=r.company,
            cover_letter=r.cover_letter,
            status=r.status,
            error_reason=r.error_reason,
            external_id=r.external_id,
            created_at=r.created_at,
            updated_at=r.updated_at,
        )


class ResumeSelection(CamelModel):
    resume_id: str = Field(..., min_length=1, max_length=128)


class ResumeOut(CamelModel):
    id: str
    title: str


class ResumeList(CamelModel):
    items: List[ResumeOut]
    selected_id: Optional[str] = None


class CoverLetterEdit(CamelModel):
    cover_letter: str = Field(..., max_length=20_000)


class CoverLetterRequest(CamelModel):
    profile_text: str = Field("", max_length=50_000)
    candidate: CandidatePayload


class CoverLetterResponse(CamelModel):
    cover_letter: str


class HealthResponse(CamelModel):
    status: str
    pending_tasks: int
    timestamp: datetime
