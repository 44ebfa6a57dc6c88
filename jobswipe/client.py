"""HTTP client for the JobSwipe API, used by the swipe UI."""
from __future__ import annotations

from typing import Any

import requests

from jobswipe.feed import Outbox
from jobswipe.log import get_logger
from jobswipe.models import Candidate, Filters, Page, SwipeDecision
from jobswipe.retry import retry
from jobswipe.sources.base import JobSource, SourceError

log = get_logger(__name__)


def candidate_from_wire(item: dict[str, Any]) -> Candidate:
    return Candidate(
        id=str(item["id"]),
        title=item.get("title", ""),
        company=item.get("company", ""),
        salary_text=item.get("salaryText", "") or "",
        description=item.get("description", "") or "",
        tags=tuple(item.get("tags") or ()),
        location=item.get("location", "") or "",
        employment_type=item.get("employmentType", "") or "",
        url=item.get("url", "") or "",
    )


def candidate_to_wire(c: Candidate) -> dict[str, Any]:
    return {
        "id": c.id,
        "title": c.title,
        "company": c.company,
        "salaryText": c.salary_text,
        "description": c.description,
        "tags": list(c.tags),
        "location": c.location,
        "employmentType": c.employment_type,
        "url": c.url,
    }


class ApiClient(JobSource, Outbox):
    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        timeout: float = 15.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    @retry(max_attempts=2, base_delay=1.0, retryable=(requests.ConnectionError, requests.Timeout))
    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        r = self.session.request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        r.raise_for_status()
        return r.json()

    # ── JobSource ────────────────────────────────────────────────────────

    def fetch_page(self, filters: Filters, page: int) -> Page:
        params: dict[str, Any] = {**filters.as_params(), "page": page}
        try:
            data = self._request("GET", "/jobs", params=params)
        except requests.RequestException as exc:
            raise SourceError(f"Could not load jobs: {exc}") from exc
        return Page(
            items=[candidate_from_wire(i) for i in data.get("items", [])],
            has_more=bool(data.get("hasMore")),
            total=int(data.get("total") or 0),
        )

    def decided_ids(self, profile_id: str) -> set[str]:
        data = self._request("GET", "/jobs/decided", params={"profileId": profile_id})
        return {str(i) for i in data.get("ids", [])}

    # ── Outbox ───────────────────────────────────────────────────────────

    def record_swipe(self, decision: SwipeDecision, profile_id: str) -> Any:
        payload = {
            "candidateId": decision.candidate_id,
            "direction": decision.direction.value,
            "profileId": profile_id or None,
        }
        return self._request("POST", "/swipes", json=payload)

    def submit_application(
        self,
        candidate: Candidate,
        profile_text: str,
        is_demo: bool,
        profile_id: str,
    ) -> Any:
        payload = {
            "candidateId": candidate.id,
            "candidateSnapshot": candidate_to_wire(candidate),
            "profileText": profile_text,
            "isDemo": is_demo,
            "profileId": profile_id or None,
        }
        data = self._request("POST", "/apply", json=payload)
        log.info("Application %s queued for %s", data.get("applicationId"), candidate.id)
        return data

    # ── History ──────────────────────────────────────────────────────────

    def list_applications(self, profile_id: str = "") -> list[dict[str, Any]]:
        params = {"profileId": profile_id} if profile_id else {}
        return self._request("GET", "/applications", params=params)

    def select_resume(self, profile_id: str, resume_id: str) -> Any:
        return self._request("POST", f"/profiles/{profile_id}/resume", json={"resumeId": resume_id})

    def list_resumes(self, profile_id: str) -> dict[str, Any]:
        """``{"items": [{"id", "title"}], "selectedId"}`` for the profile's hh.ru account."""
        return self._request("GET", f"/profiles/{profile_id}/resumes")

    def update_cover_letter(self, application_id: str, text: str) -> dict[str, Any]:
        return self._request(
            "PATCH", f"/applications/{application_id}/cover-letter", json={"coverLetter": text}
        )
