"""HeadHunter public vacancy search.

Docs: https://api.hh.ru/openapi/redoc#tag/Poisk-vakansij
No key is required for search; the API asks for a descriptive User-Agent.
"""
from __future__ import annotations

import re

import requests

from jobswipe.log import get_logger
from jobswipe.models import Candidate, Filters, Page
from jobswipe.retry import is_transient, retry
from jobswipe.sources.base import JobSource, SourceError

log = get_logger(__name__)

API_URL = "https://api.hh.ru/vacancies"
USER_AGENT = "JobSwipe/1.0 (job-search-app)"
PAGE_SIZE = 30
DEFAULT_TEXT = "marketing"
DEFAULT_AREA = "1"

_TAG_RE = re.compile(r"<[^>]*>")


def format_salary(salary: dict | None) -> str:
    if not salary:
        return "Salary not specified"
    low, high = salary.get("from"), salary.get("to")
    currency = salary.get("currency") or ""
    symbol = "₽" if currency == "RUR" else currency
    if low and high:
        return f"{round(low / 1000)}–{round(high / 1000)}k {symbol}"
    if low:
        return f"from {round(low / 1000)}k {symbol}"
    if high:
        return f"up to {round(high / 1000)}k {symbol}"
    return "Salary not specified"


def employment_type(employment: dict | None, schedule: dict | None) -> str:
    schedule_id = (schedule or {}).get("id")
    if schedule_id == "remote":
        return "remote"
    if schedule_id == "flexible":
        return "hybrid"
    if (employment or {}).get("id") == "part":
        return "part-time"
    return "full-time"


def adapt_vacancy(item: dict) -> Candidate:
    snippet = item.get("snippet") or {}
    description = (
        snippet.get("responsibility")
        or snippet.get("requirement")
        or "No description"
    )
    return Candidate(
        id=str(item["id"]),
        title=item.get("name", ""),
        company=(item.get("employer") or {}).get("name", ""),
        salary_text=format_salary(item.get("salary")),
        description=_TAG_RE.sub("", description),
        tags=tuple(r.get("name", "") for r in item.get("professional_roles") or [])[:5],
        location=(item.get("area") or {}).get("name", ""),
        employment_type=employment_type(item.get("employment"), item.get("schedule")),
        url=item.get("alternate_url", ""),
    )


class HHSource(JobSource):
    def __init__(self, per_page: int = PAGE_SIZE, timeout: float = 15.0) -> None:
        self.per_page = per_page
        self.timeout = timeout

    @retry(
        max_attempts=3, base_delay=1.5,
        retryable=(requests.RequestException,), should_retry=is_transient,
    )
    def _get(self, params: dict) -> dict:
        r = requests.get(
            API_URL,
            params=params,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            timeout=self.timeout,
        )
        r.raise_for_status()
        return r.json()

    def fetch_page(self, filters: Filters, page: int) -> Page:
        params: dict = {
            "text": filters.keyword or DEFAULT_TEXT,
            "area": filters.area or DEFAULT_AREA,
            "per_page": self.per_page,
            "page": page,
        }
        for key in ("employment", "schedule", "experience"):
            value = getattr(filters, key)
            if value and value != "all":
                params[key] = value

        try:
            data = self._get(params)
        except requests.RequestException as exc:
            raise SourceError(f"HH search failed: {exc}") from exc

        items = [adapt_vacancy(v) for v in data.get("items", [])]
        pages = int(data.get("pages") or 0)
        has_more = page + 1 < pages
        log.info(
            "HH page %d: %d vacancies, found=%s, pages=%d, has_more=%s",
            page, len(items), data.get("found"), pages, has_more,
        )
        return Page(items=items, has_more=has_more, total=int(data.get("found") or 0))
