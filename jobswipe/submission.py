"""Submit an application through the job board's negotiations API."""
from __future__ import annotations

from abc import ABC, abstractmethod

import requests

from jobswipe.log import get_logger
from jobswipe.retry import is_transient, raise_for_transient, retry

log = get_logger(__name__)

NEGOTIATIONS_URL = "https://api.hh.ru/negotiations"
USER_AGENT = "JobSwipe/1.0 (job-search-app)"
TEST_REQUIRED_REASON = "The vacancy requires a test assignment; apply on hh.ru directly."


class SubmissionError(Exception):
    """The application could not be submitted.  The message is user-facing."""


class Submitter(ABC):
    @abstractmethod
    def apply(self, access_token: str, vacancy_id: str, resume_id: str, message: str) -> str:
        """Submit and return the board's confirmation id."""


def _error_reason(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"hh.ru rejected the application (HTTP {response.status_code})"
    errors = body.get("errors") or []
    for err in errors:
        value = str(err.get("value", ""))
        if err.get("type") == "negotiations" and "test" in value:
            return TEST_REQUIRED_REASON
    if errors:
        first = errors[0]
        return f"hh.ru rejected the application: {first.get('type')}/{first.get('value')}"
    return body.get("description") or f"hh.ru rejected the application (HTTP {response.status_code})"


class HHSubmitter(Submitter):
    def __init__(self, timeout: float = 20.0) -> None:
        self.timeout = timeout

    @retry(
        max_attempts=2, base_delay=2.0,
        retryable=(requests.RequestException,), should_retry=is_transient,
    )
    def _post(self, access_token: str, data: dict) -> requests.Response:
        r = requests.post(
            NEGOTIATIONS_URL,
            data=data,
            headers={
                "Authorization": f"Bearer {access_token}",
                "User-Agent": USER_AGENT,
            },
            timeout=self.timeout,
        )
        return raise_for_transient(r)

    def apply(self, access_token: str, vacancy_id: str, resume_id: str, message: str) -> str:
        data = {"vacancy_id": vacancy_id, "resume_id": resume_id, "message": message}
        try:
            r = self._post(access_token, data)
        except requests.RequestException as exc:
            raise SubmissionError(f"Could not reach hh.ru: {exc}") from exc

        if r.status_code == 401:
            raise SubmissionError("hh.ru session expired or was revoked")
        if r.status_code >= 400:
            raise SubmissionError(_error_reason(r))

        # 201 Created; the negotiation id is the tail of the Location header.
        location = r.headers.get("Location", "")
        negotiation_id = location.rstrip("/").rsplit("/", 1)[-1] if location else ""
        if not negotiation_id:
            try:
                negotiation_id = str(r.json().get("id", ""))
            except ValueError:
                negotiation_id = ""
        log.info("Applied to vacancy %s with resume %s → %s", vacancy_id, resume_id, negotiation_id or "?")
        return negotiation_id or "unknown"
