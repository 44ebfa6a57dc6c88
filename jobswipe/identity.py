"""External job-board identity: OAuth tokens and the selected resume.

Tokens are held by a ``TokenManager`` that the caller owns and passes
around; there is no module-level credential cache.  Profiles live in a YAML
file::

    profiles:
      alice:
        access_token: "..."
        refresh_token: "..."
        expires_at: 1767225600
        selected_resume_id: "8d1f..."
"""
from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import requests
import yaml

from jobswipe.log import get_logger
from jobswipe.retry import is_transient, raise_for_transient, retry
from jobswipe.submission import USER_AGENT, SubmissionError

log = get_logger(__name__)

HH_TOKEN_URL = "https://hh.ru/oauth/token"
HH_RESUMES_URL = "https://api.hh.ru/resumes/mine"


class NotAuthenticated(SubmissionError):
    pass


class NoResumeSelected(SubmissionError):
    pass


@dataclass(frozen=True)
class Resume:
    id: str
    title: str


@dataclass(frozen=True)
class TokenGrant:
    access_token: str
    expires_at: float
    refresh_token: str | None = None


class TokenManager:
    """Caches one bearer token and refreshes it when it is about to expire."""

    def __init__(
        self,
        refresher: Callable[[], TokenGrant],
        grant: TokenGrant | None = None,
        *,
        clock: Callable[[], float] = time.time,
        skew: float = 60.0,
    ) -> None:
        self._refresher = refresher
        self._grant = grant
        self._clock = clock
        self.skew = skew
        self._lock = threading.Lock()

    def get_valid(self) -> str:
        with self._lock:
            grant = self._grant
            if grant and grant.access_token and self._clock() < grant.expires_at - self.skew:
                return grant.access_token
            try:
                grant = self._refresher()
            except NotAuthenticated:
                raise
            except Exception as exc:
                raise NotAuthenticated(f"Token refresh failed: {exc}") from exc
            if not grant.access_token:
                raise NotAuthenticated("Token refresh returned no access token")
            self._grant = grant
            return grant.access_token


class ProfileDirectory:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return data.get("profiles") or {}

    def _write(self, profiles: dict[str, dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        text = yaml.dump({"profiles": profiles}, default_flow_style=False, sort_keys=False, allow_unicode=True)
        self.path.write_text(text, encoding="utf-8")

    def get(self, profile_id: str) -> dict[str, Any] | None:
        with self._lock:
            profile = self._load().get(profile_id)
        return dict(profile) if profile else None

    def select_resume(self, profile_id: str, resume_id: str) -> None:
        with self._lock:
            profiles = self._load()
            if profile_id not in profiles:
                raise KeyError(profile_id)
            profiles[profile_id]["selected_resume_id"] = resume_id
            self._write(profiles)
        log.info("Profile %s selected resume %s", profile_id, resume_id)

    def save_tokens(self, profile_id: str, grant: TokenGrant) -> None:
        with self._lock:
            profiles = self._load()
            entry = profiles.setdefault(profile_id, {})
            entry["access_token"] = grant.access_token
            entry["expires_at"] = int(grant.expires_at)
            if grant.refresh_token:
                entry["refresh_token"] = grant.refresh_token
            self._write(profiles)


@dataclass
class ExternalSession:
    profile_id: str
    tokens: TokenManager
    resume_id: str | None = None

    def require_resume(self) -> str:
        if not self.resume_id:
            raise NoResumeSelected("No resume selected for this profile")
        return self.resume_id


class IdentityProvider(ABC):
    @abstractmethod
    def session(self, profile_id: str) -> ExternalSession:
        """Credentials and resume selection for a profile, read now."""


@retry(max_attempts=2, base_delay=1.0, retryable=(requests.ConnectionError, requests.Timeout))
def refresh_hh_token(
    refresh_token: str,
    client_id: str = "",
    client_secret: str = "",
    clock: Callable[[], float] = time.time,
) -> TokenGrant:
    data = {"grant_type": "refresh_token", "refresh_token": refresh_token}
    if client_id and client_secret:
        data.update(client_id=client_id, client_secret=client_secret)
    r = requests.post(HH_TOKEN_URL, data=data, timeout=15)
    if r.status_code >= 400:
        raise NotAuthenticated(f"hh.ru refused the refresh token (HTTP {r.status_code})")
    data = r.json()
    return TokenGrant(
        access_token=data.get("access_token", ""),
        expires_at=clock() + float(data.get("expires_in", 0)),
        refresh_token=data.get("refresh_token"),
    )


@retry(
    max_attempts=2, base_delay=1.0,
    retryable=(requests.RequestException,), should_retry=is_transient,
)
def _get_resumes(access_token: str, timeout: float) -> requests.Response:
    r = requests.get(
        HH_RESUMES_URL,
        headers={"Authorization": f"Bearer {access_token}", "User-Agent": USER_AGENT},
        timeout=timeout,
    )
    return raise_for_transient(r)


def fetch_hh_resumes(access_token: str, timeout: float = 15.0) -> list[Resume]:
    try:
        r = _get_resumes(access_token, timeout)
    except requests.RequestException as exc:
        raise SubmissionError(f"Could not reach hh.ru: {exc}") from exc
    if r.status_code in (401, 403):
        raise NotAuthenticated("hh.ru session expired or was revoked")
    if r.status_code >= 400:
        raise SubmissionError(f"hh.ru refused the resume list (HTTP {r.status_code})")
    items = r.json().get("items") or []
    return [
        Resume(id=str(item["id"]), title=item.get("title") or "Untitled resume")
        for item in items
        if item.get("id")
    ]


class HHIdentity(IdentityProvider):
    def __init__(
        self,
        directory: ProfileDirectory,
        client_id: str = "",
        client_secret: str = "",
        *,
        refresh: Callable[[str], TokenGrant] | None = None,
        fetch_resumes: Callable[[str], list[Resume]] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.directory = directory
        self._fetch_resumes = fetch_resumes or fetch_hh_resumes
        self._refresh = refresh or (
            lambda token: refresh_hh_token(token, client_id, client_secret, clock)
        )
        self._clock = clock

    def session(self, profile_id: str) -> ExternalSession:
        profile = self.directory.get(profile_id)
        if not profile or not (profile.get("access_token") or profile.get("refresh_token")):
            raise NotAuthenticated("Not authenticated with hh.ru")

        grant = None
        if profile.get("access_token"):
            grant = TokenGrant(
                access_token=profile["access_token"],
                expires_at=float(profile.get("expires_at") or 0),
                refresh_token=profile.get("refresh_token"),
            )
        tokens = TokenManager(lambda: self._renew(profile_id), grant, clock=self._clock)
        return ExternalSession(
            profile_id=profile_id,
            tokens=tokens,
            resume_id=profile.get("selected_resume_id") or None,
        )

    def _renew(self, profile_id: str) -> TokenGrant:
        profile = self.directory.get(profile_id) or {}
        refresh_token = profile.get("refresh_token")
        if not refresh_token:
            raise NotAuthenticated("hh.ru session expired; sign in again")
        grant = self._refresh(refresh_token)
        self.directory.save_tokens(profile_id, grant)
        log.info("Refreshed hh.ru token for profile %s", profile_id)
        return grant

    def list_resumes(self, profile_id: str) -> list[Resume]:
        """Resumes on the profile's hh.ru account, fetched live."""
        token = self.session(profile_id).tokens.get_valid()
        return self._fetch_resumes(token)
