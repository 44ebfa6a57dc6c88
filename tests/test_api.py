"""
Tests for the HTTP API endpoints.
"""

import pytest
import yaml
from fastapi.testclient import TestClient

from conftest import PagedSource, make_candidates
from jobswipe.api import create_app
from jobswipe.identity import HHIdentity, NotAuthenticated, ProfileDirectory, Resume
from jobswipe.models import ApplicationStatus
from jobswipe.queue import INTERRUPTED_REASON, ApplicationQueue
from jobswipe.store import Store
from jobswipe.submission import SubmissionError
from jobswipe.sources import DemoSource

SNAPSHOT = {"id": "42", "title": "Backend Engineer", "company": "Acme", "tags": ["Go"]}
PROFILE = "3 years Go, led migration to Kubernetes"


@pytest.fixture
def profiles(tmp_path):
    path = tmp_path / "profiles.yaml"
    path.write_text(yaml.safe_dump({"profiles": {"alice": {"selected_resume_id": "r0"}}}), encoding="utf-8")
    return ProfileDirectory(path)


@pytest.fixture
def client(store, queue, generator, profiles):
    app = create_app(store, queue, DemoSource(per_page=5), generator, profiles)
    with TestClient(app) as c:
        yield c


def test_health(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["pendingTasks"] == 0
    assert "timestamp" in data


class TestJobs:
    def test_first_page(self, client: TestClient):
        data = client.get("/jobs").json()
        assert len(data["items"]) == 5
        assert data["hasMore"] is True
        assert data["total"] == 12
        assert "salaryText" in data["items"][0]

    def test_filters_are_forwarded(self, client: TestClient):
        data = client.get("/jobs", params={"keyword": "kubernetes"}).json()
        assert data["items"]
        assert data["hasMore"] is False

    def test_source_failure_is_bad_gateway(self, store, queue, generator):
        source = PagedSource([make_candidates("a")], fail_on={0})
        with TestClient(create_app(store, queue, source, generator)) as c:
            response = c.get("/jobs")
        assert response.status_code == 502
        assert response.json()["items"] == []

    def test_negative_page_rejected(self, client: TestClient):
        assert client.get("/jobs", params={"page": -1}).status_code == 422


class TestSwipes:
    def test_swipe_is_idempotent(self, client: TestClient, store):
        body = {"candidateId": "42", "direction": "accept", "profileId": "alice"}
        assert client.post("/swipes", json=body).json() == {"ok": True}
        assert client.post("/swipes", json=body).json() == {"ok": True}

        assert client.get("/jobs/decided", params={"profileId": "alice"}).json() == {"ids": ["42"]}

    @pytest.mark.parametrize("body", [
        {"candidateId": "", "direction": "accept"},
        {"candidateId": "bad id!", "direction": "accept"},
        {"candidateId": "42", "direction": "maybe"},
        {"direction": "accept"},
    ])
    def test_invalid_swipe_rejected(self, client: TestClient, store, body):
        assert client.post("/swipes", json=body).status_code == 422
        assert store.decided_ids("") == set()

    def test_decided_requires_profile(self, client: TestClient):
        assert client.get("/jobs/decided").status_code == 422


class TestApply:
    def test_accept_scenario(self, client: TestClient, store):
        """Accepting candidate 42 yields one record that ends terminal with a grounded letter."""
        client.post("/swipes", json={"candidateId": "42", "direction": "accept"})
        response = client.post("/apply", json={
            "candidateId": "42",
            "candidateSnapshot": SNAPSHOT,
            "profileText": PROFILE,
            "isDemo": True,
        })

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "queued"

        records = client.get("/applications").json()
        assert len(records) == 1
        record = records[0]
        assert record["id"] == data["applicationId"]
        assert record["candidateId"] == "42"
        assert record["status"] == ApplicationStatus.DEMO.value
        assert "Kubernetes" in record["coverLetter"]

    def test_duplicate_apply_returns_same_id(self, client: TestClient, store):
        body = {"candidateId": "42", "candidateSnapshot": SNAPSHOT, "profileText": PROFILE}
        first = client.post("/apply", json=body).json()["applicationId"]
        second = client.post("/apply", json=body).json()["applicationId"]

        assert first == second
        assert len(store.list_applications()) == 1

    def test_snapshot_must_match_candidate(self, client: TestClient, store):
        response = client.post("/apply", json={
            "candidateId": "43", "candidateSnapshot": SNAPSHOT, "profileText": PROFILE,
        })
        assert response.status_code == 422
        assert store.list_applications() == []

    def test_applications_filtered_by_profile(self, client: TestClient):
        client.post("/apply", json={
            "candidateId": "42", "candidateSnapshot": SNAPSHOT, "profileId": "alice", "isDemo": False,
        })
        assert client.get("/applications", params={"profileId": "bob"}).json() == []
        [record] = client.get("/applications", params={"profileId": "alice"}).json()
        assert record["status"] == "failed"
        assert record["errorReason"]


class TestProfilesAndPreview:
    def test_select_resume(self, client: TestClient, profiles):
        response = client.post("/profiles/alice/resume", json={"resumeId": "r9"})
        assert response.json() == {"ok": True}
        assert profiles.get("alice")["selected_resume_id"] == "r9"

    def test_select_resume_unknown_profile(self, client: TestClient):
        assert client.post("/profiles/zed/resume", json={"resumeId": "r9"}).status_code == 404

    def test_cover_letter_preview(self, client: TestClient):
        response = client.post("/cover-letter/generate", json={"profileText": PROFILE, "candidate": SNAPSHOT})
        assert response.status_code == 200
        assert "Go" in response.json()["coverLetter"]


def test_startup_fails_applications_left_pending(tmp_path, generator):
    abandoned = Store(tmp_path / "data").create_application("42", profile_id="alice")

    store = Store(tmp_path / "data")
    queue = ApplicationQueue(store, generator, max_workers=0)
    with TestClient(create_app(store, queue, DemoSource(), generator)) as c:
        [record] = c.get("/applications").json()

    assert record["id"] == abandoned.id
    assert record["status"] == "failed"
    assert record["errorReason"] == INTERRUPTED_REASON


class TestCoverLetterEdit:
    def test_edit_finished_application(self, client: TestClient, store):
        app_id = client.post("/apply", json={
            "candidateId": "42", "candidateSnapshot": SNAPSHOT, "profileText": PROFILE,
        }).json()["applicationId"]

        response = client.patch(f"/applications/{app_id}/cover-letter", json={"coverLetter": "Edited by hand."})

        assert response.status_code == 200
        assert response.json()["coverLetter"] == "Edited by hand."
        assert response.json()["status"] == "demo"
        assert store.get_application(app_id).cover_letter == "Edited by hand."

    def test_unknown_application(self, client: TestClient):
        response = client.patch("/applications/nope/cover-letter", json={"coverLetter": "x"})
        assert response.status_code == 404

    def test_pending_application_is_conflict(self, client: TestClient, store):
        record = store.create_application("42")
        response = client.patch(f"/applications/{record.id}/cover-letter", json={"coverLetter": "x"})
        assert response.status_code == 409
        assert store.get_application(record.id).cover_letter is None

    def test_letter_must_be_a_string(self, client: TestClient, store):
        record = store.create_application("42")
        assert client.patch(f"/applications/{record.id}/cover-letter", json={}).status_code == 422


class TestResumes:
    @pytest.fixture
    def signed_in(self, tmp_path):
        path = tmp_path / "signed-in.yaml"
        path.write_text(yaml.safe_dump({"profiles": {"alice": {
            "access_token": "tok", "expires_at": 4_102_444_800, "selected_resume_id": "r2",
        }}}), encoding="utf-8")
        return ProfileDirectory(path)

    def client_with(self, store, queue, generator, directory, fetch):
        identity = HHIdentity(directory, fetch_resumes=fetch)
        return TestClient(create_app(store, queue, DemoSource(), generator, directory, identity))

    def test_lists_resumes_with_selection(self, store, queue, generator, signed_in):
        tokens = []

        def fetch(token):
            tokens.append(token)
            return [Resume("r1", "Go developer"), Resume("r2", "Platform engineer")]

        with self.client_with(store, queue, generator, signed_in, fetch) as c:
            data = c.get("/profiles/alice/resumes").json()

        assert tokens == ["tok"]
        assert data == {
            "items": [{"id": "r1", "title": "Go developer"}, {"id": "r2", "title": "Platform engineer"}],
            "selectedId": "r2",
        }

    def test_signed_out_profile_is_unauthorized(self, store, queue, generator, signed_in):
        with self.client_with(store, queue, generator, signed_in, lambda token: []) as c:
            assert c.get("/profiles/zed/resumes").status_code == 401

    def test_revoked_token_is_unauthorized(self, store, queue, generator, signed_in):
        def fetch(token):
            raise NotAuthenticated("hh.ru session expired or was revoked")

        with self.client_with(store, queue, generator, signed_in, fetch) as c:
            response = c.get("/profiles/alice/resumes")
        assert response.status_code == 401
        assert "expired" in response.json()["detail"]

    def test_board_failure_is_bad_gateway(self, store, queue, generator, signed_in):
        def fetch(token):
            raise SubmissionError("Could not reach hh.ru")

        with self.client_with(store, queue, generator, signed_in, fetch) as c:
            assert c.get("/profiles/alice/resumes").status_code == 502

    def test_without_sign_in_backend(self, client: TestClient):
        assert client.get("/profiles/alice/resumes").status_code == 503
