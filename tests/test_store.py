"""
Tests for the CSV-backed swipe and application store.
"""

import threading

import pytest

from jobswipe.models import ApplicationStatus, Direction
from jobswipe.store import Store


class TestSwipes:
    def test_record_swipe_is_idempotent(self, store):
        _, created = store.record_swipe("p1", "42", Direction.ACCEPT)
        _, again = store.record_swipe("p1", "42", Direction.ACCEPT)

        assert created is True
        assert again is False
        assert store.decided_ids("p1") == {"42"}

    def test_decided_ids_are_per_profile(self, store):
        store.record_swipe("p1", "1", Direction.ACCEPT)
        store.record_swipe("p2", "2", Direction.REJECT)
        store.record_swipe("", "3", Direction.REJECT)

        assert store.decided_ids("p1") == {"1"}
        assert store.decided_ids("p2") == {"2"}

    def test_data_survives_a_new_store(self, tmp_path):
        Store(tmp_path).record_swipe("p1", "7", Direction.REJECT)
        assert Store(tmp_path).decided_ids("p1") == {"7"}


class TestApplications:
    def test_created_pending(self, store):
        record = store.create_application("42", profile_id="p1", title="Backend Engineer", company="Acme")
        loaded = store.get_application(record.id)

        assert loaded.status is ApplicationStatus.PENDING
        assert loaded.candidate_id == "42"
        assert loaded.title == "Backend Engineer"
        assert loaded.cover_letter is None

    def test_single_terminal_transition(self, store):
        record = store.create_application("42")

        assert store.finish_application(record.id, ApplicationStatus.DEMO) is True
        assert store.finish_application(record.id, ApplicationStatus.FAILED, error_reason="late") is False
        loaded = store.get_application(record.id)
        assert loaded.status is ApplicationStatus.DEMO
        assert loaded.error_reason is None

    def test_finish_requires_terminal_status(self, store):
        record = store.create_application("42")
        with pytest.raises(ValueError):
            store.finish_application(record.id, ApplicationStatus.PENDING)

    def test_cover_letter_only_while_pending(self, store):
        record = store.create_application("42")
        assert store.set_cover_letter(record.id, "First letter.") is True
        store.finish_application(record.id, ApplicationStatus.SUCCESS, external_id="neg-1")
        assert store.set_cover_letter(record.id, "Second letter.") is False

        loaded = store.get_application(record.id)
        assert loaded.cover_letter == "First letter."
        assert loaded.external_id == "neg-1"

    def test_cover_letter_with_commas_and_quotes_round_trips(self, store):
        record = store.create_application("42")
        text = 'I said "yes", then shipped it, twice.'
        store.set_cover_letter(record.id, text)
        assert store.get_application(record.id).cover_letter == text

    def test_unknown_id(self, store):
        assert store.get_application("missing") is None
        assert store.finish_application("missing", ApplicationStatus.FAILED) is False

    def test_list_newest_first_and_filtered(self, store):
        a = store.create_application("1", profile_id="p1")
        b = store.create_application("2", profile_id="p1")
        store.create_application("3", profile_id="p2")

        assert [r.id for r in store.list_applications("p1")] == [b.id, a.id]
        assert len(store.list_applications()) == 3

    def test_find_active_ignores_failed(self, store):
        failed = store.create_application("42", profile_id="p1")
        store.finish_application(failed.id, ApplicationStatus.FAILED, error_reason="x")
        assert store.find_active_application("p1", "42") is None

        active = store.create_application("42", profile_id="p1")
        assert store.find_active_application("p1", "42").id == active.id

    def test_find_active_with_status_filter(self, store):
        demo = store.create_application("42", profile_id="p1")
        store.finish_application(demo.id, ApplicationStatus.DEMO)
        live = (ApplicationStatus.PENDING, ApplicationStatus.SUCCESS)

        assert store.find_active_application("p1", "42").id == demo.id
        assert store.find_active_application("p1", "42", statuses=live) is None

    def test_pending_applications_oldest_first(self, store):
        a = store.create_application("1")
        done = store.create_application("2")
        b = store.create_application("3")
        store.finish_application(done.id, ApplicationStatus.DEMO)

        assert [r.id for r in store.pending_applications()] == [a.id, b.id]

    def test_user_edit_of_finished_letter(self, store):
        record = store.create_application("42")
        assert store.update_cover_letter(record.id, "Too early.") is False

        store.set_cover_letter(record.id, "Generated.")
        store.finish_application(record.id, ApplicationStatus.DEMO)
        assert store.update_cover_letter(record.id, "Edited.") is True

        loaded = store.get_application(record.id)
        assert loaded.cover_letter == "Edited."
        assert loaded.status is ApplicationStatus.DEMO
        assert store.update_cover_letter("missing", "x") is False

    def test_concurrent_finishes_allow_one_winner(self, store):
        record = store.create_application("42")
        results = []
        barrier = threading.Barrier(8)

        def finish(status):
            barrier.wait()
            results.append(store.finish_application(record.id, status))

        threads = [
            threading.Thread(target=finish, args=(ApplicationStatus.SUCCESS if i % 2 else ApplicationStatus.FAILED,))
            for i in range(8)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert store.get_application(record.id).status.terminal
