"""Tests for the bounded per-user stage history."""

import threading

from journey_backend.history import JourneyHistory


class TestJourneyHistory:

    def test_unknown_user_has_no_history(self):
        assert JourneyHistory().stages("nobody") == ()

    def test_appends_in_order(self):
        history = JourneyHistory()
        for stage in ("crisis", "stabilization", "growth"):
            history.append("u1", stage)
        assert history.stages("u1") == ("crisis", "stabilization", "growth")
        assert "u1" in history

    def test_per_user_ring_buffer(self):
        history = JourneyHistory(max_stages=3)
        for stage in ("crisis", "stabilization", "growth", "community_healing", "advocacy"):
            history.append("u1", stage)
        assert history.stages("u1") == ("growth", "community_healing", "advocacy")

    def test_least_recently_active_user_is_evicted(self):
        history = JourneyHistory(max_users=2)
        history.append("a", "growth")
        history.append("b", "growth")
        history.append("a", "advocacy")
        history.append("c", "crisis")
        assert len(history) == 2
        assert "b" not in history
        assert history.stages("a") == ("growth", "advocacy")

    def test_concurrent_appends_are_not_lost(self):
        history = JourneyHistory(max_stages=1000)

        def worker():
            for _ in range(100):
                history.append("shared", "growth")

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(history.stages("shared")) == 800
