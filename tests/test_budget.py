"""Unit tests for the per-request search call budget."""

import pytest

from revintel.intelligence.budget import CallBudgetTracker


class TestCallBudgetTracker:
    """Test call counting against the cap."""

    def test_fresh_tracker_has_full_budget(self):
        tracker = CallBudgetTracker(3)

        assert tracker.can_make_call() is True
        assert tracker.get_call_count() == 0
        assert tracker.get_remaining_calls() == 3

    def test_budget_exhausts_at_cap(self):
        """Exactly max_calls calls are allowed before the check turns false."""
        tracker = CallBudgetTracker(2)

        tracker.record_call()
        assert tracker.can_make_call() is True
        tracker.record_call()

        assert tracker.can_make_call() is False
        assert tracker.exhausted is True
        assert tracker.get_remaining_calls() == 0

    def test_can_make_call_does_not_spend(self):
        tracker = CallBudgetTracker(1)

        for _ in range(5):
            tracker.can_make_call()

        assert tracker.get_call_count() == 0

    def test_record_call_past_cap_still_counts(self):
        """Overdraw is counted, never raised, and shows as negative remaining calls."""
        tracker = CallBudgetTracker(1)

        tracker.record_call()
        tracker.record_call()

        assert tracker.get_call_count() == 2
        assert tracker.get_remaining_calls() == -1
        assert tracker.status["remaining"] == -1

    def test_zero_budget_allows_no_calls(self):
        tracker = CallBudgetTracker(0)

        assert tracker.can_make_call() is False
        assert tracker.status == {"max_calls": 0, "call_count": 0, "remaining": 0}

    def test_negative_budget_rejected(self):
        with pytest.raises(ValueError):
            CallBudgetTracker(-1)

    def test_trackers_are_independent(self):
        first = CallBudgetTracker(2)
        second = CallBudgetTracker(2)

        first.record_call()

        assert first.get_call_count() == 1
        assert second.get_call_count() == 0
