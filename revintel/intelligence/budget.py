"""Per-request cap on external search calls."""

from __future__ import annotations

from typing import Any, Dict


class CallBudgetTracker:
    """
    Count search calls against a fixed cap.

    ``can_make_call`` is a pure check. ``record_call`` always increments, so
    callers decide whether to spend; the tracker never raises on overdraw.
    One tracker belongs to one request and is never shared.
    """

    def __init__(self, max_calls: int):
        if max_calls < 0:
            raise ValueError("max_calls must be >= 0")
        self.max_calls = max_calls
        self.call_count = 0

    def can_make_call(self) -> bool:
        return self.call_count < self.max_calls

    def record_call(self) -> None:
        self.call_count += 1

    def get_call_count(self) -> int:
        return self.call_count

    def get_remaining_calls(self) -> int:
        """Calls left under the cap; negative once the tracker is overdrawn."""
        return self.max_calls - self.call_count

    @property
    def exhausted(self) -> bool:
        return not self.can_make_call()

    @property
    def status(self) -> Dict[str, Any]:
        """Get current budget status."""
        return {
            "max_calls": self.max_calls,
            "call_count": self.call_count,
            "remaining": self.get_remaining_calls(),
        }
