"""Unit tests for rolling spending windows."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from hypothesis import given, settings
from hypothesis import strategies as st

from autobot.scheduler.executor import allowed_windows, within_spending_limit
from autobot.tasks import SpendingLimit

CREATED = datetime(2026, 1, 1, tzinfo=timezone.utc)


def test_first_window_open_at_creation() -> None:
    assert allowed_windows(CREATED, 1.0, CREATED) == 1


def test_window_count_rounds_up() -> None:
    assert allowed_windows(CREATED, 1.0, CREATED + timedelta(minutes=30)) == 1
    assert allowed_windows(CREATED, 1.0, CREATED + timedelta(minutes=90)) == 2
    assert allowed_windows(CREATED, 24.0, CREATED + timedelta(hours=49)) == 3


def test_limit_blocks_inside_first_window_and_allows_later() -> None:
    limit = SpendingLimit(max_per_window=5, window_hours=1)
    assert within_spending_limit(limit, 6.0, CREATED, CREATED + timedelta(minutes=30)) is False
    assert within_spending_limit(limit, 6.0, CREATED, CREATED + timedelta(minutes=90)) is True


def test_limit_is_strictly_below_cap() -> None:
    limit = SpendingLimit(max_per_window=5, window_hours=1)
    assert within_spending_limit(limit, 5.0, CREATED, CREATED + timedelta(minutes=10)) is False
    assert within_spending_limit(limit, 4.99, CREATED, CREATED + timedelta(minutes=10)) is True


@given(
    hours=st.floats(min_value=0.0, max_value=10_000.0, allow_nan=False),
    window=st.floats(min_value=0.01, max_value=500.0, allow_nan=False),
)
@settings(deadline=None)
def test_windows_never_below_one_and_monotonic(hours: float, window: float) -> None:
    now = CREATED + timedelta(hours=hours)
    later = now + timedelta(hours=window)
    assert allowed_windows(CREATED, window, now) >= 1
    assert allowed_windows(CREATED, window, later) >= allowed_windows(CREATED, window, now)
