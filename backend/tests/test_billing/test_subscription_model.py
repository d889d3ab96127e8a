"""Tests for the Subscription model's derived state (pure, no DB)."""

from datetime import datetime, timedelta

import pytest

from app.models.subscription import (
    Plan,
    Subscription,
    SubscriptionStatus,
    normalize_plan,
    ts_to_naive,
    utcnow,
)

NOW = datetime(2026, 3, 1, 12, 0, 0)


def _sub(status: str, trial_end: datetime | None = None, period_end: datetime | None = None) -> Subscription:
    return Subscription(
        status=status,
        plan=Plan.TRIAL,
        trial_end=trial_end or NOW + timedelta(days=7),
        current_period_end=period_end,
    )


class TestIsActive:
    """is_active() == (status == active) or (status == trialing and trial_end > now)."""

    @pytest.mark.parametrize("status", list(SubscriptionStatus))
    def test_matches_rule_for_every_status_with_open_trial(self, status):
        sub = _sub(status, trial_end=NOW + timedelta(days=1))
        expected = status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING)
        assert sub.is_active(NOW) is expected

    @pytest.mark.parametrize("status", list(SubscriptionStatus))
    def test_matches_rule_for_every_status_with_lapsed_trial(self, status):
        sub = _sub(status, trial_end=NOW - timedelta(seconds=1))
        assert sub.is_active(NOW) is (status == SubscriptionStatus.ACTIVE)

    def test_trial_ending_exactly_now_is_inactive(self):
        sub = _sub(SubscriptionStatus.TRIALING, trial_end=NOW)
        assert sub.is_active(NOW) is False

    def test_active_ignores_trial_end(self):
        sub = _sub(SubscriptionStatus.ACTIVE, trial_end=NOW - timedelta(days=30))
        assert sub.is_active(NOW) is True


class TestDaysRemaining:
    """days_remaining() counts whole days and never goes negative."""

    def test_fresh_trial_has_seven_days(self):
        sub = _sub(SubscriptionStatus.TRIALING, trial_end=NOW + timedelta(days=7))
        assert sub.days_remaining(NOW) == 7

    def test_partial_day_rounds_up(self):
        sub = _sub(SubscriptionStatus.TRIALING, trial_end=NOW + timedelta(days=2, hours=1))
        assert sub.days_remaining(NOW) == 3

    def test_trial_eight_days_later(self):
        """Trial started at T0 is inactive with 0 days left at T0 + 8d."""
        t0 = NOW
        sub = _sub(SubscriptionStatus.TRIALING, trial_end=t0 + timedelta(days=7))
        later = t0 + timedelta(days=8)
        assert sub.is_active(later) is False
        assert sub.days_remaining(later) == 0

    @pytest.mark.parametrize("days_ago", [1, 30, 365, 10_000])
    def test_past_end_clamps_to_zero(self, days_ago):
        sub = _sub(SubscriptionStatus.ACTIVE, period_end=NOW - timedelta(days=days_ago))
        assert sub.days_remaining(NOW) == 0

    def test_uses_period_end_when_not_trialing(self):
        sub = _sub(
            SubscriptionStatus.ACTIVE,
            trial_end=NOW - timedelta(days=3),
            period_end=NOW + timedelta(days=20),
        )
        assert sub.days_remaining(NOW) == 20

    def test_missing_period_end_is_zero(self):
        sub = _sub(SubscriptionStatus.PAST_DUE, period_end=None)
        assert sub.days_remaining(NOW) == 0

    def test_defaults_to_current_time(self):
        sub = _sub(SubscriptionStatus.TRIALING, trial_end=utcnow() + timedelta(days=7))
        assert sub.days_remaining() == 7


class TestNormalizePlan:
    @pytest.mark.parametrize("label", ["Premium", "premium", " PREMIUM ", "Premium Monthly"])
    def test_premium_labels(self, label):
        assert normalize_plan(label) == Plan.PREMIUM

    @pytest.mark.parametrize("label", ["trial", "basic", "pro"])
    def test_declared_values_pass_through(self, label):
        assert normalize_plan(label) == Plan(label)

    @pytest.mark.parametrize("label", [None, "", "gold"])
    def test_unknown_uses_default(self, label):
        assert normalize_plan(label) == Plan.PREMIUM
        assert normalize_plan(label, default=Plan.TRIAL) == Plan.TRIAL


class TestTimestamps:
    def test_ts_to_naive(self):
        result = ts_to_naive(1700000000)
        assert result == datetime(2023, 11, 14, 22, 13, 20)
        assert result.tzinfo is None

    def test_ts_to_naive_none(self):
        assert ts_to_naive(None) is None
