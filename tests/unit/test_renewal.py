"""Tests for the renewal policy."""

from datetime import datetime, timedelta, timezone

import pytest

from certsync.renewal import (
    RenewalReason,
    days_until_expiration,
    decide,
    format_expiration_status,
)

NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class TestDaysUntilExpiration:
    """Tests for days_until_expiration."""

    def test_whole_days(self):
        """Test exact day offsets."""
        assert days_until_expiration(NOW + timedelta(days=100), NOW) == 100

    def test_partial_day_rounds_up(self):
        """Test that a partial day counts as a full day."""
        assert days_until_expiration(NOW + timedelta(days=9, hours=1), NOW) == 10

    def test_expired_is_negative(self):
        """Test that an expired certificate yields negative days."""
        assert days_until_expiration(NOW - timedelta(days=3), NOW) == -3

    def test_naive_datetime_is_utc(self):
        """Test that naive datetimes are treated as UTC."""
        naive = (NOW + timedelta(days=5)).replace(tzinfo=None)
        assert days_until_expiration(naive, NOW) == 5


class TestDecide:
    """Tests for the renewal decision."""

    @pytest.mark.parametrize(
        "days_left,should_renew,reason",
        [
            (100, False, RenewalReason.VALID),
            (91, False, RenewalReason.VALID),
            (90, True, RenewalReason.APPROACHING_EXPIRATION),
            (20, True, RenewalReason.APPROACHING_EXPIRATION),
            (0, True, RenewalReason.APPROACHING_EXPIRATION),
            (-5, True, RenewalReason.APPROACHING_EXPIRATION),
        ],
    )
    def test_threshold(self, days_left, should_renew, reason):
        """Test decisions around the 90 day threshold."""
        decision = decide(NOW + timedelta(days=days_left), now=NOW)

        assert decision.should_renew is should_renew
        assert decision.reason == reason
        assert decision.days_until_expiration == days_left

    def test_force_renews_valid_certificate(self):
        """Test that force renewal overrides the threshold and still reports days."""
        decision = decide(NOW + timedelta(days=300), force_renew=True, now=NOW)

        assert decision.should_renew is True
        assert decision.reason == RenewalReason.FORCE_RENEWAL
        assert decision.days_until_expiration == 300

    def test_custom_threshold(self):
        """Test a non-default threshold."""
        decision = decide(NOW + timedelta(days=20), renewal_threshold_days=14, now=NOW)

        assert decision.should_renew is False
        assert decision.reason == RenewalReason.VALID

    def test_pure(self):
        """Test that identical inputs give identical decisions."""
        expires_on = NOW + timedelta(days=42)
        assert decide(expires_on, now=NOW) == decide(expires_on, now=NOW)


class TestFormatExpirationStatus:
    """Tests for format_expiration_status."""

    def test_expired(self):
        assert format_expiration_status(-2, 90) == "EXPIRED (2 days ago)"

    def test_today(self):
        assert format_expiration_status(0, 90) == "EXPIRES TODAY"

    def test_expiring(self):
        assert format_expiration_status(1, 90) == "EXPIRING in 1 day"
        assert format_expiration_status(30, 90) == "EXPIRING in 30 days"

    def test_valid(self):
        assert format_expiration_status(120, 90) == "Valid (120 days remaining)"
