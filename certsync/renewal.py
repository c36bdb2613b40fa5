"""
Certificate renewal policy.

Pure functions deciding whether an Origin CA certificate must be renewed.
No I/O happens here; the current time can be injected for tests.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

DEFAULT_RENEWAL_THRESHOLD_DAYS = 90
SECONDS_PER_DAY = 24 * 60 * 60


class RenewalReason(Enum):
    """Why a renewal decision was made."""
    FORCE_RENEWAL = "force-renewal"
    VALID = "valid"
    APPROACHING_EXPIRATION = "approaching-expiration"


@dataclass(frozen=True)
class RenewalDecision:
    """Outcome of the renewal policy for one certificate."""
    should_renew: bool
    reason: RenewalReason
    days_until_expiration: int


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def days_until_expiration(
    expires_on: datetime,
    now: Optional[datetime] = None,
) -> int:
    """
    Whole days until expiration, rounded up.

    Args:
        expires_on: Certificate expiration (naive values are taken as UTC)
        now: Reference time (defaults to the current UTC time)

    Returns:
        ceil((expires_on - now) / 1 day); negative once expired
    """
    now = _as_utc(now) if now else datetime.now(timezone.utc)
    delta = _as_utc(expires_on) - now
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def decide(
    expires_on: datetime,
    force_renew: bool = False,
    renewal_threshold_days: int = DEFAULT_RENEWAL_THRESHOLD_DAYS,
    now: Optional[datetime] = None,
) -> RenewalDecision:
    """
    Decide whether a certificate must be renewed.

    Rules, in order:
    1. force_renew always renews (days are still reported)
    2. more than renewal_threshold_days left: no renewal
    3. otherwise renew; an expired certificate (negative days) always lands here

    Args:
        expires_on: Certificate expiration datetime
        force_renew: Renew regardless of the remaining validity
        renewal_threshold_days: Renew once this many days or fewer remain
        now: Reference time for the calculation

    Returns:
        RenewalDecision with the reason and the remaining days
    """
    days = days_until_expiration(expires_on, now)

    if force_renew:
        return RenewalDecision(True, RenewalReason.FORCE_RENEWAL, days)

    if days > renewal_threshold_days:
        return RenewalDecision(False, RenewalReason.VALID, days)

    return RenewalDecision(True, RenewalReason.APPROACHING_EXPIRATION, days)


def format_expiration_status(days: int, threshold_days: int) -> str:
    """
    Format a human-readable expiration status.

    Args:
        days: Days until expiration
        threshold_days: Renewal threshold

    Returns:
        Formatted status string
    """
    if days < 0:
        return f"EXPIRED ({abs(days)} days ago)"
    elif days == 0:
        return "EXPIRES TODAY"
    elif days <= threshold_days:
        return f"EXPIRING in {days} day{'s' if days != 1 else ''}"
    else:
        return f"Valid ({days} days remaining)"
