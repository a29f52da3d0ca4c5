"""Tenant booking-window policy.

A start time is bookable when it is at least ``lead_time_min`` minutes
away and no more than ``max_advance_days`` days away. Both bounds are
inclusive.
"""

from datetime import datetime, timedelta

from booking_engine.schemas.decision_schema import WindowBound
from booking_engine.schemas.tenant_schema import TenantPolicy
from booking_engine.utils import ensure_aware


class PolicyViolation(Exception):
    """Raised when a start time falls outside the tenant's bookable window."""

    def __init__(self, bound: WindowBound, earliest: datetime, latest: datetime) -> None:
        self.bound = bound
        self.earliest = earliest
        self.latest = latest
        if bound == WindowBound.TOO_SOON:
            detail = f"earliest bookable start is {earliest.isoformat()}"
        else:
            detail = f"latest bookable start is {latest.isoformat()}"
        super().__init__(f"Start time is {bound.value.replace('_', ' ')}: {detail}")


def bookable_window(policy: TenantPolicy, now: datetime) -> tuple[datetime, datetime]:
    """Return the inclusive ``(earliest, latest)`` start times allowed at ``now``."""
    now = ensure_aware(now)
    earliest = now + timedelta(minutes=policy.lead_time_min)
    latest = now + timedelta(days=policy.max_advance_days)
    return earliest, latest


def check_bookable_window(policy: TenantPolicy, now: datetime, starts_at: datetime) -> None:
    """
    Enforce the tenant's lead time and advance limit.

    Raises:
        PolicyViolation: with ``bound`` set to TOO_SOON or TOO_FAR.
    """
    earliest, latest = bookable_window(policy, now)
    starts_at = ensure_aware(starts_at)
    if starts_at < earliest:
        raise PolicyViolation(WindowBound.TOO_SOON, earliest, latest)
    if starts_at > latest:
        raise PolicyViolation(WindowBound.TOO_FAR, earliest, latest)


def is_within_bookable_window(policy: TenantPolicy, now: datetime, starts_at: datetime) -> bool:
    try:
        check_bookable_window(policy, now, starts_at)
    except PolicyViolation:
        return False
    return True
