from booking_engine.scheduling.availability import AvailabilityIndex, find_conflict
from booking_engine.scheduling.lifecycle import (
    Actor,
    ActorNotPermitted,
    BookingLifecycle,
    IllegalTransition,
)
from booking_engine.scheduling.policy import (
    PolicyViolation,
    check_bookable_window,
    is_within_bookable_window,
)
from booking_engine.scheduling.resolver import ConflictResolver
from booking_engine.scheduling.validator import SlotValidator

__all__ = [
    "Actor",
    "ActorNotPermitted",
    "AvailabilityIndex",
    "BookingLifecycle",
    "ConflictResolver",
    "IllegalTransition",
    "PolicyViolation",
    "SlotValidator",
    "check_bookable_window",
    "find_conflict",
    "is_within_bookable_window",
]
