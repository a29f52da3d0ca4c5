from booking_engine.schemas.booking_schema import (
    Booking,
    BookingRequest,
    BookingStatus,
    OccupiedInterval,
    TimeInterval,
)
from booking_engine.schemas.decision_schema import (
    Accepted,
    BookingDecision,
    Rejected,
    Suggested,
    TimedOut,
    ValidationFailure,
    ValidationOutcome,
    WindowBound,
)
from booking_engine.schemas.tenant_schema import (
    Client,
    Service,
    StaffMember,
    Tenant,
    TenantPolicy,
)

__all__ = [
    "Accepted",
    "Booking",
    "BookingDecision",
    "BookingRequest",
    "BookingStatus",
    "Client",
    "OccupiedInterval",
    "Rejected",
    "Service",
    "StaffMember",
    "Suggested",
    "Tenant",
    "TenantPolicy",
    "TimeInterval",
    "TimedOut",
    "ValidationFailure",
    "ValidationOutcome",
    "WindowBound",
]
