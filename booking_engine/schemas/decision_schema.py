"""Validation outcomes and booking decisions.

Both are closed tagged unions: callers branch on ``code`` / ``kind``
instead of catching exceptions.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from booking_engine.schemas.booking_schema import Booking, TimeInterval


class WindowBound(str, Enum):
    """Which edge of the bookable window a start time fell outside of."""

    TOO_SOON = "too_soon"
    TOO_FAR = "too_far"


class _Failure(BaseModel):
    model_config = ConfigDict(frozen=True)


class CrossTenantReference(_Failure):
    code: Literal["cross_tenant_reference"] = "cross_tenant_reference"
    entity: str
    entity_id: str
    expected_tenant_id: str
    actual_tenant_id: str


class InvalidReference(_Failure):
    code: Literal["invalid_reference"] = "invalid_reference"
    entity: str
    entity_id: str


class StaffNotQualified(_Failure):
    code: Literal["staff_not_qualified"] = "staff_not_qualified"
    staff_id: str
    service_id: str


class OutsidePolicyWindow(_Failure):
    code: Literal["outside_policy_window"] = "outside_policy_window"
    reason: WindowBound
    earliest: datetime
    latest: datetime


class SlotConflict(_Failure):
    code: Literal["slot_conflict"] = "slot_conflict"
    conflicting_booking_id: str


ValidationFailure = Annotated[
    Union[
        CrossTenantReference,
        InvalidReference,
        StaffNotQualified,
        OutsidePolicyWindow,
        SlotConflict,
    ],
    Field(discriminator="code"),
]


class ValidationOutcome(BaseModel):
    """Result of a single SlotValidator pass."""

    model_config = ConfigDict(frozen=True)

    failure: Optional[ValidationFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class Accepted(BaseModel):
    """The booking was committed (or already existed for this request id)."""

    kind: Literal["accepted"] = "accepted"
    booking: Booking
    replayed: bool = False
    replaced: Optional[Booking] = None


class Rejected(BaseModel):
    """The request can never succeed as submitted."""

    kind: Literal["rejected"] = "rejected"
    reason: ValidationFailure
    message: str = ""


class Suggested(BaseModel):
    """The slot is taken; these nearby slots passed validation instead."""

    kind: Literal["suggested"] = "suggested"
    reason: Optional[ValidationFailure] = None
    alternatives: list[TimeInterval] = Field(default_factory=list)
    message: str = ""


class TimedOut(BaseModel):
    """Lookups did not finish within the budget; safe to retry with backoff."""

    kind: Literal["timed_out"] = "timed_out"
    stage: str
    budget_sec: float


BookingDecision = Annotated[
    Union[Accepted, Rejected, Suggested, TimedOut],
    Field(discriminator="kind"),
]


def http_status_for(decision: Union[Accepted, Rejected, Suggested, TimedOut]) -> int:
    """Map a decision onto the HTTP status an API layer should answer with."""
    if isinstance(decision, Accepted):
        return 200 if decision.replayed else 201
    if isinstance(decision, Suggested):
        return 200
    if isinstance(decision, TimedOut):
        return 503
    if isinstance(decision.reason, SlotConflict):
        return 409
    return 422
