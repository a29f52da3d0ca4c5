"""Booking records, requests and the intervals they occupy."""

from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from booking_engine.utils import ensure_aware


class BookingStatus(str, Enum):
    """Every status a booking record can carry."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    SUGGESTED = "SUGGESTED"
    CONFIRMED = "CONFIRMED"
    CANCELLED_BY_CLIENT = "CANCELLED_BY_CLIENT"
    CANCELLED_BY_PROVIDER = "CANCELLED_BY_PROVIDER"
    RESCHEDULED = "RESCHEDULED"


# Statuses that block a staff member's calendar.
OCCUPYING_STATUSES = frozenset({BookingStatus.APPROVED, BookingStatus.CONFIRMED})

# Statuses whose writes must not land on top of an occupying booking.
LIVE_STATUSES = frozenset(
    {BookingStatus.PENDING, BookingStatus.APPROVED, BookingStatus.CONFIRMED}
)


class TimeInterval(BaseModel):
    """Half-open span of time ``[start, end)``."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _ordered_and_aware(self) -> "TimeInterval":
        ensure_aware(self.start)
        ensure_aware(self.end)
        if self.end <= self.start:
            raise ValueError(
                f"Interval end {self.end.isoformat()} must be after start {self.start.isoformat()}"
            )
        return self

    def overlaps(self, other: "TimeInterval") -> bool:
        # Back-to-back intervals (self.end == other.start) do not overlap.
        return self.start < other.end and other.start < self.end

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


class OccupiedInterval(TimeInterval):
    """A time span blocked on a staff calendar by a specific booking."""

    booking_id: str


class BookingRequest(BaseModel):
    """A client's request for a service with a staff member at a start time."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str
    client_id: str
    staff_id: str
    service_id: str
    starts_at: datetime

    @field_validator("starts_at")
    @classmethod
    def _aware_start(cls, value: datetime) -> datetime:
        return ensure_aware(value)


class Booking(BaseModel):
    """A persisted booking.

    ``price`` and the buffer minutes are snapshots taken when the booking
    was created, decoupled from later edits to the service.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    tenant_id: str
    client_id: str
    provider_id: str
    service_id: str
    starts_at: datetime
    ends_at: datetime
    status: BookingStatus
    price: Decimal = Field(default=Decimal("0"), ge=0)
    request_id: str
    buffer_before_min: int = Field(default=0, ge=0)
    buffer_after_min: int = Field(default=0, ge=0)
    created_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _ordered_and_aware(self) -> "Booking":
        ensure_aware(self.starts_at)
        ensure_aware(self.ends_at)
        if self.ends_at <= self.starts_at:
            raise ValueError(f"Booking {self.id} ends before it starts")
        return self

    @property
    def occupied_interval(self) -> OccupiedInterval:
        return OccupiedInterval(
            start=self.starts_at - timedelta(minutes=self.buffer_before_min),
            end=self.ends_at + timedelta(minutes=self.buffer_after_min),
            booking_id=self.id,
        )

    @property
    def is_occupying(self) -> bool:
        return self.status in OCCUPYING_STATUSES

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES
