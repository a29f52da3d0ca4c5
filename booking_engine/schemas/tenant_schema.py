"""Tenant, staff, service and client records.

Every record is scoped to exactly one tenant through ``tenant_id``.
"""

from decimal import Decimal
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

ACTIVE_STATUS = "active"


class TenantPolicy(BaseModel):
    """Scheduling constraints a tenant applies to every booking request."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str
    lead_time_min: int = Field(ge=0)
    max_advance_days: int = Field(gt=0)
    auto_approve: bool = True
    time_zone: str = "UTC"
    validation_timeout_sec: Optional[float] = Field(default=None, gt=0)

    @field_validator("time_zone")
    @classmethod
    def _known_time_zone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown time zone: {value!r}") from None
        return value


class Tenant(BaseModel):
    """An isolated customer organization."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    slug: str
    plan: str = "basic"
    status: str = ACTIVE_STATUS
    time_zone: str = "UTC"
    lead_time_min: int = Field(default=0, ge=0)
    max_advance_days: int = Field(default=60, gt=0)
    auto_approve: bool = True

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE_STATUS

    def policy(self) -> TenantPolicy:
        return TenantPolicy(
            tenant_id=self.id,
            lead_time_min=self.lead_time_min,
            max_advance_days=self.max_advance_days,
            auto_approve=self.auto_approve,
            time_zone=self.time_zone,
        )


class StaffMember(BaseModel):
    """A provider whose calendar bookings occupy."""

    model_config = ConfigDict(frozen=True)

    id: str
    tenant_id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


class Service(BaseModel):
    """A bookable service and the calendar time it consumes."""

    model_config = ConfigDict(frozen=True)

    id: str
    tenant_id: str
    name: str
    duration_min: int = Field(gt=0)
    price: Decimal = Field(default=Decimal("0"), ge=0)
    buffer_before: int = Field(default=0, ge=0)
    buffer_after: int = Field(default=0, ge=0)
    category: Optional[str] = None
    description: Optional[str] = None


class Client(BaseModel):
    """A tenant's customer, optionally linked to a user account."""

    model_config = ConfigDict(frozen=True)

    id: str
    tenant_id: str
    name: str
    user_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None
