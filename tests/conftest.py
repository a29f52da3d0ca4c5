"""Shared test fixtures and helpers."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import pytest

from booking_engine.adapters.memory import InMemoryBookingStore
from booking_engine.config import EngineConfig
from booking_engine.scheduling.lifecycle import BookingLifecycle
from booking_engine.scheduling.resolver import ConflictResolver
from booking_engine.schemas.booking_schema import Booking, BookingRequest, BookingStatus
from booking_engine.schemas.tenant_schema import Client, Service, StaffMember, Tenant

NOW = datetime(2025, 3, 10, 8, 0, tzinfo=timezone.utc)

TENANT_ID = "tenant-salon"
OTHER_TENANT_ID = "tenant-spa"
STAFF_ID = "staff-s"
OTHER_STAFF_ID = "staff-t"
CLIENT_ID = "client-c"
HAIRCUT_ID = "svc-haircut"
COLORING_ID = "svc-coloring"

TENANT = Tenant(
    id=TENANT_ID, name="Salon", slug="salon",
    lead_time_min=60, max_advance_days=60, auto_approve=True,
)
MANUAL_TENANT = Tenant(
    id=OTHER_TENANT_ID, name="Spa", slug="spa",
    lead_time_min=60, max_advance_days=60, auto_approve=False,
)

STAFF = StaffMember(id=STAFF_ID, tenant_id=TENANT_ID, name="S")
OTHER_STAFF = StaffMember(id=OTHER_STAFF_ID, tenant_id=TENANT_ID, name="T")
CLIENT = Client(id=CLIENT_ID, tenant_id=TENANT_ID, name="C")

# 45 min + 15/15 buffers => 75 min occupied span
HAIRCUT = Service(
    id=HAIRCUT_ID, tenant_id=TENANT_ID, name="Haircut",
    duration_min=45, price=Decimal("25"), buffer_before=15, buffer_after=15,
)
COLORING = Service(
    id=COLORING_ID, tenant_id=TENANT_ID, name="Coloring", duration_min=90, price=Decimal("70"),
)


def at(hour: int, minute: int = 0, day: int = 11) -> datetime:
    """An instant on 2025-03-<day> in UTC."""
    return datetime(2025, 3, day, hour, minute, tzinfo=timezone.utc)


def make_request(
    starts_at: datetime,
    staff_id: str = STAFF_ID,
    service_id: str = HAIRCUT_ID,
    tenant_id: str = TENANT_ID,
    client_id: str = CLIENT_ID,
) -> BookingRequest:
    return BookingRequest(
        tenant_id=tenant_id,
        client_id=client_id,
        staff_id=staff_id,
        service_id=service_id,
        starts_at=starts_at,
    )


def make_booking(
    starts_at: datetime,
    booking_id: str = "bk-existing",
    status: BookingStatus = BookingStatus.CONFIRMED,
    service: Service = HAIRCUT,
    staff_id: str = STAFF_ID,
    request_id: Optional[str] = None,
    tenant_id: str = TENANT_ID,
) -> Booking:
    """Helper to create a Booking whose buffers are snapshotted from ``service``."""
    return Booking(
        id=booking_id,
        tenant_id=tenant_id,
        client_id=CLIENT_ID,
        provider_id=staff_id,
        service_id=service.id,
        starts_at=starts_at,
        ends_at=starts_at + timedelta(minutes=service.duration_min),
        status=status,
        price=service.price,
        request_id=request_id or f"req-{booking_id}",
        buffer_before_min=service.buffer_before,
        buffer_after_min=service.buffer_after,
    )


async def store_booking(store: InMemoryBookingStore, booking: Booking) -> Booking:
    return await store.upsert_if_no_overlap(
        booking.tenant_id, booking.provider_id, booking.occupied_interval, booking
    )


def build_store(**kwargs) -> InMemoryBookingStore:
    store = InMemoryBookingStore(**kwargs)
    store.add_tenant(TENANT)
    store.add_tenant(MANUAL_TENANT)
    for staff in (STAFF, OTHER_STAFF):
        store.add_staff(staff)
    store.add_client(CLIENT)
    store.add_service(HAIRCUT)
    store.add_service(COLORING)
    store.link_staff_service(TENANT_ID, STAFF_ID, HAIRCUT_ID)
    store.link_staff_service(TENANT_ID, OTHER_STAFF_ID, HAIRCUT_ID)
    return store


def build_resolver(store, reader=None, **kwargs) -> ConflictResolver:
    config = kwargs.pop("config", None) or EngineConfig(
        validation_timeout_sec=1.0,
        max_alternatives=3,
        suggestion_step_min=15,
        suggestion_horizon_hours=4,
        next_available_search_days=7,
    )
    return ConflictResolver(
        reader or store, store, store, store, store,
        config=config,
        clock=lambda: NOW,
        **kwargs,
    )


@pytest.fixture
def store():
    return build_store()


@pytest.fixture
def resolver(store):
    return build_resolver(store)


@pytest.fixture
def lifecycle():
    return BookingLifecycle()
