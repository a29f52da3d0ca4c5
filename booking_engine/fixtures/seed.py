"""Load the demo fixtures into an in-memory store."""

import logging

from booking_engine.adapters.memory import InMemoryBookingStore
from booking_engine.fixtures.demo_data import (
    BOOKINGS,
    CLIENTS,
    SERVICES,
    STAFF,
    STAFF_SERVICES,
    TENANTS,
)

logger = logging.getLogger(__name__)


async def seed_demo_data(store: InMemoryBookingStore) -> None:
    """Register the catalog, then write bookings through the conditional write port."""
    for tenant in TENANTS:
        store.add_tenant(tenant)
    for staff in STAFF:
        store.add_staff(staff)
    for client in CLIENTS:
        store.add_client(client)
    for service in SERVICES:
        store.add_service(service)
    for tenant_id, staff_id, service_id in STAFF_SERVICES:
        store.link_staff_service(tenant_id, staff_id, service_id)

    for booking in BOOKINGS:
        await store.upsert_if_no_overlap(
            booking.tenant_id, booking.provider_id, booking.occupied_interval, booking
        )

    logger.info(
        "Seeded %d tenants, %d staff, %d services, %d bookings",
        len(TENANTS), len(STAFF), len(SERVICES), len(BOOKINGS),
    )
