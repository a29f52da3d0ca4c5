"""
In-memory booking store implementing every engine port.

A production deployment backs the ports with a database whose exclusion
constraint on (tenant, staff, occupied interval) provides the atomic
conditional write. This store gets the same guarantee from one
``asyncio.Lock`` per (tenant, staff) pair, so requests for different
staff members never wait on each other. A reschedule that moves a
booking to another staff member holds both locks.

``read_delay_sec`` / ``write_delay_sec`` simulate I/O latency; any value
(including 0) yields to the event loop, which is what lets concurrent
requests interleave in tests.
"""

import asyncio
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import datetime
from typing import Optional

from booking_engine.ports import (
    BookingNotFound,
    BookingReadPort,
    BookingWritePort,
    CatalogReadPort,
    DuplicateRequest,
    OverlapDetected,
    StaffServiceEligibilityPort,
    StaleStatus,
    TenantPolicyReadPort,
)
from booking_engine.schemas.booking_schema import Booking, BookingStatus, TimeInterval
from booking_engine.schemas.tenant_schema import Client, Service, StaffMember, Tenant, TenantPolicy

logger = logging.getLogger(__name__)


class InMemoryBookingStore(
    BookingReadPort,
    BookingWritePort,
    TenantPolicyReadPort,
    StaffServiceEligibilityPort,
    CatalogReadPort,
):
    def __init__(self, read_delay_sec: float = 0.0, write_delay_sec: float = 0.0) -> None:
        self.read_delay_sec = read_delay_sec
        self.write_delay_sec = write_delay_sec
        self._tenants: dict[str, Tenant] = {}
        self._policy_overrides: dict[str, TenantPolicy] = {}
        self._staff: dict[str, StaffMember] = {}
        self._services: dict[str, Service] = {}
        self._clients: dict[str, Client] = {}
        self._links: set[tuple[str, str, str]] = set()
        self._bookings: dict[tuple[str, str], Booking] = {}
        self._request_owner: dict[tuple[str, str], str] = {}
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self.write_count = 0

    # ------------------------------------------------------------------ #
    # Setup
    # ------------------------------------------------------------------ #

    def add_tenant(self, tenant: Tenant, policy: Optional[TenantPolicy] = None) -> None:
        """Register a tenant; ``policy`` overrides the one derived from its fields."""
        self._tenants[tenant.id] = tenant
        if policy is not None:
            self._policy_overrides[tenant.id] = policy

    def add_staff(self, staff: StaffMember) -> None:
        self._staff[staff.id] = staff

    def add_service(self, service: Service) -> None:
        self._services[service.id] = service

    def add_client(self, client: Client) -> None:
        self._clients[client.id] = client

    def link_staff_service(self, tenant_id: str, staff_id: str, service_id: str) -> None:
        self._links.add((tenant_id, staff_id, service_id))

    def bookings(self, tenant_id: str) -> list[Booking]:
        """All bookings of a tenant, any status, ordered by start."""
        return sorted(
            (b for (t, _), b in self._bookings.items() if t == tenant_id),
            key=lambda b: b.starts_at,
        )

    def reset(self) -> None:
        """Clear all bookings. Used by test fixtures for isolation."""
        self._bookings.clear()
        self._request_owner.clear()
        self.write_count = 0

    # ------------------------------------------------------------------ #
    # Read ports
    # ------------------------------------------------------------------ #

    async def list_occupying(
        self, tenant_id: str, staff_id: str, start: datetime, end: datetime
    ) -> list[Booking]:
        await asyncio.sleep(self.read_delay_sec)
        window = TimeInterval(start=start, end=end)
        found = [
            b for (t, _), b in self._bookings.items()
            if t == tenant_id
            and b.provider_id == staff_id
            and b.is_occupying
            and b.occupied_interval.overlaps(window)
        ]
        return sorted(found, key=lambda b: b.occupied_interval.start)

    async def get_by_request_id(self, tenant_id: str, request_id: str) -> Optional[Booking]:
        await asyncio.sleep(self.read_delay_sec)
        owner = self._request_owner.get((tenant_id, request_id))
        return self._bookings.get((tenant_id, owner)) if owner else None

    async def get(self, tenant_id: str, booking_id: str) -> Optional[Booking]:
        await asyncio.sleep(self.read_delay_sec)
        return self._bookings.get((tenant_id, booking_id))

    async def get_policy(self, tenant_id: str) -> Optional[TenantPolicy]:
        await asyncio.sleep(self.read_delay_sec)
        tenant = self._tenants.get(tenant_id)
        if tenant is None or not tenant.is_active:
            return None
        return self._policy_overrides.get(tenant_id) or tenant.policy()

    async def is_eligible(self, tenant_id: str, staff_id: str, service_id: str) -> bool:
        await asyncio.sleep(self.read_delay_sec)
        return (tenant_id, staff_id, service_id) in self._links

    async def get_service(self, tenant_id: str, service_id: str) -> Optional[Service]:
        await asyncio.sleep(self.read_delay_sec)
        return _scoped(self._services.get(service_id), tenant_id)

    async def get_staff(self, tenant_id: str, staff_id: str) -> Optional[StaffMember]:
        await asyncio.sleep(self.read_delay_sec)
        return _scoped(self._staff.get(staff_id), tenant_id)

    async def get_client(self, tenant_id: str, client_id: str) -> Optional[Client]:
        await asyncio.sleep(self.read_delay_sec)
        return _scoped(self._clients.get(client_id), tenant_id)

    # ------------------------------------------------------------------ #
    # Write port
    # ------------------------------------------------------------------ #

    def _lock_for(self, tenant_id: str, staff_id: str) -> asyncio.Lock:
        return self._locks.setdefault((tenant_id, staff_id), asyncio.Lock())

    @asynccontextmanager
    async def _locked(self, tenant_id: str, staff_ids: set[str]):
        """Hold the locks of every staff calendar a commit touches, in a fixed order."""
        async with AsyncExitStack() as stack:
            for staff_id in sorted(staff_ids):
                await stack.enter_async_context(self._lock_for(tenant_id, staff_id))
            yield

    def _check_status(self, tenant_id: str, booking_id: str, expected: BookingStatus) -> None:
        stored = self._bookings.get((tenant_id, booking_id))
        if stored is None:
            raise BookingNotFound(tenant_id, booking_id)
        if stored.status != expected:
            raise StaleStatus(stored, expected)

    async def upsert_if_no_overlap(
        self,
        tenant_id: str,
        staff_id: str,
        interval: TimeInterval,
        record: Booking,
        supersedes: Optional[Booking] = None,
        expected_status: Optional[BookingStatus] = None,
        supersedes_expected_status: Optional[BookingStatus] = None,
    ) -> Booking:
        if record.tenant_id != tenant_id or record.provider_id != staff_id:
            raise ValueError(
                f"Booking {record.id} is not scoped to tenant {tenant_id} / staff {staff_id}"
            )
        if supersedes is not None and supersedes.tenant_id != tenant_id:
            raise ValueError(f"Booking {supersedes.id} is not scoped to tenant {tenant_id}")

        staff_ids = {staff_id}
        if supersedes is not None:
            staff_ids.add(supersedes.provider_id)

        async with self._locked(tenant_id, staff_ids):
            await asyncio.sleep(self.write_delay_sec)

            owner = self._request_owner.get((tenant_id, record.request_id))
            if owner is not None and owner != record.id:
                raise DuplicateRequest(self._bookings[(tenant_id, owner)])

            if expected_status is not None:
                self._check_status(tenant_id, record.id, expected_status)
            if supersedes is not None and supersedes_expected_status is not None:
                self._check_status(tenant_id, supersedes.id, supersedes_expected_status)

            if record.is_live:
                ignored = {record.id}
                if supersedes is not None:
                    ignored.add(supersedes.id)
                for (t, booking_id), other in self._bookings.items():
                    if (
                        t == tenant_id
                        and booking_id not in ignored
                        and other.provider_id == staff_id
                        and other.is_occupying
                        and other.occupied_interval.overlaps(interval)
                    ):
                        raise OverlapDetected(other)

            if supersedes is not None:
                self._bookings[(tenant_id, supersedes.id)] = supersedes
            self._bookings[(tenant_id, record.id)] = record
            self._request_owner[(tenant_id, record.request_id)] = record.id
            self.write_count += 1
            logger.debug("Stored booking %s (%s)", record.id, record.status.value)
            return record


def _scoped(record, tenant_id: str):
    if record is None or record.tenant_id != tenant_id:
        return None
    return record
