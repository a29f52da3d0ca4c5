"""
Abstract ports the booking engine depends on.

The engine never talks to a database directly. Any store can back it as
long as ``BookingWritePort.upsert_if_no_overlap`` is atomic for concurrent
callers on the same (tenant, staff) pair, e.g. through an exclusion
constraint on the occupied interval.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from booking_engine.schemas.booking_schema import Booking, BookingStatus, TimeInterval
from booking_engine.schemas.tenant_schema import Client, Service, StaffMember, TenantPolicy


class OverlapDetected(Exception):
    """Raised by the write port when the candidate lands on an occupying booking."""

    def __init__(self, conflicting: Booking) -> None:
        self.conflicting = conflicting
        super().__init__(
            f"Interval overlaps booking {conflicting.id} "
            f"for staff {conflicting.provider_id}"
        )


class DuplicateRequest(Exception):
    """Raised by the write port when the request id already produced a booking."""

    def __init__(self, existing: Booking) -> None:
        self.existing = existing
        super().__init__(
            f"Request {existing.request_id} already created booking {existing.id}"
        )


class StaleStatus(Exception):
    """Raised by the write port when a booking changed status since it was read."""

    def __init__(self, current: Booking, expected: BookingStatus) -> None:
        self.current = current
        self.expected = expected
        super().__init__(
            f"Booking {current.id} is {current.status.value}, expected {expected.value}"
        )


class BookingNotFound(LookupError):
    """Raised when a booking id does not exist within the tenant."""

    def __init__(self, tenant_id: str, booking_id: str) -> None:
        self.tenant_id = tenant_id
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} not found in tenant {tenant_id}")


class BookingReadPort(ABC):
    """Read access to persisted bookings."""

    @abstractmethod
    async def list_occupying(
        self, tenant_id: str, staff_id: str, start: datetime, end: datetime
    ) -> list[Booking]:
        """Return APPROVED/CONFIRMED bookings for the staff whose occupied
        interval intersects ``[start, end)``, ordered by start."""

    @abstractmethod
    async def get_by_request_id(self, tenant_id: str, request_id: str) -> Optional[Booking]:
        """Return the booking created for this idempotency key, if any."""

    @abstractmethod
    async def get(self, tenant_id: str, booking_id: str) -> Optional[Booking]:
        """Return a single booking scoped to the tenant."""


class BookingWritePort(ABC):
    """Conditional writes of booking records."""

    @abstractmethod
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
        """Insert or replace ``record`` atomically.

        When ``record`` is live (PENDING/APPROVED/CONFIRMED) the write only
        succeeds if no other APPROVED/CONFIRMED booking of the staff
        overlaps ``interval``. ``supersedes`` is written in the same commit
        and is not counted as a conflict.

        ``expected_status`` / ``supersedes_expected_status`` make the write a
        compare-and-swap: the stored copy of ``record`` / ``supersedes``
        must still carry that status. The commit must be serialized against
        writes for both the record's staff and the superseded booking's staff.

        Raises:
            StaleStatus: a stored status no longer matches the expected one.
            BookingNotFound: an expected status was given for a missing booking.
            OverlapDetected: an occupying booking overlaps ``interval``.
            DuplicateRequest: another booking already owns ``record.request_id``.
        """


class TenantPolicyReadPort(ABC):
    @abstractmethod
    async def get_policy(self, tenant_id: str) -> Optional[TenantPolicy]:
        """Return the policy of an active tenant, or None."""


class StaffServiceEligibilityPort(ABC):
    @abstractmethod
    async def is_eligible(self, tenant_id: str, staff_id: str, service_id: str) -> bool:
        """Whether a staff–service link exists within the tenant."""


class CatalogReadPort(ABC):
    """Tenant-scoped lookups of the entities a booking references."""

    @abstractmethod
    async def get_service(self, tenant_id: str, service_id: str) -> Optional[Service]:
        pass

    @abstractmethod
    async def get_staff(self, tenant_id: str, staff_id: str) -> Optional[StaffMember]:
        pass

    @abstractmethod
    async def get_client(self, tenant_id: str, client_id: str) -> Optional[Client]:
        pass
