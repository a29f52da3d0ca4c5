"""
Pure slot validation.

A SlotValidator is bound to everything one booking decision needs to know
(policy, service, staff, eligibility, occupied intervals, the current
instant) and does no I/O. That makes it cheap to probe many candidate
start times, which is how alternative suggestions and next-available
search work.

Checks run in order and stop at the first failure:
    0. every referenced record belongs to the policy's tenant
    1. staff is eligible for the service
    2. start time is within the tenant's bookable window
    3. occupied interval (buffers included) overlaps nothing
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional, Sequence

from booking_engine.scheduling.availability import find_conflict
from booking_engine.scheduling.policy import PolicyViolation, check_bookable_window
from booking_engine.schemas.booking_schema import BookingRequest, OccupiedInterval, TimeInterval
from booking_engine.schemas.decision_schema import (
    CrossTenantReference,
    InvalidReference,
    OutsidePolicyWindow,
    SlotConflict,
    StaffNotQualified,
    ValidationFailure,
    ValidationOutcome,
    WindowBound,
)
from booking_engine.schemas.tenant_schema import Service, StaffMember, TenantPolicy
from booking_engine.utils import ensure_aware

logger = logging.getLogger(__name__)


def service_interval(service: Service, starts_at: datetime) -> TimeInterval:
    """The span the client is actually served: ``[start, start + duration)``."""
    return TimeInterval(start=starts_at, end=starts_at + timedelta(minutes=service.duration_min))


def occupied_span(service: Service, starts_at: datetime) -> TimeInterval:
    """The span blocked on the staff calendar, buffers included."""
    return TimeInterval(
        start=starts_at - timedelta(minutes=service.buffer_before),
        end=starts_at + timedelta(minutes=service.duration_min + service.buffer_after),
    )


class SlotValidator:
    """Checks candidate bookings against static rules and a fixed occupancy snapshot."""

    def __init__(
        self,
        policy: TenantPolicy,
        service: Service,
        staff: StaffMember,
        *,
        eligible: bool,
        occupied: Sequence[OccupiedInterval],
        now: datetime,
    ) -> None:
        self._policy = policy
        self._service = service
        self._staff = staff
        self._eligible = eligible
        self._occupied = sorted(occupied, key=lambda iv: (iv.start, iv.end))
        self._now = ensure_aware(now)

    @property
    def service(self) -> Service:
        return self._service

    def with_occupied(self, extra: Iterable[OccupiedInterval]) -> "SlotValidator":
        """Return a validator that also treats ``extra`` as occupied."""
        return SlotValidator(
            self._policy,
            self._service,
            self._staff,
            eligible=self._eligible,
            occupied=[*self._occupied, *extra],
            now=self._now,
        )

    def validate(self, request: BookingRequest) -> ValidationOutcome:
        checks: list[Callable[[BookingRequest], Optional[ValidationFailure]]] = [
            self._check_tenant_scope,
            self._check_eligibility,
            self._check_window,
            self._check_overlap,
        ]
        for check in checks:
            failure = check(request)
            if failure is not None:
                logger.debug(
                    "Slot %s rejected for staff %s: %s",
                    request.starts_at.isoformat(), request.staff_id, failure.code,
                )
                return ValidationOutcome(failure=failure)
        return ValidationOutcome()

    def probe(self, request: BookingRequest, starts_at: datetime) -> ValidationOutcome:
        """Validate ``request`` as if it asked for ``starts_at`` instead."""
        return self.validate(request.model_copy(update={"starts_at": starts_at}))

    def _check_tenant_scope(self, request: BookingRequest) -> Optional[ValidationFailure]:
        tenant_id = self._policy.tenant_id
        if request.tenant_id != tenant_id:
            return CrossTenantReference(
                entity="request",
                entity_id=request.staff_id,
                expected_tenant_id=tenant_id,
                actual_tenant_id=request.tenant_id,
            )
        for entity, record in (("service", self._service), ("staff", self._staff)):
            if record.tenant_id != tenant_id:
                return CrossTenantReference(
                    entity=entity,
                    entity_id=record.id,
                    expected_tenant_id=tenant_id,
                    actual_tenant_id=record.tenant_id,
                )
        if request.service_id != self._service.id:
            return InvalidReference(entity="service", entity_id=request.service_id)
        if request.staff_id != self._staff.id:
            return InvalidReference(entity="staff", entity_id=request.staff_id)
        return None

    def _check_eligibility(self, request: BookingRequest) -> Optional[ValidationFailure]:
        if not self._eligible:
            return StaffNotQualified(staff_id=self._staff.id, service_id=self._service.id)
        return None

    def _check_window(self, request: BookingRequest) -> Optional[ValidationFailure]:
        try:
            check_bookable_window(self._policy, self._now, request.starts_at)
        except PolicyViolation as exc:
            return OutsidePolicyWindow(reason=exc.bound, earliest=exc.earliest, latest=exc.latest)
        return None

    def _check_overlap(self, request: BookingRequest) -> Optional[ValidationFailure]:
        conflict = find_conflict(self._occupied, occupied_span(self._service, request.starts_at))
        if conflict is not None:
            return SlotConflict(conflicting_booking_id=conflict.booking_id)
        return None

    def find_next_available(
        self, request: BookingRequest, step_min: int, search_days: int
    ) -> Optional[TimeInterval]:
        """
        Return the first valid slot at or after ``request.starts_at``.

        Walks forward in ``step_min`` increments for at most ``search_days``.
        Stops early on failures no later start can fix (eligibility, tenant
        scope, or passing the advance limit).
        """
        step = timedelta(minutes=step_min)
        limit = request.starts_at + timedelta(days=search_days)
        candidate = request.starts_at
        while candidate <= limit:
            failure = self.probe(request, candidate).failure
            if failure is None:
                return service_interval(self._service, candidate)
            if isinstance(failure, OutsidePolicyWindow):
                if failure.reason == WindowBound.TOO_FAR:
                    return None
                # Jump to the first step on the grid at or after the earliest start.
                steps = -((candidate - failure.earliest) // step)
                candidate += step * max(steps, 1)
                continue
            if not isinstance(failure, SlotConflict):
                return None
            candidate += step
        return None

    def suggest_alternatives(
        self, request: BookingRequest, limit: int, step_min: int, horizon_hours: int
    ) -> list[TimeInterval]:
        """
        Probe start times around the requested one, nearest first.

        Offsets alternate later/earlier (+1 step, -1 step, +2 steps, ...)
        up to ``horizon_hours`` either side. Every returned slot passed
        ``validate`` against this validator's snapshot.
        """
        found: list[TimeInterval] = []
        if limit <= 0:
            return found
        step = timedelta(minutes=step_min)
        max_steps = (horizon_hours * 60) // step_min
        for k in range(1, max_steps + 1):
            for sign in (1, -1):
                candidate = request.starts_at + step * (sign * k)
                if self.probe(request, candidate).ok:
                    found.append(service_interval(self._service, candidate))
                    if len(found) >= limit:
                        return found
        return found
