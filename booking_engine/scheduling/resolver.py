"""
Transactional decision point for booking requests.

ConflictResolver runs validate-then-conditionally-commit:

1. Replay: a request id that already produced a booking returns it.
2. Read: policy, catalog records, eligibility and the AvailabilityIndex,
   all within the tenant's lookup budget.
3. Validate with SlotValidator (pure). Failures become Rejected, or
   Suggested when the slot is merely taken and alternatives exist.
4. Commit through ``BookingWritePort.upsert_if_no_overlap``. The store's
   atomic overlap check is the only serialization point, so two requests
   validated against the same stale snapshot cannot both commit. On
   OverlapDetected the read/validate/commit cycle runs once more; a
   second overlap yields Suggested.

The resolver is also the only component that persists status changes
(``transition``, ``reschedule``). Those writes carry the status they were
checked against; a StaleStatus from the store means re-read and re-check.
"""

import asyncio
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Union

from booking_engine.config import EngineConfig, settings
from booking_engine.logging_context import get_request_logger, set_request_id
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
from booking_engine.scheduling.availability import AvailabilityIndex
from booking_engine.scheduling.lifecycle import Actor, BookingLifecycle
from booking_engine.scheduling.validator import SlotValidator, occupied_span, service_interval
from booking_engine.schemas.booking_schema import Booking, BookingRequest, BookingStatus, TimeInterval
from booking_engine.schemas.decision_schema import (
    Accepted,
    InvalidReference,
    Rejected,
    SlotConflict,
    Suggested,
    TimedOut,
    WindowBound,
)
from booking_engine.schemas.tenant_schema import TenantPolicy
from booking_engine.utils import local_day_bounds, utc_now

logger = get_request_logger(__name__)

# One initial attempt plus one retry after OverlapDetected.
MAX_COMMIT_ATTEMPTS = 2

Decision = Union[Accepted, Rejected, Suggested, TimedOut]


@dataclass
class _Snapshot:
    """Everything read from the ports for one validation pass."""
    policy: TenantPolicy
    validator: SlotValidator


class _LookupTimeout(Exception):
    def __init__(self, stage: str, budget_sec: float) -> None:
        self.stage = stage
        self.budget_sec = budget_sec
        super().__init__(f"{stage} exceeded {budget_sec}s")


def _new_booking_id() -> str:
    return f"bk_{uuid.uuid4().hex[:20]}"


class ConflictResolver:
    """Decides whether a booking request is accepted, rejected or redirected."""

    def __init__(
        self,
        reader: BookingReadPort,
        writer: BookingWritePort,
        policies: TenantPolicyReadPort,
        eligibility: StaffServiceEligibilityPort,
        catalog: CatalogReadPort,
        config: Optional[EngineConfig] = None,
        clock: Callable[[], datetime] = utc_now,
        lifecycle: Optional[BookingLifecycle] = None,
        id_factory: Callable[[], str] = _new_booking_id,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._policies = policies
        self._eligibility = eligibility
        self._catalog = catalog
        self._config = config or settings.engine
        self._clock = clock
        self._lifecycle = lifecycle or BookingLifecycle()
        self._new_id = id_factory

    # ------------------------------------------------------------------ #
    # Booking requests
    # ------------------------------------------------------------------ #

    async def request_booking(self, request: BookingRequest, request_id: str) -> Decision:
        """Decide on ``request``; retries with the same ``request_id`` are idempotent."""
        set_request_id(request_id)
        try:
            replay = await self._replay(request.tenant_id, request_id)
        except _LookupTimeout as exc:
            return self._timed_out(exc)
        if replay is not None:
            return replay
        return await self._decide(request, request_id)

    async def reschedule(
        self,
        tenant_id: str,
        booking_id: str,
        new_starts_at: datetime,
        actor: Actor,
        request_id: str,
        staff_id: Optional[str] = None,
    ) -> Decision:
        """
        Move a booking to a new start time (and optionally a new staff member).

        The replacement is validated while ignoring the booking it replaces,
        then written together with the old booking's RESCHEDULED transition
        in a single conditional write. That write also checks the old booking
        still has the status read here; if another caller moved it first,
        the lifecycle check runs again on the fresh copy.

        Raises:
            BookingNotFound: ``booking_id`` does not exist in the tenant.
            IllegalTransition: the booking cannot be rescheduled from its status,
                including when a concurrent caller already rescheduled it.
            StaleStatus: the booking kept changing across every attempt.
        """
        set_request_id(request_id)
        try:
            replay = await self._replay(tenant_id, request_id)
        except _LookupTimeout as exc:
            return self._timed_out(exc)
        if replay is not None:
            return replay

        stale: Optional[StaleStatus] = None
        for attempt in range(1, MAX_COMMIT_ATTEMPTS + 1):
            try:
                current = await self._get_booking(tenant_id, booking_id)
            except _LookupTimeout as exc:
                return self._timed_out(exc)
            superseded = self._lifecycle.transition(current, BookingStatus.RESCHEDULED, actor)
            request = BookingRequest(
                tenant_id=tenant_id,
                client_id=current.client_id,
                staff_id=staff_id or current.provider_id,
                service_id=current.service_id,
                starts_at=new_starts_at,
            )
            try:
                return await self._decide(
                    request, request_id, superseded=superseded, superseded_from=current.status
                )
            except StaleStatus as exc:
                stale = exc
                logger.warning(
                    "Booking %s moved to %s during reschedule (attempt %d/%d)",
                    booking_id, exc.current.status.value, attempt, MAX_COMMIT_ATTEMPTS,
                )
        raise stale

    async def next_available_slot(self, request: BookingRequest) -> Optional[TimeInterval]:
        """Return the first bookable slot at or after ``request.starts_at``, if any.

        Raises:
            TimeoutError: lookups exceeded the budget, as opposed to "no slot".
        """
        days = self._config.next_available_search_days
        span = TimeInterval(
            start=request.starts_at - timedelta(days=1),
            end=request.starts_at + timedelta(days=days + 1),
        )
        try:
            snapshot = await self._load_snapshot(request, span=span)
        except _LookupTimeout as exc:
            raise TimeoutError(str(exc)) from None
        if isinstance(snapshot, Rejected):
            return None
        return snapshot.validator.find_next_available(
            request, self._config.suggestion_step_min, days
        )

    async def _replay(self, tenant_id: str, request_id: str) -> Optional[Accepted]:
        existing = await self._with_budget(
            self._reader.get_by_request_id(tenant_id, request_id),
            "request_lookup",
            self._config.validation_timeout_sec,
        )
        if existing is None:
            return None
        logger.info("Request %s already produced booking %s", request_id, existing.id)
        return Accepted(booking=existing, replayed=True)

    async def _decide(
        self,
        request: BookingRequest,
        request_id: str,
        superseded: Optional[Booking] = None,
        superseded_from: Optional[BookingStatus] = None,
    ) -> Decision:
        ignore = (superseded.id,) if superseded is not None else ()
        last_conflict: Optional[Booking] = None
        snapshot: Optional[_Snapshot] = None

        for attempt in range(1, MAX_COMMIT_ATTEMPTS + 1):
            try:
                loaded = await self._load_snapshot(request, ignore_booking_ids=ignore)
            except _LookupTimeout as exc:
                return self._timed_out(exc)
            if isinstance(loaded, Rejected):
                return loaded
            snapshot = loaded

            outcome = snapshot.validator.validate(request)
            if outcome.failure is not None:
                if isinstance(outcome.failure, SlotConflict):
                    return self._suggest(request, snapshot.validator, outcome.failure)
                logger.info("Request rejected: %s", outcome.failure.code)
                return Rejected(reason=outcome.failure, message=_describe(outcome.failure))

            record = self._build_record(request, request_id, snapshot)
            try:
                committed = await asyncio.shield(
                    self._writer.upsert_if_no_overlap(
                        request.tenant_id,
                        request.staff_id,
                        record.occupied_interval,
                        record,
                        supersedes=superseded,
                        supersedes_expected_status=superseded_from,
                    )
                )
            except DuplicateRequest as exc:
                logger.info("Concurrent retry of %s resolved to %s", request_id, exc.existing.id)
                return Accepted(booking=exc.existing, replayed=True)
            except OverlapDetected as exc:
                last_conflict = exc.conflicting
                logger.warning(
                    "Conditional write lost to booking %s (attempt %d/%d)",
                    exc.conflicting.id, attempt, MAX_COMMIT_ATTEMPTS,
                )
                continue

            logger.info(
                "Booking %s committed as %s for staff %s at %s",
                committed.id, committed.status.value, committed.provider_id,
                committed.starts_at.isoformat(),
            )
            return Accepted(booking=committed, replaced=superseded)

        # Both attempts lost the conditional write.
        validator = snapshot.validator.with_occupied([last_conflict.occupied_interval])
        return self._suggest(
            request, validator, SlotConflict(conflicting_booking_id=last_conflict.id)
        )

    def _suggest(
        self, request: BookingRequest, validator: SlotValidator, conflict: SlotConflict
    ) -> Union[Rejected, Suggested]:
        alternatives = validator.suggest_alternatives(
            request,
            limit=self._config.max_alternatives,
            step_min=self._config.suggestion_step_min,
            horizon_hours=self._config.suggestion_horizon_hours,
        )
        if not alternatives:
            logger.info("Slot taken by %s and no alternatives found", conflict.conflicting_booking_id)
            return Rejected(reason=conflict, message=_describe(conflict))
        logger.info(
            "Slot taken by %s; suggesting %d alternative(s)",
            conflict.conflicting_booking_id, len(alternatives),
        )
        return Suggested(
            reason=conflict,
            alternatives=alternatives,
            message=f"Requested slot is taken; {len(alternatives)} alternative(s) available.",
        )

    def _build_record(self, request: BookingRequest, request_id: str, snapshot: _Snapshot) -> Booking:
        service = snapshot.validator.service
        served = service_interval(service, request.starts_at)
        return Booking(
            id=self._new_id(),
            tenant_id=request.tenant_id,
            client_id=request.client_id,
            provider_id=request.staff_id,
            service_id=service.id,
            starts_at=served.start,
            ends_at=served.end,
            status=self._lifecycle.initial_status(snapshot.policy),
            price=service.price,
            request_id=request_id,
            buffer_before_min=service.buffer_before,
            buffer_after_min=service.buffer_after,
            created_at=self._clock(),
        )

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    async def _load_snapshot(
        self,
        request: BookingRequest,
        ignore_booking_ids: tuple[str, ...] = (),
        span: Optional[TimeInterval] = None,
    ) -> Union[_Snapshot, Rejected]:
        policy = await self._with_budget(
            self._policies.get_policy(request.tenant_id),
            "policy_lookup",
            self._config.validation_timeout_sec,
        )
        if policy is None:
            return _invalid("tenant", request.tenant_id)
        budget = policy.validation_timeout_sec or self._config.validation_timeout_sec
        return await self._with_budget(
            self._load_records(request, policy, ignore_booking_ids, span),
            "availability_lookup",
            budget,
        )

    async def _load_records(
        self,
        request: BookingRequest,
        policy: TenantPolicy,
        ignore_booking_ids: tuple[str, ...],
        span: Optional[TimeInterval],
    ) -> Union[_Snapshot, Rejected]:
        tenant_id = request.tenant_id
        service = await self._catalog.get_service(tenant_id, request.service_id)
        if service is None:
            return _invalid("service", request.service_id)
        staff = await self._catalog.get_staff(tenant_id, request.staff_id)
        if staff is None:
            return _invalid("staff", request.staff_id)
        client = await self._catalog.get_client(tenant_id, request.client_id)
        if client is None:
            return _invalid("client", request.client_id)
        eligible = await self._eligibility.is_eligible(tenant_id, staff.id, service.id)

        if span is None:
            span = self._lookup_span(request, policy, service)
        occupied = await AvailabilityIndex(self._reader).occupied_intervals(
            tenant_id, staff.id, span.start, span.end, ignore_booking_ids
        )
        validator = SlotValidator(
            policy, service, staff, eligible=eligible, occupied=occupied, now=self._clock()
        )
        return _Snapshot(policy=policy, validator=validator)

    def _lookup_span(self, request: BookingRequest, policy: TenantPolicy, service) -> TimeInterval:
        """The tenant-local day of the request, widened to cover suggestion probes."""
        day_start, day_end = local_day_bounds(request.starts_at, policy.time_zone)
        horizon = timedelta(hours=self._config.suggestion_horizon_hours)
        candidate = occupied_span(service, request.starts_at)
        return TimeInterval(
            start=min(day_start, candidate.start - horizon),
            end=max(day_end, candidate.end + horizon),
        )

    async def _with_budget(self, awaitable, stage: str, budget_sec: float):
        try:
            return await asyncio.wait_for(awaitable, timeout=budget_sec)
        except asyncio.TimeoutError:
            raise _LookupTimeout(stage, budget_sec) from None

    def _timed_out(self, exc: _LookupTimeout) -> TimedOut:
        logger.warning("Lookup budget exceeded during %s (%.2fs)", exc.stage, exc.budget_sec)
        return TimedOut(stage=exc.stage, budget_sec=exc.budget_sec)

    async def _get_booking(self, tenant_id: str, booking_id: str) -> Booking:
        booking = await self._with_budget(
            self._reader.get(tenant_id, booking_id),
            "booking_lookup",
            self._config.validation_timeout_sec,
        )
        if booking is None:
            raise BookingNotFound(tenant_id, booking_id)
        return booking

    # ------------------------------------------------------------------ #
    # Status changes
    # ------------------------------------------------------------------ #

    async def transition(
        self, tenant_id: str, booking_id: str, to_status: BookingStatus, actor: Actor
    ) -> Booking:
        """
        Persist a lifecycle transition.

        Moves into APPROVED/CONFIRMED pass through the conditional write.
        A PENDING booking whose approval collides with an occupying booking
        is moved to SUGGESTED by the system instead.

        Every write is conditioned on the status the lifecycle check saw. If
        another caller changed the booking in between, it is read again and
        the check re-applied, so a booking cancelled concurrently cannot be
        brought back by a late approval.

        Raises:
            BookingNotFound: ``booking_id`` does not exist in the tenant.
            IllegalTransition: the move is not in the lifecycle table.
            OverlapDetected: a non-PENDING booking collided on commit.
            StaleStatus: the booking kept changing across every attempt.
            TimeoutError: the booking lookup exceeded the budget.
            ValueError: RESCHEDULED was requested; use ``reschedule``.
        """
        if to_status == BookingStatus.RESCHEDULED:
            raise ValueError("Rescheduling needs a replacement slot; use reschedule()")

        stale: Optional[StaleStatus] = None
        for attempt in range(1, MAX_COMMIT_ATTEMPTS + 1):
            try:
                current = await self._get_booking(tenant_id, booking_id)
            except _LookupTimeout as exc:
                raise TimeoutError(str(exc)) from None
            updated = self._lifecycle.transition(current, to_status, actor)
            try:
                return await self._apply(current, updated)
            except StaleStatus as exc:
                stale = exc
                logger.warning(
                    "Booking %s moved to %s before %s was written (attempt %d/%d)",
                    booking_id, exc.current.status.value, to_status.value,
                    attempt, MAX_COMMIT_ATTEMPTS,
                )
        raise stale

    async def _apply(self, current: Booking, updated: Booking) -> Booking:
        try:
            return await self._persist(updated, expected_status=current.status)
        except OverlapDetected as exc:
            if current.status != BookingStatus.PENDING:
                raise
            logger.warning(
                "Approval of %s collided with %s; marking SUGGESTED",
                current.id, exc.conflicting.id,
            )
            suggested = self._lifecycle.transition(current, BookingStatus.SUGGESTED, Actor.SYSTEM)
            return await self._persist(suggested, expected_status=current.status)

    async def _persist(self, booking: Booking, expected_status: BookingStatus) -> Booking:
        return await asyncio.shield(
            self._writer.upsert_if_no_overlap(
                booking.tenant_id,
                booking.provider_id,
                booking.occupied_interval,
                booking,
                expected_status=expected_status,
            )
        )


def _invalid(entity: str, entity_id: str) -> Rejected:
    reason = InvalidReference(entity=entity, entity_id=entity_id)
    return Rejected(reason=reason, message=_describe(reason))


def _describe(failure) -> str:
    if failure.code == "invalid_reference":
        return f"Unknown {failure.entity} '{failure.entity_id}' for this tenant."
    if failure.code == "cross_tenant_reference":
        return f"{failure.entity.capitalize()} '{failure.entity_id}' belongs to another tenant."
    if failure.code == "staff_not_qualified":
        return f"Staff '{failure.staff_id}' does not offer service '{failure.service_id}'."
    if failure.code == "outside_policy_window":
        if failure.reason == WindowBound.TOO_SOON:
            return f"Too soon; the earliest bookable start is {failure.earliest.isoformat()}."
        return f"Too far ahead; the latest bookable start is {failure.latest.isoformat()}."
    return f"Slot overlaps booking '{failure.conflicting_booking_id}'."
