"""Tests for ConflictResolver decisions against the in-memory store."""

import asyncio
from datetime import timedelta

import pytest

from booking_engine.config import EngineConfig
from booking_engine.ports import BookingNotFound
from booking_engine.scheduling.lifecycle import Actor, IllegalTransition
from booking_engine.schemas.booking_schema import BookingStatus
from booking_engine.schemas.decision_schema import (
    Accepted,
    InvalidReference,
    OutsidePolicyWindow,
    Rejected,
    SlotConflict,
    StaffNotQualified,
    Suggested,
    TimedOut,
    WindowBound,
)
from booking_engine.schemas.tenant_schema import Client, Service, StaffMember, Tenant, TenantPolicy
from tests.conftest import (
    COLORING_ID,
    HAIRCUT_ID,
    MANUAL_TENANT,
    NOW,
    OTHER_TENANT_ID,
    STAFF_ID,
    TENANT_ID,
    at,
    build_resolver,
    build_store,
    make_booking,
    make_request,
    store_booking,
)


class TestAcceptance:
    @pytest.mark.asyncio
    async def test_free_slot_is_approved_for_auto_approve_tenant(self, store, resolver):
        decision = await resolver.request_booking(make_request(at(12)), "req-1")

        assert isinstance(decision, Accepted)
        booking = decision.booking
        assert booking.status == BookingStatus.APPROVED
        assert booking.starts_at == at(12)
        assert booking.ends_at == at(12, 45)
        assert booking.request_id == "req-1"
        assert booking.created_at == NOW
        assert store.bookings(TENANT_ID) == [booking]

    @pytest.mark.asyncio
    async def test_price_and_buffers_are_snapshotted(self, store, resolver):
        decision = await resolver.request_booking(make_request(at(12)), "req-1")
        store.add_service(Service(
            id=HAIRCUT_ID, tenant_id=TENANT_ID, name="Haircut", duration_min=45,
            price=99, buffer_before=0, buffer_after=0,
        ))
        stored = store.bookings(TENANT_ID)[0]
        assert stored.price == decision.booking.price == 25
        assert stored.buffer_before_min == 15
        assert stored.occupied_interval.start == at(11, 45)

    @pytest.mark.asyncio
    async def test_manual_approval_tenant_creates_pending(self):
        store = build_store()
        store.add_staff(StaffMember(id="spa-staff", tenant_id=OTHER_TENANT_ID, name="P"))
        store.add_client(Client(id="spa-client", tenant_id=OTHER_TENANT_ID, name="Q"))
        store.add_service(Service(id="spa-svc", tenant_id=OTHER_TENANT_ID, name="Facial",
                                  duration_min=60))
        store.link_staff_service(OTHER_TENANT_ID, "spa-staff", "spa-svc")
        resolver = build_resolver(store)

        decision = await resolver.request_booking(
            make_request(at(12), staff_id="spa-staff", service_id="spa-svc",
                         tenant_id=MANUAL_TENANT.id, client_id="spa-client"),
            "req-spa",
        )
        assert isinstance(decision, Accepted)
        assert decision.booking.status == BookingStatus.PENDING


class TestHaircutScenario:
    @pytest.mark.asyncio
    async def test_conflicting_request_then_back_to_back_request(self, store, resolver):
        await store_booking(store, make_booking(at(10, 15)))  # occupies 10:00-11:15

        conflicting = await resolver.request_booking(make_request(at(11)), "req-11")
        assert isinstance(conflicting, Suggested)
        assert conflicting.reason == SlotConflict(conflicting_booking_id="bk-existing")

        accepted = await resolver.request_booking(make_request(at(11, 30)), "req-1130")
        assert isinstance(accepted, Accepted)
        assert accepted.booking.status == BookingStatus.APPROVED

    @pytest.mark.asyncio
    async def test_suggested_alternatives_pass_validation(self, store, resolver):
        await store_booking(store, make_booking(at(10, 15)))
        decision = await resolver.request_booking(make_request(at(11)), "req-11")

        assert isinstance(decision, Suggested)
        assert 0 < len(decision.alternatives) <= 3
        for index, alt in enumerate(decision.alternatives):
            follow_up = await resolver.request_booking(
                make_request(alt.start, staff_id=STAFF_ID), f"alt-{index}"
            )
            assert isinstance(follow_up, Accepted)
            await resolver.transition(
                TENANT_ID, follow_up.booking.id, BookingStatus.CANCELLED_BY_CLIENT, Actor.CLIENT
            )

    @pytest.mark.asyncio
    async def test_pending_bookings_do_not_block(self, store, resolver):
        await store_booking(store, make_booking(at(11), status=BookingStatus.PENDING))
        decision = await resolver.request_booking(make_request(at(11)), "req-11")
        assert isinstance(decision, Accepted)

    @pytest.mark.asyncio
    async def test_conflict_without_alternatives_is_rejected(self, store):
        resolver = build_resolver(store, config=EngineConfig(
            validation_timeout_sec=1.0, max_alternatives=0, suggestion_step_min=15,
            suggestion_horizon_hours=4, next_available_search_days=7,
        ))
        await store_booking(store, make_booking(at(10, 15)))
        decision = await resolver.request_booking(make_request(at(11)), "req-11")
        assert isinstance(decision, Rejected)
        assert isinstance(decision.reason, SlotConflict)


class TestRejections:
    @pytest.mark.asyncio
    async def test_unqualified_staff(self, resolver):
        decision = await resolver.request_booking(make_request(at(12), service_id=COLORING_ID), "r")
        assert isinstance(decision, Rejected)
        assert isinstance(decision.reason, StaffNotQualified)

    @pytest.mark.asyncio
    async def test_too_soon(self, resolver):
        decision = await resolver.request_booking(make_request(NOW + timedelta(minutes=59)), "r")
        assert isinstance(decision.reason, OutsidePolicyWindow)
        assert decision.reason.reason == WindowBound.TOO_SOON
        assert "Too soon" in decision.message

    @pytest.mark.asyncio
    async def test_too_far(self, resolver):
        decision = await resolver.request_booking(make_request(NOW + timedelta(days=90)), "r")
        assert decision.reason.reason == WindowBound.TOO_FAR

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides, entity",
        [
            ({"service_id": "missing"}, "service"),
            ({"staff_id": "missing"}, "staff"),
            ({"client_id": "missing"}, "client"),
            ({"tenant_id": "missing"}, "tenant"),
        ],
    )
    async def test_unknown_references(self, resolver, overrides, entity):
        decision = await resolver.request_booking(make_request(at(12), **overrides), "r")
        assert isinstance(decision, Rejected)
        assert decision.reason == InvalidReference(
            entity=entity, entity_id=next(iter(overrides.values()))
        )

    @pytest.mark.asyncio
    async def test_staff_from_another_tenant_is_invalid(self, store, resolver):
        store.add_staff(StaffMember(id="foreign", tenant_id=OTHER_TENANT_ID, name="F"))
        decision = await resolver.request_booking(make_request(at(12), staff_id="foreign"), "r")
        assert decision.reason == InvalidReference(entity="staff", entity_id="foreign")

    @pytest.mark.asyncio
    async def test_inactive_tenant_is_invalid(self, store, resolver):
        store.add_tenant(Tenant(id="closed", name="Closed", slug="closed", status="suspended"))
        decision = await resolver.request_booking(make_request(at(12), tenant_id="closed"), "r")
        assert decision.reason == InvalidReference(entity="tenant", entity_id="closed")

    @pytest.mark.asyncio
    async def test_rejection_creates_no_booking(self, store, resolver):
        await resolver.request_booking(make_request(NOW), "r")
        assert store.bookings(TENANT_ID) == []


class TestIdempotency:
    @pytest.mark.asyncio
    async def test_same_request_id_returns_same_booking(self, store, resolver):
        first = await resolver.request_booking(make_request(at(12)), "req-dup")
        second = await resolver.request_booking(make_request(at(12)), "req-dup")

        assert isinstance(second, Accepted)
        assert second.replayed
        assert second.booking == first.booking
        assert len(store.bookings(TENANT_ID)) == 1

    @pytest.mark.asyncio
    async def test_replay_returns_current_state(self, store, resolver):
        first = await resolver.request_booking(make_request(at(12)), "req-dup")
        await resolver.transition(
            TENANT_ID, first.booking.id, BookingStatus.CONFIRMED, Actor.CLIENT
        )
        again = await resolver.request_booking(make_request(at(12)), "req-dup")
        assert again.booking.status == BookingStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_concurrent_duplicates_create_one_booking(self, store, resolver):
        decisions = await asyncio.gather(
            resolver.request_booking(make_request(at(12)), "req-dup"),
            resolver.request_booking(make_request(at(12)), "req-dup"),
        )
        assert all(isinstance(d, Accepted) for d in decisions)
        assert decisions[0].booking.id == decisions[1].booking.id
        assert len(store.bookings(TENANT_ID)) == 1


class TestTimeouts:
    @pytest.mark.asyncio
    async def test_slow_lookups_time_out(self):
        store = build_store(read_delay_sec=0.2)
        resolver = build_resolver(store)
        store.add_tenant(
            Tenant(id=TENANT_ID, name="Salon", slug="salon", lead_time_min=60),
            policy=TenantPolicy(
                tenant_id=TENANT_ID, lead_time_min=60, max_advance_days=60,
                validation_timeout_sec=0.05,
            ),
        )
        decision = await resolver.request_booking(make_request(at(12)), "req-slow")

        assert isinstance(decision, TimedOut)
        assert decision.stage == "availability_lookup"
        assert decision.budget_sec == 0.05
        assert store.bookings(TENANT_ID) == []

    @pytest.mark.asyncio
    async def test_next_available_timeout_is_distinct_from_no_slot(self):
        store = build_store(read_delay_sec=0.2)
        resolver = build_resolver(store, config=EngineConfig(
            validation_timeout_sec=0.05, max_alternatives=3, suggestion_step_min=15,
            suggestion_horizon_hours=4, next_available_search_days=7,
        ))
        with pytest.raises(TimeoutError):
            await resolver.next_available_slot(make_request(at(12)))


class TestTransitions:
    @pytest.mark.asyncio
    async def test_transition_is_persisted(self, store, resolver):
        decision = await resolver.request_booking(make_request(at(12)), "r")
        updated = await resolver.transition(
            TENANT_ID, decision.booking.id, BookingStatus.CONFIRMED, Actor.CLIENT
        )
        assert updated.status == BookingStatus.CONFIRMED
        assert store.bookings(TENANT_ID)[0].status == BookingStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_illegal_transition_leaves_booking_untouched(self, store, resolver):
        decision = await resolver.request_booking(make_request(at(12)), "r")
        with pytest.raises(IllegalTransition):
            await resolver.transition(
                TENANT_ID, decision.booking.id, BookingStatus.REJECTED, Actor.PROVIDER
            )
        assert store.bookings(TENANT_ID)[0].status == BookingStatus.APPROVED

    @pytest.mark.asyncio
    async def test_unknown_booking(self, resolver):
        with pytest.raises(BookingNotFound):
            await resolver.transition(TENANT_ID, "nope", BookingStatus.CONFIRMED, Actor.CLIENT)

    @pytest.mark.asyncio
    async def test_rescheduled_must_go_through_reschedule(self, resolver):
        with pytest.raises(ValueError, match="reschedule"):
            await resolver.transition(TENANT_ID, "any", BookingStatus.RESCHEDULED, Actor.CLIENT)

    @pytest.mark.asyncio
    async def test_approval_colliding_with_occupying_booking_becomes_suggested(self, store, resolver):
        await store_booking(store, make_booking(at(12), "pending", status=BookingStatus.PENDING))
        await store_booking(store, make_booking(at(12, 30), "approved", status=BookingStatus.APPROVED))

        updated = await resolver.transition(
            TENANT_ID, "pending", BookingStatus.APPROVED, Actor.PROVIDER
        )
        assert updated.status == BookingStatus.SUGGESTED


class TestReschedule:
    @pytest.mark.asyncio
    async def test_reschedule_into_own_old_span(self, store, resolver):
        original = await resolver.request_booking(make_request(at(12)), "req-orig")
        decision = await resolver.reschedule(
            TENANT_ID, original.booking.id, at(12, 30), Actor.CLIENT, "req-move"
        )

        assert isinstance(decision, Accepted)
        assert decision.booking.starts_at == at(12, 30)
        assert decision.replaced.id == original.booking.id
        assert decision.replaced.status == BookingStatus.RESCHEDULED
        statuses = {b.id: b.status for b in store.bookings(TENANT_ID)}
        assert statuses[original.booking.id] == BookingStatus.RESCHEDULED
        assert statuses[decision.booking.id] == BookingStatus.APPROVED

    @pytest.mark.asyncio
    async def test_failed_reschedule_keeps_original(self, store, resolver):
        original = await resolver.request_booking(make_request(at(12)), "req-orig")
        await store_booking(store, make_booking(at(15), "blocker"))

        decision = await resolver.reschedule(
            TENANT_ID, original.booking.id, at(15), Actor.CLIENT, "req-move"
        )
        assert isinstance(decision, Suggested)
        stored = {b.id: b.status for b in store.bookings(TENANT_ID)}
        assert stored[original.booking.id] == BookingStatus.APPROVED

    @pytest.mark.asyncio
    async def test_terminal_booking_cannot_be_rescheduled(self, store, resolver):
        await store_booking(store, make_booking(at(12), "gone", status=BookingStatus.CANCELLED_BY_CLIENT))
        with pytest.raises(IllegalTransition):
            await resolver.reschedule(TENANT_ID, "gone", at(14), Actor.CLIENT, "req-move")

    @pytest.mark.asyncio
    async def test_reschedule_to_other_staff(self, store, resolver):
        original = await resolver.request_booking(make_request(at(12)), "req-orig")
        decision = await resolver.reschedule(
            TENANT_ID, original.booking.id, at(12), Actor.PROVIDER, "req-move",
            staff_id="staff-t",
        )
        assert isinstance(decision, Accepted)
        assert decision.booking.provider_id == "staff-t"


class TestNextAvailable:
    @pytest.mark.asyncio
    async def test_finds_first_gap_after_existing(self, store, resolver):
        await store_booking(store, make_booking(at(10, 15)))
        slot = await resolver.next_available_slot(make_request(at(10)))
        assert slot.start == at(11, 30)

    @pytest.mark.asyncio
    async def test_none_for_unqualified_staff(self, resolver):
        assert await resolver.next_available_slot(
            make_request(at(10), service_id=COLORING_ID)
        ) is None


class TestBookingLookupBudget:
    @staticmethod
    def _slow_get(store, delay_sec):
        fast_get = store.get

        async def slow_get(tenant_id, booking_id):
            await asyncio.sleep(delay_sec)
            return await fast_get(tenant_id, booking_id)

        return slow_get

    @pytest.mark.asyncio
    async def test_slow_booking_read_times_out_reschedule(self, store, monkeypatch):
        resolver = build_resolver(store, config=EngineConfig(
            validation_timeout_sec=0.05, max_alternatives=3, suggestion_step_min=15,
            suggestion_horizon_hours=4, next_available_search_days=7,
        ))
        await store_booking(store, make_booking(at(12), "bk-a", status=BookingStatus.APPROVED))
        monkeypatch.setattr(store, "get", self._slow_get(store, 0.5))

        decision = await resolver.reschedule(TENANT_ID, "bk-a", at(14), Actor.CLIENT, "req-move")

        assert isinstance(decision, TimedOut)
        assert decision.stage == "booking_lookup"
        assert (await store.get_by_request_id(TENANT_ID, "req-move")) is None

    @pytest.mark.asyncio
    async def test_slow_booking_read_times_out_transition(self, store, monkeypatch):
        resolver = build_resolver(store, config=EngineConfig(
            validation_timeout_sec=0.05, max_alternatives=3, suggestion_step_min=15,
            suggestion_horizon_hours=4, next_available_search_days=7,
        ))
        await store_booking(store, make_booking(at(12), "bk-a", status=BookingStatus.APPROVED))
        monkeypatch.setattr(store, "get", self._slow_get(store, 0.5))

        with pytest.raises(TimeoutError, match="booking_lookup"):
            await resolver.transition(TENANT_ID, "bk-a", BookingStatus.CONFIRMED, Actor.CLIENT)
