"""
Booking status state machine.

Every status change goes through ``BookingLifecycle.transition``; the
transition table below is the complete list of legal moves. Anything
else raises ``IllegalTransition``.

Usage:
    lifecycle = BookingLifecycle()
    approved = lifecycle.transition(booking, BookingStatus.APPROVED, Actor.PROVIDER)
"""

import logging
from dataclasses import dataclass
from enum import Enum

from booking_engine.schemas.booking_schema import Booking, BookingStatus
from booking_engine.schemas.tenant_schema import TenantPolicy

logger = logging.getLogger(__name__)


class Actor(str, Enum):
    """Who is asking for a status change."""
    CLIENT = "client"
    PROVIDER = "provider"
    SYSTEM = "system"


@dataclass(frozen=True)
class Transition:
    """A single valid status transition and the actors allowed to perform it."""
    from_status: BookingStatus
    to_status: BookingStatus
    actors: frozenset[Actor]


class IllegalTransition(Exception):
    """Raised when a status change is not in the transition table."""

    def __init__(self, from_status: BookingStatus, to_status: BookingStatus, detail: str = "") -> None:
        self.from_status = from_status
        self.to_status = to_status
        message = f"Illegal transition {from_status.value} -> {to_status.value}"
        super().__init__(f"{message}: {detail}" if detail else message)


class ActorNotPermitted(IllegalTransition):
    """Raised when the transition exists but not for this actor."""

    def __init__(self, from_status: BookingStatus, to_status: BookingStatus, actor: Actor) -> None:
        self.actor = actor
        super().__init__(from_status, to_status, f"not permitted for {actor.value}")


_CLIENT = frozenset({Actor.CLIENT})
_PROVIDER = frozenset({Actor.PROVIDER})
_SYSTEM = frozenset({Actor.SYSTEM})


class BookingLifecycle:
    """Validates and applies booking status transitions."""

    INITIAL_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.APPROVED})

    TERMINAL_STATUSES = frozenset({
        BookingStatus.REJECTED,
        BookingStatus.CANCELLED,
        BookingStatus.CANCELLED_BY_CLIENT,
        BookingStatus.CANCELLED_BY_PROVIDER,
        BookingStatus.RESCHEDULED,
    })

    TRANSITIONS: list[Transition] = [
        # --- Provider review ---
        Transition(BookingStatus.PENDING, BookingStatus.APPROVED, _PROVIDER),
        Transition(BookingStatus.PENDING, BookingStatus.REJECTED, _PROVIDER),
        Transition(BookingStatus.PENDING, BookingStatus.SUGGESTED, _SYSTEM),

        # --- Confirmation ---
        Transition(BookingStatus.APPROVED, BookingStatus.CONFIRMED,
                   frozenset({Actor.CLIENT, Actor.SYSTEM})),
        Transition(BookingStatus.APPROVED, BookingStatus.CANCELLED_BY_PROVIDER, _PROVIDER),

        # --- Client cancellation ---
        Transition(BookingStatus.PENDING, BookingStatus.CANCELLED_BY_CLIENT, _CLIENT),
        Transition(BookingStatus.APPROVED, BookingStatus.CANCELLED_BY_CLIENT, _CLIENT),
        Transition(BookingStatus.CONFIRMED, BookingStatus.CANCELLED_BY_CLIENT, _CLIENT),

        # --- Rescheduling (replacement goes through ConflictResolver) ---
        Transition(BookingStatus.PENDING, BookingStatus.RESCHEDULED,
                   frozenset({Actor.CLIENT, Actor.PROVIDER})),
        Transition(BookingStatus.APPROVED, BookingStatus.RESCHEDULED,
                   frozenset({Actor.CLIENT, Actor.PROVIDER})),
        Transition(BookingStatus.CONFIRMED, BookingStatus.RESCHEDULED,
                   frozenset({Actor.CLIENT, Actor.PROVIDER})),
    ]

    def _find(self, from_status: BookingStatus, to_status: BookingStatus) -> Transition:
        for t in self.TRANSITIONS:
            if t.from_status == from_status and t.to_status == to_status:
                return t
        raise IllegalTransition(from_status, to_status)

    def can_transition(
        self, from_status: BookingStatus, to_status: BookingStatus, actor: Actor
    ) -> bool:
        try:
            return actor in self._find(from_status, to_status).actors
        except IllegalTransition:
            return False

    def allowed_targets(self, from_status: BookingStatus) -> list[BookingStatus]:
        """Return every status reachable in one step from ``from_status``."""
        return [t.to_status for t in self.TRANSITIONS if t.from_status == from_status]

    def is_terminal(self, status: BookingStatus) -> bool:
        return status in self.TERMINAL_STATUSES

    def initial_status(self, policy: TenantPolicy) -> BookingStatus:
        """New bookings start APPROVED when the tenant auto-approves, else PENDING."""
        return BookingStatus.APPROVED if policy.auto_approve else BookingStatus.PENDING

    def transition(self, booking: Booking, to_status: BookingStatus, actor: Actor) -> Booking:
        """
        Apply a status change.

        Returns:
            A copy of ``booking`` carrying the new status.

        Raises:
            IllegalTransition: the (from, to) pair is not in the table.
            ActorNotPermitted: the pair exists but ``actor`` may not perform it.
        """
        rule = self._find(booking.status, to_status)
        if actor not in rule.actors:
            raise ActorNotPermitted(booking.status, to_status, actor)

        logger.debug(
            "Booking %s transition: %s -> %s (actor: %s)",
            booking.id, booking.status.value, to_status.value, actor.value,
        )
        return booking.model_copy(update={"status": to_status})


def _check_table_is_closed() -> None:
    """Every status must be initial, terminal, or reachable through the table."""
    targets = {t.to_status for t in BookingLifecycle.TRANSITIONS}
    known = targets | BookingLifecycle.INITIAL_STATUSES | BookingLifecycle.TERMINAL_STATUSES
    missing = set(BookingStatus) - known
    if missing:
        raise RuntimeError(f"Booking statuses missing from lifecycle: {sorted(s.value for s in missing)}")


_check_table_is_closed()
