"""
Request-scoped view of a staff member's occupied time.

The index is rebuilt from the booking read port for every validation so
it never goes stale between requests. Only APPROVED and CONFIRMED
bookings occupy time; PENDING and SUGGESTED bookings never block.
"""

import bisect
import logging
from datetime import datetime
from typing import Iterable, Optional, Sequence

from booking_engine.ports import BookingReadPort
from booking_engine.schemas.booking_schema import OccupiedInterval, TimeInterval

logger = logging.getLogger(__name__)


class AvailabilityIndex:
    """Builds ordered occupied intervals for one staff member."""

    def __init__(self, reader: BookingReadPort) -> None:
        self._reader = reader
        self.integrity_violations: list[tuple[OccupiedInterval, OccupiedInterval]] = []

    async def occupied_intervals(
        self,
        tenant_id: str,
        staff_id: str,
        start: datetime,
        end: datetime,
        ignore_booking_ids: Iterable[str] = (),
    ) -> list[OccupiedInterval]:
        """
        Return occupied intervals intersecting ``[start, end)``, sorted by start.

        Overlapping occupying bookings are a data-integrity violation in
        the store. They are kept as separate intervals (never merged) and
        recorded in ``integrity_violations``.
        """
        ignored = set(ignore_booking_ids)
        bookings = await self._reader.list_occupying(tenant_id, staff_id, start, end)
        intervals = sorted(
            (
                b.occupied_interval
                for b in bookings
                if b.is_occupying and b.id not in ignored and b.tenant_id == tenant_id
            ),
            key=lambda iv: (iv.start, iv.end),
        )
        self.integrity_violations = _find_overlaps(intervals)
        for first, second in self.integrity_violations:
            logger.warning(
                "Integrity violation: bookings %s and %s overlap for staff %s in tenant %s",
                first.booking_id, second.booking_id, staff_id, tenant_id,
            )
        return intervals


def _find_overlaps(
    intervals: Sequence[OccupiedInterval],
) -> list[tuple[OccupiedInterval, OccupiedInterval]]:
    overlaps = []
    furthest: Optional[OccupiedInterval] = None
    for interval in intervals:
        if furthest is not None and interval.overlaps(furthest):
            overlaps.append((furthest, interval))
        if furthest is None or interval.end > furthest.end:
            furthest = interval
    return overlaps


def find_conflict(
    intervals: Sequence[OccupiedInterval], candidate: TimeInterval
) -> Optional[OccupiedInterval]:
    """Return the earliest interval overlapping ``candidate``, if any.

    ``intervals`` must be sorted by start, as returned by
    ``AvailabilityIndex.occupied_intervals``.
    """
    starts = [iv.start for iv in intervals]
    # Intervals starting at or after candidate.end cannot overlap.
    upper = bisect.bisect_left(starts, candidate.end)
    for interval in intervals[:upper]:
        if interval.end > candidate.start:
            return interval
    return None
