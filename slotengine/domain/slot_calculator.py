"""
Core business logic for calculating bookable service slots.

This is the heart of the application - pure domain logic without any
external dependencies (no API calls, no database, no I/O).
"""

import heapq
from itertools import groupby
from typing import Iterable, Iterator, List, Optional, Sequence

import pendulum
from pendulum import DateTime

from .exceptions import ValidationError
from .models import (
    DEFAULT_TIMEZONE,
    BlockInterval,
    BookedInterval,
    BreakInterval,
    CandidateSlot,
    ConflictKind,
    SlotRequest,
    SlotView,
    TimeRange,
    WorkingInterval,
)


def _minutes_overlap(start: int, end: int, other_start: int, other_end: int) -> bool:
    """Half-open overlap test on minute offsets."""
    return not (end <= other_start or start >= other_end)


class SlotCalculator:
    """
    Enumerates candidate start times for one service on one day.

    Algorithm, per matching working interval (one per staff shift):
    1. Walk start minutes from the interval start (rounded up to the grid)
       while service + buffer still fits before the interval end
    2. Drop starts that are not in the future
    3. Mark the slot occupied if it touches a break, a booking or a block
       of that staff member (half-open overlap)
    4. Merge the per-interval streams by start time
    5. Keep one entry per staff member and start time; overlapping shifts
       of the same person are free if any of them is

    Nothing is cached between calls; one instance can serve any number
    of concurrent requests.
    """

    def __init__(self, timezone: str = DEFAULT_TIMEZONE):
        self.timezone = timezone

    def generate_slots(
        self,
        request: SlotRequest,
        working_intervals: Iterable[WorkingInterval],
        bookings: Iterable[BookedInterval] = (),
        blocks: Iterable[BlockInterval] = (),
        breaks: Iterable[BreakInterval] = (),
    ) -> Iterator[CandidateSlot]:
        """
        Lazily produce every candidate slot, available or occupied.

        The request is validated and the inputs are snapshotted before the
        iterator is returned, so errors surface here and not on first use.

        Args:
            request: The validated slot request
            working_intervals: Working windows, any weekday and staff
            bookings: Holding bookings for the target day
            blocks: Manual blocks overlapping the target day
            breaks: Extra breaks on top of the ones set on the intervals

        Returns:
            Iterator of CandidateSlot sorted by start time
        """
        if not isinstance(request, SlotRequest):
            raise ValidationError(f"Expected a SlotRequest, got {type(request).__name__}")

        intervals = self._matching_intervals(request, working_intervals)
        booking_list = tuple(bookings)
        block_list = tuple(blocks)
        break_list = tuple(breaks)

        now = request.now or pendulum.now(self.timezone)

        streams = [
            self._scan_interval(
                request=request,
                interval=interval,
                now=now,
                bookings=[b for b in booking_list if b.applies_to(interval.staff_id)],
                blocks=[b for b in block_list if b.applies_to(interval.staff_id)],
                breaks=[b for b in break_list if b.applies_to(interval.staff_id)],
            )
            for interval in intervals
        ]

        # heapq.merge is stable: equal start times keep the interval order,
        # so overlapping shifts of one staff member stay adjacent
        merged = heapq.merge(*streams, key=lambda slot: slot.start)
        return self._reduce_per_staff(merged)

    def iter_slots(
        self,
        request: SlotRequest,
        working_intervals: Iterable[WorkingInterval],
        bookings: Iterable[BookedInterval] = (),
        blocks: Iterable[BlockInterval] = (),
        breaks: Iterable[BreakInterval] = (),
        view: SlotView = SlotView.ALL,
    ) -> Iterator[CandidateSlot]:
        """Lazily produce the slots in the requested view."""
        view = SlotView(view)
        slots = self.generate_slots(
            request,
            working_intervals,
            bookings=bookings,
            blocks=blocks,
            breaks=breaks,
        )

        if view is SlotView.AVAILABLE:
            return (slot for slot in slots if slot.available)
        if view is SlotView.ANY_STAFF:
            return self._reduce_any_staff(slots)
        return slots

    def find_slots(
        self,
        request: SlotRequest,
        working_intervals: Iterable[WorkingInterval],
        bookings: Iterable[BookedInterval] = (),
        blocks: Iterable[BlockInterval] = (),
        breaks: Iterable[BreakInterval] = (),
        view: SlotView = SlotView.ALL,
    ) -> List[CandidateSlot]:
        """
        Materialised form of iter_slots.

        SlotView.ALL keeps one entry per staff member and start time,
        SlotView.AVAILABLE drops the occupied ones and SlotView.ANY_STAFF
        collapses staff into one entry per start time.
        """
        return list(
            self.iter_slots(
                request,
                working_intervals,
                bookings=bookings,
                blocks=blocks,
                breaks=breaks,
                view=view,
            )
        )

    def check_slot(
        self,
        request: SlotRequest,
        start: DateTime,
        working_intervals: Iterable[WorkingInterval],
        bookings: Iterable[BookedInterval] = (),
        blocks: Iterable[BlockInterval] = (),
        breaks: Iterable[BreakInterval] = (),
    ) -> Optional[CandidateSlot]:
        """
        Classify one specific start time.

        With a staff filter on the request the slot of that staff member is
        returned; without one the any-staff entry is returned, whose staff_id
        names the first professional free at that time.

        Returns:
            The matching CandidateSlot, or None when the time is not offered
            at all (off the grid, outside working hours or in the past)
        """
        view = SlotView.ALL if request.staff_id is not None else SlotView.ANY_STAFF
        slots = self.iter_slots(
            request,
            working_intervals,
            bookings=bookings,
            blocks=blocks,
            breaks=breaks,
            view=view,
        )

        for slot in slots:
            if slot.start == start:
                return slot
            if slot.start > start:
                break
        return None

    def _matching_intervals(
        self,
        request: SlotRequest,
        working_intervals: Iterable[WorkingInterval],
    ) -> List[WorkingInterval]:
        """
        Active intervals for the request's weekday and staff filter,
        ordered by staff then shift start.
        """
        matching = [
            interval for interval in working_intervals
            if interval.active
            and interval.weekday == request.weekday
            and (request.staff_id is None or interval.staff_id == request.staff_id)
        ]
        return sorted(matching, key=lambda i: (str(i.staff_id), i.start_minute, i.end_minute))

    def _scan_interval(
        self,
        *,
        request: SlotRequest,
        interval: WorkingInterval,
        now: DateTime,
        bookings: Sequence[BookedInterval],
        blocks: Sequence[BlockInterval],
        breaks: Sequence[BreakInterval],
    ) -> Iterator[CandidateSlot]:
        """
        Walk one working interval on the granularity grid.

        Example:
        Working: 09:00 - 12:00, service 30, buffer 10, step 15
        Starts:  09:00, 09:15, ... 11:15 (11:30 + 40 would pass 12:00)
        """
        step = request.slot_granularity_minutes
        duration = request.service_duration_minutes
        day = request.target_date

        current = -(-interval.start_minute // step) * step
        last_start = interval.end_minute - request.scheduled_minutes

        while current <= last_start:
            slot_start = pendulum.datetime(
                day.year, day.month, day.day,
                current // 60, current % 60,
                tz=self.timezone,
            )

            if slot_start <= now:
                current += step
                continue

            slot_range = TimeRange(start=slot_start, end=slot_start.add(minutes=duration))
            conflict = self._find_conflict(
                interval=interval,
                start_minute=current,
                end_minute=current + duration,
                slot_range=slot_range,
                bookings=bookings,
                blocks=blocks,
                breaks=breaks,
            )

            yield CandidateSlot(
                time_range=slot_range,
                available=conflict is None,
                staff_id=interval.staff_id,
                conflict=conflict,
            )
            current += step

    @staticmethod
    def _find_conflict(
        *,
        interval: WorkingInterval,
        start_minute: int,
        end_minute: int,
        slot_range: TimeRange,
        bookings: Sequence[BookedInterval],
        blocks: Sequence[BlockInterval],
        breaks: Sequence[BreakInterval],
    ) -> Optional[ConflictKind]:
        """Return the first rule that makes the slot unavailable, if any."""
        if interval.has_break() and _minutes_overlap(
            start_minute, end_minute, interval.break_start_minute, interval.break_end_minute
        ):
            return ConflictKind.BREAK

        if any(_minutes_overlap(start_minute, end_minute, b.start_minute, b.end_minute) for b in breaks):
            return ConflictKind.BREAK

        if any(booking.time_range.overlaps(slot_range) for booking in bookings):
            return ConflictKind.BOOKING

        if any(block.time_range.overlaps(slot_range) for block in blocks):
            return ConflictKind.BLOCK

        return None

    @staticmethod
    def _reduce_per_staff(slots: Iterable[CandidateSlot]) -> Iterator[CandidateSlot]:
        """
        Merge entries of the same staff member at the same start time.

        Only happens when one person has overlapping shifts. The free entry
        wins; otherwise the first occupied one is kept.

        Example:
            09:00-14:00 (break 11:00-12:00) and 10:00-15:00 both offer
            11:00; the second shift is free, so 11:00 is free.
        """
        for _, group in groupby(slots, key=lambda slot: (slot.start, slot.staff_id)):
            first = next(group)
            if first.available:
                yield first
                continue
            yield next((slot for slot in group if slot.available), first)

    @staticmethod
    def _reduce_any_staff(slots: Iterable[CandidateSlot]) -> Iterator[CandidateSlot]:
        """
        Collapse per-staff slots sharing a start time into one entry.

        The entry is available when at least one staff member is free and
        then carries the first free staff member's id.
        """
        for _, group in groupby(slots, key=lambda slot: slot.start):
            candidates = list(group)
            free = next((slot for slot in candidates if slot.available), None)
            if free is not None:
                yield CandidateSlot(
                    time_range=free.time_range,
                    available=True,
                    staff_id=free.staff_id,
                )
            else:
                yield CandidateSlot(
                    time_range=candidates[0].time_range,
                    available=False,
                    staff_id=None,
                    conflict=candidates[0].conflict,
                )
