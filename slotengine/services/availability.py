"""
Application services for looking up a day's bookable slots.

The service resolves tenant and service configuration and fetches schedule,
booking and block data via store adapters, then delegates the actual slot
computation to the domain-level ``SlotCalculator``. The stores are described
by protocols so that the JSON store, a database adapter or a test stub can be
plugged in.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional, Protocol, Union

import pendulum
from pendulum import DateTime

from ..config import DefaultsConfig
from ..domain.exceptions import NotFoundError, ValidationError
from ..domain.models import (
    BlockInterval,
    BookedInterval,
    CandidateSlot,
    SlotListing,
    SlotRequest,
    SlotView,
    TimeRange,
    WorkingInterval,
    day_window,
)
from ..domain.slot_calculator import SlotCalculator
from ..records import ServiceRecord, StaffRecord, TenantRecord

logger = logging.getLogger(__name__)


class CatalogStore(Protocol):
    """Tenants, services and staff."""

    async def get_tenant(self, tenant_id: str) -> Optional[TenantRecord]:
        """Return the tenant or None."""

    async def get_service(self, tenant_id: str, service_id: str) -> Optional[ServiceRecord]:
        """Return the tenant's service or None."""

    async def list_staff(self, tenant_id: str) -> List[StaffRecord]:
        """Return the tenant's active staff."""


class ScheduleStore(Protocol):
    async def get_working_intervals(
        self,
        tenant_id: str,
        weekday: int,
        staff_id: Optional[str] = None,
    ) -> List[WorkingInterval]:
        """Return active working intervals for a weekday (0=Sunday)."""


class BookingStore(Protocol):
    async def get_booked_intervals(
        self,
        tenant_id: str,
        start: DateTime,
        end: DateTime,
        staff_id: Optional[str] = None,
    ) -> List[BookedInterval]:
        """Return intervals of holding bookings that overlap [start, end)."""


class BlockStore(Protocol):
    async def get_block_intervals(
        self,
        tenant_id: str,
        start: DateTime,
        end: DateTime,
        staff_id: Optional[str] = None,
    ) -> List[BlockInterval]:
        """Return blocks overlapping [start, end), staff-wide ones included."""


def parse_target_date(value: Union[date, str]) -> date:
    """
    Accept a date or a "YYYY-MM-DD" string.

    Raises:
        ValidationError: For anything else
    """
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return pendulum.from_format(value.strip(), "YYYY-MM-DD").date()
        except ValueError as exc:
            raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD") from exc
    raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD")


class DayData:
    """Interval lists for one tenant and day, as fetched from the stores."""

    def __init__(
        self,
        working_intervals: List[WorkingInterval],
        bookings: List[BookedInterval],
        blocks: List[BlockInterval],
    ) -> None:
        self.working_intervals = working_intervals
        self.bookings = bookings
        self.blocks = blocks


class AvailabilityService:
    """
    Orchestrates store lookups and slot calculation.

    Stores may be one object implementing several protocols; the calculator
    owns no state so one service instance can handle concurrent requests.
    """

    def __init__(
        self,
        catalog: CatalogStore,
        schedules: ScheduleStore,
        bookings: BookingStore,
        blocks: BlockStore,
        slot_calculator: SlotCalculator,
        defaults: Optional[DefaultsConfig] = None,
    ) -> None:
        self._catalog = catalog
        self._schedules = schedules
        self._bookings = bookings
        self._blocks = blocks
        self._slot_calculator = slot_calculator
        self._defaults = defaults or DefaultsConfig()

    @property
    def timezone(self) -> str:
        return self._slot_calculator.timezone

    @property
    def slot_calculator(self) -> SlotCalculator:
        return self._slot_calculator

    async def get_slots(
        self,
        *,
        tenant_id: str,
        service_id: str,
        target_date: Union[date, str],
        staff_id: Optional[str] = None,
        view: SlotView = SlotView.ALL,
        now: Optional[DateTime] = None,
    ) -> List[CandidateSlot]:
        """
        Compute the day's slots for a service.

        Raises:
            ValidationError: If the date is malformed
            NotFoundError: If the tenant, service or staff member is unknown
        """
        request = await self.build_request(
            tenant_id=tenant_id,
            service_id=service_id,
            target_date=target_date,
            staff_id=staff_id,
            now=now,
        )
        day = await self.fetch_day_data(tenant_id=tenant_id, request=request)

        slots = self._slot_calculator.find_slots(
            request,
            day.working_intervals,
            bookings=day.bookings,
            blocks=day.blocks,
            view=view,
        )
        logger.debug(
            "Tenant %s service %s on %s: %d slot(s) in view %s",
            tenant_id, service_id, request.target_date, len(slots), SlotView(view).value,
        )
        return slots

    async def get_listing(
        self,
        *,
        tenant_id: str,
        service_id: str,
        target_date: Union[date, str],
        staff_id: Optional[str] = None,
        any_staff: bool = False,
        now: Optional[DateTime] = None,
    ) -> SlotListing:
        """Available and occupied slots, as the public booking page shows them."""
        slots = await self.get_slots(
            tenant_id=tenant_id,
            service_id=service_id,
            target_date=target_date,
            staff_id=staff_id,
            view=SlotView.ANY_STAFF if any_staff else SlotView.ALL,
            now=now,
        )
        return SlotListing.from_slots(slots)

    async def build_request(
        self,
        *,
        tenant_id: str,
        service_id: str,
        target_date: Union[date, str],
        staff_id: Optional[str] = None,
        now: Optional[DateTime] = None,
    ) -> SlotRequest:
        """Resolve tenant settings and service duration into a SlotRequest."""
        day = parse_target_date(target_date)

        tenant = await self._catalog.get_tenant(tenant_id)
        if tenant is None:
            raise NotFoundError(f"Tenant not found: {tenant_id}")

        service = await self._catalog.get_service(tenant_id, service_id)
        if service is None:
            raise NotFoundError(f"Service not found: {service_id}")

        if staff_id is not None:
            staff = await self._catalog.list_staff(tenant_id)
            if not any(member.id == staff_id for member in staff):
                raise NotFoundError(f"Staff member not found: {staff_id}")

        defaults = self._defaults.for_tenant(tenant.settings)

        return SlotRequest(
            target_date=day,
            service_duration_minutes=service.duration_minutes,
            staff_id=staff_id,
            slot_granularity_minutes=defaults.slot_granularity_minutes,
            buffer_minutes=defaults.buffer_minutes,
            now=now,
        )

    async def fetch_day_data(self, *, tenant_id: str, request: SlotRequest) -> DayData:
        """Fetch the interval lists the calculator needs for the request's day."""
        window: TimeRange = day_window(request.target_date, self.timezone)

        working_intervals = await self._schedules.get_working_intervals(
            tenant_id, request.weekday, staff_id=request.staff_id
        )
        if working_intervals:
            # Deactivated staff keep their schedule rows but take no bookings
            active_staff = {member.id for member in await self._catalog.list_staff(tenant_id)}
            working_intervals = [i for i in working_intervals if i.staff_id in active_staff]
        if not working_intervals:
            logger.debug("No working intervals for tenant %s on weekday %d", tenant_id, request.weekday)
            return DayData(working_intervals=[], bookings=[], blocks=[])

        bookings = await self._bookings.get_booked_intervals(
            tenant_id, window.start, window.end, staff_id=request.staff_id
        )
        blocks = await self._blocks.get_block_intervals(
            tenant_id, window.start, window.end, staff_id=request.staff_id
        )

        return DayData(working_intervals=working_intervals, bookings=bookings, blocks=blocks)
