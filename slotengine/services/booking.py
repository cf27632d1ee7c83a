"""
Booking commit - turns a chosen slot into a stored booking.

Availability computed for the booking page can be stale by the time the
customer confirms, so the slot is checked again against fresh store data
and the store insert itself refuses overlapping bookings.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional, Protocol

import pendulum

from ..domain.exceptions import NotFoundError, SlotConflictError, ValidationError
from ..domain.models import MINUTES_PER_DAY, parse_clock
from ..records import BookingRecord, BookingRequest, CustomerRecord
from .availability import AvailabilityService, CatalogStore

logger = logging.getLogger(__name__)


class BookingWriter(Protocol):
    async def insert_booking(self, booking: BookingRecord) -> BookingRecord:
        """
        Atomically store a booking.

        Raises:
            SlotConflictError: If a holding booking of the same staff overlaps it
        """

    async def upsert_customer(
        self,
        tenant_id: str,
        name: str,
        phone: str,
        email: Optional[str] = None,
    ) -> CustomerRecord:
        """Find the tenant's customer by phone, refreshing name and email, or create one."""


class BookingService:
    """Validates a booking request against current availability and stores it."""

    def __init__(
        self,
        availability: AvailabilityService,
        catalog: CatalogStore,
        writer: BookingWriter,
    ) -> None:
        self._availability = availability
        self._catalog = catalog
        self._writer = writer

    async def create_booking(self, request: BookingRequest, now=None) -> BookingRecord:
        """
        Re-check the requested slot and store the booking.

        Without a staff member the first professional free at that time is
        assigned.

        Raises:
            NotFoundError: If the tenant, service or staff member is unknown
            ValidationError: If the date or time is malformed
            SlotConflictError: If the time is not (or no longer) bookable
        """
        slot_request = await self._availability.build_request(
            tenant_id=request.tenant_id,
            service_id=request.service_id,
            target_date=request.date,
            staff_id=request.staff_id,
            now=now,
        )
        service = await self._catalog.get_service(request.tenant_id, request.service_id)
        if service is None:
            raise NotFoundError(f"Service not found: {request.service_id}")

        day = slot_request.target_date
        minute = parse_clock(request.time)
        if minute >= MINUTES_PER_DAY:
            raise ValidationError(f"Start time must be before 24:00: {request.time}")
        start = pendulum.datetime(
            day.year, day.month, day.day, minute // 60, minute % 60,
            tz=self._availability.timezone,
        )

        day_data = await self._availability.fetch_day_data(
            tenant_id=request.tenant_id, request=slot_request
        )
        slot = self._availability.slot_calculator.check_slot(
            slot_request,
            start,
            day_data.working_intervals,
            bookings=day_data.bookings,
            blocks=day_data.blocks,
        )

        if slot is None:
            raise SlotConflictError(
                f"{request.date} {request.time} is not a bookable time for this service"
            )
        if not slot.available:
            raise SlotConflictError("Time slot is no longer available")

        customer = await self._writer.upsert_customer(
            request.tenant_id,
            request.customer_name,
            request.customer_phone,
            email=request.customer_email or None,
        )

        booking = BookingRecord(
            id=str(uuid.uuid4()),
            tenant_id=request.tenant_id,
            service_id=service.id,
            staff_id=slot.staff_id,
            customer_id=customer.id,
            customer_name=request.customer_name,
            customer_phone=request.customer_phone,
            customer_email=request.customer_email or None,
            starts_at=slot.start.isoformat(),
            ends_at=slot.end.isoformat(),
            status="confirmed",
            notes=request.notes or None,
            created_via=request.created_via,
        )

        stored = await self._writer.insert_booking(booking)
        logger.info(
            "Booking %s created for tenant %s: %s with staff %s",
            stored.id, stored.tenant_id, slot.time_range, stored.staff_id,
        )
        return stored
