"""
JSON file backed data store.

Implements the catalog, schedule, booking and block store protocols over a
single JSON document with the tables of the booking platform
(tenants, services, staff, customers, schedules, bookings, blocks).
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from pathlib import Path
from typing import List, Optional, Sequence

from pendulum import DateTime
from pydantic import ValidationError as PydanticValidationError

from ..config import AppConfig
from ..domain.exceptions import SlotConflictError, StoreError, ValidationError
from ..domain.models import (
    DEFAULT_TIMEZONE,
    BlockInterval,
    BookedInterval,
    TimeRange,
    WorkingInterval,
)
from ..records import (
    HOLDING_STATUSES,
    BookingRecord,
    CustomerRecord,
    DataFile,
    ServiceRecord,
    StaffRecord,
    TenantRecord,
)

logger = logging.getLogger(__name__)


class JsonDataStore:
    """
    Store that keeps the whole data file in memory.

    Reads never touch the disk after loading; insert_booking and
    upsert_customer write the file back. Writes are serialised with an
    asyncio lock and inserts re-check overlap inside it, so two concurrent
    bookings for the same staff and time cannot both succeed. A failed write
    leaves the in-memory data as it was.
    """

    def __init__(
        self,
        data_file: Path,
        timezone: str = DEFAULT_TIMEZONE,
        holding_statuses: Optional[Sequence[str]] = None,
    ):
        """
        Load the data file.

        Args:
            data_file: Path to the JSON document
            timezone: Timezone for naive timestamps in the file
            holding_statuses: Booking statuses that occupy a slot

        Raises:
            StoreError: If the file is missing or malformed
        """
        self.data_file = Path(data_file)
        self.timezone = timezone
        self.holding_statuses = [s.lower() for s in (holding_statuses or HOLDING_STATUSES)]
        self._lock = asyncio.Lock()
        self._data = self._load_data()

    @classmethod
    def from_config(cls, config: AppConfig) -> "JsonDataStore":
        return cls(
            data_file=config.data_file,
            timezone=config.timezone,
            holding_statuses=config.holding_statuses,
        )

    def _load_data(self) -> DataFile:
        """Load and validate the JSON document."""
        if not self.data_file.exists():
            raise StoreError(f"Data file not found: {self.data_file}")

        try:
            with open(self.data_file, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as exc:
            raise StoreError(f"Invalid JSON in {self.data_file}: {exc}") from exc

        try:
            return DataFile.model_validate(raw)
        except PydanticValidationError as exc:
            raise StoreError(f"Invalid data in {self.data_file}: {exc}") from exc

    def save(self) -> None:
        """
        Write the current data back to the file.

        Raises:
            StoreError: If the file cannot be written
        """
        payload = self._data.model_dump(mode="json")
        try:
            with open(self.data_file, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
                f.write("\n")
        except OSError as exc:
            raise StoreError(f"Could not write {self.data_file}: {exc}") from exc

    async def get_tenant(self, tenant_id: str) -> Optional[TenantRecord]:
        for tenant in self._data.tenants:
            if tenant.id == tenant_id:
                return tenant
        return None

    async def get_service(self, tenant_id: str, service_id: str) -> Optional[ServiceRecord]:
        for service in self._data.services:
            if service.id == service_id and service.tenant_id == tenant_id:
                return service
        return None

    async def list_staff(self, tenant_id: str) -> List[StaffRecord]:
        return [
            member for member in self._data.staff
            if member.tenant_id == tenant_id and member.active
        ]

    async def list_schedules(self, tenant_id: str, staff_id: str) -> List[WorkingInterval]:
        """Every valid schedule row of a staff member, any weekday."""
        intervals = []
        for weekday in range(7):
            intervals.extend(await self.get_working_intervals(tenant_id, weekday, staff_id=staff_id))
        return intervals

    async def get_working_intervals(
        self,
        tenant_id: str,
        weekday: int,
        staff_id: Optional[str] = None,
    ) -> List[WorkingInterval]:
        intervals: List[WorkingInterval] = []
        active_staff = {
            member.id for member in self._data.staff
            if member.tenant_id == tenant_id and member.active
        }

        for schedule in self._data.schedules:
            if schedule.tenant_id != tenant_id or schedule.weekday != weekday or not schedule.active:
                continue
            if schedule.staff_id not in active_staff:
                continue
            if staff_id is not None and schedule.staff_id != staff_id:
                continue

            try:
                intervals.append(schedule.to_working_interval())
            except ValidationError as exc:
                logger.warning("Skipping schedule %s of staff %s: %s", schedule.id, schedule.staff_id, exc)

        return intervals

    async def get_booked_intervals(
        self,
        tenant_id: str,
        start: DateTime,
        end: DateTime,
        staff_id: Optional[str] = None,
    ) -> List[BookedInterval]:
        window = TimeRange(start=start, end=end)
        intervals: List[BookedInterval] = []

        for booking in self._data.bookings:
            if booking.tenant_id != tenant_id or booking.status.lower() not in self.holding_statuses:
                continue
            if staff_id is not None and booking.staff_id not in (None, staff_id):
                continue

            try:
                interval = booking.to_booked_interval(self.timezone)
            except ValidationError as exc:
                logger.warning("Skipping booking %s: %s", booking.id, exc)
                continue

            if interval.time_range.overlaps(window):
                intervals.append(interval)

        return intervals

    async def get_block_intervals(
        self,
        tenant_id: str,
        start: DateTime,
        end: DateTime,
        staff_id: Optional[str] = None,
    ) -> List[BlockInterval]:
        window = TimeRange(start=start, end=end)
        intervals: List[BlockInterval] = []

        for block in self._data.blocks:
            if block.tenant_id != tenant_id:
                continue
            if staff_id is not None and block.staff_id not in (None, staff_id):
                continue

            try:
                interval = block.to_block_interval(self.timezone)
            except ValidationError as exc:
                logger.warning("Skipping block %s: %s", block.id, exc)
                continue

            if interval.time_range.overlaps(window):
                intervals.append(interval)

        return intervals

    async def insert_booking(self, booking: BookingRecord) -> BookingRecord:
        """
        Store a booking unless a holding booking already overlaps it.

        Raises:
            SlotConflictError: If the staff member is already booked
            StoreError: If the file cannot be written
        """
        new_range = booking.time_range(self.timezone)

        async with self._lock:
            for existing in self._data.bookings:
                if existing.tenant_id != booking.tenant_id:
                    continue
                if existing.status.lower() not in self.holding_statuses:
                    continue
                same_staff = (
                    booking.staff_id is None
                    or existing.staff_id is None
                    or existing.staff_id == booking.staff_id
                )
                if same_staff and existing.time_range(self.timezone).overlaps(new_range):
                    raise SlotConflictError("Time slot is no longer available")

            self._data.bookings.append(booking)
            try:
                self.save()
            except StoreError:
                self._data.bookings.pop()
                raise

        return booking

    async def upsert_customer(
        self,
        tenant_id: str,
        name: str,
        phone: str,
        email: Optional[str] = None,
    ) -> CustomerRecord:
        """
        Return the tenant's customer with this phone, creating it if needed.

        An existing customer gets the given name and email.

        Raises:
            StoreError: If the file cannot be written
        """
        async with self._lock:
            customer = next(
                (
                    c for c in self._data.customers
                    if c.tenant_id == tenant_id and c.phone == phone
                ),
                None,
            )

            if customer is None:
                customer = CustomerRecord(
                    id=str(uuid.uuid4()),
                    tenant_id=tenant_id,
                    name=name,
                    phone=phone,
                    email=email,
                )
                self._data.customers.append(customer)
                try:
                    self.save()
                except StoreError:
                    self._data.customers.pop()
                    raise
                logger.debug("Created customer %s for tenant %s", customer.id, tenant_id)
                return customer

            previous = (customer.name, customer.email)
            customer.name, customer.email = name, email
            try:
                self.save()
            except StoreError:
                customer.name, customer.email = previous
                raise
            return customer
