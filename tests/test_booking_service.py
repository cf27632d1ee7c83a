"""
Tests for the booking commit service against the JSON store.
"""

import asyncio

import pytest
from pydantic import ValidationError as PydanticValidationError

from slotengine.adapters.json_store import JsonDataStore
from slotengine.domain.exceptions import NotFoundError, SlotConflictError, ValidationError
from slotengine.domain.slot_calculator import SlotCalculator
from slotengine.records import BookingRecord, BookingRequest
from slotengine.services.availability import AvailabilityService
from slotengine.services.booking import BookingService

from conftest import NOW, TZ


@pytest.fixture
def store(data_file):
    return JsonDataStore(data_file, timezone=TZ)


@pytest.fixture
def booking_service(store):
    availability = AvailabilityService(
        catalog=store,
        schedules=store,
        bookings=store,
        blocks=store,
        slot_calculator=SlotCalculator(timezone=TZ),
    )
    return BookingService(availability=availability, catalog=store, writer=store)


def _request(time: str, staff_id=None, **kwargs) -> BookingRequest:
    fields = {
        "tenant_id": "salao",
        "service_id": "corte",
        "date": "2025-03-10",
        "time": time,
        "customer_name": "Maria",
        "customer_phone": "+5571988887777",
        "staff_id": staff_id,
    }
    fields.update(kwargs)
    return BookingRequest(**fields)


def test_book_free_slot(booking_service, store):
    booking = asyncio.run(booking_service.create_booking(_request("14:00", "ana"), now=NOW))

    assert booking.staff_id == "ana"
    assert booking.starts_at == "2025-03-10T14:00:00-03:00"
    assert booking.ends_at == "2025-03-10T14:30:00-03:00"
    assert booking.status == "confirmed"
    assert booking.created_via == "public"
    assert booking in store._data.bookings


def test_any_staff_assigns_first_free(booking_service):
    """Ana is booked at 10:00, so Bruno gets the booking."""
    booking = asyncio.run(booking_service.create_booking(_request("10:00"), now=NOW))

    assert booking.staff_id == "bruno"


def test_taken_slot_rejected(booking_service):
    with pytest.raises(SlotConflictError, match="no longer available"):
        asyncio.run(booking_service.create_booking(_request("10:00", "ana"), now=NOW))


def test_second_booking_for_same_time_rejected(booking_service):
    asyncio.run(booking_service.create_booking(_request("14:00", "ana"), now=NOW))

    with pytest.raises(SlotConflictError):
        asyncio.run(booking_service.create_booking(_request("14:00", "ana"), now=NOW))


@pytest.mark.parametrize("time", ["09:05", "07:00", "12:15"])
def test_time_not_offered_rejected(booking_service, time):
    """Off-grid, outside working hours, or inside the break."""
    with pytest.raises(SlotConflictError):
        asyncio.run(booking_service.create_booking(_request(time, "ana"), now=NOW))


def test_unknown_service(booking_service):
    with pytest.raises(NotFoundError):
        asyncio.run(booking_service.create_booking(_request("14:00", service_id="nope"), now=NOW))


def test_concurrent_commits_only_one_wins(booking_service):
    async def race():
        return await asyncio.gather(
            booking_service.create_booking(_request("15:00", "ana"), now=NOW),
            booking_service.create_booking(_request("15:00", "ana"), now=NOW),
            return_exceptions=True,
        )

    results = asyncio.run(race())

    assert sum(isinstance(r, BookingRecord) for r in results) == 1
    assert sum(isinstance(r, SlotConflictError) for r in results) == 1


def test_request_requires_customer():
    with pytest.raises(PydanticValidationError):
        _request("14:00", customer_name="  ")


def test_request_rejects_bad_time():
    with pytest.raises(PydanticValidationError):
        _request("14h")


def test_request_rejects_end_of_day():
    with pytest.raises(PydanticValidationError):
        _request("24:00")


def test_end_of_day_rejected_by_service(booking_service):
    """A request built without validation still fails with a domain error."""
    request = BookingRequest.model_construct(
        tenant_id="salao",
        service_id="corte",
        date="2025-03-10",
        time="24:00",
        customer_name="Maria",
        customer_phone="+5571988887777",
    )

    with pytest.raises(ValidationError, match="before 24:00"):
        asyncio.run(booking_service.create_booking(request, now=NOW))


def test_inactive_staff_never_assigned(booking_service):
    """Carlos still has a Monday schedule but is deactivated."""
    asyncio.run(booking_service.create_booking(_request("10:00", "bruno"), now=NOW))

    with pytest.raises(SlotConflictError):
        asyncio.run(booking_service.create_booking(_request("10:00"), now=NOW))


def test_booking_is_linked_to_customer(booking_service, store):
    booking = asyncio.run(booking_service.create_booking(_request("14:00", "ana"), now=NOW))

    customer = store._data.customers[0]
    assert booking.customer_id == customer.id
    assert (customer.tenant_id, customer.name, customer.phone) == ("salao", "Maria", "+5571988887777")


def test_returning_customer_is_reused(booking_service, store):
    first = asyncio.run(booking_service.create_booking(_request("14:00", "ana"), now=NOW))
    second = asyncio.run(
        booking_service.create_booking(
            _request("15:00", "ana", customer_name="Maria Souza", customer_email="maria@example.com"),
            now=NOW,
        )
    )

    assert second.customer_id == first.customer_id
    assert len(store._data.customers) == 1
    assert store._data.customers[0].name == "Maria Souza"
    assert store._data.customers[0].email == "maria@example.com"


def test_refused_booking_creates_no_customer(booking_service, store):
    with pytest.raises(SlotConflictError):
        asyncio.run(booking_service.create_booking(_request("10:00", "ana"), now=NOW))

    assert store._data.customers == []
