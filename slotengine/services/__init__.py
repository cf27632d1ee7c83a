"""
Service layer helpers that orchestrate store adapters and domain logic.
"""

from .availability import (
    AvailabilityService,
    BlockStore,
    BookingStore,
    CatalogStore,
    ScheduleStore,
)
from .booking import BookingService, BookingWriter

__all__ = [
    "AvailabilityService",
    "BlockStore",
    "BookingService",
    "BookingStore",
    "BookingWriter",
    "CatalogStore",
    "ScheduleStore",
]
