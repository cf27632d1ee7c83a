"""
Domain layer - Pure business logic without external dependencies.
"""

from .exceptions import (
    NotFoundError,
    SlotConflictError,
    SlotEngineError,
    StoreError,
    ValidationError,
)
from .models import (
    BlockInterval,
    BookedInterval,
    BreakInterval,
    CandidateSlot,
    ConflictKind,
    SlotListing,
    SlotRequest,
    SlotView,
    TimeRange,
    WorkingInterval,
)
from .slot_calculator import SlotCalculator

__all__ = [
    "BlockInterval",
    "BookedInterval",
    "BreakInterval",
    "CandidateSlot",
    "ConflictKind",
    "NotFoundError",
    "SlotCalculator",
    "SlotConflictError",
    "SlotEngineError",
    "SlotListing",
    "SlotRequest",
    "SlotView",
    "StoreError",
    "TimeRange",
    "ValidationError",
    "WorkingInterval",
]
