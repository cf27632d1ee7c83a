"""
Domain-specific exception hierarchy for the slot engine.
"""


class SlotEngineError(Exception):
    """Base class for all application-level errors."""


class ValidationError(SlotEngineError, ValueError):
    """Raised when a request or interval is malformed."""


class NotFoundError(SlotEngineError, LookupError):
    """Raised when a tenant, service or staff member cannot be resolved."""


class SlotConflictError(SlotEngineError):
    """Raised when a requested time can no longer be booked."""


class StoreError(SlotEngineError):
    """Raised when the backing data file is missing or malformed."""
