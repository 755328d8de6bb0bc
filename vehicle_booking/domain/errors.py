"""
Booking error taxonomy.

Every rejection carries a machine-readable ``code`` so callers can tell
business rejections apart from faults:

* ``InvalidRequest``  -- malformed or rule-violating input, never retried
* ``NotFound``        -- vehicle / reservation absent
* ``Forbidden``       -- actor does not own the reservation
* ``Conflict``        -- availability rejection; conflicting bookings attached
* ``TransientFault``  -- persistence or lock failure, safe to retry later
"""

from __future__ import annotations

from typing import Any, Optional


class BookingError(Exception):
    code = "booking_error"

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}


class InvalidRequest(BookingError):
    code = "invalid_request"


class InvalidStateTransition(InvalidRequest):
    """Raised when a reservation status change violates the state machine."""

    code = "invalid_transition"


class NotFound(BookingError):
    code = "not_found"


class Forbidden(BookingError):
    code = "forbidden"


class Conflict(BookingError):
    code = "conflict"


class TransientFault(BookingError):
    code = "transient_fault"
