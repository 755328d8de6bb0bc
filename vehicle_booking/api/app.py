"""
FastAPI application factory.

* Registers routes for bookings, vehicles and admin.
* Maps booking errors to HTTP status codes.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from vehicle_booking.api.middleware import limiter
from vehicle_booking.api.routes import admin, bookings, vehicles
from vehicle_booking.config import settings
from vehicle_booking.domain.errors import (
    BookingError,
    Conflict,
    Forbidden,
    InvalidRequest,
    NotFound,
    TransientFault,
)

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

# Most specific first: InvalidStateTransition is an InvalidRequest.
ERROR_STATUS = (
    (InvalidRequest, 400),
    (Forbidden, 403),
    (NotFound, 404),
    (Conflict, 409),
    (TransientFault, 503),
)


def status_for(exc: BookingError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.code)
    headers = {"Retry-After": "1"} if isinstance(exc, TransientFault) else None
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code, **exc.details},
        headers=headers,
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Vehicle Booking API",
        description=(
            "Rentals and sales of vehicles.  Date-overlap availability, "
            "weekly-tier pricing and an admin-driven booking lifecycle, "
            "safe under concurrent bookings of the same vehicle."
        ),
        version="1.0.0",
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_exception_handler(BookingError, booking_error_handler)

    # Routers
    app.include_router(bookings.router, prefix="/api/v1")
    app.include_router(vehicles.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
