"""
Booking endpoints
=================

POST  /api/v1/bookings/check-availability        -- availability for a date range
POST  /api/v1/bookings/rentals                   -- create a rental (201)
POST  /api/v1/bookings/sales                     -- create a sale (201)
GET   /api/v1/bookings/rentals                   -- caller's rentals, paginated
GET   /api/v1/bookings/sales                     -- caller's sales, paginated
GET   /api/v1/bookings/all                       -- caller's rentals and sales
GET   /api/v1/bookings/rentals/{rental_id}       -- one rental (owner or admin)
GET   /api/v1/bookings/sales/{sale_id}           -- one sale (owner or admin)
PATCH /api/v1/bookings/rentals/{rental_id}/cancel
PATCH /api/v1/bookings/sales/{sale_id}/cancel
GET   /api/v1/bookings/vehicle/{vehicle_id}/rentals -- public rental schedule
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from vehicle_booking.api.dependencies import (
    get_booking_manager,
    get_identity,
    get_queries,
    get_transition_engine,
    require_identity,
)
from vehicle_booking.api.middleware import limiter
from vehicle_booking.api.schemas import (
    AvailabilityCheckRequest,
    AvailabilityResponse,
    BookingListItem,
    CancelBookingRequest,
    PaginationResponse,
    RentalCreateRequest,
    RentalPageResponse,
    RentalResponse,
    SaleCreateRequest,
    SalePageResponse,
    SaleResponse,
    ScheduledRentalResponse,
)
from vehicle_booking.config import settings
from vehicle_booking.domain.entities import Identity
from vehicle_booking.domain.listing import PageRequest
from vehicle_booking.services.bookings import (
    BookingLifecycleManager,
    RentalRequest,
    SaleRequest,
)
from vehicle_booking.services.queries import BookingQueries
from vehicle_booking.services.transitions import StatusTransitionEngine

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post(
    "/check-availability",
    response_model=AvailabilityResponse,
    summary="Check whether a vehicle can be rented for a date range",
)
@limiter.limit(settings.rate_limit)
async def check_availability(
    request: Request,
    body: AvailabilityCheckRequest,
    manager: BookingLifecycleManager = Depends(get_booking_manager),
):
    result = await manager.check_availability(
        body.vehicle_id, body.start_date, body.end_date, body.exclude_rental_id
    )
    return AvailabilityResponse.from_result(result)


@router.post(
    "/rentals",
    status_code=201,
    response_model=RentalResponse,
    summary="Create a rental booking",
    responses={409: {"description": "Vehicle not available for these dates."}},
)
@limiter.limit(settings.rate_limit)
async def create_rental(
    request: Request,
    body: RentalCreateRequest,
    identity: Optional[Identity] = Depends(get_identity),
    manager: BookingLifecycleManager = Depends(get_booking_manager),
):
    rental = await manager.create_rental(
        RentalRequest(
            vehicle_id=body.vehicle_id,
            start_date=body.start_date,
            end_date=body.end_date,
            agree_to_terms=body.agree_to_terms,
            payment_method=body.payment_method,
            notes=body.notes,
            guest=body.guest_info.to_profile() if body.guest_info else None,
            idempotency_key=body.idempotency_key,
        ),
        identity,
    )
    return RentalResponse.from_entity(rental)


@router.post(
    "/sales",
    status_code=201,
    response_model=SaleResponse,
    summary="Create a sale booking",
    responses={409: {"description": "Vehicle cannot be sold."}},
)
@limiter.limit(settings.rate_limit)
async def create_sale(
    request: Request,
    body: SaleCreateRequest,
    identity: Optional[Identity] = Depends(get_identity),
    manager: BookingLifecycleManager = Depends(get_booking_manager),
):
    sale = await manager.create_sale(
        SaleRequest(
            vehicle_id=body.vehicle_id,
            agree_to_terms=body.agree_to_terms,
            payment_method=body.payment_method,
            notes=body.notes,
            guest=body.guest_info.to_profile() if body.guest_info else None,
            idempotency_key=body.idempotency_key,
        ),
        identity,
    )
    return SaleResponse.from_entity(sale)


@router.get(
    "/rentals",
    response_model=RentalPageResponse,
    summary="List the caller's rentals",
)
@limiter.limit(settings.rate_limit)
async def list_my_rentals(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    identity: Identity = Depends(require_identity),
    queries: BookingQueries = Depends(get_queries),
):
    result = await queries.list_user_rentals(identity.user_id, PageRequest(page, limit))
    return RentalPageResponse(
        items=[RentalResponse.from_entity(r) for r in result.items],
        pagination=PaginationResponse.from_pagination(result.pagination),
    )


@router.get(
    "/sales",
    response_model=SalePageResponse,
    summary="List the caller's sales",
)
@limiter.limit(settings.rate_limit)
async def list_my_sales(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    identity: Identity = Depends(require_identity),
    queries: BookingQueries = Depends(get_queries),
):
    result = await queries.list_user_sales(identity.user_id, PageRequest(page, limit))
    return SalePageResponse(
        items=[SaleResponse.from_entity(s) for s in result.items],
        pagination=PaginationResponse.from_pagination(result.pagination),
    )


@router.get(
    "/all",
    response_model=list[BookingListItem],
    summary="List all of the caller's rentals and sales, newest first",
)
@limiter.limit(settings.rate_limit)
async def list_my_bookings(
    request: Request,
    identity: Identity = Depends(require_identity),
    queries: BookingQueries = Depends(get_queries),
):
    bookings = await queries.list_user_bookings(identity.user_id)
    return [BookingListItem.from_entity(b) for b in bookings]


@router.get(
    "/rentals/{rental_id}",
    response_model=RentalResponse,
    summary="Get a rental",
)
@limiter.limit(settings.rate_limit)
async def get_rental(
    request: Request,
    rental_id: int,
    identity: Identity = Depends(require_identity),
    queries: BookingQueries = Depends(get_queries),
):
    return RentalResponse.from_entity(await queries.get_rental(rental_id, identity))


@router.get(
    "/sales/{sale_id}",
    response_model=SaleResponse,
    summary="Get a sale",
)
@limiter.limit(settings.rate_limit)
async def get_sale(
    request: Request,
    sale_id: int,
    identity: Identity = Depends(require_identity),
    queries: BookingQueries = Depends(get_queries),
):
    return SaleResponse.from_entity(await queries.get_sale(sale_id, identity))


@router.patch(
    "/rentals/{rental_id}/cancel",
    response_model=RentalResponse,
    summary="Cancel a pending rental (owner only)",
)
@limiter.limit(settings.rate_limit)
async def cancel_rental(
    request: Request,
    rental_id: int,
    body: CancelBookingRequest,
    identity: Identity = Depends(require_identity),
    engine: StatusTransitionEngine = Depends(get_transition_engine),
):
    rental = await engine.cancel_rental(
        rental_id, identity.user_id, body.cancellation_reason
    )
    return RentalResponse.from_entity(rental)


@router.patch(
    "/sales/{sale_id}/cancel",
    response_model=SaleResponse,
    summary="Cancel a pending sale (owner only)",
)
@limiter.limit(settings.rate_limit)
async def cancel_sale(
    request: Request,
    sale_id: int,
    body: CancelBookingRequest,
    identity: Identity = Depends(require_identity),
    engine: StatusTransitionEngine = Depends(get_transition_engine),
):
    sale = await engine.cancel_sale(sale_id, identity.user_id, body.cancellation_reason)
    return SaleResponse.from_entity(sale)


@router.get(
    "/vehicle/{vehicle_id}/rentals",
    response_model=list[ScheduledRentalResponse],
    summary="Rental schedule of a vehicle",
)
@limiter.limit(settings.rate_limit)
async def list_vehicle_rentals(
    request: Request,
    vehicle_id: int,
    queries: BookingQueries = Depends(get_queries),
):
    rentals = await queries.list_vehicle_rentals(vehicle_id)
    return [ScheduledRentalResponse.from_entity(r) for r in rentals]
