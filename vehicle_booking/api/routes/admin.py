"""
Admin / observability endpoints
===============================

GET   /api/v1/admin/rentals                    -- all rentals, optional status filter
GET   /api/v1/admin/sales                      -- all sales, optional status filter
GET   /api/v1/admin/bookings                   -- all rentals and sales, newest first
PATCH /api/v1/admin/rentals/{rental_id}/status -- drive the rental lifecycle
PATCH /api/v1/admin/sales/{sale_id}/status     -- drive the sale lifecycle
GET   /api/v1/admin/health                     -- simple health check
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from vehicle_booking.api.dependencies import (
    get_queries,
    get_transition_engine,
    require_admin,
)
from vehicle_booking.api.middleware import limiter
from vehicle_booking.api.schemas import (
    BookingListItem,
    HealthResponse,
    PaginationResponse,
    RentalPageResponse,
    RentalResponse,
    RentalStatusUpdateRequest,
    SalePageResponse,
    SaleResponse,
    SaleStatusUpdateRequest,
)
from vehicle_booking.config import settings
from vehicle_booking.domain.entities import Identity
from vehicle_booking.domain.enums import RentalStatus, SaleStatus
from vehicle_booking.domain.listing import PageRequest
from vehicle_booking.services.queries import BookingQueries
from vehicle_booking.services.transitions import StatusTransitionEngine

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/rentals",
    response_model=RentalPageResponse,
    summary="List all rentals",
)
@limiter.limit(settings.rate_limit)
async def list_rentals(
    request: Request,
    status: Optional[RentalStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    admin: Identity = Depends(require_admin),
    queries: BookingQueries = Depends(get_queries),
):
    result = await queries.list_rentals(PageRequest(page, limit), status)
    return RentalPageResponse(
        items=[RentalResponse.from_entity(r) for r in result.items],
        pagination=PaginationResponse.from_pagination(result.pagination),
    )


@router.get(
    "/sales",
    response_model=SalePageResponse,
    summary="List all sales",
)
@limiter.limit(settings.rate_limit)
async def list_sales(
    request: Request,
    status: Optional[SaleStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    admin: Identity = Depends(require_admin),
    queries: BookingQueries = Depends(get_queries),
):
    result = await queries.list_sales(PageRequest(page, limit), status)
    return SalePageResponse(
        items=[SaleResponse.from_entity(s) for s in result.items],
        pagination=PaginationResponse.from_pagination(result.pagination),
    )


@router.get(
    "/bookings",
    response_model=list[BookingListItem],
    summary="List every rental and sale, newest first",
)
@limiter.limit(settings.rate_limit)
async def list_bookings(
    request: Request,
    admin: Identity = Depends(require_admin),
    queries: BookingQueries = Depends(get_queries),
):
    return [BookingListItem.from_entity(b) for b in await queries.list_all_bookings()]


@router.patch(
    "/rentals/{rental_id}/status",
    response_model=RentalResponse,
    summary="Update a rental's status (cascades to the vehicle)",
)
@limiter.limit(settings.rate_limit)
async def update_rental_status(
    request: Request,
    rental_id: int,
    body: RentalStatusUpdateRequest,
    admin: Identity = Depends(require_admin),
    engine: StatusTransitionEngine = Depends(get_transition_engine),
):
    rental = await engine.set_rental_status(
        rental_id,
        body.status,
        body.payment_status,
        body.cancellation_reason,
        actor_id=admin.user_id,
    )
    return RentalResponse.from_entity(rental)


@router.patch(
    "/sales/{sale_id}/status",
    response_model=SaleResponse,
    summary="Update a sale's status (cascades to the vehicle)",
)
@limiter.limit(settings.rate_limit)
async def update_sale_status(
    request: Request,
    sale_id: int,
    body: SaleStatusUpdateRequest,
    admin: Identity = Depends(require_admin),
    engine: StatusTransitionEngine = Depends(get_transition_engine),
):
    sale = await engine.set_sale_status(
        sale_id,
        body.status,
        body.payment_status,
        body.cancellation_reason,
        actor_id=admin.user_id,
    )
    return SaleResponse.from_entity(sale)


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
