"""
Vehicle catalogue
=================

GET /api/v1/vehicles -- filter, sort and page vehicles; with ``start_date`` and
                        ``end_date`` each vehicle carries its rental availability.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from vehicle_booking.api.dependencies import get_queries
from vehicle_booking.api.middleware import limiter
from vehicle_booking.api.schemas import (
    PaginationResponse,
    VehiclePageResponse,
    VehicleResponse,
)
from vehicle_booking.config import settings
from vehicle_booking.domain.enums import VehicleKind
from vehicle_booking.domain.listing import PageRequest, VehicleListingQuery, VehicleSort
from vehicle_booking.services.queries import BookingQueries

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@router.get(
    "",
    response_model=VehiclePageResponse,
    summary="List vehicles",
)
@limiter.limit(settings.rate_limit)
async def list_vehicles(
    request: Request,
    kind: Optional[VehicleKind] = None,
    active: Optional[bool] = True,
    search: Optional[str] = Query(None, max_length=100),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    available_only: bool = True,
    sort: VehicleSort = VehicleSort.NEWEST,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    queries: BookingQueries = Depends(get_queries),
):
    result = await queries.list_vehicles(
        VehicleListingQuery(
            kind=kind,
            active=active,
            search=search,
            start_date=start_date,
            end_date=end_date,
            available_only=available_only,
            sort=sort,
            page=PageRequest(page, limit),
        )
    )
    return VehiclePageResponse(
        items=[
            VehicleResponse.from_entity(item.vehicle, item.availability)
            for item in result.items
        ],
        pagination=PaginationResponse.from_pagination(result.pagination),
    )
