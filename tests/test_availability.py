"""Availability rules, both as pure functions and against the database."""

from datetime import date

import pytest

from vehicle_booking.domain.availability import (
    AvailabilityReason,
    ensure_sellable,
    evaluate_rental_availability,
)
from vehicle_booking.domain.entities import RentalInterval, Vehicle
from vehicle_booking.domain.enums import (
    RentalStatus,
    SaleStatus,
    VehicleKind,
    VehicleStatus,
)
from vehicle_booking.domain.errors import Conflict, InvalidRequest, NotFound
from vehicle_booking.domain.overlap import DateRange
from tests.conftest import add_rental, add_sale, add_vehicle

JAN_15 = date(2024, 1, 15)
JAN_20 = date(2024, 1, 20)
PERIOD = DateRange(JAN_15, JAN_20)


def _interval(rental_id, start, end):
    return RentalInterval(rental_id, start, end, RentalStatus.CONFIRMED)


class TestEvaluateRentalAvailability:
    def test_free_vehicle_is_available(self):
        result = evaluate_rental_availability(Vehicle(id=1), PERIOD, [], [])
        assert result.available
        assert result.reason is None

    @pytest.mark.parametrize(
        "vehicle",
        [
            Vehicle(id=1, is_active=False),
            Vehicle(id=1, status=VehicleStatus.SOLD),
            Vehicle(id=1, kind=VehicleKind.SALE_ONLY),
        ],
    )
    def test_ineligible_vehicle(self, vehicle):
        result = evaluate_rental_availability(vehicle, PERIOD, [], [])
        assert result.reason == AvailabilityReason.VEHICLE_NOT_RENTABLE
        assert result.message == "Vehicle is not available for rental"

    def test_rented_vehicle_can_still_take_other_dates(self):
        vehicle = Vehicle(id=1, status=VehicleStatus.RENTED)
        assert evaluate_rental_availability(vehicle, PERIOD, [], []).available

    def test_blocking_sale_wins_over_free_dates(self):
        result = evaluate_rental_availability(
            Vehicle(id=1, kind=VehicleKind.BOTH), PERIOD, [], [42]
        )
        assert result.reason == AvailabilityReason.SALE_PENDING
        assert result.blocking_sale_ids == (42,)

    def test_overlap_reports_conflicts(self):
        clash = _interval(5, date(2024, 1, 18), date(2024, 1, 25))
        result = evaluate_rental_availability(Vehicle(id=1), PERIOD, [clash], [])
        assert result.reason == AvailabilityReason.DATES_UNAVAILABLE
        assert result.conflicts == (clash,)

    def test_excluded_rental_is_ignored(self):
        clash = _interval(5, date(2024, 1, 18), date(2024, 1, 25))
        result = evaluate_rental_availability(
            Vehicle(id=1), PERIOD, [clash], [], exclude_rental_id=5
        )
        assert result.available

    def test_conflict_error_carries_details(self):
        clash = _interval(5, date(2024, 1, 18), date(2024, 1, 25))
        error = evaluate_rental_availability(
            Vehicle(id=1), PERIOD, [clash], []
        ).as_conflict()
        assert isinstance(error, Conflict)
        assert error.code == "dates_unavailable"
        assert error.details["conflicting_rentals"] == [
            {"id": 5, "start_date": "2024-01-18", "end_date": "2024-01-25"}
        ]


class TestEnsureSellable:
    def test_sellable(self):
        ensure_sellable(Vehicle(id=1, kind=VehicleKind.BOTH, sale_price=1))

    def test_rental_only_vehicle(self):
        with pytest.raises(Conflict) as exc:
            ensure_sellable(Vehicle(id=1, kind=VehicleKind.RENTAL_ONLY, sale_price=1))
        assert exc.value.code == "vehicle_not_for_sale"

    def test_rented_vehicle_cannot_be_sold(self):
        with pytest.raises(Conflict):
            ensure_sellable(
                Vehicle(
                    id=1,
                    kind=VehicleKind.BOTH,
                    status=VehicleStatus.RENTED,
                    sale_price=1,
                )
            )

    def test_missing_price(self):
        with pytest.raises(Conflict, match="Vehicle does not have a sale price"):
            ensure_sellable(Vehicle(id=1, kind=VehicleKind.SALE_ONLY))


class TestCheckAvailability:
    @pytest.mark.asyncio
    async def test_invalid_range_rejected_before_lookup(self, manager):
        # vehicle 999 does not exist; the range is checked first
        with pytest.raises(InvalidRequest):
            await manager.check_availability(999, JAN_20, JAN_15)

    @pytest.mark.asyncio
    async def test_unknown_vehicle(self, manager):
        with pytest.raises(NotFound):
            await manager.check_availability(999, JAN_15, JAN_20)

    @pytest.mark.asyncio
    async def test_back_to_back_rentals_allowed(self, manager, session_factory):
        vehicle_id = await add_vehicle(session_factory)
        await add_rental(session_factory, vehicle_id, date(2024, 1, 10), JAN_15)
        await add_rental(session_factory, vehicle_id, JAN_20, date(2024, 1, 25))

        result = await manager.check_availability(vehicle_id, JAN_15, JAN_20)
        assert result.available

    @pytest.mark.asyncio
    async def test_cancelled_and_completed_rentals_do_not_block(
        self, manager, session_factory
    ):
        vehicle_id = await add_vehicle(session_factory)
        await add_rental(
            session_factory, vehicle_id, JAN_15, JAN_20, status=RentalStatus.CANCELLED
        )
        await add_rental(
            session_factory, vehicle_id, JAN_15, JAN_20, status=RentalStatus.COMPLETED
        )

        assert (await manager.check_availability(vehicle_id, JAN_15, JAN_20)).available

    @pytest.mark.asyncio
    async def test_overlap_lists_conflicting_rental(self, manager, session_factory):
        vehicle_id = await add_vehicle(session_factory)
        rental_id = await add_rental(
            session_factory, vehicle_id, date(2024, 1, 18), date(2024, 1, 22)
        )

        result = await manager.check_availability(vehicle_id, JAN_15, JAN_20)
        assert not result.available
        assert [c.id for c in result.conflicts] == [rental_id]

        again = await manager.check_availability(vehicle_id, JAN_15, JAN_20)
        assert again == result

    @pytest.mark.asyncio
    async def test_exclude_rental_id(self, manager, session_factory):
        vehicle_id = await add_vehicle(session_factory)
        rental_id = await add_rental(session_factory, vehicle_id, JAN_15, JAN_20)

        result = await manager.check_availability(
            vehicle_id, JAN_15, JAN_20, exclude_rental_id=rental_id
        )
        assert result.available

    @pytest.mark.asyncio
    async def test_pending_sale_blocks_rental(self, manager, session_factory):
        vehicle_id = await add_vehicle(
            session_factory, kind=VehicleKind.BOTH, sale_price="20000"
        )
        sale_id = await add_sale(session_factory, vehicle_id)

        result = await manager.check_availability(vehicle_id, JAN_15, JAN_20)
        assert result.reason == AvailabilityReason.SALE_PENDING
        assert result.blocking_sale_ids == (sale_id,)

    @pytest.mark.asyncio
    async def test_cancelled_sale_does_not_block(self, manager, session_factory):
        vehicle_id = await add_vehicle(
            session_factory, kind=VehicleKind.BOTH, sale_price="20000"
        )
        await add_sale(session_factory, vehicle_id, status=SaleStatus.CANCELLED)

        assert (await manager.check_availability(vehicle_id, JAN_15, JAN_20)).available
