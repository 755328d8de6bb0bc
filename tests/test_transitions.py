"""Admin status transitions, vehicle cascade and owner cancellations."""

from datetime import date

import pytest

from vehicle_booking.domain.enums import (
    RENTAL_TRANSITIONS,
    RENTAL_VEHICLE_CASCADE,
    SALE_TRANSITIONS,
    SALE_VEHICLE_CASCADE,
    PaymentStatus,
    RentalStatus,
    SaleStatus,
    VehicleKind,
    VehicleStatus,
)
from vehicle_booking.domain.errors import (
    Conflict,
    Forbidden,
    InvalidRequest,
    InvalidStateTransition,
    NotFound,
)
from vehicle_booking.services.transitions import ADMIN_CANCEL_REASON
from tests.conftest import (
    add_rental,
    add_sale,
    add_user,
    add_vehicle,
    vehicle_status,
)

ADMIN_ID = 1000
JAN_15 = date(2024, 1, 15)
JAN_20 = date(2024, 1, 20)


def _paths(table, start):
    """Every route from *start* to a terminal status."""
    if not table[start]:
        return [(start,)]
    return [
        (start, *rest)
        for nxt in sorted(table[start], key=lambda s: s.value)
        for rest in _paths(table, nxt)
    ]


RENTAL_PATHS = _paths(RENTAL_TRANSITIONS, RentalStatus.PENDING)
SALE_PATHS = _paths(SALE_TRANSITIONS, SaleStatus.PENDING)


def _path_id(path):
    return "-".join(s.value for s in path)


class TestRentalLifecycle:
    @pytest.mark.asyncio
    async def test_full_lifecycle_cascades_to_vehicle(
        self, transitions, session_factory
    ):
        vehicle_id = await add_vehicle(session_factory)
        rental_id = await add_rental(session_factory, vehicle_id, JAN_15, JAN_20)

        rental = await transitions.set_rental_status(
            rental_id, RentalStatus.CONFIRMED, PaymentStatus.PAID, actor_id=ADMIN_ID
        )
        assert rental.status == RentalStatus.CONFIRMED
        assert rental.payment_status == PaymentStatus.PAID
        assert await vehicle_status(session_factory, vehicle_id) == VehicleStatus.RENTED

        await transitions.set_rental_status(
            rental_id, RentalStatus.ACTIVE, actor_id=ADMIN_ID
        )
        assert await vehicle_status(session_factory, vehicle_id) == VehicleStatus.RENTED

        await transitions.set_rental_status(
            rental_id, RentalStatus.COMPLETED, actor_id=ADMIN_ID
        )
        assert (
            await vehicle_status(session_factory, vehicle_id) == VehicleStatus.AVAILABLE
        )

    @pytest.mark.asyncio
    async def test_admin_cancel_releases_vehicle_with_default_reason(
        self, transitions, session_factory
    ):
        vehicle_id = await add_vehicle(session_factory)
        rental_id = await add_rental(
            session_factory, vehicle_id, JAN_15, JAN_20, status=RentalStatus.CONFIRMED
        )

        rental = await transitions.set_rental_status(
            rental_id, RentalStatus.CANCELLED, actor_id=ADMIN_ID
        )

        assert rental.status == RentalStatus.CANCELLED
        assert rental.cancellation_reason == ADMIN_CANCEL_REASON
        assert rental.cancelled_by == ADMIN_ID
        assert rental.cancelled_at is not None
        assert (
            await vehicle_status(session_factory, vehicle_id) == VehicleStatus.AVAILABLE
        )

    @pytest.mark.asyncio
    async def test_admin_cancel_keeps_given_reason(self, transitions, session_factory):
        vehicle_id = await add_vehicle(session_factory)
        rental_id = await add_rental(session_factory, vehicle_id, JAN_15, JAN_20)

        rental = await transitions.set_rental_status(
            rental_id,
            RentalStatus.CANCELLED,
            cancellation_reason="Vehicle damaged",
            actor_id=ADMIN_ID,
        )
        assert rental.cancellation_reason == "Vehicle damaged"

    @pytest.mark.asyncio
    async def test_illegal_transition_writes_nothing(self, transitions, session_factory):
        vehicle_id = await add_vehicle(session_factory)
        rental_id = await add_rental(session_factory, vehicle_id, JAN_15, JAN_20)

        with pytest.raises(InvalidStateTransition):
            await transitions.set_rental_status(
                rental_id, RentalStatus.COMPLETED, PaymentStatus.PAID, actor_id=ADMIN_ID
            )

        rental = await transitions.set_rental_status(
            rental_id, RentalStatus.PENDING, actor_id=ADMIN_ID
        )
        assert rental.payment_status == PaymentStatus.PENDING
        assert (
            await vehicle_status(session_factory, vehicle_id) == VehicleStatus.AVAILABLE
        )

    @pytest.mark.asyncio
    async def test_same_status_updates_payment_only(self, transitions, session_factory):
        vehicle_id = await add_vehicle(session_factory)
        rental_id = await add_rental(
            session_factory, vehicle_id, JAN_15, JAN_20, status=RentalStatus.CONFIRMED
        )

        rental = await transitions.set_rental_status(
            rental_id, RentalStatus.CONFIRMED, PaymentStatus.PAID, actor_id=ADMIN_ID
        )
        assert rental.status == RentalStatus.CONFIRMED
        assert rental.payment_status == PaymentStatus.PAID
        # no cascade on a no-op status change
        assert (
            await vehicle_status(session_factory, vehicle_id) == VehicleStatus.AVAILABLE
        )

    @pytest.mark.asyncio
    async def test_terminal_status_cannot_be_reapplied(
        self, transitions, session_factory
    ):
        vehicle_id = await add_vehicle(session_factory)
        rental_id = await add_rental(
            session_factory, vehicle_id, JAN_15, JAN_20, status=RentalStatus.COMPLETED
        )
        with pytest.raises(InvalidStateTransition):
            await transitions.set_rental_status(
                rental_id, RentalStatus.COMPLETED, actor_id=ADMIN_ID
            )

    @pytest.mark.asyncio
    async def test_unknown_rental(self, transitions):
        with pytest.raises(NotFound):
            await transitions.set_rental_status(
                999, RentalStatus.CONFIRMED, actor_id=ADMIN_ID
            )


class TestSaleLifecycle:
    @pytest.mark.asyncio
    async def test_confirmed_sale_marks_vehicle_sold(self, transitions, session_factory):
        vehicle_id = await add_vehicle(
            session_factory, kind=VehicleKind.BOTH, sale_price="9000"
        )
        sale_id = await add_sale(session_factory, vehicle_id)

        await transitions.set_sale_status(
            sale_id, SaleStatus.CONFIRMED, actor_id=ADMIN_ID
        )
        assert await vehicle_status(session_factory, vehicle_id) == VehicleStatus.SOLD

        sale = await transitions.set_sale_status(
            sale_id, SaleStatus.COMPLETED, PaymentStatus.PAID, actor_id=ADMIN_ID
        )
        assert sale.status == SaleStatus.COMPLETED
        assert await vehicle_status(session_factory, vehicle_id) == VehicleStatus.SOLD

    @pytest.mark.asyncio
    async def test_cancelled_sale_returns_vehicle(self, transitions, session_factory):
        vehicle_id = await add_vehicle(
            session_factory, kind=VehicleKind.BOTH, sale_price="9000"
        )
        sale_id = await add_sale(session_factory, vehicle_id)
        await transitions.set_sale_status(
            sale_id, SaleStatus.CONFIRMED, actor_id=ADMIN_ID
        )

        await transitions.set_sale_status(
            sale_id, SaleStatus.CANCELLED, actor_id=ADMIN_ID
        )
        assert (
            await vehicle_status(session_factory, vehicle_id) == VehicleStatus.AVAILABLE
        )

    @pytest.mark.asyncio
    async def test_rental_cannot_be_confirmed_on_sold_vehicle(
        self, transitions, session_factory
    ):
        vehicle_id = await add_vehicle(
            session_factory, kind=VehicleKind.BOTH, sale_price="9000"
        )
        rental_id = await add_rental(session_factory, vehicle_id, JAN_15, JAN_20)
        sale_id = await add_sale(session_factory, vehicle_id)
        await transitions.set_sale_status(
            sale_id, SaleStatus.CONFIRMED, actor_id=ADMIN_ID
        )

        with pytest.raises(Conflict) as exc:
            await transitions.set_rental_status(
                rental_id, RentalStatus.CONFIRMED, actor_id=ADMIN_ID
            )
        assert exc.value.code == "vehicle_sold"

        # Cancelling the stale rental must not resurrect the vehicle.
        await transitions.set_rental_status(
            rental_id, RentalStatus.CANCELLED, actor_id=ADMIN_ID
        )
        assert await vehicle_status(session_factory, vehicle_id) == VehicleStatus.SOLD

    @pytest.mark.asyncio
    async def test_payment_update_on_confirmed_rental_of_sold_vehicle(
        self, transitions, session_factory
    ):
        vehicle_id = await add_vehicle(
            session_factory, kind=VehicleKind.BOTH, sale_price="9000"
        )
        rental_id = await add_rental(
            session_factory, vehicle_id, JAN_15, JAN_20, status=RentalStatus.CONFIRMED
        )
        sale_id = await add_sale(session_factory, vehicle_id)
        await transitions.set_sale_status(
            sale_id, SaleStatus.CONFIRMED, actor_id=ADMIN_ID
        )

        rental = await transitions.set_rental_status(
            rental_id,
            RentalStatus.CONFIRMED,
            PaymentStatus.PAID,
            actor_id=ADMIN_ID,
        )
        assert rental.payment_status == PaymentStatus.PAID
        assert await vehicle_status(session_factory, vehicle_id) == VehicleStatus.SOLD


class TestCascadeOverEveryPath:
    def test_paths_cover_every_edge(self):
        for table, paths in (
            (RENTAL_TRANSITIONS, RENTAL_PATHS),
            (SALE_TRANSITIONS, SALE_PATHS),
        ):
            walked = {(a, b) for path in paths for a, b in zip(path, path[1:])}
            declared = {(a, b) for a, targets in table.items() for b in targets}
            assert walked == declared

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", RENTAL_PATHS, ids=_path_id)
    async def test_rental_path(self, path, transitions, session_factory):
        vehicle_id = await add_vehicle(session_factory)
        rental_id = await add_rental(session_factory, vehicle_id, JAN_15, JAN_20)
        expected = VehicleStatus.AVAILABLE

        for status in path[1:]:
            rental = await transitions.set_rental_status(
                rental_id, status, actor_id=ADMIN_ID
            )
            expected = RENTAL_VEHICLE_CASCADE.get(status, expected)
            assert rental.status == status
            assert await vehicle_status(session_factory, vehicle_id) == expected

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", SALE_PATHS, ids=_path_id)
    async def test_sale_path(self, path, transitions, session_factory):
        vehicle_id = await add_vehicle(
            session_factory, kind=VehicleKind.SALE_ONLY, sale_price="9000"
        )
        sale_id = await add_sale(session_factory, vehicle_id)
        expected = VehicleStatus.AVAILABLE

        for status in path[1:]:
            sale = await transitions.set_sale_status(
                sale_id, status, actor_id=ADMIN_ID
            )
            expected = SALE_VEHICLE_CASCADE.get(status, expected)
            assert sale.status == status
            assert await vehicle_status(session_factory, vehicle_id) == expected


class TestOwnerCancellation:
    @pytest.mark.asyncio
    async def test_owner_cancels_pending_rental(self, transitions, session_factory):
        user_id = await add_user(session_factory)
        vehicle_id = await add_vehicle(session_factory)
        rental_id = await add_rental(
            session_factory, vehicle_id, JAN_15, JAN_20, user_id=user_id
        )

        rental = await transitions.cancel_rental(rental_id, user_id, "  Plans changed ")

        assert rental.status == RentalStatus.CANCELLED
        assert rental.cancellation_reason == "Plans changed"
        assert rental.cancelled_by == user_id
        assert (
            await vehicle_status(session_factory, vehicle_id) == VehicleStatus.AVAILABLE
        )

    @pytest.mark.asyncio
    async def test_other_user_is_forbidden(self, transitions, session_factory):
        owner_id = await add_user(session_factory)
        other_id = await add_user(session_factory, email="eve@example.com")
        vehicle_id = await add_vehicle(session_factory)
        rental_id = await add_rental(
            session_factory, vehicle_id, JAN_15, JAN_20, user_id=owner_id
        )

        with pytest.raises(Forbidden, match="You can only cancel your own bookings"):
            await transitions.cancel_rental(rental_id, other_id, "mine now")

    @pytest.mark.asyncio
    async def test_guest_booking_cannot_be_cancelled_by_users(
        self, transitions, session_factory
    ):
        user_id = await add_user(session_factory)
        vehicle_id = await add_vehicle(session_factory)
        rental_id = await add_rental(session_factory, vehicle_id, JAN_15, JAN_20)

        with pytest.raises(Forbidden):
            await transitions.cancel_rental(rental_id, user_id, "reason")

    @pytest.mark.asyncio
    async def test_only_pending_bookings_can_be_cancelled(
        self, transitions, session_factory
    ):
        user_id = await add_user(session_factory)
        vehicle_id = await add_vehicle(session_factory)
        rental_id = await add_rental(
            session_factory,
            vehicle_id,
            JAN_15,
            JAN_20,
            user_id=user_id,
            status=RentalStatus.CONFIRMED,
        )

        with pytest.raises(InvalidRequest) as exc:
            await transitions.cancel_rental(rental_id, user_id, "too late")
        assert exc.value.code == "not_cancellable"

    @pytest.mark.asyncio
    async def test_forbidden_is_reported_before_state(
        self, transitions, session_factory
    ):
        owner_id = await add_user(session_factory)
        other_id = await add_user(session_factory, email="eve@example.com")
        vehicle_id = await add_vehicle(session_factory)
        rental_id = await add_rental(
            session_factory,
            vehicle_id,
            JAN_15,
            JAN_20,
            user_id=owner_id,
            status=RentalStatus.COMPLETED,
        )

        with pytest.raises(Forbidden):
            await transitions.cancel_rental(rental_id, other_id, "reason")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reason", ["", "   ", "x" * 501])
    async def test_reason_is_validated(self, transitions, session_factory, reason):
        user_id = await add_user(session_factory)
        vehicle_id = await add_vehicle(session_factory)
        rental_id = await add_rental(
            session_factory, vehicle_id, JAN_15, JAN_20, user_id=user_id
        )

        with pytest.raises(InvalidRequest):
            await transitions.cancel_rental(rental_id, user_id, reason)

    @pytest.mark.asyncio
    async def test_owner_cancels_pending_sale(self, transitions, session_factory):
        user_id = await add_user(session_factory)
        vehicle_id = await add_vehicle(
            session_factory, kind=VehicleKind.SALE_ONLY, sale_price="9000"
        )
        sale_id = await add_sale(session_factory, vehicle_id, user_id=user_id)

        sale = await transitions.cancel_sale(sale_id, user_id, "Found another car")
        assert sale.status == SaleStatus.CANCELLED
        assert sale.owner_summary.email == "ada@example.com"

    @pytest.mark.asyncio
    async def test_unknown_sale(self, transitions):
        with pytest.raises(NotFound):
            await transitions.cancel_sale(999, 1, "reason")
