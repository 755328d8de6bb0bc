"""Initial schema: users, vehicles, rentals, sales.

Revision ID: 001
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None

# SQLAlchemy persists Python enums by member name.
PAYMENT_STATUS = ("PENDING", "PAID", "FAILED", "REFUNDED")
PAYMENT_METHOD = ("CARD", "CASH", "BANK_TRANSFER")


def _guest_columns() -> list[sa.Column]:
    return [
        sa.Column("guest_first_name", sa.String(100), nullable=True),
        sa.Column("guest_last_name", sa.String(100), nullable=True),
        sa.Column("guest_email", sa.String(255), nullable=True),
        sa.Column("guest_phone", sa.String(40), nullable=True),
        sa.Column("guest_address", sa.String(255), nullable=True),
        sa.Column("guest_license_number", sa.String(60), nullable=True),
    ]


def _booking_columns() -> list[sa.Column]:
    return [
        sa.Column(
            "payment_status",
            sa.Enum(*PAYMENT_STATUS, name="paymentstatus"),
            default="PENDING",
            nullable=False,
        ),
        sa.Column(
            "payment_method",
            sa.Enum(*PAYMENT_METHOD, name="paymentmethod"),
            default="CARD",
            nullable=False,
        ),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("idempotency_key", sa.String(64), unique=True, nullable=True),
        sa.Column("cancellation_reason", sa.String(500), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by", sa.Integer, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("phone", sa.String(40), nullable=True),
        sa.Column(
            "role",
            sa.Enum("CUSTOMER", "ADMIN", name="userrole"),
            default="CUSTOMER",
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── vehicles ──────────────────────────────────────────────────────
    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("make", sa.String(80), nullable=False),
        sa.Column("model", sa.String(80), nullable=False),
        sa.Column("year", sa.Integer, nullable=False),
        sa.Column(
            "kind",
            sa.Enum("RENTAL_ONLY", "SALE_ONLY", "BOTH", name="vehiclekind"),
            default="RENTAL_ONLY",
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum("AVAILABLE", "RENTED", "SOLD", name="vehiclestatus"),
            default="AVAILABLE",
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean, default=True, nullable=False),
        sa.Column("daily_rate", sa.Numeric(10, 2), nullable=True),
        sa.Column("weekly_rate", sa.Numeric(10, 2), nullable=True),
        sa.Column("sale_price", sa.Numeric(12, 2), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_vehicles_kind_active", "vehicles", ["kind", "is_active"])
    op.create_index("idx_vehicles_status", "vehicles", ["status"])

    # ── rentals ───────────────────────────────────────────────────────
    op.create_table(
        "rentals",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "vehicle_id", sa.Integer, sa.ForeignKey("vehicles.id"), nullable=False
        ),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "PENDING",
                "CONFIRMED",
                "ACTIVE",
                "COMPLETED",
                "CANCELLED",
                name="rentalstatus",
            ),
            default="PENDING",
            nullable=False,
        ),
        *_booking_columns(),
        *_guest_columns(),
        sa.CheckConstraint("start_date < end_date", name="ck_rentals_date_order"),
    )
    op.create_index("idx_rentals_vehicle_status", "rentals", ["vehicle_id", "status"])
    op.create_index("idx_rentals_dates", "rentals", ["start_date", "end_date"])
    op.create_index("idx_rentals_user", "rentals", ["user_id"])

    # ── sales ─────────────────────────────────────────────────────────
    op.create_table(
        "sales",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "vehicle_id", sa.Integer, sa.ForeignKey("vehicles.id"), nullable=False
        ),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("sale_price", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "PENDING", "CONFIRMED", "COMPLETED", "CANCELLED", name="salestatus"
            ),
            default="PENDING",
            nullable=False,
        ),
        *_booking_columns(),
        *_guest_columns(),
    )
    op.create_index("idx_sales_vehicle_status", "sales", ["vehicle_id", "status"])
    op.create_index("idx_sales_user", "sales", ["user_id"])


def downgrade() -> None:
    op.drop_table("sales")
    op.drop_table("rentals")
    op.drop_table("vehicles")
    op.drop_table("users")
    for enum_name in (
        "salestatus",
        "rentalstatus",
        "paymentmethod",
        "paymentstatus",
        "vehiclestatus",
        "vehiclekind",
        "userrole",
    ):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
