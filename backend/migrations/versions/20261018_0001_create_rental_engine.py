"""create rental engine tables

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def _money(name: str, nullable: bool = False, default: str | None = None):
    return sa.Column(
        name,
        sa.Numeric(10, 2),
        nullable=nullable,
        server_default=default,
    )


def upgrade():
    bind = op.get_bind()
    insp = inspect(bind)
    tables = set(insp.get_table_names())

    if "users" not in tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("email", sa.String(length=255), nullable=False, unique=True),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("is_student", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )

    if "equipment" not in tables:
        op.create_table(
            "equipment",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("serial_number", sa.String(length=100), nullable=True, unique=True),
            _money("weekly_rate"),
            _money("monthly_rate"),
            _money("deposit_amount", default="0"),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="available"),
            sa.Column("is_new", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )

    if "product_templates" not in tables:
        op.create_table(
            "product_templates",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("name", sa.String(length=255), nullable=False),
            _money("weekly_rate"),
            _money("monthly_rate"),
            _money("deposit_amount", default="0"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("is_new", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )

    if "accessories" not in tables:
        op.create_table(
            "accessories",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("name", sa.String(length=255), nullable=False),
            _money("weekly_rate"),
            _money("monthly_rate"),
            _money("deposit_amount", default="0"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        )

    if "pricing_modifiers" not in tables:
        op.create_table(
            "pricing_modifiers",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("name", sa.String(length=50), nullable=False, unique=True),
            sa.Column("display_name", sa.String(length=100), nullable=False),
            sa.Column("type", sa.String(length=20), nullable=False),
            sa.Column("percentage", sa.Numeric(5, 2), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        )

    if "rentals" not in tables:
        op.create_table(
            "rentals",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column(
                "user_id",
                sa.Integer(),
                sa.ForeignKey("users.id", ondelete="RESTRICT"),
                nullable=False,
            ),
            sa.Column(
                "equipment_id",
                sa.Integer(),
                sa.ForeignKey("equipment.id", ondelete="RESTRICT"),
                nullable=True,
            ),
            sa.Column(
                "product_template_id",
                sa.Integer(),
                sa.ForeignKey("product_templates.id", ondelete="RESTRICT"),
                nullable=True,
            ),
            sa.Column("resource_key", sa.String(length=64), nullable=False),
            sa.Column("start_date", sa.Date(), nullable=False),
            sa.Column("end_date", sa.Date(), nullable=False),
            sa.Column("pricing_period", sa.String(length=10), nullable=False),
            sa.Column("days", sa.Integer(), nullable=False),
            sa.Column("periods", sa.Integer(), nullable=False),
            _money("weekly_rate"),
            _money("monthly_rate"),
            _money("primary_rate"),
            _money("primary_deposit"),
            _money("subtotal"),
            _money("discount_amount", default="0"),
            _money("fee_amount", default="0"),
            _money("final_total"),
            sa.Column("student_discount_applied", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("new_equipment_fee_applied", sa.Boolean(), nullable=False, server_default=sa.false()),
            _money("deposit_amount"),
            sa.Column("deposit_status", sa.String(length=20), nullable=False, server_default="held"),
            sa.Column("deposit_settled_at", sa.DateTime(), nullable=True),
            sa.Column("deposit_notes", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("pickup_date", sa.DateTime(), nullable=True),
            sa.Column("return_date", sa.DateTime(), nullable=True),
            sa.Column("damage_reported", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("cancelled_at", sa.DateTime(), nullable=True),
            sa.Column("cancelled_reason", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
            sa.CheckConstraint(
                "(equipment_id IS NULL) <> (product_template_id IS NULL)",
                name="ck_rentals_one_primary_item",
            ),
            sa.CheckConstraint("end_date >= start_date", name="ck_rentals_date_range"),
        )
        op.create_index("ix_rentals_user_id", "rentals", ["user_id"])
        op.create_index("ix_rentals_resource_key", "rentals", ["resource_key"])
        op.create_index("ix_rentals_status", "rentals", ["status"])
        op.create_index("ix_rentals_resource_status", "rentals", ["resource_key", "status"])

    if "rental_accessories" not in tables:
        op.create_table(
            "rental_accessories",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column(
                "rental_id",
                sa.Integer(),
                sa.ForeignKey("rentals.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column(
                "accessory_id",
                sa.Integer(),
                sa.ForeignKey("accessories.id", ondelete="RESTRICT"),
                nullable=False,
            ),
            sa.Column("selected_color", sa.String(length=50), nullable=True),
            _money("weekly_rate"),
            _money("monthly_rate"),
            _money("rate"),
            _money("line_subtotal"),
            _money("deposit_amount"),
            sa.Column("deposit_status", sa.String(length=20), nullable=False, server_default="held"),
            sa.UniqueConstraint("rental_id", "accessory_id", name="uq_rental_accessories_line"),
        )
        op.create_index("ix_rental_accessories_rental_id", "rental_accessories", ["rental_id"])

    if "reservation_days" not in tables:
        op.create_table(
            "reservation_days",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("resource_key", sa.String(length=64), nullable=False),
            sa.Column("day", sa.Date(), nullable=False),
            sa.Column(
                "rental_id",
                sa.Integer(),
                sa.ForeignKey("rentals.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.UniqueConstraint("resource_key", "day", name="uq_reservation_days_resource_day"),
        )
        op.create_index("ix_reservation_days_rental_id", "reservation_days", ["rental_id"])

    if "deposit_events" not in tables:
        op.create_table(
            "deposit_events",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column(
                "rental_id",
                sa.Integer(),
                sa.ForeignKey("rentals.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("action", sa.String(length=20), nullable=False),
            _money("amount"),
            sa.Column("note", sa.String(length=300), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("ix_deposit_events_rental_id", "deposit_events", ["rental_id"])


def downgrade():
    bind = op.get_bind()
    insp = inspect(bind)
    tables = set(insp.get_table_names())

    # Children first
    for name in (
        "deposit_events",
        "reservation_days",
        "rental_accessories",
        "rentals",
        "pricing_modifiers",
        "accessories",
        "product_templates",
        "equipment",
        "users",
    ):
        if name in tables:
            op.drop_table(name)
