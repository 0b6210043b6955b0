"""initial booking engine schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 12:00:00
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "stores",
        sa.Column("merchant_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("opening_time", sa.Text(), nullable=False),
        sa.Column("closing_time", sa.Text(), nullable=False),
        sa.Column("working_days", sa.Text()),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'active'")),
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("location", sa.Text()),
    )
    op.create_table(
        "branches",
        sa.Column("store_id", sa.Integer(), sa.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'active'")),
        sa.Column("id", sa.Integer(), primary_key=True),
    )
    op.create_table(
        "staff",
        sa.Column("store_id", sa.Integer(), sa.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'active'")),
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("branch_id", sa.Integer(), sa.ForeignKey("branches.id", ondelete="SET NULL")),
    )
    op.create_table(
        "services",
        sa.Column("store_id", sa.Integer(), sa.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("branch_id", sa.Integer(), sa.ForeignKey("branches.id", ondelete="SET NULL")),
        sa.Column("duration", sa.Integer()),
        sa.Column("buffer_time", sa.Integer()),
        sa.Column("max_concurrent_bookings", sa.Integer()),
        sa.Column("min_advance_booking", sa.Integer()),
        sa.Column("max_advance_booking", sa.Integer()),
        sa.Column("grace_period_minutes", sa.Integer()),
        sa.Column("booking_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("auto_confirm_bookings", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("auto_complete_on_duration", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "offers",
        sa.Column("service_id", sa.Integer(), sa.ForeignKey("services.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'active'")),
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.Text()),
        sa.Column("discount", sa.Numeric(5, 2)),
        sa.Column("expiration_date", sa.DateTime()),
    )
    op.create_table(
        "bookings",
        sa.Column("service_id", sa.Integer(), sa.ForeignKey("services.id"), nullable=False),
        sa.Column("offer_id", sa.Integer(), sa.ForeignKey("offers.id")),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("booking_type", sa.Text(), nullable=False, server_default=sa.text("'service'")),
        sa.Column("source_channel", sa.Text(), nullable=False, server_default=sa.text("'web'")),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("staff_id", sa.Integer(), sa.ForeignKey("staff.id", ondelete="SET NULL")),
        sa.Column("store_id", sa.Integer(), sa.ForeignKey("stores.id", ondelete="SET NULL")),
        sa.Column("branch_id", sa.Integer(), sa.ForeignKey("branches.id", ondelete="SET NULL")),
        sa.Column("notes", sa.Text()),
        sa.Column("verification_code", sa.Text()),
        sa.Column("qr_payload", sa.Text()),
        sa.Column("auto_confirmed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("confirmed_at", sa.DateTime()),
        sa.Column("checked_in_at", sa.DateTime()),
        sa.Column("completed_at", sa.DateTime()),
        sa.Column("cancelled_at", sa.DateTime()),
        sa.Column("no_show_at", sa.DateTime()),
        sa.Column("cancellation_reason", sa.Text()),
        sa.Column("no_show_reason", sa.Text()),
        sa.Column("completion_method", sa.Text()),
        sa.Column("created_by", sa.Text()),
        sa.Column("updated_by", sa.Text()),
    )
    op.create_index("ix_bookings_service_start", "bookings", ["service_id", "start_time"])
    op.create_index("ix_bookings_offer_id", "bookings", ["offer_id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_table(
        "booking_status_history",
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("to_status", sa.Text(), nullable=False),
        sa.Column("actor", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("from_status", sa.Text()),
        sa.Column("reason", sa.Text()),
    )
    op.create_table(
        "slot_guards",
        sa.Column("service_id", sa.Integer(), sa.ForeignKey("services.id", ondelete="CASCADE"), nullable=False),
        sa.Column("slot_start", sa.DateTime(), nullable=False),
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.UniqueConstraint("service_id", "slot_start"),
    )


def downgrade() -> None:
    op.drop_table("slot_guards")
    op.drop_table("booking_status_history")
    op.drop_index("ix_bookings_status", table_name="bookings")
    op.drop_index("ix_bookings_offer_id", table_name="bookings")
    op.drop_index("ix_bookings_service_start", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("offers")
    op.drop_table("services")
    op.drop_table("staff")
    op.drop_table("branches")
    op.drop_table("stores")
