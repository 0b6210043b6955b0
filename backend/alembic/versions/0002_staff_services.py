"""staff to service assignments

Revision ID: 0002_staff_services
Revises: 0001_initial
Create Date: 2026-10-18 15:00:00
"""
from alembic import op
import sqlalchemy as sa


revision = "0002_staff_services"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "staff_services",
        sa.Column("staff_id", sa.Integer(), sa.ForeignKey("staff.id", ondelete="CASCADE"), nullable=False),
        sa.Column("service_id", sa.Integer(), sa.ForeignKey("services.id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.UniqueConstraint("staff_id", "service_id"),
    )


def downgrade() -> None:
    op.drop_table("staff_services")
