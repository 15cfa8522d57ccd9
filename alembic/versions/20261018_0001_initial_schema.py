"""Initial schema for CasaLink

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Creates all tables for:
- Tenancy (tenants)
- Directory (users)
- Property Topology (topology_configs, units)
- Visitor Access (visitor_requests)
- Staff (staff_assignments)
"""
from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UNIT_TYPES = ("RESIDENTIAL", "COMMERCIAL", "PARKING", "STORAGE")
UNIT_STATUSES = ("VACANT", "OCCUPIED", "MAINTENANCE")
SPECIAL_FLOOR_KINDS = ("PENTHOUSE", "MECHANICAL", "PARKING")
VISITOR_STATES = ("PENDING", "APPROVED", "DENIED", "COMPLETED", "EXPIRED")
ROLE_SLUGS = ("ADMIN", "MANAGER", "SECURITY", "RESIDENT")
STAFF_ROLES = ("ADMIN", "MANAGER", "SECURITY")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), onupdate=sa.func.now()),
    ]


def _tenant_fk() -> sa.Column:
    return sa.Column(
        "tenant_id",
        sa.String(36),
        sa.ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    """Create all tables."""

    # tenants - one managed property and its plan capacity
    op.create_table(
        "tenants",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("licensed_units", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("topology_version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    # users - directory of accounts known to a tenant
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), nullable=False),
        _tenant_fk(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("role", sa.Enum(*ROLE_SLUGS, name="roleslug"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_tenant_id", "users", ["tenant_id"])
    op.create_index("ix_users_email", "users", ["tenant_id", "email"], unique=True)

    # topology_configs - one structural description per tenant
    op.create_table(
        "topology_configs",
        sa.Column("id", sa.String(36), nullable=False),
        _tenant_fk(),
        sa.Column("blocks", sa.Integer(), nullable=False),
        sa.Column("floors_per_block", sa.Integer(), nullable=False),
        sa.Column("units_per_floor", sa.Integer(), nullable=False),
        sa.Column("naming_scheme", sa.JSON(), nullable=False),
        sa.Column("enabled_unit_types", sa.JSON(), nullable=False),
        sa.Column("special_floors", sa.JSON(), nullable=False),
        sa.Column("excluded_unit_numbers", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_topology_configs_tenant_id", "topology_configs", ["tenant_id"])
    op.create_index("ix_topology_configs_tenant", "topology_configs", ["tenant_id"], unique=True)

    # units - one per generated (block, floor, slot)
    op.create_table(
        "units",
        sa.Column("id", sa.String(36), nullable=False),
        _tenant_fk(),
        sa.Column("unit_number", sa.String(64), nullable=False),
        sa.Column("block_index", sa.Integer(), nullable=False),
        sa.Column("floor_index", sa.Integer(), nullable=False),
        sa.Column("slot_index", sa.Integer(), nullable=False),
        sa.Column("unit_type", sa.Enum(*UNIT_TYPES, name="unittype"), nullable=False),
        sa.Column("tag", sa.Enum(*SPECIAL_FLOOR_KINDS, name="specialfloorkind"), nullable=True),
        sa.Column("status", sa.Enum(*UNIT_STATUSES, name="unitstatus"), nullable=False),
        sa.Column("excluded", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("resident_emails", sa.Text(), nullable=False),
        sa.Column("primary_email", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_units_tenant_id", "units", ["tenant_id"])
    op.create_index(
        "ix_units_slot",
        "units",
        ["tenant_id", "block_index", "floor_index", "slot_index"],
        unique=True,
    )
    op.create_index("ix_units_number", "units", ["tenant_id", "unit_number"], unique=True)
    op.create_index("ix_units_excluded", "units", ["tenant_id", "excluded"])

    # visitor_requests - audit trail of visitor access, never deleted
    op.create_table(
        "visitor_requests",
        sa.Column("id", sa.String(36), nullable=False),
        _tenant_fk(),
        sa.Column("host_user_id", sa.String(36), nullable=False),
        sa.Column("host_unit_id", sa.String(36), nullable=True),
        sa.Column("visitor_name", sa.String(255), nullable=False),
        sa.Column("purpose", sa.Text(), nullable=False),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=False),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=False),
        sa.Column("qr_token", sa.Text(), nullable=False),
        sa.Column("state", sa.Enum(*VISITOR_STATES, name="visitorstate"), nullable=False),
        sa.Column("decided_by", sa.String(36), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_visitor_requests_tenant_id", "visitor_requests", ["tenant_id"])
    op.create_index("ix_visitor_requests_state", "visitor_requests", ["state", "valid_until"])
    op.create_index("ix_visitor_requests_host", "visitor_requests", ["tenant_id", "host_user_id"])

    # staff_assignments - staff role and capability flags per tenant
    op.create_table(
        "staff_assignments",
        sa.Column("id", sa.String(36), nullable=False),
        _tenant_fk(),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("role", sa.Enum(*STAFF_ROLES, name="staffrole"), nullable=False),
        sa.Column("capabilities", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_staff_assignments_tenant_id", "staff_assignments", ["tenant_id"])
    op.create_index(
        "ix_staff_assignments_user",
        "staff_assignments",
        ["tenant_id", "user_id", "is_active"],
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("staff_assignments")
    op.drop_table("visitor_requests")
    op.drop_table("units")
    op.drop_table("topology_configs")
    op.drop_table("users")
    op.drop_table("tenants")
