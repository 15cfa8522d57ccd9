"""Property topology models.

- One topology configuration per tenant
- One unit per generated (block, floor, slot) triple
"""

import enum

from sqlalchemy import JSON, Boolean, Enum, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ...core.database_types import EmailList
from ...database import Base, TenantScoped, TimestampMixin


class UnitType(str, enum.Enum):
    """Unit types a tenant may enable."""

    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    PARKING = "parking"
    STORAGE = "storage"


class UnitStatus(str, enum.Enum):
    """Occupancy status values."""

    VACANT = "vacant"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"


class SpecialFloorKind(str, enum.Enum):
    """Named floor overrides."""

    PENTHOUSE = "penthouse"
    MECHANICAL = "mechanical"
    PARKING = "parking"


class PropertyTopologyConfig(TenantScoped, TimestampMixin, Base):
    """Structural description the unit generator expands.

    Editing it never renumbers existing units; only triples without a unit
    are generated on the next run.
    """

    __tablename__ = "topology_configs"

    blocks: Mapped[int] = mapped_column(Integer, nullable=False)
    floors_per_block: Mapped[int] = mapped_column(Integer, nullable=False)
    units_per_floor: Mapped[int] = mapped_column(Integer, nullable=False)
    naming_scheme: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    enabled_unit_types: Mapped[list] = mapped_column(JSON, nullable=False)
    special_floors: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    excluded_unit_numbers: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list
    )

    __table_args__ = (
        Index("ix_topology_configs_tenant", "tenant_id", unique=True),
    )

    def __repr__(self) -> str:
        return (
            f"<PropertyTopologyConfig(tenant_id={self.tenant_id}, "
            f"{self.blocks}x{self.floors_per_block}x{self.units_per_floor})>"
        )


class Unit(TenantScoped, TimestampMixin, Base):
    """Generated unit slot.

    ``unit_number`` is rendered once at generation time and never changes.
    Units are excluded rather than deleted.
    """

    __tablename__ = "units"

    unit_number: Mapped[str] = mapped_column(String(64), nullable=False)
    block_index: Mapped[int] = mapped_column(Integer, nullable=False)
    floor_index: Mapped[int] = mapped_column(Integer, nullable=False)
    slot_index: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_type: Mapped[UnitType] = mapped_column(
        Enum(UnitType), nullable=False, default=UnitType.RESIDENTIAL
    )
    tag: Mapped[SpecialFloorKind | None] = mapped_column(
        Enum(SpecialFloorKind), nullable=True
    )
    status: Mapped[UnitStatus] = mapped_column(
        Enum(UnitStatus), nullable=False, default=UnitStatus.VACANT
    )
    excluded: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    resident_emails: Mapped[list[str]] = mapped_column(
        EmailList(), nullable=False, default=list
    )
    primary_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index(
            "ix_units_slot",
            "tenant_id",
            "block_index",
            "floor_index",
            "slot_index",
            unique=True,
        ),
        Index("ix_units_number", "tenant_id", "unit_number", unique=True),
        Index("ix_units_excluded", "tenant_id", "excluded"),
    )

    def __repr__(self) -> str:
        return f"<Unit(id={self.id}, number={self.unit_number}, excluded={self.excluded})>"
