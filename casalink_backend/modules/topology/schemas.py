"""Property topology schemas."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ..auth.schemas import ResidentLookup
from .models import SpecialFloorKind, UnitStatus, UnitType

# ----- Configuration Schemas -----


class NamingScheme(BaseModel):
    """Prefix, padding and start-index rules for unit numbers."""

    model_config = ConfigDict(extra="forbid")

    block_prefix: str = Field(default="", max_length=10)
    floor_prefix: str = Field(default="", max_length=10)
    unit_prefix: str = Field(default="", max_length=10)
    block_padding: int = Field(default=0, ge=0, le=6)
    floor_padding: int = Field(default=0, ge=0, le=6)
    unit_padding: int = Field(default=0, ge=0, le=6)
    separator: str = Field(default="", max_length=3)
    start_floor: int = Field(default=1, ge=0)
    start_unit: int = Field(default=1, ge=0)


class SpecialFloors(BaseModel):
    """Floor indexes whose units get a type override."""

    model_config = ConfigDict(extra="forbid")

    penthouse: list[int] = Field(default_factory=list)
    mechanical: list[int] = Field(default_factory=list)
    parking: list[int] = Field(default_factory=list)

    def floors_for(self, kind: SpecialFloorKind) -> list[int]:
        return getattr(self, kind.value)


class TopologyConfig(BaseModel):
    """Compact property description expanded by the generator."""

    model_config = ConfigDict(from_attributes=True)

    blocks: int = Field(..., ge=1, le=100)
    floors_per_block: int = Field(..., ge=1, le=300)
    units_per_floor: int = Field(..., ge=1, le=500)
    naming_scheme: NamingScheme = Field(default_factory=NamingScheme)
    enabled_unit_types: list[UnitType] = Field(
        default_factory=lambda: [UnitType.RESIDENTIAL], min_length=1
    )
    special_floors: SpecialFloors = Field(default_factory=SpecialFloors)
    excluded_unit_numbers: list[str] = Field(default_factory=list)

    @property
    def floor_range(self) -> range:
        start = self.naming_scheme.start_floor
        return range(start, start + self.floors_per_block)

    @property
    def slot_range(self) -> range:
        start = self.naming_scheme.start_unit
        return range(start, start + self.units_per_floor)

    @property
    def total_slots(self) -> int:
        return self.blocks * self.floors_per_block * self.units_per_floor


# ----- Unit Schemas -----

UnitKey = tuple[int, int, int]


class UnitDraft(BaseModel):
    """A unit the generator wants to create; the store assigns its id."""

    unit_number: str
    block_index: int
    floor_index: int
    slot_index: int
    unit_type: UnitType
    tag: SpecialFloorKind | None = None
    excluded: bool = False

    @property
    def key(self) -> UnitKey:
        return (self.block_index, self.floor_index, self.slot_index)


class UnitRecord(BaseModel):
    """Persisted unit as seen by services and API callers."""

    id: UUID
    unit_number: str
    block_index: int
    floor_index: int
    slot_index: int
    unit_type: UnitType
    tag: SpecialFloorKind | None = None
    status: UnitStatus = UnitStatus.VACANT
    excluded: bool = False
    resident_emails: list[str] = Field(default_factory=list)
    primary_email: str | None = None
    notes: str | None = None

    class Config:
        from_attributes = True

    @property
    def key(self) -> UnitKey:
        return (self.block_index, self.floor_index, self.slot_index)


class UnitChange(BaseModel):
    """Field updates for one existing unit."""

    unit_id: UUID
    values: dict[str, Any]


# ----- Request Schemas -----


class GenerateUnitsRequest(BaseModel):
    """Run the generator, optionally replacing the stored configuration."""

    config: TopologyConfig | None = None


class UnitExclusionRequest(BaseModel):
    unit_ids: list[UUID] = Field(..., min_length=1)
    excluded: bool


class UnitTypeRequest(BaseModel):
    unit_ids: list[UUID] = Field(..., min_length=1)
    unit_type: UnitType


class UnitStatusRequest(BaseModel):
    unit_ids: list[UUID] = Field(..., min_length=1)
    status: UnitStatus


class UnitUpdate(BaseModel):
    """Single-unit edit; only the fields sent are changed, a null note clears it."""

    model_config = ConfigDict(extra="forbid")

    notes: str | None = Field(default=None, max_length=2000)
    status: UnitStatus | None = None


class ResidentLinkRequest(BaseModel):
    """Emails to merge into a unit's resident set."""

    emails: list[EmailStr] = Field(..., min_length=1)
    primary_email: EmailStr | None = None


class UnitQuery(BaseModel):
    """Unit search predicates; every supplied predicate must match."""

    search: str | None = None
    status: UnitStatus | None = None
    unit_type: UnitType | None = None
    excluded: bool | None = None
    block_index: int | None = None
    floor_index: int | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=50, ge=1)


# ----- Result Schemas -----


class GenerationResult(BaseModel):
    """Outcome of a generation run."""

    created_count: int
    existing_count: int
    active_units: int
    licensed_units: int
    created_units: list[UnitRecord] = Field(default_factory=list)


class BulkUpdateResult(BaseModel):
    """Outcome of a bulk unit mutation."""

    updated_count: int
    units: list[UnitRecord]


class ResidentLinkResult(BaseModel):
    """Unit after linking plus the directory outcome of each new email."""

    unit: UnitRecord
    lookups: list[ResidentLookup]


class CapacitySummary(BaseModel):
    licensed_units: int
    active_units: int
    excluded_units: int
    remaining: int


class UnitGridCell(BaseModel):
    """One unit as drawn on the admin grid."""

    unit_id: UUID
    unit_number: str
    unit_type: UnitType
    status: UnitStatus
    excluded: bool
    resident_count: int
    has_residents: bool


class UnitGrid(BaseModel):
    """Units grouped block -> floor, with totals."""

    blocks: dict[int, dict[int, list[UnitGridCell]]]
    total_units: int
    excluded_units: int
    occupied_units: int
    vacant_units: int
