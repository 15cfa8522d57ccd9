"""Property topology business logic services.

Every mutation loads a snapshot, validates the whole request against it and
then commits a single compare-and-write. A lost race re-runs the cycle from
the read; a rejected request writes nothing.
"""

from collections import defaultdict
from collections.abc import Iterable, Sequence
from uuid import UUID

from ...config import settings
from ...core.concurrency import retry_on_conflict
from ...core.exceptions import (
    InvalidPrimaryError,
    PrimaryRequiredError,
    ResourceNotFoundError,
    ValidationError,
)
from ...core.logging import get_logger
from ...core.pagination import PaginatedResults, validate_pagination_params
from ...core.utils import normalize_email
from ..auth.directory import ResidentDirectory
from ..tenancy.repository import TenantCapacitySource
from . import capacity, naming
from .models import UnitStatus, UnitType
from .repository import TopologySnapshot, UnitTopologyStore
from .schemas import (
    BulkUpdateResult,
    CapacitySummary,
    GenerationResult,
    ResidentLinkResult,
    TopologyConfig,
    UnitChange,
    UnitGrid,
    UnitGridCell,
    UnitQuery,
    UnitRecord,
    UnitUpdate,
)

logger = get_logger(__name__)


def _resolve_units(
    snapshot: TopologySnapshot, unit_ids: Iterable[UUID]
) -> list[UnitRecord]:
    """Look up every requested unit, failing on the first unknown id.

    Raises:
        ResourceNotFoundError: If any id is not a unit of the tenant
    """
    by_id = snapshot.units_by_id()
    units = []
    for unit_id in unit_ids:
        unit = by_id.get(unit_id)
        if unit is None:
            raise ResourceNotFoundError("Unit", unit_id)
        units.append(unit)
    return units


def _dedupe(unit_ids: Iterable[UUID]) -> list[UUID]:
    return list(dict.fromkeys(unit_ids))


async def _with_retry(operation, description: str):
    return await retry_on_conflict(
        operation, settings.conflict_retry_limit, description
    )


# ----- Configuration & Generation -----


async def get_topology_config(
    store: UnitTopologyStore, tenant_id: UUID
) -> TopologyConfig:
    """Get the stored topology configuration.

    Raises:
        ResourceNotFoundError: If the tenant has not configured its topology
    """
    snapshot = await store.load_units(tenant_id)
    if snapshot.config is None:
        raise ResourceNotFoundError("TopologyConfig", tenant_id)
    return snapshot.config


async def save_topology_config(
    store: UnitTopologyStore, tenant_id: UUID, config: TopologyConfig
) -> TopologyConfig:
    """Store a configuration without generating units.

    Existing units keep their numbers; only triples generated later use the
    new scheme.

    Raises:
        ValidationError: If the configuration cannot be expanded
    """
    naming.generate(config)

    async def attempt() -> TopologyConfig:
        snapshot = await store.load_units(tenant_id)
        await store.save_units(tenant_id, snapshot.version, [], [], config=config)
        return config

    saved = await _with_retry(attempt, "topology config update")
    logger.info(
        "Topology configuration saved",
        extra={
            "blocks": config.blocks,
            "floors_per_block": config.floors_per_block,
            "units_per_floor": config.units_per_floor,
        },
    )
    return saved


async def generate_units(
    store: UnitTopologyStore,
    capacity_source: TenantCapacitySource,
    tenant_id: UUID,
    config: TopologyConfig | None = None,
) -> GenerationResult:
    """Create units for every slot that has none yet.

    Args:
        store: Unit topology store
        capacity_source: Licensed capacity lookup
        tenant_id: Tenant whose topology is generated
        config: New configuration to store and expand; the stored one is
            used when omitted

    Returns:
        Counts of created and pre-existing units and the created units

    Raises:
        ValidationError: If there is no configuration or it cannot be expanded
        CapacityExceededError: If the new active units overshoot the plan
        ConflictError: If concurrent writes kept winning
    """

    async def attempt() -> GenerationResult:
        snapshot = await store.load_units(tenant_id)
        effective = config or snapshot.config
        if effective is None:
            raise ValidationError(
                "No topology configuration stored; supply one to generate units",
                field="config",
            )

        drafts = naming.plan_generation(effective, snapshot.units)
        licensed = await capacity_source.get_licensed_units(tenant_id)
        delta = sum(1 for d in drafts if not d.excluded)
        if delta > 0:
            capacity.ensure_capacity(snapshot.active_count, delta, licensed)

        created: list[UnitRecord] = []
        if drafts or config is not None:
            created = await store.save_units(
                tenant_id, snapshot.version, drafts, [], config=config
            )

        return GenerationResult(
            created_count=len(created),
            existing_count=len(snapshot.units),
            active_units=snapshot.active_count + delta,
            licensed_units=licensed,
            created_units=created,
        )

    result = await _with_retry(attempt, "unit generation")
    logger.info(
        "Units generated",
        extra={
            "created_count": result.created_count,
            "existing_count": result.existing_count,
            "active_units": result.active_units,
        },
    )
    return result


# ----- Unit Mutations -----


async def toggle_exclusion(
    store: UnitTopologyStore,
    capacity_source: TenantCapacitySource,
    tenant_id: UUID,
    unit_ids: Sequence[UUID],
    excluded: bool,
) -> BulkUpdateResult:
    """Exclude or re-include units.

    Re-inclusion counts only units that are currently excluded against the
    licensed capacity.

    Raises:
        ResourceNotFoundError: If any unit id is unknown
        CapacityExceededError: If re-including would overshoot the plan
    """
    unit_ids = _dedupe(unit_ids)

    async def attempt() -> BulkUpdateResult:
        snapshot = await store.load_units(tenant_id)
        targets = _resolve_units(snapshot, unit_ids)
        to_change = [u for u in targets if u.excluded != excluded]

        if not excluded and to_change:
            licensed = await capacity_source.get_licensed_units(tenant_id)
            capacity.ensure_capacity(snapshot.active_count, len(to_change), licensed)

        if to_change:
            await store.save_units(
                tenant_id,
                snapshot.version,
                [],
                [UnitChange(unit_id=u.id, values={"excluded": excluded}) for u in to_change],
            )

        return BulkUpdateResult(
            updated_count=len(to_change),
            units=[u.model_copy(update={"excluded": excluded}) for u in targets],
        )

    result = await _with_retry(attempt, "unit exclusion update")
    logger.info(
        "Unit exclusion updated",
        extra={"excluded": excluded, "updated_count": result.updated_count},
    )
    return result


async def bulk_set_unit_type(
    store: UnitTopologyStore,
    tenant_id: UUID,
    unit_ids: Sequence[UUID],
    unit_type: UnitType,
) -> BulkUpdateResult:
    """Reassign the type of several units.

    Raises:
        ValidationError: If the type is not enabled for the tenant
        ResourceNotFoundError: If any unit id is unknown
    """
    unit_ids = _dedupe(unit_ids)

    async def attempt() -> BulkUpdateResult:
        snapshot = await store.load_units(tenant_id)
        if snapshot.config is None:
            raise ValidationError(
                "No topology configuration stored", field="enabled_unit_types"
            )
        if unit_type not in snapshot.config.enabled_unit_types:
            raise ValidationError(
                f"Unit type '{unit_type.value}' is not enabled for this property",
                field="unit_type",
                value=unit_type.value,
            )

        targets = _resolve_units(snapshot, unit_ids)
        to_change = [u for u in targets if u.unit_type != unit_type]
        if to_change:
            await store.save_units(
                tenant_id,
                snapshot.version,
                [],
                [UnitChange(unit_id=u.id, values={"unit_type": unit_type}) for u in to_change],
            )

        return BulkUpdateResult(
            updated_count=len(to_change),
            units=[u.model_copy(update={"unit_type": unit_type}) for u in targets],
        )

    result = await _with_retry(attempt, "unit type update")
    logger.info(
        "Unit type updated",
        extra={"unit_type": unit_type.value, "updated_count": result.updated_count},
    )
    return result


async def bulk_set_status(
    store: UnitTopologyStore,
    tenant_id: UUID,
    unit_ids: Sequence[UUID],
    status: UnitStatus,
) -> BulkUpdateResult:
    """Set the occupancy status of several units.

    Raises:
        ResourceNotFoundError: If any unit id is unknown
    """
    unit_ids = _dedupe(unit_ids)

    async def attempt() -> BulkUpdateResult:
        snapshot = await store.load_units(tenant_id)
        targets = _resolve_units(snapshot, unit_ids)
        to_change = [u for u in targets if u.status != status]
        if to_change:
            await store.save_units(
                tenant_id,
                snapshot.version,
                [],
                [UnitChange(unit_id=u.id, values={"status": status}) for u in to_change],
            )

        return BulkUpdateResult(
            updated_count=len(to_change),
            units=[u.model_copy(update={"status": status}) for u in targets],
        )

    result = await _with_retry(attempt, "unit status update")
    logger.info(
        "Unit status updated",
        extra={"status": status.value, "updated_count": result.updated_count},
    )
    return result


async def get_unit(store: UnitTopologyStore, tenant_id: UUID, unit_id: UUID) -> UnitRecord:
    """Get one unit of the tenant.

    Raises:
        ResourceNotFoundError: If the unit is unknown
    """
    snapshot = await store.load_units(tenant_id)
    return _resolve_units(snapshot, [unit_id])[0]


async def update_unit(
    store: UnitTopologyStore, tenant_id: UUID, unit_id: UUID, data: UnitUpdate
) -> UnitRecord:
    """Edit the notes and/or status of one unit.

    Blank notes are stored as no notes.

    Raises:
        ValidationError: If nothing is given to change or status is null
        ResourceNotFoundError: If the unit is unknown
    """
    values = data.model_dump(exclude_unset=True)
    if not values:
        raise ValidationError("Nothing to update", field="notes")
    if "status" in values and values["status"] is None:
        raise ValidationError("Status cannot be cleared", field="status")
    if "notes" in values:
        values["notes"] = (values["notes"] or "").strip() or None

    async def attempt() -> UnitRecord:
        snapshot = await store.load_units(tenant_id)
        unit = _resolve_units(snapshot, [unit_id])[0]
        changed = {k: v for k, v in values.items() if getattr(unit, k) != v}
        if changed:
            await store.save_units(
                tenant_id, snapshot.version, [], [UnitChange(unit_id=unit.id, values=changed)]
            )
        return unit.model_copy(update=values)

    updated = await _with_retry(attempt, "unit update")
    logger.info(
        "Unit updated",
        extra={"unit_id": str(unit_id), "fields": sorted(values)},
    )
    return updated


# ----- Resident Linkage -----


async def link_residents(
    store: UnitTopologyStore,
    directory: ResidentDirectory,
    tenant_id: UUID,
    unit_id: UUID,
    emails: Sequence[str],
    primary_email: str | None = None,
) -> ResidentLinkResult:
    """Merge emails into a unit's resident set.

    Emails are compared case-insensitively. When no primary is given the
    unit keeps its current primary, or the first given email becomes primary
    if it has none.

    Args:
        store: Unit topology store
        directory: Resident directory used to flag emails needing an invite
        tenant_id: Tenant owning the unit
        unit_id: Unit to link
        emails: Emails to add
        primary_email: Email to make primary

    Returns:
        The updated unit and one directory lookup per given email

    Raises:
        ValidationError: If no email is given
        InvalidPrimaryError: If the primary is not in the merged set
        ResourceNotFoundError: If the unit is unknown
    """
    normalized = list(dict.fromkeys(normalize_email(e) for e in emails if e.strip()))
    if not normalized:
        raise ValidationError("At least one email is required", field="emails")
    requested_primary = normalize_email(primary_email) if primary_email else None

    async def attempt() -> ResidentLinkResult:
        snapshot = await store.load_units(tenant_id)
        unit = _resolve_units(snapshot, [unit_id])[0]
        lookups = [await directory.resolve(tenant_id, email) for email in normalized]

        merged = sorted(set(unit.resident_emails) | set(normalized))
        if requested_primary is not None:
            if requested_primary not in merged:
                raise InvalidPrimaryError(requested_primary)
            primary = requested_primary
        elif unit.primary_email in merged:
            primary = unit.primary_email
        else:
            primary = normalized[0]

        values = {"resident_emails": merged, "primary_email": primary}
        await store.save_units(
            tenant_id, snapshot.version, [], [UnitChange(unit_id=unit.id, values=values)]
        )
        return ResidentLinkResult(unit=unit.model_copy(update=values), lookups=lookups)

    result = await _with_retry(attempt, "resident linking")
    logger.info(
        "Residents linked",
        extra={
            "unit_id": str(unit_id),
            "resident_count": len(result.unit.resident_emails),
            "invites_needed": sum(1 for lookup in result.lookups if lookup.invite_needed),
        },
    )
    return result


async def unlink_resident(
    store: UnitTopologyStore,
    tenant_id: UUID,
    unit_id: UUID,
    email: str,
    new_primary_email: str | None = None,
) -> UnitRecord:
    """Remove one email from a unit's resident set.

    Removing the primary while others remain requires naming the new
    primary; it is never picked implicitly.

    Raises:
        ResourceNotFoundError: If the unit or the email link is unknown
        PrimaryRequiredError: If the primary is removed without a successor
        InvalidPrimaryError: If the successor is not a remaining resident
    """
    email = normalize_email(email)
    successor = normalize_email(new_primary_email) if new_primary_email else None

    async def attempt() -> UnitRecord:
        snapshot = await store.load_units(tenant_id)
        unit = _resolve_units(snapshot, [unit_id])[0]
        if email not in unit.resident_emails:
            raise ResourceNotFoundError("Resident", email)

        remaining = [e for e in unit.resident_emails if e != email]
        primary = unit.primary_email
        if successor is not None:
            if successor not in remaining:
                raise InvalidPrimaryError(successor)
            primary = successor
        elif unit.primary_email == email:
            if remaining:
                raise PrimaryRequiredError(email)
            primary = None

        values = {"resident_emails": remaining, "primary_email": primary}
        await store.save_units(
            tenant_id, snapshot.version, [], [UnitChange(unit_id=unit.id, values=values)]
        )
        return unit.model_copy(update=values)

    updated = await _with_retry(attempt, "resident unlinking")
    logger.info(
        "Resident unlinked",
        extra={"unit_id": str(unit_id), "resident_count": len(updated.resident_emails)},
    )
    return updated


# ----- Read Side -----


def filter_units(units: Iterable[UnitRecord], query: UnitQuery) -> list[UnitRecord]:
    """Units matching every predicate supplied in the query."""
    search = query.search.strip().lower() if query.search else None

    def matches(unit: UnitRecord) -> bool:
        if search and search not in unit.unit_number.lower():
            return False
        if query.status is not None and unit.status != query.status:
            return False
        if query.unit_type is not None and unit.unit_type != query.unit_type:
            return False
        if query.excluded is not None and unit.excluded != query.excluded:
            return False
        if query.block_index is not None and unit.block_index != query.block_index:
            return False
        if query.floor_index is not None and unit.floor_index != query.floor_index:
            return False
        return True

    return [u for u in units if matches(u)]


async def search_units(
    store: UnitTopologyStore, tenant_id: UUID, query: UnitQuery
) -> PaginatedResults[UnitRecord]:
    """Search a tenant's units; the page always reports the full match count.

    Raises:
        ValidationError: If the page size exceeds the configured maximum
    """
    page, page_size = validate_pagination_params(
        query.page, query.page_size, settings.unit_search_max_page_size
    )
    snapshot = await store.load_units(tenant_id)
    matches = filter_units(snapshot.units, query)
    return PaginatedResults[UnitRecord].paginate(matches, page, page_size)


def build_unit_grid(units: Iterable[UnitRecord]) -> UnitGrid:
    """Group units block -> floor in slot order, with totals."""
    blocks: dict[int, dict[int, list[UnitGridCell]]] = defaultdict(
        lambda: defaultdict(list)
    )
    total = excluded = occupied = vacant = 0

    for unit in sorted(units, key=lambda u: u.key):
        blocks[unit.block_index][unit.floor_index].append(
            UnitGridCell(
                unit_id=unit.id,
                unit_number=unit.unit_number,
                unit_type=unit.unit_type,
                status=unit.status,
                excluded=unit.excluded,
                resident_count=len(unit.resident_emails),
                has_residents=bool(unit.resident_emails),
            )
        )
        total += 1
        if unit.excluded:
            excluded += 1
        elif unit.status == UnitStatus.OCCUPIED:
            occupied += 1
        elif unit.status == UnitStatus.VACANT:
            vacant += 1

    return UnitGrid(
        blocks={b: dict(floors) for b, floors in blocks.items()},
        total_units=total,
        excluded_units=excluded,
        occupied_units=occupied,
        vacant_units=vacant,
    )


async def get_unit_grid(store: UnitTopologyStore, tenant_id: UUID) -> UnitGrid:
    snapshot = await store.load_units(tenant_id)
    return build_unit_grid(snapshot.units)


async def capacity_summary(
    store: UnitTopologyStore,
    capacity_source: TenantCapacitySource,
    tenant_id: UUID,
) -> CapacitySummary:
    """Licensed, active and remaining unit counts for a tenant."""
    snapshot = await store.load_units(tenant_id)
    licensed = await capacity_source.get_licensed_units(tenant_id)
    return CapacitySummary(
        licensed_units=licensed,
        active_units=snapshot.active_count,
        excluded_units=snapshot.excluded_count,
        remaining=max(licensed - snapshot.active_count, 0),
    )
