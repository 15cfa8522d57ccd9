"""Naming scheme engine.

Expands a topology configuration into an ordered list of unit drafts.
Everything here is pure: the same configuration always yields the same
drafts in the same order.

Iteration order is block, then floor, then slot. A unit number is the
block, floor and unit tokens joined by the scheme's separator, each token
being ``prefix + zero-padded index``. The block token is left out when the
property has a single block and no block prefix, so a one-block building
numbers its units ``F1U1`` rather than ``1F1U1``.

Special floors override the default unit type. When a floor is listed
under more than one kind, precedence is parking > mechanical > penthouse:

    parking     -> parking, tagged "parking"
    mechanical  -> storage, tagged "mechanical", created excluded
    penthouse   -> residential, tagged "penthouse"
"""

from collections import Counter
from collections.abc import Iterable, Iterator

from ...core.exceptions import ValidationError
from .models import SpecialFloorKind, UnitType
from .schemas import NamingScheme, SpecialFloors, TopologyConfig, UnitDraft, UnitKey

DEFAULT_TYPE_ORDER = (
    UnitType.RESIDENTIAL,
    UnitType.COMMERCIAL,
    UnitType.PARKING,
    UnitType.STORAGE,
)

OVERRIDE_PRECEDENCE = (
    SpecialFloorKind.PARKING,
    SpecialFloorKind.MECHANICAL,
    SpecialFloorKind.PENTHOUSE,
)

# kind -> (unit type, created excluded)
FLOOR_OVERRIDES: dict[SpecialFloorKind, tuple[UnitType, bool]] = {
    SpecialFloorKind.PARKING: (UnitType.PARKING, False),
    SpecialFloorKind.MECHANICAL: (UnitType.STORAGE, True),
    SpecialFloorKind.PENTHOUSE: (UnitType.RESIDENTIAL, False),
}


def render_token(prefix: str, index: int, padding: int) -> str:
    """Render one level's token, e.g. ("F", 3, 2) -> "F03"."""
    return f"{prefix}{str(index).zfill(padding)}"


def includes_block_token(config: TopologyConfig) -> bool:
    return config.blocks > 1 or bool(config.naming_scheme.block_prefix)


def render_unit_number(
    scheme: NamingScheme,
    block_index: int,
    floor_index: int,
    slot_index: int,
    include_block: bool = True,
) -> str:
    """Render the canonical unit number for one (block, floor, slot) triple."""
    tokens = []
    if include_block:
        tokens.append(render_token(scheme.block_prefix, block_index, scheme.block_padding))
    tokens.append(render_token(scheme.floor_prefix, floor_index, scheme.floor_padding))
    tokens.append(render_token(scheme.unit_prefix, slot_index, scheme.unit_padding))
    return scheme.separator.join(tokens)


def default_unit_type(config: TopologyConfig) -> UnitType:
    """First enabled type in residential, commercial, parking, storage order."""
    enabled = set(config.enabled_unit_types)
    for unit_type in DEFAULT_TYPE_ORDER:
        if unit_type in enabled:
            return unit_type
    raise ValidationError(
        "At least one unit type must be enabled", field="enabled_unit_types"
    )


def resolve_floor_override(
    special_floors: SpecialFloors, floor_index: int
) -> SpecialFloorKind | None:
    """Winning special-floor kind for a floor, or None."""
    for kind in OVERRIDE_PRECEDENCE:
        if floor_index in special_floors.floors_for(kind):
            return kind
    return None


def validate_config(config: TopologyConfig) -> None:
    """Reject special floors that fall outside the configured floor range.

    Raises:
        ValidationError: If a listed floor index does not exist
    """
    default_unit_type(config)

    floors = config.floor_range
    for kind in SpecialFloorKind:
        outside = sorted(f for f in config.special_floors.floors_for(kind) if f not in floors)
        if outside:
            raise ValidationError(
                f"Floors {outside} are outside the configured range "
                f"{floors.start}..{floors.stop - 1}",
                field=f"special_floors.{kind.value}",
                value=outside,
            )


def iter_slots(config: TopologyConfig) -> Iterator[UnitKey]:
    """Yield every (block, floor, slot) triple in generation order."""
    for block_index in range(1, config.blocks + 1):
        for floor_index in config.floor_range:
            for slot_index in config.slot_range:
                yield (block_index, floor_index, slot_index)


def _build_draft(
    config: TopologyConfig,
    key: UnitKey,
    include_block: bool,
    fallback_type: UnitType,
    excluded_numbers: set[str],
) -> UnitDraft:
    block_index, floor_index, slot_index = key
    unit_number = render_unit_number(
        config.naming_scheme, block_index, floor_index, slot_index, include_block
    )

    unit_type, excluded = fallback_type, False
    tag = resolve_floor_override(config.special_floors, floor_index)
    if tag is not None:
        unit_type, excluded = FLOOR_OVERRIDES[tag]

    return UnitDraft(
        unit_number=unit_number,
        block_index=block_index,
        floor_index=floor_index,
        slot_index=slot_index,
        unit_type=unit_type,
        tag=tag,
        excluded=excluded or unit_number in excluded_numbers,
    )


def _ensure_unique(numbers: Iterable[str]) -> None:
    duplicates = sorted(n for n, count in Counter(numbers).items() if count > 1)
    if duplicates:
        raise ValidationError(
            "Naming scheme renders duplicate unit numbers: "
            f"{', '.join(duplicates[:5])}. Add prefixes, padding or a separator.",
            field="naming_scheme",
            value=duplicates[:5],
        )


def generate(config: TopologyConfig) -> list[UnitDraft]:
    """Expand a configuration into one draft per slot.

    Returns:
        ``blocks * floors_per_block * units_per_floor`` drafts with unique
        unit numbers, in block-floor-slot order

    Raises:
        ValidationError: If special floors are out of range, no type is
            enabled, or the scheme renders duplicate numbers
    """
    validate_config(config)

    include_block = includes_block_token(config)
    fallback_type = default_unit_type(config)
    excluded_numbers = set(config.excluded_unit_numbers)

    drafts = [
        _build_draft(config, key, include_block, fallback_type, excluded_numbers)
        for key in iter_slots(config)
    ]
    _ensure_unique(d.unit_number for d in drafts)
    return drafts


def plan_generation(config: TopologyConfig, existing_units: Iterable) -> list[UnitDraft]:
    """Drafts for slots that have no unit yet.

    Existing units are matched on (block, floor, slot), never on unit number,
    and are left untouched.

    Raises:
        ValidationError: If a new draft's number is already used by an
            existing unit on a different slot
    """
    existing_units = list(existing_units)
    existing_keys = {u.key for u in existing_units}
    drafts = [d for d in generate(config) if d.key not in existing_keys]

    taken = {u.unit_number for u in existing_units}
    clashes = sorted(d.unit_number for d in drafts if d.unit_number in taken)
    if clashes:
        raise ValidationError(
            "New units would reuse existing unit numbers: "
            f"{', '.join(clashes[:5])}. Adjust the naming scheme.",
            field="naming_scheme",
            value=clashes[:5],
        )
    return drafts
