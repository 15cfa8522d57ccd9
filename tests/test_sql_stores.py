"""
Tests for the SQL-backed stores against an in-memory SQLite database.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from casalink_backend.core.exceptions import (
    CapacityExceededError,
    ConflictError,
    ResourceNotFoundError,
)
from casalink_backend.modules.auth import crud as auth_crud
from casalink_backend.modules.auth.directory import SqlResidentDirectory
from casalink_backend.modules.tenancy import crud as tenancy_crud
from casalink_backend.modules.tenancy.crud import SqlTenantCapacitySource
from casalink_backend.modules.topology import services as topology_services
from casalink_backend.modules.topology.crud import SqlUnitTopologyStore
from casalink_backend.modules.topology.models import UnitStatus
from casalink_backend.modules.topology.schemas import (
    NamingScheme,
    TopologyConfig,
    UnitChange,
    UnitQuery,
    UnitUpdate,
)
from casalink_backend.modules.visitor_access.crud import SqlVisitorRequestStore
from casalink_backend.modules.visitor_access.models import VisitorState
from casalink_backend.modules.visitor_access.schemas import VisitorRequestRecord

from .fakes import InMemoryResidentDirectory

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
async def tenant_id(db_session):
    """A persisted tenant's id; stores roll back on conflicts, which expires ORM rows."""
    tenant = await tenancy_crud.create_tenant(db_session, "Palm Court", licensed_units=6)
    tenant_id = tenant.id
    await db_session.commit()
    return tenant_id


def small_config(**overrides) -> TopologyConfig:
    values = {
        "blocks": 1,
        "floors_per_block": 2,
        "units_per_floor": 3,
        "naming_scheme": NamingScheme(floor_prefix="F", unit_prefix="U"),
    }
    values.update(overrides)
    return TopologyConfig(**values)


class TestSqlUnitTopologyStore:
    async def test_unknown_tenant(self, db_session):
        store = SqlUnitTopologyStore(db_session)

        with pytest.raises(ResourceNotFoundError):
            await store.load_units(uuid.uuid4())

    async def test_generate_and_reload(self, db_session, tenant_id):
        store = SqlUnitTopologyStore(db_session)
        capacity = SqlTenantCapacitySource(db_session)

        result = await topology_services.generate_units(
            store, capacity, tenant_id, small_config()
        )
        snapshot = await store.load_units(tenant_id)

        assert result.created_count == 6
        assert snapshot.version == 1
        assert snapshot.config == small_config()
        assert [u.unit_number for u in snapshot.units] == [
            "F1U1",
            "F1U2",
            "F1U3",
            "F2U1",
            "F2U2",
            "F2U3",
        ]

    async def test_capacity_read_from_tenant(self, db_session, tenant_id):
        store = SqlUnitTopologyStore(db_session)
        capacity = SqlTenantCapacitySource(db_session)

        with pytest.raises(CapacityExceededError) as exc_info:
            await topology_services.generate_units(
                store, capacity, tenant_id, small_config(floors_per_block=3)
            )

        assert exc_info.value.excess_by == 3
        snapshot = await store.load_units(tenant_id)
        assert snapshot.units == []
        assert snapshot.config is None

    async def test_stale_version_applies_nothing(self, db_session, tenant_id):
        store = SqlUnitTopologyStore(db_session)
        capacity = SqlTenantCapacitySource(db_session)
        await topology_services.generate_units(store, capacity, tenant_id, small_config())
        snapshot = await store.load_units(tenant_id)
        unit = snapshot.units[0]

        with pytest.raises(ConflictError):
            await store.save_units(
                tenant_id,
                snapshot.version - 1,
                [],
                [UnitChange(unit_id=unit.id, values={"status": UnitStatus.OCCUPIED})],
            )

        reloaded = await store.load_units(tenant_id)
        assert reloaded.version == snapshot.version
        assert reloaded.units[0].status == UnitStatus.VACANT

    async def test_mutations_persist(self, db_session, tenant_id):
        store = SqlUnitTopologyStore(db_session)
        capacity = SqlTenantCapacitySource(db_session)
        await topology_services.generate_units(store, capacity, tenant_id, small_config())
        snapshot = await store.load_units(tenant_id)
        first, second = snapshot.units[0], snapshot.units[1]

        await topology_services.toggle_exclusion(
            store, capacity, tenant_id, [first.id], excluded=True
        )
        await topology_services.bulk_set_status(
            store, tenant_id, [second.id], UnitStatus.OCCUPIED
        )
        await topology_services.link_residents(
            store,
            InMemoryResidentDirectory(),
            tenant_id,
            second.id,
            ["b@example.com", "a@example.com"],
        )

        results = await topology_services.search_units(
            store, tenant_id, UnitQuery(status=UnitStatus.OCCUPIED)
        )
        summary = await topology_services.capacity_summary(store, capacity, tenant_id)

        assert [u.id for u in results.items] == [second.id]
        assert results.items[0].resident_emails == ["a@example.com", "b@example.com"]
        assert results.items[0].primary_email == "b@example.com"
        assert summary.active_units == 5
        assert summary.excluded_units == 1
        assert summary.remaining == 1

    async def test_unit_notes_persist(self, db_session, tenant_id):
        store = SqlUnitTopologyStore(db_session)
        capacity = SqlTenantCapacitySource(db_session)
        await topology_services.generate_units(store, capacity, tenant_id, small_config())
        unit = (await store.load_units(tenant_id)).units[2]

        await topology_services.update_unit(
            store, tenant_id, unit.id, UnitUpdate(notes="Key with concierge")
        )
        reloaded = await topology_services.get_unit(store, tenant_id, unit.id)

        assert reloaded.notes == "Key with concierge"
        assert reloaded.status == UnitStatus.VACANT


def make_record(tenant_id, state=VisitorState.PENDING, valid_until=T0 + timedelta(hours=1)):
    return VisitorRequestRecord(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        host_user_id=uuid.uuid4(),
        visitor_name="Ada",
        purpose="Delivery",
        valid_from=T0,
        valid_until=valid_until,
        qr_token=f"token-{uuid.uuid4().hex}",
        state=state,
    )


class TestSqlVisitorRequestStore:
    async def test_insert_and_get(self, db_session, tenant_id):
        store = SqlVisitorRequestStore(db_session)
        record = make_record(tenant_id)

        saved = await store.insert(record)
        loaded = await store.get(tenant_id, record.id)

        assert saved.created_at is not None
        assert loaded.valid_until == record.valid_until
        assert loaded.valid_until.tzinfo is not None
        assert loaded.state == VisitorState.PENDING
        assert await store.get(uuid.uuid4(), record.id) is None

    async def test_compare_and_set(self, db_session, tenant_id):
        store = SqlVisitorRequestStore(db_session)
        record = await store.insert(make_record(tenant_id))

        updated = await store.compare_and_set(
            tenant_id, record.id, VisitorState.PENDING, {"state": VisitorState.APPROVED}
        )

        assert updated.state == VisitorState.APPROVED
        with pytest.raises(ConflictError):
            await store.compare_and_set(
                tenant_id, record.id, VisitorState.PENDING, {"state": VisitorState.DENIED}
            )
        assert (await store.get(tenant_id, record.id)).state == VisitorState.APPROVED

    async def test_list_requests_by_host(self, db_session, tenant_id):
        store = SqlVisitorRequestStore(db_session)
        mine = await store.insert(make_record(tenant_id))
        await store.insert(make_record(tenant_id))

        assert len(await store.list_requests(tenant_id)) == 2
        own = await store.list_requests(tenant_id, host_user_id=mine.host_user_id)
        assert [r.id for r in own] == [mine.id]

    async def test_list_lapsed(self, db_session, tenant_id):
        store = SqlVisitorRequestStore(db_session)
        lapsed = await store.insert(make_record(tenant_id, valid_until=T0 + timedelta(minutes=5)))
        await store.insert(make_record(tenant_id, valid_until=T0 + timedelta(hours=3)))
        await store.insert(
            make_record(
                tenant_id, state=VisitorState.DENIED, valid_until=T0 + timedelta(minutes=5)
            )
        )

        found = await store.list_lapsed(T0 + timedelta(hours=1), limit=10)

        assert [r.id for r in found] == [lapsed.id]


class TestSqlResidentDirectory:
    async def test_known_active_user(self, db_session, tenant_id):
        user = await auth_crud.create_user(db_session, tenant_id, "ada@example.com")
        directory = SqlResidentDirectory(db_session)

        lookup = await directory.resolve(tenant_id, "  Ada@Example.com ")

        assert lookup.email == "ada@example.com"
        assert lookup.user_id == user.id
        assert lookup.invite_needed is False

    async def test_unknown_or_inactive_needs_invite(self, db_session, tenant_id):
        await auth_crud.create_user(
            db_session, tenant_id, "gone@example.com", is_active=False
        )
        directory = SqlResidentDirectory(db_session)

        inactive = await directory.resolve(tenant_id, "gone@example.com")
        unknown = await directory.resolve(tenant_id, "new@example.com")

        assert inactive.invite_needed is True
        assert inactive.user_id is None
        assert unknown.invite_needed is True

    async def test_scoped_to_tenant(self, db_session, tenant_id):
        await auth_crud.create_user(db_session, tenant_id, "ada@example.com")
        directory = SqlResidentDirectory(db_session)

        lookup = await directory.resolve(uuid.uuid4(), "ada@example.com")

        assert lookup.invite_needed is True
