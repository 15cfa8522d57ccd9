"""
HTTP tests for the topology, visitor and staff routes.

Stores are swapped for in-memory fakes through dependency overrides; staff
routes run against an in-memory SQLite database.
"""

import uuid
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from casalink_backend.config import settings
from casalink_backend.core.utils import utc_now
from casalink_backend.database import Base, get_db
from casalink_backend.main import app
from casalink_backend.modules.auth.dependencies import CurrentUser
from casalink_backend.modules.auth.jwt_service import create_access_token
from casalink_backend.modules.auth.models import RoleSlug
from casalink_backend.modules.staff import get_staff_caller
from casalink_backend.modules.staff.capabilities import (
    ALL_CAPABILITIES,
    ROLE_DEFAULT_CAPABILITIES,
    Capability,
    StaffRole,
)
from casalink_backend.modules.staff.schemas import StaffCaller
from casalink_backend.modules.topology.routers import (
    get_capacity_source,
    get_resident_directory,
    get_topology_store,
)
from casalink_backend.modules.visitor_access.routers import (
    get_qr_codec,
    get_visitor_store,
)

from .fakes import make_user

API = settings.api_prefix

ROLE_CAPABILITIES = {
    RoleSlug.ADMIN: ALL_CAPABILITIES,
    RoleSlug.MANAGER: ROLE_DEFAULT_CAPABILITIES[StaffRole.MANAGER],
    RoleSlug.SECURITY: ROLE_DEFAULT_CAPABILITIES[StaffRole.SECURITY],
    RoleSlug.RESIDENT: Capability.NONE,
}


def role_default_caller(current_user: CurrentUser) -> StaffCaller:
    return StaffCaller(
        user=current_user, capabilities=ROLE_CAPABILITIES[current_user.role_slug]
    )


@pytest.fixture
def client(topology_store, capacity_source, directory, visitor_store, codec):
    app.dependency_overrides[get_topology_store] = lambda: topology_store
    app.dependency_overrides[get_capacity_source] = lambda: capacity_source
    app.dependency_overrides[get_resident_directory] = lambda: directory
    app.dependency_overrides[get_visitor_store] = lambda: visitor_store
    app.dependency_overrides[get_qr_codec] = lambda: codec
    app.dependency_overrides[get_staff_caller] = role_default_caller

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(tenant_id):
    """Build bearer headers for a fresh user with the given role."""

    def build(role: RoleSlug, user=None) -> dict[str, str]:
        user = user or make_user(tenant_id, role)
        token = create_access_token(user.user_id, user.tenant_id, user.email, role.value)
        return {"Authorization": f"Bearer {token}"}

    return build


def generate_payload(**config_overrides) -> dict:
    config = {
        "blocks": 1,
        "floors_per_block": 2,
        "units_per_floor": 2,
        "naming_scheme": {"floor_prefix": "F", "unit_prefix": "U"},
    }
    config.update(config_overrides)
    return {"config": config}


def visitor_payload(starts_in=timedelta(minutes=5), lasts=timedelta(hours=2)) -> dict:
    valid_from = utc_now() + starts_in
    return {
        "visitor_name": "Ada Lovelace",
        "purpose": "Delivery",
        "valid_from": valid_from.isoformat(),
        "valid_until": (valid_from + lasts).isoformat(),
    }


class TestHealth:
    def test_health(self, client):
        response = client.get(f"{API}/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_transaction_id_echoed(self, client):
        supplied = client.get(f"{API}/health", headers={"x-transaction-id": "trace-1234"})
        generated = client.get(f"{API}/health")

        assert supplied.headers["x-transaction-id"] == "trace-1234"
        assert len(generated.headers["x-transaction-id"]) == 8

    def test_missing_credentials(self, client):
        response = client.get(f"{API}/topology/units")

        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_garbage_token(self, client):
        response = client.get(
            f"{API}/topology/units", headers={"Authorization": "Bearer nope"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Access token is invalid"

    def test_expired_token(self, client, tenant_id):
        user = make_user(tenant_id, RoleSlug.ADMIN)
        token = create_access_token(
            user.user_id,
            user.tenant_id,
            user.email,
            RoleSlug.ADMIN.value,
            lifetime=timedelta(seconds=-5),
        )

        response = client.get(
            f"{API}/topology/units", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Access token has expired"


class TestTopologyApi:
    def test_generate_then_search(self, client, auth_headers):
        headers = auth_headers(RoleSlug.ADMIN)

        created = client.post(
            f"{API}/topology/generate", json=generate_payload(), headers=headers
        )
        found = client.get(
            f"{API}/topology/units",
            params={"search": "F2", "page_size": 1},
            headers=headers,
        )

        assert created.status_code == 201
        assert created.json()["data"]["created_count"] == 4
        body = found.json()
        assert body["success"] is True
        assert body["data"]["total"] == 2
        assert body["data"]["has_next"] is True
        assert [u["unit_number"] for u in body["data"]["items"]] == ["F2U1"]

    def test_capacity_exceeded(self, client, auth_headers, capacity_source, tenant_id):
        capacity_source.licensed[tenant_id] = 3

        response = client.post(
            f"{API}/topology/generate",
            json=generate_payload(),
            headers=auth_headers(RoleSlug.ADMIN),
        )

        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert body["error"]["excess_by"] == 1

    def test_manager_generates_but_cannot_change_settings(self, client, auth_headers):
        headers = auth_headers(RoleSlug.MANAGER)

        generated = client.post(
            f"{API}/topology/generate", json=generate_payload(), headers=headers
        )
        settings_change = client.put(
            f"{API}/topology/config", json=generate_payload()["config"], headers=headers
        )

        assert generated.status_code == 201
        assert settings_change.status_code == 403

    def test_resident_forbidden(self, client, auth_headers):
        response = client.get(
            f"{API}/topology/grid", headers=auth_headers(RoleSlug.RESIDENT)
        )

        assert response.status_code == 403
        assert response.json()["success"] is False

    def test_link_and_unlink_residents(self, client, auth_headers, topology_store, tenant_id):
        headers = auth_headers(RoleSlug.ADMIN)
        client.post(f"{API}/topology/generate", json=generate_payload(), headers=headers)
        unit = topology_store.unit_by_number(tenant_id, "F1U1")

        linked = client.post(
            f"{API}/topology/units/{unit.id}/residents",
            json={"emails": ["known@example.com", "new@example.com"]},
            headers=headers,
        )
        refused = client.delete(
            f"{API}/topology/units/{unit.id}/residents/known@example.com",
            headers=headers,
        )
        unlinked = client.delete(
            f"{API}/topology/units/{unit.id}/residents/known@example.com",
            params={"new_primary_email": "new@example.com"},
            headers=headers,
        )

        assert linked.status_code == 200
        lookups = linked.json()["data"]["lookups"]
        assert [lookup["invite_needed"] for lookup in lookups] == [False, True]
        assert refused.status_code == 422
        assert unlinked.status_code == 200
        assert unlinked.json()["data"]["primary_email"] == "new@example.com"

    def test_get_and_edit_unit(self, client, auth_headers, topology_store, tenant_id):
        headers = auth_headers(RoleSlug.ADMIN)
        client.post(f"{API}/topology/generate", json=generate_payload(), headers=headers)
        unit = topology_store.unit_by_number(tenant_id, "F2U2")

        edited = client.patch(
            f"{API}/topology/units/{unit.id}",
            json={"notes": "Balcony door sticks", "status": "maintenance"},
            headers=headers,
        )
        fetched = client.get(f"{API}/topology/units/{unit.id}", headers=headers)
        missing = client.get(f"{API}/topology/units/{uuid.uuid4()}", headers=headers)
        unknown_field = client.patch(
            f"{API}/topology/units/{unit.id}", json={"floor_index": 9}, headers=headers
        )

        assert edited.status_code == 200
        data = fetched.json()["data"]
        assert data["notes"] == "Balcony door sticks"
        assert data["status"] == "maintenance"
        assert missing.status_code == 404
        assert unknown_field.status_code == 422

    def test_grid_and_capacity(self, client, auth_headers):
        headers = auth_headers(RoleSlug.ADMIN)
        client.post(f"{API}/topology/generate", json=generate_payload(), headers=headers)

        grid = client.get(f"{API}/topology/grid", headers=headers).json()["data"]
        capacity = client.get(f"{API}/topology/capacity", headers=headers).json()["data"]

        assert grid["total_units"] == 4
        assert grid["vacant_units"] == 4
        assert capacity == {
            "licensed_units": 100,
            "active_units": 4,
            "excluded_units": 0,
            "remaining": 96,
        }


class TestVisitorApi:
    def test_request_approve_and_gate(self, client, auth_headers, tenant_id):
        resident = make_user(tenant_id, RoleSlug.RESIDENT)
        resident_headers = auth_headers(RoleSlug.RESIDENT, resident)
        security_headers = auth_headers(RoleSlug.SECURITY)

        created = client.post(
            f"{API}/visitors",
            json=visitor_payload(),
            headers=resident_headers,
        )
        assert created.status_code == 201
        record = created.json()["data"]
        assert record["state"] == "pending"

        refused = client.post(
            f"{API}/visitors/gate",
            json={"qr_token": record["qr_token"]},
            headers=security_headers,
        )
        approved = client.post(
            f"{API}/visitors/{record['id']}/approve", headers=security_headers
        )
        early = client.post(
            f"{API}/visitors/gate",
            json={"qr_token": record["qr_token"]},
            headers=security_headers,
        )

        assert refused.json()["data"]["admit"] is False
        assert refused.json()["data"]["reason"] == "request_pending"
        assert approved.json()["data"]["state"] == "approved"
        assert early.json()["data"]["admit"] is False
        assert early.json()["data"]["reason"] == "not_yet_valid"

    def test_validate_reports_state(self, client, auth_headers):
        created = client.post(
            f"{API}/visitors",
            json=visitor_payload(),
            headers=auth_headers(RoleSlug.RESIDENT),
        ).json()["data"]

        response = client.post(
            f"{API}/visitors/validate",
            json={"qr_token": created["qr_token"]},
            headers=auth_headers(RoleSlug.SECURITY),
        )

        assert response.status_code == 200
        assert response.json()["data"]["request_id"] == created["id"]
        assert response.json()["data"]["state"] == "pending"

    def test_invalid_token(self, client, auth_headers):
        response = client.post(
            f"{API}/visitors/validate",
            json={"qr_token": "forged"},
            headers=auth_headers(RoleSlug.SECURITY),
        )

        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_past_start_rejected(self, client, auth_headers):
        response = client.post(
            f"{API}/visitors",
            json=visitor_payload(starts_in=timedelta(minutes=-5)),
            headers=auth_headers(RoleSlug.RESIDENT),
        )

        assert response.status_code == 422
        assert response.json()["success"] is False

    def test_resident_cannot_approve(self, client, auth_headers):
        headers = auth_headers(RoleSlug.RESIDENT)
        created = client.post(
            f"{API}/visitors", json=visitor_payload(), headers=headers
        ).json()["data"]

        response = client.post(f"{API}/visitors/{created['id']}/approve", headers=headers)

        assert response.status_code == 403

    def test_deny_then_approve_conflicts(self, client, auth_headers):
        created = client.post(
            f"{API}/visitors",
            json=visitor_payload(),
            headers=auth_headers(RoleSlug.RESIDENT),
        ).json()["data"]
        security = auth_headers(RoleSlug.SECURITY)

        denied = client.post(f"{API}/visitors/{created['id']}/deny", headers=security)
        approved = client.post(f"{API}/visitors/{created['id']}/approve", headers=security)

        assert denied.json()["data"]["state"] == "denied"
        assert approved.status_code == 409
        assert approved.json()["error"]["current_state"] == "denied"

    def test_resident_lists_own_requests(self, client, auth_headers, tenant_id):
        resident = make_user(tenant_id, RoleSlug.RESIDENT)
        mine = auth_headers(RoleSlug.RESIDENT, resident)
        client.post(f"{API}/visitors", json=visitor_payload(), headers=mine)
        client.post(
            f"{API}/visitors",
            json=visitor_payload(),
            headers=auth_headers(RoleSlug.RESIDENT),
        )

        own = client.get(f"{API}/visitors", headers=mine).json()["data"]
        everything = client.get(
            f"{API}/visitors", headers=auth_headers(RoleSlug.SECURITY)
        ).json()["data"]

        assert [r["host_user_id"] for r in own] == [str(resident.user_id)]
        assert len(everything) == 2


@pytest.fixture
def sql_client(client):
    """The API client with routes that use the session bound to SQLite."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    schema_ready = False

    async def override_get_db():
        nonlocal schema_ready
        if not schema_ready:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            schema_ready = True
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield client
    client.portal.call(engine.dispose)


class TestStaffApi:
    def test_assign_and_list(self, sql_client, auth_headers):
        headers = auth_headers(RoleSlug.ADMIN)
        user_id = str(uuid.uuid4())

        created = sql_client.post(
            f"{API}/staff",
            json={"user_id": user_id, "email": "guard@example.com", "role": "security"},
            headers=headers,
        )
        duplicate = sql_client.post(
            f"{API}/staff",
            json={"user_id": user_id, "email": "guard@example.com", "role": "security"},
            headers=headers,
        )
        listed = sql_client.get(f"{API}/staff", headers=headers)

        assert created.status_code == 201
        assert created.json()["data"]["capabilities"] == ["manage_visitors"]
        assert duplicate.status_code == 409
        assert [a["user_id"] for a in listed.json()["data"]] == [user_id]

    def test_unknown_capability_rejected(self, sql_client, auth_headers):
        response = sql_client.post(
            f"{API}/staff",
            json={
                "user_id": str(uuid.uuid4()),
                "email": "guard@example.com",
                "role": "security",
                "capabilities": ["launch_rockets"],
            },
            headers=auth_headers(RoleSlug.ADMIN),
        )

        assert response.status_code == 422

    def test_security_cannot_manage_staff(self, sql_client, auth_headers):
        response = sql_client.get(f"{API}/staff", headers=auth_headers(RoleSlug.SECURITY))

        assert response.status_code == 403

    def test_provision_tenant_and_register_users(self, sql_client, auth_headers):
        admin = auth_headers(RoleSlug.ADMIN)

        early_user = sql_client.post(
            f"{API}/tenants/current/users", json={"email": "ada@example.com"}, headers=admin
        )
        provisioned = sql_client.post(
            f"{API}/tenants/current",
            json={"name": "Palm Court", "licensed_units": 40},
            headers=admin,
        )
        again = sql_client.post(
            f"{API}/tenants/current",
            json={"name": "Palm Court", "licensed_units": 40},
            headers=admin,
        )
        current = sql_client.get(f"{API}/tenants/current", headers=admin)
        registered = sql_client.post(
            f"{API}/tenants/current/users",
            json={"email": "Ada@Example.com", "full_name": "Ada"},
            headers=admin,
        )
        duplicate = sql_client.post(
            f"{API}/tenants/current/users", json={"email": "ada@example.com"}, headers=admin
        )

        assert early_user.status_code == 404
        assert provisioned.status_code == 201
        assert again.status_code == 409
        assert current.json()["data"]["licensed_units"] == 40
        assert registered.status_code == 201
        assert registered.json()["data"]["email"] == "ada@example.com"
        assert registered.json()["data"]["role"] == "resident"
        assert duplicate.status_code == 409

    def test_provisioning_restricted(self, sql_client, auth_headers):
        manager_provision = sql_client.post(
            f"{API}/tenants/current",
            json={"name": "Palm Court", "licensed_units": 40},
            headers=auth_headers(RoleSlug.MANAGER),
        )
        resident_register = sql_client.post(
            f"{API}/tenants/current/users",
            json={"email": "ada@example.com"},
            headers=auth_headers(RoleSlug.RESIDENT),
        )

        assert manager_provision.status_code == 403
        assert resident_register.status_code == 403

    def test_current_tenant_not_found(self, sql_client, auth_headers):
        response = sql_client.get(
            f"{API}/tenants/current", headers=auth_headers(RoleSlug.RESIDENT)
        )

        assert response.status_code == 404
