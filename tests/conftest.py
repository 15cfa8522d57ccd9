"""
Pytest configuration.

Points CONFIG at the test settings before the application is imported and
provides in-memory collaborators plus an in-memory SQLite session.
"""

import os
from pathlib import Path

os.environ.setdefault("CONFIG", str(Path(__file__).parent / "resources" / "test.yaml"))

import uuid  # noqa: E402
from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from casalink_backend.database import Base  # noqa: E402
from casalink_backend.modules.auth import models as auth_models  # noqa: E402, F401
from casalink_backend.modules.auth.models import RoleSlug  # noqa: E402
from casalink_backend.modules.auth.schemas import AuthenticatedUser  # noqa: E402
from casalink_backend.modules.staff import models as staff_models  # noqa: E402, F401
from casalink_backend.modules.staff.capabilities import (  # noqa: E402
    ROLE_DEFAULT_CAPABILITIES,
    Capability,
    StaffRole,
)
from casalink_backend.modules.staff.schemas import StaffCaller  # noqa: E402
from casalink_backend.modules.tenancy import models as tenancy_models  # noqa: E402, F401
from casalink_backend.modules.topology import models as topology_models  # noqa: E402, F401
from casalink_backend.modules.visitor_access import (  # noqa: E402, F401
    models as visitor_models,
)
from casalink_backend.modules.visitor_access.tokens import QrTokenCodec  # noqa: E402

from .fakes import (  # noqa: E402
    InMemoryCapacitySource,
    InMemoryResidentDirectory,
    InMemoryTopologyStore,
    InMemoryVisitorStore,
    make_user,
)

FIXED_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def tenant_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def topology_store(tenant_id) -> InMemoryTopologyStore:
    store = InMemoryTopologyStore()
    store.add_tenant(tenant_id)
    return store


@pytest.fixture
def capacity_source(tenant_id) -> InMemoryCapacitySource:
    return InMemoryCapacitySource({tenant_id: 100})


@pytest.fixture
def directory() -> InMemoryResidentDirectory:
    return InMemoryResidentDirectory({"known@example.com": uuid.uuid4()})


@pytest.fixture
def visitor_store() -> InMemoryVisitorStore:
    return InMemoryVisitorStore()


@pytest.fixture
def codec() -> QrTokenCodec:
    return QrTokenCodec("test-qr-secret")


@pytest.fixture
def resident(tenant_id) -> AuthenticatedUser:
    return make_user(tenant_id, RoleSlug.RESIDENT)


@pytest.fixture
def admin(tenant_id) -> AuthenticatedUser:
    return make_user(tenant_id, RoleSlug.ADMIN)


@pytest.fixture
def security_caller(tenant_id) -> StaffCaller:
    return StaffCaller(
        user=make_user(tenant_id, RoleSlug.SECURITY),
        capabilities=ROLE_DEFAULT_CAPABILITIES[StaffRole.SECURITY],
    )


@pytest.fixture
def admin_caller(admin) -> StaffCaller:
    return StaffCaller(user=admin, capabilities=ROLE_DEFAULT_CAPABILITIES[StaffRole.ADMIN])


@pytest.fixture
def unprivileged_security(tenant_id) -> StaffCaller:
    return StaffCaller(
        user=make_user(tenant_id, RoleSlug.SECURITY), capabilities=Capability.NONE
    )


@pytest.fixture
async def db_session():
    """Fresh in-memory SQLite database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()
