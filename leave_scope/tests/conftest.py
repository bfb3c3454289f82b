"""
Pytest configuration and fixtures
"""
import os

# Settings are read at import time; give tests a self-contained environment
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-leave-scope-tests")
os.environ.setdefault("APP_ENV", "local")

from datetime import date  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402

from leave_scope.main import app  # noqa: E402
from leave_scope.db.base import Base  # noqa: E402
from leave_scope.core.deps import get_db  # noqa: E402
from leave_scope.core.security import create_access_token  # noqa: E402

# Import all models to ensure they're registered with Base.metadata
from leave_scope.models import (  # noqa: E402
    Department,
    LeaveRequest,
    LeaveStatus,
    LeaveType,
    Principal,
    PrincipalDepartment,
    PrincipalProperty,
    Property,
    RoleGrant,
)


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Test client fixture with database override"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(principal) -> dict:
    """Bearer header for a principal, as the identity provider would issue it"""
    token = create_access_token({"sub": str(principal.id)})
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def create_property(db, name, active=True):
    prop = Property(name=name, active=active)
    db.add(prop)
    db.commit()
    db.refresh(prop)
    return prop


def create_department(db, prop, name, active=True):
    dept = Department(property_id=prop.id, name=name, active=active)
    db.add(dept)
    db.commit()
    db.refresh(dept)
    return dept


def create_principal(db, name, role="staff", grants=(), properties=(), departments=(), active=True):
    """Create a principal with extra role grants and property/department assignments"""
    principal = Principal(
        name=name,
        email=f"{name.lower().replace(' ', '.')}@example.com",
        primary_role=role,
        active=active,
    )
    db.add(principal)
    db.flush()
    for grant in grants:
        db.add(RoleGrant(principal_id=principal.id, role=grant))
    for prop in properties:
        db.add(PrincipalProperty(principal_id=principal.id, property_id=prop.id))
    for dept in departments:
        db.add(PrincipalDepartment(principal_id=principal.id, department_id=dept.id))
    db.commit()
    db.refresh(principal)
    return principal


def create_leave(
    db,
    requester,
    start_date,
    end_date,
    department=None,
    prop=None,
    status=LeaveStatus.PENDING,
    leave_type=LeaveType.ANNUAL,
    is_deleted=False,
):
    """Insert a leave request directly, bypassing the workflow"""
    if prop is None and department is not None:
        prop_id = department.property_id
    else:
        prop_id = prop.id if prop is not None else None
    leave = LeaveRequest(
        requester_id=requester.id,
        property_id=prop_id,
        department_id=department.id if department is not None else None,
        leave_type=leave_type,
        start_date=start_date,
        end_date=end_date,
        status=status,
        is_deleted=is_deleted,
    )
    db.add(leave)
    db.commit()
    db.refresh(leave)
    return leave


class Org:
    """Two properties, three departments and one principal per role"""


@pytest.fixture
def org(db):
    o = Org()
    o.harbour = create_property(db, "Harbour Hotel")
    o.summit = create_property(db, "Summit Lodge")

    o.front_desk = create_department(db, o.harbour, "Front Desk")
    o.kitchen = create_department(db, o.harbour, "Kitchen")
    o.spa = create_department(db, o.summit, "Spa")

    o.regional_admin = create_principal(db, "Rita Regional", role="regional_admin")
    o.regional_hr = create_principal(db, "Raj Regional HR", role="regional_hr")
    o.harbour_manager = create_principal(
        db, "Paula Manager", role="property_manager", properties=[o.harbour]
    )
    o.harbour_hr = create_principal(db, "Hana HR", role="property_hr", properties=[o.harbour])
    o.front_desk_head = create_principal(
        db, "Dev Head", role="department_head", departments=[o.front_desk]
    )
    o.spa_head = create_principal(db, "Sam Spa Head", role="department_head", departments=[o.spa])
    o.alice = create_principal(db, "Alice Staff", departments=[o.front_desk])
    o.bob = create_principal(db, "Bob Staff", departments=[o.front_desk])
    o.carol = create_principal(db, "Carol Staff", departments=[o.kitchen])
    o.dan = create_principal(db, "Dan Staff", departments=[o.spa])
    return o


@pytest.fixture
def june_10():
    return date(2024, 6, 10)
