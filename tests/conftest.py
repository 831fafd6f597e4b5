"""
Pytest configuration and fixtures.
"""
import os

# Must be set before civicdesk.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DEBUG", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from civicdesk.core.security import create_access_token, hash_password
from civicdesk.db.base import Base
from civicdesk.db.session import get_db, init_db
from civicdesk.models.user import User
from civicdesk.services.access_engine import AccessDecisionEngine
from civicdesk.services.delegation_gate import DelegationGate
from civicdesk.services.override_store import PermissionOverrideStore
from civicdesk.services.permission_catalog import PermissionCatalog, get_catalog


@pytest.fixture
def engine():
    """In-memory SQLite shared across sessions of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    """Database session used by both the test and the app under test."""
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def catalog():
    """The bundled permission matrix."""
    return get_catalog()


@pytest.fixture
def finance_catalog():
    """Small catalog for reconciliation scenarios."""
    return PermissionCatalog(
        {
            "finance_officer": ["finance.payment.view", "finance.payment.create"],
            "staff_user": ["blotter.create", "certificates.view"],
            "technical_administrator": ["roles.manage", "audit.view", "delegation.manage"],
        },
        version="test",
    )


@pytest.fixture
def overrides(db, catalog):
    return PermissionOverrideStore(db, catalog)


@pytest.fixture
def gate(db):
    return DelegationGate(db)


@pytest.fixture
def access_engine(overrides, gate):
    return AccessDecisionEngine(overrides, gate)


@pytest.fixture
def make_user(db):
    """Factory creating persisted users with a given (raw) role."""
    counter = {"n": 0}

    def _make(role="staff_user", full_name=None, email=None, is_active=True):
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@civicdesk.test",
            hashed_password=hash_password("secret123"),
            full_name=full_name or f"Test User {counter['n']}",
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def admin_user(make_user):
    return make_user("super_admin", full_name="Ada Admin", email="admin@civicdesk.test")


@pytest.fixture
def staff_user(make_user):
    return make_user("staff_user", full_name="Sam Staff", email="staff@civicdesk.test")


def auth_headers(user):
    token = create_access_token({"sub": str(user.id), "email": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(db):
    """API client whose requests run on the test session."""
    from civicdesk.main import app

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def headers_for():
    """Bearer headers for a user."""
    return auth_headers
