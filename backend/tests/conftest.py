"""
Test Configuration and Fixtures
================================

Central configuration for pytest with all shared fixtures.

Features:
- SQLite in-memory database for testing
- TestClient setup with dependency overrides
- Factories for organizations, users, memberships and content
- Bearer token minting (issuance is upstream of the service)
"""

import os
import uuid
from datetime import datetime, timedelta, UTC
from typing import Callable, Generator, Optional

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Set testing environment before importing app modules
os.environ["ENVIRONMENT"] = "testing"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only-min-32-chars"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"  # Disable rate limiting in tests

from stratikey.core.config import settings
from stratikey.core.enums import ApprovalStatus
from stratikey.core.tenant.cache import TenantCache, tenant_cache
from stratikey.core.tenant.context import (
    Caller,
    InMemorySelectionStore,
    OrganizationContextResolver,
    RequestContext,
    SqlMembershipSource,
)
from stratikey.db.base import Base
from stratikey.db.session import get_db
from stratikey.models import Asset, Membership, Organization, Role, Task, User
from stratikey.services.approval_repository import ApprovalRepository
from stratikey.services.approval_workflow import ApprovalWorkflow
from stratikey.services.authorization_gate import AuthorizationGate
from stratikey.main import app as main_app


# =====================================
# Database Configuration
# =====================================

# StaticPool keeps one connection so the in-memory database survives
engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign key constraints for SQLite."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


# =====================================
# Database Fixtures
# =====================================

@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """
    Create a fresh database session for each test.

    Creates all tables before each test and drops them after.
    """
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def reset_tenant_cache() -> Generator[None, None, None]:
    tenant_cache.clear()
    yield
    tenant_cache.clear()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a TestClient with database dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    main_app.dependency_overrides[get_db] = override_get_db

    with TestClient(main_app) as test_client:
        yield test_client

    main_app.dependency_overrides.clear()


# =====================================
# Factories
# =====================================

@pytest.fixture
def make_organization(db_session: Session) -> Callable[..., Organization]:
    def factory(name: str = "Acme Marketing", plan: Optional[str] = "pro") -> Organization:
        org = Organization(id=uuid.uuid4(), name=name, plan=plan)
        db_session.add(org)
        db_session.commit()
        return org

    return factory


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    def factory(email: Optional[str] = None, is_active: bool = True) -> User:
        user = User(
            id=uuid.uuid4(),
            email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
            first_name="Test",
            last_name="User",
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return factory


@pytest.fixture
def add_membership(db_session: Session) -> Callable[..., Membership]:
    def factory(user: User, organization: Organization, role: Role) -> Membership:
        membership = Membership(
            id=uuid.uuid4(),
            user_id=user.id,
            organization_id=organization.id,
            role=role,
        )
        db_session.add(membership)
        db_session.commit()
        return membership

    return factory


@pytest.fixture
def make_asset(db_session: Session) -> Callable[..., Asset]:
    def factory(
        organization: Organization,
        title: str = "Spring launch banner",
        status: ApprovalStatus = ApprovalStatus.IN_REVIEW,
        review_notes: Optional[str] = None,
    ) -> Asset:
        asset = Asset(
            id=uuid.uuid4(),
            organization_id=organization.id,
            title=title,
            url="https://cdn.example.com/banner.png",
            content_type="image/png",
            approval_status=status,
            review_notes=review_notes,
        )
        db_session.add(asset)
        db_session.commit()
        return asset

    return factory


@pytest.fixture
def make_task(db_session: Session) -> Callable[..., Task]:
    def factory(
        organization: Organization,
        title: str = "Write newsletter copy",
        status: ApprovalStatus = ApprovalStatus.IN_REVIEW,
        review_notes: Optional[str] = None,
    ) -> Task:
        task = Task(
            id=uuid.uuid4(),
            organization_id=organization.id,
            title=title,
            description="Draft for the April issue",
            approval_status=status,
            review_notes=review_notes,
        )
        db_session.add(task)
        db_session.commit()
        return task

    return factory


# =====================================
# Organization / User Fixtures
# =====================================

@pytest.fixture
def org_a(make_organization) -> Organization:
    return make_organization(name="Org A")


@pytest.fixture
def org_b(make_organization) -> Organization:
    return make_organization(name="Org B")


@pytest.fixture
def user_factory_with_role(make_user, add_membership, org_a) -> Callable[[Role], User]:
    """Create a user holding a single membership in org A with the given role."""
    def factory(role: Role) -> User:
        user = make_user(email=f"{role.value.lower()}-{uuid.uuid4().hex[:6]}@example.com")
        add_membership(user, org_a, role)
        return user

    return factory


@pytest.fixture
def admin_user(user_factory_with_role) -> User:
    return user_factory_with_role(Role.ORG_ADMIN)


@pytest.fixture
def marketer_user(user_factory_with_role) -> User:
    return user_factory_with_role(Role.MARKETER)


@pytest.fixture
def sales_user(user_factory_with_role) -> User:
    return user_factory_with_role(Role.SALES)


@pytest.fixture
def viewer_user(user_factory_with_role) -> User:
    return user_factory_with_role(Role.VIEWER)


@pytest.fixture
def multi_org_user(make_user, add_membership, org_a, org_b) -> User:
    """MARKETER in org A (first membership) and ORG_ADMIN in org B."""
    user = make_user(email="multi@example.com")
    add_membership(user, org_a, Role.MARKETER)
    add_membership(user, org_b, Role.ORG_ADMIN)
    return user


# =====================================
# Core Service Fixtures
# =====================================

def caller_for(user: User) -> Caller:
    return Caller(user_id=user.id, email=user.email)


@pytest.fixture
def cache() -> TenantCache:
    return TenantCache(ttl_seconds=60)


@pytest.fixture
def selection_store() -> InMemorySelectionStore:
    return InMemorySelectionStore()


@pytest.fixture
def resolver(db_session: Session, selection_store, cache) -> OrganizationContextResolver:
    return OrganizationContextResolver(
        membership_source=SqlMembershipSource(db_session),
        selection_store=selection_store,
        cache=cache,
    )


@pytest.fixture
def gate(resolver) -> AuthorizationGate:
    return AuthorizationGate(resolver)


@pytest.fixture
def workflow(gate, db_session: Session, cache) -> ApprovalWorkflow:
    return ApprovalWorkflow(gate, ApprovalRepository(db_session), cache)


@pytest.fixture
def context_for(gate) -> Callable[[User], RequestContext]:
    def factory(user: User) -> RequestContext:
        return gate.resolve(caller_for(user))

    return factory


# =====================================
# Token Fixtures
# =====================================

def make_token(
    user_id,
    token_type: str = "access",
    expires_in: timedelta = timedelta(minutes=15),
    secret: Optional[str] = None,
    audience: Optional[str] = None,
) -> str:
    """Mint a bearer token the way the upstream identity provider does."""
    now = datetime.now(UTC)
    claims = {
        "sub": str(user_id),
        "type": token_type,
        "iss": settings.TOKEN_ISSUER,
        "aud": audience or settings.TOKEN_AUDIENCE,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
    }
    return jwt.encode(claims, secret or settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def auth_headers_for(user: User, **extra: str) -> dict:
    headers = {"Authorization": f"Bearer {make_token(user.id)}"}
    headers.update(extra)
    return headers


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return auth_headers_for(admin_user)


@pytest.fixture
def marketer_headers(marketer_user: User) -> dict:
    return auth_headers_for(marketer_user)


@pytest.fixture
def viewer_headers(viewer_user: User) -> dict:
    return auth_headers_for(viewer_user)


@pytest.fixture
def multi_org_headers(multi_org_user: User) -> dict:
    return auth_headers_for(multi_org_user)


@pytest.fixture
def headers_for() -> Callable[..., dict]:
    return auth_headers_for


@pytest.fixture
def mint_token() -> Callable[..., str]:
    return make_token


@pytest.fixture
def caller_of() -> Callable[[User], Caller]:
    return caller_for
