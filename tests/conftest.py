"""
Pytest configuration and fixtures.

Tests run against an in-memory SQLite database shared through a StaticPool,
with the demo floor plan and menu seeded for every test.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SEED_ON_STARTUP", "false")
os.environ.setdefault("EMAIL_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import date, datetime, time, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from criollo_api.main import app
from criollo_api.models import Base, Client, Employee, Product, Role, Table, User
from criollo_api.seed import seed
from criollo_api.services.notifications import EmailService, get_email_service
from criollo_shared.config.constants import Roles
from criollo_shared.infrastructure.db import get_db, get_session_factory
from criollo_shared.security.auth import sign_access_token
from criollo_shared.security.password import hash_password
from criollo_shared.utils.clock import today_local


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeTransport:
    """Collects outgoing messages instead of talking to an SMTP server."""

    def __init__(self):
        self.messages = []

    def __call__(self, message):
        self.messages.append(message)

    @property
    def recipients(self) -> list[str]:
        return [m["To"] for m in self.messages]

    @property
    def subjects(self) -> list[str]:
        return [m["Subject"] for m in self.messages]


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database for each test, seeded with roles, the
    administrator, ten tables and the demo menu.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    seed(session, demo=True)
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(db_session):
    return TestingSessionLocal


@pytest.fixture
def second_session(db_session):
    """Independent session on the same database, for lost-update scenarios."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def mail_transport():
    return FakeTransport()


@pytest.fixture(scope="function")
def client(db_session, mail_transport):
    """
    Create a test client with database session and email overrides.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    app.dependency_overrides[get_email_service] = lambda: EmailService(
        TestingSessionLocal, transport=mail_transport, enabled=True
    )

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# Staff
# =============================================================================


def _create_staff(db_session, username: str, role_name: str, cedula: str) -> User:
    role = db_session.scalar(select(Role).where(Role.name == role_name))
    user = User(
        username=username,
        email=f"{username}@elcriollo.com.do",
        password_hash=hash_password("Clave1234"),
        role_id=role.id,
        role=role,
    )
    db_session.add(user)
    db_session.flush()
    employee = Employee(
        cedula=cedula,
        first_name=username.capitalize(),
        last_name="Prueba",
        position=role_name,
        user_id=user.id,
    )
    db_session.add(employee)
    db_session.commit()
    db_session.refresh(user)
    return user


def _headers_for(user: User) -> dict[str, str]:
    token = sign_access_token(
        user.id,
        user.username,
        user.role_name,
        email=user.email,
        employee_id=user.employee.id if user.employee else None,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(db_session) -> User:
    return db_session.scalar(select(User).where(User.username == "admin"))


@pytest.fixture
def waiter_user(db_session) -> User:
    return _create_staff(db_session, "mesero", Roles.WAITER, "001-0000002-2")


@pytest.fixture
def cashier_user(db_session) -> User:
    return _create_staff(db_session, "cajero", Roles.CASHIER, "001-0000003-3")


@pytest.fixture
def kitchen_user(db_session) -> User:
    return _create_staff(db_session, "cocina", Roles.KITCHEN, "001-0000004-4")


@pytest.fixture
def reception_user(db_session) -> User:
    return _create_staff(db_session, "recepcion", Roles.RECEPTION, "001-0000005-5")


@pytest.fixture
def admin_headers(admin_user):
    return _headers_for(admin_user)


@pytest.fixture
def waiter_headers(waiter_user):
    return _headers_for(waiter_user)


@pytest.fixture
def cashier_headers(cashier_user):
    return _headers_for(cashier_user)


@pytest.fixture
def kitchen_headers(kitchen_user):
    return _headers_for(kitchen_user)


@pytest.fixture
def reception_headers(reception_user):
    return _headers_for(reception_user)


# =============================================================================
# Domain data
# =============================================================================


@pytest.fixture
def table_by_number(db_session):
    def _get(number: int) -> Table:
        return db_session.scalar(select(Table).where(Table.number == number))
    return _get


@pytest.fixture
def product_by_name(db_session):
    def _get(name: str) -> Product:
        return db_session.scalar(select(Product).where(Product.name == name))
    return _get


@pytest.fixture
def seed_client(db_session) -> Client:
    """A registered client with an email address."""
    client = Client(
        cedula="402-1234567-8",
        first_name="María",
        last_name="Rodríguez",
        phone="809-555-1234",
        email="maria.rodriguez@gmail.com",
        birth_date=date(1990, 5, 17),
    )
    db_session.add(client)
    db_session.commit()
    db_session.refresh(client)
    return client


@pytest.fixture
def tomorrow_at():
    """Naive local datetime tomorrow at the given hour."""
    def _at(hour: int, minute: int = 0):
        return datetime.combine(today_local() + timedelta(days=1), time(hour, minute))
    return _at
