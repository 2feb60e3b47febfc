"""
Test fixtures for the Banca API test suite.

This module provides shared fixtures used across all test files:

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - client: Async HTTP test client (unauthenticated)
  - make_user: Factory that registers a user, optionally promotes its role,
    logs in and returns the auth headers plus the user's account id
  - cliente / second_cliente / cajero / gerente / admin: One ready user per role
  - deposit_as / balance_of: Shortcuts for funding and reading an account

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) with a StaticPool, so every
    session in a test sees the same database and no state leaks between tests.
  - We override FastAPI's get_db dependency to inject our test sessions,
    so the application code works exactly as it does in production.
  - Users are created through the real /auth/register endpoint. Staff roles
    are then assigned by updating the row directly, the way an operator
    provisions staff.
  - Each user carries its own headers; requests pass them explicitly, so
    several users can share one client.
"""

import itertools
import os
import uuid
from decimal import Decimal
from dataclasses import dataclass

# Settings are read at import time; these must be set before banca_api loads
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("SEED_DEFAULT_USERS", "false")
os.environ.setdefault("ENVIRONMENT", "development")

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import update
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from banca_api.database import Base, get_db
from banca_api.main import app
from banca_api.models.user import User, UserRole


TEST_DATABASE_URL = "sqlite+aiosqlite://"
TEST_PASSWORD = "SecurePass123!"


@dataclass
class ApiUser:
    user_id: str
    account_id: str
    username: str
    email: str
    headers: dict


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Provide an async session bound to the test engine."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    """
    Async HTTP test client with the test database injected.

    This overrides the get_db dependency so all requests hit the
    in-memory test database instead of the real one.
    """

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


def registration_payload(n: int, **overrides) -> dict:
    payload = {
        "name": "Test",
        "surname": f"User{n}",
        "username": f"user{n}",
        "email": f"user{n}@example.com",
        "password": TEST_PASSWORD,
        "phone": "55512345",
        "dpi": f"{n:013d}",
        "address": "Zona 10, Guatemala",
        "jobName": "Engineer",
        "monthlyIncome": "5000.00",
    }
    payload.update(overrides)
    return payload


@pytest_asyncio.fixture
async def make_user(client, session_factory):
    """
    Factory fixture: `await make_user(UserRole.CAJERO)` returns an ApiUser.

    The user is registered (which opens its account), promoted to `role`
    directly in the database, then logged in to obtain a token.
    """
    counter = itertools.count(1)

    async def _make(role: UserRole = UserRole.CLIENTE) -> ApiUser:
        n = next(counter)
        payload = registration_payload(n)
        response = await client.post("/auth/register", json=payload)
        assert response.status_code == 201, f"Register failed: {response.text}"
        body = response.json()

        if role != UserRole.CLIENTE:
            async with session_factory() as session:
                await session.execute(
                    update(User)
                    .where(User.id == uuid.UUID(body["user"]["id"]))
                    .values(role=role)
                )
                await session.commit()

        login = await client.post(
            "/auth/login",
            json={"username": payload["username"], "password": TEST_PASSWORD},
        )
        assert login.status_code == 200, f"Login failed: {login.text}"
        token = login.json()["userDetails"]["token"]

        return ApiUser(
            user_id=body["user"]["id"],
            account_id=body["account"]["id"],
            username=payload["username"],
            email=payload["email"],
            headers={"Authorization": f"Bearer {token}"},
        )

    return _make


@pytest_asyncio.fixture
async def cliente(make_user):
    return await make_user(UserRole.CLIENTE)


@pytest_asyncio.fixture
async def second_cliente(make_user):
    return await make_user(UserRole.CLIENTE)


@pytest_asyncio.fixture
async def cajero(make_user):
    return await make_user(UserRole.CAJERO)


@pytest_asyncio.fixture
async def gerente(make_user):
    return await make_user(UserRole.GERENTE_SUCURSAL)


@pytest_asyncio.fixture
async def admin(make_user):
    return await make_user(UserRole.ADMIN_GLOBAL)


@pytest_asyncio.fixture
async def deposit_as(client):
    """`await deposit_as(user, "100.00")` deposits into the user's account."""

    async def _deposit(user: ApiUser, amount: str, account_id: str | None = None):
        return await client.post(
            "/transactions/deposit",
            json={"accountId": account_id or user.account_id, "amount": amount},
            headers=user.headers,
        )

    return _deposit


@pytest_asyncio.fixture
async def balance_of(client):
    """`await balance_of(user)` reads an account balance as a Decimal."""

    async def _balance(user: ApiUser, account_id: str | None = None) -> Decimal:
        response = await client.get(
            f"/accounts/{account_id or user.account_id}", headers=user.headers
        )
        assert response.status_code == 200, response.text
        return Decimal(response.json()["account"]["balance"])

    return _balance
