"""
Shared pytest fixtures for clubreg tests.

Sets required environment variables BEFORE any clubreg module is imported so
that pydantic-settings and SQLAlchemy engine initialisation use safe test
values.
"""
from __future__ import annotations

import os
from typing import AsyncGenerator

# ── Set env vars before any clubreg import ────────────────────────────────────
os.environ.setdefault("BOT_TOKEN", "123456:test-token-for-pytest")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ADMIN_EMAILS", "boss@club.test")
os.environ.setdefault("PASSWORD_ITERATIONS", "1000")

# ── Third-party ───────────────────────────────────────────────────────────────
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# ── clubreg imports (safe after env vars are set) ─────────────────────────────
from clubreg.models.base import Base

from fakes import FakeAuth, FakeProfiles


# ── DB fixtures ───────────────────────────────────────────────────────────────

@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """
    Session factory over an isolated in-memory SQLite database.
    StaticPool keeps one connection so every session sees the same database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    finally:
        await engine.dispose()


@pytest.fixture
async def async_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A fresh AsyncSession on the per-test database."""
    async with session_factory() as session:
        yield session


# ── Fakes ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def fake_auth() -> FakeAuth:
    return FakeAuth()


@pytest.fixture
def fake_profiles() -> FakeProfiles:
    return FakeProfiles()
