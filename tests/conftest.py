"""Pytest configuration and fixtures."""

import asyncio
from datetime import datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from taller_inbox.core.auth import create_access_token
from taller_inbox.persistence.database import Base, get_db
from taller_inbox.persistence.models import *  # noqa: F401, F403
from taller_inbox.persistence.models import (
    Conversation,
    Message,
    Organization,
    OrganizationMessagingConfig,
)

SESSION_NAME = "org-7"


@pytest.fixture
async def db_session():
    """Create a test database session."""
    # Use in-memory SQLite for testing
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def session_factory(tmp_path):
    """File-backed database for tests that race several sessions."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'race.db'}",
        echo=False,
        connect_args={"timeout": 30},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


async def create_organization(
    session: AsyncSession, name: str = "Taller Norte", session_name: str | None = SESSION_NAME
) -> Organization:
    """Create an organization, with a messaging channel when ``session_name`` is given."""
    organization = Organization(name=name)
    session.add(organization)
    await session.flush()
    if session_name:
        session.add(
            OrganizationMessagingConfig(
                organization_id=organization.id,
                session_name=session_name,
                api_url="http://waha.local:3000",
            )
        )
    await session.commit()
    return organization


async def create_conversation(
    session: AsyncSession,
    organization_id: int,
    phone: str,
    messages: int = 0,
    created_at: datetime | None = None,
    status: str = "active",
    **fields,
) -> Conversation:
    """Insert a conversation with ``messages`` inbound messages and a matching counter."""
    created_at = created_at or datetime(2025, 1, 1, 12, 0)
    conversation = Conversation(
        organization_id=organization_id,
        canonical_phone=phone,
        status=status,
        messages_count=messages,
        created_at=created_at,
        **fields,
    )
    session.add(conversation)
    await session.flush()
    for i in range(messages):
        session.add(
            Message(
                conversation_id=conversation.id,
                organization_id=organization_id,
                direction="inbound",
                body=f"mensaje {i}",
                provider_message_id=f"{conversation.id}-{i}",
                sent_at=created_at + timedelta(minutes=i),
            )
        )
    if messages:
        conversation.last_message_at = created_at + timedelta(minutes=messages - 1)
        conversation.last_message_text = f"mensaje {messages - 1}"
    await session.commit()
    return conversation


class Gate:
    """Hold every caller until ``parties`` callers have arrived."""

    def __init__(self, parties: int) -> None:
        self.parties = parties
        self.arrived = 0
        self._event = asyncio.Event()

    async def wait(self) -> None:
        self.arrived += 1
        if self.arrived >= self.parties:
            self._event.set()
        await asyncio.wait_for(self._event.wait(), timeout=10)


def hold_first_lookup(monkeypatch, cls, method_name: str, gate: Gate) -> None:
    """Make the first ``method_name`` call of each repository instance miss.

    The call waits at ``gate`` and returns None, so every racer reaches its
    insert before any of them has committed. Later calls behave normally.
    """
    original = getattr(cls, method_name)
    held = set()

    async def gated(self, *args, **kwargs):
        if id(self) not in held:
            held.add(id(self))
            await gate.wait()
            return None
        return await original(self, *args, **kwargs)

    monkeypatch.setattr(cls, method_name, gated)


@pytest.fixture
def organization_token():
    """Build an operator bearer header for an organization."""

    def _token(organization_id: int, role: str = "operator") -> dict[str, str]:
        token = create_access_token({"org": organization_id, "role": role})
        return {"Authorization": f"Bearer {token}"}

    return _token


@pytest.fixture
async def client(db_session):
    """Create a test HTTP client bound to the test database."""
    from taller_inbox.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()
