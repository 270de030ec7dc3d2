"""Tests for inbound WhatsApp event processing."""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import SESSION_NAME, Gate, create_organization, hold_first_lookup
from sqlalchemy import func, select

from taller_inbox.core.errors import TenantResolutionError, ValidationError
from taller_inbox.domain.services.webhook_receiver import InboundEvent, WebhookReceiver
from taller_inbox.persistence.models import Conversation, Message, OrganizationMessagingConfig
from taller_inbox.persistence.repositories.conversation_repository import ConversationRepository
from taller_inbox.settings import settings


def _event(payload: dict, event: str = "message", session: str = SESSION_NAME) -> InboundEvent:
    return InboundEvent.from_envelope({"event": event, "session": session, "payload": payload})


async def _count(session, model) -> int:
    return (await session.execute(select(func.count(model.id)))).scalar_one()


@pytest.mark.asyncio
async def test_first_message_creates_conversation_and_message(db_session):
    organization = await create_organization(db_session)
    receiver = WebhookReceiver(db_session)

    result = await receiver.handle(
        _event({"from": "+52 55 1234 5678", "body": "hola", "fromMe": False, "id": "ABC1"})
    )

    assert result.success is True
    assert result.conversation_id is not None

    conversation = await db_session.get(Conversation, result.conversation_id)
    await db_session.refresh(conversation)
    assert conversation.organization_id == organization.id
    assert conversation.canonical_phone == "5215512345678"
    assert conversation.status == "active"
    assert conversation.messages_count == 1
    assert conversation.last_message_text == "hola"
    assert conversation.display_name == "Cliente WhatsApp"

    messages = (await db_session.execute(select(Message))).scalars().all()
    assert len(messages) == 1
    assert messages[0].direction == "inbound"
    assert messages[0].organization_id == organization.id
    assert messages[0].conversation_id == conversation.id
    assert messages[0].provider_message_id == "ABC1"
    assert messages[0].raw_provider_payload["body"] == "hola"


@pytest.mark.asyncio
async def test_follow_up_message_reuses_conversation(db_session):
    await create_organization(db_session)
    receiver = WebhookReceiver(db_session)

    first = await receiver.handle(_event({"from": "5215512345678@c.us", "body": "hola"}))
    second = await receiver.handle(_event({"from": "525512345678@c.us", "body": "¿tienen cita?"}))

    assert first.conversation_id == second.conversation_id
    assert await _count(db_session, Conversation) == 1
    conversation = await db_session.get(Conversation, first.conversation_id)
    await db_session.refresh(conversation)
    assert conversation.messages_count == 2
    assert conversation.last_message_text == "¿tienen cita?"


@pytest.mark.asyncio
@pytest.mark.parametrize("from_me", [True, "true"])
async def test_own_messages_are_acknowledged_and_ignored(db_session, from_me):
    await create_organization(db_session)

    result = await WebhookReceiver(db_session).handle(
        _event({"from": "5215512345678@c.us", "body": "respuesta", "fromMe": from_me})
    )

    assert result.success is True
    assert result.conversation_id is None
    assert await _count(db_session, Conversation) == 0
    assert await _count(db_session, Message) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("event_type", ["message.ack", "presence.update", None])
async def test_unrecognized_events_are_acknowledged_and_ignored(db_session, event_type):
    await create_organization(db_session)

    result = await WebhookReceiver(db_session).handle(
        _event({"from": "5215512345678@c.us", "body": "hola"}, event=event_type)
    )

    assert result.success is True
    assert await _count(db_session, Conversation) == 0
    assert await _count(db_session, Message) == 0


@pytest.mark.asyncio
async def test_message_any_event_is_ingested(db_session):
    await create_organization(db_session)

    result = await WebhookReceiver(db_session).handle(
        _event({"from": "5215512345678@c.us", "body": "hola"}, event="message.any")
    )

    assert result.conversation_id is not None
    assert await _count(db_session, Message) == 1


@pytest.mark.asyncio
async def test_group_chats_are_ignored(db_session):
    await create_organization(db_session)

    result = await WebhookReceiver(db_session).handle(
        _event({"from": "120363025246125486@g.us", "body": "hola grupo"})
    )

    assert result.success is True
    assert await _count(db_session, Conversation) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"body": "sin remitente"}, {"from": "@c.us", "body": "x"}])
async def test_unparseable_sender_raises_validation_error(db_session, payload):
    await create_organization(db_session)

    with pytest.raises(ValidationError):
        await WebhookReceiver(db_session).handle(_event(payload))

    assert await _count(db_session, Conversation) == 0


@pytest.mark.asyncio
async def test_unknown_session_writes_nothing(db_session):
    await create_organization(db_session)

    with pytest.raises(TenantResolutionError):
        await WebhookReceiver(db_session).handle(
            _event({"from": "5215512345678@c.us", "body": "hola"}, session="desconocida")
        )

    assert await _count(db_session, Conversation) == 0
    assert await _count(db_session, Message) == 0


@pytest.mark.asyncio
async def test_sender_falls_back_to_chat_id_and_body_to_text(db_session):
    await create_organization(db_session)

    result = await WebhookReceiver(db_session).handle(
        _event({"chatId": "5215512345678@c.us", "text": "texto plano", "timestamp": 1735732800})
    )

    message = (await db_session.execute(select(Message))).scalar_one()
    assert message.body == "texto plano"
    assert message.sent_at == datetime(2025, 1, 1, 12, 0)
    conversation = await db_session.get(Conversation, result.conversation_id)
    assert conversation.canonical_phone == "5215512345678"


@pytest.mark.asyncio
async def test_push_name_names_the_conversation(db_session):
    await create_organization(db_session)
    receiver = WebhookReceiver(db_session)

    first = await receiver.handle(_event({"from": "5215512345678@c.us", "body": "hola"}))
    await receiver.handle(
        _event({"from": "5215512345678@c.us", "body": "soy Juan", "pushName": "Juan Pérez"})
    )
    await receiver.handle(
        _event({"from": "5215512345678@c.us", "body": "otra", "pushName": "Juanito"})
    )

    conversation = await db_session.get(Conversation, first.conversation_id)
    await db_session.refresh(conversation)
    assert conversation.display_name == "Juan Pérez"


@pytest.mark.asyncio
async def test_duplicate_deliveries_are_stored_twice_without_dedup(db_session):
    await create_organization(db_session)
    receiver = WebhookReceiver(db_session)
    event = _event({"from": "5215512345678@c.us", "body": "hola", "id": "ABC1"})

    await receiver.handle(event)
    await receiver.handle(event)

    assert await _count(db_session, Message) == 2


@pytest.mark.asyncio
async def test_dedup_skips_redelivered_message(db_session, monkeypatch):
    monkeypatch.setattr(settings, "webhook_dedup_enabled", True)
    await create_organization(db_session)
    redis = MagicMock()
    redis.setnx = AsyncMock(side_effect=[True, False])
    receiver = WebhookReceiver(db_session, redis=redis)
    event = _event({"from": "5215512345678@c.us", "body": "hola", "id": "ABC1"})

    first = await receiver.handle(event)
    second = await receiver.handle(event)

    assert first.conversation_id is not None
    assert second.success is True
    assert second.message == "duplicate"
    assert second.conversation_id is None
    assert await _count(db_session, Message) == 1
    redis.setnx.assert_awaited_with(
        f"whatsapp_msg:{SESSION_NAME}:ABC1", "1", ttl=settings.webhook_dedup_ttl_seconds
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("status,connected", [("WORKING", True), ("connected", True), ("STOPPED", False)])
async def test_session_status_updates_connection_flag(db_session, status, connected):
    organization = await create_organization(db_session)

    result = await WebhookReceiver(db_session).handle(
        _event({"status": status}, event="session.status")
    )

    assert result.success is True
    config = (
        await db_session.execute(
            select(OrganizationMessagingConfig).where(
                OrganizationMessagingConfig.organization_id == organization.id
            )
        )
    ).scalar_one()
    await db_session.refresh(config)
    assert config.whatsapp_connected is connected


@pytest.mark.asyncio
async def test_session_status_for_unknown_session_is_acknowledged(db_session):
    await create_organization(db_session)

    result = await WebhookReceiver(db_session).handle(
        _event({"status": "WORKING"}, event="session.status", session="desconocida")
    )

    assert result.success is True


@pytest.mark.asyncio
async def test_concurrent_first_messages_create_one_conversation(session_factory, monkeypatch):
    racers = 5
    async with session_factory() as setup:
        await create_organization(setup)

    hold_first_lookup(monkeypatch, ConversationRepository, "get_active_by_phone", Gate(racers))

    async def deliver(i: int):
        async with session_factory() as session:
            return await WebhookReceiver(session).handle(
                _event({"from": "+52 1 55 1234 5678", "body": f"hola {i}", "id": f"M{i}"})
            )

    results = await asyncio.gather(*(deliver(i) for i in range(racers)))

    assert all(r.success for r in results)
    assert len({r.conversation_id for r in results}) == 1

    async with session_factory() as session:
        assert await _count(session, Conversation) == 1
        assert await _count(session, Message) == racers
        conversation = (await session.execute(select(Conversation))).scalar_one()
        assert conversation.messages_count == racers
