"""HTTP tests for the WhatsApp provider webhook."""

import pytest
from conftest import SESSION_NAME, create_organization
from sqlalchemy import func, select

from taller_inbox.persistence.models import Message

WEBHOOK_URL = "/api/v1/webhooks/whatsapp"


def _envelope(payload: dict, event: str = "message", session: str = SESSION_NAME) -> dict:
    return {"event": event, "session": session, "payload": payload}


@pytest.mark.asyncio
async def test_verify_endpoint(client):
    response = await client.get(WEBHOOK_URL)

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_inbound_message_is_processed(client, db_session):
    await create_organization(db_session)

    response = await client.post(
        WEBHOOK_URL,
        json=_envelope({"from": "5215512345678@c.us", "body": "hola", "id": "ABC1"}),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "processed"
    assert isinstance(data["conversationId"], str)
    total = (await db_session.execute(select(func.count(Message.id)))).scalar_one()
    assert total == 1


@pytest.mark.asyncio
async def test_ignored_event_has_no_conversation_id(client, db_session):
    await create_organization(db_session)

    response = await client.post(
        WEBHOOK_URL,
        json=_envelope({"from": "5215512345678@c.us", "body": "hola", "fromMe": True}),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert "conversationId" not in data


@pytest.mark.asyncio
async def test_unknown_session_returns_404(client, db_session):
    await create_organization(db_session)

    response = await client.post(
        WEBHOOK_URL,
        json=_envelope({"from": "5215512345678@c.us", "body": "hola"}, session="desconocida"),
    )

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Unknown messaging session"}


@pytest.mark.asyncio
async def test_unparseable_sender_returns_400(client, db_session):
    await create_organization(db_session)

    response = await client.post(WEBHOOK_URL, json=_envelope({"from": "@c.us", "body": "hola"}))

    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_request_id_is_echoed(client):
    response = await client.get(WEBHOOK_URL, headers={"X-Request-Id": "req-123"})

    assert response.headers["X-Request-Id"] == "req-123"


@pytest.mark.asyncio
async def test_request_id_is_generated_when_missing(client):
    response = await client.get(WEBHOOK_URL)

    assert response.headers["X-Request-Id"]
