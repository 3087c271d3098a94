"""Tests for event dispatch and fan-out in the messaging hub."""

import asyncio
import json

import anyio
import pytest
from sqlalchemy.exc import OperationalError

from nyx_server.core.security import create_access_token
from nyx_server.realtime.hub import MessagingHub


def frame(event: str, **data) -> str:
    return json.dumps({"event": event, "data": data})


async def connect_as(hub, connection_factory, user_id: str, connection_id: str):
    connection = connection_factory(connection_id)
    hub.connect(connection)
    await hub.handle(connection, frame("auth", userId=user_id))
    return connection


@pytest.mark.asyncio
async def test_auth_subscribes_persisted_chats(hub, connection_factory, alice, bob, make_chat) -> None:
    make_chat("chat-1", [alice.id, bob.id])
    make_chat("chat-2", [bob.id])

    connection = await connect_as(hub, connection_factory, alice.id, "a1")

    [ack] = connection.events("auth:ok")
    assert ack["data"] == {"userId": alice.id, "chats": ["chat-1"]}
    assert hub.rooms.rooms_of("a1") == {"chat-1"}
    assert hub.presence.is_online(alice.id)


@pytest.mark.asyncio
async def test_message_reaches_every_connection_of_participants(
    hub, connection_factory, alice, bob, carol, make_chat
) -> None:
    """Both of B's connections receive the message; non-participant C receives nothing."""
    make_chat("chat-x", [alice.id, bob.id])
    a1 = await connect_as(hub, connection_factory, alice.id, "a1")
    b1 = await connect_as(hub, connection_factory, bob.id, "b1")
    b2 = await connect_as(hub, connection_factory, bob.id, "b2")
    c1 = await connect_as(hub, connection_factory, carol.id, "c1")

    await hub.handle(a1, frame("message:send", chatId="chat-x", content="hello"))

    for connection in (a1, b1, b2):
        [delivered] = connection.events("message:new")
        assert delivered["data"]["content"] == "hello"
        assert delivered["data"]["senderId"] == alice.id
        assert delivered["data"]["chatId"] == "chat-x"
    assert c1.events("message:new") == []


@pytest.mark.asyncio
async def test_dead_connection_does_not_fail_delivery(hub, connection_factory, alice, bob, make_chat) -> None:
    make_chat("chat-x", [alice.id, bob.id])
    a1 = await connect_as(hub, connection_factory, alice.id, "a1")
    b1 = await connect_as(hub, connection_factory, bob.id, "b1")
    dead = await connect_as(hub, connection_factory, bob.id, "b-dead")
    dead.fail = True

    await hub.handle(a1, frame("message:send", chatId="chat-x", content="still here"))

    assert len(b1.events("message:new")) == 1
    assert a1.events("error") == []


@pytest.mark.asyncio
async def test_persist_failure_reports_to_sender_only(
    hub, connection_factory, alice, bob, make_chat, mocker
) -> None:
    make_chat("chat-x", [alice.id, bob.id])
    a1 = await connect_as(hub, connection_factory, alice.id, "a1")
    b1 = await connect_as(hub, connection_factory, bob.id, "b1")
    mocker.patch.object(
        hub.pipeline,
        "_persist",
        side_effect=OperationalError("INSERT", {}, Exception("disk full")),
    )

    await hub.handle(a1, frame("message:send", chatId="chat-x", content="lost"))

    [error] = a1.events("error")
    assert error["data"]["code"] == "store_error"
    assert error["data"]["event"] == "message:send"
    assert a1.events("message:new") == []
    assert b1.events("message:new") == []
    assert b1.events("error") == []


@pytest.mark.asyncio
async def test_mismatched_sender_is_rejected(hub, connection_factory, alice, bob, make_chat) -> None:
    make_chat("chat-x", [alice.id, bob.id])
    a1 = await connect_as(hub, connection_factory, alice.id, "a1")

    await hub.handle(a1, frame("message:send", chatId="chat-x", senderId=bob.id, content="spoof"))

    [error] = a1.events("error")
    assert error["data"]["code"] == "validation_error"
    assert a1.events("message:new") == []


@pytest.mark.asyncio
async def test_events_before_auth_are_rejected(hub, connection_factory) -> None:
    connection = connection_factory("anon")
    hub.connect(connection)

    await hub.handle(connection, frame("chat:join", chatId="chat-x"))
    await hub.handle(connection, "{broken")

    codes = [error["data"]["code"] for error in connection.events("error")]
    assert codes == ["unauthorized", "malformed_event"]


@pytest.mark.asyncio
async def test_auth_for_unknown_user_fails(hub, connection_factory) -> None:
    connection = connection_factory("ghost")
    hub.connect(connection)

    await hub.handle(connection, frame("auth", userId="NYX-ZZZZZZZZ"))

    [error] = connection.events("error")
    assert error["data"]["code"] == "not_found"
    assert connection.user_id is None


@pytest.mark.asyncio
async def test_socket_token_required(session_factory, connection_factory, alice) -> None:
    hub = MessagingHub(session_factory, socket_token_required=True)
    connection = connection_factory("a1")
    hub.connect(connection)

    await hub.handle(connection, frame("auth", userId=alice.id))
    assert connection.events("error")[0]["data"]["code"] == "unauthorized"

    forged = create_access_token(alice.id, "no-session")
    await hub.handle(connection, frame("auth", userId=alice.id, token=forged))
    assert len(connection.events("error")) == 2
    assert connection.events("auth:ok") == []


@pytest.mark.asyncio
async def test_join_checks_membership(hub, connection_factory, alice, bob, make_chat) -> None:
    make_chat("chat-b", [bob.id])
    a1 = await connect_as(hub, connection_factory, alice.id, "a1")

    await hub.handle(a1, frame("chat:join", chatId="chat-b"))
    await hub.handle(a1, frame("chat:join", chatId="missing"))

    codes = [error["data"]["code"] for error in a1.events("error")]
    assert codes == ["forbidden", "not_found"]
    assert hub.rooms.rooms_of("a1") == set()


@pytest.mark.asyncio
async def test_join_and_leave_acknowledge(hub, connection_factory, alice, make_chat, session_factory) -> None:
    a1 = await connect_as(hub, connection_factory, alice.id, "a1")
    make_chat("chat-late", [alice.id])

    await hub.handle(a1, frame("chat:join", chatId="chat-late"))
    assert a1.events("chat:joined") == [{"event": "chat:joined", "data": {"chatId": "chat-late"}}]
    assert "a1" in hub.rooms.subscribers("chat-late")

    await hub.handle(a1, frame("chat:leave", chatId="chat-late"))
    await hub.handle(a1, frame("chat:leave", chatId="chat-late"))
    assert len(a1.events("chat:left")) == 2
    assert hub.rooms.subscribers("chat-late") == set()


@pytest.mark.asyncio
async def test_typing_excludes_origin(hub, connection_factory, alice, bob, make_chat) -> None:
    make_chat("chat-x", [alice.id, bob.id])
    a1 = await connect_as(hub, connection_factory, alice.id, "a1")
    a2 = await connect_as(hub, connection_factory, alice.id, "a2")
    b1 = await connect_as(hub, connection_factory, bob.id, "b1")

    await hub.handle(a1, frame("message:typing", chatId="chat-x"))

    assert a1.events("message:typing") == []
    assert a2.events("message:typing") == [
        {"event": "message:typing", "data": {"chatId": "chat-x", "userId": alice.id}}
    ]
    assert len(b1.events("message:typing")) == 1


@pytest.mark.asyncio
async def test_presence_notifications(hub, connection_factory, alice, bob) -> None:
    a1 = await connect_as(hub, connection_factory, alice.id, "a1")
    b1 = await connect_as(hub, connection_factory, bob.id, "b1")
    b2 = await connect_as(hub, connection_factory, bob.id, "b2")

    assert a1.events("user:online") == [{"event": "user:online", "data": {"userId": bob.id}}]

    await hub.disconnect(b1)
    assert a1.events("user:offline") == []

    await hub.disconnect(b2)
    await hub.disconnect(b2)
    assert a1.events("user:offline") == [{"event": "user:offline", "data": {"userId": bob.id}}]
    assert not hub.presence.is_online(bob.id)
    assert hub.rooms.rooms_of("b2") == set()


@pytest.mark.asyncio
async def test_offline_notice_survives_cancelled_disconnect(hub, connection_factory, alice, bob) -> None:
    a1 = await connect_as(hub, connection_factory, alice.id, "a1")
    b1 = await connect_as(hub, connection_factory, bob.id, "b1")

    entered = asyncio.Event()
    release = asyncio.Event()
    record = a1.send

    async def held_send(payload):
        if payload["event"] == "user:offline":
            entered.set()
            await release.wait()
        await record(payload)

    a1.send = held_send

    async with anyio.create_task_group() as tg:
        tg.start_soon(hub.disconnect, b1)
        await entered.wait()
        tg.cancel_scope.cancel()
        release.set()

    assert a1.events("user:offline") == [{"event": "user:offline", "data": {"userId": bob.id}}]
    assert not hub.presence.is_online(bob.id)
    assert hub.connection_count == 1


@pytest.mark.asyncio
async def test_attach_chat_joins_live_connections(hub, connection_factory, alice, bob) -> None:
    a1 = await connect_as(hub, connection_factory, alice.id, "a1")
    b1 = await connect_as(hub, connection_factory, bob.id, "b1")

    attached = await hub.attach_chat("chat-new", [alice.id, bob.id, "NYX-OFFLINE1"])

    assert attached == 2
    assert hub.rooms.subscribers("chat-new") == {"a1", "b1"}
    assert a1.events("chat:joined") == [{"event": "chat:joined", "data": {"chatId": "chat-new"}}]
    assert len(b1.events("chat:joined")) == 1
