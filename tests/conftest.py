# tests/conftest.py
from __future__ import annotations

import base64
import os
from collections.abc import Callable, Generator, Iterator
from itertools import count
from typing import Any

import pytest
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from nyx_server.api.v1.dependencies import get_hub  # noqa: E402
from nyx_server.db.session import Base  # noqa: E402
from nyx_server.db.session import get_db as app_get_session  # noqa: E402
from nyx_server.db.time import utcnow  # noqa: E402
from nyx_server.main import app as fastapi_app  # noqa: E402
from nyx_server.models import Chat, ChatParticipant, User  # noqa: E402
from nyx_server.realtime.connection import Connection  # noqa: E402
from nyx_server.realtime.hub import MessagingHub  # noqa: E402

TEST_DB_URL = "sqlite://"

_NICKNAME_COUNTER = count(1)


class RecordingConnection(Connection):
    """In-memory connection that records every frame sent to it."""

    def __init__(self, connection_id: str | None = None, *, fail: bool = False) -> None:
        super().__init__(connection_id)
        self.sent: list[dict[str, Any]] = []
        self.fail = fail

    async def send(self, payload: dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionError("connection closed")
        self.sent.append(payload)

    def events(self, name: str | None = None) -> list[dict[str, Any]]:
        """Return recorded frames, optionally only those named ``name``."""
        return [frame for frame in self.sent if name is None or frame["event"] == name]


def _enable_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", _enable_foreign_keys)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def hub(session_factory: sessionmaker[Session]) -> MessagingHub:
    """Hub bound to the per-test database with default membership enforcement."""
    return MessagingHub(
        session_factory,
        enforce_membership=True,
        socket_token_required=False,
    )


@pytest.fixture()
def app(session_factory: sessionmaker[Session], hub: MessagingHub) -> Iterator[FastAPI]:
    def _get_session_override() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[app_get_session] = _get_session_override
    fastapi_app.dependency_overrides[get_hub] = lambda: hub
    try:
        yield fastapi_app
    finally:
        fastapi_app.dependency_overrides.pop(app_get_session, None)
        fastapi_app.dependency_overrides.pop(get_hub, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def connection_factory() -> Callable[..., RecordingConnection]:
    """Return a factory for recording connections."""
    return RecordingConnection


def generate_public_key() -> str:
    """Return a base64 SPKI public key as exported by browser clients."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    der = private_key.public_key().public_bytes(Encoding.DER, PublicFormat.SubjectPublicKeyInfo)
    return base64.b64encode(der).decode()


@pytest.fixture()
def public_key() -> str:
    return generate_public_key()


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Persist a user directly, bypassing registration."""

    def _make_user(
        user_id: str,
        nickname: str | None = None,
        *,
        searchable: bool = False,
        auto_delete_messages: int | None = None,
    ) -> User:
        user = User(
            id=user_id,
            nickname=nickname or f"user{next(_NICKNAME_COUNTER)}",
            public_key="test-public-key",
            allow_search_by_nickname=searchable,
            auto_delete_messages=auto_delete_messages,
            created_at=utcnow(),
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture()
def make_chat(db_session: Session) -> Callable[..., Chat]:
    """Persist a group chat with the given members."""

    def _make_chat(chat_id: str, member_ids: list[str], name: str = "Test chat") -> Chat:
        chat = Chat(id=chat_id, type="group", name=name, created_at=utcnow())
        db_session.add(chat)
        for user_id in member_ids:
            db_session.add(ChatParticipant(chat_id=chat_id, user_id=user_id))
        db_session.commit()
        return chat

    return _make_chat


@pytest.fixture()
def alice(make_user: Callable[..., User]) -> User:
    return make_user("NYX-AAAAAAAA", "alice")


@pytest.fixture()
def bob(make_user: Callable[..., User]) -> User:
    return make_user("NYX-BBBBBBBB", "bob")


@pytest.fixture()
def carol(make_user: Callable[..., User]) -> User:
    return make_user("NYX-CCCCCCCC", "carol")
