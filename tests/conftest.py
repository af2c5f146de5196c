import asyncio
import os
from typing import Optional

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ticket_router.database import Base
from ticket_router.models import Queue, Whatsapp
from ticket_router.schemas.provider import MediaPayload, ProviderChat, ProviderContact, ProviderMessage
from ticket_router.services.notification_service import TicketNotifier
from ticket_router.services.provider_session import ProviderError, ProviderSession
from ticket_router.services.session_context import SessionContext

OWN_JID = "5511900000000@c.us"


class FakeProvider(ProviderSession):
    """In-memory provider session; every call yields to the event loop once."""

    def __init__(self):
        self.contacts: dict[str, ProviderContact] = {}
        self.chats: dict[str, ProviderChat] = {}
        self.media: dict[str, MediaPayload] = {}
        self.sent: list[tuple[str, str, float]] = []
        self.fail_send = False
        self.state = "CONNECTED"
        self.closed = False

    def add_contact(self, user: str, name: Optional[str] = None, is_group: bool = False, unread: int = 0):
        server = "g.us" if is_group else "c.us"
        jid = f"{user}@{server}"
        self.contacts[jid] = ProviderContact.model_validate(
            {"id": {"user": user, "server": server, "_serialized": jid}, "name": name, "isGroup": is_group}
        )
        self.chats[jid] = ProviderChat(id=jid, isGroup=is_group, unreadCount=unread)
        return jid

    async def get_contact(self, jid: str) -> ProviderContact:
        await asyncio.sleep(0)
        if jid not in self.contacts:
            raise ProviderError("get_contact", f"unknown {jid}")
        return self.contacts[jid]

    async def get_profile_pic_url(self, jid: str) -> Optional[str]:
        await asyncio.sleep(0)
        return f"https://pics.example/{jid}.jpg"

    async def get_chat(self, jid: str) -> ProviderChat:
        await asyncio.sleep(0)
        return self.chats[jid]

    async def download_media(self, message_id: str) -> Optional[MediaPayload]:
        await asyncio.sleep(0)
        return self.media.get(message_id)

    async def send_message(self, jid: str, body: str) -> ProviderMessage:
        await asyncio.sleep(0)
        if self.fail_send:
            raise ProviderError("send_message", "session closed")
        self.sent.append((jid, body, asyncio.get_running_loop().time()))
        return ProviderMessage.model_validate(
            {
                "id": {"id": f"SENT{len(self.sent)}", "fromMe": True, "remote": jid},
                "body": body,
                "type": "chat",
                "from": OWN_JID,
                "to": jid,
                "fromMe": True,
            }
        )

    async def get_state(self) -> str:
        return self.state

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def db_engine():
    """In-memory SQLite shared by every session of a test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_factory(db_engine):
    return sessionmaker(bind=db_engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(db_factory):
    session = db_factory()
    yield session
    session.close()


@pytest.fixture
def make_whatsapp(db):
    created = []

    def _make(queues: tuple[str, ...] = (), greeting: str = "Hello! Pick a department:") -> Whatsapp:
        whatsapp = Whatsapp(name=f"session-{len(created) + 1}", status="CONNECTED", greeting_message=greeting)
        db.add(whatsapp)
        db.flush()
        for position, name in enumerate(queues, start=1):
            db.add(
                Queue(
                    whatsapp_id=whatsapp.id,
                    name=name,
                    position=position,
                    greeting_message=f"You are now talking to {name}.",
                )
            )
        db.commit()
        created.append(whatsapp)
        return whatsapp

    return _make


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def make_context(db_factory, provider, tmp_path):
    def _make(whatsapp_id: int, **kwargs) -> SessionContext:
        options = {
            "media_dir": tmp_path / "media",
            "ack_delay_seconds": 0,
            "menu_debounce_seconds": 0.2,
        }
        options.update(kwargs)
        return SessionContext(whatsapp_id, provider, db_factory, TicketNotifier(), **options)

    return _make


@pytest.fixture
def make_message():
    counter = {"n": 0}

    def _make(
        body: str = "hi",
        *,
        sender: str = "5511988887777@c.us",
        to: str = OWN_JID,
        from_me: bool = False,
        msg_type: str = "chat",
        has_media: bool = False,
        message_id: Optional[str] = None,
        author: Optional[str] = None,
        quoted_id: Optional[str] = None,
    ) -> ProviderMessage:
        counter["n"] += 1
        return ProviderMessage.model_validate(
            {
                "id": {"id": message_id or f"MSG{counter['n']}", "fromMe": from_me},
                "body": body,
                "type": msg_type,
                "from": sender,
                "to": to,
                "fromMe": from_me,
                "author": author,
                "hasMedia": has_media,
                "hasQuotedMsg": quoted_id is not None,
                "quotedMsgId": quoted_id,
            }
        )

    return _make
