import asyncio
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Coroutine, Optional

from sqlalchemy.orm import Session

from ticket_router.config import settings
from ticket_router.database import SessionLocal
from ticket_router.logging_config import get_logger
from ticket_router.services.debounce import Debouncer
from ticket_router.services.notification_service import TicketNotifier, notifier
from ticket_router.services.provider_session import HttpProviderSession, ProviderSession

logger = get_logger("session_context")


@dataclass
class DeviceState:
    battery: Optional[int] = None
    plugged: Optional[bool] = None
    updated_at: Optional[datetime] = None


class SessionContext:
    """Everything the event handlers of one provider session share.

    Created when the session is opened and closed with it; pending menu
    timers and in-flight handlers do not outlive it.
    """

    def __init__(
        self,
        whatsapp_id: int,
        provider: ProviderSession,
        db_factory: Callable[[], Session],
        notifier: TicketNotifier,
        *,
        media_dir: Path,
        ack_delay_seconds: float = 0.5,
        menu_debounce_seconds: float = 3.0,
        webhook_url: Optional[str] = None,
        public_media_url: str = "http://localhost:8080/public",
        sleep_func: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.whatsapp_id = whatsapp_id
        self.provider = provider
        self.db_factory = db_factory
        self.notifier = notifier
        self.media_dir = Path(media_dir)
        self.ack_delay_seconds = ack_delay_seconds
        self.webhook_url = webhook_url
        self.public_media_url = public_media_url
        self.sleep = sleep_func
        self.debouncer = Debouncer(menu_debounce_seconds, sleep_func)
        self.device = DeviceState()
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine) -> asyncio.Task:
        """Run a handler in the background without blocking the caller."""
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait until every spawned handler has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        await self.debouncer.shutdown()
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self.provider.aclose()
        logger.info("Session context closed", extra={"context": {"whatsapp_id": self.whatsapp_id}})


class SessionRegistry:
    """Open session contexts by provider session id (one router per session)."""

    def __init__(self, context_factory: Callable[[int, str], SessionContext]):
        self._context_factory = context_factory
        self._contexts: dict[int, SessionContext] = {}

    def get(self, whatsapp_id: int) -> Optional[SessionContext]:
        return self._contexts.get(whatsapp_id)

    def open(self, whatsapp_id: int, session_name: str) -> SessionContext:
        ctx = self._contexts.get(whatsapp_id)
        if ctx is None:
            ctx = self._context_factory(whatsapp_id, session_name)
            self._contexts[whatsapp_id] = ctx
            logger.info("Session context opened", extra={"context": {"whatsapp_id": whatsapp_id}})
        return ctx

    async def close(self, whatsapp_id: int) -> None:
        ctx = self._contexts.pop(whatsapp_id, None)
        if ctx is not None:
            await ctx.close()

    async def close_all(self) -> None:
        for whatsapp_id in list(self._contexts):
            await self.close(whatsapp_id)


def build_session_context(whatsapp_id: int, session_name: str) -> SessionContext:
    provider = HttpProviderSession(
        settings.provider_api_url,
        session_name,
        token=settings.provider_api_token,
        timeout=settings.provider_timeout_seconds,
    )
    return SessionContext(
        whatsapp_id,
        provider,
        SessionLocal,
        notifier,
        media_dir=Path(settings.media_dir),
        ack_delay_seconds=settings.ack_delay_seconds,
        menu_debounce_seconds=settings.menu_debounce_seconds,
        webhook_url=settings.webhook_url,
        public_media_url=settings.public_media_url,
    )


registry = SessionRegistry(build_session_context)
