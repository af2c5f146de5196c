"""
WebSocket rooms for ticket updates.

Operator clients subscribe to a ticket; message creations and acknowledgment
changes for that ticket are pushed to every subscriber.
"""

import asyncio
import json

from fastapi import WebSocket

from ticket_router.logging_config import get_logger

logger = get_logger("notification_service")


class TicketNotifier:
    """Manages WebSocket connections per ticket room."""

    def __init__(self):
        # ticket_id -> set of active WebSocket connections
        self._rooms: dict[int, set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, ticket_id: int):
        await websocket.accept()
        async with self._lock:
            self._rooms.setdefault(ticket_id, set()).add(websocket)

    async def disconnect(self, websocket: WebSocket, ticket_id: int):
        async with self._lock:
            room = self._rooms.get(ticket_id)
            if room is None:
                return
            room.discard(websocket)
            if not room:
                del self._rooms[ticket_id]

    async def publish(self, ticket_id: int, event: str, payload: dict) -> None:
        """Send an event to every subscriber of a ticket. Delivery is best effort."""
        async with self._lock:
            connections = self._rooms.get(ticket_id, set()).copy()

        if not connections:
            return

        data = json.dumps({"event": event, **payload}, ensure_ascii=False, default=str)
        closed = []

        for ws in connections:
            try:
                await ws.send_text(data)
            except Exception as e:
                logger.debug("Dropping closed subscriber", extra={"context": {"ticket_id": ticket_id, "error": str(e)}})
                closed.append(ws)

        if closed:
            async with self._lock:
                room = self._rooms.get(ticket_id)
                if room is not None:
                    for ws in closed:
                        room.discard(ws)
                    if not room:
                        del self._rooms[ticket_id]

    def subscriber_count(self, ticket_id: int) -> int:
        return len(self._rooms.get(ticket_id, set()))


notifier = TicketNotifier()
