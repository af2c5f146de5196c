from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ticket_router.logging_config import get_logger
from ticket_router.services.notification_service import notifier

logger = get_logger("tickets_ws")

router = APIRouter()


@router.websocket("/ws/tickets/{ticket_id}")
async def ticket_updates(websocket: WebSocket, ticket_id: int):
    """Subscribe to appMessage events of one ticket."""
    await notifier.connect(websocket, ticket_id)
    logger.debug(
        "Ticket subscriber connected",
        extra={"context": {"ticket_id": ticket_id, "subscribers": notifier.subscriber_count(ticket_id)}},
    )
    try:
        while True:
            # clients only listen; incoming frames keep the connection alive
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await notifier.disconnect(websocket, ticket_id)
