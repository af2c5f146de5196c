"""Ops alerts for router failures, delivered to a Telegram chat.

Handlers run on the event loop, so alerts are sent with an async client and
are meant to be scheduled in the background (``ctx.spawn(alert_error(...))``)
rather than awaited inline.
"""

from typing import Optional

import httpx

from ticket_router.config import settings
from ticket_router.logging_config import get_logger

logger = get_logger("alert_service")

ALERT_BOT_TOKEN = settings.alert_bot_token
ALERT_CHAT_ID = settings.alert_chat_id
ALERT_TIMEOUT_SECONDS = 10.0


def format_alert(level: str, message: str, context: Optional[dict] = None) -> str:
    text = f"*{level}* ticket-router\n\n{message}"
    if context:
        lines = "\n".join(f"  {key}: {value}" for key, value in context.items())
        text += f"\n\n```\n{lines}\n```"
    return text


async def send_alert(level: str, message: str, context: Optional[dict] = None) -> bool:
    """Post an alert to the ops chat. Returns True if Telegram accepted it."""
    if not ALERT_BOT_TOKEN or not ALERT_CHAT_ID:
        logger.warning("Alert not configured", extra={"context": {"level": level, "alert": message}})
        return False

    try:
        async with httpx.AsyncClient(timeout=ALERT_TIMEOUT_SECONDS) as client:
            response = await client.post(
                f"https://api.telegram.org/bot{ALERT_BOT_TOKEN}/sendMessage",
                json={"chat_id": ALERT_CHAT_ID, "text": format_alert(level, message, context), "parse_mode": "Markdown"},
            )
    except httpx.HTTPError as e:
        logger.error("Failed to send alert", extra={"context": {"alert": message, "error": str(e)}})
        return False

    return response.status_code == 200


async def alert_error(message: str, context: Optional[dict] = None) -> bool:
    return await send_alert("ERROR", message, context)
