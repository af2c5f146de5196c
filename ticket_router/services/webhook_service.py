"""Fire-and-forget forwarding of provider events to an external webhook.

Inbound messages and delivery acks are POSTed as the provider sent them;
inbound messages also carry the public URL of their captured media.
Failures are logged, never retried.
"""

from typing import Optional

import httpx

from ticket_router.logging_config import get_logger
from ticket_router.schemas.provider import AckEvent, ProviderMessage

logger = get_logger("webhook_service")

WEBHOOK_TIMEOUT_SECONDS = 10.0


async def _post(url: str, payload: dict, message_id: str, kind: str) -> bool:
    try:
        async with httpx.AsyncClient(timeout=WEBHOOK_TIMEOUT_SECONDS) as client:
            response = await client.post(url, json=payload)
    except httpx.HTTPError as e:
        logger.warning(
            "Webhook unavailable",
            extra={"context": {"kind": kind, "message_id": message_id, "error": str(e)}},
        )
        return False

    logger.info(
        "Event forwarded to webhook",
        extra={"context": {"kind": kind, "message_id": message_id, "status": response.status_code}},
    )
    return response.status_code < 400


def media_public_url(base_url: str, filename: Optional[str]) -> Optional[str]:
    if not filename:
        return None
    return f"{base_url.rstrip('/')}/{filename}"


async def forward_message(url: str, msg: ProviderMessage, media_url: Optional[str] = None) -> bool:
    payload = msg.model_dump(mode="json", by_alias=True)
    payload["mediaUrl"] = media_url
    return await _post(url, payload, msg.message_id, "message")


async def forward_ack(url: str, event: AckEvent) -> bool:
    return await _post(url, event.model_dump(mode="json", by_alias=True), event.message.message_id, "ack")
