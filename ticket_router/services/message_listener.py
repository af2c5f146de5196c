from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel, ValidationError

from ticket_router.logging_config import bind_logger, get_logger
from ticket_router.models import Contact
from ticket_router.schemas.provider import AckEvent, BatteryEvent, ProviderEventEnvelope, ProviderMessage
from ticket_router.services.ack_service import handle_message_ack
from ticket_router.services.alert_service import alert_error
from ticket_router.services.assignment import needs_queue_assignment
from ticket_router.services.event_filter import skip_reason
from ticket_router.services.message_resolution import verify_contact, verify_media_message, verify_message
from ticket_router.services.queue_assignment import verify_queue
from ticket_router.services.queue_service import get_session_routing
from ticket_router.services.session_context import SessionContext
from ticket_router.services.ticket_service import find_or_create_ticket
from ticket_router.services.webhook_service import forward_message, media_public_url

logger = get_logger("message_listener")


async def handle_message(msg: ProviderMessage, ctx: SessionContext) -> None:
    """Store a provider message on its ticket and route the ticket to a queue.

    Never raises: failures are logged and the event is dropped.
    """
    reason = skip_reason(msg)
    if reason:
        logger.debug("Message skipped", extra={"context": {"message_id": msg.message_id, "reason": reason}})
        return

    log = bind_logger("message_listener", whatsapp_id=ctx.whatsapp_id, message_id=msg.message_id)

    try:
        if msg.fromMe:
            msg_contact = await ctx.provider.get_contact(msg.to)
        else:
            msg_contact = await ctx.provider.get_contact(msg.author or msg.from_)

        chat = await ctx.provider.get_chat(msg.chat_id)

        db = ctx.db_factory()
        try:
            group_contact: Optional[Contact] = None
            if chat.isGroup:
                msg_group_contact = await ctx.provider.get_contact(msg.to if msg.fromMe else msg.from_)
                group_contact = await verify_contact(ctx, db, msg_group_contact)

            unread_messages = 0 if msg.fromMe else chat.unreadCount

            contact = await verify_contact(ctx, db, msg_contact)
            ticket = find_or_create_ticket(db, contact, ctx.whatsapp_id, unread_messages, group_contact)
            db.commit()

            if msg.hasMedia:
                message = await verify_media_message(ctx, db, msg, ticket, contact)
            else:
                message = await verify_message(ctx, db, msg, ticket, contact)

            if ctx.webhook_url and not msg.fromMe:
                media_url = media_public_url(ctx.public_media_url, message.media_url)
                ctx.spawn(forward_message(ctx.webhook_url, msg, media_url))

            routing = get_session_routing(db, ctx.whatsapp_id)
            if needs_queue_assignment(
                ticket,
                is_group=chat.isGroup,
                from_me=msg.fromMe,
                queue_count=len(routing.queues),
            ):
                await verify_queue(ctx, db, msg, ticket, contact, routing)
        finally:
            db.close()
    except Exception as e:
        log.error(
            f"Error handling provider message: {e}",
            context={"error": str(e), "type": msg.type},
            exc_info=True,
        )
        ctx.spawn(alert_error("Error handling provider message", {"message_id": msg.message_id, "error": str(e)}))


async def handle_battery_change(event: BatteryEvent, ctx: SessionContext) -> None:
    ctx.device.battery = event.battery
    ctx.device.plugged = event.plugged
    ctx.device.updated_at = datetime.now(timezone.utc)
    logger.info(
        "Device battery changed",
        extra={"context": {"whatsapp_id": ctx.whatsapp_id, "battery": event.battery, "plugged": event.plugged}},
    )


Handler = Callable[[BaseModel, SessionContext], Awaitable[None]]

EVENT_HANDLERS: dict[str, tuple[type[BaseModel], Handler]] = {
    "message_create": (ProviderMessage, handle_message),
    "media_uploaded": (ProviderMessage, handle_message),
    "message_ack": (AckEvent, handle_message_ack),
    "change_battery": (BatteryEvent, handle_battery_change),
}


async def dispatch_event(envelope: ProviderEventEnvelope, ctx: SessionContext) -> bool:
    """Route one provider event to its handler. Returns False for unknown or malformed events."""
    entry = EVENT_HANDLERS.get(envelope.event)
    if entry is None:
        logger.debug("Unhandled provider event", extra={"context": {"event": envelope.event}})
        return False

    schema, handler = entry
    try:
        event = schema.model_validate(envelope.data)
    except ValidationError as e:
        logger.warning(
            "Provider event payload validation failed",
            extra={"context": {"event": envelope.event, "error": str(e)}},
        )
        return False

    await handler(event, ctx)
    return True
