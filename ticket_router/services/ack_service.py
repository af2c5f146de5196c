from ticket_router.logging_config import get_logger
from ticket_router.schemas.provider import AckEvent, MessageAck
from ticket_router.services.alert_service import alert_error
from ticket_router.services.message_service import find_message, serialize_message, update_ack
from ticket_router.services.session_context import SessionContext
from ticket_router.services.webhook_service import forward_ack

logger = get_logger("ack_service")


async def reconcile_ack(ctx: SessionContext, message_id: str, ack: int) -> bool:
    """Apply a delivery acknowledgment to a stored message.

    Waits ctx.ack_delay_seconds first: the ack of a message this service just
    sent often arrives before the message itself is committed. The delay is a
    tolerance window, not an ordering guarantee.

    Returns True when a stored message was updated.
    """
    await ctx.sleep(ctx.ack_delay_seconds)

    db = ctx.db_factory()
    try:
        message = find_message(db, message_id, include_quoted=True, include_contact=True)
        if not message:
            return False
        update_ack(db, message, ack)
        db.commit()

        await ctx.notifier.publish(
            message.ticket_id,
            "appMessage",
            {"action": "update", "message": serialize_message(message)},
        )
        return True
    except Exception as e:
        db.rollback()
        logger.error(
            "Error handling message ack",
            extra={"context": {"message_id": message_id, "ack": ack, "error": str(e)}},
            exc_info=True,
        )
        ctx.spawn(alert_error("Error handling message ack", {"message_id": message_id, "error": str(e)}))
        return False
    finally:
        db.close()


async def handle_message_ack(event: AckEvent, ctx: SessionContext) -> None:
    if ctx.webhook_url:
        ctx.spawn(forward_ack(ctx.webhook_url, event))

    if event.ack == MessageAck.READ:
        logger.info("Message read", extra={"context": {"message_id": event.message.message_id}})

    await reconcile_ack(ctx, event.message.message_id, event.ack)
