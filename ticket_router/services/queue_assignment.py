from sqlalchemy.orm import Session

from ticket_router.logging_config import get_logger
from ticket_router.models import Contact, Ticket
from ticket_router.schemas.provider import ProviderMessage
from ticket_router.services.alert_service import alert_error
from ticket_router.services.assignment import (
    AssignmentAction,
    build_confirmation_body,
    build_menu_body,
    decide_assignment,
)
from ticket_router.services.message_resolution import verify_message
from ticket_router.services.queue_service import SessionRouting, get_session_routing
from ticket_router.services.session_context import SessionContext
from ticket_router.services.ticket_service import assign_queue, release_queue

logger = get_logger("queue_assignment")


def contact_jid(contact: Contact) -> str:
    return f"{contact.number}@c.us"


async def verify_queue(
    ctx: SessionContext,
    db: Session,
    msg: ProviderMessage,
    ticket: Ticket,
    contact: Contact,
    routing: SessionRouting,
) -> None:
    """Route an unassigned ticket to a queue, or prompt the contact to pick one."""
    decision = decide_assignment(msg.body, routing.queues)

    if decision.action == AssignmentAction.ASSIGN_ONLY_QUEUE:
        assign_queue(db, ticket, decision.queue.id)
        db.commit()
        return

    if decision.action == AssignmentAction.ASSIGN_SELECTED:
        ctx.debouncer.cancel(ticket.id)
        ticket_id = ticket.id
        queue_id = decision.queue.id
        # committed before the send: no write transaction may stay open across an await
        assign_queue(db, ticket, queue_id)
        db.commit()
        try:
            sent = await ctx.provider.send_message(contact_jid(contact), build_confirmation_body(decision.queue))
        except Exception as e:
            release_queue(db, ticket_id, queue_id)
            db.commit()
            logger.error(
                "Queue confirmation send failed, ticket left unassigned",
                extra={"context": {"ticket_id": ticket_id, "queue_id": queue_id, "error": str(e)}},
            )
            ctx.spawn(alert_error("Queue confirmation send failed", {"ticket_id": ticket_id, "error": str(e)}))
            return
        await verify_message(ctx, db, sent, ticket, contact)
        return

    ticket_id = ticket.id
    contact_id = contact.id
    rescheduled = ctx.debouncer.is_pending(ticket_id)
    ctx.debouncer.schedule(ticket_id, lambda: send_queue_menu(ctx, ticket_id, contact_id))
    logger.debug("Queue menu scheduled", extra={"context": {"ticket_id": ticket_id, "rescheduled": rescheduled}})


async def send_queue_menu(ctx: SessionContext, ticket_id: int, contact_id: int) -> None:
    """Send the greeting and queue list; fired once per burst by the debouncer."""
    db = ctx.db_factory()
    try:
        ticket = db.get(Ticket, ticket_id)
        if ticket is None or ticket.queue_id or ticket.user_id:
            logger.info("Queue menu skipped, ticket already routed", extra={"context": {"ticket_id": ticket_id}})
            return
        contact = db.get(Contact, contact_id)
        routing = get_session_routing(db, ctx.whatsapp_id)
        body = build_menu_body(routing.greeting_message, routing.queues)

        sent = await ctx.provider.send_message(contact_jid(contact), body)
        await verify_message(ctx, db, sent, ticket, contact)
        logger.info("Queue menu sent", extra={"context": {"ticket_id": ticket_id, "queues": len(routing.queues)}})
    except Exception as e:
        logger.error(
            "Queue menu send failed",
            extra={"context": {"ticket_id": ticket_id, "error": str(e)}},
            exc_info=True,
        )
        ctx.spawn(alert_error("Queue menu send failed", {"ticket_id": ticket_id, "error": str(e)}))
    finally:
        db.close()
