from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ticket_router.logging_config import get_logger
from ticket_router.models import Contact, Ticket

logger = get_logger("ticket_service")

OPEN_STATUSES = ("open", "pending")


def _find_open_ticket(db: Session, contact_id: int, whatsapp_id: int) -> Optional[Ticket]:
    return (
        db.query(Ticket)
        .filter(
            Ticket.contact_id == contact_id,
            Ticket.whatsapp_id == whatsapp_id,
            Ticket.status.in_(OPEN_STATUSES),
        )
        .first()
    )


def find_or_create_ticket(
    db: Session,
    contact: Contact,
    whatsapp_id: int,
    unread_messages: int,
    group_contact: Optional[Contact] = None,
) -> Ticket:
    """Find the open ticket for a contact or create a pending one.

    Group chats are ticketed under the group contact.
    """
    owner = group_contact or contact
    owner_id = owner.id

    ticket = _find_open_ticket(db, owner_id, whatsapp_id)
    if ticket:
        ticket.unread_messages = unread_messages
        db.flush()
        return ticket

    ticket = Ticket(
        contact_id=owner_id,
        whatsapp_id=whatsapp_id,
        status="pending",
        is_group=group_contact is not None,
        unread_messages=unread_messages,
    )
    db.add(ticket)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        ticket = _find_open_ticket(db, owner_id, whatsapp_id)
        if ticket is None:
            raise
        logger.info(
            "Ticket created concurrently, reusing",
            extra={"context": {"contact_id": owner_id, "ticket_id": ticket.id}},
        )
        ticket.unread_messages = unread_messages
        db.flush()
        return ticket

    logger.info(
        "Ticket created",
        extra={"context": {"contact_id": owner_id, "ticket_id": ticket.id, "whatsapp_id": whatsapp_id}},
    )
    return ticket


def set_last_message(db: Session, ticket: Ticket, last_message: str) -> None:
    ticket.last_message = last_message
    db.flush()


def assign_queue(db: Session, ticket: Ticket, queue_id: int) -> None:
    ticket.queue_id = queue_id
    db.flush()
    logger.info("Ticket assigned to queue", extra={"context": {"ticket_id": ticket.id, "queue_id": queue_id}})


def release_queue(db: Session, ticket_id: int, queue_id: int) -> bool:
    """Undo a queue assignment, unless the ticket was routed elsewhere since."""
    released = (
        db.query(Ticket)
        .filter(Ticket.id == ticket_id, Ticket.queue_id == queue_id)
        .update({Ticket.queue_id: None}, synchronize_session="fetch")
    )
    db.flush()
    if released:
        logger.info("Ticket queue assignment released", extra={"context": {"ticket_id": ticket_id, "queue_id": queue_id}})
    return bool(released)
