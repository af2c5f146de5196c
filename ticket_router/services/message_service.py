from dataclasses import asdict, dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ticket_router.logging_config import get_logger
from ticket_router.models import Contact, Message

logger = get_logger("message_service")


@dataclass
class MessageData:
    id: str
    ticket_id: int
    body: str
    from_me: bool
    read: bool
    contact_id: Optional[int] = None
    media_url: Optional[str] = None
    media_type: Optional[str] = None
    quoted_msg_id: Optional[str] = None


def _apply(message: Message, data: MessageData) -> None:
    for key, value in asdict(data).items():
        setattr(message, key, value)


def create_message(db: Session, data: MessageData) -> Message:
    """Insert a message keyed by provider id, or update the existing row.

    A second event for the same provider id never produces a second row.
    """
    message = db.get(Message, data.id)
    if message:
        _apply(message, data)
        db.flush()
        return message

    message = Message(ack=0)
    _apply(message, data)
    db.add(message)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        message = db.get(Message, data.id)
        if message is None:
            raise
        logger.info("Message stored concurrently, updating", extra={"context": {"message_id": data.id}})
        _apply(message, data)
        db.flush()
    return message


def find_message(
    db: Session,
    message_id: str,
    *,
    include_quoted: bool = False,
    include_contact: bool = False,
) -> Optional[Message]:
    query = db.query(Message).filter(Message.id == message_id)
    if include_contact:
        query = query.options(joinedload(Message.contact))
    if include_quoted:
        query = query.options(joinedload(Message.quoted_msg).joinedload(Message.contact))
    return query.first()


def update_ack(db: Session, message: Message, ack: int) -> None:
    message.ack = ack
    db.flush()


def serialize_contact(contact: Optional[Contact]) -> Optional[dict]:
    if contact is None:
        return None
    return {
        "id": contact.id,
        "name": contact.name,
        "number": contact.number,
        "profilePicUrl": contact.profile_pic_url,
        "isGroup": contact.is_group,
    }


def serialize_message(message: Message, *, with_quoted: bool = True) -> dict:
    """Client payload for a message, with contact and quoted message when loaded."""
    payload = {
        "id": message.id,
        "ticketId": message.ticket_id,
        "contactId": message.contact_id,
        "body": message.body,
        "mediaUrl": message.media_url,
        "mediaType": message.media_type,
        "fromMe": message.from_me,
        "read": message.read,
        "ack": message.ack,
        "quotedMsgId": message.quoted_msg_id,
        "contact": serialize_contact(message.contact),
        "createdAt": message.created_at.isoformat() if message.created_at else None,
    }
    if with_quoted:
        quoted = message.quoted_msg
        payload["quotedMsg"] = serialize_message(quoted, with_quoted=False) if quoted else None
    return payload
