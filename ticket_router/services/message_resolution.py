from typing import Optional

from sqlalchemy.orm import Session

from ticket_router.logging_config import get_logger
from ticket_router.models import Contact, Message, Ticket
from ticket_router.schemas.provider import ProviderContact, ProviderMessage
from ticket_router.services.alert_service import alert_error
from ticket_router.services.contact_service import create_or_update_contact
from ticket_router.services.media_service import MediaCapture, MediaDownloadError, capture_media
from ticket_router.services.message_service import (
    MessageData,
    create_message,
    find_message,
    serialize_contact,
    serialize_message,
)
from ticket_router.services.session_context import SessionContext
from ticket_router.services.ticket_service import set_last_message

logger = get_logger("message_resolution")


async def verify_contact(ctx: SessionContext, db: Session, provider_contact: ProviderContact) -> Contact:
    profile_pic_url = await ctx.provider.get_profile_pic_url(provider_contact.id.jid)
    contact = create_or_update_contact(
        db,
        number=provider_contact.id.user,
        name=provider_contact.display_name,
        profile_pic_url=profile_pic_url,
        is_group=provider_contact.isGroup,
    )
    db.commit()
    return contact


def verify_quoted_message(db: Session, msg: ProviderMessage) -> Optional[Message]:
    if not msg.hasQuotedMsg or not msg.quotedMsgId:
        return None
    return find_message(db, msg.quotedMsgId)


async def verify_message(
    ctx: SessionContext,
    db: Session,
    msg: ProviderMessage,
    ticket: Ticket,
    contact: Contact,
    media: Optional[MediaCapture] = None,
) -> Message:
    """Store one provider message on a ticket and refresh the ticket preview."""
    quoted_msg = verify_quoted_message(db, msg)
    body = msg.body or (media.filename if media else "")

    data = MessageData(
        id=msg.message_id,
        ticket_id=ticket.id,
        contact_id=None if msg.fromMe else contact.id,
        body=body,
        from_me=msg.fromMe,
        read=msg.fromMe,
        media_url=media.filename if media else None,
        media_type=media.media_type if media else msg.type,
        quoted_msg_id=quoted_msg.id if quoted_msg else None,
    )
    message = create_message(db, data)
    set_last_message(db, ticket, body)
    db.commit()

    await ctx.notifier.publish(
        ticket.id,
        "appMessage",
        {
            "action": "create",
            "message": serialize_message(message),
            "ticket": {"id": ticket.id, "lastMessage": ticket.last_message, "queueId": ticket.queue_id},
            "contact": serialize_contact(contact),
        },
    )
    return message


async def verify_media_message(
    ctx: SessionContext,
    db: Session,
    msg: ProviderMessage,
    ticket: Ticket,
    contact: Contact,
) -> Message:
    media = await ctx.provider.download_media(msg.message_id)
    if not media:
        raise MediaDownloadError(msg.message_id)

    capture = capture_media(media, ctx.media_dir)
    if not capture.stored:
        ctx.spawn(
            alert_error(
                "Media capture failed, storing message without media",
                {"message_id": msg.message_id, "filename": capture.filename, "error": capture.error},
            )
        )

    return await verify_message(ctx, db, msg, ticket, contact, media=capture)
