from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ticket_router.logging_config import get_logger
from ticket_router.models import Contact

logger = get_logger("contact_service")


def _find_contact(db: Session, number: str) -> Optional[Contact]:
    return db.query(Contact).filter(Contact.number == number).first()


def create_or_update_contact(
    db: Session,
    *,
    number: str,
    name: str,
    profile_pic_url: Optional[str] = None,
    is_group: bool = False,
) -> Contact:
    """Upsert a contact by provider user id.

    A concurrent insert of the same number loses on the unique constraint and
    falls back to updating the winner's row.
    """
    contact = _find_contact(db, number)
    if contact:
        contact.name = name
        contact.profile_pic_url = profile_pic_url
        db.flush()
        return contact

    contact = Contact(number=number, name=name, profile_pic_url=profile_pic_url, is_group=is_group)
    db.add(contact)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        logger.info("Contact created concurrently, reusing", extra={"context": {"number": number}})
        contact = _find_contact(db, number)
        if contact is None:
            raise
        contact.name = name
        contact.profile_pic_url = profile_pic_url
        db.flush()
    return contact
