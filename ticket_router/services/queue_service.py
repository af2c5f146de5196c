from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from ticket_router.models import Queue, Whatsapp


class SessionNotFoundError(Exception):
    def __init__(self, whatsapp_id: int):
        self.whatsapp_id = whatsapp_id
        super().__init__(f"Provider session {whatsapp_id} not found")


@dataclass
class QueueOption:
    id: int
    name: str
    position: int
    greeting_message: Optional[str] = None


@dataclass
class SessionRouting:
    """Queues configured for a provider session, in menu order."""

    greeting_message: str = ""
    queues: list[QueueOption] = field(default_factory=list)


def get_session_routing(db: Session, whatsapp_id: int) -> SessionRouting:
    whatsapp = db.query(Whatsapp).filter(Whatsapp.id == whatsapp_id).first()
    if not whatsapp:
        raise SessionNotFoundError(whatsapp_id)

    rows = db.query(Queue).filter(Queue.whatsapp_id == whatsapp_id).order_by(Queue.position).all()
    return SessionRouting(
        greeting_message=whatsapp.greeting_message or "",
        queues=[
            QueueOption(id=q.id, name=q.name, position=q.position, greeting_message=q.greeting_message)
            for q in rows
        ],
    )
