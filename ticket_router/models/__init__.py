from ticket_router.models.contact import Contact
from ticket_router.models.message import Message
from ticket_router.models.queue import Queue
from ticket_router.models.ticket import Ticket
from ticket_router.models.whatsapp import Whatsapp

__all__ = [
    "Contact",
    "Message",
    "Queue",
    "Ticket",
    "Whatsapp",
]
