from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, Text, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ticket_router.database import Base


class Ticket(Base):
    __tablename__ = "tickets"
    __table_args__ = (
        # at most one open ticket per contact and session
        Index(
            "uq_tickets_open_contact",
            "contact_id",
            "whatsapp_id",
            unique=True,
            postgresql_where=text("status <> 'closed'"),
            sqlite_where=text("status <> 'closed'"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    status = Column(Text, nullable=False, default="pending")  # pending, open, closed
    unread_messages = Column(Integer, nullable=False, default=0)
    last_message = Column(Text)
    is_group = Column(Boolean, nullable=False, default=False)
    contact_id = Column(Integer, ForeignKey("contacts.id"), nullable=False)
    whatsapp_id = Column(Integer, ForeignKey("whatsapps.id"), nullable=False)
    queue_id = Column(Integer, ForeignKey("queues.id"))
    user_id = Column(Integer)  # operator, owned by the operator service
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    contact = relationship("Contact", back_populates="tickets")
    queue = relationship("Queue")
    messages = relationship("Message", back_populates="ticket")
