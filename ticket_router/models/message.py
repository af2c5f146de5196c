from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ticket_router.database import Base


class Message(Base):
    __tablename__ = "messages"

    id = Column(Text, primary_key=True)  # provider message id
    ticket_id = Column(Integer, ForeignKey("tickets.id"), nullable=False)
    contact_id = Column(Integer, ForeignKey("contacts.id"))  # null when sent by the operator side
    body = Column(Text, nullable=False, default="")
    media_url = Column(Text)
    media_type = Column(Text)  # chat, image, audio, ... or mime primary type for media
    from_me = Column(Boolean, nullable=False, default=False)
    read = Column(Boolean, nullable=False, default=False)
    quoted_msg_id = Column(Text, ForeignKey("messages.id"))
    ack = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    ticket = relationship("Ticket", back_populates="messages")
    contact = relationship("Contact")
    quoted_msg = relationship("Message", remote_side=[id])
