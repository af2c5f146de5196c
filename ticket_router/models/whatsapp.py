from sqlalchemy import Column, DateTime, Integer, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ticket_router.database import Base


class Whatsapp(Base):
    """A provider session (one connected phone) and its routing setup."""

    __tablename__ = "whatsapps"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False, unique=True)
    status = Column(Text)  # CONNECTED, DISCONNECTED, QRCODE, ...
    greeting_message = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    queues = relationship("Queue", back_populates="whatsapp", order_by="Queue.position")
