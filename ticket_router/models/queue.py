from sqlalchemy import Column, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ticket_router.database import Base


class Queue(Base):
    __tablename__ = "queues"
    __table_args__ = (UniqueConstraint("whatsapp_id", "position", name="uq_queues_whatsapp_position"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    whatsapp_id = Column(Integer, ForeignKey("whatsapps.id"), nullable=False)
    name = Column(Text, nullable=False)
    position = Column(Integer, nullable=False)  # 1-based menu selector
    greeting_message = Column(Text)

    whatsapp = relationship("Whatsapp", back_populates="queues")
