"""RSVP ORM model: one row per (event, user) pair."""
import enum
from sqlalchemy import Column, String, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from eventplanner.database import Base


class RSVPStatus(str, enum.Enum):
    yes = "yes"
    no = "no"
    maybe = "maybe"


class RSVP(Base):
    __tablename__ = "rsvps"

    event_id = Column(String(36), ForeignKey("events.event_id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True)
    status = Column(SAEnum(RSVPStatus), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    event = relationship("Event", back_populates="rsvps")
    user = relationship("User")
