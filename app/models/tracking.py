"""Append-only engagement log plus a read-state overlay used for admin notifications.
Tracking events are never updated; reading one only touches its Notification row."""
import enum

from sqlalchemy import Boolean, Column, DateTime, Enum as SQLEnum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, JSONType, utcnow
from app.models.family import Channel


class EventType(str, enum.Enum):
    LINK_OPENED = "LINK_OPENED"
    RSVP_STARTED = "RSVP_STARTED"
    RSVP_SUBMITTED = "RSVP_SUBMITTED"
    RSVP_UPDATED = "RSVP_UPDATED"
    GUEST_ADDED = "GUEST_ADDED"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    REMINDER_SENT = "REMINDER_SENT"
    INVITATION_SENT = "INVITATION_SENT"
    SAVE_THE_DATE_SENT = "SAVE_THE_DATE_SENT"
    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASK_COMPLETED = "TASK_COMPLETED"
    MESSAGE_DELIVERED = "MESSAGE_DELIVERED"
    MESSAGE_READ = "MESSAGE_READ"
    MESSAGE_FAILED = "MESSAGE_FAILED"


class TrackingEvent(Base):
    __tablename__ = "tracking_events"

    id = Column(Integer, primary_key=True, index=True)
    family_id = Column(Integer, ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True)
    wedding_id = Column(Integer, ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type = Column(SQLEnum(EventType), nullable=False, index=True)
    channel = Column(SQLEnum(Channel), nullable=True)
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSONType, nullable=True)
    # Twilio message SID of the outbound message (copied from meta) or the one a status callback reports on
    message_sid = Column(String(64), nullable=True, index=True)
    admin_triggered = Column(Boolean, nullable=False, default=False)
    # Python-side default keeps sub-second ordering on SQLite
    timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)

    family = relationship("Family")
    notification = relationship("Notification", back_populates="event", uselist=False, cascade="all, delete-orphan")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    wedding_id = Column(Integer, ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False, index=True)
    tracking_event_id = Column(Integer, ForeignKey("tracking_events.id", ondelete="CASCADE"), unique=True, nullable=False)
    admin_id = Column(Integer, ForeignKey("wedding_admins.id", ondelete="SET NULL"), nullable=True)
    read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    event = relationship("TrackingEvent", back_populates="notification")
