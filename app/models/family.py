"""Guest households (families) and their members."""
import enum

from sqlalchemy import Boolean, Column, DateTime, Enum as SQLEnum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class Channel(str, enum.Enum):
    WHATSAPP = "WHATSAPP"
    EMAIL = "EMAIL"
    SMS = "SMS"


class MemberType(str, enum.Enum):
    ADULT = "ADULT"
    CHILD = "CHILD"
    INFANT = "INFANT"


class Family(Base):
    __tablename__ = "families"
    __table_args__ = (UniqueConstraint("wedding_id", "short_url_code", name="uq_families_wedding_short_code"),)

    id = Column(Integer, primary_key=True, index=True)
    wedding_id = Column(Integer, ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    contact_person = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    whatsapp_number = Column(String(50), nullable=True)

    magic_token = Column(String(36), unique=True, nullable=False, index=True)  # uuid4
    reference_code = Column(String(16), unique=True, nullable=True)  # AUTOMATED payment mode only
    short_url_code = Column(String(8), nullable=True)

    channel_preference = Column(SQLEnum(Channel), nullable=True)
    preferred_language = Column(String(2), nullable=False, default="ES")
    invited_by_admin_id = Column(Integer, ForeignKey("wedding_admins.id", ondelete="SET NULL"), nullable=True)

    transportation_answer = Column(Boolean, nullable=True)
    extra_question_answer = Column(Boolean, nullable=True)
    extra_info_answer = Column(Text, nullable=True)

    rsvp_submitted_at = Column(DateTime, nullable=True)
    save_the_date_sent_at = Column(DateTime, nullable=True)
    invitation_sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    wedding = relationship("Wedding", back_populates="families")
    members = relationship(
        "FamilyMember",
        back_populates="family",
        cascade="all, delete-orphan",
        order_by="FamilyMember.id",
    )
    invited_by = relationship("WeddingAdmin")


class FamilyMember(Base):
    __tablename__ = "family_members"

    id = Column(Integer, primary_key=True, index=True)
    family_id = Column(Integer, ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    type = Column(SQLEnum(MemberType), nullable=False, default=MemberType.ADULT)
    attending = Column(Boolean, nullable=True)  # None until the family responds
    age = Column(Integer, nullable=True)
    dietary_restrictions = Column(String(500), nullable=True)
    accessibility_needs = Column(String(500), nullable=True)
    added_by_guest = Column(Boolean, nullable=False, default=False)
    table_id = Column(Integer, ForeignKey("tables.id", ondelete="SET NULL"), nullable=True, index=True)
    seating_group = Column(String(64), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    family = relationship("Family", back_populates="members")
    table = relationship("Table", back_populates="assigned_guests")
