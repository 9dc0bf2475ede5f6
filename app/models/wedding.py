"""Wedding: the tenant root. Families, tables, templates and providers hang off it."""
import enum

from sqlalchemy import Boolean, Column, Date, DateTime, Enum as SQLEnum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class PaymentTrackingMode(str, enum.Enum):
    AUTOMATED = "AUTOMATED"  # per-family reference codes matched against bank transfers
    MANUAL = "MANUAL"


class WeddingStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"
    DELETED = "DELETED"


LANGUAGES = ("ES", "EN", "FR", "IT", "DE")


class Wedding(Base):
    __tablename__ = "weddings"

    id = Column(Integer, primary_key=True, index=True)
    planner_id = Column(Integer, ForeignKey("wedding_planners.id"), nullable=False, index=True)
    theme_id = Column(Integer, ForeignKey("themes.id", ondelete="SET NULL"), nullable=True)
    wedding_day_theme_id = Column(Integer, ForeignKey("themes.id", ondelete="SET NULL"), nullable=True)
    # Plain ids (no FK) to avoid a weddings <-> tables/invitation_templates cycle
    invitation_template_id = Column(Integer, nullable=True)
    couple_table_id = Column(Integer, nullable=True)

    couple_names = Column(String(255), nullable=False)
    wedding_date = Column(Date, nullable=False)
    wedding_time = Column(String(10), nullable=False)  # "18:30"
    location = Column(String(500), nullable=False)
    rsvp_cutoff_date = Column(DateTime, nullable=False)
    dress_code = Column(String(255), nullable=True)
    additional_info = Column(Text, nullable=True)

    payment_tracking_mode = Column(SQLEnum(PaymentTrackingMode), nullable=False, default=PaymentTrackingMode.MANUAL)
    gift_iban = Column(String(64), nullable=True)
    allow_guest_additions = Column(Boolean, nullable=False, default=True)
    save_the_date_enabled = Column(Boolean, nullable=False, default=False)
    default_language = Column(String(2), nullable=False, default="ES")

    transportation_question_enabled = Column(Boolean, nullable=False, default=False)
    extra_question_enabled = Column(Boolean, nullable=False, default=False)
    extra_question_text = Column(String(500), nullable=True)
    extra_info_enabled = Column(Boolean, nullable=False, default=False)

    # Short-URL prefix, e.g. "LJ" in /inv/LJ/a7x
    short_url_initials = Column(String(16), unique=True, nullable=True)

    # Shared Google Photos album synced into the gallery
    google_photos_album_id = Column(String(255), nullable=True)

    wizard_completed = Column(Boolean, nullable=False, default=False)
    wizard_current_step = Column(Integer, nullable=False, default=0)

    status = Column(SQLEnum(WeddingStatus), nullable=False, default=WeddingStatus.ACTIVE, index=True)
    deleted_at = Column(DateTime, nullable=True)
    created_by = Column(Integer, nullable=True)
    updated_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    planner = relationship("WeddingPlanner", back_populates="weddings")
    theme = relationship("Theme", foreign_keys=[theme_id])
    wedding_day_theme = relationship("Theme", foreign_keys=[wedding_day_theme_id])
    admins = relationship("WeddingAdmin", back_populates="wedding", cascade="all, delete-orphan")
    families = relationship("Family", back_populates="wedding", cascade="all, delete-orphan")
    tables = relationship("Table", back_populates="wedding", cascade="all, delete-orphan", order_by="Table.number")
    photos = relationship("WeddingPhoto", back_populates="wedding", cascade="all, delete-orphan", order_by="WeddingPhoto.order")
