"""Per-wedding message templates and invitation-page designs."""
import enum

from sqlalchemy import Column, DateTime, Enum as SQLEnum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import func
from app.database import Base, JSONType
from app.models.family import Channel


class TemplateType(str, enum.Enum):
    SAVE_THE_DATE = "SAVE_THE_DATE"
    INVITATION = "INVITATION"
    REMINDER = "REMINDER"


class MessageTemplate(Base):
    __tablename__ = "message_templates"
    __table_args__ = (
        UniqueConstraint("wedding_id", "type", "language", "channel", name="uq_message_templates_wedding_type_lang_channel"),
    )

    id = Column(Integer, primary_key=True, index=True)
    wedding_id = Column(Integer, ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(SQLEnum(TemplateType), nullable=False)
    language = Column(String(2), nullable=False)
    channel = Column(SQLEnum(Channel), nullable=False)
    subject = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    image_url = Column(String(500), nullable=True)
    # Twilio Content API template (WhatsApp business-initiated messages)
    content_template_id = Column(String(64), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())


class InvitationTemplate(Base):
    __tablename__ = "invitation_templates"

    id = Column(Integer, primary_key=True, index=True)
    wedding_id = Column(Integer, ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    design = Column(JSONType, nullable=False)  # {globalStyle, blocks}
    pre_rendered_html = Column(JSONType, nullable=True)  # {language: html}
    based_on_theme_id = Column(Integer, ForeignKey("themes.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())
