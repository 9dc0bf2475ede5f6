"""Visual themes: system presets and planner-owned custom themes."""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func
from app.database import Base, JSONType


class Theme(Base):
    __tablename__ = "themes"

    id = Column(Integer, primary_key=True, index=True)
    # Stable key for system presets (e.g. "classic-elegance"); seeding upserts on it
    preset_id = Column(String(64), unique=True, nullable=True)
    planner_id = Column(Integer, ForeignKey("wedding_planners.id", ondelete="CASCADE"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_system_theme = Column(Boolean, nullable=False, default=False)
    is_default = Column(Boolean, nullable=False, default=False)
    config = Column(JSONType, nullable=False)  # {colors, fonts, styles, images?}
    preview_image_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())
