"""Wedding gallery photos. Google Photos items keep their media id because base URLs expire after ~60 min."""
import enum

from sqlalchemy import Boolean, Column, DateTime, Enum as SQLEnum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class PhotoSource(str, enum.Enum):
    UPLOAD = "UPLOAD"
    GOOGLE_PHOTOS = "GOOGLE_PHOTOS"


class WeddingPhoto(Base):
    __tablename__ = "wedding_photos"

    id = Column(Integer, primary_key=True, index=True)
    wedding_id = Column(Integer, ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False, index=True)
    source = Column(SQLEnum(PhotoSource), nullable=False, default=PhotoSource.UPLOAD)
    google_media_item_id = Column(String(255), nullable=True, index=True)
    url = Column(String(1000), nullable=False)
    url_expires_at = Column(DateTime, nullable=True)
    caption = Column(String(500), nullable=True)
    sender_name = Column(String(255), nullable=True)
    approved = Column(Boolean, nullable=False, default=True)
    order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())

    wedding = relationship("Wedding", back_populates="photos")
