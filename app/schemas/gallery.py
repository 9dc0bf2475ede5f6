"""Wedding gallery photos."""
from datetime import datetime

from pydantic import BaseModel, Field

from app.models.photo import PhotoSource


class PhotoCreate(BaseModel):
    url: str = Field(min_length=1, max_length=1000)
    caption: str | None = Field(default=None, max_length=500)
    sender_name: str | None = Field(default=None, max_length=255)
    order: int | None = None


class PhotoUpdate(BaseModel):
    approved: bool | None = None
    caption: str | None = Field(default=None, max_length=500)
    order: int | None = None


class GooglePhotosConnect(BaseModel):
    album_id: str = Field(min_length=1, max_length=255)


class GalleryPhoto(BaseModel):
    id: int
    url: str
    caption: str | None = None
    sender_name: str | None = None
    order: int
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class PhotoResponse(GalleryPhoto):
    source: PhotoSource
    approved: bool
    google_media_item_id: str | None = None
    url_expires_at: datetime | None = None
