"""Message templates and invitation-template designs."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from app.models.family import Channel
from app.models.template import TemplateType
from app.schemas.family import check_language
from app.services.invitation_template import BLOCK_TYPES


class MessageTemplateResponse(BaseModel):
    id: int
    wedding_id: int
    type: TemplateType
    language: str
    channel: Channel
    subject: str
    body: str
    image_url: str | None = None
    content_template_id: str | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class MessageTemplateUpdate(BaseModel):
    subject: str | None = Field(default=None, min_length=1, max_length=255)
    body: str | None = Field(default=None, min_length=1)
    image_url: str | None = None
    content_template_id: str | None = None


class TemplatePreviewRequest(BaseModel):
    """Either a stored template id or an ad-hoc subject/body; rendered against a family or sample data."""
    template_id: int | None = None
    subject: str | None = None
    body: str | None = None
    family_id: int | None = None
    language: str = "ES"

    @field_validator("language")
    @classmethod
    def language_supported(cls, v: str) -> str:
        return check_language(v)


def _check_design(design: dict[str, Any]) -> dict[str, Any]:
    blocks = design.get("blocks")
    if not isinstance(blocks, list):
        raise ValueError("design.blocks must be a list")
    for block in blocks:
        if not isinstance(block, dict) or block.get("type") not in BLOCK_TYPES:
            raise ValueError(f"Each block needs a type in {', '.join(BLOCK_TYPES)}")
        if not block.get("id"):
            raise ValueError("Each block needs an id")
    return design


class InvitationTemplateCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    design: dict[str, Any] | None = None
    based_on_theme_id: int | None = None

    @field_validator("design")
    @classmethod
    def design_valid(cls, v: dict[str, Any] | None) -> dict[str, Any] | None:
        return v if v is None else _check_design(v)


class InvitationTemplateUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    design: dict[str, Any] | None = None

    @field_validator("design")
    @classmethod
    def design_valid(cls, v: dict[str, Any] | None) -> dict[str, Any] | None:
        return v if v is None else _check_design(v)


class InvitationTemplateResponse(BaseModel):
    id: int
    wedding_id: int
    name: str
    design: dict[str, Any]
    pre_rendered_html: dict[str, Any] | None = None
    based_on_theme_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True
