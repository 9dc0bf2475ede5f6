"""Weddings, planners, wedding admins and themes."""
import re
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from app.models.wedding import PaymentTrackingMode, WeddingStatus
from app.schemas.family import check_language

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _check_time(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if not _TIME_RE.match(v):
        raise ValueError("wedding_time must be HH:MM (24h)")
    return v


class WeddingBase(BaseModel):
    dress_code: str | None = None
    additional_info: str | None = None
    gift_iban: str | None = None
    theme_id: int | None = None
    wedding_day_theme_id: int | None = None
    transportation_question_enabled: bool | None = None
    extra_question_enabled: bool | None = None
    extra_question_text: str | None = None
    extra_info_enabled: bool | None = None


class WeddingCreate(WeddingBase):
    couple_names: str = Field(min_length=1, max_length=255)
    wedding_date: date
    wedding_time: str
    location: str = Field(min_length=1, max_length=500)
    rsvp_cutoff_date: datetime
    payment_tracking_mode: PaymentTrackingMode = PaymentTrackingMode.MANUAL
    allow_guest_additions: bool = True
    save_the_date_enabled: bool = False
    default_language: str = "ES"

    @field_validator("wedding_time")
    @classmethod
    def time_format(cls, v: str) -> str:
        return _check_time(v)

    @field_validator("default_language")
    @classmethod
    def language_supported(cls, v: str) -> str:
        return check_language(v)

    @model_validator(mode="after")
    def cutoff_before_wedding(self):
        if self.rsvp_cutoff_date.date() > self.wedding_date:
            raise ValueError("rsvp_cutoff_date must be on or before wedding_date")
        return self


class AdminWeddingUpdate(WeddingBase):
    """Settings a wedding admin may change; all optional, only provided fields are applied."""
    couple_names: str | None = Field(default=None, min_length=1, max_length=255)
    wedding_date: date | None = None
    wedding_time: str | None = None
    location: str | None = Field(default=None, min_length=1, max_length=500)
    rsvp_cutoff_date: datetime | None = None
    payment_tracking_mode: PaymentTrackingMode | None = None
    allow_guest_additions: bool | None = None
    save_the_date_enabled: bool | None = None
    default_language: str | None = None
    wizard_completed: bool | None = None
    wizard_current_step: int | None = Field(default=None, ge=0)

    @field_validator("wedding_time")
    @classmethod
    def time_format(cls, v: str | None) -> str | None:
        return _check_time(v)

    @field_validator("default_language")
    @classmethod
    def language_supported(cls, v: str | None) -> str | None:
        return check_language(v)


class WeddingUpdate(AdminWeddingUpdate):
    status: WeddingStatus | None = None

    @field_validator("status")
    @classmethod
    def no_delete_via_patch(cls, v: WeddingStatus | None) -> WeddingStatus | None:
        if v == WeddingStatus.DELETED:
            raise ValueError("Use DELETE to remove a wedding")
        return v


class WeddingResponse(BaseModel):
    id: int
    planner_id: int
    couple_names: str
    wedding_date: date
    wedding_time: str
    location: str
    rsvp_cutoff_date: datetime
    dress_code: str | None = None
    additional_info: str | None = None
    payment_tracking_mode: PaymentTrackingMode
    gift_iban: str | None = None
    allow_guest_additions: bool
    save_the_date_enabled: bool
    default_language: str
    theme_id: int | None = None
    wedding_day_theme_id: int | None = None
    invitation_template_id: int | None = None
    couple_table_id: int | None = None
    transportation_question_enabled: bool
    extra_question_enabled: bool
    extra_question_text: str | None = None
    extra_info_enabled: bool
    short_url_initials: str | None = None
    wizard_completed: bool
    wizard_current_step: int
    status: WeddingStatus
    deleted_at: datetime | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class WeddingAdminInvite(BaseModel):
    email: EmailStr
    name: str | None = None


class WeddingAdminResponse(BaseModel):
    id: int
    email: str
    name: str | None = None
    wedding_id: int
    invited_at: datetime | None = None
    accepted_at: datetime | None = None
    last_login_at: datetime | None = None

    class Config:
        from_attributes = True


class PlannerCreate(BaseModel):
    email: EmailStr
    name: str = Field(min_length=1, max_length=255)
    logo_url: str | None = None


class PlannerUpdate(BaseModel):
    enabled: bool | None = None
    name: str | None = Field(default=None, min_length=1, max_length=255)
    logo_url: str | None = None


class PlannerResponse(BaseModel):
    id: int
    email: str
    name: str
    logo_url: str | None = None
    enabled: bool
    subscription_status: str
    last_login_at: datetime | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class ThemeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    config: dict[str, Any]
    preview_image_url: str | None = None

    @field_validator("config")
    @classmethod
    def config_has_colors(cls, v: dict[str, Any]) -> dict[str, Any]:
        if not isinstance(v.get("colors"), dict):
            raise ValueError("config.colors is required")
        return v


class ThemeUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    config: dict[str, Any] | None = None
    preview_image_url: str | None = None

    @field_validator("config")
    @classmethod
    def config_has_colors(cls, v: dict[str, Any] | None) -> dict[str, Any] | None:
        if v is not None and not isinstance(v.get("colors"), dict):
            raise ValueError("config.colors is required")
        return v
