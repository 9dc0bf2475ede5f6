"""Families and members: admin management and guest self-service payloads."""
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.family import Channel, MemberType
from app.models.wedding import LANGUAGES

# Also the number of member column groups in the guest-list spreadsheet
MAX_FAMILY_MEMBERS = 10


def check_language(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip().upper()
    if v not in LANGUAGES:
        raise ValueError(f"Language must be one of {', '.join(LANGUAGES)}")
    return v


class MemberInput(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    type: MemberType = MemberType.ADULT
    age: int | None = Field(default=None, ge=0, le=120)
    attending: bool | None = None
    dietary_restrictions: str | None = None
    accessibility_needs: str | None = None
    seating_group: str | None = None


class FamilyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    contact_person: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    whatsapp_number: str | None = None
    channel_preference: Channel | None = None
    preferred_language: str = "ES"
    invited_by_admin_id: int | None = None
    members: list[MemberInput] = Field(min_length=1, max_length=MAX_FAMILY_MEMBERS)

    @field_validator("preferred_language")
    @classmethod
    def language_supported(cls, v: str | None) -> str | None:
        return check_language(v)


class MemberUpdate(MemberInput):
    id: int | None = None


class FamilyUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    contact_person: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    whatsapp_number: str | None = None
    channel_preference: Channel | None = None
    preferred_language: str | None = None
    invited_by_admin_id: int | None = None
    # When present, replaces the member list (members keep ids when "id" matches)
    members: list[MemberUpdate] | None = Field(default=None, min_length=1, max_length=MAX_FAMILY_MEMBERS)

    @field_validator("name", "preferred_language")
    @classmethod
    def not_null(cls, v: str | None) -> str | None:
        # Only reached for an explicit null; omitted fields keep their default
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator("preferred_language")
    @classmethod
    def language_supported(cls, v: str | None) -> str | None:
        return check_language(v)


class MemberResponse(BaseModel):
    id: int
    name: str
    type: MemberType
    attending: bool | None = None
    age: int | None = None
    dietary_restrictions: str | None = None
    accessibility_needs: str | None = None
    added_by_guest: bool = False
    table_id: int | None = None
    seating_group: str | None = None

    class Config:
        from_attributes = True


class FamilyResponse(BaseModel):
    id: int
    wedding_id: int
    name: str
    contact_person: str | None = None
    email: str | None = None
    phone: str | None = None
    whatsapp_number: str | None = None
    magic_token: str
    reference_code: str | None = None
    short_url: str | None = None
    channel_preference: Channel | None = None
    preferred_language: str
    invited_by_admin_id: int | None = None
    transportation_answer: bool | None = None
    extra_question_answer: bool | None = None
    extra_info_answer: str | None = None
    rsvp_submitted_at: datetime | None = None
    save_the_date_sent_at: datetime | None = None
    invitation_sent_at: datetime | None = None
    members: list[MemberResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class RSVPMemberInput(BaseModel):
    member_id: int
    attending: bool
    dietary_restrictions: str | None = None
    accessibility_needs: str | None = None


class RSVPSubmit(BaseModel):
    members: list[RSVPMemberInput] = Field(min_length=1)
    transportation_answer: bool | None = None
    extra_question_answer: bool | None = None
    extra_info_answer: str | None = None


class GuestMemberAdd(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    type: MemberType
    age: int | None = Field(default=None, ge=0, le=120)
    dietary_restrictions: str | None = None
    accessibility_needs: str | None = None


class LanguageUpdate(BaseModel):
    language: str

    @field_validator("language")
    @classmethod
    def language_supported(cls, v: str) -> str:
        return check_language(v)


class InvitationLookup(BaseModel):
    contact: str = Field(min_length=1, max_length=255)


class BulkDelete(BaseModel):
    family_ids: list[int] = Field(min_length=1, max_length=100)
