"""Invitation sending, reminders and notification read state."""
from pydantic import BaseModel, Field

from app.models.family import Channel


class SendInvitationsRequest(BaseModel):
    # empty: every family that has not been invited yet
    family_ids: list[int] = Field(default_factory=list)


class ReminderRequest(BaseModel):
    channel: Channel | None = None
    message: str | None = Field(default=None, max_length=2000)
    family_ids: list[int] | None = None


class MarkReadRequest(BaseModel):
    event_ids: list[int] = Field(min_length=1)


class SaveTheDateRequest(BaseModel):
    # None: each family's preferred channel
    channel: Channel | None = None
    family_ids: list[int] | None = None
