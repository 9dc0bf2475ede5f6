"""Sign-in and session schemas."""
from pydantic import BaseModel

from app.models.principal import UserRole


class OAuthCallback(BaseModel):
    code: str
    redirect_uri: str
    state: str | None = None


class SignInUrl(BaseModel):
    provider: str
    url: str


class SessionResponse(BaseModel):
    token: str
    role: UserRole
    email: str
    name: str | None = None
    wedding_id: int | None = None
    planner_id: int | None = None
    redirect_to: str


class SessionClaims(BaseModel):
    email: str
    name: str | None = None
    role: UserRole
    provider: str | None = None
    wedding_id: int | None = None
    planner_id: int | None = None
    role_checked_at: int | None = None
