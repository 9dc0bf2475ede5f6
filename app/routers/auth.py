"""OAuth sign-in and the current session."""
import logging
import secrets

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import SessionUser, require_auth
from app.errors import UNAUTHORIZED, VALIDATION_ERROR, ApiError
from app.schemas.auth import OAuthCallback, SessionClaims, SessionResponse, SignInUrl
from app.schemas.common import ok
from app.services import oauth
from app.services.auth import create_session_token
from app.services.roles import RoleResolutionError, detect_user_role, map_provider

log = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["auth"])


def _provider_or_400(provider: str) -> str:
    try:
        return map_provider(provider).value
    except ValueError:
        raise ApiError(400, VALIDATION_ERROR, f"Unsupported provider: {provider}")


@router.get("/signin/{provider}")
def signin(provider: str, redirect_uri: str, state: str | None = None):
    """Authorization URL for the provider; the client redirects the browser there."""
    _provider_or_400(provider)
    url = oauth.authorization_url(provider, redirect_uri, state or secrets.token_urlsafe(16))
    return ok(SignInUrl(provider=provider.lower(), url=url))


@router.post("/callback/{provider}")
def callback(provider: str, data: OAuthCallback, db: Session = Depends(get_db)):
    """Exchange the authorization code, resolve the role and issue a session token."""
    provider_value = _provider_or_400(provider)
    try:
        profile = oauth.exchange_code(provider, data.code, data.redirect_uri)
    except oauth.OAuthError as e:
        raise ApiError(401, UNAUTHORIZED, str(e))
    try:
        resolved = detect_user_role(db, profile.email, provider_value, profile.name)
    except RoleResolutionError as e:
        log.info("[Auth] Sign-in rejected for %s: %s", profile.email, e.code)
        raise ApiError(401, e.code, e.message)
    email = profile.email.strip().lower()
    token = create_session_token(
        email,
        resolved.role.value,
        name=resolved.name or profile.name,
        provider=provider_value,
        wedding_id=resolved.wedding_id,
        planner_id=resolved.planner_id,
    )
    return ok(
        SessionResponse(
            token=token,
            role=resolved.role,
            email=email,
            name=resolved.name or profile.name,
            wedding_id=resolved.wedding_id,
            planner_id=resolved.planner_id,
            redirect_to=resolved.home_path,
        )
    )


@router.get("/session")
def session(user: SessionUser = Depends(require_auth)):
    return ok(SessionClaims(**user.claims()))
