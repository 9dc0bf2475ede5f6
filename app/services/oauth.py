"""OAuth code exchange for Google, Facebook and Apple. Returns the verified email and name."""
import logging
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx
import jwt

from app.config import get_settings

log = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
FACEBOOK_AUTH_URL = "https://www.facebook.com/v19.0/dialog/oauth"
FACEBOOK_TOKEN_URL = "https://graph.facebook.com/v19.0/oauth/access_token"
FACEBOOK_ME_URL = "https://graph.facebook.com/me"
APPLE_AUTH_URL = "https://appleid.apple.com/auth/authorize"
APPLE_TOKEN_URL = "https://appleid.apple.com/auth/token"


class OAuthError(Exception):
    pass


@dataclass
class OAuthProfile:
    email: str
    name: str | None = None


def authorization_url(provider: str, redirect_uri: str, state: str = "") -> str:
    settings = get_settings()
    provider = provider.lower()
    if provider == "google":
        params = {
            "client_id": settings.google_client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": "openid email profile",
            "state": state,
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"
    if provider == "facebook":
        params = {
            "client_id": settings.facebook_client_id,
            "redirect_uri": redirect_uri,
            "scope": "email,public_profile",
            "state": state,
        }
        return f"{FACEBOOK_AUTH_URL}?{urlencode(params)}"
    if provider == "apple":
        params = {
            "client_id": settings.apple_client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "response_mode": "form_post",
            "scope": "name email",
            "state": state,
        }
        return f"{APPLE_AUTH_URL}?{urlencode(params)}"
    raise OAuthError(f"Unsupported provider: {provider}")


def exchange_code(provider: str, code: str, redirect_uri: str) -> OAuthProfile:
    """Exchange an authorization code for the user's profile. Raises OAuthError on any failure."""
    provider = provider.lower()
    try:
        with httpx.Client(timeout=10.0) as client:
            if provider == "google":
                return _google_profile(client, code, redirect_uri)
            if provider == "facebook":
                return _facebook_profile(client, code, redirect_uri)
            if provider == "apple":
                return _apple_profile(client, code, redirect_uri)
    except httpx.HTTPError as e:
        log.warning("[OAuth] %s exchange failed: %s", provider, e)
        raise OAuthError(f"{provider} sign-in failed") from e
    raise OAuthError(f"Unsupported provider: {provider}")


def _google_profile(client: httpx.Client, code: str, redirect_uri: str) -> OAuthProfile:
    settings = get_settings()
    r = client.post(
        GOOGLE_TOKEN_URL,
        data={
            "code": code,
            "client_id": settings.google_client_id,
            "client_secret": settings.google_client_secret,
            "redirect_uri": redirect_uri,
            "grant_type": "authorization_code",
        },
    )
    r.raise_for_status()
    access_token = r.json().get("access_token")
    info = client.get(GOOGLE_USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"})
    info.raise_for_status()
    data = info.json()
    if not data.get("email") or not data.get("email_verified", False):
        raise OAuthError("Google account has no verified email")
    return OAuthProfile(email=data["email"], name=data.get("name"))


def _facebook_profile(client: httpx.Client, code: str, redirect_uri: str) -> OAuthProfile:
    settings = get_settings()
    r = client.get(
        FACEBOOK_TOKEN_URL,
        params={
            "client_id": settings.facebook_client_id,
            "client_secret": settings.facebook_client_secret,
            "redirect_uri": redirect_uri,
            "code": code,
        },
    )
    r.raise_for_status()
    access_token = r.json().get("access_token")
    me = client.get(FACEBOOK_ME_URL, params={"fields": "email,name", "access_token": access_token})
    me.raise_for_status()
    data = me.json()
    if not data.get("email"):
        raise OAuthError("Facebook account has no email")
    return OAuthProfile(email=data["email"], name=data.get("name"))


def _apple_profile(client: httpx.Client, code: str, redirect_uri: str) -> OAuthProfile:
    settings = get_settings()
    r = client.post(
        APPLE_TOKEN_URL,
        data={
            "client_id": settings.apple_client_id,
            "client_secret": settings.apple_client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": redirect_uri,
        },
    )
    r.raise_for_status()
    id_token = r.json().get("id_token") or ""
    # Received directly from Apple's token endpoint over TLS
    try:
        claims = jwt.decode(id_token, options={"verify_signature": False})
    except jwt.PyJWTError as e:
        raise OAuthError("Apple id_token could not be decoded") from e
    if not claims.get("email"):
        raise OAuthError("Apple account has no email")
    return OAuthProfile(email=claims["email"])
