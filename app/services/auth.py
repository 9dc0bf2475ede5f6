"""Session tokens (JWT) carrying the resolved role, and their revalidation window."""
import time
from datetime import datetime, timedelta, timezone

import jwt
from app.config import get_settings

settings = get_settings()

SESSION_HEADER = "X-Session-Token"


def create_session_token(
    email: str,
    role: str,
    *,
    name: str | None = None,
    provider: str | None = None,
    wedding_id: int | None = None,
    planner_id: int | None = None,
    role_checked_at: int | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.session_max_age_minutes)
    payload = {
        "sub": email,
        "name": name,
        "role": role,
        "provider": provider,
        "wedding_id": wedding_id,
        "planner_id": planner_id,
        "role_checked_at": int(role_checked_at if role_checked_at is not None else time.time()),
        "exp": expire,
    }
    raw = jwt.encode(
        payload,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return raw if isinstance(raw, str) else raw.decode("utf-8")


def decode_token(token: str) -> dict | None:
    payload, _ = decode_token_with_error(token)
    return payload


def decode_token_with_error(token: str) -> tuple[dict | None, str | None]:
    """Decode JWT; returns (payload, error_message)."""
    if not token or not isinstance(token, str):
        return None, "empty token"
    token = token.strip()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        return payload, None
    except jwt.ExpiredSignatureError as e:
        return None, str(e)
    except jwt.PyJWTError as e:
        return None, str(e)


def needs_revalidation(payload: dict, now: float | None = None) -> bool:
    """True once the role claims are at least session_revalidate_seconds old."""
    checked_at = payload.get("role_checked_at")
    if not isinstance(checked_at, (int, float)):
        return True
    now = time.time() if now is None else now
    return now - checked_at >= settings.session_revalidate_seconds
