"""Shared dependencies: DB session, current session user, role gates and wedding scoping."""
import logging
import time
from dataclasses import dataclass

from fastapi import Depends, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import FORBIDDEN, NOT_FOUND, UNAUTHORIZED, ApiError
from app.models.principal import UserRole
from app.models.wedding import Wedding, WeddingStatus
from app.services.auth import SESSION_HEADER, create_session_token, decode_token_with_error, needs_revalidation
from app.services.roles import RoleResolutionError, detect_user_role

log = logging.getLogger(__name__)
security = HTTPBearer(auto_error=False)

_PATH_ROLES = (
    ("/master", UserRole.master_admin),
    ("/api/master", UserRole.master_admin),
    ("/planner", UserRole.planner),
    ("/api/planner", UserRole.planner),
    ("/admin", UserRole.wedding_admin),
    ("/api/admin", UserRole.wedding_admin),
)


@dataclass
class SessionUser:
    email: str
    role: UserRole
    name: str | None = None
    provider: str | None = None
    wedding_id: int | None = None
    planner_id: int | None = None
    role_checked_at: int | None = None

    def claims(self) -> dict:
        return {
            "email": self.email,
            "name": self.name,
            "role": self.role.value,
            "provider": self.provider,
            "wedding_id": self.wedding_id,
            "planner_id": self.planner_id,
            "role_checked_at": self.role_checked_at,
        }


def _revalidate(db: Session, payload: dict, response: Response) -> SessionUser:
    """Re-resolve the role from the database and hand the client a refreshed token."""
    email = payload.get("sub")
    provider = payload.get("provider")
    try:
        resolved = detect_user_role(db, email, provider, payload.get("name"))
    except RoleResolutionError as e:
        log.info("[Session] Revalidation rejected %s: %s", email, e.code)
        raise ApiError(401, e.code, e.message)
    except ValueError:
        raise ApiError(401, UNAUTHORIZED, "Invalid session")
    checked_at = int(time.time())
    token = create_session_token(
        email,
        resolved.role.value,
        name=resolved.name,
        provider=provider,
        wedding_id=resolved.wedding_id,
        planner_id=resolved.planner_id,
        role_checked_at=checked_at,
    )
    response.headers[SESSION_HEADER] = token
    return SessionUser(
        email=email,
        role=resolved.role,
        name=resolved.name,
        provider=provider,
        wedding_id=resolved.wedding_id,
        planner_id=resolved.planner_id,
        role_checked_at=checked_at,
    )


def get_current_user(
    response: Response,
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> SessionUser | None:
    """Session user from the Bearer token, or None without one. Claims older than
    session_revalidate_seconds are re-checked against the database."""
    if not credentials:
        return None
    payload, _ = decode_token_with_error((credentials.credentials or "").strip())
    if not payload or not payload.get("sub"):
        return None
    if needs_revalidation(payload):
        return _revalidate(db, payload, response)
    try:
        role = UserRole(payload.get("role"))
    except ValueError:
        return None
    return SessionUser(
        email=payload["sub"],
        role=role,
        name=payload.get("name"),
        provider=payload.get("provider"),
        wedding_id=payload.get("wedding_id"),
        planner_id=payload.get("planner_id"),
        role_checked_at=payload.get("role_checked_at"),
    )


def require_auth(user: SessionUser | None = Depends(get_current_user)) -> SessionUser:
    if user is None:
        raise ApiError(401, UNAUTHORIZED, "Authentication required")
    return user


def require_any_role(*roles: UserRole):
    allowed = set(roles)

    def dependency(user: SessionUser = Depends(require_auth)) -> SessionUser:
        if user.role not in allowed:
            raise ApiError(403, FORBIDDEN, "Insufficient permissions")
        return user

    return dependency


def require_role(role: UserRole):
    return require_any_role(role)


require_master_admin = require_role(UserRole.master_admin)
require_planner = require_role(UserRole.planner)
require_wedding_admin = require_role(UserRole.wedding_admin)


def route_role_for_path(path: str) -> UserRole | None:
    """Role a URL prefix belongs to (/master, /planner, /admin, and their /api forms)."""
    for prefix, role in _PATH_ROLES:
        if path == prefix or path.startswith(prefix + "/"):
            return role
    return None


def has_wedding_access(user: SessionUser, wedding: Wedding) -> bool:
    if user.role == UserRole.master_admin:
        return True
    if user.role == UserRole.planner:
        return user.planner_id is not None and wedding.planner_id == user.planner_id
    if user.role == UserRole.wedding_admin:
        return user.wedding_id is not None and wedding.id == user.wedding_id
    return False


def get_admin_wedding(
    user: SessionUser = Depends(require_wedding_admin),
    db: Session = Depends(get_db),
) -> Wedding:
    """The signed-in wedding admin's own wedding."""
    if not user.wedding_id:
        raise ApiError(403, FORBIDDEN, "Wedding ID not found in session")
    wedding = (
        db.query(Wedding)
        .filter(Wedding.id == user.wedding_id, Wedding.status != WeddingStatus.DELETED)
        .first()
    )
    if not wedding:
        raise ApiError(404, NOT_FOUND, "Wedding not found")
    return wedding


def load_wedding_for(db: Session, user: SessionUser, wedding_id: int) -> Wedding:
    wedding = db.query(Wedding).filter(Wedding.id == wedding_id).first()
    if not wedding:
        raise ApiError(404, NOT_FOUND, "Wedding not found")
    if not has_wedding_access(user, wedding):
        raise ApiError(403, FORBIDDEN, "You do not have access to this wedding")
    return wedding


def get_accessible_wedding(
    wedding_id: int,
    user: SessionUser = Depends(
        require_any_role(UserRole.master_admin, UserRole.planner, UserRole.wedding_admin)
    ),
    db: Session = Depends(get_db),
) -> Wedding:
    """Wedding from the path, for any role allowed to see it."""
    return load_wedding_for(db, user, wedding_id)
