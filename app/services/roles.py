"""Role resolution: map an authenticated email to master admin, planner or wedding admin.

Resolution order matters: an email listed in MASTER_ADMIN_EMAILS is always a master
admin, even if a planner or wedding admin row exists for it.
"""
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import utcnow
from app.errors import PLANNER_DISABLED, UNAUTHORIZED
from app.models.principal import AuthProvider, MasterAdmin, UserRole, WeddingAdmin, WeddingPlanner
from app.models.wedding import Wedding

log = logging.getLogger(__name__)
settings = get_settings()

_PROVIDER_MAP = {
    "google": AuthProvider.GOOGLE,
    "facebook": AuthProvider.FACEBOOK,
    "apple": AuthProvider.APPLE,
}

_ROLE_HOME = {
    UserRole.master_admin: "/master",
    UserRole.planner: "/planner",
    UserRole.wedding_admin: "/admin",
}


class RoleResolutionError(Exception):
    """Raised with PLANNER_DISABLED or UNAUTHORIZED when no usable role exists."""

    def __init__(self, code: str, message: str):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


@dataclass
class ResolvedRole:
    role: UserRole
    name: str | None = None
    wedding_id: int | None = None
    planner_id: int | None = None

    @property
    def home_path(self) -> str:
        return _ROLE_HOME[self.role]


def map_provider(provider: str | None) -> AuthProvider:
    key = (provider or "").strip().lower()
    if key not in _PROVIDER_MAP:
        raise ValueError(f"Unsupported auth provider: {provider}")
    return _PROVIDER_MAP[key]


def is_master_admin_email(email: str) -> bool:
    return (email or "").strip().lower() in settings.master_admin_email_list


def detect_user_role(db: Session, email: str, provider: str, name: str | None = None) -> ResolvedRole:
    """Resolve the principal for email. Commits login bookkeeping (last login, accepted_at)."""
    email_norm = (email or "").strip().lower()
    if not email_norm:
        raise RoleResolutionError(UNAUTHORIZED, "Email is required")
    auth_provider = map_provider(provider)
    now = utcnow()

    if is_master_admin_email(email_norm):
        admin = db.query(MasterAdmin).filter(MasterAdmin.email == email_norm).first()
        if not admin:
            admin = MasterAdmin(email=email_norm, name=name or email_norm.split("@")[0])
            db.add(admin)
            db.commit()
            log.info("[Roles] Created master admin record for %s", email_norm)
        return ResolvedRole(role=UserRole.master_admin, name=admin.name)

    planner = db.query(WeddingPlanner).filter(WeddingPlanner.email == email_norm).first()
    if planner:
        if not planner.enabled:
            raise RoleResolutionError(PLANNER_DISABLED, "Planner account is disabled")
        planner.last_login_provider = auth_provider
        planner.last_login_at = now
        db.commit()
        return ResolvedRole(role=UserRole.planner, name=planner.name, planner_id=planner.id)

    wedding_admin = (
        db.query(WeddingAdmin)
        .filter(WeddingAdmin.email == email_norm)
        .order_by(WeddingAdmin.invited_at.desc(), WeddingAdmin.id.desc())
        .first()
    )
    if wedding_admin:
        if wedding_admin.accepted_at is None:
            wedding_admin.accepted_at = now
        wedding_admin.last_login_provider = auth_provider
        wedding_admin.last_login_at = now
        wedding = db.query(Wedding).filter(Wedding.id == wedding_admin.wedding_id).first()
        db.commit()
        return ResolvedRole(
            role=UserRole.wedding_admin,
            name=wedding_admin.name or name,
            wedding_id=wedding_admin.wedding_id,
            planner_id=wedding.planner_id if wedding else None,
        )

    raise RoleResolutionError(UNAUTHORIZED, "No role found for this account")
