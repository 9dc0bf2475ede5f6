"""Wedding lifecycle shared by the planner console and the wedding admin."""
import logging
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.database import utcnow
from app.errors import NOT_FOUND, VALIDATION_ERROR, ApiError
from app.models.family import Family
from app.models.principal import WeddingAdmin
from app.models.theme import Theme
from app.models.wedding import Wedding, WeddingStatus
from app.services.invitation_template import rerender_wedding_templates
from app.services.message_templates import seed_templates_for_wedding
from app.services.short_url import ensure_wedding_initials
from app.services.themes import resolve_wedding_theme

log = logging.getLogger(__name__)


def check_theme_available(db: Session, planner_id: int, theme_id: int | None) -> Theme | None:
    """System themes and the planner's own themes only."""
    if theme_id is None:
        return None
    theme = db.query(Theme).filter(Theme.id == theme_id).first()
    if not theme or not (theme.is_system_theme or theme.planner_id == planner_id):
        raise ApiError(404, NOT_FOUND, f"Theme {theme_id} not found")
    return theme


def create_wedding(db: Session, planner_id: int, fields: dict[str, Any]) -> Wedding:
    """New ACTIVE wedding with default message templates and short-URL initials. Commits."""
    for key in ("theme_id", "wedding_day_theme_id"):
        check_theme_available(db, planner_id, fields.get(key))
    wedding = Wedding(planner_id=planner_id, created_by=planner_id, status=WeddingStatus.ACTIVE, **fields)
    db.add(wedding)
    db.flush()
    seed_templates_for_wedding(db, wedding.id)
    ensure_wedding_initials(db, wedding)
    db.commit()
    db.refresh(wedding)
    log.info("[Wedding] Created wedding %s (%s) for planner %s", wedding.id, wedding.couple_names, planner_id)
    return wedding


def apply_wedding_update(db: Session, wedding: Wedding, fields: dict[str, Any]) -> None:
    """Apply validated fields; a theme change re-applies the theme to the invitation designs. Flushes."""
    required = [k for k, v in fields.items() if v is None and not Wedding.__table__.c[k].nullable]
    if required:
        raise ApiError(400, VALIDATION_ERROR, "Fields cannot be null", {"fields": required})
    for key in ("theme_id", "wedding_day_theme_id"):
        if key in fields:
            check_theme_available(db, wedding.planner_id, fields[key])
    theme_changed = "theme_id" in fields and fields["theme_id"] != wedding.theme_id
    for key, value in fields.items():
        setattr(wedding, key, value)
    if wedding.rsvp_cutoff_date.date() > wedding.wedding_date:
        raise ApiError(400, VALIDATION_ERROR, "rsvp_cutoff_date must be on or before wedding_date")
    db.flush()
    if fields.get("save_the_date_enabled"):
        seed_templates_for_wedding(db, wedding.id)
    if theme_changed:
        db.refresh(wedding)
        theme = resolve_wedding_theme(db, wedding)
        rerender_wedding_templates(db, wedding.id, theme.config if theme else None)


def soft_delete_wedding(db: Session, wedding: Wedding) -> None:
    wedding.status = WeddingStatus.DELETED
    wedding.deleted_at = utcnow()
    db.commit()


def wedding_counts(db: Session, wedding_ids: list[int]) -> dict[int, dict[str, int]]:
    """{wedding_id: {"family_count", "admin_count"}} in two grouped queries."""
    counts = {wid: {"family_count": 0, "admin_count": 0} for wid in wedding_ids}
    if not wedding_ids:
        return counts
    for wid, n in (
        db.query(Family.wedding_id, func.count(Family.id))
        .filter(Family.wedding_id.in_(wedding_ids))
        .group_by(Family.wedding_id)
    ):
        counts[wid]["family_count"] = n
    for wid, n in (
        db.query(WeddingAdmin.wedding_id, func.count(WeddingAdmin.id))
        .filter(WeddingAdmin.wedding_id.in_(wedding_ids))
        .group_by(WeddingAdmin.wedding_id)
    ):
        counts[wid]["admin_count"] = n
    return counts
