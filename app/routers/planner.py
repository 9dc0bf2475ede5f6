"""Planner console: weddings, wedding admins, save-the-date, themes and provider categories."""
import logging
from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.database import get_db
from app.dependencies import SessionUser, require_planner
from app.errors import ALREADY_EXISTS, FORBIDDEN, NOT_FOUND, THEME_IN_USE, ApiError
from app.models.family import Family
from app.models.payment import ProviderCategory
from app.models.principal import WeddingAdmin
from app.models.theme import Theme
from app.models.wedding import Wedding, WeddingStatus
from app.schemas.common import DEFAULT_PAGE_SIZE, ok, paginate
from app.schemas.messaging import SaveTheDateRequest
from app.schemas.payments import CategoryCreate
from app.schemas.wedding import (
    ThemeCreate,
    ThemeUpdate,
    WeddingAdminInvite,
    WeddingAdminResponse,
    WeddingCreate,
    WeddingResponse,
    WeddingUpdate,
)
from app.services.families import has_submitted_rsvp
from app.services.invitation_template import rerender_wedding_templates
from app.services.messaging import send_save_the_date
from app.services.page_cache import invalidate_wedding
from app.services.themes import theme_out, themes_for_planner
from app.services.weddings import apply_wedding_update, create_wedding, soft_delete_wedding, wedding_counts

log = logging.getLogger(__name__)
router = APIRouter(prefix="/api/planner", tags=["planner"])

UPCOMING_LIMIT = 5


def get_planner_id(user: SessionUser = Depends(require_planner)) -> int:
    if not user.planner_id:
        raise ApiError(403, FORBIDDEN, "Planner ID not found in session")
    return user.planner_id


def _planner_wedding(db: Session, planner_id: int, wedding_id: int) -> Wedding:
    wedding = db.query(Wedding).filter(Wedding.id == wedding_id).first()
    if not wedding:
        raise ApiError(404, NOT_FOUND, "Wedding not found")
    if wedding.planner_id != planner_id:
        raise ApiError(403, FORBIDDEN, "You do not have access to this wedding")
    return wedding


def _wedding_list(db: Session, weddings: list[Wedding]) -> list[dict]:
    counts = wedding_counts(db, [w.id for w in weddings])
    out = []
    for w in weddings:
        row = WeddingResponse.model_validate(w).model_dump()
        row.update(counts[w.id])
        out.append(row)
    return out


def _planner_theme(db: Session, planner_id: int, theme_id: int) -> Theme:
    theme = db.query(Theme).filter(Theme.id == theme_id).first()
    if not theme or not (theme.is_system_theme or theme.planner_id == planner_id):
        raise ApiError(404, NOT_FOUND, "Theme not found")
    if theme.is_system_theme:
        raise ApiError(403, FORBIDDEN, "System themes cannot be modified")
    return theme


# Weddings

@router.get("/weddings")
def list_weddings(
    status: WeddingStatus | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    planner_id: int = Depends(get_planner_id),
    db: Session = Depends(get_db),
):
    q = db.query(Wedding).filter(Wedding.planner_id == planner_id)
    q = q.filter(Wedding.status == status) if status else q.filter(Wedding.status != WeddingStatus.DELETED)
    weddings, pagination = paginate(q.order_by(Wedding.wedding_date.asc(), Wedding.id.asc()), page, limit)
    return ok(_wedding_list(db, weddings), pagination=pagination)


@router.post("/weddings", status_code=201)
def create(data: WeddingCreate, planner_id: int = Depends(get_planner_id), db: Session = Depends(get_db)):
    wedding = create_wedding(db, planner_id, data.model_dump())
    return ok(WeddingResponse.model_validate(wedding))


@router.get("/weddings/deleted")
def deleted_weddings(planner_id: int = Depends(get_planner_id), db: Session = Depends(get_db)):
    weddings = (
        db.query(Wedding)
        .filter(Wedding.planner_id == planner_id, Wedding.status == WeddingStatus.DELETED)
        .order_by(Wedding.deleted_at.desc())
        .all()
    )
    return ok(_wedding_list(db, weddings))


@router.get("/weddings/{wedding_id}")
def get_wedding(wedding_id: int, planner_id: int = Depends(get_planner_id), db: Session = Depends(get_db)):
    wedding = _planner_wedding(db, planner_id, wedding_id)
    out = WeddingResponse.model_validate(wedding).model_dump()
    out.update(wedding_counts(db, [wedding.id])[wedding.id])
    return ok(out)


@router.patch("/weddings/{wedding_id}")
def update_wedding(
    wedding_id: int,
    data: WeddingUpdate,
    planner_id: int = Depends(get_planner_id),
    db: Session = Depends(get_db),
):
    wedding = _planner_wedding(db, planner_id, wedding_id)
    fields = data.model_dump(exclude_unset=True)
    if fields.get("status") is not None and wedding.status == WeddingStatus.DELETED:
        # restoring a deleted wedding
        wedding.deleted_at = None
    apply_wedding_update(db, wedding, fields)
    wedding.updated_by = planner_id
    db.commit()
    db.refresh(wedding)
    invalidate_wedding(wedding.id)
    return ok(WeddingResponse.model_validate(wedding))


@router.delete("/weddings/{wedding_id}")
def delete_wedding(wedding_id: int, planner_id: int = Depends(get_planner_id), db: Session = Depends(get_db)):
    """Soft delete; guest links stop resolving to an active wedding."""
    wedding = _planner_wedding(db, planner_id, wedding_id)
    soft_delete_wedding(db, wedding)
    invalidate_wedding(wedding.id)
    log.info("[Wedding] Planner %s deleted wedding %s", planner_id, wedding.id)
    return ok({"id": wedding.id, "status": wedding.status, "deleted_at": wedding.deleted_at})


@router.get("/weddings/{wedding_id}/admins")
def list_admins(wedding_id: int, planner_id: int = Depends(get_planner_id), db: Session = Depends(get_db)):
    wedding = _planner_wedding(db, planner_id, wedding_id)
    admins = (
        db.query(WeddingAdmin)
        .filter(WeddingAdmin.wedding_id == wedding.id)
        .order_by(WeddingAdmin.invited_at.asc(), WeddingAdmin.id.asc())
        .all()
    )
    return ok([WeddingAdminResponse.model_validate(a) for a in admins])


@router.post("/weddings/{wedding_id}/admins", status_code=201)
def invite_admin(
    wedding_id: int,
    data: WeddingAdminInvite,
    planner_id: int = Depends(get_planner_id),
    db: Session = Depends(get_db),
):
    wedding = _planner_wedding(db, planner_id, wedding_id)
    email = data.email.strip().lower()
    exists = (
        db.query(WeddingAdmin.id)
        .filter(WeddingAdmin.email == email, WeddingAdmin.wedding_id == wedding.id)
        .first()
    )
    if exists:
        raise ApiError(409, ALREADY_EXISTS, f"{email} is already an admin of this wedding")
    admin = WeddingAdmin(email=email, name=data.name, wedding_id=wedding.id, invited_by=planner_id)
    db.add(admin)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ApiError(409, ALREADY_EXISTS, f"{email} is already an admin of this wedding")
    db.refresh(admin)
    return ok(WeddingAdminResponse.model_validate(admin))


@router.post("/weddings/{wedding_id}/save-the-date")
def save_the_date(
    wedding_id: int,
    data: SaveTheDateRequest,
    planner_id: int = Depends(get_planner_id),
    db: Session = Depends(get_db),
):
    wedding = _planner_wedding(db, planner_id, wedding_id)
    if not wedding.save_the_date_enabled:
        raise ApiError(403, FORBIDDEN, "Save the date is not enabled for this wedding")
    return ok(send_save_the_date(db, wedding, data.channel, data.family_ids))


@router.get("/stats")
def stats(planner_id: int = Depends(get_planner_id), db: Session = Depends(get_db)):
    weddings = (
        db.query(Wedding)
        .filter(Wedding.planner_id == planner_id, Wedding.status != WeddingStatus.DELETED)
        .all()
    )
    ids = [w.id for w in weddings]
    families = (
        db.query(Family).options(selectinload(Family.members)).filter(Family.wedding_id.in_(ids)).all()
        if ids else []
    )
    responded = sum(1 for f in families if has_submitted_rsvp(f))
    today = date.today()
    upcoming = sorted(
        (w for w in weddings if w.status == WeddingStatus.ACTIVE and w.wedding_date >= today),
        key=lambda w: w.wedding_date,
    )[:UPCOMING_LIMIT]
    return ok({
        "wedding_count": len(weddings),
        "total_guests": sum(len(f.members) for f in families),
        "rsvp_completion_percentage": round(responded * 100 / len(families)) if families else 0,
        "upcoming_weddings": [
            {"id": w.id, "couple_names": w.couple_names, "wedding_date": w.wedding_date, "location": w.location}
            for w in upcoming
        ],
    })


# Themes

@router.get("/themes")
def list_themes(planner_id: int = Depends(get_planner_id), db: Session = Depends(get_db)):
    return ok([theme_out(t) for t in themes_for_planner(db, planner_id)])


@router.post("/themes", status_code=201)
def create_theme(data: ThemeCreate, planner_id: int = Depends(get_planner_id), db: Session = Depends(get_db)):
    theme = Theme(
        planner_id=planner_id,
        name=data.name.strip(),
        description=data.description,
        config=data.config,
        preview_image_url=data.preview_image_url,
        is_system_theme=False,
        is_default=False,
    )
    db.add(theme)
    db.commit()
    db.refresh(theme)
    return ok(theme_out(theme))


@router.patch("/themes/{theme_id}")
def update_theme(
    theme_id: int,
    data: ThemeUpdate,
    planner_id: int = Depends(get_planner_id),
    db: Session = Depends(get_db),
):
    """Weddings using the theme as their main theme get their invitation designs re-rendered when
    the config changes; every wedding using it (main or wedding-day) has its guest pages invalidated."""
    theme = _planner_theme(db, planner_id, theme_id)
    fields = data.model_dump(exclude_unset=True)
    for key, value in fields.items():
        if value is None and key in ("name", "config"):
            continue
        setattr(theme, key, value)
    db.flush()
    users = (
        db.query(Wedding)
        .filter((Wedding.theme_id == theme.id) | (Wedding.wedding_day_theme_id == theme.id))
        .all()
    )
    if fields.get("config") is not None:
        for wedding in users:
            if wedding.theme_id == theme.id:
                rerender_wedding_templates(db, wedding.id, theme.config)
    db.commit()
    for wedding in users:
        invalidate_wedding(wedding.id)
    db.refresh(theme)
    return ok(theme_out(theme))


@router.delete("/themes/{theme_id}")
def delete_theme(theme_id: int, planner_id: int = Depends(get_planner_id), db: Session = Depends(get_db)):
    theme = _planner_theme(db, planner_id, theme_id)
    in_use = (
        db.query(Wedding.id)
        .filter(
            (Wedding.theme_id == theme.id) | (Wedding.wedding_day_theme_id == theme.id),
            Wedding.status != WeddingStatus.DELETED,
        )
        .count()
    )
    if in_use:
        raise ApiError(409, THEME_IN_USE, f"Theme is used by {in_use} wedding(s)", {"wedding_count": in_use})
    db.delete(theme)
    db.commit()
    return ok({"id": theme_id})


# Provider categories

@router.get("/providers/categories")
def list_categories(planner_id: int = Depends(get_planner_id), db: Session = Depends(get_db)):
    rows = (
        db.query(ProviderCategory)
        .filter(ProviderCategory.planner_id == planner_id)
        .order_by(ProviderCategory.name.asc())
        .all()
    )
    return ok([{"id": c.id, "name": c.name, "created_at": c.created_at} for c in rows])


@router.post("/providers/categories", status_code=201)
def create_category(data: CategoryCreate, planner_id: int = Depends(get_planner_id), db: Session = Depends(get_db)):
    name = data.name.strip()
    exists = (
        db.query(ProviderCategory.id)
        .filter(ProviderCategory.planner_id == planner_id, ProviderCategory.name == name)
        .first()
    )
    if exists:
        raise ApiError(409, ALREADY_EXISTS, f"Category '{name}' already exists")
    category = ProviderCategory(planner_id=planner_id, name=name)
    db.add(category)
    db.commit()
    db.refresh(category)
    return ok({"id": category.id, "name": category.name, "created_at": category.created_at})
