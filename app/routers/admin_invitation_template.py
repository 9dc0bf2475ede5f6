"""Wedding admin: invitation-page designs."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_admin_wedding
from app.errors import NOT_FOUND, ApiError
from app.models.template import InvitationTemplate
from app.models.theme import Theme
from app.models.wedding import Wedding
from app.schemas.common import ok
from app.schemas.templates import InvitationTemplateCreate, InvitationTemplateResponse, InvitationTemplateUpdate
from app.services.invitation_template import apply_theme_to_design, default_design, prerender_design
from app.services.page_cache import invalidate_wedding
from app.services.themes import resolve_wedding_theme

router = APIRouter(prefix="/api/admin/invitation-template", tags=["admin-invitation-template"])


def _template_or_404(db: Session, wedding: Wedding, template_id: int) -> InvitationTemplate:
    template = (
        db.query(InvitationTemplate)
        .filter(InvitationTemplate.id == template_id, InvitationTemplate.wedding_id == wedding.id)
        .first()
    )
    if not template:
        raise ApiError(404, NOT_FOUND, "Invitation template not found")
    return template


def _out(template: InvitationTemplate, wedding: Wedding) -> dict:
    out = InvitationTemplateResponse.model_validate(template).model_dump()
    out["is_active"] = wedding.invitation_template_id == template.id
    return out


@router.get("")
def list_templates(wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    rows = (
        db.query(InvitationTemplate)
        .filter(InvitationTemplate.wedding_id == wedding.id)
        .order_by(InvitationTemplate.created_at.desc(), InvitationTemplate.id.desc())
        .all()
    )
    return ok([_out(t, wedding) for t in rows])


@router.post("", status_code=201)
def create_template(
    data: InvitationTemplateCreate,
    wedding: Wedding = Depends(get_admin_wedding),
    db: Session = Depends(get_db),
):
    """New design; starts from the given theme (or the wedding's) when no design is sent."""
    theme = None
    if data.based_on_theme_id is not None:
        theme = db.query(Theme).filter(Theme.id == data.based_on_theme_id).first()
        if not theme or not (theme.is_system_theme or theme.planner_id == wedding.planner_id):
            raise ApiError(404, NOT_FOUND, "Theme not found")
    source = theme or resolve_wedding_theme(db, wedding)
    theme_config = (source.config if source else None) or {}
    design = apply_theme_to_design(data.design, theme_config) if data.design else default_design(theme_config)
    template = InvitationTemplate(
        wedding_id=wedding.id,
        name=data.name.strip(),
        design=design,
        pre_rendered_html=prerender_design(design),
        based_on_theme_id=theme.id if theme else None,
    )
    db.add(template)
    db.commit()
    db.refresh(template)
    return ok(_out(template, wedding))


@router.put("/{template_id}")
def update_template(
    template_id: int,
    data: InvitationTemplateUpdate,
    wedding: Wedding = Depends(get_admin_wedding),
    db: Session = Depends(get_db),
):
    template = _template_or_404(db, wedding, template_id)
    if data.name is not None:
        template.name = data.name.strip()
    if data.design is not None:
        template.design = data.design
        template.pre_rendered_html = prerender_design(data.design)
    db.commit()
    db.refresh(template)
    if wedding.invitation_template_id == template.id:
        invalidate_wedding(wedding.id)
    return ok(_out(template, wedding))


@router.delete("/{template_id}")
def delete_template(template_id: int, wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    template = _template_or_404(db, wedding, template_id)
    if wedding.invitation_template_id == template.id:
        wedding.invitation_template_id = None
    db.delete(template)
    db.commit()
    invalidate_wedding(wedding.id)
    return ok({"id": template_id})


@router.post("/{template_id}/activate")
def activate_template(template_id: int, wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    template = _template_or_404(db, wedding, template_id)
    wedding.invitation_template_id = template.id
    db.commit()
    invalidate_wedding(wedding.id)
    return ok(_out(template, wedding))
