"""Wedding admin: reminders and message templates."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_admin_wedding
from app.errors import NOT_FOUND, RSVP_CUTOFF_PASSED, VALIDATION_ERROR, ApiError
from app.models.family import Channel, Family
from app.models.template import MessageTemplate, TemplateType
from app.models.wedding import Wedding
from app.schemas.common import ok
from app.schemas.messaging import ReminderRequest
from app.schemas.templates import MessageTemplateResponse, MessageTemplateUpdate, TemplatePreviewRequest
from app.services.magic_link import is_rsvp_cutoff_passed
from app.services.messaging import eligible_reminder_families, send_reminders
from app.services.template_renderer import (
    AVAILABLE_PLACEHOLDERS,
    build_template_variables,
    format_date,
    get_placeholders,
    render_template,
)
from app.services.whatsapp_mapper import map_whatsapp_variables, mapping_display

router = APIRouter(prefix="/api/admin", tags=["admin-messaging"])


@router.post("/reminders")
def reminders(data: ReminderRequest, wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    if is_rsvp_cutoff_passed(wedding):
        raise ApiError(400, RSVP_CUTOFF_PASSED, "The RSVP deadline has passed; reminders can no longer be sent")
    return ok(send_reminders(db, wedding, data.channel, data.message, data.family_ids))


@router.get("/reminders/preview")
def reminders_preview(wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    families = eligible_reminder_families(db, wedding)
    return ok({
        "eligible_count": len(families),
        "families": [
            {
                "id": f.id,
                "name": f.name,
                "channel_preference": f.channel_preference,
                "preferred_language": f.preferred_language,
                "member_count": len(f.members),
            }
            for f in families
        ],
    })


@router.get("/templates")
def list_templates(
    type: TemplateType | None = None,
    language: str | None = None,
    channel: Channel | None = None,
    wedding: Wedding = Depends(get_admin_wedding),
    db: Session = Depends(get_db),
):
    q = db.query(MessageTemplate).filter(MessageTemplate.wedding_id == wedding.id)
    if type:
        q = q.filter(MessageTemplate.type == type)
    if language:
        q = q.filter(MessageTemplate.language == language.upper())
    if channel:
        q = q.filter(MessageTemplate.channel == channel)
    rows = q.order_by(MessageTemplate.type, MessageTemplate.language, MessageTemplate.channel).all()
    return ok([MessageTemplateResponse.model_validate(t) for t in rows])


@router.get("/templates/placeholders")
def placeholders(wedding: Wedding = Depends(get_admin_wedding)):
    return ok({"placeholders": AVAILABLE_PLACEHOLDERS, "whatsapp_mapping": mapping_display()})


@router.post("/templates/preview")
def preview(data: TemplatePreviewRequest, wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    """Render a stored or ad-hoc template for one family, or for sample data."""
    subject, body, image_url, channel = data.subject or "", data.body or "", None, None
    language = data.language
    if data.template_id is not None:
        template = (
            db.query(MessageTemplate)
            .filter(MessageTemplate.id == data.template_id, MessageTemplate.wedding_id == wedding.id)
            .first()
        )
        if not template:
            raise ApiError(404, NOT_FOUND, "Template not found")
        subject = data.subject if data.subject is not None else template.subject
        body = data.body if data.body is not None else template.body
        image_url, channel, language = template.image_url, template.channel, template.language
    elif not body:
        raise ApiError(400, VALIDATION_ERROR, "Provide template_id or body")

    if data.family_id is not None:
        family = db.query(Family).filter(Family.id == data.family_id, Family.wedding_id == wedding.id).first()
        if not family:
            raise ApiError(404, NOT_FOUND, "Family not found")
        variables = build_template_variables(family, wedding, channel.value.lower() if channel else None)
    else:
        variables = {p["key"]: p["example"] for p in AVAILABLE_PLACEHOLDERS}
        variables.update(
            coupleNames=wedding.couple_names,
            weddingDate=format_date(wedding.wedding_date, language),
            weddingTime=wedding.wedding_time,
            location=wedding.location,
            rsvpCutoffDate=format_date(wedding.rsvp_cutoff_date, language),
        )
    result = {
        "subject": render_template(subject, variables),
        "body": render_template(body, variables),
        "placeholders": get_placeholders(f"{subject}\n{body}"),
    }
    if channel == Channel.WHATSAPP:
        result["whatsapp_variables"] = map_whatsapp_variables(variables, image_url)
    return ok(result)


@router.patch("/templates/{template_id}")
def update_template(
    template_id: int,
    data: MessageTemplateUpdate,
    wedding: Wedding = Depends(get_admin_wedding),
    db: Session = Depends(get_db),
):
    template = (
        db.query(MessageTemplate)
        .filter(MessageTemplate.id == template_id, MessageTemplate.wedding_id == wedding.id)
        .first()
    )
    if not template:
        raise ApiError(404, NOT_FOUND, "Template not found")
    for key, value in data.model_dump(exclude_unset=True).items():
        if value is None and key in ("subject", "body"):
            continue
        setattr(template, key, value)
    db.commit()
    db.refresh(template)
    return ok(MessageTemplateResponse.model_validate(template))
