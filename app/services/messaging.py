"""Invitation and reminder delivery over the family's channel.
Sending never raises: each family either counts as sent (and gets a tracking event) or as failed."""
import html
import logging
from typing import Any

from sqlalchemy.orm import Session, selectinload

from app.database import utcnow
from app.models.family import Channel, Family
from app.models.template import TemplateType
from app.models.tracking import EventType
from app.models.wedding import Wedding
from app.services.message_templates import get_template_for
from app.services.notifications import markdown_to_html, markdown_to_text, send_email, send_sms, send_whatsapp
from app.services.template_renderer import build_template_variables, render_template
from app.services.tracking import track_event
from app.services.whatsapp_mapper import map_whatsapp_variables

log = logging.getLogger(__name__)


def _contact_for(family: Family, channel: Channel) -> str | None:
    if channel == Channel.EMAIL:
        return family.email
    if channel == Channel.WHATSAPP:
        return family.whatsapp_number or family.phone
    return family.phone


def resolve_channel(family: Family, requested: Channel | None = None) -> Channel | None:
    """Requested channel, else the family preference, else EMAIL. Falls back to EMAIL when the
    chosen channel has no contact; None when the family cannot be reached at all."""
    channel = requested or family.channel_preference or Channel.EMAIL
    if _contact_for(family, channel):
        return channel
    if channel != Channel.EMAIL and family.email:
        return Channel.EMAIL
    return None


def _deliver(
    channel: Channel, to: str, template: dict[str, Any], variables: dict[str, str], body: str | None = None
) -> bool | str | None:
    """Falsy when nothing was sent; Twilio channels return the message SID."""
    text = render_template(body if body is not None else template["body"], variables)
    if channel == Channel.EMAIL:
        subject = render_template(template.get("subject") or "", variables)
        html_content = markdown_to_html(text)
        if template.get("image_url"):
            src = html.escape(template["image_url"], quote=True)
            html_content = f'<p><img src="{src}" alt="" style="max-width:100%"></p>\n{html_content}'
        return send_email(to, subject, html_content, text_content=markdown_to_text(text))
    if channel == Channel.WHATSAPP:
        if template.get("content_template_id") and body is None:
            return send_whatsapp(
                to,
                text,
                content_sid=template["content_template_id"],
                content_variables=map_whatsapp_variables(variables, template.get("image_url")),
            )
        return send_whatsapp(to, markdown_to_text(text), media_url=template.get("image_url"))
    return send_sms(to, markdown_to_text(text))


def _with_sid(metadata: dict[str, Any], result: bool | str | None) -> dict[str, Any]:
    # The SID links later Twilio status callbacks back to this event
    if isinstance(result, str):
        return {**metadata, "message_sid": result}
    return metadata


def send_invitation(db: Session, family: Family, wedding: Wedding) -> bool:
    """Render and send the invitation in the family's language. Commits invitation_sent_at
    before recording INVITATION_SENT."""
    channel = resolve_channel(family)
    if channel is None:
        log.info("[Messaging] Family %s has no reachable contact; invitation skipped", family.id)
        return False
    language = family.preferred_language or wedding.default_language
    template = get_template_for(db, wedding.id, TemplateType.INVITATION, language, channel)
    variables = build_template_variables(family, wedding, channel.value.lower())
    result = _deliver(channel, _contact_for(family, channel), template, variables)
    if not result:
        return False
    family.invitation_sent_at = utcnow()
    db.commit()
    track_event(
        db,
        family.id,
        wedding.id,
        EventType.INVITATION_SENT,
        channel=channel,
        metadata=_with_sid({"language": language}, result),
        admin_triggered=True,
    )
    return True


def send_invitations(db: Session, wedding: Wedding, family_ids: list[int] | None = None) -> dict[str, int]:
    """Invite the listed families, or every family not invited yet when the list is empty."""
    q = db.query(Family).filter(Family.wedding_id == wedding.id)
    if family_ids:
        q = q.filter(Family.id.in_(family_ids))
    else:
        q = q.filter(Family.invitation_sent_at.is_(None))
    sent = failed = 0
    for family in q.order_by(Family.id.asc()).all():
        if send_invitation(db, family, wedding):
            sent += 1
        else:
            failed += 1
    return {"sent_count": sent, "failed_count": failed}


def eligible_reminder_families(db: Session, wedding: Wedding, family_ids: list[int] | None = None) -> list[Family]:
    """Families that have not answered yet (every member's attending is null), or exactly the
    listed families when ids are given."""
    q = (
        db.query(Family)
        .options(selectinload(Family.members))
        .filter(Family.wedding_id == wedding.id)
        .order_by(Family.name.asc())
    )
    if family_ids:
        return q.filter(Family.id.in_(family_ids)).all()
    return [f for f in q.all() if all(m.attending is None for m in f.members)]


def send_reminders(
    db: Session,
    wedding: Wedding,
    channel: Channel | None = None,
    message: str | None = None,
    family_ids: list[int] | None = None,
) -> dict[str, Any]:
    """Send the localized reminder (or a custom message) to each eligible family."""
    sent = failed = 0
    recipients: list[dict[str, Any]] = []
    for family in eligible_reminder_families(db, wedding, family_ids):
        used = resolve_channel(family, channel)
        if used is None:
            failed += 1
            continue
        language = family.preferred_language or wedding.default_language
        template = get_template_for(db, wedding.id, TemplateType.REMINDER, language, used)
        variables = build_template_variables(family, wedding, used.value.lower())
        result = _deliver(used, _contact_for(family, used), template, variables, body=message)
        if not result:
            failed += 1
            continue
        sent += 1
        recipients.append({"id": family.id, "name": family.name, "channel": used.value})
        track_event(
            db,
            family.id,
            wedding.id,
            EventType.REMINDER_SENT,
            channel=used,
            metadata=_with_sid({"language": language, "custom_message": bool(message)}, result),
            admin_triggered=True,
        )
    log.info("[Messaging] Reminders for wedding %s: sent=%s failed=%s", wedding.id, sent, failed)
    return {"sent_count": sent, "failed_count": failed, "recipient_families": recipients}


def send_save_the_date(
    db: Session,
    wedding: Wedding,
    channel: Channel | None = None,
    family_ids: list[int] | None = None,
) -> dict[str, Any]:
    """Announce the date to families that have neither a save-the-date nor an invitation yet
    (restricted to family_ids when given). Each success stamps save_the_date_sent_at and
    records SAVE_THE_DATE_SENT."""
    q = db.query(Family).filter(
        Family.wedding_id == wedding.id,
        Family.save_the_date_sent_at.is_(None),
        Family.invitation_sent_at.is_(None),
    )
    if family_ids:
        q = q.filter(Family.id.in_(family_ids))
    sent = failed = 0
    recipients: list[dict[str, Any]] = []
    errors: list[dict[str, Any]] = []
    for family in q.order_by(Family.name.asc()).all():
        used = resolve_channel(family, channel)
        if used is None:
            failed += 1
            errors.append({"family_id": family.id, "error": "No reachable contact"})
            continue
        language = family.preferred_language or wedding.default_language
        template = get_template_for(db, wedding.id, TemplateType.SAVE_THE_DATE, language, used)
        variables = build_template_variables(family, wedding, used.value.lower())
        result = _deliver(used, _contact_for(family, used), template, variables)
        if not result:
            failed += 1
            errors.append({"family_id": family.id, "error": f"Failed to send {used.value}"})
            continue
        family.save_the_date_sent_at = utcnow()
        db.commit()
        sent += 1
        recipients.append({"id": family.id, "name": family.name, "channel": used.value})
        track_event(
            db,
            family.id,
            wedding.id,
            EventType.SAVE_THE_DATE_SENT,
            channel=used,
            metadata=_with_sid({"language": language}, result),
            admin_triggered=True,
        )
    log.info("[Messaging] Save the date for wedding %s: sent=%s failed=%s", wedding.id, sent, failed)
    return {"sent_count": sent, "failed_count": failed, "recipient_families": recipients, "errors": errors}
