"""Guest self-service behind the magic link: RSVP page data, responses, members, language, payment info, gallery."""
import logging
from html import escape
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db, utcnow
from app.errors import GUEST_ADDITIONS_DISABLED, RSVP_CUTOFF_PASSED, VALIDATION_ERROR, ApiError
from app.models.family import FamilyMember
from app.models.payment import Gift
from app.models.photo import WeddingPhoto
from app.models.template import InvitationTemplate
from app.models.tracking import EventType
from app.models.wedding import PaymentTrackingMode, Wedding
from app.schemas.common import DEFAULT_PAGE_SIZE, ok, paginate
from app.schemas.family import MAX_FAMILY_MEMBERS, GuestMemberAdd, LanguageUpdate, MemberResponse, RSVPSubmit
from app.schemas.gallery import GalleryPhoto
from app.services.families import family_out, has_submitted_rsvp
from app.services.magic_link import extract_channel, get_family_by_token_or_404, is_rsvp_cutoff_passed
from app.services.notifications import send_rsvp_confirmation_email
from app.services.page_cache import invalidate_wedding, rsvp_page_cache
from app.services.template_renderer import build_magic_link, format_date, render_template
from app.services.themes import resolve_wedding_theme, theme_out
from app.services.tracking import is_link_preview_agent, track_event

log = logging.getLogger(__name__)
router = APIRouter(prefix="/api/guest", tags=["guest"])


def _wedding_out(wedding: Wedding) -> dict[str, Any]:
    return {
        "wedding_id": wedding.id,
        "couple_names": wedding.couple_names,
        "wedding_date": wedding.wedding_date,
        "wedding_time": wedding.wedding_time,
        "location": wedding.location,
        "rsvp_cutoff_date": wedding.rsvp_cutoff_date,
        "dress_code": wedding.dress_code,
        "additional_info": wedding.additional_info,
        "payment_tracking_mode": wedding.payment_tracking_mode,
        "allow_guest_additions": wedding.allow_guest_additions,
        "default_language": wedding.default_language,
        "transportation_question_enabled": wedding.transportation_question_enabled,
        "extra_question_enabled": wedding.extra_question_enabled,
        "extra_question_text": wedding.extra_question_text,
        "extra_info_enabled": wedding.extra_info_enabled,
    }


def _page_data(db: Session, wedding: Wedding) -> dict[str, Any]:
    """Wedding-level page data (no family fields), cached per wedding for the current day."""
    today = utcnow().date()
    cached = rsvp_page_cache.get(wedding.id)
    if cached is not None and cached["day"] == today:
        return cached
    template = None
    if wedding.invitation_template_id:
        template = (
            db.query(InvitationTemplate)
            .filter(InvitationTemplate.id == wedding.invitation_template_id, InvitationTemplate.wedding_id == wedding.id)
            .first()
        )
    data = {
        "day": today,
        "wedding": _wedding_out(wedding),
        "theme": theme_out(resolve_wedding_theme(db, wedding, today)),
        "invitation_template": (
            {"id": template.id, "design": template.design, "pre_rendered_html": template.pre_rendered_html or {}}
            if template else None
        ),
        "photos": [
            {"id": p.id, "url": p.url, "caption": p.caption, "order": p.order}
            for p in wedding.photos if p.approved
        ],
    }
    rsvp_page_cache.set(wedding.id, data)
    return data


def _personalize(pre_rendered: dict[str, str], variables: dict[str, str]) -> dict[str, str]:
    safe = {k: escape(str(v)) for k, v in variables.items() if v is not None}
    return {block_id: render_template(html, safe) for block_id, html in (pre_rendered or {}).items()}


@router.get("/{token}")
def guest_page(token: str, request: Request, channel: str | None = None, db: Session = Depends(get_db)):
    """RSVP page payload for a magic link. Invalid or expired links are 404 INVALID_TOKEN."""
    family, wedding = get_family_by_token_or_404(db, token)
    page = _page_data(db, wedding)
    language = family.preferred_language or wedding.default_language

    invitation = None
    if page["invitation_template"]:
        variables = {
            "couple_names": wedding.couple_names,
            "wedding_date": format_date(wedding.wedding_date, language),
            "wedding_time": wedding.wedding_time,
            "location": wedding.location,
            "family_name": family.name,
        }
        rendered = page["invitation_template"]["pre_rendered_html"]
        invitation = {
            "id": page["invitation_template"]["id"],
            "design": page["invitation_template"]["design"],
            "pre_rendered_html": _personalize(rendered.get(language) or rendered.get("EN") or {}, variables),
        }

    payload = {
        "family": family_out(family),
        "wedding": page["wedding"],
        "theme": page["theme"],
        "invitation_template": invitation,
        "photos": page["photos"],
        "rsvp_cutoff_passed": is_rsvp_cutoff_passed(wedding),
        "has_submitted_rsvp": has_submitted_rsvp(family),
    }
    if not is_link_preview_agent(request.headers.get("user-agent")):
        track_event(
            db,
            family.id,
            wedding.id,
            EventType.LINK_OPENED,
            channel=extract_channel(channel),
            metadata={"channel_param": channel} if channel else None,
        )
    return ok(payload)


@router.post("/{token}/rsvp")
def submit_rsvp(token: str, data: RSVPSubmit, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    family, wedding = get_family_by_token_or_404(db, token)
    if is_rsvp_cutoff_passed(wedding):
        raise ApiError(403, RSVP_CUTOFF_PASSED, "The RSVP deadline has passed")
    members = {m.id: m for m in family.members}
    unknown = [item.member_id for item in data.members if item.member_id not in members]
    if unknown:
        raise ApiError(400, VALIDATION_ERROR, "Members do not belong to this family", {"member_ids": unknown})

    is_update = has_submitted_rsvp(family) or family.rsvp_submitted_at is not None
    for item in data.members:
        member = members[item.member_id]
        member.attending = item.attending
        if item.attending:
            member.dietary_restrictions = item.dietary_restrictions
            member.accessibility_needs = item.accessibility_needs
        else:
            member.dietary_restrictions = None
            member.accessibility_needs = None
    if wedding.transportation_question_enabled and data.transportation_answer is not None:
        family.transportation_answer = data.transportation_answer
    if wedding.extra_question_enabled and data.extra_question_answer is not None:
        family.extra_question_answer = data.extra_question_answer
    if wedding.extra_info_enabled and data.extra_info_answer is not None:
        family.extra_info_answer = data.extra_info_answer
    if family.rsvp_submitted_at is None:
        family.rsvp_submitted_at = utcnow()
    db.commit()

    attending_count = sum(1 for m in family.members if m.attending)
    total_members = len(family.members)
    track_event(
        db,
        family.id,
        wedding.id,
        EventType.RSVP_UPDATED if is_update else EventType.RSVP_SUBMITTED,
        metadata={"total_members": total_members, "attending_count": attending_count},
    )
    invalidate_wedding(wedding.id)
    if family.email:
        background_tasks.add_task(
            send_rsvp_confirmation_email,
            family.email,
            family.preferred_language or wedding.default_language,
            family.name,
            wedding.couple_names,
            attending_count,
            build_magic_link(family, wedding),
        )
    return ok(family_out(family), is_update=is_update)


@router.post("/{token}/member")
def add_member(token: str, data: GuestMemberAdd, db: Session = Depends(get_db)):
    family, wedding = get_family_by_token_or_404(db, token)
    if not wedding.allow_guest_additions:
        raise ApiError(403, GUEST_ADDITIONS_DISABLED, "Adding guests is not allowed for this wedding")
    if is_rsvp_cutoff_passed(wedding):
        raise ApiError(403, RSVP_CUTOFF_PASSED, "The RSVP deadline has passed")
    if len(family.members) >= MAX_FAMILY_MEMBERS:
        raise ApiError(400, VALIDATION_ERROR, f"A family can have at most {MAX_FAMILY_MEMBERS} members")
    member = FamilyMember(
        family_id=family.id,
        name=data.name.strip(),
        type=data.type,
        age=data.age,
        dietary_restrictions=data.dietary_restrictions,
        accessibility_needs=data.accessibility_needs,
        added_by_guest=True,
    )
    db.add(member)
    db.commit()
    db.refresh(member)
    invalidate_wedding(wedding.id)
    out = MemberResponse.model_validate(member)
    track_event(
        db,
        family.id,
        wedding.id,
        EventType.GUEST_ADDED,
        metadata={"member_id": out.id, "member_name": out.name, "member_type": out.type},
    )
    return ok(out)


@router.patch("/{token}/language")
def update_language(token: str, data: LanguageUpdate, db: Session = Depends(get_db)):
    family, _ = get_family_by_token_or_404(db, token)
    family.preferred_language = data.language
    db.commit()
    return ok({"preferred_language": data.language})


@router.get("/{token}/payment")
def payment_info(token: str, db: Session = Depends(get_db)):
    """Gift details. IBAN and reference code are only shown in AUTOMATED mode."""
    family, wedding = get_family_by_token_or_404(db, token)
    gift = (
        db.query(Gift)
        .filter(Gift.family_id == family.id)
        .order_by(Gift.transaction_date.desc(), Gift.id.desc())
        .first()
    )
    data: dict[str, Any] = {
        "payment_mode": wedding.payment_tracking_mode,
        "gift_status": gift.status if gift else None,
        "gift_amount": gift.amount if gift else None,
    }
    if wedding.payment_tracking_mode == PaymentTrackingMode.AUTOMATED:
        data["iban"] = wedding.gift_iban
        data["reference_code"] = family.reference_code
    return ok(data)


@router.get("/{token}/gallery")
def gallery(token: str, page: int = 1, limit: int = DEFAULT_PAGE_SIZE, db: Session = Depends(get_db)):
    """Approved wedding photos, newest first."""
    _, wedding = get_family_by_token_or_404(db, token)
    q = (
        db.query(WeddingPhoto)
        .filter(WeddingPhoto.wedding_id == wedding.id, WeddingPhoto.approved.is_(True))
        .order_by(WeddingPhoto.created_at.desc(), WeddingPhoto.id.desc())
    )
    photos, pagination = paginate(q, page, limit)
    return ok([GalleryPhoto.model_validate(p).model_dump() for p in photos], pagination=pagination)
