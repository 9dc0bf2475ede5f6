"""Wedding admin: guest (family) management, invitation sending and guest-list spreadsheets."""
import logging

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import Response
from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from app.database import get_db
from app.dependencies import get_admin_wedding
from app.errors import FORBIDDEN, NOT_FOUND, VALIDATION_ERROR, ApiError
from app.models.family import Channel, Family, FamilyMember
from app.models.tracking import TrackingEvent
from app.models.wedding import Wedding
from app.schemas.common import DEFAULT_PAGE_SIZE, ok, paginate
from app.schemas.family import BulkDelete, FamilyCreate, FamilyUpdate
from app.schemas.messaging import SendInvitationsRequest
from app.services.excel import XLSX_MEDIA_TYPE, ImportFileError, export_guest_list, guest_list_template, import_guest_list
from app.services.families import create_family, family_out, update_family
from app.services.magic_link import regenerate_magic_token
from app.services.messaging import send_invitations
from app.services.page_cache import invalidate_wedding
from app.services.tracking import get_family_engagement

log = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin/guests", tags=["admin-guests"])


def _family_or_404(db: Session, wedding: Wedding, family_id: int) -> Family:
    family = db.query(Family).filter(Family.id == family_id, Family.wedding_id == wedding.id).first()
    if not family:
        raise ApiError(404, NOT_FOUND, "Family not found")
    return family


def _xlsx(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("")
def list_families(
    search: str | None = None,
    rsvp_status: str | None = None,
    channel: Channel | None = None,
    language: str | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    wedding: Wedding = Depends(get_admin_wedding),
    db: Session = Depends(get_db),
):
    q = db.query(Family).options(selectinload(Family.members)).filter(Family.wedding_id == wedding.id)
    if search:
        term = f"%{search.strip()}%"
        q = q.filter(or_(Family.name.ilike(term), Family.contact_person.ilike(term), Family.email.ilike(term)))
    if rsvp_status:
        answered = Family.members.any(FamilyMember.attending.isnot(None))
        if rsvp_status == "submitted":
            q = q.filter(answered)
        elif rsvp_status == "pending":
            q = q.filter(~answered)
        else:
            raise ApiError(400, VALIDATION_ERROR, "rsvp_status must be 'pending' or 'submitted'")
    if channel:
        q = q.filter(Family.channel_preference == channel)
    if language:
        q = q.filter(Family.preferred_language == language.upper())
    families, pagination = paginate(q.order_by(Family.name.asc()), page, limit)
    return ok([family_out(f) for f in families], pagination=pagination)


@router.post("", status_code=201)
def create(data: FamilyCreate, wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    family = create_family(db, wedding, data)
    db.commit()
    db.refresh(family)
    invalidate_wedding(wedding.id)
    return ok(family_out(family))


@router.get("/export")
def export(wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    return _xlsx(export_guest_list(db, wedding), f"guests-{wedding.id}.xlsx")


@router.get("/template")
def template(wedding: Wedding = Depends(get_admin_wedding)):
    return _xlsx(guest_list_template(), "guest-list-template.xlsx")


@router.post("/import")
async def import_guests(
    file: UploadFile = File(...),
    wedding: Wedding = Depends(get_admin_wedding),
    db: Session = Depends(get_db),
):
    content = await file.read()
    try:
        result = import_guest_list(db, wedding, content)
    except ImportFileError as e:
        raise ApiError(400, VALIDATION_ERROR, str(e))
    if not result["success"]:
        raise ApiError(400, VALIDATION_ERROR, f"Validation failed with {len(result['errors'])} error(s)", result)
    invalidate_wedding(wedding.id)
    return ok(result)


@router.post("/bulk-delete")
def bulk_delete(data: BulkDelete, wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    """All or nothing: any id outside this wedding rejects the whole batch."""
    ids = set(data.family_ids)
    families = db.query(Family).filter(Family.id.in_(ids), Family.wedding_id == wedding.id).all()
    if len(families) != len(ids):
        raise ApiError(403, FORBIDDEN, "One or more families do not belong to this wedding")
    for family in families:
        db.delete(family)
    db.commit()
    invalidate_wedding(wedding.id)
    log.info("Bulk deleted %s families from wedding %s", len(families), wedding.id)
    return ok({"deleted_count": len(families)})


@router.post("/send-invitations")
def send(data: SendInvitationsRequest, wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    return ok(send_invitations(db, wedding, data.family_ids))


@router.get("/{family_id}")
def get_family(family_id: int, wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    return ok(family_out(_family_or_404(db, wedding, family_id)))


@router.patch("/{family_id}")
def patch_family(
    family_id: int,
    data: FamilyUpdate,
    wedding: Wedding = Depends(get_admin_wedding),
    db: Session = Depends(get_db),
):
    family = update_family(db, _family_or_404(db, wedding, family_id), data)
    db.commit()
    db.refresh(family)
    invalidate_wedding(wedding.id)
    return ok(family_out(family))


@router.delete("/{family_id}")
def delete_family(family_id: int, wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    family = _family_or_404(db, wedding, family_id)
    db.delete(family)
    db.commit()
    invalidate_wedding(wedding.id)
    return ok({"id": family_id})


@router.post("/{family_id}/regenerate-link")
def regenerate_link(family_id: int, wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    """New magic token; the old link stops working."""
    family = _family_or_404(db, wedding, family_id)
    regenerate_magic_token(db, family)
    db.commit()
    invalidate_wedding(wedding.id)
    return ok(family_out(family))


@router.get("/{family_id}/timeline")
def timeline(family_id: int, wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    family = _family_or_404(db, wedding, family_id)
    events = (
        db.query(TrackingEvent)
        .filter(TrackingEvent.family_id == family.id)
        .order_by(TrackingEvent.timestamp.desc(), TrackingEvent.id.desc())
        .all()
    )
    return ok({
        "family_id": family.id,
        "family_name": family.name,
        "events": [
            {
                "id": e.id,
                "event_type": e.event_type,
                "channel": e.channel,
                "metadata": e.meta,
                "admin_triggered": e.admin_triggered,
                "timestamp": e.timestamp,
            }
            for e in events
        ],
        "engagement": get_family_engagement(db, family.id),
    })
