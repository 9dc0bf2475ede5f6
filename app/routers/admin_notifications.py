"""Wedding admin notifications: tracking events overlaid with their read state."""
from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, joinedload

from app.database import get_db, utcnow
from app.dependencies import SessionUser, get_admin_wedding, require_wedding_admin
from app.errors import NOT_FOUND, ApiError
from app.models.family import Channel
from app.models.principal import WeddingAdmin
from app.models.tracking import EventType, Notification, TrackingEvent
from app.models.wedding import Wedding
from app.schemas.common import DEFAULT_PAGE_SIZE, ok, paginate
from app.schemas.messaging import MarkReadRequest
from app.services.excel import XLSX_MEDIA_TYPE, workbook_bytes

router = APIRouter(prefix="/api/admin/notifications", tags=["admin-notifications"])

_IS_READ = and_(Notification.id.isnot(None), Notification.read.is_(True))


def _events_query(
    db: Session,
    wedding_id: int,
    family_id: int | None = None,
    event_type: EventType | None = None,
    channel: Channel | None = None,
    read: bool | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
):
    q = (
        db.query(TrackingEvent)
        .outerjoin(Notification, Notification.tracking_event_id == TrackingEvent.id)
        .options(joinedload(TrackingEvent.family), joinedload(TrackingEvent.notification))
        .filter(TrackingEvent.wedding_id == wedding_id)
    )
    if family_id is not None:
        q = q.filter(TrackingEvent.family_id == family_id)
    if event_type is not None:
        q = q.filter(TrackingEvent.event_type == event_type)
    if channel is not None:
        q = q.filter(TrackingEvent.channel == channel)
    if date_from is not None:
        q = q.filter(TrackingEvent.timestamp >= date_from)
    if date_to is not None:
        q = q.filter(TrackingEvent.timestamp <= date_to)
    if read is True:
        q = q.filter(_IS_READ)
    elif read is False:
        q = q.filter(or_(Notification.id.is_(None), Notification.read.is_(False)))
    return q.order_by(TrackingEvent.timestamp.desc(), TrackingEvent.id.desc())


def _unread_count(db: Session, wedding_id: int) -> int:
    return _events_query(db, wedding_id, read=False).order_by(None).count()


def _event_out(event: TrackingEvent) -> dict:
    note = event.notification
    return {
        "id": event.id,
        "family_id": event.family_id,
        "family_name": event.family.name if event.family else None,
        "event_type": event.event_type,
        "channel": event.channel,
        "metadata": event.meta,
        "admin_triggered": event.admin_triggered,
        "timestamp": event.timestamp,
        "read": bool(note and note.read),
        "read_at": note.read_at if note else None,
    }


def _admin_id(db: Session, user: SessionUser, wedding: Wedding) -> int | None:
    row = (
        db.query(WeddingAdmin.id)
        .filter(WeddingAdmin.email == user.email, WeddingAdmin.wedding_id == wedding.id)
        .first()
    )
    return row.id if row else None


def _mark_read(db: Session, wedding: Wedding, admin_id: int | None, event_ids: list[int]) -> int:
    events = (
        db.query(TrackingEvent)
        .options(joinedload(TrackingEvent.notification))
        .filter(TrackingEvent.wedding_id == wedding.id, TrackingEvent.id.in_(event_ids))
        .all()
    )
    now = utcnow()
    updated = 0
    for event in events:
        note = event.notification
        if note is None:
            db.add(Notification(wedding_id=wedding.id, tracking_event_id=event.id, admin_id=admin_id, read=True, read_at=now))
            updated += 1
        elif not note.read:
            note.read = True
            note.read_at = now
            note.admin_id = admin_id
            updated += 1
    db.commit()
    return updated


@router.get("")
def list_notifications(
    family_id: int | None = None,
    event_type: EventType | None = None,
    channel: Channel | None = None,
    read: bool | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    wedding: Wedding = Depends(get_admin_wedding),
    db: Session = Depends(get_db),
):
    q = _events_query(db, wedding.id, family_id, event_type, channel, read, date_from, date_to)
    events, pagination = paginate(q, page, limit)
    return ok(
        [_event_out(e) for e in events],
        pagination=pagination,
        unread_count=_unread_count(db, wedding.id),
    )


@router.get("/unread-count")
def unread_count(wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    return ok({"unread_count": _unread_count(db, wedding.id)})


@router.get("/export")
def export(
    family_id: int | None = None,
    event_type: EventType | None = None,
    channel: Channel | None = None,
    read: bool | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    wedding: Wedding = Depends(get_admin_wedding),
    db: Session = Depends(get_db),
):
    events = _events_query(db, wedding.id, family_id, event_type, channel, read, date_from, date_to).all()
    headers = ["Timestamp", "Family", "Event", "Channel", "Admin Triggered", "Read", "Details"]
    rows = (
        [
            e.timestamp.isoformat(sep=" ", timespec="seconds") if e.timestamp else "",
            e.family.name if e.family else "",
            e.event_type.value,
            e.channel.value if e.channel else "",
            "Yes" if e.admin_triggered else "No",
            "Yes" if e.notification and e.notification.read else "No",
            ", ".join(f"{k}={v}" for k, v in (e.meta or {}).items()),
        ]
        for e in events
    )
    return Response(
        content=workbook_bytes([("Notifications", headers, rows)]),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="notifications-{wedding.id}.xlsx"'},
    )


@router.patch("/mark-read")
def mark_read(
    data: MarkReadRequest,
    user: SessionUser = Depends(require_wedding_admin),
    wedding: Wedding = Depends(get_admin_wedding),
    db: Session = Depends(get_db),
):
    """Mark events read; events from other weddings are ignored."""
    updated = _mark_read(db, wedding, _admin_id(db, user, wedding), data.event_ids)
    return ok({"updated": updated, "unread_count": _unread_count(db, wedding.id)})


@router.patch("/{event_id}/read")
def mark_one_read(
    event_id: int,
    user: SessionUser = Depends(require_wedding_admin),
    wedding: Wedding = Depends(get_admin_wedding),
    db: Session = Depends(get_db),
):
    exists = db.query(TrackingEvent.id).filter(TrackingEvent.id == event_id, TrackingEvent.wedding_id == wedding.id).first()
    if not exists:
        raise ApiError(404, NOT_FOUND, "Notification not found")
    _mark_read(db, wedding, _admin_id(db, user, wedding), [event_id])
    return ok({"id": event_id, "read": True, "unread_count": _unread_count(db, wedding.id)})
