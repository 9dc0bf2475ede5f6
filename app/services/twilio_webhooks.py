"""Twilio status callbacks: signature check and delivery/read/failure events."""
import logging
from typing import Any

from sqlalchemy.orm import Session
from twilio.request_validator import RequestValidator

from app.models.tracking import EventType, TrackingEvent
from app.services.tracking import track_event

log = logging.getLogger(__name__)

# queued/accepted/sending/sent carry no engagement information
_STATUS_EVENTS = {
    "delivered": EventType.MESSAGE_DELIVERED,
    "read": EventType.MESSAGE_READ,
    "failed": EventType.MESSAGE_FAILED,
    "undelivered": EventType.MESSAGE_FAILED,
}


def is_valid_signature(auth_token: str, url: str, params: dict[str, str], signature: str) -> bool:
    return RequestValidator(auth_token).validate(url, params, signature)


def status_event_type(status: str | None) -> EventType | None:
    return _STATUS_EVENTS.get((status or "").lower())


def record_status_callback(db: Session, params: dict[str, str]) -> TrackingEvent | None:
    """Record the event for one callback. Unknown SIDs, ignored statuses and repeats record nothing."""
    event_type = status_event_type(params.get("MessageStatus"))
    sid = params.get("MessageSid")
    if event_type is None or not sid:
        return None
    original = (
        db.query(TrackingEvent)
        .filter(
            TrackingEvent.message_sid == sid,
            TrackingEvent.event_type.notin_(tuple(_STATUS_EVENTS.values())),
        )
        .order_by(TrackingEvent.id.asc())
        .first()
    )
    if original is None:
        log.warning("[Twilio] Status %s for unknown message %s", params.get("MessageStatus"), sid)
        return None
    duplicate = (
        db.query(TrackingEvent.id)
        .filter(TrackingEvent.message_sid == sid, TrackingEvent.event_type == event_type)
        .first()
    )
    if duplicate:
        return None
    metadata: dict[str, Any] = {
        "message_sid": sid,
        "original_event_id": original.id,
        "original_event_type": original.event_type,
    }
    if params.get("ErrorCode"):
        metadata["error_code"] = params["ErrorCode"]
        metadata["error_message"] = params.get("ErrorMessage")
    return track_event(db, original.family_id, original.wedding_id, event_type, channel=original.channel, metadata=metadata)
