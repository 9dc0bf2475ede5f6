"""Append-only tracking events. Never update or delete; engagement is derived by reading them.
track_event() must never break the request that records it."""
from __future__ import annotations

import enum
import logging
from datetime import date, datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.family import Channel
from app.models.tracking import EventType, TrackingEvent

log = logging.getLogger(__name__)

ENGAGEMENT_STEPS = ("invited", "delivered", "read", "link_opened", "rsvp_confirmed")

_STEP_EVENTS = {
    "invited": (EventType.INVITATION_SENT,),
    "delivered": (EventType.MESSAGE_DELIVERED,),
    "read": (EventType.MESSAGE_READ,),
    "link_opened": (EventType.LINK_OPENED,),
    "rsvp_confirmed": (EventType.RSVP_SUBMITTED, EventType.RSVP_UPDATED),
}

_SENT_EVENTS = (EventType.INVITATION_SENT, EventType.REMINDER_SENT, EventType.SAVE_THE_DATE_SENT)

# Messaging apps fetch links to build previews; those requests are not guest opens
_PREVIEW_AGENT_MARKERS = (
    "whatsapp", "bot", "crawler", "spider", "preview", "fetcher",
    "facebookexternalhit", "slackbot", "telegrambot", "discordbot",
)


def is_link_preview_agent(user_agent: str | None) -> bool:
    ua = (user_agent or "").lower()
    return bool(ua) and any(marker in ua for marker in _PREVIEW_AGENT_MARKERS)


def _sanitize_meta_value(v: Any) -> Any:
    """Convert to JSON-serializable value so metadata never raises on INSERT."""
    if v is None:
        return None
    if isinstance(v, (str, int, float, bool)):
        return v
    if isinstance(v, (datetime, date)):
        return v.isoformat()
    if isinstance(v, enum.Enum):
        return getattr(v, "value", str(v))
    if isinstance(v, dict):
        return {str(k): _sanitize_meta_value(x) for k, x in v.items()}
    if isinstance(v, (list, tuple)):
        return [_sanitize_meta_value(x) for x in v]
    return str(v)


def _sanitize_meta(meta: dict[str, Any] | None) -> dict[str, Any] | None:
    if meta is None:
        return None
    try:
        return {str(k): _sanitize_meta_value(v) for k, v in meta.items()}
    except Exception:
        return {"_error": "meta_serialization", "raw_keys": list(meta.keys())[:10]}


def track_event(
    db: Session,
    family_id: int,
    wedding_id: int,
    event_type: EventType,
    *,
    channel: Channel | None = None,
    metadata: dict[str, Any] | None = None,
    admin_triggered: bool = False,
) -> TrackingEvent | None:
    """Append and commit one tracking event. Call after the caller's own writes are committed:
    on failure the session is rolled back, the error logged, and None returned."""
    try:
        event = TrackingEvent(
            family_id=family_id,
            wedding_id=wedding_id,
            event_type=event_type,
            channel=channel,
            meta=_sanitize_meta(metadata),
            message_sid=(metadata or {}).get("message_sid"),
            admin_triggered=admin_triggered,
        )
        db.add(event)
        db.commit()
        return event
    except SQLAlchemyError as e:
        db.rollback()
        log.warning("[Tracking] Failed to record %s for family=%s: %s", event_type, family_id, e)
        return None


def get_family_engagement(db: Session, family_id: int) -> dict[str, Any]:
    """First occurrence of each engagement step and the share of steps reached."""
    events = (
        db.query(TrackingEvent)
        .filter(TrackingEvent.family_id == family_id)
        .order_by(TrackingEvent.timestamp.asc(), TrackingEvent.id.asc())
        .all()
    )
    steps: dict[str, datetime | None] = {step: None for step in ENGAGEMENT_STEPS}
    for event in events:
        for step, types in _STEP_EVENTS.items():
            if steps[step] is None and event.event_type in types:
                steps[step] = event.timestamp
    reached = sum(1 for ts in steps.values() if ts is not None)
    return {
        "family_id": family_id,
        "steps": steps,
        "completion_percentage": round(reached * 100 / len(ENGAGEMENT_STEPS)),
    }


def get_channel_stats(db: Session, wedding_id: int) -> dict[str, dict[str, Any]]:
    """Per-channel sent/delivered/read/failed counts with delivery and read rates."""
    stats: dict[str, dict[str, Any]] = {
        c.value: {"sent": 0, "delivered": 0, "read": 0, "failed": 0} for c in Channel
    }
    events = (
        db.query(TrackingEvent.event_type, TrackingEvent.channel)
        .filter(TrackingEvent.wedding_id == wedding_id, TrackingEvent.channel.isnot(None))
        .all()
    )
    for event_type, channel in events:
        bucket = stats[channel.value]
        if event_type in _SENT_EVENTS:
            bucket["sent"] += 1
        elif event_type == EventType.MESSAGE_DELIVERED:
            bucket["delivered"] += 1
        elif event_type == EventType.MESSAGE_READ:
            bucket["read"] += 1
        elif event_type == EventType.MESSAGE_FAILED:
            bucket["failed"] += 1
    for bucket in stats.values():
        sent = bucket["sent"]
        delivered = bucket["delivered"]
        bucket["delivery_rate"] = round((sent - bucket["failed"]) / sent, 4) if sent else 0.0
        bucket["read_rate"] = round(bucket["read"] / delivered, 4) if delivered else 0.0
    return stats
