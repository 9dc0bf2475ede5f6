"""Provider callbacks. Twilio posts message status updates here (form-encoded, signed)."""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import get_db
from app.errors import FORBIDDEN, INTERNAL_ERROR, VALIDATION_ERROR, ApiError
from app.schemas.common import ok
from app.services.twilio_webhooks import is_valid_signature, record_status_callback

log = logging.getLogger(__name__)
router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("/twilio/status")
async def twilio_status(request: Request, db: Session = Depends(get_db)):
    """Acknowledge with 200 once the signature checks out, even when the update is ignored,
    so Twilio does not retry."""
    settings = get_settings()
    signature = request.headers.get("X-Twilio-Signature")
    if not signature:
        raise ApiError(400, VALIDATION_ERROR, "Missing X-Twilio-Signature header")
    if not settings.twilio_auth_token:
        log.error("[Twilio] Status callback received but TWILIO_AUTH_TOKEN is not configured")
        raise ApiError(500, INTERNAL_ERROR, "Twilio is not configured")
    form = await request.form()
    params = {key: str(value) for key, value in form.items()}
    # Twilio signs the URL it was given, which differs from request.url behind a proxy
    url = settings.twilio_status_callback_url or str(request.url)
    if not is_valid_signature(settings.twilio_auth_token, url, params, signature):
        log.warning("[Twilio] Invalid signature for status callback sid=%s", params.get("MessageSid"))
        raise ApiError(403, FORBIDDEN, "Invalid Twilio signature")
    event = record_status_callback(db, params)
    return ok({"recorded": event is not None, "event_type": event.event_type if event else None})
