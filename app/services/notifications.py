"""Outbound messaging: email via Resend, SMS and WhatsApp via Twilio.
Senders never raise: email returns True/False, Twilio senders return the message SID or None."""
import html
import json
import logging
import re

import httpx

from app.config import get_settings

log = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"

_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
_LINK_RE = re.compile(r"\[([^\]]+)\]\(\s*(\S+?)\s*\)")


def markdown_to_html(text: str) -> str:
    """Template bodies use **bold** and [label]( url ); everything else is escaped text."""
    escaped = html.escape(text or "")
    escaped = _BOLD_RE.sub(r"<strong>\1</strong>", escaped)
    escaped = _LINK_RE.sub(r'<a href="\2">\1</a>', escaped)
    return "<br>\n".join(escaped.split("\n"))


def markdown_to_text(text: str) -> str:
    plain = _BOLD_RE.sub(r"\1", text or "")
    return _LINK_RE.sub(r"\1: \2", plain)


def send_email(to_email: str, subject: str, html_content: str, text_content: str | None = None) -> bool:
    """Send email via Resend. Returns False when unconfigured or on any failure."""
    settings = get_settings()
    if not settings.resend_api_key:
        log.warning("[Email] NOT SENT: to=%s subject=%s. RESEND_API_KEY is missing.", to_email, subject)
        return False
    payload = {
        "from": settings.resend_from_email,
        "to": [to_email],
        "subject": subject,
        "html": html_content or "",
    }
    if text_content:
        payload["text"] = text_content
    try:
        with httpx.Client(timeout=10.0) as client:
            r = client.post(
                RESEND_API_URL,
                json=payload,
                headers={"Authorization": f"Bearer {settings.resend_api_key}"},
            )
        if 200 <= r.status_code < 300:
            try:
                msg_id = (r.json() or {}).get("id", "")
            except ValueError:
                msg_id = ""
            log.info("[Email] Resend success: to=%s status=%s id=%s", to_email, r.status_code, msg_id)
            return True
        log.warning("[Email] Resend failed: status=%s to=%s body=%s", r.status_code, to_email, r.text[:500])
        return False
    except httpx.HTTPError as e:
        log.warning("[Email] Exception: to=%s error=%s: %s", to_email, type(e).__name__, e)
        return False


def _twilio_client():
    settings = get_settings()
    if not settings.twilio_account_sid or not settings.twilio_auth_token:
        return None
    from twilio.rest import Client
    return Client(settings.twilio_account_sid, settings.twilio_auth_token)


def _status_callback() -> dict[str, str]:
    url = get_settings().twilio_status_callback_url
    return {"status_callback": url} if url else {}


def send_sms(to_phone: str, body: str) -> str | None:
    """SMS via Twilio. Returns the message SID, or None when nothing was sent."""
    settings = get_settings()
    client = _twilio_client()
    if client is None or not settings.twilio_from_phone_number:
        log.warning("[Twilio] SMS not sent to %s: Twilio is not configured", to_phone)
        return None
    try:
        message = client.messages.create(body=body, from_=settings.twilio_from_phone_number, to=to_phone, **_status_callback())
        return message.sid
    except Exception as e:
        log.warning("[Twilio] SMS to %s failed: %s", to_phone, e)
        return None


def send_whatsapp(
    to_phone: str,
    body: str,
    *,
    content_sid: str | None = None,
    content_variables: dict[str, str] | None = None,
    media_url: str | None = None,
) -> str | None:
    """WhatsApp via Twilio. With content_sid, sends an approved content template filled
    with the positional variables; otherwise a free-form body (session messages only).
    Returns the message SID, or None when nothing was sent."""
    settings = get_settings()
    client = _twilio_client()
    if client is None or not settings.twilio_whatsapp_from:
        log.warning("[Twilio] WhatsApp not sent to %s: Twilio WhatsApp sender is not configured", to_phone)
        return None
    kwargs = {
        "from_": f"whatsapp:{settings.twilio_whatsapp_from}",
        "to": f"whatsapp:{to_phone}",
        **_status_callback(),
    }
    if content_sid:
        kwargs["content_sid"] = content_sid
        kwargs["content_variables"] = json.dumps(content_variables or {})
    else:
        kwargs["body"] = body
        if media_url:
            kwargs["media_url"] = [media_url]
    try:
        message = client.messages.create(**kwargs)
        return message.sid
    except Exception as e:
        log.warning("[Twilio] WhatsApp to %s failed: %s", to_phone, e)
        return None


_CONFIRMATION_COPY = {
    "ES": ("Hemos recibido tu confirmación", "Gracias, {family}. Hemos registrado tu respuesta para la boda de {couple}: {n} invitado(s) asistirán."),
    "EN": ("We received your RSVP", "Thank you, {family}. We have recorded your RSVP for {couple}'s wedding: {n} guest(s) attending."),
    "FR": ("Nous avons bien reçu votre réponse", "Merci, {family}. Votre réponse pour le mariage de {couple} est enregistrée : {n} invité(s) présent(s)."),
    "IT": ("Abbiamo ricevuto la vostra risposta", "Grazie, {family}. Abbiamo registrato la vostra risposta per il matrimonio di {couple}: {n} ospite/i presenti."),
    "DE": ("Wir haben eure Antwort erhalten", "Danke, {family}. Eure Antwort für die Hochzeit von {couple} ist gespeichert: {n} Gast/Gäste nehmen teil."),
}


def send_rsvp_confirmation_email(
    to_email: str, language: str, family_name: str, couple_names: str, attending_count: int, link: str
) -> bool:
    """Confirmation after a guest submits an RSVP. Runs as a background task; failure is only logged."""
    subject, line = _CONFIRMATION_COPY.get(language, _CONFIRMATION_COPY["EN"])
    text = line.format(family=family_name, couple=couple_names, n=attending_count)
    html_content = f"""
    <p>{html.escape(text)}</p>
    <p><a href="{html.escape(link, quote=True)}">{html.escape(link)}</a></p>
    <p>{html.escape(couple_names)}</p>
    """
    ok = send_email(to_email, f"[{couple_names}] {subject}", html_content, text_content=f"{text}\n\n{link}")
    if not ok:
        log.info("[Email] RSVP confirmation not delivered to %s", to_email)
    return ok
