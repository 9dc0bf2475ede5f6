"""{{placeholder}} rendering for message templates and the variables a family provides."""
import re
from datetime import date, datetime

from app.config import get_settings
from app.models.family import Family
from app.models.wedding import Wedding

settings = get_settings()

PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")

AVAILABLE_PLACEHOLDERS = [
    {"key": "familyName", "label": "Family Name", "description": "The family name of the guest", "example": "Smith"},
    {"key": "coupleNames", "label": "Couple Names", "description": "The names of the couple getting married", "example": "Laura & Javier"},
    {"key": "weddingDate", "label": "Wedding Date", "description": "The date of the wedding", "example": "Saturday, June 15, 2026"},
    {"key": "weddingTime", "label": "Wedding Time", "description": "The time of the wedding ceremony", "example": "18:00"},
    {"key": "location", "label": "Location", "description": "The venue and location of the wedding", "example": "Finca El Olivar, Sevilla"},
    {"key": "magicLink", "label": "Magic Link", "description": "The RSVP link for the guest", "example": "https://nupci.app/inv/LJ/a7x"},
    {"key": "rsvpCutoffDate", "label": "RSVP Cutoff Date", "description": "The deadline to RSVP", "example": "Friday, May 29, 2026"},
    {"key": "referenceCode", "label": "Reference Code", "description": "Payment reference code (if applicable)", "example": "K7M2QX"},
    {"key": "inviteImageName", "label": "Invite Image", "description": "Invitation image (WhatsApp templates)", "example": "invite.png"},
]

_WEEKDAYS = {
    "ES": ["lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo"],
    "EN": ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"],
    "FR": ["lundi", "mardi", "mercredi", "jeudi", "vendredi", "samedi", "dimanche"],
    "IT": ["lunedì", "martedì", "mercoledì", "giovedì", "venerdì", "sabato", "domenica"],
    "DE": ["Montag", "Dienstag", "Mittwoch", "Donnerstag", "Freitag", "Samstag", "Sonntag"],
}
_MONTHS = {
    "ES": ["enero", "febrero", "marzo", "abril", "mayo", "junio", "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre"],
    "EN": ["January", "February", "March", "April", "May", "June", "July", "August", "September", "October", "November", "December"],
    "FR": ["janvier", "février", "mars", "avril", "mai", "juin", "juillet", "août", "septembre", "octobre", "novembre", "décembre"],
    "IT": ["gennaio", "febbraio", "marzo", "aprile", "maggio", "giugno", "luglio", "agosto", "settembre", "ottobre", "novembre", "dicembre"],
    "DE": ["Januar", "Februar", "März", "April", "Mai", "Juni", "Juli", "August", "September", "Oktober", "November", "Dezember"],
}


def render_template(template: str, variables: dict[str, str | None]) -> str:
    """Replace {{key}} with variables[key]; unknown or None keys are left as written."""

    def _sub(match: re.Match) -> str:
        value = variables.get(match.group(1))
        return match.group(0) if value is None else str(value)

    return PLACEHOLDER_RE.sub(_sub, template or "")


def get_placeholders(template: str) -> list[str]:
    """Unique placeholder names in order of first appearance."""
    seen: list[str] = []
    for name in PLACEHOLDER_RE.findall(template or ""):
        if name not in seen:
            seen.append(name)
    return seen


def has_all_placeholders(template: str, required: list[str]) -> bool:
    found = set(get_placeholders(template))
    return all(r in found for r in required)


def format_date(value: date | datetime | None, language: str) -> str:
    if value is None:
        return ""
    lang = language if language in _MONTHS else "EN"
    d = value.date() if isinstance(value, datetime) else value
    weekday = _WEEKDAYS[lang][d.weekday()]
    month = _MONTHS[lang][d.month - 1]
    if lang == "EN":
        return f"{weekday}, {month} {d.day}, {d.year}"
    if lang == "ES":
        return f"{weekday}, {d.day} de {month} de {d.year}"
    if lang == "DE":
        return f"{weekday}, {d.day}. {month} {d.year}"
    return f"{weekday} {d.day} {month} {d.year}"


def build_magic_link(family: Family, wedding: Wedding, channel: str | None = None) -> str:
    """Short URL when the family has one, otherwise the full token link."""
    base = settings.app_url.rstrip("/")
    if wedding.short_url_initials and family.short_url_code:
        link = f"{base}/inv/{wedding.short_url_initials}/{family.short_url_code}"
    else:
        link = f"{base}/rsvp/{family.magic_token}"
    if channel:
        link = f"{link}?channel={channel}"
    return link


def build_template_variables(family: Family, wedding: Wedding, channel: str | None = None) -> dict[str, str]:
    language = family.preferred_language or wedding.default_language or "ES"
    return {
        "familyName": family.name,
        "coupleNames": wedding.couple_names,
        "weddingDate": format_date(wedding.wedding_date, language),
        "weddingTime": wedding.wedding_time or "",
        "location": wedding.location or "",
        "magicLink": build_magic_link(family, wedding, channel),
        "rsvpCutoffDate": format_date(wedding.rsvp_cutoff_date, language),
        "referenceCode": family.reference_code or "",
    }
