"""Short invitation URLs: /inv/{couple initials}/{per-family base62 code}, and the /w/{initials} lookup that finds them."""
import secrets

from sqlalchemy.orm import Session

from app.models.family import Family
from app.models.wedding import Wedding, WeddingStatus
from app.services.page_cache import short_url_cache

BASE62 = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
NAME_SEPARATORS = (" y ", " & ", " and ", " e ", " i ", " und ", " et ", " och ")
ATTEMPTS_PER_LENGTH = 20


class ShortCodeExhausted(Exception):
    pass


def parse_initials(couple_names: str) -> str:
    """Couple initials, e.g. "Laura y Javier" -> "LJ"; without a known separator, the first two characters."""
    trimmed = (couple_names or "").strip()
    lowered = trimmed.lower()
    for sep in NAME_SEPARATORS:
        idx = lowered.find(sep)
        if idx == -1:
            continue
        first = trimmed[:idx].strip()
        second = trimmed[idx + len(sep):].strip()
        if first and second:
            return (first[0] + second[0]).upper()
    return trimmed[:2].upper()


def ensure_wedding_initials(db: Session, wedding: Wedding) -> str:
    """Assign unique initials (LJ, LJ1, LJ2, ...) if the wedding has none yet."""
    if wedding.short_url_initials:
        return wedding.short_url_initials
    base = parse_initials(wedding.couple_names) or "W"
    candidate = base
    suffix = 0
    while (
        db.query(Wedding.id)
        .filter(Wedding.short_url_initials == candidate, Wedding.id != wedding.id)
        .first()
    ):
        suffix += 1
        candidate = f"{base}{suffix}"
    wedding.short_url_initials = candidate
    db.flush()
    return candidate


def _random_code(length: int) -> str:
    return "".join(secrets.choice(BASE62) for _ in range(length))


def generate_short_code(db: Session, wedding_id: int, reserved: set[str] | None = None) -> str:
    """Unique code within the wedding: 3 chars, then 4 after 20 collisions.
    reserved holds codes handed out earlier in the same unflushed batch."""
    reserved = reserved if reserved is not None else set()
    for length in (3, 4):
        for _ in range(ATTEMPTS_PER_LENGTH):
            code = _random_code(length)
            if code in reserved:
                continue
            taken = (
                db.query(Family.id)
                .filter(Family.wedding_id == wedding_id, Family.short_url_code == code)
                .first()
            )
            if not taken:
                reserved.add(code)
                return code
    raise ShortCodeExhausted(f"Could not generate a unique short code for wedding {wedding_id}")


def short_url_path(wedding: Wedding, family: Family) -> str | None:
    if not wedding.short_url_initials or not family.short_url_code:
        return None
    return f"/inv/{wedding.short_url_initials}/{family.short_url_code}"


def resolve_short_url(db: Session, initials: str, code: str) -> str | None:
    """Magic token for /inv/{initials}/{code}, or None. Cached for short_url_cache_ttl_hours."""
    key = (initials.upper(), code)
    cached = short_url_cache.get(key)
    if cached is not None:
        return cached[1]
    row = (
        db.query(Family.wedding_id, Family.magic_token)
        .join(Wedding, Wedding.id == Family.wedding_id)
        .filter(Wedding.short_url_initials == initials.upper(), Family.short_url_code == code)
        .first()
    )
    if not row:
        return None
    short_url_cache.set(key, (row.wedding_id, row.magic_token))
    return row.magic_token


def _digits(phone: str | None) -> str:
    """+34 600-000-001 -> +34600000001"""
    return "".join(ch for ch in (phone or "") if ch.isdigit() or ch == "+")


def find_wedding_by_initials(db: Session, initials: str) -> Wedding | None:
    return (
        db.query(Wedding)
        .filter(Wedding.short_url_initials == initials.upper(), Wedding.status == WeddingStatus.ACTIVE)
        .first()
    )


def lookup_family_short_url(db: Session, wedding: Wedding, contact: str) -> str | None:
    """Short URL path of the family with this email (case-insensitive) or phone/WhatsApp number."""
    contact = contact.strip()
    families = db.query(Family).filter(Family.wedding_id == wedding.id).order_by(Family.id.asc()).all()
    if "@" in contact:
        match = next((f for f in families if f.email and f.email.lower() == contact.lower()), None)
    else:
        wanted = _digits(contact)
        match = next((f for f in families if wanted and _digits(f.phone) == wanted), None) or next(
            (f for f in families if wanted and _digits(f.whatsapp_number) == wanted), None
        )
    return short_url_path(wedding, match) if match else None
