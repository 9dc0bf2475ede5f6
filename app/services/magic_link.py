"""Magic-link guest access: opaque per-family UUID tokens resolving to (family, wedding)."""
import uuid

from sqlalchemy.orm import Session, joinedload

from app.database import utcnow
from app.errors import INVALID_TOKEN, ApiError
from app.models.family import Channel, Family
from app.models.wedding import Wedding, WeddingStatus

TOKEN_NOT_FOUND = "TOKEN_NOT_FOUND"
TOKEN_EXPIRED = "TOKEN_EXPIRED"
INVALID_TOKEN_FORMAT = "INVALID_TOKEN_FORMAT"

_MESSAGES = {
    TOKEN_NOT_FOUND: "This invitation link is not valid.",
    TOKEN_EXPIRED: "This invitation link has expired.",
    INVALID_TOKEN_FORMAT: "This invitation link is malformed.",
}


class MagicLinkError(Exception):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason

    def to_api_error(self) -> ApiError:
        """Invalid and expired links both surface as 404 INVALID_TOKEN; the reason goes in details."""
        return ApiError(404, INVALID_TOKEN, _MESSAGES.get(self.reason, "Invalid link"), {"reason": self.reason})


def generate_magic_token() -> str:
    return str(uuid.uuid4())


def is_valid_token_format(token: str) -> bool:
    try:
        return str(uuid.UUID(token)) == token.lower()
    except (ValueError, AttributeError, TypeError):
        return False


def validate_magic_token(db: Session, token: str) -> tuple[Family, Wedding]:
    """Resolve token to its family and wedding. Raises MagicLinkError."""
    token = (token or "").strip()
    if not is_valid_token_format(token):
        raise MagicLinkError(INVALID_TOKEN_FORMAT)
    family = (
        db.query(Family)
        .options(joinedload(Family.members), joinedload(Family.wedding))
        .filter(Family.magic_token == token.lower())
        .first()
    )
    if not family or not family.wedding or family.wedding.status == WeddingStatus.DELETED:
        raise MagicLinkError(TOKEN_NOT_FOUND)
    wedding = family.wedding
    # Links stay valid through the wedding day itself
    if wedding.wedding_date < utcnow().date():
        raise MagicLinkError(TOKEN_EXPIRED)
    return family, wedding


def get_family_by_token_or_404(db: Session, token: str) -> tuple[Family, Wedding]:
    try:
        return validate_magic_token(db, token)
    except MagicLinkError as e:
        raise e.to_api_error()


def regenerate_magic_token(db: Session, family: Family) -> str:
    """Issue a fresh token; the previous link stops working immediately."""
    family.magic_token = generate_magic_token()
    db.flush()
    return family.magic_token


def is_rsvp_cutoff_passed(wedding: Wedding) -> bool:
    return utcnow() > wedding.rsvp_cutoff_date


def extract_channel(value: str | None) -> Channel | None:
    """Channel from the ?channel= tracking parameter on invitation links."""
    if not value:
        return None
    try:
        return Channel(value.strip().upper())
    except ValueError:
        return None
