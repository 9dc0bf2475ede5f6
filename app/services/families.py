"""Family (guest household) creation and updates, including token and code generation."""
import secrets

from sqlalchemy.orm import Session

from app.errors import ALREADY_EXISTS, NOT_FOUND, VALIDATION_ERROR, ApiError
from app.models.family import Family, FamilyMember
from app.models.principal import WeddingAdmin
from app.models.wedding import PaymentTrackingMode, Wedding
from app.schemas.family import FamilyCreate, FamilyResponse, FamilyUpdate, MemberInput
from app.services.magic_link import generate_magic_token
from app.services.short_url import ensure_wedding_initials, generate_short_code, short_url_path

# No 0/O or 1/I so codes survive being read aloud or typed into a bank transfer
REFERENCE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
REFERENCE_LENGTH = 6


def generate_reference_code(db: Session, reserved: set[str] | None = None) -> str:
    reserved = reserved if reserved is not None else set()
    while True:
        code = "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(REFERENCE_LENGTH))
        if code in reserved:
            continue
        if not db.query(Family.id).filter(Family.reference_code == code).first():
            reserved.add(code)
            return code


def has_submitted_rsvp(family: Family) -> bool:
    return any(m.attending is not None for m in family.members)


def family_out(family: Family) -> FamilyResponse:
    out = FamilyResponse.model_validate(family)
    out.short_url = short_url_path(family.wedding, family) if family.wedding else None
    return out


def _member_from_input(data: MemberInput, added_by_guest: bool = False) -> FamilyMember:
    return FamilyMember(
        name=data.name.strip(),
        type=data.type,
        age=data.age,
        attending=data.attending,
        dietary_restrictions=data.dietary_restrictions,
        accessibility_needs=data.accessibility_needs,
        seating_group=data.seating_group,
        added_by_guest=added_by_guest,
    )


def _check_admin(db: Session, wedding_id: int, admin_id: int | None) -> None:
    if admin_id is None:
        return
    exists = db.query(WeddingAdmin.id).filter(WeddingAdmin.id == admin_id, WeddingAdmin.wedding_id == wedding_id).first()
    if not exists:
        raise ApiError(400, VALIDATION_ERROR, "invited_by_admin_id does not belong to this wedding")


def create_family(
    db: Session,
    wedding: Wedding,
    data: FamilyCreate,
    *,
    reserved_codes: set[str] | None = None,
    reserved_refs: set[str] | None = None,
) -> Family:
    """Add a family and its members (flush only; the caller commits the whole batch)."""
    name = data.name.strip()
    duplicate = db.query(Family.id).filter(Family.wedding_id == wedding.id, Family.name == name).first()
    if duplicate:
        raise ApiError(409, ALREADY_EXISTS, f"A family named '{name}' already exists")
    _check_admin(db, wedding.id, data.invited_by_admin_id)
    ensure_wedding_initials(db, wedding)

    family = Family(
        wedding_id=wedding.id,
        name=name,
        contact_person=data.contact_person,
        email=str(data.email) if data.email else None,
        phone=data.phone,
        whatsapp_number=data.whatsapp_number,
        channel_preference=data.channel_preference,
        preferred_language=data.preferred_language or wedding.default_language,
        invited_by_admin_id=data.invited_by_admin_id,
        magic_token=generate_magic_token(),
        short_url_code=generate_short_code(db, wedding.id, reserved_codes),
    )
    if wedding.payment_tracking_mode == PaymentTrackingMode.AUTOMATED:
        family.reference_code = generate_reference_code(db, reserved_refs)
    family.members = [_member_from_input(m) for m in data.members]
    db.add(family)
    db.flush()
    return family


def update_family(db: Session, family: Family, data: FamilyUpdate) -> Family:
    fields = data.model_dump(exclude_unset=True, exclude={"members"})
    if "name" in fields and fields["name"]:
        name = fields["name"].strip()
        clash = (
            db.query(Family.id)
            .filter(Family.wedding_id == family.wedding_id, Family.name == name, Family.id != family.id)
            .first()
        )
        if clash:
            raise ApiError(409, ALREADY_EXISTS, f"A family named '{name}' already exists")
        fields["name"] = name
    if "invited_by_admin_id" in fields:
        _check_admin(db, family.wedding_id, fields["invited_by_admin_id"])
    if "email" in fields and fields["email"] is not None:
        fields["email"] = str(fields["email"])
    for key, value in fields.items():
        setattr(family, key, value)

    if data.members is not None:
        existing = {m.id: m for m in family.members}
        kept: list[FamilyMember] = []
        for item in data.members:
            if item.id is not None:
                member = existing.get(item.id)
                if member is None:
                    raise ApiError(404, NOT_FOUND, f"Member {item.id} not found in this family")
                for key, value in item.model_dump(exclude={"id"}).items():
                    setattr(member, key, value)
                kept.append(member)
            else:
                kept.append(_member_from_input(item))
        family.members = kept
    db.flush()
    return family
