"""Guest list spreadsheets (openpyxl): export, blank template and import, plus generic sheet export."""
import logging
from io import BytesIO
from typing import Any, Iterable

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font
from pydantic import ValidationError
from sqlalchemy.orm import Session, selectinload

from app.models.family import Channel, Family, MemberType
from app.models.principal import WeddingAdmin
from app.models.wedding import LANGUAGES, Wedding
from app.schemas.family import MAX_FAMILY_MEMBERS, FamilyCreate, MemberInput
from app.services.families import create_family

log = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
MAX_MEMBERS = MAX_FAMILY_MEMBERS
FAMILY_COLUMNS = [
    "Family Name *",
    "Contact Person *",
    "Email",
    "Phone",
    "WhatsApp",
    "Language *",
    "Channel",
    "Invited By",
]
MEMBER_FIELDS = ("Name", "Type", "Age")
GUEST_LIST_HEADERS = FAMILY_COLUMNS + [
    f"Member {n} {field}" for n in range(1, MAX_MEMBERS + 1) for field in MEMBER_FIELDS
]

_INSTRUCTIONS = [
    "Columns marked with * are required.",
    "Language must be one of: " + ", ".join(LANGUAGES),
    "Channel: WHATSAPP, EMAIL or SMS (optional).",
    "Invited By: email of a wedding administrator (optional).",
    "Member Type: ADULT, CHILD or INFANT. Between 1 and " + str(MAX_MEMBERS) + " members per family.",
    "Families whose name already exists in the wedding are skipped.",
]


class ImportFileError(Exception):
    """The upload is not a readable guest-list workbook."""


def workbook_bytes(sheets: Iterable[tuple[str, list[str], Iterable[list[Any]]]]) -> bytes:
    """Build an .xlsx with one sheet per (title, headers, rows); headers are bold."""
    wb = Workbook()
    wb.remove(wb.active)
    for title, headers, rows in sheets:
        ws = wb.create_sheet(title=title[:31])
        ws.append(headers)
        for cell in ws[1]:
            cell.font = Font(bold=True)
        for row in rows:
            ws.append(row)
        for idx, header in enumerate(headers, start=1):
            ws.column_dimensions[ws.cell(row=1, column=idx).column_letter].width = max(12, len(str(header)) + 2)
    output = BytesIO()
    wb.save(output)
    return output.getvalue()


def _admin_label(admin: WeddingAdmin | None) -> str:
    return admin.email if admin else ""


def _family_row(family: Family) -> list[Any]:
    row: list[Any] = [
        family.name,
        family.contact_person or "",
        family.email or "",
        family.phone or "",
        family.whatsapp_number or "",
        family.preferred_language,
        family.channel_preference.value if family.channel_preference else "",
        _admin_label(family.invited_by),
    ]
    for member in family.members:
        row.extend([member.name, member.type.value, member.age if member.age is not None else ""])
    return row


def export_guest_list(db: Session, wedding: Wedding) -> bytes:
    families = (
        db.query(Family)
        .options(selectinload(Family.members), selectinload(Family.invited_by))
        .filter(Family.wedding_id == wedding.id)
        .order_by(Family.name.asc())
        .all()
    )
    return workbook_bytes([("Guests", GUEST_LIST_HEADERS, (_family_row(f) for f in families))])


def guest_list_template() -> bytes:
    example = ["García", "María García", "maria@example.com", "+34600000000", "+34600000000", "ES", "WHATSAPP", ""]
    example += ["María García", "ADULT", 45, "Pablo García", "CHILD", 8]
    return workbook_bytes([
        ("Guests", GUEST_LIST_HEADERS, [example]),
        ("Instructions", ["Instructions"], [[line] for line in _INSTRUCTIONS]),
    ])


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def read_guest_rows(content: bytes) -> list[dict[str, Any]]:
    """Rows of the first sheet keyed by header, with the spreadsheet row number under "_row"."""
    try:
        wb = load_workbook(BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise ImportFileError(f"Could not read Excel file: {e}")
    ws = wb.worksheets[0]
    rows = ws.iter_rows(values_only=True)
    header_row = next(rows, None)
    if not header_row:
        raise ImportFileError("No data found in Excel file")
    headers = [_text(h) for h in header_row]
    if not headers or headers[0] != FAMILY_COLUMNS[0]:
        raise ImportFileError(f"Unexpected header; the first column must be '{FAMILY_COLUMNS[0]}'")
    parsed = []
    for number, values in enumerate(rows, start=2):
        if not values or all(_text(v) == "" for v in values):
            continue
        record = {headers[i]: values[i] for i in range(min(len(headers), len(values))) if headers[i]}
        record["_row"] = number
        parsed.append(record)
    wb.close()
    return parsed


def _parse_row(
    record: dict[str, Any], wedding: Wedding, admins: dict[str, int]
) -> tuple[FamilyCreate | None, list[dict], list[dict]]:
    row = record["_row"]
    errors: list[dict] = []
    warnings: list[dict] = []
    name = _text(record.get("Family Name *"))
    if not name:
        errors.append({"row": row, "field": "Family Name", "message": "Family Name is required"})
    contact = _text(record.get("Contact Person *")) or None
    if contact is None:
        warnings.append({"row": row, "field": "Contact Person", "message": "Contact Person is empty"})
    language = _text(record.get("Language *")).upper() or wedding.default_language
    if language not in LANGUAGES:
        warnings.append({"row": row, "field": "Language", "message": f"Invalid language '{language}', using '{wedding.default_language}'"})
        language = wedding.default_language
    channel_raw = _text(record.get("Channel")).upper()
    channel = None
    if channel_raw:
        try:
            channel = Channel(channel_raw)
        except ValueError:
            warnings.append({"row": row, "field": "Channel", "message": f"Unknown channel '{channel_raw}' ignored"})
    invited_by = _text(record.get("Invited By")).lower()
    admin_id = admins.get(invited_by) if invited_by else None
    if invited_by and admin_id is None:
        warnings.append({"row": row, "field": "Invited By", "message": f"No administrator '{invited_by}' in this wedding"})

    members: list[MemberInput] = []
    for n in range(1, MAX_MEMBERS + 1):
        member_name = _text(record.get(f"Member {n} Name"))
        member_type = _text(record.get(f"Member {n} Type")).upper()
        member_age = _text(record.get(f"Member {n} Age"))
        if not member_name:
            if member_type or member_age:
                errors.append({"row": row, "field": f"Member {n} Name", "message": "Member name is required"})
            continue
        try:
            mtype = MemberType(member_type or MemberType.ADULT.value)
        except ValueError:
            errors.append({"row": row, "field": f"Member {n} Type", "message": f"Invalid member type '{member_type}'"})
            continue
        age = None
        if member_age:
            if not member_age.isdigit():
                errors.append({"row": row, "field": f"Member {n} Age", "message": f"Invalid age '{member_age}'"})
                continue
            age = int(member_age)
        members.append(MemberInput(name=member_name, type=mtype, age=age))
    if not members:
        errors.append({"row": row, "field": "Member 1 Name", "message": "At least one family member is required"})
    if errors:
        return None, errors, warnings

    try:
        data = FamilyCreate(
            name=name,
            contact_person=contact,
            email=_text(record.get("Email")) or None,
            phone=_text(record.get("Phone")) or None,
            whatsapp_number=_text(record.get("WhatsApp")) or None,
            channel_preference=channel,
            preferred_language=language,
            invited_by_admin_id=admin_id,
            members=members,
        )
    except ValidationError as e:
        for err in e.errors():
            field = ".".join(str(p) for p in err.get("loc", ()))
            errors.append({"row": row, "field": field, "message": err.get("msg", "Invalid value")})
        return None, errors, warnings
    return data, errors, warnings


def import_guest_list(db: Session, wedding: Wedding, content: bytes) -> dict[str, Any]:
    """Validate every row first; create nothing when any row has errors. Families whose name already
    exists (in the wedding or earlier in the file) are skipped. Commits on success."""
    records = read_guest_rows(content)
    admins = {
        a.email.lower(): a.id
        for a in db.query(WeddingAdmin).filter(WeddingAdmin.wedding_id == wedding.id).all()
    }
    existing = {name for (name,) in db.query(Family.name).filter(Family.wedding_id == wedding.id).all()}

    to_create: list[FamilyCreate] = []
    errors: list[dict] = []
    warnings: list[dict] = []
    skipped = 0
    for record in records:
        data, row_errors, row_warnings = _parse_row(record, wedding, admins)
        errors.extend(row_errors)
        warnings.extend(row_warnings)
        if data is None:
            continue
        if data.name.strip() in existing:
            skipped += 1
            warnings.append({"row": record["_row"], "field": "Family Name", "message": f"'{data.name}' already exists; skipped"})
            continue
        existing.add(data.name.strip())
        to_create.append(data)

    if errors:
        return {"success": False, "created": 0, "skipped": skipped, "errors": errors, "warnings": warnings}

    reserved_codes: set[str] = set()
    reserved_refs: set[str] = set()
    for data in to_create:
        create_family(db, wedding, data, reserved_codes=reserved_codes, reserved_refs=reserved_refs)
    db.commit()
    log.info("[Excel] Imported %s families into wedding %s (%s skipped)", len(to_create), wedding.id, skipped)
    return {"success": True, "created": len(to_create), "skipped": skipped, "errors": [], "warnings": warnings}
