"""Admin reports (rows as dicts, optionally rendered to xlsx) and wedding statistics."""
from typing import Any, Callable

from sqlalchemy.orm import Session, selectinload

from app.models.family import Family, FamilyMember
from app.models.principal import WeddingAdmin
from app.models.seating import Table
from app.models.wedding import Wedding
from app.services.excel import workbook_bytes
from app.services.families import has_submitted_rsvp
from app.services.tracking import get_channel_stats


def _attending_label(value: bool | None) -> str:
    if value is None:
        return "Pending"
    return "Yes" if value else "No"


def _families(db: Session, wedding_id: int) -> list[Family]:
    return (
        db.query(Family)
        .options(selectinload(Family.members).selectinload(FamilyMember.table), selectinload(Family.invited_by))
        .filter(Family.wedding_id == wedding_id)
        .order_by(Family.name.asc())
        .all()
    )


def attendees(db: Session, wedding: Wedding) -> list[dict[str, Any]]:
    rows = []
    for family in _families(db, wedding.id):
        for m in family.members:
            rows.append({
                "family_name": family.name,
                "member_name": m.name,
                "type": m.type.value,
                "age": m.age,
                "email": family.email or "",
                "phone": family.phone or "",
                "whatsapp": family.whatsapp_number or "",
                "language": family.preferred_language,
                "channel": family.channel_preference.value if family.channel_preference else "",
                "invited_by": (family.invited_by.name or family.invited_by.email) if family.invited_by else "",
                "attending": _attending_label(m.attending),
                "dietary_restrictions": m.dietary_restrictions or "",
                "accessibility_needs": m.accessibility_needs or "",
                "table": m.table.display_name if m.table else "",
                "added_by_guest": m.added_by_guest,
            })
    return rows


def guests_per_admin(db: Session, wedding: Wedding) -> list[dict[str, Any]]:
    admins = db.query(WeddingAdmin).filter(WeddingAdmin.wedding_id == wedding.id).order_by(WeddingAdmin.name.asc()).all()
    buckets: dict[int | None, dict[str, Any]] = {
        a.id: {"admin_name": a.name or a.email, "admin_email": a.email} for a in admins
    }
    buckets[None] = {"admin_name": "Not assigned", "admin_email": ""}
    for b in buckets.values():
        b.update(total_families=0, total_guests=0, attending_guests=0, not_attending_guests=0, pending_guests=0)
    for family in _families(db, wedding.id):
        b = buckets.get(family.invited_by_admin_id, buckets[None])
        b["total_families"] += 1
        for m in family.members:
            b["total_guests"] += 1
            if m.attending is None:
                b["pending_guests"] += 1
            elif m.attending:
                b["attending_guests"] += 1
            else:
                b["not_attending_guests"] += 1
    return [b for key, b in buckets.items() if key is not None or b["total_families"]]


def seating_plan(db: Session, wedding: Wedding) -> list[dict[str, Any]]:
    tables = (
        db.query(Table)
        .options(selectinload(Table.assigned_guests).selectinload(FamilyMember.family))
        .filter(Table.wedding_id == wedding.id)
        .order_by(Table.number.asc())
        .all()
    )
    rows = []
    for table in tables:
        if wedding.couple_table_id == table.id:
            rows.append({
                "table": table.display_name, "capacity": table.capacity, "guest_name": wedding.couple_names,
                "guest_type": "COUPLE", "family_name": "", "attending": "Yes",
                "dietary_restrictions": "", "accessibility_needs": "",
            })
        for m in table.assigned_guests:
            rows.append({
                "table": table.display_name,
                "capacity": table.capacity,
                "guest_name": m.name,
                "guest_type": m.type.value,
                "family_name": m.family.name,
                "attending": _attending_label(m.attending),
                "dietary_restrictions": m.dietary_restrictions or "",
                "accessibility_needs": m.accessibility_needs or "",
            })
    return rows


def _age_row(group_type: str, name: str, ages: list[int]) -> dict[str, Any]:
    return {
        "group_type": group_type,
        "group_name": name,
        "average_age": round(sum(ages) / len(ages), 1) if ages else None,
        "guest_count": len(ages),
        "min_age": min(ages) if ages else None,
        "max_age": max(ages) if ages else None,
    }


def age_average(db: Session, wedding: Wedding) -> list[dict[str, Any]]:
    """Average guest age per inviting administrator and per table; members without an age are ignored."""
    by_admin: dict[str, list[int]] = {}
    by_table: dict[str, list[int]] = {}
    for family in _families(db, wedding.id):
        admin = (family.invited_by.name or family.invited_by.email) if family.invited_by else "Not assigned"
        for m in family.members:
            if m.age is None:
                continue
            by_admin.setdefault(admin, []).append(m.age)
            if m.table is not None:
                by_table.setdefault(m.table.display_name, []).append(m.age)
    rows = [_age_row("Administrator", name, ages) for name, ages in sorted(by_admin.items())]
    rows += [_age_row("Table", name, ages) for name, ages in sorted(by_table.items())]
    return rows


# name -> (builder, [(key, column header)])
REPORTS: dict[str, tuple[Callable[[Session, Wedding], list[dict]], list[tuple[str, str]]]] = {
    "attendees": (attendees, [
        ("family_name", "Family"), ("member_name", "Name"), ("type", "Type"), ("age", "Age"),
        ("email", "Email"), ("phone", "Phone"), ("whatsapp", "WhatsApp"), ("language", "Language"),
        ("channel", "Channel"), ("invited_by", "Invited By"), ("attending", "Attending"),
        ("dietary_restrictions", "Dietary Restrictions"), ("accessibility_needs", "Accessibility Needs"),
        ("table", "Table"), ("added_by_guest", "Added By Guest"),
    ]),
    "guests-per-admin": (guests_per_admin, [
        ("admin_name", "Administrator"), ("admin_email", "Email"), ("total_families", "Families"),
        ("total_guests", "Guests"), ("attending_guests", "Attending"),
        ("not_attending_guests", "Not Attending"), ("pending_guests", "Pending"),
    ]),
    "seating-plan": (seating_plan, [
        ("table", "Table"), ("capacity", "Capacity"), ("guest_name", "Guest"), ("guest_type", "Type"),
        ("family_name", "Family"), ("attending", "Attending"),
        ("dietary_restrictions", "Dietary Restrictions"), ("accessibility_needs", "Accessibility Needs"),
    ]),
    "age-average": (age_average, [
        ("group_type", "Group Type"), ("group_name", "Group"), ("average_age", "Average Age"),
        ("guest_count", "Guests With Age"), ("min_age", "Min Age"), ("max_age", "Max Age"),
    ]),
}


def report_xlsx(name: str, rows: list[dict[str, Any]]) -> bytes:
    columns = REPORTS[name][1]
    headers = [label for _, label in columns]
    return workbook_bytes([(name, headers, ([row.get(key) for key, _ in columns] for row in rows))])


def wedding_stats(db: Session, wedding: Wedding) -> dict[str, Any]:
    families = _families(db, wedding.id)
    members = [m for f in families for m in f.members]
    submitted = sum(1 for f in families if has_submitted_rsvp(f))
    return {
        "total_families": len(families),
        "total_guests": len(members),
        "attending": sum(1 for m in members if m.attending is True),
        "not_attending": sum(1 for m in members if m.attending is False),
        "pending": sum(1 for m in members if m.attending is None),
        "families_responded": submitted,
        "rsvp_completion_percentage": round(submitted * 100 / len(families)) if families else 0,
        "invitations_sent": sum(1 for f in families if f.invitation_sent_at is not None),
        "channels": get_channel_stats(db, wedding.id),
    }
