"""Reception seating: table layout, manual assignment with capacity checks and random placement.
The couple is seated as two synthetic guests ("couple-member-1/2") at wedding.couple_table_id."""
import random
from collections import Counter
from typing import Any

from sqlalchemy.orm import Session, selectinload

from app.errors import NOT_FOUND, VALIDATION_ERROR, ApiError
from app.models.family import Family, FamilyMember
from app.models.seating import Table
from app.models.wedding import Wedding
from app.services.short_url import NAME_SEPARATORS

COUPLE_MEMBER_IDS = ("couple-member-1", "couple-member-2")
COUPLE_SIZE = len(COUPLE_MEMBER_IDS)


def _members(db: Session, wedding_id: int) -> list[FamilyMember]:
    return (
        db.query(FamilyMember)
        .join(Family, Family.id == FamilyMember.family_id)
        .options(selectinload(FamilyMember.family))
        .filter(Family.wedding_id == wedding_id)
        .order_by(FamilyMember.name.asc(), FamilyMember.id.asc())
        .all()
    )


def _tables(db: Session, wedding_id: int) -> list[Table]:
    return db.query(Table).filter(Table.wedding_id == wedding_id).order_by(Table.number.asc()).all()


def _guest_out(member: FamilyMember) -> dict[str, Any]:
    return {
        "id": member.id,
        "name": member.name,
        "type": member.type.value if member.type else None,
        "family_id": member.family_id,
        "family_name": member.family.name if member.family else None,
        "attending": member.attending,
        "seating_group": member.seating_group,
        "table_id": member.table_id,
    }


def _couple_out(wedding: Wedding) -> list[dict[str, Any]]:
    names = [n.strip() for n in _split_couple(wedding.couple_names)]
    return [
        {"id": cid, "name": names[i] if i < len(names) else cid, "is_couple": True, "table_id": wedding.couple_table_id}
        for i, cid in enumerate(COUPLE_MEMBER_IDS)
    ]


def _split_couple(couple_names: str) -> list[str]:
    lowered = (couple_names or "").lower()
    for sep in NAME_SEPARATORS:
        idx = lowered.find(sep)
        if idx != -1:
            return [couple_names[:idx], couple_names[idx + len(sep):]]
    return [couple_names or ""]


def occupancy(members: list[FamilyMember], wedding: Wedding) -> Counter:
    """Seats taken per table id: every assigned member plus the couple at their table."""
    taken = Counter(m.table_id for m in members if m.table_id is not None)
    if wedding.couple_table_id is not None:
        taken[wedding.couple_table_id] += COUPLE_SIZE
    return taken


def seating_stats(members: list[FamilyMember], tables: list[Table], wedding: Wedding) -> dict[str, int]:
    table_ids = {t.id for t in tables}
    couple_seated = wedding.couple_table_id in table_ids
    return {
        "total_guests": len(members) + COUPLE_SIZE,
        "confirmed_guests": sum(1 for m in members if m.attending) + COUPLE_SIZE,
        "total_seats": sum(t.capacity for t in tables),
        "assigned_seats": sum(1 for m in members if m.attending and m.table_id in table_ids)
        + (COUPLE_SIZE if couple_seated else 0),
        "total_tables": len(tables),
    }


def get_seating(db: Session, wedding: Wedding) -> dict[str, Any]:
    members = _members(db, wedding.id)
    tables = _tables(db, wedding.id)
    by_table: dict[int, list[dict]] = {t.id: [] for t in tables}
    unassigned = []
    for m in members:
        if m.table_id in by_table:
            by_table[m.table_id].append(_guest_out(m))
        elif m.attending:
            unassigned.append(_guest_out(m))
    couple = _couple_out(wedding)
    if wedding.couple_table_id in by_table:
        by_table[wedding.couple_table_id][:0] = couple
    else:
        unassigned[:0] = couple
    return {
        "tables": [
            {
                "id": t.id,
                "name": t.display_name,
                "number": t.number,
                "capacity": t.capacity,
                "guests": by_table[t.id],
            }
            for t in tables
        ],
        "unassigned_guests": unassigned,
        "stats": seating_stats(members, tables, wedding),
    }


def assign_seats(db: Session, wedding: Wedding, assignments: list[dict[str, Any]]) -> dict[str, Any]:
    """Apply [{guest_id, table_id|None}] as one batch. The whole batch is rejected if any table
    would end up over capacity."""
    members = {m.id: m for m in _members(db, wedding.id)}
    tables = {t.id: t for t in _tables(db, wedding.id)}
    planned_members: dict[int, int | None] = {}
    planned_couple: dict[str, int | None] = {}
    couple_table = wedding.couple_table_id
    for item in assignments:
        guest_id, table_id = item["guest_id"], item.get("table_id")
        if table_id is not None and table_id not in tables:
            raise ApiError(404, NOT_FOUND, f"Table {table_id} not found")
        if guest_id in COUPLE_MEMBER_IDS:
            planned_couple[guest_id] = table_id
            couple_table = table_id
            continue
        try:
            member_id = int(guest_id)
        except (TypeError, ValueError):
            raise ApiError(400, VALIDATION_ERROR, f"Invalid guest id: {guest_id}")
        if member_id not in members:
            raise ApiError(404, NOT_FOUND, f"Guest {guest_id} not found")
        planned_members[member_id] = table_id
    # The couple shares one table id
    if len(set(planned_couple.values())) > 1:
        raise ApiError(
            400,
            VALIDATION_ERROR,
            "Both members of the couple must be seated at the same table",
            {"table_ids": sorted({t for t in planned_couple.values() if t is not None})},
        )

    taken = Counter()
    for member in members.values():
        table_id = planned_members.get(member.id, member.table_id)
        if table_id is not None:
            taken[table_id] += 1
    if couple_table is not None:
        taken[couple_table] += COUPLE_SIZE
    over = [tables[tid] for tid, n in taken.items() if tid in tables and n > tables[tid].capacity]
    if over:
        raise ApiError(
            400,
            VALIDATION_ERROR,
            f"{over[0].display_name} exceeds its capacity of {over[0].capacity}",
            {"table_ids": sorted(t.id for t in over)},
        )

    for member_id, table_id in planned_members.items():
        members[member_id].table_id = table_id
    wedding.couple_table_id = couple_table
    db.commit()
    return get_seating(db, wedding)


def upsert_tables(db: Session, wedding: Wedding, items: list[dict[str, Any]]) -> dict[str, Any]:
    """Replace the table layout. Unlisted tables are deleted and their guests unassigned."""
    numbers = [item["number"] for item in items]
    if len(numbers) != len(set(numbers)):
        raise ApiError(400, VALIDATION_ERROR, "Table numbers must be unique")
    members = _members(db, wedding.id)
    existing = {t.id: t for t in _tables(db, wedding.id)}
    taken = occupancy(members, wedding)

    keep_ids: set[int] = set()
    for item in items:
        table_id = item.get("id")
        if table_id is None:
            continue
        table = existing.get(table_id)
        if table is None:
            raise ApiError(404, NOT_FOUND, f"Table {table_id} not found")
        if item["capacity"] < taken.get(table_id, 0):
            raise ApiError(
                400,
                VALIDATION_ERROR,
                f"{table.display_name} has {taken[table_id]} guests seated; capacity cannot go below that",
            )
        keep_ids.add(table_id)

    for table_id, table in existing.items():
        if table_id in keep_ids:
            continue
        for m in members:
            if m.table_id == table_id:
                m.table_id = None
        if wedding.couple_table_id == table_id:
            wedding.couple_table_id = None
        db.delete(table)
    db.flush()

    for item in items:
        if item.get("id") is not None:
            table = existing[item["id"]]
            table.name = item.get("name")
            table.number = item["number"]
            table.capacity = item["capacity"]
        else:
            db.add(Table(wedding_id=wedding.id, name=item.get("name"), number=item["number"], capacity=item["capacity"]))
    db.commit()
    return get_seating(db, wedding)


def random_assign(db: Session, wedding: Wedding, rng: random.Random | None = None) -> dict[str, Any]:
    """Seat unassigned confirmed guests at random, keeping each (family, seating_group) cluster
    at one table when a table has room for it. Guests that fit nowhere stay unassigned."""
    rng = rng or random.Random()
    tables = _tables(db, wedding.id)
    if not tables:
        raise ApiError(400, VALIDATION_ERROR, "No tables configured")
    members = _members(db, wedding.id)
    table_ids = {t.id for t in tables}
    taken = occupancy([m for m in members if m.table_id in table_ids], wedding)
    remaining = {t.id: t.capacity - taken.get(t.id, 0) for t in tables}

    clusters: dict[tuple, list] = {}
    for m in members:
        if m.attending and m.table_id not in table_ids:
            clusters.setdefault((m.family_id, m.seating_group or ""), []).append(m)
    if wedding.couple_table_id not in table_ids:
        clusters[("couple", "")] = list(COUPLE_MEMBER_IDS)
    groups = list(clusters.values())
    rng.shuffle(groups)

    placed = 0
    left_over = 0
    for group in groups:
        order = [t.id for t in tables]
        rng.shuffle(order)
        target = next((tid for tid in order if remaining[tid] >= len(group)), None)
        is_couple = group[0] in COUPLE_MEMBER_IDS
        if target is None and is_couple:
            # the couple is never split
            left_over += len(group)
            continue
        for g in group:
            tid = target if target is not None else next((t.id for t in tables if remaining[t.id] >= 1), None)
            if tid is None:
                left_over += 1
                continue
            remaining[tid] -= 1
            if is_couple:
                wedding.couple_table_id = tid
            else:
                g.table_id = tid
            placed += 1
    db.commit()
    result = get_seating(db, wedding)
    result["assigned_count"] = placed
    result["unassigned_count"] = left_over
    return result
