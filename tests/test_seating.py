import random

import pytest

from app.errors import ApiError
from app.models.family import FamilyMember
from app.services.seating import COUPLE_MEMBER_IDS, random_assign


def _layout(client, headers, *capacities):
    r = client.put(
        "/api/admin/seating/tables",
        json={"tables": [{"number": n, "capacity": c} for n, c in enumerate(capacities, start=1)]},
        headers=headers,
    )
    assert r.status_code == 200
    return [t["id"] for t in r.json()["data"]["tables"]]


def _confirm_all(db, families):
    for family in families:
        for m in family.members:
            m.attending = True
    db.commit()


def test_batch_over_capacity_is_rejected_whole(client, db, admin_headers, families):
    small, big = _layout(client, admin_headers, 2, 6)
    garcia = families[1]
    assignments = [{"guest_id": m.id, "table_id": small} for m in garcia.members]
    r = client.post("/api/admin/seating", json={"assignments": assignments}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"
    assert r.json()["error"]["details"]["table_ids"] == [small]
    assert db.query(FamilyMember).filter(FamilyMember.table_id.isnot(None)).count() == 0


def test_assigned_seats_never_exceed_total(client, db, admin_headers, families):
    _confirm_all(db, families)
    small, big = _layout(client, admin_headers, 2, 6)
    smith, garcia = families
    assignments = [{"guest_id": m.id, "table_id": small} for m in smith.members]
    assignments += [{"guest_id": m.id, "table_id": big} for m in garcia.members]
    assignments += [{"guest_id": cid, "table_id": big} for cid in COUPLE_MEMBER_IDS]
    r = client.post("/api/admin/seating", json={"assignments": assignments}, headers=admin_headers)
    assert r.status_code == 200
    stats = r.json()["data"]["stats"]
    assert stats["total_seats"] == 8
    assert stats["assigned_seats"] == 7
    assert stats["assigned_seats"] <= stats["total_seats"]
    assert r.json()["data"]["unassigned_guests"] == []


def test_couple_takes_two_seats(client, db, admin_headers, wedding, families):
    small, big = _layout(client, admin_headers, 2, 6)
    r = client.post(
        "/api/admin/seating",
        json={"assignments": [{"guest_id": "couple-member-1", "table_id": small}]},
        headers=admin_headers,
    )
    assert r.status_code == 200
    db.refresh(wedding)
    assert wedding.couple_table_id == small
    couple_table = next(t for t in r.json()["data"]["tables"] if t["id"] == small)
    assert [g["id"] for g in couple_table["guests"]] == list(COUPLE_MEMBER_IDS)

    r = client.post(
        "/api/admin/seating",
        json={"assignments": [{"guest_id": families[0].members[0].id, "table_id": small}]},
        headers=admin_headers,
    )
    assert r.status_code == 400


def test_unknown_table_and_guest(client, admin_headers, families):
    (table_id,) = _layout(client, admin_headers, 4)
    r = client.post("/api/admin/seating", json={"assignments": [{"guest_id": 99999, "table_id": table_id}]}, headers=admin_headers)
    assert r.status_code == 404
    r = client.post(
        "/api/admin/seating",
        json={"assignments": [{"guest_id": families[0].members[0].id, "table_id": 99999}]},
        headers=admin_headers,
    )
    assert r.status_code == 404


def test_table_capacity_cannot_drop_below_occupancy(client, db, admin_headers, families):
    (table_id,) = _layout(client, admin_headers, 4)
    garcia = families[1]
    client.post(
        "/api/admin/seating",
        json={"assignments": [{"guest_id": m.id, "table_id": table_id} for m in garcia.members]},
        headers=admin_headers,
    )
    r = client.put(
        "/api/admin/seating/tables",
        json={"tables": [{"id": table_id, "number": 1, "capacity": 2}]},
        headers=admin_headers,
    )
    assert r.status_code == 400


def test_removing_a_table_unassigns_its_guests(client, db, admin_headers, families):
    first, second = _layout(client, admin_headers, 4, 4)
    smith = families[0]
    client.post(
        "/api/admin/seating",
        json={"assignments": [{"guest_id": m.id, "table_id": second} for m in smith.members]},
        headers=admin_headers,
    )
    r = client.put("/api/admin/seating/tables", json={"tables": [{"id": first, "number": 1, "capacity": 4}]}, headers=admin_headers)
    assert r.status_code == 200
    assert len(r.json()["data"]["tables"]) == 1
    assert db.query(FamilyMember).filter(FamilyMember.table_id.isnot(None)).count() == 0


def test_duplicate_table_numbers_rejected(client, admin_headers, families):
    r = client.put(
        "/api/admin/seating/tables",
        json={"tables": [{"number": 1, "capacity": 4}, {"number": 1, "capacity": 6}]},
        headers=admin_headers,
    )
    assert r.status_code == 400


@pytest.mark.parametrize("seed", [1, 7, 42])
def test_random_assignment_keeps_families_together(client, db, admin_headers, wedding, families, seed):
    _confirm_all(db, families)
    _layout(client, admin_headers, 8, 8)
    result = random_assign(db, wedding, random.Random(seed))
    assert result["assigned_count"] == 7
    assert result["unassigned_count"] == 0
    for family in families:
        db.refresh(family)
        assert len({m.table_id for m in family.members}) == 1
    assert wedding.couple_table_id is not None
    assert result["stats"]["assigned_seats"] <= result["stats"]["total_seats"]


def test_random_assignment_needs_tables(db, wedding, families):
    with pytest.raises(ApiError) as exc:
        random_assign(db, wedding, random.Random(0))
    assert exc.value.status_code == 400


def test_couple_cannot_be_split_across_tables(client, db, admin_headers, wedding, families):
    first, second = _layout(client, admin_headers, 4, 4)
    r = client.post(
        "/api/admin/seating",
        json={"assignments": [
            {"guest_id": "couple-member-1", "table_id": first},
            {"guest_id": "couple-member-2", "table_id": second},
        ]},
        headers=admin_headers,
    )
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"
    assert r.json()["error"]["details"]["table_ids"] == sorted([first, second])
    db.refresh(wedding)
    assert wedding.couple_table_id is None

    r = client.post(
        "/api/admin/seating",
        json={"assignments": [
            {"guest_id": "couple-member-1", "table_id": first},
            {"guest_id": "couple-member-2", "table_id": None},
        ]},
        headers=admin_headers,
    )
    assert r.status_code == 400

    r = client.post(
        "/api/admin/seating",
        json={"assignments": [{"guest_id": cid, "table_id": second} for cid in COUPLE_MEMBER_IDS]},
        headers=admin_headers,
    )
    assert r.status_code == 200
    db.refresh(wedding)
    assert wedding.couple_table_id == second
