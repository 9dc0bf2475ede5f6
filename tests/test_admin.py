from io import BytesIO

from conftest import make_family, make_wedding
from openpyxl import load_workbook

from app.models.family import Family, MemberType
from app.models.tracking import EventType, TrackingEvent
from app.models.wedding import PaymentTrackingMode


def test_list_and_filter_families(client, db, families, admin_headers):
    for m in families[1].members:
        m.attending = True
    db.commit()
    r = client.get("/api/admin/guests", headers=admin_headers)
    assert [f["name"] for f in r.json()["data"]] == ["García", "Smith"]
    assert r.json()["data"][1]["short_url"].startswith("/inv/LJ/")

    pending = client.get("/api/admin/guests", params={"rsvp_status": "pending"}, headers=admin_headers).json()["data"]
    assert [f["name"] for f in pending] == ["Smith"]
    found = client.get("/api/admin/guests", params={"search": "ana@"}, headers=admin_headers).json()["data"]
    assert [f["name"] for f in found] == ["García"]
    assert client.get("/api/admin/guests", params={"rsvp_status": "maybe"}, headers=admin_headers).status_code == 400


def test_create_update_delete_family(client, db, wedding, families, admin_headers):
    r = client.post(
        "/api/admin/guests",
        json={"name": "Navarro", "preferred_language": "it", "members": [{"name": "Luca Navarro", "age": 33}]},
        headers=admin_headers,
    )
    assert r.status_code == 201
    family = r.json()["data"]
    assert family["preferred_language"] == "IT"
    assert family["members"][0]["type"] == "ADULT"

    dup = client.post("/api/admin/guests", json={"name": "Navarro", "members": [{"name": "Other"}]}, headers=admin_headers)
    assert dup.status_code == 409

    member_id = family["members"][0]["id"]
    r = client.patch(
        f"/api/admin/guests/{family['id']}",
        json={"members": [{"id": member_id, "name": "Luca Navarro", "age": 34}, {"name": "Giulia Navarro", "type": "ADULT"}]},
        headers=admin_headers,
    )
    assert r.status_code == 200
    assert [(m["name"], m["age"]) for m in r.json()["data"]["members"]] == [("Luca Navarro", 34), ("Giulia Navarro", None)]

    assert client.patch(f"/api/admin/guests/{families[0].id}", json={"name": "Navarro"}, headers=admin_headers).status_code == 409

    assert client.delete(f"/api/admin/guests/{family['id']}", headers=admin_headers).status_code == 200
    assert db.query(Family).filter(Family.id == family["id"]).first() is None


def test_regenerated_link_replaces_the_old_one(client, db, families, admin_headers):
    smith = families[0]
    old = smith.magic_token
    r = client.post(f"/api/admin/guests/{smith.id}/regenerate-link", headers=admin_headers)
    new = r.json()["data"]["magic_token"]
    assert new != old
    assert client.get(f"/api/guest/{old}").status_code == 404
    assert client.get(f"/api/guest/{new}").status_code == 200


def test_family_timeline(client, db, families, admin_headers):
    smith = families[0]
    client.get(f"/api/guest/{smith.magic_token}")
    r = client.get(f"/api/admin/guests/{smith.id}/timeline", headers=admin_headers)
    data = r.json()["data"]
    assert [e["event_type"] for e in data["events"]] == ["LINK_OPENED"]
    assert data["engagement"]["steps"]["link_opened"] is not None


def test_families_of_other_weddings_are_not_found(client, db, planner, families, admin_headers):
    other = make_wedding(db, planner, couple_names="Eva y Raúl")
    stranger = make_family(db, other, "Ruiz", [("Eva Ruiz", "ADULT", 30)])
    assert client.get(f"/api/admin/guests/{stranger.id}", headers=admin_headers).status_code == 404


def test_record_gift_tracks_payment(client, db, families, admin_headers):
    garcia = families[1]
    r = client.post("/api/admin/payments", json={"family_id": garcia.id, "amount": "150.00"}, headers=admin_headers)
    assert r.status_code == 201
    gift = r.json()["data"]
    assert gift["status"] == "RECEIVED"
    assert gift["family_name"] == "García"
    event = db.query(TrackingEvent).filter(TrackingEvent.event_type == EventType.PAYMENT_RECEIVED).one()
    assert event.meta == {"gift_id": gift["id"], "amount": "150.00"}

    r = client.patch(f"/api/admin/payments/{gift['id']}", json={"status": "CONFIRMED"}, headers=admin_headers)
    assert r.json()["data"]["status"] == "CONFIRMED"
    listed = client.get("/api/admin/payments", params={"status": "CONFIRMED"}, headers=admin_headers).json()
    assert listed["pagination"]["total"] == 1


def test_guest_payment_info_uses_reference_code(client, db, wedding, admin_headers):
    wedding.payment_tracking_mode = PaymentTrackingMode.AUTOMATED
    wedding.gift_iban = "ES9121000418450200051332"
    db.commit()
    r = client.post("/api/admin/guests", json={"name": "Navarro", "members": [{"name": "Luca"}]}, headers=admin_headers)
    family = r.json()["data"]
    assert family["reference_code"] and len(family["reference_code"]) == 6

    info = client.get(f"/api/guest/{family['magic_token']}/payment").json()["data"]
    assert info["iban"] == "ES9121000418450200051332"
    assert info["reference_code"] == family["reference_code"]


def test_wedding_stats_and_reports(client, db, families, admin_headers):
    smith, garcia = families
    smith.members[0].attending = True
    smith.members[1].attending = False
    db.commit()

    stats = client.get("/api/admin/wedding/stats", headers=admin_headers).json()["data"]
    assert stats["total_families"] == 2
    assert stats["total_guests"] == 5
    assert stats["attending"] == 1
    assert stats["not_attending"] == 1
    assert stats["pending"] == 3
    assert stats["rsvp_completion_percentage"] == 50

    rows = client.get("/api/admin/reports/attendees", headers=admin_headers).json()["data"]
    assert len(rows) == 5
    assert {r["attending"] for r in rows} == {"Yes", "No", "Pending"}

    per_admin = client.get("/api/admin/reports/guests-per-admin", headers=admin_headers).json()["data"]
    assert [(r["admin_email"], r["total_families"]) for r in per_admin] == [("couple@nupci-demo.com", 1), ("", 1)]

    ages = client.get("/api/admin/reports/age-average", headers=admin_headers).json()["data"]
    assert {r["group_name"]: r["guest_count"] for r in ages} == {"Laura": 2, "Not assigned": 3}

    r = client.get("/api/admin/reports/attendees", params={"format": "xlsx"}, headers=admin_headers)
    sheet = load_workbook(BytesIO(r.content)).active
    assert sheet.cell(row=1, column=1).value == "Family"
    assert sheet.max_row == 6

    assert client.get("/api/admin/reports/unknown", headers=admin_headers).status_code == 404
    assert client.get("/api/admin/reports/attendees", params={"format": "pdf"}, headers=admin_headers).status_code == 400


def test_health(client, db):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"


def test_family_member_count_is_bounded(client, db, families, admin_headers):
    assert client.post("/api/admin/guests", json={"name": "Solo", "members": []}, headers=admin_headers).status_code == 400
    eleven = [{"name": f"Member {n}"} for n in range(11)]
    assert client.post("/api/admin/guests", json={"name": "Big", "members": eleven}, headers=admin_headers).status_code == 400
    r = client.patch(f"/api/admin/guests/{families[0].id}", json={"members": eleven}, headers=admin_headers)
    assert r.status_code == 400
    assert client.patch(f"/api/admin/guests/{families[0].id}", json={"members": []}, headers=admin_headers).status_code == 400


def test_family_update_rejects_null_required_fields(client, db, families, admin_headers):
    smith = families[0]
    for field in ("name", "preferred_language"):
        r = client.patch(f"/api/admin/guests/{smith.id}", json={field: None}, headers=admin_headers)
        assert r.status_code == 400
        assert r.json()["error"]["code"] == "VALIDATION_ERROR"
    db.refresh(smith)
    assert smith.name == "Smith"
    assert smith.preferred_language == "EN"

    r = client.patch(f"/api/admin/guests/{smith.id}", json={"contact_person": None}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"]["contact_person"] is None


def test_wedding_update_rejects_null_required_fields(client, db, wedding, admin_headers):
    r = client.patch("/api/admin/wedding", json={"couple_names": None, "location": "Toledo"}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"
    assert r.json()["error"]["details"] == {"fields": ["couple_names"]}
    db.refresh(wedding)
    assert wedding.couple_names == "Laura y Javier"
    assert wedding.location == "Finca El Olivar, Madrid"

    r = client.patch("/api/admin/wedding", json={"dress_code": None}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"]["dress_code"] is None


def test_bulk_delete_is_all_or_nothing(client, db, planner, wedding, families, admin_headers):
    other = make_wedding(db, planner, couple_names="Marta y Pedro")
    outsider = make_family(db, other, "Ruiz", [("Eva Ruiz", MemberType.ADULT, 30)])
    smith, garcia = families
    r = client.post("/api/admin/guests/bulk-delete", json={"family_ids": [smith.id, outsider.id]}, headers=admin_headers)
    assert r.status_code == 403
    assert db.query(Family).count() == 3

    r = client.post("/api/admin/guests/bulk-delete", json={"family_ids": []}, headers=admin_headers)
    assert r.status_code == 400

    r = client.post("/api/admin/guests/bulk-delete", json={"family_ids": [smith.id, garcia.id]}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"] == {"deleted_count": 2}
    assert [f.name for f in db.query(Family).all()] == ["Ruiz"]


def test_wedding_page_finds_invitations_by_contact(client, db, wedding, families):
    r = client.get("/w/lj")
    assert r.status_code == 200
    assert r.json()["data"]["couple_names"] == "Laura y Javier"
    smith, garcia = families

    r = client.post("/w/LJ/lookup", json={"contact": " ANA@nupci-demo.com "})
    assert r.json()["data"]["short_url"] == f"/inv/LJ/{garcia.short_url_code}"
    r = client.post("/w/LJ/lookup", json={"contact": "+34 600 000 002"})
    assert r.json()["data"]["short_url"] == f"/inv/LJ/{garcia.short_url_code}"
    r = client.post("/w/LJ/lookup", json={"contact": "+34-600-000-001"})
    assert r.json()["data"]["short_url"] == f"/inv/LJ/{smith.short_url_code}"

    assert client.post("/w/LJ/lookup", json={"contact": "nobody@nupci-demo.com"}).status_code == 404
    assert client.get("/w/ZZ").status_code == 404
