from datetime import date, timedelta

from conftest import PLANNER_EMAIL, bearer, make_wedding, token_for

from app.models.principal import UserRole, WeddingPlanner
from app.models.template import MessageTemplate
from app.models.wedding import Wedding

NEW_WEDDING = {
    "couple_names": "Lucía y Jorge",
    "wedding_date": (date.today() + timedelta(days=200)).isoformat(),
    "wedding_time": "19:30",
    "location": "Hacienda San Rafael, Sevilla",
    "rsvp_cutoff_date": (date.today() + timedelta(days=150)).isoformat() + "T00:00:00",
    "default_language": "en",
}


def _other_planner_headers(db):
    other = WeddingPlanner(email="other@nupci-demo.com", name="Other Events", enabled=True)
    db.add(other)
    db.commit()
    return other, bearer(token_for(other.email, UserRole.planner, planner_id=other.id))


def test_create_wedding_seeds_templates_and_initials(client, db, wedding, planner_headers):
    r = client.post("/api/planner/weddings", json=NEW_WEDDING, headers=planner_headers)
    assert r.status_code == 201
    data = r.json()["data"]
    assert data["status"] == "ACTIVE"
    assert data["default_language"] == "EN"
    # "LJ" is taken by the fixture wedding
    assert data["short_url_initials"] == "LJ1"
    assert db.query(MessageTemplate).filter(MessageTemplate.wedding_id == data["id"]).count() == 30


def test_create_wedding_validates_dates_and_time(client, planner_headers):
    late_cutoff = dict(NEW_WEDDING, rsvp_cutoff_date=(date.today() + timedelta(days=300)).isoformat() + "T00:00:00")
    assert client.post("/api/planner/weddings", json=late_cutoff, headers=planner_headers).status_code == 400
    bad_time = dict(NEW_WEDDING, wedding_time="7pm")
    assert client.post("/api/planner/weddings", json=bad_time, headers=planner_headers).status_code == 400


def test_planners_only_see_their_weddings(client, db, wedding, families, planner_headers):
    r = client.get("/api/planner/weddings", headers=planner_headers)
    rows = r.json()["data"]
    assert [w["id"] for w in rows] == [wedding.id]
    assert rows[0]["family_count"] == 2
    assert rows[0]["admin_count"] == 1

    _, other_headers = _other_planner_headers(db)
    assert client.get("/api/planner/weddings", headers=other_headers).json()["data"] == []
    r = client.get(f"/api/planner/weddings/{wedding.id}", headers=other_headers)
    assert r.status_code == 403
    assert client.get("/api/planner/weddings/99999", headers=planner_headers).status_code == 404


def test_invite_wedding_admin(client, db, wedding, planner_headers):
    r = client.post(
        f"/api/planner/weddings/{wedding.id}/admins",
        json={"email": "Javier@Nupci-Demo.com", "name": "Javier"},
        headers=planner_headers,
    )
    assert r.status_code == 201
    assert r.json()["data"]["email"] == "javier@nupci-demo.com"

    r = client.post(f"/api/planner/weddings/{wedding.id}/admins", json={"email": "javier@nupci-demo.com"}, headers=planner_headers)
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "ALREADY_EXISTS"

    admins = client.get(f"/api/planner/weddings/{wedding.id}/admins", headers=planner_headers).json()["data"]
    assert [a["email"] for a in admins] == ["javier@nupci-demo.com"]


def test_soft_delete_and_restore(client, db, wedding, families, planner_headers):
    token = families[0].magic_token
    assert client.get(f"/api/guest/{token}").status_code == 200

    r = client.delete(f"/api/planner/weddings/{wedding.id}", headers=planner_headers)
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "DELETED"
    assert client.get("/api/planner/weddings", headers=planner_headers).json()["data"] == []
    deleted = client.get("/api/planner/weddings/deleted", headers=planner_headers).json()["data"]
    assert [w["id"] for w in deleted] == [wedding.id]
    assert client.get(f"/api/guest/{token}").status_code == 404

    r = client.patch(f"/api/planner/weddings/{wedding.id}", json={"status": "ACTIVE"}, headers=planner_headers)
    assert r.status_code == 200
    assert r.json()["data"]["deleted_at"] is None
    assert client.get(f"/api/guest/{token}").status_code == 200


def test_patch_cannot_delete(client, wedding, planner_headers):
    r = client.patch(f"/api/planner/weddings/{wedding.id}", json={"status": "DELETED"}, headers=planner_headers)
    assert r.status_code == 400


def test_planner_stats(client, db, planner, wedding, families, planner_headers):
    for m in families[1].members:
        m.attending = m.type.value == "ADULT"
    db.commit()
    make_wedding(db, planner, couple_names="Eva y Raúl", days_ahead=-30, cutoff_days_ahead=-60)
    r = client.get("/api/planner/stats", headers=planner_headers)
    data = r.json()["data"]
    assert data["wedding_count"] == 2
    assert data["total_guests"] == 5
    assert data["rsvp_completion_percentage"] == 50
    assert [w["id"] for w in data["upcoming_weddings"]] == [wedding.id]


def test_provider_categories(client, planner_headers):
    r = client.post("/api/planner/providers/categories", json={"name": "Catering"}, headers=planner_headers)
    assert r.status_code == 201
    assert client.post("/api/planner/providers/categories", json={"name": " Catering "}, headers=planner_headers).status_code == 409
    names = [c["name"] for c in client.get("/api/planner/providers/categories", headers=planner_headers).json()["data"]]
    assert names == ["Catering"]


def test_provider_ledger_totals(client, db, wedding, admin_headers, planner_headers):
    category = client.post("/api/planner/providers/categories", json={"name": "Photography"}, headers=planner_headers).json()["data"]
    base = f"/api/weddings/{wedding.id}"
    r = client.post(
        f"{base}/providers",
        json={"category_id": category["id"], "name": "Luz Studio", "total_price": "2500.00"},
        headers=planner_headers,
    )
    assert r.status_code == 201
    provider_id = r.json()["data"]["id"]

    for amount in ("1000.00", "500.00"):
        r = client.post(f"{base}/providers/{provider_id}/payments", json={"amount": amount, "method": "BANK_TRANSFER"}, headers=admin_headers)
        assert r.status_code == 201

    r = client.get(f"{base}/providers", headers=admin_headers)
    provider = r.json()["data"][0]
    assert provider["category_name"] == "Photography"
    assert float(provider["total_paid"]) == 1500
    assert float(provider["remaining"]) == 1000
    assert float(r.json()["totals"]["remaining"]) == 1000

    ledger = client.get(f"{base}/payments", headers=planner_headers).json()
    assert [p["provider_name"] for p in ledger["data"]] == ["Luz Studio", "Luz Studio"]
    assert float(ledger["total_paid"]) == 1500


def test_provider_category_must_belong_to_the_wedding_planner(client, db, wedding, planner_headers):
    other, other_headers = _other_planner_headers(db)
    category = client.post("/api/planner/providers/categories", json={"name": "Flowers"}, headers=other_headers).json()["data"]
    r = client.post(
        f"/api/weddings/{wedding.id}/providers",
        json={"category_id": category["id"], "name": "Rosa"},
        headers=planner_headers,
    )
    assert r.status_code == 400
    assert client.get(f"/api/weddings/{wedding.id}/providers", headers=other_headers).status_code == 403


def test_master_manages_planners(client, db, planner, master_headers):
    r = client.post("/api/master/planners", json={"email": "New@Nupci-Demo.com", "name": "New Planner"}, headers=master_headers)
    assert r.status_code == 201
    new_id = r.json()["data"]["id"]
    assert r.json()["data"]["email"] == "new@nupci-demo.com"
    assert client.post("/api/master/planners", json={"email": PLANNER_EMAIL, "name": "Dup"}, headers=master_headers).status_code == 409

    r = client.patch(f"/api/master/planners/{new_id}", json={}, headers=master_headers)
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "No fields to update"
    assert client.patch(f"/api/master/planners/{new_id}", json={"enabled": None}, headers=master_headers).status_code == 400
    assert client.patch("/api/master/planners/99999", json={"enabled": False}, headers=master_headers).status_code == 404

    r = client.patch(f"/api/master/planners/{planner.id}", json={"enabled": False}, headers=master_headers)
    assert r.json()["data"]["enabled"] is False
    r = client.get("/api/master/planners", params={"enabled": "true"}, headers=master_headers)
    assert [p["id"] for p in r.json()["data"]] == [new_id]


def test_master_sees_every_wedding(client, db, planner, wedding, families, master_headers):
    other = WeddingPlanner(email="other@nupci-demo.com", name="Other Events", enabled=True)
    db.add(other)
    db.commit()
    make_wedding(db, other, couple_names="Eva y Raúl")

    r = client.get("/api/master/weddings", params={"limit": 500}, headers=master_headers)
    body = r.json()
    assert body["pagination"]["limit"] == 100
    assert body["pagination"]["total"] == 2
    mine = next(w for w in body["data"] if w["id"] == wedding.id)
    assert mine["planner_name"] == "Olivar Weddings"
    assert mine["family_count"] == 2

    r = client.get("/api/master/weddings", params={"planner_id": other.id}, headers=master_headers)
    assert [w["couple_names"] for w in r.json()["data"]] == ["Eva y Raúl"]
    assert db.query(Wedding).count() == 2
