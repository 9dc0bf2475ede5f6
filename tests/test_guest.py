import uuid
from datetime import datetime, timedelta

from app.database import utcnow
from app.models.family import FamilyMember
from app.models.tracking import EventType, TrackingEvent
from app.models.wedding import WeddingStatus


def _events(db, family_id, event_type):
    return (
        db.query(TrackingEvent)
        .filter(TrackingEvent.family_id == family_id, TrackingEvent.event_type == event_type)
        .all()
    )


def test_valid_token_returns_owning_wedding(client, db, wedding, families):
    smith = families[0]
    r = client.get(f"/api/guest/{smith.magic_token}")
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["data"]["wedding"]["wedding_id"] == wedding.id
    assert body["data"]["family"]["name"] == "Smith"
    assert [m["name"] for m in body["data"]["family"]["members"]] == ["John Smith", "Mary Smith"]
    assert body["data"]["rsvp_cutoff_passed"] is False


def test_malformed_token_is_invalid(client, families):
    r = client.get("/api/guest/not-a-token")
    assert r.status_code == 404
    error = r.json()["error"]
    assert error["code"] == "INVALID_TOKEN"
    assert error["details"]["reason"] == "INVALID_TOKEN_FORMAT"


def test_unknown_token_is_invalid(client, families):
    r = client.get(f"/api/guest/{uuid.uuid4()}")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "INVALID_TOKEN"
    assert r.json()["error"]["details"]["reason"] == "TOKEN_NOT_FOUND"


def test_link_expires_after_wedding_day(client, db, wedding, families):
    wedding.wedding_date = utcnow().date() - timedelta(days=1)
    wedding.rsvp_cutoff_date = datetime.combine(utcnow().date() - timedelta(days=10), datetime.min.time())
    db.commit()
    r = client.get(f"/api/guest/{families[0].magic_token}")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "INVALID_TOKEN"
    assert r.json()["error"]["details"]["reason"] == "TOKEN_EXPIRED"


def test_link_still_valid_on_wedding_day(client, db, wedding, families):
    wedding.wedding_date = utcnow().date()
    wedding.rsvp_cutoff_date = datetime.combine(utcnow().date() - timedelta(days=10), datetime.min.time())
    db.commit()
    r = client.get(f"/api/guest/{families[0].magic_token}")
    assert r.status_code == 200
    assert r.json()["data"]["rsvp_cutoff_passed"] is True


def test_deleted_wedding_links_stop_working(client, db, wedding, families):
    wedding.status = WeddingStatus.DELETED
    db.commit()
    r = client.get(f"/api/guest/{families[0].magic_token}")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "INVALID_TOKEN"


def test_opening_link_is_tracked_except_for_previews(client, db, families):
    smith = families[0]
    client.get(f"/api/guest/{smith.magic_token}?channel=whatsapp")
    client.get(f"/api/guest/{smith.magic_token}", headers={"User-Agent": "WhatsApp/2.23.20 A"})
    opened = _events(db, smith.id, EventType.LINK_OPENED)
    assert len(opened) == 1
    assert opened[0].channel.value == "WHATSAPP"


def test_rsvp_submit_then_update(client, db, families, monkeypatch):
    sent = []
    monkeypatch.setattr("app.routers.guest.send_rsvp_confirmation_email", lambda *args: sent.append(args))
    garcia = families[1]
    member_ids = [m.id for m in garcia.members]
    payload = {"members": [
        {"member_id": member_ids[0], "attending": True, "dietary_restrictions": "Vegetarian"},
        {"member_id": member_ids[1], "attending": False, "dietary_restrictions": "ignored"},
    ]}
    r = client.post(f"/api/guest/{garcia.magic_token}/rsvp", json=payload)
    assert r.status_code == 200
    assert r.json()["is_update"] is False
    members = {m["id"]: m for m in r.json()["data"]["members"]}
    assert members[member_ids[0]]["dietary_restrictions"] == "Vegetarian"
    assert members[member_ids[1]]["dietary_restrictions"] is None
    assert len(sent) == 1

    r = client.post(f"/api/guest/{garcia.magic_token}/rsvp", json={"members": [{"member_id": member_ids[2], "attending": True}]})
    assert r.json()["is_update"] is True
    assert len(_events(db, garcia.id, EventType.RSVP_SUBMITTED)) == 1
    updated = _events(db, garcia.id, EventType.RSVP_UPDATED)
    assert len(updated) == 1
    assert updated[0].meta["attending_count"] == 2


def test_rsvp_rejects_members_of_other_families(client, families):
    smith, garcia = families
    r = client.post(
        f"/api/guest/{smith.magic_token}/rsvp",
        json={"members": [{"member_id": garcia.members[0].id, "attending": True}]},
    )
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"


def test_rsvp_after_cutoff_is_forbidden(client, db, wedding, families):
    wedding.rsvp_cutoff_date = utcnow() - timedelta(hours=1)
    db.commit()
    smith = families[0]
    r = client.post(
        f"/api/guest/{smith.magic_token}/rsvp",
        json={"members": [{"member_id": smith.members[0].id, "attending": True}]},
    )
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "RSVP_CUTOFF_PASSED"


def test_guest_can_add_member_when_allowed(client, db, wedding, families):
    smith = families[0]
    r = client.post(f"/api/guest/{smith.magic_token}/member", json={"name": "Baby Smith", "type": "INFANT", "age": 1})
    assert r.status_code == 200
    added = db.query(FamilyMember).filter(FamilyMember.family_id == smith.id, FamilyMember.name == "Baby Smith").one()
    assert added.added_by_guest is True
    assert len(_events(db, smith.id, EventType.GUEST_ADDED)) == 1

    wedding.allow_guest_additions = False
    db.commit()
    r = client.post(f"/api/guest/{smith.magic_token}/member", json={"name": "Uncle Smith", "type": "ADULT"})
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "GUEST_ADDITIONS_DISABLED"


def test_guests_cannot_grow_a_family_past_ten(client, db, families):
    garcia = families[1]
    for n in range(7):
        r = client.post(f"/api/guest/{garcia.magic_token}/member", json={"name": f"Cousin {n}", "type": "ADULT"})
        assert r.status_code == 200
    r = client.post(f"/api/guest/{garcia.magic_token}/member", json={"name": "One more", "type": "ADULT"})
    assert r.status_code == 400
    assert db.query(FamilyMember).filter(FamilyMember.family_id == garcia.id).count() == 10


def test_language_update_validates(client, db, families):
    smith = families[0]
    assert client.patch(f"/api/guest/{smith.magic_token}/language", json={"language": "fr"}).status_code == 200
    db.refresh(smith)
    assert smith.preferred_language == "FR"
    r = client.patch(f"/api/guest/{smith.magic_token}/language", json={"language": "PT"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"


def test_short_url_redirects_to_magic_link(client, db, wedding, families):
    smith = families[0]
    assert wedding.short_url_initials == "LJ"
    r = client.get(f"/inv/LJ/{smith.short_url_code}?channel=whatsapp", follow_redirects=False)
    assert r.status_code == 307
    assert r.headers["location"] == f"/rsvp/{smith.magic_token}?channel=whatsapp"

    r = client.get("/inv/LJ/zzzzzz", follow_redirects=False)
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "NOT_FOUND"
