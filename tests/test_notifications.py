from io import BytesIO

from conftest import make_family, make_wedding
from openpyxl import load_workbook

from app.models.family import Channel, MemberType
from app.models.tracking import EventType, Notification
from app.services.tracking import get_channel_stats, get_family_engagement, track_event


def _seed_events(db, wedding, families):
    smith, garcia = families
    return [
        track_event(db, smith.id, wedding.id, EventType.INVITATION_SENT, channel=Channel.WHATSAPP, admin_triggered=True),
        track_event(db, smith.id, wedding.id, EventType.LINK_OPENED, channel=Channel.WHATSAPP),
        track_event(db, garcia.id, wedding.id, EventType.RSVP_SUBMITTED, metadata={"attending_count": 2}),
    ]


def test_events_are_listed_newest_first_with_unread_count(client, db, wedding, families, admin_headers):
    events = _seed_events(db, wedding, families)
    r = client.get("/api/admin/notifications", headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert [e["id"] for e in body["data"]] == [e.id for e in reversed(events)]
    assert body["unread_count"] == 3
    assert body["pagination"]["total"] == 3
    assert body["data"][0]["family_name"] == "García"
    assert body["data"][0]["metadata"] == {"attending_count": 2}
    assert body["data"][0]["read"] is False


def test_filters(client, db, wedding, families, admin_headers):
    _seed_events(db, wedding, families)
    r = client.get("/api/admin/notifications", params={"channel": "WHATSAPP"}, headers=admin_headers)
    assert len(r.json()["data"]) == 2
    r = client.get("/api/admin/notifications", params={"event_type": "LINK_OPENED"}, headers=admin_headers)
    assert [e["event_type"] for e in r.json()["data"]] == ["LINK_OPENED"]
    r = client.get("/api/admin/notifications", params={"family_id": families[1].id}, headers=admin_headers)
    assert len(r.json()["data"]) == 1


def test_mark_read_overlays_without_touching_events(client, db, wedding, families, admin_headers, wedding_admin):
    events = _seed_events(db, wedding, families)
    r = client.patch("/api/admin/notifications/mark-read", json={"event_ids": [events[0].id, events[1].id]}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"] == {"updated": 2, "unread_count": 1}

    # marking again is a no-op
    r = client.patch("/api/admin/notifications/mark-read", json={"event_ids": [events[0].id]}, headers=admin_headers)
    assert r.json()["data"]["updated"] == 0

    note = db.query(Notification).filter(Notification.tracking_event_id == events[0].id).one()
    assert note.admin_id == wedding_admin.id
    assert note.read_at is not None

    unread = client.get("/api/admin/notifications", params={"read": "false"}, headers=admin_headers).json()["data"]
    assert [e["id"] for e in unread] == [events[2].id]
    read = client.get("/api/admin/notifications", params={"read": "true"}, headers=admin_headers).json()["data"]
    assert {e["id"] for e in read} == {events[0].id, events[1].id}


def test_other_weddings_events_are_ignored(client, db, planner, wedding, families, admin_headers):
    other = make_wedding(db, planner, couple_names="Marta y Pedro")
    stranger = make_family(db, other, "Ruiz", [("Eva Ruiz", MemberType.ADULT, 30)])
    foreign = track_event(db, stranger.id, other.id, EventType.LINK_OPENED)

    r = client.patch("/api/admin/notifications/mark-read", json={"event_ids": [foreign.id]}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"]["updated"] == 0
    assert db.query(Notification).count() == 0

    assert client.patch(f"/api/admin/notifications/{foreign.id}/read", headers=admin_headers).status_code == 404
    assert client.get("/api/admin/notifications", headers=admin_headers).json()["data"] == []


def test_mark_single_read(client, db, wedding, families, admin_headers):
    events = _seed_events(db, wedding, families)
    r = client.patch(f"/api/admin/notifications/{events[2].id}/read", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"]["unread_count"] == 2
    assert client.get("/api/admin/notifications/unread-count", headers=admin_headers).json()["data"] == {"unread_count": 2}


def test_export_xlsx(client, db, wedding, families, admin_headers):
    _seed_events(db, wedding, families)
    r = client.get("/api/admin/notifications/export", headers=admin_headers)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/vnd.openxmlformats")
    sheet = load_workbook(BytesIO(r.content)).active
    rows = list(sheet.iter_rows(values_only=True))
    assert rows[0][:3] == ("Timestamp", "Family", "Event")
    assert len(rows) == 4
    assert rows[1][2] == "RSVP_SUBMITTED"
    assert rows[1][6] == "attending_count=2"


def test_engagement_and_channel_stats(db, wedding, families):
    _seed_events(db, wedding, families)
    smith = families[0]
    engagement = get_family_engagement(db, smith.id)
    assert engagement["steps"]["invited"] is not None
    assert engagement["steps"]["link_opened"] is not None
    assert engagement["steps"]["rsvp_confirmed"] is None
    assert engagement["completion_percentage"] == 40

    stats = get_channel_stats(db, wedding.id)
    assert stats["WHATSAPP"]["sent"] == 1
    assert stats["EMAIL"]["sent"] == 0
    assert stats["WHATSAPP"]["delivery_rate"] == 1.0
