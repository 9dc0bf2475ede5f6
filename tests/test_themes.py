from datetime import datetime, timedelta

from conftest import make_wedding

from app.database import utcnow
from app.models.principal import WeddingPlanner
from app.models.template import InvitationTemplate
from app.models.theme import Theme
from app.services.themes import DEFAULT_PRESET_ID, SYSTEM_THEMES, seed_system_themes

CUSTOM_CONFIG = {"colors": {"primary": "#112233", "background": "#ABCDEF"}, "fonts": {"heading": "Lora", "body": "Lora"}}


def _preset(db, preset_id):
    return db.query(Theme).filter(Theme.preset_id == preset_id).one()


def test_seeding_system_themes_is_idempotent(db):
    assert seed_system_themes(db) == len(SYSTEM_THEMES)
    assert seed_system_themes(db) == 0
    themes = db.query(Theme).filter(Theme.is_system_theme.is_(True)).all()
    assert len(themes) == 5
    defaults = [t for t in themes if t.is_default]
    assert [t.preset_id for t in defaults] == [DEFAULT_PRESET_ID]
    assert defaults[0].name == "Classic Elegance"


def test_seeding_restores_edited_presets(db):
    seed_system_themes(db)
    theme = _preset(db, "modern-minimal")
    theme.name = "Renamed"
    db.commit()
    assert seed_system_themes(db) == 1
    db.refresh(theme)
    assert theme.name == "Modern Minimal"


def test_planner_theme_lifecycle(client, db, planner, planner_headers):
    r = client.post("/api/planner/themes", json={"name": "Olive", "config": CUSTOM_CONFIG}, headers=planner_headers)
    assert r.status_code == 201
    theme_id = r.json()["data"]["id"]
    assert r.json()["data"]["is_system_theme"] is False

    names = [t["name"] for t in client.get("/api/planner/themes", headers=planner_headers).json()["data"]]
    assert len(names) == 6
    assert names[-1] == "Olive"

    r = client.patch(f"/api/planner/themes/{theme_id}", json={"name": "Olive Grove", "config": None}, headers=planner_headers)
    assert r.status_code == 200
    assert r.json()["data"]["name"] == "Olive Grove"
    assert r.json()["data"]["config"] == CUSTOM_CONFIG

    assert client.delete(f"/api/planner/themes/{theme_id}", headers=planner_headers).status_code == 200
    assert db.query(Theme).filter(Theme.id == theme_id).first() is None


def test_theme_config_requires_colors(client, planner_headers):
    r = client.post("/api/planner/themes", json={"name": "Bare", "config": {"fonts": {}}}, headers=planner_headers)
    assert r.status_code == 400


def test_system_themes_are_read_only_for_planners(client, db, planner, planner_headers):
    system = _preset(db, DEFAULT_PRESET_ID)
    r = client.patch(f"/api/planner/themes/{system.id}", json={"name": "Mine"}, headers=planner_headers)
    assert r.status_code == 403
    assert client.delete(f"/api/planner/themes/{system.id}", headers=planner_headers).status_code == 403


def test_other_planners_themes_are_hidden(client, db, planner, planner_headers):
    other = WeddingPlanner(email="other@nupci-demo.com", name="Other", enabled=True)
    db.add(other)
    db.commit()
    theme = Theme(planner_id=other.id, name="Secret", config=CUSTOM_CONFIG)
    db.add(theme)
    db.commit()
    assert client.patch(f"/api/planner/themes/{theme.id}", json={"name": "X"}, headers=planner_headers).status_code == 404
    r = client.post(
        "/api/planner/weddings",
        json={
            "couple_names": "Sara y Tomás",
            "wedding_date": "2030-06-01",
            "wedding_time": "17:00",
            "location": "Toledo",
            "rsvp_cutoff_date": "2030-05-01T00:00:00",
            "theme_id": theme.id,
        },
        headers=planner_headers,
    )
    assert r.status_code == 404


def test_theme_in_use_cannot_be_deleted(client, db, planner, wedding, planner_headers):
    theme = Theme(planner_id=planner.id, name="Olive", config=CUSTOM_CONFIG)
    db.add(theme)
    db.commit()
    r = client.patch(f"/api/planner/weddings/{wedding.id}", json={"wedding_day_theme_id": theme.id}, headers=planner_headers)
    assert r.status_code == 200

    r = client.delete(f"/api/planner/themes/{theme.id}", headers=planner_headers)
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "THEME_IN_USE"
    assert r.json()["error"]["details"] == {"wedding_count": 1}

    # deleted weddings do not hold on to themes
    client.delete(f"/api/planner/weddings/{wedding.id}", headers=planner_headers)
    assert client.delete(f"/api/planner/themes/{theme.id}", headers=planner_headers).status_code == 200


def test_changing_the_wedding_theme_rerenders_designs(client, db, wedding, admin_headers):
    r = client.post("/api/admin/invitation-template", json={"name": "Main"}, headers=admin_headers)
    template_id = r.json()["data"]["id"]
    garden = _preset(db, "garden-romance")

    r = client.patch("/api/admin/wedding", json={"theme_id": garden.id}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"]["theme_id"] == garden.id

    template = db.query(InvitationTemplate).filter(InvitationTemplate.id == template_id).one()
    db.refresh(template)
    assert template.design["globalStyle"]["backgroundColor"] == "#F9FBF7"
    assert template.design["globalStyle"]["backgroundImage"] == "/themes/garden/floral-pattern.svg"

    themes = client.get("/api/admin/themes", headers=admin_headers).json()["data"]
    assert themes["selected_theme_id"] == garden.id
    assert len(themes["themes"]) == 5


def test_planner_theme_edit_rerenders_weddings_using_it(client, db, planner, wedding, admin_headers, planner_headers):
    theme = Theme(planner_id=planner.id, name="Olive", config=CUSTOM_CONFIG)
    db.add(theme)
    db.commit()
    client.patch("/api/admin/wedding", json={"theme_id": theme.id}, headers=admin_headers)
    r = client.post("/api/admin/invitation-template", json={"name": "Main"}, headers=admin_headers)
    template_id = r.json()["data"]["id"]

    new_config = {"colors": {"primary": "#000000", "background": "#FFEEDD"}, "images": {"background": "/bg/olive.svg"}}
    r = client.patch(f"/api/planner/themes/{theme.id}", json={"config": new_config}, headers=planner_headers)
    assert r.status_code == 200

    template = db.query(InvitationTemplate).filter(InvitationTemplate.id == template_id).one()
    db.refresh(template)
    assert template.design["globalStyle"]["backgroundColor"] == "#FFEEDD"
    assert template.design["globalStyle"]["backgroundImage"] == "/bg/olive.svg"


def test_admin_cannot_pick_a_cutoff_after_the_wedding(client, wedding, admin_headers):
    late = datetime.combine(wedding.wedding_date + timedelta(days=1), datetime.min.time())
    r = client.patch("/api/admin/wedding", json={"rsvp_cutoff_date": late.isoformat()}, headers=admin_headers)
    assert r.status_code == 400


def test_wedding_day_theme_applies_on_the_day(client, db, planner, families):
    wedding = families[0].wedding
    beach = _preset(db, "beach-breeze")
    wedding.wedding_day_theme_id = beach.id
    wedding.wedding_date = utcnow().date()
    wedding.rsvp_cutoff_date = utcnow() - timedelta(days=1)
    db.commit()
    page = client.get(f"/api/guest/{families[0].magic_token}").json()["data"]
    assert page["theme"]["preset_id"] == "beach-breeze"

    other = make_wedding(db, planner, couple_names="Marta y Pedro", wedding_day_theme_id=beach.id)
    assert other.wedding_day_theme_id == beach.id


def test_editing_a_wedding_day_theme_refreshes_cached_guest_pages(client, db, planner, families, planner_headers):
    wedding = families[0].wedding
    theme = Theme(planner_id=planner.id, name="Olive", config=CUSTOM_CONFIG)
    db.add(theme)
    db.commit()
    wedding.wedding_day_theme_id = theme.id
    wedding.wedding_date = utcnow().date()
    wedding.rsvp_cutoff_date = utcnow() - timedelta(days=1)
    db.commit()
    url = f"/api/guest/{families[0].magic_token}"
    assert client.get(url).json()["data"]["theme"]["config"]["colors"]["primary"] == "#112233"

    new_config = {"colors": {"primary": "#445566", "background": "#FFFFFF"}}
    r = client.patch(f"/api/planner/themes/{theme.id}", json={"config": new_config}, headers=planner_headers)
    assert r.status_code == 200
    assert client.get(url).json()["data"]["theme"]["config"]["colors"]["primary"] == "#445566"

    r = client.patch(f"/api/planner/themes/{theme.id}", json={"name": "Olive Grove"}, headers=planner_headers)
    assert client.get(url).json()["data"]["theme"]["name"] == "Olive Grove"
