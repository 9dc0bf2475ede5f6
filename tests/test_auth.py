import re
import time

import pytest
from conftest import ADMIN_EMAIL, MASTER_EMAIL, PLANNER_EMAIL, bearer, token_for
from fastapi.routing import APIRoute

from app.dependencies import route_role_for_path
from app.main import app
from app.models.principal import MasterAdmin, UserRole
from app.services import oauth
from app.services.auth import decode_token
from app.services.roles import RoleResolutionError, detect_user_role


def _fake_exchange(email, name="Test User"):
    def exchange(provider, code, redirect_uri):
        return oauth.OAuthProfile(email=email, name=name)
    return exchange


@pytest.mark.parametrize("path", ["/api/admin/wedding", "/api/planner/weddings", "/api/master/planners", "/api/auth/session"])
def test_protected_routes_require_session(client, db, path):
    r = client.get(path)
    assert r.status_code == 401
    assert r.json() == {"success": False, "error": {"code": "UNAUTHORIZED", "message": "Authentication required"}}


def test_garbage_bearer_token_is_unauthenticated(client, db):
    r = client.get("/api/admin/wedding", headers=bearer("not-a-jwt"))
    assert r.status_code == 401


def test_wrong_role_is_forbidden(client, planner_headers, admin_headers, master_headers):
    assert client.get("/api/admin/wedding", headers=planner_headers).status_code == 403
    assert client.get("/api/master/planners", headers=admin_headers).status_code == 403
    r = client.get("/api/planner/weddings", headers=master_headers)
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "FORBIDDEN"


def test_session_returns_claims(client, admin_headers, wedding):
    r = client.get("/api/auth/session", headers=admin_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["email"] == ADMIN_EMAIL
    assert data["role"] == "wedding_admin"
    assert data["wedding_id"] == wedding.id
    assert data["planner_id"] == wedding.planner_id


def test_stale_session_is_revalidated_and_refreshed(client, db, planner):
    stale = token_for(PLANNER_EMAIL, UserRole.planner, planner_id=planner.id, checked_at=int(time.time()) - 120)
    r = client.get("/api/planner/weddings", headers=bearer(stale))
    assert r.status_code == 200
    refreshed = decode_token(r.headers["X-Session-Token"])
    assert refreshed["role"] == "planner"
    assert refreshed["planner_id"] == planner.id
    assert refreshed["role_checked_at"] >= int(time.time()) - 5
    db.refresh(planner)
    assert planner.last_login_at is not None


def test_fresh_session_is_not_revalidated(client, planner_headers):
    r = client.get("/api/planner/weddings", headers=planner_headers)
    assert r.status_code == 200
    assert "X-Session-Token" not in r.headers


def test_disabled_planner_is_rejected_on_revalidation(client, db, planner):
    stale = token_for(PLANNER_EMAIL, UserRole.planner, planner_id=planner.id, checked_at=int(time.time()) - 120)
    planner.enabled = False
    db.commit()
    r = client.get("/api/planner/weddings", headers=bearer(stale))
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "PLANNER_DISABLED"


def test_callback_signs_in_planner(client, db, planner, monkeypatch):
    monkeypatch.setattr(oauth, "exchange_code", _fake_exchange(PLANNER_EMAIL.upper()))
    r = client.post("/api/auth/callback/google", json={"code": "abc", "redirect_uri": "http://localhost:3000/cb"})
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["role"] == "planner"
    assert data["redirect_to"] == "/planner"
    assert data["email"] == PLANNER_EMAIL
    claims = decode_token(data["token"])
    assert claims["planner_id"] == planner.id
    assert claims["provider"] == "GOOGLE"


def test_callback_for_wedding_admin_marks_invitation_accepted(client, db, wedding, wedding_admin, monkeypatch):
    monkeypatch.setattr(oauth, "exchange_code", _fake_exchange(ADMIN_EMAIL))
    r = client.post("/api/auth/callback/apple", json={"code": "abc", "redirect_uri": "http://localhost:3000/cb"})
    assert r.status_code == 200
    assert r.json()["data"]["redirect_to"] == "/admin"
    assert r.json()["data"]["wedding_id"] == wedding.id
    db.refresh(wedding_admin)
    assert wedding_admin.accepted_at is not None
    assert wedding_admin.last_login_provider.value == "APPLE"


def test_callback_rejects_unknown_account(client, db, monkeypatch):
    monkeypatch.setattr(oauth, "exchange_code", _fake_exchange("stranger@nupci-demo.com"))
    r = client.post("/api/auth/callback/google", json={"code": "abc", "redirect_uri": "http://localhost:3000/cb"})
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "UNAUTHORIZED"


def test_callback_rejects_unsupported_provider(client, db):
    r = client.post("/api/auth/callback/github", json={"code": "abc", "redirect_uri": "http://localhost:3000/cb"})
    assert r.status_code == 400


def test_signin_url_points_at_provider(client):
    r = client.get("/api/auth/signin/google", params={"redirect_uri": "http://localhost:3000/cb", "state": "xyz"})
    assert r.status_code == 200
    url = r.json()["data"]["url"]
    assert url.startswith(oauth.GOOGLE_AUTH_URL)
    assert "state=xyz" in url


def test_master_admin_email_wins_over_other_roles(db, planner):
    planner.email = MASTER_EMAIL
    db.commit()
    resolved = detect_user_role(db, "Root@Nupci-Master.com", "google")
    assert resolved.role == UserRole.master_admin
    assert db.query(MasterAdmin).filter(MasterAdmin.email == MASTER_EMAIL).count() == 1


def test_disabled_planner_cannot_sign_in(db, planner):
    planner.enabled = False
    db.commit()
    with pytest.raises(RoleResolutionError) as exc:
        detect_user_role(db, PLANNER_EMAIL, "facebook")
    assert exc.value.code == "PLANNER_DISABLED"


@pytest.mark.parametrize("path,role", [
    ("/master", UserRole.master_admin),
    ("/planner/weddings/3", UserRole.planner),
    ("/admin", UserRole.wedding_admin),
    ("/api/admin/guests", UserRole.wedding_admin),
    ("/administrator", None),
    ("/rsvp/abc", None),
])
def test_route_role_for_path(path, role):
    assert route_role_for_path(path) == role


# Every role-scoped route, with a role that must never reach it
_ROLE_PREFIXES = (
    ("/api/admin/", "planner_headers"),
    ("/api/planner/", "admin_headers"),
    ("/api/master/", "planner_headers"),
)


def _role_scoped_routes():
    routes = []
    for route in app.routes:
        if not isinstance(route, APIRoute):
            continue
        wrong = next((h for prefix, h in _ROLE_PREFIXES if route.path.startswith(prefix)), None)
        if wrong is None:
            continue
        path = re.sub(r"\{[^}]+\}", "1", route.path)
        for method in sorted(route.methods):
            routes.append(pytest.param(method, path, wrong, id=f"{method} {route.path}"))
    return routes


ROLE_SCOPED_ROUTES = _role_scoped_routes()


def test_role_scoped_routes_were_collected():
    prefixes = {p.values[1].split("/")[2] for p in ROLE_SCOPED_ROUTES}
    assert prefixes == {"admin", "planner", "master"}
    assert len(ROLE_SCOPED_ROUTES) > 40


def _call(client, method, path, headers=None):
    kwargs = {"headers": headers or {}}
    if method not in ("GET", "DELETE"):
        kwargs["json"] = {}
    return client.request(method, path, **kwargs)


@pytest.mark.parametrize("method,path,wrong_role", ROLE_SCOPED_ROUTES)
def test_every_role_scoped_route_requires_a_session(client, db, method, path, wrong_role):
    r = _call(client, method, path)
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "UNAUTHORIZED"


@pytest.mark.parametrize("method,path,wrong_role", ROLE_SCOPED_ROUTES)
def test_every_role_scoped_route_rejects_other_roles(client, db, request, method, path, wrong_role):
    r = _call(client, method, path, request.getfixturevalue(wrong_role))
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "FORBIDDEN"
