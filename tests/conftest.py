"""Shared fixtures: in-memory SQLite, a seeded planner/wedding/admin/families and session tokens.
Environment is set before the app is imported so cached settings pick it up."""
import os
import time
from datetime import date, datetime, timedelta

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["MASTER_ADMIN_EMAILS"] = "root@nupci-master.com"
os.environ["RESEND_API_KEY"] = ""
os.environ["TWILIO_ACCOUNT_SID"] = ""
os.environ["TWILIO_AUTH_TOKEN"] = ""
os.environ["PHOTO_REFRESH_CRON_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.database import Base, get_db
from app.main import app
from app.models.family import Channel, MemberType
from app.models.principal import UserRole, WeddingAdmin, WeddingPlanner
from app.schemas.family import FamilyCreate, MemberInput
from app.services.auth import create_session_token
from app.services.families import create_family
from app.services.page_cache import rsvp_page_cache, short_url_cache
from app.services.themes import seed_system_themes
from app.services.weddings import create_wedding

engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PLANNER_EMAIL = "planner@nupci-demo.com"
ADMIN_EMAIL = "couple@nupci-demo.com"
MASTER_EMAIL = "root@nupci-master.com"


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    rsvp_page_cache.clear()
    short_url_cache.clear()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        try:
            yield db
        finally:
            # requests commit their own work; anything left over belongs to a failed request
            db.rollback()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_wedding(db, planner, couple_names="Laura y Javier", days_ahead=60, cutoff_days_ahead=30, **fields):
    wedding_date = date.today() + timedelta(days=days_ahead)
    cutoff = datetime.combine(date.today() + timedelta(days=cutoff_days_ahead), datetime.min.time())
    return create_wedding(db, planner.id, {
        "couple_names": couple_names,
        "wedding_date": wedding_date,
        "wedding_time": "18:00",
        "location": "Finca El Olivar, Madrid",
        "rsvp_cutoff_date": cutoff,
        **fields,
    })


def make_family(db, wedding, name, members, **fields):
    family = create_family(db, wedding, FamilyCreate(
        name=name,
        members=[MemberInput(name=n, type=t, age=a) for n, t, a in members],
        **fields,
    ))
    db.commit()
    db.refresh(family)
    return family


@pytest.fixture
def planner(db):
    seed_system_themes(db)
    p = WeddingPlanner(email=PLANNER_EMAIL, name="Olivar Weddings", enabled=True)
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


@pytest.fixture
def wedding(db, planner):
    return make_wedding(db, planner)


@pytest.fixture
def wedding_admin(db, wedding):
    admin = WeddingAdmin(email=ADMIN_EMAIL, name="Laura", wedding_id=wedding.id, invited_by=wedding.planner_id)
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


@pytest.fixture
def families(db, wedding, wedding_admin):
    smith = make_family(
        db, wedding, "Smith",
        [("John Smith", MemberType.ADULT, 38), ("Mary Smith", MemberType.ADULT, 36)],
        contact_person="John Smith",
        email="john@nupci-demo.com",
        whatsapp_number="+34600000001",
        channel_preference=Channel.WHATSAPP,
        preferred_language="EN",
        invited_by_admin_id=wedding_admin.id,
    )
    garcia = make_family(
        db, wedding, "García",
        [("Ana García", MemberType.ADULT, 45), ("Luis López", MemberType.ADULT, 47), ("Pablo López", MemberType.CHILD, 9)],
        contact_person="Ana García",
        email="ana@nupci-demo.com",
        phone="+34600000002",
        channel_preference=Channel.EMAIL,
        preferred_language="ES",
    )
    return [smith, garcia]


def token_for(email, role, *, wedding_id=None, planner_id=None, checked_at=None):
    return create_session_token(
        email,
        role.value,
        provider="google",
        wedding_id=wedding_id,
        planner_id=planner_id,
        role_checked_at=checked_at if checked_at is not None else int(time.time()),
    )


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(wedding, wedding_admin):
    return bearer(token_for(ADMIN_EMAIL, UserRole.wedding_admin, wedding_id=wedding.id, planner_id=wedding.planner_id))


@pytest.fixture
def planner_headers(planner):
    return bearer(token_for(PLANNER_EMAIL, UserRole.planner, planner_id=planner.id))


@pytest.fixture
def master_headers():
    return bearer(token_for(MASTER_EMAIL, UserRole.master_admin))
