"""Demo data: one planner with an upcoming wedding, its admin, tables and a few families."""
from datetime import date, datetime, timedelta

from sqlalchemy.orm import Session

from app.models.family import Channel, MemberType
from app.models.principal import WeddingAdmin, WeddingPlanner
from app.models.seating import Table
from app.models.wedding import Wedding
from app.schemas.family import FamilyCreate, MemberInput
from app.services.families import create_family
from app.services.themes import get_default_theme, seed_system_themes
from app.services.weddings import create_wedding

DEMO_PLANNER_EMAIL = "planner@nupci-demo.com"
DEMO_ADMIN_EMAIL = "couple@nupci-demo.com"

_DEMO_FAMILIES = [
    ("García López", "Ana García", Channel.EMAIL, "ES", [("Ana García", MemberType.ADULT, 45), ("Luis López", MemberType.ADULT, 47), ("Pablo López", MemberType.CHILD, 9)]),
    ("Smith", "John Smith", Channel.WHATSAPP, "EN", [("John Smith", MemberType.ADULT, 38), ("Mary Smith", MemberType.ADULT, 36)]),
    ("Martín", "Carmen Martín", Channel.SMS, "ES", [("Carmen Martín", MemberType.ADULT, 70)]),
    ("Rossi", "Giulia Rossi", Channel.EMAIL, "IT", [("Giulia Rossi", MemberType.ADULT, 31), ("Marco Bianchi", MemberType.ADULT, 33), ("Leo Bianchi", MemberType.INFANT, 1)]),
]


def seed_demo(db: Session) -> Wedding:
    """Idempotent on the demo planner email: returns the existing demo wedding when present."""
    seed_system_themes(db)
    planner = db.query(WeddingPlanner).filter(WeddingPlanner.email == DEMO_PLANNER_EMAIL).first()
    if planner:
        existing = db.query(Wedding).filter(Wedding.planner_id == planner.id).order_by(Wedding.id.asc()).first()
        if existing:
            return existing
    else:
        planner = WeddingPlanner(email=DEMO_PLANNER_EMAIL, name="Demo Weddings", enabled=True)
        db.add(planner)
        db.commit()
        db.refresh(planner)

    wedding_date = date.today() + timedelta(days=120)
    theme = get_default_theme(db)
    wedding = create_wedding(db, planner.id, {
        "couple_names": "Laura y Javier",
        "wedding_date": wedding_date,
        "wedding_time": "18:00",
        "location": "Finca El Olivar, Madrid",
        "rsvp_cutoff_date": datetime.combine(wedding_date - timedelta(days=30), datetime.min.time()),
        "theme_id": theme.id if theme else None,
        "dress_code": "Formal",
    })
    admin = WeddingAdmin(email=DEMO_ADMIN_EMAIL, name="Laura", wedding_id=wedding.id, invited_by=planner.id)
    db.add(admin)
    db.add_all([Table(wedding_id=wedding.id, name=f"Mesa {n}", number=n, capacity=8) for n in range(1, 4)])
    db.flush()
    for name, contact, channel, language, members in _DEMO_FAMILIES:
        create_family(db, wedding, FamilyCreate(
            name=name,
            contact_person=contact,
            email=f"{contact.split()[0].lower()}@nupci-demo.com",
            phone="+34600000000",
            whatsapp_number="+34600000000",
            channel_preference=channel,
            preferred_language=language,
            invited_by_admin_id=admin.id,
            members=[MemberInput(name=n, type=t, age=a) for n, t, a in members],
        ))
    db.commit()
    db.refresh(wedding)
    return wedding
