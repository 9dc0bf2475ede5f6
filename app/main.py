"""Nupci – wedding planning and RSVP FastAPI application."""
# Load .env before any app code that might read config
from dotenv import load_dotenv
from pathlib import Path
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

import logging

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import Base, engine, get_db
from app.errors import register_exception_handlers
# Import models so Base.metadata has all tables before create_all (schema source of truth)
from app import models  # noqa: F401
from app.routers import (
    admin_gallery,
    admin_guests,
    admin_invitation_template,
    admin_messaging,
    admin_notifications,
    admin_payments,
    admin_seating,
    admin_wedding,
    auth,
    guest,
    master,
    planner,
    providers,
    short_url,
    webhooks,
)

settings = get_settings()
app = FastAPI(title=settings.app_name, debug=settings.debug)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Session-Token"],
)
register_exception_handlers(app)

app.include_router(auth.router)
app.include_router(guest.router)
app.include_router(short_url.router)
app.include_router(admin_guests.router)
app.include_router(admin_notifications.router)
app.include_router(admin_seating.router)
app.include_router(admin_payments.router)
app.include_router(admin_messaging.router)
app.include_router(admin_invitation_template.router)
app.include_router(admin_wedding.router)
app.include_router(admin_gallery.router)
app.include_router(planner.router)
app.include_router(providers.router)
app.include_router(master.router)
app.include_router(webhooks.router)


def _print_provider_config() -> None:
    if settings.resend_api_key:
        print(f"[Email] Resend configured, from={settings.resend_from_email}", flush=True)
    else:
        print("[Email] Not configured - emails will be skipped; set RESEND_API_KEY in .env and restart", flush=True)
    if settings.twilio_account_sid and settings.twilio_auth_token:
        print(
            f"[Twilio] Configured sms_from={settings.twilio_from_phone_number or '(none)'} "
            f"whatsapp_from={settings.twilio_whatsapp_from or '(none)'}",
            flush=True,
        )
    else:
        print("[Twilio] Not configured - SMS and WhatsApp messages will be skipped", flush=True)
    oauth = [
        name for name, cid in (
            ("google", settings.google_client_id),
            ("facebook", settings.facebook_client_id),
            ("apple", settings.apple_client_id),
        ) if cid
    ]
    print(f"[OAuth] Providers configured: {', '.join(oauth) or '(none)'}", flush=True)
    if not settings.master_admin_email_list:
        print("[Auth] MASTER_ADMIN_EMAILS is empty - nobody can sign in as master admin", flush=True)


@app.on_event("startup")
def startup():
    _print_provider_config()
    try:
        Base.metadata.create_all(bind=engine)
        from app.database import SessionLocal
        from app.services.themes import seed_system_themes
        db = SessionLocal()
        try:
            seed_system_themes(db)
        finally:
            db.close()
    except Exception as e:
        logging.getLogger("uvicorn.error").warning(
            "Database startup failed (tables/theme seed skipped). Check DATABASE_URL and network. Error: %s", e
        )

    # Scheduler: Google Photos base URLs expire after an hour
    try:
        from apscheduler.schedulers.background import BackgroundScheduler
        scheduler = BackgroundScheduler()
        if settings.photo_refresh_cron_enabled:
            from app.services.google_photos import run_photo_refresh_job
            scheduler.add_job(run_photo_refresh_job, "interval", minutes=30)
        scheduler.start()
    except Exception as e:
        logging.getLogger("uvicorn.error").warning("Scheduler failed to start: %s", e)


@app.get("/")
def root():
    return {"app": settings.app_name, "status": "ok"}


@app.get("/health")
def health(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logging.getLogger("uvicorn.error").warning("Health check database error: %s", e)
        database = "unavailable"
    return {"status": "healthy" if database == "ok" else "degraded", "database": database}
