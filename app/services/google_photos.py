"""Google Photos gallery: album sync and base-URL refresh.
Base URLs expire after about an hour; the scheduler refreshes the ones about to lapse."""
import logging
from datetime import timedelta

import httpx
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import SessionLocal, utcnow
from app.errors import EXTERNAL_SERVICE_ERROR, VALIDATION_ERROR, ApiError
from app.models.photo import PhotoSource, WeddingPhoto
from app.models.wedding import Wedding
from app.services.page_cache import invalidate_wedding

log = logging.getLogger(__name__)

TOKEN_URL = "https://oauth2.googleapis.com/token"
BATCH_GET_URL = "https://photoslibrary.googleapis.com/v1/mediaItems:batchGet"
SEARCH_URL = "https://photoslibrary.googleapis.com/v1/mediaItems:search"
BATCH_SIZE = 50  # mediaItems:batchGet limit
SEARCH_PAGE_SIZE = 100
MAX_SYNC_ITEMS = 500
URL_LIFETIME = timedelta(minutes=60)
REFRESH_WINDOW = timedelta(minutes=35)


def _access_token(client: httpx.Client) -> str | None:
    settings = get_settings()
    if not (settings.google_photos_client_id and settings.google_photos_client_secret and settings.google_photos_refresh_token):
        log.info("[Photos] Google Photos is not configured")
        return None
    r = client.post(
        TOKEN_URL,
        data={
            "client_id": settings.google_photos_client_id,
            "client_secret": settings.google_photos_client_secret,
            "refresh_token": settings.google_photos_refresh_token,
            "grant_type": "refresh_token",
        },
    )
    if r.status_code != 200:
        log.warning("[Photos] Token refresh failed: status=%s body=%s", r.status_code, r.text[:300])
        return None
    return r.json().get("access_token")


def _batch_get(client: httpx.Client, token: str, media_ids: list[str]) -> dict[str, str]:
    """media item id -> fresh baseUrl for the items Google returned."""
    r = client.get(
        BATCH_GET_URL,
        params=[("mediaItemIds", mid) for mid in media_ids],
        headers={"Authorization": f"Bearer {token}"},
    )
    if r.status_code != 200:
        log.warning("[Photos] batchGet failed: status=%s body=%s", r.status_code, r.text[:300])
        return {}
    urls = {}
    for result in r.json().get("mediaItemResults", []):
        item = result.get("mediaItem")
        if item and item.get("baseUrl"):
            urls[item["id"]] = item["baseUrl"]
    return urls


def _album_items(client: httpx.Client, token: str, album_id: str) -> list[dict]:
    """Media items of an album, following pageToken up to MAX_SYNC_ITEMS."""
    items: list[dict] = []
    page_token = None
    while len(items) < MAX_SYNC_ITEMS:
        body = {"albumId": album_id, "pageSize": SEARCH_PAGE_SIZE}
        if page_token:
            body["pageToken"] = page_token
        r = client.post(SEARCH_URL, json=body, headers={"Authorization": f"Bearer {token}"})
        r.raise_for_status()
        data = r.json()
        items.extend(data.get("mediaItems", []))
        page_token = data.get("nextPageToken")
        if not page_token:
            break
    return items[:MAX_SYNC_ITEMS]


def sync_album(db: Session, wedding: Wedding) -> dict[str, int]:
    """Import the album's photos that the gallery does not have yet. Commits."""
    if not wedding.google_photos_album_id:
        raise ApiError(400, VALIDATION_ERROR, "Google Photos is not connected")
    try:
        with httpx.Client(timeout=20.0) as client:
            token = _access_token(client)
            if not token:
                raise ApiError(502, EXTERNAL_SERVICE_ERROR, "Could not authenticate with Google Photos")
            items = _album_items(client, token, wedding.google_photos_album_id)
    except (httpx.HTTPError, ValueError) as e:
        log.warning("[Photos] Album sync failed for wedding %s: %s: %s", wedding.id, type(e).__name__, e)
        raise ApiError(502, EXTERNAL_SERVICE_ERROR, "Failed to sync from Google Photos")

    known = {
        mid
        for (mid,) in db.query(WeddingPhoto.google_media_item_id)
        .filter(WeddingPhoto.wedding_id == wedding.id, WeddingPhoto.google_media_item_id.isnot(None))
        .all()
    }
    expires_at = utcnow() + URL_LIFETIME
    next_order = len(wedding.photos)
    created = 0
    for item in items:
        if not item.get("id") or not item.get("baseUrl") or item["id"] in known:
            continue
        known.add(item["id"])
        db.add(
            WeddingPhoto(
                wedding_id=wedding.id,
                source=PhotoSource.GOOGLE_PHOTOS,
                google_media_item_id=item["id"],
                url=item["baseUrl"],
                url_expires_at=expires_at,
                caption=(item.get("description") or None),
                sender_name=(item.get("contributorInfo") or {}).get("displayName"),
                order=next_order + created,
            )
        )
        created += 1
    db.commit()
    invalidate_wedding(wedding.id)
    log.info("[Photos] Synced %s new of %s album items for wedding %s", created, len(items), wedding.id)
    return {"synced": created, "total": len(items)}


def refresh_expiring_photo_urls(db: Session) -> int:
    """Refresh photos whose URL expires within REFRESH_WINDOW. Returns how many were updated;
    errors are logged, never raised."""
    now = utcnow()
    photos = (
        db.query(WeddingPhoto)
        .filter(
            WeddingPhoto.google_media_item_id.isnot(None),
            (WeddingPhoto.url_expires_at.is_(None)) | (WeddingPhoto.url_expires_at <= now + REFRESH_WINDOW),
        )
        .all()
    )
    if not photos:
        return 0
    updated = 0
    wedding_ids: set[int] = set()
    try:
        with httpx.Client(timeout=20.0) as client:
            token = _access_token(client)
            if not token:
                return 0
            for start in range(0, len(photos), BATCH_SIZE):
                chunk = photos[start:start + BATCH_SIZE]
                fresh = _batch_get(client, token, [p.google_media_item_id for p in chunk])
                for photo in chunk:
                    base_url = fresh.get(photo.google_media_item_id)
                    if not base_url:
                        continue
                    photo.url = base_url
                    photo.url_expires_at = now + URL_LIFETIME
                    wedding_ids.add(photo.wedding_id)
                    updated += 1
        db.commit()
    except (httpx.HTTPError, ValueError) as e:
        # ValueError: a response body that is not JSON
        db.rollback()
        log.warning("[Photos] Refresh aborted: %s: %s", type(e).__name__, e)
        return 0
    # Cached guest pages embed photo URLs
    for wedding_id in wedding_ids:
        invalidate_wedding(wedding_id)
    log.info("[Photos] Refreshed %s of %s expiring photo URLs", updated, len(photos))
    return updated


def run_photo_refresh_job() -> None:
    """Scheduler entry point; owns its own session."""
    if not get_settings().photo_refresh_cron_enabled:
        return
    db = SessionLocal()
    try:
        refresh_expiring_photo_urls(db)
    finally:
        db.close()
