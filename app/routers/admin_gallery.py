"""Wedding admin: photo gallery and the Google Photos album it syncs from."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_admin_wedding
from app.errors import NOT_FOUND, ApiError
from app.models.photo import PhotoSource, WeddingPhoto
from app.models.wedding import Wedding
from app.schemas.common import DEFAULT_PAGE_SIZE, ok, paginate
from app.schemas.gallery import GooglePhotosConnect, PhotoCreate, PhotoResponse, PhotoUpdate
from app.services.google_photos import sync_album
from app.services.page_cache import invalidate_wedding

router = APIRouter(prefix="/api/admin/gallery", tags=["admin-gallery"])


def _photo_or_404(db: Session, wedding: Wedding, photo_id: int) -> WeddingPhoto:
    photo = db.query(WeddingPhoto).filter(WeddingPhoto.id == photo_id, WeddingPhoto.wedding_id == wedding.id).first()
    if not photo:
        raise ApiError(404, NOT_FOUND, "Photo not found")
    return photo


@router.get("")
def list_photos(
    approved: bool | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    wedding: Wedding = Depends(get_admin_wedding),
    db: Session = Depends(get_db),
):
    q = db.query(WeddingPhoto).filter(WeddingPhoto.wedding_id == wedding.id)
    if approved is not None:
        q = q.filter(WeddingPhoto.approved.is_(approved))
    photos, pagination = paginate(q.order_by(WeddingPhoto.order, WeddingPhoto.id), page, limit)
    return ok(
        [PhotoResponse.model_validate(p).model_dump() for p in photos],
        pagination=pagination,
        google_photos_album_id=wedding.google_photos_album_id,
    )


@router.post("", status_code=201)
def add_photo(data: PhotoCreate, wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    photo = WeddingPhoto(
        wedding_id=wedding.id,
        source=PhotoSource.UPLOAD,
        url=data.url,
        caption=data.caption,
        sender_name=data.sender_name,
        order=data.order if data.order is not None else len(wedding.photos),
    )
    db.add(photo)
    db.commit()
    db.refresh(photo)
    invalidate_wedding(wedding.id)
    return ok(PhotoResponse.model_validate(photo).model_dump())


@router.patch("/{photo_id}")
def update_photo(
    photo_id: int,
    data: PhotoUpdate,
    wedding: Wedding = Depends(get_admin_wedding),
    db: Session = Depends(get_db),
):
    """Approve or hide a photo, or edit its caption and position."""
    photo = _photo_or_404(db, wedding, photo_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        if key in ("approved", "order") and value is None:
            continue
        setattr(photo, key, value)
    db.commit()
    db.refresh(photo)
    invalidate_wedding(wedding.id)
    return ok(PhotoResponse.model_validate(photo).model_dump())


@router.delete("/{photo_id}")
def delete_photo(photo_id: int, wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    photo = _photo_or_404(db, wedding, photo_id)
    db.delete(photo)
    db.commit()
    invalidate_wedding(wedding.id)
    return ok({"deleted": photo_id})


@router.put("/google-photos")
def connect_google_photos(
    data: GooglePhotosConnect,
    wedding: Wedding = Depends(get_admin_wedding),
    db: Session = Depends(get_db),
):
    wedding.google_photos_album_id = data.album_id
    db.commit()
    return ok({"google_photos_album_id": wedding.google_photos_album_id})


@router.delete("/google-photos")
def disconnect_google_photos(wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    """Stops syncing; photos already imported stay in the gallery."""
    wedding.google_photos_album_id = None
    db.commit()
    return ok({"google_photos_album_id": None})


@router.post("/google-photos/sync")
def sync_google_photos(wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    return ok(sync_album(db, wedding))
