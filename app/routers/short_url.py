"""Short invitation links: /inv/{initials}/{code} -> /rsvp/{magic_token}, and the
public /w/{initials} page where guests find their link by email or phone."""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import NOT_FOUND, ApiError
from app.models.wedding import Wedding
from app.schemas.common import ok
from app.schemas.family import InvitationLookup
from app.services.short_url import find_wedding_by_initials, lookup_family_short_url, resolve_short_url

router = APIRouter(tags=["short-url"])


def _wedding_or_404(db: Session, initials: str) -> Wedding:
    wedding = find_wedding_by_initials(db, initials)
    if not wedding:
        raise ApiError(404, NOT_FOUND, "Wedding not found")
    return wedding


@router.get("/inv/{initials}/{code}")
def short_url_redirect(initials: str, code: str, request: Request, db: Session = Depends(get_db)):
    token = resolve_short_url(db, initials, code)
    if not token:
        raise ApiError(404, NOT_FOUND, "Invitation link not found")
    target = f"/rsvp/{token}"
    if request.url.query:
        target = f"{target}?{request.url.query}"
    return RedirectResponse(target, status_code=307)


@router.get("/w/{initials}")
def wedding_landing(initials: str, db: Session = Depends(get_db)):
    wedding = _wedding_or_404(db, initials)
    return ok({
        "initials": wedding.short_url_initials,
        "couple_names": wedding.couple_names,
        "wedding_date": wedding.wedding_date,
        "wedding_time": wedding.wedding_time,
        "location": wedding.location,
        "dress_code": wedding.dress_code,
        "additional_info": wedding.additional_info,
        "default_language": wedding.default_language,
    })


@router.post("/w/{initials}/lookup")
def lookup_invitation(initials: str, data: InvitationLookup, db: Session = Depends(get_db)):
    """Short URL for the family whose email or phone matches; 404 otherwise."""
    wedding = _wedding_or_404(db, initials)
    path = lookup_family_short_url(db, wedding, data.contact)
    if not path:
        raise ApiError(404, NOT_FOUND, "No invitation found for that contact")
    return ok({"short_url": path})
