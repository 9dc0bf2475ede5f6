"""Wedding admin: guest gifts."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db, utcnow
from app.dependencies import get_admin_wedding
from app.errors import NOT_FOUND, ApiError
from app.models.family import Family
from app.models.payment import Gift, GiftStatus
from app.models.tracking import EventType
from app.models.wedding import Wedding
from app.schemas.common import DEFAULT_PAGE_SIZE, ok, paginate
from app.schemas.payments import GiftCreate, GiftResponse, GiftUpdate
from app.services.tracking import track_event

router = APIRouter(prefix="/api/admin/payments", tags=["admin-payments"])


def _gift_out(gift: Gift) -> dict:
    out = GiftResponse.model_validate(gift).model_dump()
    out["family_name"] = gift.family.name if gift.family else None
    return out


@router.get("")
def list_gifts(
    status: GiftStatus | None = None,
    family_id: int | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    wedding: Wedding = Depends(get_admin_wedding),
    db: Session = Depends(get_db),
):
    q = db.query(Gift).filter(Gift.wedding_id == wedding.id)
    if status:
        q = q.filter(Gift.status == status)
    if family_id is not None:
        q = q.filter(Gift.family_id == family_id)
    gifts, pagination = paginate(q.order_by(Gift.transaction_date.desc(), Gift.id.desc()), page, limit)
    return ok([_gift_out(g) for g in gifts], pagination=pagination)


@router.post("", status_code=201)
def record_gift(data: GiftCreate, wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    """Manually recorded payment; lands as RECEIVED."""
    family = db.query(Family).filter(Family.id == data.family_id, Family.wedding_id == wedding.id).first()
    if not family:
        raise ApiError(404, NOT_FOUND, "Family not found")
    gift = Gift(
        family_id=family.id,
        wedding_id=wedding.id,
        amount=data.amount,
        reference_code_used=data.reference_code_used,
        auto_matched=False,
        status=GiftStatus.RECEIVED,
        transaction_date=data.transaction_date or utcnow(),
    )
    db.add(gift)
    db.commit()
    db.refresh(gift)
    out = _gift_out(gift)
    track_event(
        db,
        family.id,
        wedding.id,
        EventType.PAYMENT_RECEIVED,
        metadata={"gift_id": out["id"], "amount": str(data.amount)},
        admin_triggered=True,
    )
    return ok(out)


@router.patch("/{gift_id}")
def update_gift(
    gift_id: int,
    data: GiftUpdate,
    wedding: Wedding = Depends(get_admin_wedding),
    db: Session = Depends(get_db),
):
    gift = db.query(Gift).filter(Gift.id == gift_id, Gift.wedding_id == wedding.id).first()
    if not gift:
        raise ApiError(404, NOT_FOUND, "Payment not found")
    gift.status = data.status
    db.commit()
    db.refresh(gift)
    return ok(_gift_out(gift))
