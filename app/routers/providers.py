"""Vendor ledger per wedding: providers, their contract totals and payments made to them."""
from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session, selectinload

from app.database import get_db, utcnow
from app.dependencies import get_accessible_wedding
from app.errors import NOT_FOUND, VALIDATION_ERROR, ApiError
from app.models.payment import ProviderCategory, ProviderPayment, WeddingProvider
from app.models.wedding import Wedding
from app.schemas.common import ok
from app.schemas.payments import ProviderCreate, ProviderPaymentCreate, ProviderUpdate

router = APIRouter(prefix="/api/weddings/{wedding_id}", tags=["providers"])


def _check_category(db: Session, wedding: Wedding, category_id: int) -> None:
    exists = (
        db.query(ProviderCategory.id)
        .filter(ProviderCategory.id == category_id, ProviderCategory.planner_id == wedding.planner_id)
        .first()
    )
    if not exists:
        raise ApiError(400, VALIDATION_ERROR, f"Unknown provider category {category_id}")


def _provider_or_404(db: Session, wedding: Wedding, provider_id: int) -> WeddingProvider:
    provider = (
        db.query(WeddingProvider)
        .filter(WeddingProvider.id == provider_id, WeddingProvider.wedding_id == wedding.id)
        .first()
    )
    if not provider:
        raise ApiError(404, NOT_FOUND, "Provider not found")
    return provider


def _payment_out(p: ProviderPayment) -> dict:
    return {
        "id": p.id,
        "wedding_provider_id": p.wedding_provider_id,
        "amount": p.amount,
        "date": p.date,
        "method": p.method,
        "notes": p.notes,
    }


def _provider_out(provider: WeddingProvider) -> dict:
    paid = sum((p.amount for p in provider.payments), Decimal("0"))
    total = provider.total_price
    return {
        "id": provider.id,
        "wedding_id": provider.wedding_id,
        "category_id": provider.category_id,
        "category_name": provider.category.name if provider.category else None,
        "name": provider.name,
        "contact_name": provider.contact_name,
        "email": provider.email,
        "phone": provider.phone,
        "total_price": total,
        "contract_url": provider.contract_url,
        "notes": provider.notes,
        "total_paid": paid,
        "remaining": (total - paid) if total is not None else None,
        "payments": [_payment_out(p) for p in provider.payments],
    }


@router.get("/providers")
def list_providers(wedding: Wedding = Depends(get_accessible_wedding), db: Session = Depends(get_db)):
    providers = (
        db.query(WeddingProvider)
        .options(selectinload(WeddingProvider.payments), selectinload(WeddingProvider.category))
        .filter(WeddingProvider.wedding_id == wedding.id)
        .order_by(WeddingProvider.name.asc())
        .all()
    )
    rows = [_provider_out(p) for p in providers]
    total_price = sum((r["total_price"] for r in rows if r["total_price"] is not None), Decimal("0"))
    total_paid = sum((r["total_paid"] for r in rows), Decimal("0"))
    return ok(rows, totals={"total_price": total_price, "total_paid": total_paid, "remaining": total_price - total_paid})


@router.post("/providers", status_code=201)
def add_provider(data: ProviderCreate, wedding: Wedding = Depends(get_accessible_wedding), db: Session = Depends(get_db)):
    _check_category(db, wedding, data.category_id)
    provider = WeddingProvider(wedding_id=wedding.id, **data.model_dump())
    db.add(provider)
    db.commit()
    db.refresh(provider)
    return ok(_provider_out(provider))


@router.patch("/providers/{provider_id}")
def update_provider(
    provider_id: int,
    data: ProviderUpdate,
    wedding: Wedding = Depends(get_accessible_wedding),
    db: Session = Depends(get_db),
):
    provider = _provider_or_404(db, wedding, provider_id)
    fields = data.model_dump(exclude_unset=True)
    if fields.get("category_id") is not None:
        _check_category(db, wedding, fields["category_id"])
    for key, value in fields.items():
        if value is None and key in ("category_id", "name"):
            continue
        setattr(provider, key, value)
    db.commit()
    db.refresh(provider)
    return ok(_provider_out(provider))


@router.post("/providers/{provider_id}/payments", status_code=201)
def add_payment(
    provider_id: int,
    data: ProviderPaymentCreate,
    wedding: Wedding = Depends(get_accessible_wedding),
    db: Session = Depends(get_db),
):
    provider = _provider_or_404(db, wedding, provider_id)
    payment = ProviderPayment(
        wedding_provider_id=provider.id,
        amount=data.amount,
        date=data.date or utcnow(),
        method=data.method,
        notes=data.notes,
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    return ok(_payment_out(payment))


@router.get("/payments")
def ledger(wedding: Wedding = Depends(get_accessible_wedding), db: Session = Depends(get_db)):
    """Every payment made to this wedding's providers, newest first."""
    rows = (
        db.query(ProviderPayment, WeddingProvider.name)
        .join(WeddingProvider, WeddingProvider.id == ProviderPayment.wedding_provider_id)
        .filter(WeddingProvider.wedding_id == wedding.id)
        .order_by(ProviderPayment.date.desc(), ProviderPayment.id.desc())
        .all()
    )
    payments = [dict(_payment_out(p), provider_name=name) for p, name in rows]
    return ok(payments, total_paid=sum((p.amount for p, _ in rows), Decimal("0")))
