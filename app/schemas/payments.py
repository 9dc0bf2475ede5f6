"""Guest gifts and the vendor (provider) ledger."""
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, EmailStr, Field

from app.models.payment import GiftStatus, PaymentMethod


class GiftCreate(BaseModel):
    family_id: int
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    transaction_date: datetime | None = None
    reference_code_used: str | None = None


class GiftUpdate(BaseModel):
    status: GiftStatus


class GiftResponse(BaseModel):
    id: int
    family_id: int
    wedding_id: int
    amount: Decimal
    reference_code_used: str | None = None
    auto_matched: bool
    status: GiftStatus
    transaction_date: datetime

    class Config:
        from_attributes = True


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class ProviderCreate(BaseModel):
    category_id: int
    name: str = Field(min_length=1, max_length=255)
    contact_name: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    total_price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    contract_url: str | None = None
    notes: str | None = None


class ProviderUpdate(BaseModel):
    category_id: int | None = None
    name: str | None = Field(default=None, min_length=1, max_length=255)
    contact_name: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    total_price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    contract_url: str | None = None
    notes: str | None = None


class ProviderPaymentCreate(BaseModel):
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    date: datetime | None = None
    method: PaymentMethod
    notes: str | None = None
