"""Guest gifts and the vendor (provider) payment ledger."""
import enum

from sqlalchemy import Boolean, Column, DateTime, Enum as SQLEnum, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, utcnow


class GiftStatus(str, enum.Enum):
    PENDING = "PENDING"
    RECEIVED = "RECEIVED"
    CONFIRMED = "CONFIRMED"


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"
    PAYPAL = "PAYPAL"
    BIZUM = "BIZUM"
    REVOLUT = "REVOLUT"
    OTHER = "OTHER"


class Gift(Base):
    __tablename__ = "gifts"

    id = Column(Integer, primary_key=True, index=True)
    family_id = Column(Integer, ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True)
    wedding_id = Column(Integer, ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    reference_code_used = Column(String(16), nullable=True)
    auto_matched = Column(Boolean, nullable=False, default=False)
    status = Column(SQLEnum(GiftStatus), nullable=False, default=GiftStatus.PENDING, index=True)
    transaction_date = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, server_default=func.now())

    family = relationship("Family")


class ProviderCategory(Base):
    __tablename__ = "provider_categories"
    __table_args__ = (UniqueConstraint("planner_id", "name", name="uq_provider_categories_planner_name"),)

    id = Column(Integer, primary_key=True, index=True)
    planner_id = Column(Integer, ForeignKey("wedding_planners.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class WeddingProvider(Base):
    __tablename__ = "wedding_providers"

    id = Column(Integer, primary_key=True, index=True)
    wedding_id = Column(Integer, ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("provider_categories.id"), nullable=False)
    name = Column(String(255), nullable=False)
    contact_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    total_price = Column(Numeric(10, 2), nullable=True)
    contract_url = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    category = relationship("ProviderCategory")
    payments = relationship(
        "ProviderPayment",
        back_populates="wedding_provider",
        cascade="all, delete-orphan",
        order_by="ProviderPayment.date",
    )


class ProviderPayment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    wedding_provider_id = Column(Integer, ForeignKey("wedding_providers.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    date = Column(DateTime, nullable=False, default=utcnow)
    method = Column(SQLEnum(PaymentMethod), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    wedding_provider = relationship("WeddingProvider", back_populates="payments")
