"""Role principals: master admins, wedding planners, wedding admins (couples)."""
import enum

from sqlalchemy import Boolean, Column, DateTime, Enum as SQLEnum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class UserRole(str, enum.Enum):
    master_admin = "master_admin"
    planner = "planner"
    wedding_admin = "wedding_admin"


class AuthProvider(str, enum.Enum):
    GOOGLE = "GOOGLE"
    FACEBOOK = "FACEBOOK"
    APPLE = "APPLE"


class MasterAdmin(Base):
    __tablename__ = "master_admins"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class WeddingPlanner(Base):
    __tablename__ = "wedding_planners"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    logo_url = Column(String(500), nullable=True)
    # Disabled planners are rejected at sign-in and on the next session revalidation
    enabled = Column(Boolean, nullable=False, default=True)
    subscription_status = Column(String(20), nullable=False, default="ACTIVE")
    last_login_provider = Column(SQLEnum(AuthProvider), nullable=True)
    last_login_at = Column(DateTime, nullable=True)
    created_by = Column(Integer, ForeignKey("master_admins.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    weddings = relationship("Wedding", back_populates="planner")


class WeddingAdmin(Base):
    __tablename__ = "wedding_admins"
    __table_args__ = (UniqueConstraint("email", "wedding_id", name="uq_wedding_admins_email_wedding"),)

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    wedding_id = Column(Integer, ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False, index=True)
    invited_by = Column(Integer, ForeignKey("wedding_planners.id", ondelete="SET NULL"), nullable=True)
    invited_at = Column(DateTime, server_default=func.now())
    accepted_at = Column(DateTime, nullable=True)  # first successful sign-in
    last_login_provider = Column(SQLEnum(AuthProvider), nullable=True)
    last_login_at = Column(DateTime, nullable=True)

    wedding = relationship("Wedding", back_populates="admins")
