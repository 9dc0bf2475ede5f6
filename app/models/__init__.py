"""
All SQLAlchemy models. Schema is the source of truth for new DBs.
Base.metadata.create_all() creates every table; no migration scripts needed for fresh installs.
"""
from app.models.principal import MasterAdmin, WeddingPlanner, WeddingAdmin, UserRole, AuthProvider
from app.models.theme import Theme
from app.models.wedding import Wedding, PaymentTrackingMode, WeddingStatus, LANGUAGES
from app.models.family import Family, FamilyMember, Channel, MemberType
from app.models.seating import Table
from app.models.tracking import TrackingEvent, Notification, EventType
from app.models.payment import Gift, GiftStatus, ProviderCategory, WeddingProvider, ProviderPayment, PaymentMethod
from app.models.template import MessageTemplate, InvitationTemplate, TemplateType
from app.models.photo import PhotoSource, WeddingPhoto

__all__ = [
    "MasterAdmin",
    "WeddingPlanner",
    "WeddingAdmin",
    "UserRole",
    "AuthProvider",
    "Theme",
    "Wedding",
    "PaymentTrackingMode",
    "WeddingStatus",
    "LANGUAGES",
    "Family",
    "FamilyMember",
    "Channel",
    "MemberType",
    "Table",
    "TrackingEvent",
    "Notification",
    "EventType",
    "Gift",
    "GiftStatus",
    "ProviderCategory",
    "WeddingProvider",
    "ProviderPayment",
    "PaymentMethod",
    "MessageTemplate",
    "InvitationTemplate",
    "TemplateType",
    "WeddingPhoto",
    "PhotoSource",
]
