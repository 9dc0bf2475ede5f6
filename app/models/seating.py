"""Reception tables for seating."""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class Table(Base):
    __tablename__ = "tables"

    id = Column(Integer, primary_key=True, index=True)
    wedding_id = Column(Integer, ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    number = Column(Integer, nullable=False)
    capacity = Column(Integer, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    wedding = relationship("Wedding", back_populates="tables")
    assigned_guests = relationship("FamilyMember", back_populates="table", order_by="FamilyMember.name")

    @property
    def display_name(self) -> str:
        return self.name or f"Table {self.number}"
