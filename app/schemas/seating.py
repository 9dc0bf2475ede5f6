"""Seating assignment and table layout payloads."""
from pydantic import BaseModel, Field


class SeatAssignment(BaseModel):
    # member id, or "couple-member-1"/"couple-member-2" for the couple
    guest_id: int | str
    table_id: int | None = None


class SeatingUpdate(BaseModel):
    assignments: list[SeatAssignment] = Field(min_length=1)


class TableInput(BaseModel):
    id: int | None = None
    name: str | None = Field(default=None, max_length=255)
    number: int = Field(ge=1)
    capacity: int = Field(ge=1, le=100)


class TablesUpdate(BaseModel):
    tables: list[TableInput]
