"""Wedding admin: seating plan."""
import random

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_admin_wedding
from app.models.wedding import Wedding
from app.schemas.common import ok
from app.schemas.seating import SeatingUpdate, TablesUpdate
from app.services.seating import assign_seats, get_seating, random_assign, upsert_tables

router = APIRouter(prefix="/api/admin/seating", tags=["admin-seating"])


@router.get("")
def seating(wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    return ok(get_seating(db, wedding))


@router.post("")
def assign(data: SeatingUpdate, wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    """Apply a batch of seat assignments; rejected as a whole if a table would overflow."""
    return ok(assign_seats(db, wedding, [a.model_dump() for a in data.assignments]))


@router.put("/tables")
def tables(data: TablesUpdate, wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    return ok(upsert_tables(db, wedding, [t.model_dump() for t in data.tables]))


@router.post("/random")
def randomize(wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    return ok(random_assign(db, wedding, random.Random()))
