"""Master-admin console: planner accounts and a read-only view of every wedding."""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session, joinedload

from app.database import get_db
from app.dependencies import SessionUser, require_master_admin
from app.errors import ALREADY_EXISTS, NOT_FOUND, VALIDATION_ERROR, ApiError
from app.models.principal import MasterAdmin, WeddingPlanner
from app.models.wedding import Wedding
from app.schemas.common import DEFAULT_PAGE_SIZE, ok, paginate
from app.schemas.wedding import PlannerCreate, PlannerResponse, PlannerUpdate, WeddingResponse
from app.services.weddings import wedding_counts

log = logging.getLogger(__name__)
router = APIRouter(prefix="/api/master", tags=["master"])


@router.get("/planners")
def list_planners(
    enabled: bool | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    user: SessionUser = Depends(require_master_admin),
    db: Session = Depends(get_db),
):
    q = db.query(WeddingPlanner)
    if enabled is not None:
        q = q.filter(WeddingPlanner.enabled.is_(enabled))
    planners, pagination = paginate(q.order_by(WeddingPlanner.name.asc()), page, limit)
    return ok([PlannerResponse.model_validate(p) for p in planners], pagination=pagination)


@router.post("/planners", status_code=201)
def create_planner(data: PlannerCreate, user: SessionUser = Depends(require_master_admin), db: Session = Depends(get_db)):
    email = data.email.strip().lower()
    if db.query(WeddingPlanner.id).filter(WeddingPlanner.email == email).first():
        raise ApiError(409, ALREADY_EXISTS, f"A planner with email {email} already exists")
    creator = db.query(MasterAdmin.id).filter(MasterAdmin.email == user.email).first()
    planner = WeddingPlanner(
        email=email,
        name=data.name.strip(),
        logo_url=data.logo_url,
        enabled=True,
        created_by=creator.id if creator else None,
    )
    db.add(planner)
    db.commit()
    db.refresh(planner)
    log.info("[Master] %s created planner %s", user.email, email)
    return ok(PlannerResponse.model_validate(planner))


@router.patch("/planners/{planner_id}")
def update_planner(
    planner_id: int,
    data: PlannerUpdate,
    user: SessionUser = Depends(require_master_admin),
    db: Session = Depends(get_db),
):
    """Disabling takes effect at the planner's next session revalidation."""
    fields = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
    if not fields:
        raise ApiError(400, VALIDATION_ERROR, "No fields to update")
    planner = db.query(WeddingPlanner).filter(WeddingPlanner.id == planner_id).first()
    if not planner:
        raise ApiError(404, NOT_FOUND, "Planner not found")
    for key, value in fields.items():
        setattr(planner, key, value)
    db.commit()
    db.refresh(planner)
    if "enabled" in fields:
        log.info("[Master] Planner %s %s by %s", planner.email, "enabled" if planner.enabled else "disabled", user.email)
    return ok(PlannerResponse.model_validate(planner))


@router.get("/weddings")
def list_weddings(
    planner_id: int | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    user: SessionUser = Depends(require_master_admin),
    db: Session = Depends(get_db),
):
    q = db.query(Wedding).options(joinedload(Wedding.planner), joinedload(Wedding.theme))
    if planner_id is not None:
        q = q.filter(Wedding.planner_id == planner_id)
    weddings, pagination = paginate(q.order_by(Wedding.wedding_date.desc(), Wedding.id.desc()), page, limit)
    counts = wedding_counts(db, [w.id for w in weddings])
    rows = []
    for w in weddings:
        row = WeddingResponse.model_validate(w).model_dump()
        row.update(
            planner_name=w.planner.name if w.planner else None,
            theme_name=w.theme.name if w.theme else None,
            **counts[w.id],
        )
        rows.append(row)
    return ok(rows, pagination=pagination)
