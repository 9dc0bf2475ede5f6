"""Wedding admin: wedding settings, themes, statistics and reports."""
from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_admin_wedding
from app.errors import NOT_FOUND, VALIDATION_ERROR, ApiError
from app.models.wedding import Wedding
from app.schemas.common import ok
from app.schemas.wedding import AdminWeddingUpdate, WeddingResponse
from app.services.excel import XLSX_MEDIA_TYPE
from app.services.page_cache import invalidate_wedding
from app.services.reports import REPORTS, report_xlsx, wedding_stats
from app.services.themes import resolve_wedding_theme, theme_out, themes_for_planner
from app.services.weddings import apply_wedding_update

router = APIRouter(prefix="/api/admin", tags=["admin-wedding"])


@router.get("/wedding")
def get_wedding(wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    out = WeddingResponse.model_validate(wedding).model_dump()
    out["theme"] = theme_out(resolve_wedding_theme(db, wedding))
    return ok(out)


@router.patch("/wedding")
def patch_wedding(data: AdminWeddingUpdate, wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    apply_wedding_update(db, wedding, data.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(wedding)
    invalidate_wedding(wedding.id)
    return ok(WeddingResponse.model_validate(wedding))


@router.get("/wedding/stats")
def stats(wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    return ok(wedding_stats(db, wedding))


@router.get("/themes")
def themes(wedding: Wedding = Depends(get_admin_wedding), db: Session = Depends(get_db)):
    return ok({
        "themes": [theme_out(t) for t in themes_for_planner(db, wedding.planner_id)],
        "selected_theme_id": wedding.theme_id,
        "wedding_day_theme_id": wedding.wedding_day_theme_id,
    })


@router.get("/reports/{report}")
def report(
    report: str,
    format: str = "json",
    wedding: Wedding = Depends(get_admin_wedding),
    db: Session = Depends(get_db),
):
    if report not in REPORTS:
        raise ApiError(404, NOT_FOUND, f"Unknown report '{report}'")
    if format not in ("json", "xlsx"):
        raise ApiError(400, VALIDATION_ERROR, "format must be json or xlsx")
    rows = REPORTS[report][0](db, wedding)
    if format == "xlsx":
        return Response(
            content=report_xlsx(report, rows),
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{report}-{wedding.id}.xlsx"'},
        )
    return ok(rows, report=report)
