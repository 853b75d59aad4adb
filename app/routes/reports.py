from typing import Optional
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.reports import VaccinationReport
from app.services import reports
from app.utils.exceptions import ValidationFailed

router = APIRouter(prefix="/api/reports", tags=["Vaccination Reports"])


def _month_filter(year: Optional[int], month: Optional[int]):
    if (year is None) != (month is None):
        raise ValidationFailed("year and month must be given together")
    return year, month


@router.get("/vaccinations", response_model=VaccinationReport)
async def get_vaccination_report(
    vaccine_name: Optional[str] = None,
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    completed_only: bool = True,
    db: Session = Depends(get_db)
):
    """
    Vaccination records for completed drives, optionally narrowed to one
    vaccine and/or one calendar month
    """
    year, month = _month_filter(year, month)
    return reports.get_vaccination_report(db, vaccine_name, year, month, completed_only)

@router.get("/vaccinations/export")
async def export_vaccination_report(
    vaccine_name: Optional[str] = None,
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    completed_only: bool = True,
    db: Session = Depends(get_db)
):
    year, month = _month_filter(year, month)
    report = reports.get_vaccination_report(db, vaccine_name, year, month, completed_only)
    return Response(
        content=reports.rows_to_csv(report["rows"]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{reports.report_filename(year, month)}"'},
    )
