import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.drive import DriveResponse
from app.schemas.reports import DashboardOverview
from app.services import reports

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


@router.get("/overview", response_model=DashboardOverview)
async def get_dashboard_overview(db: Session = Depends(get_db)):
    """
    Coverage stats, drives in the next 30 days and drive counts by status
    """
    stats = reports.get_vaccination_stats(db)
    upcoming = reports.get_upcoming_drives(db)
    logger.debug(f"Dashboard: {stats['vaccinated']}/{stats['total']} vaccinated, {len(upcoming)} upcoming drives")
    return DashboardOverview(
        stats=stats,
        upcoming_drives=[DriveResponse.model_validate(d) for d in upcoming],
        drives_by_status=reports.get_drive_status_counts(db),
    )
