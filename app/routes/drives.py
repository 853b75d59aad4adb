from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.crud import drive as drive_crud
from app.database import get_db
from app.models.all_models import DriveStatus, User
from app.schemas.drive import (
    DriveCreate, DriveResponse, DriveUpdate, DriveVaccinateRequest,
    VaccinationResult, VaccinationStats
)
from app.schemas.student import StudentResponse
from app.services import reports
from app.services.vaccination_engine import VaccinationEngine
from app.utils.auth import get_current_user

router = APIRouter(prefix="/api/vaccination-drives", tags=["vaccination drives"])


@router.get("", response_model=List[DriveResponse])
async def get_drives(
    status: Optional[DriveStatus] = None,
    db: Session = Depends(get_db)
):
    return drive_crud.get_drives(db, status=status)

@router.post("", response_model=DriveResponse, status_code=status.HTTP_201_CREATED)
async def schedule_drive(
    drive_data: DriveCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Schedule a new drive. It must be at least 15 days away and on a free date.
    """
    return VaccinationEngine(db).schedule_drive(**drive_data.model_dump())

# Static paths are declared before /{drive_id}
@router.get("/upcoming/list", response_model=List[DriveResponse])
async def get_upcoming_drives(db: Session = Depends(get_db)):
    """
    Scheduled drives in the next 30 days
    """
    return reports.get_upcoming_drives(db)

@router.get("/stats/overview", response_model=VaccinationStats)
async def get_vaccination_stats(db: Session = Depends(get_db)):
    return reports.get_vaccination_stats(db)

@router.get("/{drive_id}", response_model=DriveResponse)
async def get_drive(
    drive_id: UUID,
    db: Session = Depends(get_db)
):
    return drive_crud.get_drive_or_404(db, drive_id)

@router.put("/{drive_id}", response_model=DriveResponse)
async def update_drive(
    drive_id: UUID,
    drive_data: DriveUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return VaccinationEngine(db).edit_drive(drive_id, **drive_data.model_dump(exclude_unset=True))

@router.put("/{drive_id}/cancel", response_model=DriveResponse)
async def cancel_drive(
    drive_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return VaccinationEngine(db).cancel_drive(drive_id)

@router.put("/{drive_id}/complete", response_model=DriveResponse)
async def complete_drive(
    drive_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return VaccinationEngine(db).complete_drive(drive_id)

@router.get("/{drive_id}/students", response_model=List[StudentResponse])
async def get_vaccinated_students(
    drive_id: UUID,
    db: Session = Depends(get_db)
):
    return reports.get_vaccinated_students(db, drive_id)

@router.get("/{drive_id}/students/export")
async def export_vaccinated_students(
    drive_id: UUID,
    db: Session = Depends(get_db)
):
    drive = drive_crud.get_drive_or_404(db, drive_id)
    students = reports.get_vaccinated_students(db, drive_id)
    content = reports.rows_to_csv(reports.build_report_rows(students, [drive_id]))
    filename = f"{drive.name.replace(' ', '_')}_vaccinated_students.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

@router.post("/{drive_id}/vaccinate", response_model=VaccinationResult)
async def vaccinate_student(
    drive_id: UUID,
    request: DriveVaccinateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    student, drive = VaccinationEngine(db).mark_student_vaccinated(request.student_id, drive_id, request.date)
    return VaccinationResult(
        student=StudentResponse.model_validate(student),
        drive=DriveResponse.model_validate(drive),
    )
