from enum import Enum
from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.crud import student as student_crud
from app.database import get_db
from app.models.all_models import User
from app.schemas.drive import DriveResponse, VaccinationResult
from app.schemas.student import (
    StudentCreate, StudentListResponse, StudentResponse, StudentUpdate,
    UploadResponse, VaccinateStudentRequest
)
from app.services.student_import import parse_students_csv
from app.services.vaccination_engine import VaccinationEngine
from app.utils.auth import get_current_user

router = APIRouter(prefix="/api/students", tags=["students"])


class VaccinationFilter(str, Enum):
    VACCINATED = "vaccinated"
    NOT_VACCINATED = "not_vaccinated"


@router.get("", response_model=StudentListResponse)
async def get_students(
    search: Optional[str] = None,
    vaccination_status: Optional[VaccinationFilter] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db)
):
    students, total_count = student_crud.get_students(
        db,
        search=search,
        vaccination_status=vaccination_status.value if vaccination_status else None,
        skip=skip,
        limit=limit,
    )
    return StudentListResponse(
        students=[StudentResponse.model_validate(s) for s in students],
        total_count=total_count
    )

@router.post("", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
async def create_student(
    student_data: StudentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return student_crud.create_student(db, student_data)

@router.post("/import", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def import_students(
    students_data: List[StudentCreate],
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Import a batch of students sent as JSON; all or nothing
    """
    students = student_crud.bulk_create_students(db, students_data)
    return UploadResponse(
        message=f"{len(students)} students imported successfully",
        records_added=len(students),
        students=[StudentResponse.model_validate(s) for s in students],
    )

@router.post("/import/csv", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def import_students_csv(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Import students from a CSV file with the headers
    name, class, section, rollNumber, age, gender.
    Invalid rows are reported and skipped.
    """
    rows, errors = parse_students_csv(await file.read())
    students = student_crud.bulk_create_students(db, rows)
    return UploadResponse(
        message=f"{len(students)} students imported successfully",
        records_added=len(students),
        errors=errors or None,
        students=[StudentResponse.model_validate(s) for s in students],
    )

@router.get("/{student_id}", response_model=StudentResponse)
async def get_student(
    student_id: UUID,
    db: Session = Depends(get_db)
):
    return student_crud.get_student_or_404(db, student_id)

@router.put("/{student_id}", response_model=StudentResponse)
async def update_student(
    student_id: UUID,
    student_data: StudentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return student_crud.update_student(db, student_id, student_data)

@router.delete("/{student_id}")
async def delete_student(
    student_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    student_crud.delete_student(db, student_id)
    return {"message": "Student deleted"}

@router.post("/{student_id}/vaccinate/{drive_id}", response_model=VaccinationResult)
async def vaccinate_student(
    student_id: UUID,
    drive_id: UUID,
    request: Optional[VaccinateStudentRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Mark a student as vaccinated in a drive
    """
    student, drive = VaccinationEngine(db).mark_student_vaccinated(
        student_id, drive_id, request.date if request else None
    )
    return VaccinationResult(
        student=StudentResponse.model_validate(student),
        drive=DriveResponse.model_validate(drive),
    )
