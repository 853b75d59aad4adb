import logging
from typing import Iterable, List, Optional, Tuple
from uuid import UUID
from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from app.models.all_models import Student, Vaccination, VaccinationStatus
from app.schemas.student import StudentCreate, StudentUpdate
from app.utils.exceptions import StudentNotFound

logger = logging.getLogger(__name__)


def get_students(
    db: Session,
    search: Optional[str] = None,
    vaccination_status: Optional[str] = None,
    skip: int = 0,
    limit: Optional[int] = None,
) -> Tuple[List[Student], int]:
    query = db.query(Student).options(selectinload(Student.vaccinations))

    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Student.name.ilike(pattern),
            Student.roll_number.ilike(pattern),
            Student.class_name.ilike(pattern),
            Student.section.ilike(pattern),
        ))

    completed = Student.vaccinations.any(Vaccination.status == VaccinationStatus.COMPLETED)
    if vaccination_status == "vaccinated":
        query = query.filter(completed)
    elif vaccination_status == "not_vaccinated":
        query = query.filter(~completed)

    total_count = query.count()
    query = query.order_by(Student.class_name, Student.section, Student.roll_number).offset(skip)
    if limit is not None:
        query = query.limit(limit)
    return query.all(), total_count


def get_student(db: Session, student_id: UUID) -> Optional[Student]:
    return db.query(Student).filter(Student.id == student_id).first()


def get_student_or_404(db: Session, student_id: UUID) -> Student:
    student = get_student(db, student_id)
    if not student:
        raise StudentNotFound()
    return student


def create_student(db: Session, data: StudentCreate) -> Student:
    try:
        student = Student(**data.model_dump())
        db.add(student)
        db.commit()
        db.refresh(student)
        logger.info(f"Registered student {student.id} ({student.name})")
        return student
    except Exception:
        db.rollback()
        raise


def bulk_create_students(db: Session, rows: Iterable[StudentCreate]) -> List[Student]:
    """Insert every row in one transaction; vaccination history starts empty"""
    try:
        students = [Student(**row.model_dump()) for row in rows]
        db.add_all(students)
        db.commit()
        for student in students:
            db.refresh(student)
        logger.info(f"Imported {len(students)} students")
        return students
    except Exception:
        db.rollback()
        raise


def update_student(db: Session, student_id: UUID, data: StudentUpdate) -> Student:
    student = get_student_or_404(db, student_id)
    try:
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in update_data.items():
            setattr(student, field, value)
        db.commit()
        db.refresh(student)
        return student
    except Exception:
        db.rollback()
        raise


def delete_student(db: Session, student_id: UUID) -> None:
    student = get_student_or_404(db, student_id)
    try:
        db.delete(student)
        db.commit()
        logger.info(f"Deleted student {student_id}")
    except Exception:
        db.rollback()
        raise
