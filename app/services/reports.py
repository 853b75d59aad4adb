import calendar
import io
import re
from collections import OrderedDict
from datetime import date
from typing import Dict, Iterable, List, Optional
from uuid import UUID

import pandas as pd
from sqlalchemy.orm import Session, selectinload

from app.config import settings
from app.crud.drive import get_drive_or_404
from app.models.all_models import (
    DriveStatus,
    Student,
    Vaccination,
    VaccinationDrive,
    VaccinationStatus,
)
from app.utils.dates import days_from, local_today
from app.utils.validation import round_half_up_percentage

REPORT_COLUMNS = OrderedDict([
    ("name", "Name"),
    ("class_name", "Class"),
    ("section", "Section"),
    ("roll_number", "Roll Number"),
    ("vaccine_name", "Vaccine Name"),
    ("date", "Vaccination Date"),
])


def _completed():
    return Student.vaccinations.any(Vaccination.status == VaccinationStatus.COMPLETED)


def _completed_for(drive_id: UUID):
    return Student.vaccinations.any(
        (Vaccination.drive_id == drive_id) & (Vaccination.status == VaccinationStatus.COMPLETED)
    )


def get_upcoming_drives(db: Session, today: Optional[date] = None,
                        window_days: Optional[int] = None) -> List[VaccinationDrive]:
    """Scheduled drives after today and no later than the end of the window"""
    today = today or local_today()
    window_days = settings.UPCOMING_WINDOW_DAYS if window_days is None else window_days
    return db.query(VaccinationDrive).filter(
        VaccinationDrive.status == DriveStatus.SCHEDULED,
        VaccinationDrive.date > today,
        VaccinationDrive.date <= days_from(today, window_days),
    ).order_by(VaccinationDrive.date).all()


def get_vaccination_stats(db: Session) -> Dict[str, int]:
    total = db.query(Student).count()
    vaccinated = db.query(Student).filter(_completed()).count()
    return {
        "total": total,
        "vaccinated": vaccinated,
        "percentage": round_half_up_percentage(vaccinated, total),
    }


def get_drive_status_counts(db: Session) -> Dict[DriveStatus, int]:
    counts = {status: 0 for status in DriveStatus}
    for (status,) in db.query(VaccinationDrive.status).all():
        counts[status] += 1
    return counts


def get_vaccinated_students(db: Session, drive_id: UUID) -> List[Student]:
    get_drive_or_404(db, drive_id)
    return db.query(Student).options(selectinload(Student.vaccinations)).filter(
        _completed_for(drive_id)
    ).order_by(Student.class_name, Student.section, Student.roll_number).all()


def build_report_rows(students: Iterable[Student], drive_ids: Optional[Iterable[UUID]] = None) -> List[Dict]:
    """One row per completed vaccination, limited to ``drive_ids`` when given"""
    allowed = set(drive_ids) if drive_ids is not None else None
    rows = []
    for student in students:
        for vaccination in student.completed_vaccinations():
            if allowed is not None and vaccination.drive_id not in allowed:
                continue
            rows.append({
                "name": student.name,
                "class_name": student.class_name,
                "section": student.section,
                "roll_number": student.roll_number,
                "vaccine_name": vaccination.vaccine_name,
                "date": vaccination.date,
            })
    return rows


def filter_report_drives(db: Session, vaccine_name: Optional[str] = None,
                         year: Optional[int] = None, month: Optional[int] = None,
                         completed_only: bool = True) -> List[VaccinationDrive]:
    query = db.query(VaccinationDrive)
    if completed_only:
        query = query.filter(VaccinationDrive.status == DriveStatus.COMPLETED)
    if vaccine_name:
        query = query.filter(VaccinationDrive.vaccine_name == vaccine_name)
    if year is not None and month is not None:
        first = date(year, month, 1)
        last = date(year, month, calendar.monthrange(year, month)[1])
        query = query.filter(VaccinationDrive.date >= first, VaccinationDrive.date <= last)
    return query.order_by(VaccinationDrive.date).all()


def _class_sort_key(label: str):
    match = re.search(r"\d+", label)
    return (int(match.group()) if match else float("inf"), label)


def get_vaccination_report(db: Session, vaccine_name: Optional[str] = None,
                           year: Optional[int] = None, month: Optional[int] = None,
                           completed_only: bool = True) -> Dict:
    drives = filter_report_drives(db, vaccine_name, year, month, completed_only)
    drive_ids = [d.id for d in drives]

    students = []
    if drive_ids:
        students = db.query(Student).options(selectinload(Student.vaccinations)).filter(
            Student.vaccinations.any(
                Vaccination.drive_id.in_(drive_ids) & (Vaccination.status == VaccinationStatus.COMPLETED)
            )
        ).order_by(Student.class_name, Student.section, Student.roll_number).all()

    class_counts: Dict[str, int] = {}
    for student in students:
        class_counts[student.class_name] = class_counts.get(student.class_name, 0) + 1

    return {
        "drives_count": len(drives),
        "doses_used": sum(d.used_doses for d in drives),
        "vaccinated_students": len(students),
        "rows": build_report_rows(students, drive_ids),
        "class_counts": [
            {"name": f"Class {label}", "count": class_counts[label]}
            for label in sorted(class_counts, key=_class_sort_key)
        ],
        "vaccine_coverage": get_vaccine_coverage(db),
    }


def get_vaccine_coverage(db: Session) -> List[Dict]:
    """Completed vaccinations per vaccine across every student"""
    coverage: Dict[str, int] = OrderedDict()
    entries = db.query(Vaccination).filter(
        Vaccination.status == VaccinationStatus.COMPLETED
    ).order_by(Vaccination.date).all()
    for entry in entries:
        coverage[entry.vaccine_name] = coverage.get(entry.vaccine_name, 0) + 1
    return [{"name": name, "value": count} for name, count in coverage.items()]


def rows_to_csv(rows: List[Dict]) -> str:
    frame = pd.DataFrame(rows, columns=list(REPORT_COLUMNS))
    if not frame.empty:
        frame["date"] = frame["date"].map(lambda d: d.isoformat())
    buffer = io.StringIO()
    frame.rename(columns=REPORT_COLUMNS).to_csv(buffer, index=False)
    return buffer.getvalue()


def report_filename(year: Optional[int] = None, month: Optional[int] = None) -> str:
    if year is not None and month is not None:
        return f"Vaccination_Report_{calendar.month_abbr[month]}_{year}.csv"
    return "Vaccination_Report_All_Time.csv"
