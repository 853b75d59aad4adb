import datetime as dt
from typing import Dict, List
from pydantic import BaseModel

from app.models.all_models import DriveStatus
from app.schemas.drive import DriveResponse, VaccinationStats


class ReportRow(BaseModel):
    name: str
    class_name: str
    section: str
    roll_number: str
    vaccine_name: str
    date: dt.date

class ClassCount(BaseModel):
    name: str
    count: int

class VaccineCoverage(BaseModel):
    name: str
    value: int

class VaccinationReport(BaseModel):
    drives_count: int
    doses_used: int
    vaccinated_students: int
    rows: List[ReportRow]
    class_counts: List[ClassCount]
    vaccine_coverage: List[VaccineCoverage]

class DashboardOverview(BaseModel):
    stats: VaccinationStats
    upcoming_drives: List[DriveResponse]
    drives_by_status: Dict[DriveStatus, int]
