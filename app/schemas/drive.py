import datetime as dt
from datetime import datetime
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field, field_validator

from app.models.all_models import DriveStatus
from app.schemas.student import StudentResponse


def _clean_classes(classes: Optional[List[str]]) -> Optional[List[str]]:
    if classes is None:
        return None
    cleaned = []
    for label in classes:
        label = str(label).strip()
        if label and label not in cleaned:
            cleaned.append(label)
    if not cleaned:
        raise ValueError("at least one target class is required")
    return cleaned


class DriveBase(BaseModel):
    name: str = Field(min_length=1)
    date: dt.date
    vaccine_name: str = Field(min_length=1)
    total_doses: int = Field(gt=0)
    target_classes: List[str] = Field(min_length=1)

    @field_validator("target_classes")
    @classmethod
    def normalise_classes(cls, value):
        return _clean_classes(value)

    class Config:
        from_attributes = True

class DriveCreate(DriveBase):
    pass

class DriveUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    date: Optional[dt.date] = None
    vaccine_name: Optional[str] = Field(default=None, min_length=1)
    total_doses: Optional[int] = Field(default=None, gt=0)
    target_classes: Optional[List[str]] = None

    @field_validator("target_classes")
    @classmethod
    def normalise_classes(cls, value):
        return _clean_classes(value)

class DriveResponse(DriveBase):
    id: UUID
    used_doses: int
    remaining_doses: int
    status: DriveStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class DriveVaccinateRequest(BaseModel):
    student_id: UUID
    date: Optional[dt.date] = None

class VaccinationResult(BaseModel):
    student: StudentResponse
    drive: DriveResponse

class VaccinationStats(BaseModel):
    total: int
    vaccinated: int
    percentage: int
