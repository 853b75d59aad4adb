import datetime as dt
from datetime import datetime
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field, field_validator

from app.models.all_models import Gender, VaccinationStatus


class VaccinationResponse(BaseModel):
    drive_id: UUID
    vaccine_name: str
    date: dt.date
    status: VaccinationStatus

    class Config:
        from_attributes = True

class StudentText(BaseModel):
    """Text fields are stored stripped and may not be blank"""

    @field_validator("name", "class_name", "section", "roll_number", check_fields=False)
    @classmethod
    def strip_text(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

class StudentBase(StudentText):
    name: str = Field(min_length=1)
    class_name: str = Field(min_length=1)
    section: str = Field(min_length=1)
    roll_number: str = Field(min_length=1)
    age: int = Field(ge=0)
    gender: Gender

    class Config:
        from_attributes = True

class StudentCreate(StudentBase):
    pass

class StudentUpdate(StudentText):
    name: Optional[str] = Field(default=None, min_length=1)
    class_name: Optional[str] = Field(default=None, min_length=1)
    section: Optional[str] = Field(default=None, min_length=1)
    roll_number: Optional[str] = Field(default=None, min_length=1)
    age: Optional[int] = Field(default=None, ge=0)
    gender: Optional[Gender] = None

class StudentResponse(StudentBase):
    id: UUID
    vaccinations: List[VaccinationResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class StudentListResponse(BaseModel):
    students: List[StudentResponse]
    total_count: int

class UploadResponse(BaseModel):
    message: str
    records_added: int
    errors: Optional[List[str]] = None
    students: List[StudentResponse] = []

class VaccinateStudentRequest(BaseModel):
    date: Optional[dt.date] = None
