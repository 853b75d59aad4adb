from sqlalchemy import Column, String, Integer, Date, DateTime, Boolean, ForeignKey, Enum as SQLEnum, JSON, CheckConstraint, Uuid
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import declarative_base, relationship
from enum import Enum
import uuid

from app.utils.dates import local_now

Base = declarative_base()

# Enum Classes
class UserRole(str, Enum):
    ADMIN = "admin"
    COORDINATOR = "coordinator"

class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"

class VaccinationStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class DriveStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

# Model Classes
class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String(50), unique=True, nullable=False)
    email = Column(String(100), unique=True, nullable=False)
    full_name = Column(String(100))
    password_hash = Column(String(255), nullable=False)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.COORDINATOR)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=local_now)
    updated_at = Column(DateTime, default=local_now, onupdate=local_now)


class Student(Base):
    __tablename__ = "students"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    class_name = Column("class", String(20), nullable=False)
    section = Column(String(20), nullable=False)
    roll_number = Column(String(20), nullable=False)
    age = Column(Integer, nullable=False)
    gender = Column(SQLEnum(Gender), nullable=False)
    created_at = Column(DateTime, default=local_now)
    updated_at = Column(DateTime, default=local_now, onupdate=local_now)

    # Embedded history: removed together with the student
    vaccinations = relationship(
        "Vaccination",
        back_populates="student",
        order_by="Vaccination.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("age >= 0", name="ck_student_age_non_negative"),
    )

    def completed_vaccinations(self, drive_id=None):
        return [
            v for v in self.vaccinations
            if v.status == VaccinationStatus.COMPLETED and (drive_id is None or v.drive_id == drive_id)
        ]

    @property
    def is_vaccinated(self) -> bool:
        return bool(self.completed_vaccinations())


class Vaccination(Base):
    __tablename__ = "vaccinations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    drive_id = Column(Uuid(as_uuid=True), ForeignKey("vaccination_drives.id"), nullable=False)
    vaccine_name = Column(String(100), nullable=False)
    date = Column(Date, nullable=False)
    status = Column(SQLEnum(VaccinationStatus), nullable=False, default=VaccinationStatus.SCHEDULED)
    position = Column(Integer, nullable=False, default=0)

    student = relationship("Student", back_populates="vaccinations")


class VaccinationDrive(Base):
    __tablename__ = "vaccination_drives"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    date = Column(Date, nullable=False, index=True)
    vaccine_name = Column(String(100), nullable=False)
    total_doses = Column(Integer, nullable=False)
    used_doses = Column(Integer, nullable=False, default=0)
    target_classes = Column(JSON, nullable=False, default=list)
    status = Column(SQLEnum(DriveStatus), nullable=False, default=DriveStatus.SCHEDULED)
    created_at = Column(DateTime, default=local_now)
    updated_at = Column(DateTime, default=local_now, onupdate=local_now)

    __table_args__ = (
        CheckConstraint("total_doses > 0", name="ck_drive_total_positive"),
        CheckConstraint("used_doses >= 0 AND used_doses <= total_doses", name="ck_drive_used_within_total"),
    )

    @property
    def remaining_doses(self) -> int:
        return self.total_doses - self.used_doses
