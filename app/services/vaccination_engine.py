import logging
from contextlib import contextmanager
from datetime import date
from typing import Callable, List, Optional, Tuple
from uuid import UUID
from sqlalchemy.orm import Session

from app.config import settings
from app.crud import drive as drive_crud
from app.crud.student import get_student
from app.models.all_models import (
    DriveStatus,
    Student,
    Vaccination,
    VaccinationDrive,
    VaccinationStatus,
)
from app.utils.dates import days_from, local_today
from app.utils.exceptions import (
    AlreadyVaccinated,
    CapacityBelowUsage,
    DateConflict,
    DriveCancelled,
    DriveExpired,
    DriveNotFound,
    ImmutableCompleted,
    NoDosesRemaining,
    NotEligibleClass,
    SchedulingTooSoon,
    StudentNotFound,
    VaccinationPortalError,
)
from app.utils.validation import clean_drive_fields

logger = logging.getLogger(__name__)


class VaccinationEngine:
    """
    Business rules for scheduling drives and recording vaccinations.

    Every public operation is one unit of work on the session it was built
    with: it either commits all of its changes or rolls everything back and
    raises a single ``VaccinationPortalError``.
    """

    def __init__(self, db_session: Session, today: Callable[[], date] = local_today,
                 min_lead_days: Optional[int] = None):
        self.db = db_session
        self._today = today
        self.min_lead_days = settings.DRIVE_MIN_LEAD_DAYS if min_lead_days is None else min_lead_days

    def today(self) -> date:
        return self._today()

    @contextmanager
    def _unit_of_work(self, action: str):
        try:
            yield
            self.db.commit()
        except VaccinationPortalError as e:
            self.db.rollback()
            logger.warning(f"{action} rejected: {e.code} - {e.message}")
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"{action} failed: {str(e)}")
            raise

    # Scheduling rules
    def _check_lead_time(self, drive_date: date):
        earliest = days_from(self.today(), self.min_lead_days)
        if drive_date < earliest:
            raise SchedulingTooSoon(
                f"Vaccination drive must be scheduled at least {self.min_lead_days} days in advance "
                f"(on or after {earliest.isoformat()})"
            )

    def _check_date_free(self, drive_date: date, exclude_id: Optional[UUID] = None):
        if drive_crud.get_drives_on_date(self.db, drive_date, exclude_id=exclude_id):
            raise DateConflict(f"Another vaccination drive is already scheduled on {drive_date.isoformat()}")

    def _check_editable(self, drive: VaccinationDrive):
        if drive.status == DriveStatus.COMPLETED:
            raise ImmutableCompleted()
        if drive.status == DriveStatus.CANCELLED:
            raise DriveCancelled()
        # A drive taking place today has already started
        if drive.date <= self.today():
            raise DriveExpired()

    # Drive operations
    def schedule_drive(self, name: str, date: date, vaccine_name: str,
                       total_doses: int, target_classes: List[str]) -> VaccinationDrive:
        fields = clean_drive_fields(dict(
            name=name,
            date=date,
            vaccine_name=vaccine_name,
            total_doses=total_doses,
            target_classes=target_classes,
        ))

        with self._unit_of_work("Schedule drive"):
            self._check_lead_time(fields["date"])
            self._check_date_free(fields["date"])
            drive = drive_crud.create_drive(self.db, **fields)

        self.db.refresh(drive)
        logger.info(f"Scheduled drive {drive.id} ({drive.name}) on {drive.date}")
        return drive

    def edit_drive(self, drive_id: UUID, **changes) -> VaccinationDrive:
        fields = clean_drive_fields(changes, partial=True)

        with self._unit_of_work(f"Edit drive {drive_id}"):
            drive = drive_crud.get_drive_or_404(self.db, drive_id, for_update=True)
            self._check_editable(drive)

            new_date = fields.get("date")
            if new_date is not None and new_date != drive.date:
                self._check_lead_time(new_date)
                self._check_date_free(new_date, exclude_id=drive.id)

            new_total = fields.get("total_doses")
            if new_total is not None and new_total < drive.used_doses:
                raise CapacityBelowUsage(
                    f"Total doses cannot be less than the {drive.used_doses} doses already used"
                )

            drive_crud.update_drive_fields(self.db, drive, fields)

        self.db.refresh(drive)
        logger.info(f"Updated drive {drive.id}: {', '.join(sorted(fields)) or 'no changes'}")
        return drive

    def _close_drive(self, drive_id: UUID, new_status: DriveStatus) -> VaccinationDrive:
        with self._unit_of_work(f"Set drive {drive_id} {new_status.value}"):
            drive = drive_crud.get_drive_or_404(self.db, drive_id, for_update=True)
            if drive.status != new_status:
                if drive.status == DriveStatus.COMPLETED:
                    raise ImmutableCompleted()
                if drive.status == DriveStatus.CANCELLED:
                    raise DriveCancelled()
                drive.status = new_status

        self.db.refresh(drive)
        logger.info(f"Drive {drive.id} is {drive.status.value}")
        return drive

    def cancel_drive(self, drive_id: UUID) -> VaccinationDrive:
        return self._close_drive(drive_id, DriveStatus.CANCELLED)

    def complete_drive(self, drive_id: UUID) -> VaccinationDrive:
        return self._close_drive(drive_id, DriveStatus.COMPLETED)

    # Vaccination assignment
    def mark_student_vaccinated(self, student_id: UUID, drive_id: UUID,
                                vaccination_date: Optional[date] = None) -> Tuple[Student, VaccinationDrive]:
        with self._unit_of_work(f"Vaccinate student {student_id} in drive {drive_id}"):
            student = get_student(self.db, student_id)
            if not student:
                raise StudentNotFound()

            drive = drive_crud.get_drive(self.db, drive_id, for_update=True)
            if not drive:
                raise DriveNotFound()

            if student.class_name not in (drive.target_classes or []):
                raise NotEligibleClass(
                    f"{student.name} is in class {student.class_name}, which is not targeted by {drive.name}"
                )

            if student.completed_vaccinations(drive.id):
                raise AlreadyVaccinated(f"{student.name} has already been vaccinated in this drive")

            if drive.used_doses >= drive.total_doses or not drive_crud.increment_used_doses(self.db, drive.id):
                raise NoDosesRemaining(f"No vaccine doses remaining for {drive.name}")

            self._record_vaccination(student, drive, vaccination_date or self.today())

        self.db.refresh(drive)
        self.db.refresh(student)
        logger.info(f"Student {student.id} vaccinated in drive {drive.id} ({drive.used_doses}/{drive.total_doses} doses used)")
        return student, drive

    def _record_vaccination(self, student: Student, drive: VaccinationDrive, vaccination_date: date):
        # Only scheduled or cancelled entries can remain for this drive here
        pending = [v for v in student.vaccinations if v.drive_id == drive.id]
        if pending:
            entry = pending[0]
            for stale in pending[1:]:
                student.vaccinations.remove(stale)
        else:
            entry = Vaccination(drive_id=drive.id)
            student.vaccinations.append(entry)

        entry.vaccine_name = drive.vaccine_name
        entry.date = vaccination_date
        entry.status = VaccinationStatus.COMPLETED
