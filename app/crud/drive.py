"""
Drive registry access. These helpers only stage changes on the session;
committing is left to the caller (the vaccination engine) so that
multi-record operations stay in one transaction.
"""
from datetime import date
from typing import List, Optional
from uuid import UUID
from sqlalchemy import update
from sqlalchemy.orm import Session

from app.models.all_models import DriveStatus, VaccinationDrive
from app.utils.exceptions import DriveNotFound


def get_drives(db: Session, status: Optional[DriveStatus] = None) -> List[VaccinationDrive]:
    query = db.query(VaccinationDrive)
    if status is not None:
        query = query.filter(VaccinationDrive.status == status)
    return query.order_by(VaccinationDrive.date).all()


def get_drive(db: Session, drive_id: UUID, for_update: bool = False) -> Optional[VaccinationDrive]:
    query = db.query(VaccinationDrive).filter(VaccinationDrive.id == drive_id)
    if for_update:
        query = query.with_for_update()
    return query.first()


def get_drive_or_404(db: Session, drive_id: UUID, for_update: bool = False) -> VaccinationDrive:
    drive = get_drive(db, drive_id, for_update=for_update)
    if not drive:
        raise DriveNotFound()
    return drive


def get_drives_on_date(db: Session, drive_date: date, exclude_id: Optional[UUID] = None) -> List[VaccinationDrive]:
    """Drives occupying a date; cancelled drives free their date"""
    query = db.query(VaccinationDrive).filter(
        VaccinationDrive.date == drive_date,
        VaccinationDrive.status != DriveStatus.CANCELLED,
    )
    if exclude_id is not None:
        query = query.filter(VaccinationDrive.id != exclude_id)
    return query.all()


def create_drive(db: Session, **fields) -> VaccinationDrive:
    drive = VaccinationDrive(**fields, used_doses=0, status=DriveStatus.SCHEDULED)
    db.add(drive)
    db.flush()
    return drive


def update_drive_fields(db: Session, drive: VaccinationDrive, fields: dict) -> VaccinationDrive:
    for field, value in fields.items():
        setattr(drive, field, value)
    db.flush()
    return drive


def increment_used_doses(db: Session, drive_id: UUID) -> bool:
    """Consume one dose only if one is left; False when the drive is exhausted"""
    result = db.execute(
        update(VaccinationDrive)
        .where(
            VaccinationDrive.id == drive_id,
            VaccinationDrive.used_doses < VaccinationDrive.total_doses,
        )
        .values(used_doses=VaccinationDrive.used_doses + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
