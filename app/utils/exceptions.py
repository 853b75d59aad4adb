from fastapi import status


class VaccinationPortalError(Exception):
    """Base class for every business-rule failure raised by the portal"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Operation failed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return type(self).__name__


# Lookups
class NotFound(VaccinationPortalError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Record not found"

class StudentNotFound(NotFound):
    default_message = "Student not found"

class DriveNotFound(NotFound):
    default_message = "Vaccination drive not found"


class ValidationFailed(VaccinationPortalError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Invalid or missing required field"


# Drive scheduling and editing
class SchedulingTooSoon(VaccinationPortalError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Vaccination drive must be scheduled at least 15 days in advance"

class DateConflict(VaccinationPortalError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Another vaccination drive is already scheduled on this date"

class ImmutableCompleted(VaccinationPortalError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Completed vaccination drives cannot be changed"

class DriveCancelled(VaccinationPortalError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Cancelled vaccination drives cannot be changed"

class DriveExpired(VaccinationPortalError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Past vaccination drives cannot be edited"

class CapacityBelowUsage(VaccinationPortalError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Total doses cannot be less than doses already used"


# Vaccination assignment
class NotEligibleClass(VaccinationPortalError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Student's class is not targeted by this drive"

class AlreadyVaccinated(VaccinationPortalError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Student already vaccinated in this drive"

class NoDosesRemaining(VaccinationPortalError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "No vaccine doses remaining"
