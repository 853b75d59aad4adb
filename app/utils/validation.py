from datetime import date
from typing import Dict, Iterable, Optional

from app.utils.exceptions import ValidationFailed

DRIVE_FIELDS = ("name", "date", "vaccine_name", "total_doses", "target_classes")


def require_text(value, field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationFailed(f"{field} is required")
    return str(value).strip()


def require_positive_int(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationFailed(f"{field} must be a positive integer")
    return value


def require_date(value, field: str) -> date:
    if not isinstance(value, date):
        raise ValidationFailed(f"{field} must be a calendar date")
    return value


def require_classes(value: Optional[Iterable[str]], field: str = "target_classes") -> list:
    if value is None or isinstance(value, str):
        raise ValidationFailed(f"{field} must be a list of class labels")
    classes = []
    for label in value:
        label = str(label).strip()
        if label and label not in classes:
            classes.append(label)
    if not classes:
        raise ValidationFailed(f"{field} must contain at least one class")
    return classes


_DRIVE_CHECKS = {
    "name": require_text,
    "vaccine_name": require_text,
    "date": require_date,
    "total_doses": require_positive_int,
    "target_classes": require_classes,
}


def clean_drive_fields(fields: Dict, partial: bool = False) -> Dict:
    """
    Validate drive attributes and return a normalised copy.
    With ``partial`` only the supplied (non-None) fields are checked,
    otherwise every drive field is required.
    """
    unknown = set(fields) - set(DRIVE_FIELDS)
    if unknown:
        raise ValidationFailed(f"Unknown drive field(s): {', '.join(sorted(unknown))}")

    cleaned = {}
    for field in DRIVE_FIELDS:
        value = fields.get(field)
        if value is None:
            if not partial:
                raise ValidationFailed(f"{field} is required")
            continue
        cleaned[field] = _DRIVE_CHECKS[field](value, field)
    return cleaned


def round_half_up_percentage(part: int, total: int) -> int:
    if total <= 0:
        return 0
    # integer form of floor(part / total * 100 + 0.5)
    return (part * 200 + total) // (2 * total)
