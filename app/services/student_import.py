import io
import logging
from typing import List, Tuple

import pandas as pd
from pydantic import ValidationError

from app.schemas.student import StudentCreate
from app.utils.exceptions import ValidationFailed

logger = logging.getLogger(__name__)

REQUIRED_HEADERS = ["name", "class", "section", "rollNumber", "age", "gender"]

# CSV header -> StudentCreate field
HEADER_MAP = {
    "name": "name",
    "class": "class_name",
    "class_name": "class_name",
    "section": "section",
    "rollNumber": "roll_number",
    "roll_number": "roll_number",
    "age": "age",
    "gender": "gender",
}


def parse_students_csv(content: bytes) -> Tuple[List[StudentCreate], List[str]]:
    """
    Parse an uploaded student CSV.

    Returns the valid rows and a list of row-level error messages. Missing
    headers or a file without a single valid row is a ValidationFailed.
    """
    try:
        frame = pd.read_csv(io.BytesIO(content), dtype=str, keep_default_na=False, skipinitialspace=True)
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
        raise ValidationFailed(f"Could not read CSV file: {str(e)}")

    frame.columns = [str(c).strip() for c in frame.columns]
    present = {HEADER_MAP[c] for c in frame.columns if c in HEADER_MAP}
    missing = [h for h in REQUIRED_HEADERS if HEADER_MAP[h] not in present]
    if missing:
        raise ValidationFailed(f"CSV is missing required headers: {', '.join(missing)}")

    frame = frame.rename(columns={c: HEADER_MAP[c] for c in frame.columns if c in HEADER_MAP})

    students = []
    errors = []
    # header is line 1
    for line_no, record in enumerate(frame.to_dict(orient="records"), start=2):
        data = {field: str(record.get(field, "")).strip() for field in set(HEADER_MAP.values())}
        if data["gender"]:
            data["gender"] = data["gender"].capitalize()
        try:
            students.append(StudentCreate(**data))
        except ValidationError as e:
            problems = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
            errors.append(f"Row {line_no}: {problems}")

    if errors:
        logger.warning(f"Skipped {len(errors)} invalid rows in student CSV")
    if not students:
        raise ValidationFailed("No valid students found in CSV")
    return students, errors
