"""
Phase 1 of the student import: pure row validation, no I/O.

Every row is checked independently and every error is collected; validation never
stops at the first bad row. Parent email/phone problems are warnings and do not block.
"""
import re
from datetime import date, datetime
from typing import Dict, List, Mapping, Optional, Set, Tuple
from uuid import UUID

from registrar.core.enums import ErrorSeverity, Gender

from .schemas import ImportRowError, ResolvedStudentRow, StudentImportRow

MIN_ADMISSION_NUMBER_LENGTH = 3
MIN_AGE = 2
MAX_AGE = 25

_GENDERS: Dict[str, Gender] = {
    "M": Gender.MALE,
    "MALE": Gender.MALE,
    "F": Gender.FEMALE,
    "FEMALE": Gender.FEMALE,
}

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^[\d\s+\-()]+$")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def normalize_gender(value: Optional[str]) -> Optional[Gender]:
    if not value:
        return None
    return _GENDERS.get(value.strip().upper())


def parse_date_of_birth(value: str) -> Optional[date]:
    try:
        return datetime.fromisoformat(value.strip()).date()
    except ValueError:
        return None


def age_in_years(dob: date, today: date) -> int:
    """Calendar-year difference; birthdays later in the year are not taken into account."""
    return today.year - dob.year


def validate_rows(
    rows: List[StudentImportRow],
    class_ids_by_name: Mapping[str, UUID],
    existing_admission_numbers: Set[str],
    today: Optional[date] = None,
) -> Tuple[List[ResolvedStudentRow], List[ImportRowError]]:
    """
    Validate a batch. Returns (resolved rows, errors). A row is resolved only when it has no
    ERROR-severity problems. Row numbers are 1-based.
    """
    today = today or date.today()
    resolved: List[ResolvedStudentRow] = []
    errors: List[ImportRowError] = []
    seen_in_batch: Set[str] = set()

    for index, row in enumerate(rows):
        row_number = index + 1
        row_errors: List[ImportRowError] = []

        def error(field: str, message: str, severity: ErrorSeverity = ErrorSeverity.ERROR) -> None:
            row_errors.append(ImportRowError(row_number=row_number, field=field, message=message, severity=severity))

        first_name = _clean(row.first_name)
        last_name = _clean(row.last_name)
        if not first_name:
            error("first_name", "First name is required")
        if not last_name:
            error("last_name", "Last name is required")

        admission_number = _clean(row.admission_number)
        if not admission_number or len(admission_number) < MIN_ADMISSION_NUMBER_LENGTH:
            error("admission_number", f"Admission number is required (min {MIN_ADMISSION_NUMBER_LENGTH} characters)")
        else:
            if admission_number in existing_admission_numbers:
                error("admission_number", f'Admission number "{admission_number}" already exists in school')
            if admission_number in seen_in_batch:
                error("admission_number", f'Duplicate admission number "{admission_number}" in import batch')
            else:
                seen_in_batch.add(admission_number)

        class_name = _clean(row.class_name)
        class_id: Optional[UUID] = None
        if not class_name:
            error("class_name", "Class name is required")
        else:
            class_id = class_ids_by_name.get(class_name)
            if class_id is None:
                error("class_name", f'Class "{class_name}" not found in school')

        gender = normalize_gender(row.gender)
        if gender is None:
            error("gender", "Gender must be MALE or FEMALE")

        date_of_birth: Optional[date] = None
        raw_dob = _clean(row.date_of_birth)
        if raw_dob:
            date_of_birth = parse_date_of_birth(raw_dob)
            if date_of_birth is None:
                error("date_of_birth", "Invalid date of birth format")
            elif not MIN_AGE <= age_in_years(date_of_birth, today) <= MAX_AGE:
                error("date_of_birth", f"Student age must be between {MIN_AGE} and {MAX_AGE} years")

        parent_email = _clean(row.parent_email)
        if parent_email and not _EMAIL_RE.match(parent_email):
            error("parent_email", f'Invalid email format: "{parent_email}"', ErrorSeverity.WARNING)
        parent_phone = _clean(row.parent_phone)
        if parent_phone and not _PHONE_RE.match(parent_phone):
            error("parent_phone", f'Invalid phone format: "{parent_phone}"', ErrorSeverity.WARNING)

        errors.extend(row_errors)
        if any(e.severity == ErrorSeverity.ERROR for e in row_errors):
            continue

        resolved.append(
            ResolvedStudentRow(
                row_number=row_number,
                admission_number=admission_number,
                first_name=first_name,
                last_name=last_name,
                date_of_birth=date_of_birth,
                gender=gender,
                class_id=class_id,
                parent_name=_clean(row.parent_name),
                parent_email=parent_email,
                parent_phone=parent_phone,
                address=_clean(row.address),
            )
        )

    return resolved, errors
