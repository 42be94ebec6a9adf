"""Grade progression used by promotion auto-detection. Grades are base-10 integer labels ("1".."12")."""
from registrar.core.exceptions import ValidationError


def parse_grade(grade: str) -> int:
    """Parse a class grade label. Non-numeric labels such as "FORM_3" or "KG" cannot be auto-promoted."""
    try:
        return int(str(grade).strip())
    except (TypeError, ValueError):
        raise ValidationError("Cannot auto-detect next class: invalid current grade")


def next_grade(grade: str) -> str:
    return str(parse_grade(grade) + 1)
