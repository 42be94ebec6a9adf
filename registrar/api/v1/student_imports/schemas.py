from datetime import date, datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, computed_field

from registrar.core.enums import ErrorSeverity, Gender


class StudentImportRow(BaseModel):
    """One externally parsed row (CSV/Excel). All values are raw strings; the validator trims and checks them."""

    admission_number: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[str] = Field(None, description="ISO 8601, e.g. 2012-05-15")
    gender: Optional[str] = Field(None, description="M, F, MALE or FEMALE (any case)")
    class_name: Optional[str] = None
    parent_name: Optional[str] = None
    parent_email: Optional[str] = None
    parent_phone: Optional[str] = None
    address: Optional[str] = None


class ImportRowError(BaseModel):
    """Error for one row. row_number is 1-based; 0 means the whole batch (field "import" or "transaction")."""

    row_number: int
    field: str
    message: str
    severity: ErrorSeverity = ErrorSeverity.ERROR


class ResolvedStudentRow(BaseModel):
    """A row that passed validation, with trimmed values, normalized gender and the resolved class id."""

    row_number: int
    admission_number: str
    first_name: str
    last_name: str
    date_of_birth: Optional[date] = None
    gender: Gender
    class_id: UUID
    parent_name: Optional[str] = None
    parent_email: Optional[str] = None
    parent_phone: Optional[str] = None
    address: Optional[str] = None


class StudentImportRequest(BaseModel):
    academic_year_id: UUID
    rows: List[StudentImportRow]
    dry_run: bool = Field(False, description="Validate only; nothing is written")


class ImportResult(BaseModel):
    total_rows: int = 0
    success_count: int = 0
    failure_count: int = 0
    successful_row_numbers: List[int] = Field(default_factory=list)
    failed_row_numbers: List[int] = Field(default_factory=list)
    errors: List[ImportRowError] = Field(default_factory=list)
    dry_run: bool = False
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_ms: int = 0

    @computed_field
    @property
    def errors_by_row(self) -> Dict[int, List[ImportRowError]]:
        grouped: Dict[int, List[ImportRowError]] = {}
        for error in self.errors:
            grouped.setdefault(error.row_number, []).append(error)
        return grouped

    @property
    def has_blocking_errors(self) -> bool:
        return any(e.severity == ErrorSeverity.ERROR for e in self.errors)
