from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from registrar.core.config import settings
from registrar.core.enums import EnrollmentStatus


class EnrollmentCreate(BaseModel):
    """Enroll a student into a class for an academic year.
    Ids are optional here so that a missing id is reported as a validation error by the service, not a 422."""

    student_id: Optional[UUID] = None
    class_id: Optional[UUID] = None
    academic_year_id: Optional[UUID] = None
    status: EnrollmentStatus = Field(EnrollmentStatus.ACTIVE, description="ACTIVE (default) or PENDING")
    enrollment_date: Optional[datetime] = Field(None, description="Defaults to now")
    previous_school: Optional[str] = Field(None, max_length=255)
    transfer_certificate_no: Optional[str] = Field(None, max_length=100)


class EnrollmentTransfer(BaseModel):
    """Move an ACTIVE enrollment to another class of the same academic year."""

    class_id: UUID


class EnrollmentFilters(BaseModel):
    status: Optional[EnrollmentStatus] = None
    academic_year_id: Optional[UUID] = None
    class_id: Optional[UUID] = None
    student_id: Optional[UUID] = None
    page: int = Field(1, ge=1, description="1-based page number")
    limit: int = Field(
        default_factory=lambda: settings.default_page_size,
        ge=1,
        description="Items per page, capped at MAX_PAGE_SIZE by the service",
    )


class StudentSummary(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    admission_number: str
    gender: Optional[str] = None

    class Config:
        from_attributes = True


class AcademicYearSummary(BaseModel):
    id: UUID
    name: str
    is_current: bool
    start_date: date
    end_date: date

    class Config:
        from_attributes = True


class ClassSummary(BaseModel):
    id: UUID
    name: str
    grade: str

    class Config:
        from_attributes = True


class EnrollmentResponse(BaseModel):
    id: UUID
    school_id: UUID
    student_id: UUID
    academic_year_id: UUID
    class_id: UUID
    status: EnrollmentStatus
    enrollment_date: datetime
    completion_date: Optional[datetime] = None
    promoted_to_class_id: Optional[UUID] = None
    previous_school: Optional[str] = None
    transfer_certificate_no: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    student: Optional[StudentSummary] = None
    academic_year: Optional[AcademicYearSummary] = None
    school_class: Optional[ClassSummary] = None

    class Config:
        from_attributes = True


class PaginationMeta(BaseModel):
    total: int = Field(..., ge=0, description="Total count matching the filters")
    page: int = Field(..., ge=1, description="Current page")
    limit: int = Field(..., ge=1, description="Page size")
    total_pages: int = Field(..., ge=0, description="ceil(total / limit)")


class EnrollmentListResponse(BaseModel):
    enrollments: List[EnrollmentResponse]
    pagination: PaginationMeta
