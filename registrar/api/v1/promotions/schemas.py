from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from registrar.api.v1.enrollments.schemas import EnrollmentResponse


class PromoteStudentRequest(BaseModel):
    """Promote one student. Leave target_class_id empty to pick the class of the next grade."""

    student_id: UUID
    target_academic_year_id: UUID
    target_class_id: Optional[UUID] = None


class BulkPromoteRequest(BaseModel):
    student_ids: List[UUID] = Field(..., min_length=1)
    target_academic_year_id: UUID
    target_class_id: Optional[UUID] = None


class PromotionSuccess(BaseModel):
    student_id: UUID
    enrollment: EnrollmentResponse


class PromotionFailure(BaseModel):
    student_id: UUID
    error: str


class BulkPromotionResult(BaseModel):
    successful: List[PromotionSuccess] = Field(default_factory=list)
    failed: List[PromotionFailure] = Field(default_factory=list)
