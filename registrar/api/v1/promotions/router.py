from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status

from registrar.api.v1.enrollments.schemas import EnrollmentResponse
from registrar.auth.dependencies import get_service_context
from registrar.auth.schemas import ServiceContext
from registrar.core.exceptions import ServiceError

from .schemas import BulkPromoteRequest, BulkPromotionResult, PromoteStudentRequest
from .service import PromotionService

router = APIRouter(prefix="/api/v1/schools/{school_id}/promotions", tags=["promotions"])


def get_promotion_service(request: Request) -> PromotionService:
    return request.app.state.promotion_service


@router.post("", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
async def promote_student(
    school_id: UUID,
    payload: PromoteStudentRequest,
    service: PromotionService = Depends(get_promotion_service),
    ctx: ServiceContext = Depends(get_service_context),
) -> EnrollmentResponse:
    """Promote one student into the target academic year. Returns the new ACTIVE enrollment."""
    try:
        return await service.promote_student(
            school_id,
            payload.student_id,
            payload.target_academic_year_id,
            payload.target_class_id,
            ctx,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/bulk", response_model=BulkPromotionResult)
async def bulk_promote_students(
    school_id: UUID,
    payload: BulkPromoteRequest,
    service: PromotionService = Depends(get_promotion_service),
    ctx: ServiceContext = Depends(get_service_context),
) -> BulkPromotionResult:
    """Promote many students. Per-student failures are reported in `failed`, not raised."""
    try:
        return await service.bulk_promote_students(
            school_id,
            payload.student_ids,
            payload.target_academic_year_id,
            payload.target_class_id,
            ctx,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
