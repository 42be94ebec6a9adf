from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from registrar.auth.dependencies import get_service_context
from registrar.auth.schemas import ServiceContext
from registrar.core.config import settings
from registrar.core.enums import EnrollmentStatus
from registrar.core.exceptions import ServiceError

from .schemas import (
    EnrollmentCreate,
    EnrollmentFilters,
    EnrollmentListResponse,
    EnrollmentResponse,
    EnrollmentTransfer,
)
from .service import EnrollmentService

router = APIRouter(prefix="/api/v1/schools/{school_id}", tags=["enrollments"])


def get_enrollment_service(request: Request) -> EnrollmentService:
    return request.app.state.enrollment_service


@router.post(
    "/enrollments",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def enroll_student(
    school_id: UUID,
    payload: EnrollmentCreate,
    service: EnrollmentService = Depends(get_enrollment_service),
    ctx: ServiceContext = Depends(get_service_context),
) -> EnrollmentResponse:
    """Enroll a student into a class for an academic year. Admin only."""
    try:
        return await service.enroll_student(school_id, payload, ctx)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/enrollments", response_model=EnrollmentListResponse)
async def list_enrollments(
    school_id: UUID,
    status_filter: Optional[EnrollmentStatus] = Query(None, alias="status"),
    academic_year_id: Optional[UUID] = Query(None),
    class_id: Optional[UUID] = Query(None),
    student_id: Optional[UUID] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    service: EnrollmentService = Depends(get_enrollment_service),
    ctx: ServiceContext = Depends(get_service_context),
) -> EnrollmentListResponse:
    """List enrollments, newest first. Admins and teachers."""
    filters = EnrollmentFilters(
        status=status_filter,
        academic_year_id=academic_year_id,
        class_id=class_id,
        student_id=student_id,
        page=page,
        limit=limit,
    )
    try:
        return await service.get_enrollments(school_id, filters, ctx)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/enrollments/{enrollment_id}", response_model=EnrollmentResponse)
async def get_enrollment(
    school_id: UUID,
    enrollment_id: UUID,
    service: EnrollmentService = Depends(get_enrollment_service),
    ctx: ServiceContext = Depends(get_service_context),
) -> EnrollmentResponse:
    try:
        return await service.get_enrollment_by_id(school_id, enrollment_id, ctx)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/students/{student_id}/current-enrollment",
    response_model=Optional[EnrollmentResponse],
)
async def get_current_enrollment(
    school_id: UUID,
    student_id: UUID,
    service: EnrollmentService = Depends(get_enrollment_service),
    ctx: ServiceContext = Depends(get_service_context),
) -> Optional[EnrollmentResponse]:
    """The student's ACTIVE enrollment, or null when there is none."""
    try:
        return await service.get_current_enrollment(school_id, student_id, ctx)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/enrollments/{enrollment_id}/complete", response_model=EnrollmentResponse)
async def complete_enrollment(
    school_id: UUID,
    enrollment_id: UUID,
    service: EnrollmentService = Depends(get_enrollment_service),
    ctx: ServiceContext = Depends(get_service_context),
) -> EnrollmentResponse:
    try:
        return await service.complete_enrollment(school_id, enrollment_id, ctx)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/enrollments/{enrollment_id}/drop", response_model=EnrollmentResponse)
async def drop_enrollment(
    school_id: UUID,
    enrollment_id: UUID,
    service: EnrollmentService = Depends(get_enrollment_service),
    ctx: ServiceContext = Depends(get_service_context),
) -> EnrollmentResponse:
    try:
        return await service.drop_enrollment(school_id, enrollment_id, ctx)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/enrollments/{enrollment_id}/repeat", response_model=EnrollmentResponse)
async def mark_enrollment_as_repeated(
    school_id: UUID,
    enrollment_id: UUID,
    service: EnrollmentService = Depends(get_enrollment_service),
    ctx: ServiceContext = Depends(get_service_context),
) -> EnrollmentResponse:
    try:
        return await service.mark_enrollment_as_repeated(school_id, enrollment_id, ctx)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/enrollments/{enrollment_id}/suspend", response_model=EnrollmentResponse)
async def suspend_enrollment(
    school_id: UUID,
    enrollment_id: UUID,
    service: EnrollmentService = Depends(get_enrollment_service),
    ctx: ServiceContext = Depends(get_service_context),
) -> EnrollmentResponse:
    try:
        return await service.suspend_enrollment(school_id, enrollment_id, ctx)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/enrollments/{enrollment_id}/activate", response_model=EnrollmentResponse)
async def activate_enrollment(
    school_id: UUID,
    enrollment_id: UUID,
    service: EnrollmentService = Depends(get_enrollment_service),
    ctx: ServiceContext = Depends(get_service_context),
) -> EnrollmentResponse:
    """PENDING -> ACTIVE."""
    try:
        return await service.activate_enrollment(school_id, enrollment_id, ctx)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/enrollments/{enrollment_id}/transfer", response_model=EnrollmentResponse)
async def transfer_enrollment(
    school_id: UUID,
    enrollment_id: UUID,
    payload: EnrollmentTransfer,
    service: EnrollmentService = Depends(get_enrollment_service),
    ctx: ServiceContext = Depends(get_service_context),
) -> EnrollmentResponse:
    """Move an ACTIVE enrollment to another class of the same academic year."""
    try:
        return await service.transfer_enrollment(school_id, enrollment_id, payload.class_id, ctx)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
