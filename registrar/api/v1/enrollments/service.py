"""
Enrollment lifecycle: creation with duplicate detection, listing, and status transitions.
Each write runs in one transaction; the existence check and the insert/update share it.
"""
import logging
import math
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from registrar.auth.rbac import Action, authorize
from registrar.auth.schemas import ServiceContext
from registrar.core import lookups
from registrar.core.config import settings
from registrar.core.enums import EnrollmentStatus
from registrar.core.exceptions import ConflictError, NotFoundError, ValidationError
from registrar.core.models import Enrollment
from registrar.core.timeutils import utcnow
from registrar.db.session import Database

from .schemas import (
    EnrollmentCreate,
    EnrollmentFilters,
    EnrollmentListResponse,
    EnrollmentResponse,
    PaginationMeta,
)
from .transitions import TERMINAL_STATUSES, ensure_transition

logger = logging.getLogger(__name__)


def _to_response(enrollment: Enrollment) -> EnrollmentResponse:
    return EnrollmentResponse.model_validate(enrollment)


class EnrollmentService:
    def __init__(self, database: Database) -> None:
        self._database = database

    async def enroll_student(
        self,
        school_id: UUID,
        payload: EnrollmentCreate,
        ctx: ServiceContext,
    ) -> EnrollmentResponse:
        """
        Enroll a student into a class for an academic year.
        Student, class and academic year must belong to the school. One enrollment per
        (student, academic year); an ACTIVE enrollment is refused while another one is ACTIVE.
        """
        authorize(ctx, school_id, Action.ENROLLMENT_CREATE)

        if not payload.student_id or not payload.class_id or not payload.academic_year_id:
            raise ValidationError("Student, class, and academic year are required")
        if payload.status not in (EnrollmentStatus.ACTIVE, EnrollmentStatus.PENDING):
            raise ValidationError("New enrollments must be ACTIVE or PENDING")

        try:
            async with self._database.transaction() as tx:
                await lookups.get_student(tx, school_id, payload.student_id)
                await lookups.get_class(tx, school_id, payload.class_id)
                academic_year = await lookups.get_academic_year(tx, school_id, payload.academic_year_id)

                existing = await lookups.find_enrollment_for_year(
                    tx, school_id, payload.student_id, payload.academic_year_id
                )
                if existing:
                    raise ConflictError(f"Student is already enrolled for academic year {academic_year.name}")

                if payload.status == EnrollmentStatus.ACTIVE:
                    active = await lookups.find_active_enrollment(tx, school_id, payload.student_id)
                    if active:
                        raise ConflictError(
                            f"Student already has an active enrollment for academic year {active.academic_year.name}"
                        )

                enrollment = Enrollment(
                    school_id=school_id,
                    student_id=payload.student_id,
                    academic_year_id=payload.academic_year_id,
                    class_id=payload.class_id,
                    status=payload.status.value,
                    enrollment_date=payload.enrollment_date or utcnow(),
                    previous_school=payload.previous_school,
                    transfer_certificate_no=payload.transfer_certificate_no,
                )
                tx.add(enrollment)
                await tx.flush()
                enrollment = await lookups.get_enrollment(tx, school_id, enrollment.id, reload=True)
                response = _to_response(enrollment)
        except IntegrityError:
            raise ConflictError("Student is already enrolled for this academic year")

        logger.info(
            "Enrolled student %s in class %s for academic year %s (school %s)",
            payload.student_id, payload.class_id, payload.academic_year_id, school_id,
        )
        return response

    async def get_enrollment_by_id(
        self,
        school_id: UUID,
        enrollment_id: UUID,
        ctx: ServiceContext,
    ) -> EnrollmentResponse:
        authorize(ctx, school_id, Action.ENROLLMENT_READ)
        async with self._database.session() as db:
            enrollment = await lookups.get_enrollment(db, school_id, enrollment_id)
            return _to_response(enrollment)

    async def get_enrollments(
        self,
        school_id: UUID,
        filters: Optional[EnrollmentFilters],
        ctx: ServiceContext,
    ) -> EnrollmentListResponse:
        """List enrollments of the school, newest enrollment_date first, with offset pagination."""
        authorize(ctx, school_id, Action.ENROLLMENT_READ)
        filters = filters or EnrollmentFilters()
        limit = min(filters.limit, settings.max_page_size)

        conditions = [Enrollment.school_id == school_id]
        if filters.status:
            conditions.append(Enrollment.status == filters.status.value)
        if filters.academic_year_id:
            conditions.append(Enrollment.academic_year_id == filters.academic_year_id)
        if filters.class_id:
            conditions.append(Enrollment.class_id == filters.class_id)
        if filters.student_id:
            conditions.append(Enrollment.student_id == filters.student_id)

        async with self._database.session() as db:
            total = (
                await db.execute(select(func.count(Enrollment.id)).where(*conditions))
            ).scalar_one()
            result = await db.execute(
                select(Enrollment)
                .where(*conditions)
                .order_by(Enrollment.enrollment_date.desc(), Enrollment.id)
                .offset((filters.page - 1) * limit)
                .limit(limit)
            )
            enrollments = [_to_response(e) for e in result.unique().scalars().all()]

        return EnrollmentListResponse(
            enrollments=enrollments,
            pagination=PaginationMeta(
                total=total,
                page=filters.page,
                limit=limit,
                total_pages=math.ceil(total / limit),
            ),
        )

    async def get_current_enrollment(
        self,
        school_id: UUID,
        student_id: UUID,
        ctx: ServiceContext,
    ) -> Optional[EnrollmentResponse]:
        """The student's ACTIVE enrollment, or None."""
        authorize(ctx, school_id, Action.ENROLLMENT_READ)
        async with self._database.session() as db:
            await lookups.get_student(db, school_id, student_id)
            enrollment = await lookups.find_active_enrollment(db, school_id, student_id)
            return _to_response(enrollment) if enrollment else None

    async def complete_enrollment(self, school_id: UUID, enrollment_id: UUID, ctx: ServiceContext) -> EnrollmentResponse:
        """ACTIVE -> COMPLETED: student finished the academic year."""
        return await self._transition(school_id, enrollment_id, EnrollmentStatus.COMPLETED, ctx)

    async def mark_enrollment_as_repeated(self, school_id: UUID, enrollment_id: UUID, ctx: ServiceContext) -> EnrollmentResponse:
        """ACTIVE -> REPEATED: student must repeat the grade (in a new enrollment row)."""
        return await self._transition(school_id, enrollment_id, EnrollmentStatus.REPEATED, ctx)

    async def drop_enrollment(self, school_id: UUID, enrollment_id: UUID, ctx: ServiceContext) -> EnrollmentResponse:
        """ACTIVE or PENDING -> DROPPED: student withdrew."""
        return await self._transition(school_id, enrollment_id, EnrollmentStatus.DROPPED, ctx)

    async def suspend_enrollment(self, school_id: UUID, enrollment_id: UUID, ctx: ServiceContext) -> EnrollmentResponse:
        return await self._transition(school_id, enrollment_id, EnrollmentStatus.SUSPENDED, ctx)

    async def activate_enrollment(self, school_id: UUID, enrollment_id: UUID, ctx: ServiceContext) -> EnrollmentResponse:
        """PENDING -> ACTIVE. Refused while the student has another ACTIVE enrollment."""
        return await self._transition(school_id, enrollment_id, EnrollmentStatus.ACTIVE, ctx)

    async def _transition(
        self,
        school_id: UUID,
        enrollment_id: UUID,
        target: EnrollmentStatus,
        ctx: ServiceContext,
    ) -> EnrollmentResponse:
        authorize(ctx, school_id, Action.ENROLLMENT_UPDATE)

        try:
            async with self._database.transaction() as tx:
                enrollment = await lookups.get_enrollment(tx, school_id, enrollment_id, for_update=True)
                ensure_transition(enrollment.status, target)

                if target == EnrollmentStatus.ACTIVE:
                    active = await lookups.find_active_enrollment(tx, school_id, enrollment.student_id)
                    if active and active.id != enrollment.id:
                        raise ConflictError(
                            f"Student already has an active enrollment for academic year {active.academic_year.name}"
                        )

                enrollment.status = target.value
                if target in TERMINAL_STATUSES:
                    enrollment.completion_date = utcnow()
                await tx.flush()
                response = _to_response(enrollment)
        except IntegrityError:
            raise ConflictError("Student already has an active enrollment")

        logger.info("Enrollment %s -> %s (school %s)", enrollment_id, target.value, school_id)
        return response

    async def transfer_enrollment(
        self,
        school_id: UUID,
        enrollment_id: UUID,
        new_class_id: UUID,
        ctx: ServiceContext,
    ) -> EnrollmentResponse:
        """Move an ACTIVE enrollment to another class of the same academic year."""
        authorize(ctx, school_id, Action.ENROLLMENT_UPDATE)

        async with self._database.transaction() as tx:
            enrollment = await lookups.get_enrollment(tx, school_id, enrollment_id, for_update=True)
            if enrollment.status != EnrollmentStatus.ACTIVE.value:
                raise ValidationError("Can only transfer active enrollments")

            new_class = await lookups.get_class(tx, school_id, new_class_id)
            if new_class.academic_year_id != enrollment.academic_year_id:
                # Classes of other years are treated as missing for this enrollment
                raise NotFoundError("Class", new_class_id)

            enrollment.class_id = new_class.id
            enrollment.school_class = new_class
            await tx.flush()
            response = _to_response(enrollment)

        logger.info("Enrollment %s transferred to class %s (school %s)", enrollment_id, new_class_id, school_id)
        return response
