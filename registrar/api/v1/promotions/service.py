"""
Year-over-year promotion: close the current ACTIVE enrollment and open the next one
in a single transaction. Bulk promotion runs one transaction per student.
"""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from registrar.api.v1.enrollments.schemas import EnrollmentResponse
from registrar.auth.rbac import Action, authorize
from registrar.auth.schemas import ServiceContext
from registrar.core import lookups
from registrar.core.enums import EnrollmentStatus
from registrar.core.exceptions import ConflictError, NotFoundError, ServiceError, TransactionError
from registrar.core.models import Enrollment, SchoolClass
from registrar.core.timeutils import utcnow
from registrar.db.session import Database

from .grades import next_grade
from .schemas import BulkPromotionResult, PromotionFailure, PromotionSuccess

logger = logging.getLogger(__name__)


class PromotionService:
    def __init__(self, database: Database) -> None:
        self._database = database

    async def promote_student(
        self,
        school_id: UUID,
        student_id: UUID,
        target_academic_year_id: UUID,
        target_class_id: Optional[UUID],
        ctx: ServiceContext,
    ) -> EnrollmentResponse:
        """
        Promote a student into the target academic year.
        The current enrollment becomes COMPLETED with promoted_to_class_id set, and a new
        ACTIVE enrollment is created. On any error the current enrollment is left untouched.
        """
        authorize(ctx, school_id, Action.STUDENT_PROMOTE)
        return await self._promote(school_id, student_id, target_academic_year_id, target_class_id)

    async def bulk_promote_students(
        self,
        school_id: UUID,
        student_ids: List[UUID],
        target_academic_year_id: UUID,
        target_class_id: Optional[UUID],
        ctx: ServiceContext,
    ) -> BulkPromotionResult:
        """Promote each student independently; one student's failure never reverts another's promotion."""
        authorize(ctx, school_id, Action.STUDENT_PROMOTE)

        result = BulkPromotionResult()
        for student_id in student_ids:
            try:
                enrollment = await self._promote(school_id, student_id, target_academic_year_id, target_class_id)
            except ServiceError as e:
                logger.warning("Promotion failed for student %s (school %s): %s", student_id, school_id, e.message)
                result.failed.append(PromotionFailure(student_id=student_id, error=e.message))
                continue
            except SQLAlchemyError:
                logger.error(
                    "Promotion transaction failed for student %s (school %s)", student_id, school_id, exc_info=True
                )
                result.failed.append(PromotionFailure(student_id=student_id, error=TransactionError().message))
                continue
            result.successful.append(PromotionSuccess(student_id=student_id, enrollment=enrollment))

        logger.info(
            "Bulk promotion for school %s: %d promoted, %d failed",
            school_id, len(result.successful), len(result.failed),
        )
        return result

    async def _promote(
        self,
        school_id: UUID,
        student_id: UUID,
        target_academic_year_id: UUID,
        target_class_id: Optional[UUID],
    ) -> EnrollmentResponse:
        try:
            async with self._database.transaction() as tx:
                current = await lookups.find_active_enrollment(tx, school_id, student_id, for_update=True)
                if not current:
                    raise NotFoundError("Active enrollment for student", student_id)

                target_year = await lookups.get_academic_year(
                    tx, school_id, target_academic_year_id, entity="Target academic year"
                )
                if target_class_id:
                    target_class = await lookups.get_class(tx, school_id, target_class_id, entity="Target class")
                else:
                    target_class = await _next_grade_class(tx, school_id, current.school_class, target_year.id)

                existing = await lookups.find_enrollment_for_year(tx, school_id, student_id, target_year.id)
                if existing:
                    raise ConflictError(f"Student is already enrolled for academic year {target_year.name}")

                now = utcnow()
                current.status = EnrollmentStatus.COMPLETED.value
                current.completion_date = now
                current.promoted_to_class_id = target_class.id
                # The old row must stop being ACTIVE before the new ACTIVE row is inserted
                await tx.flush()

                promoted = Enrollment(
                    school_id=school_id,
                    student_id=student_id,
                    academic_year_id=target_year.id,
                    class_id=target_class.id,
                    status=EnrollmentStatus.ACTIVE.value,
                    enrollment_date=now,
                )
                tx.add(promoted)
                await tx.flush()
                promoted = await lookups.get_enrollment(tx, school_id, promoted.id, reload=True)
                response = EnrollmentResponse.model_validate(promoted)
        except IntegrityError:
            raise ConflictError("Student is already enrolled for this academic year")

        logger.info(
            "Promoted student %s to class %s for academic year %s (school %s)",
            student_id, response.class_id, response.academic_year_id, school_id,
        )
        return response


async def _next_grade_class(
    db: AsyncSession,
    school_id: UUID,
    current_class: SchoolClass,
    target_academic_year_id: UUID,
) -> SchoolClass:
    grade = next_grade(current_class.grade)
    school_class = await lookups.find_class_by_grade(
        db, school_id, grade, prefer_academic_year_id=target_academic_year_id
    )
    if not school_class:
        raise NotFoundError("Next grade class", f"Grade {grade}")
    return school_class
