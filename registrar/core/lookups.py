"""
Entity lookups scoped by school.

Every query filters on school_id: a row belonging to another school is reported
exactly like a missing row. All functions take the caller's session explicitly so
they run inside whatever transaction the caller has open.
"""
from typing import Dict, Optional, Set
from uuid import UUID

from sqlalchemy import case, select
from sqlalchemy.ext.asyncio import AsyncSession

from registrar.core.enums import EnrollmentStatus
from registrar.core.exceptions import NotFoundError
from registrar.core.models import AcademicYear, Enrollment, SchoolClass, Student


async def get_student(db: AsyncSession, school_id: UUID, student_id: UUID, entity: str = "Student") -> Student:
    result = await db.execute(
        select(Student).where(
            Student.id == student_id,
            Student.school_id == school_id,
            Student.deleted_at.is_(None),
        )
    )
    student = result.scalar_one_or_none()
    if not student:
        raise NotFoundError(entity, student_id)
    return student


async def get_class(db: AsyncSession, school_id: UUID, class_id: UUID, entity: str = "Class") -> SchoolClass:
    result = await db.execute(
        select(SchoolClass).where(
            SchoolClass.id == class_id,
            SchoolClass.school_id == school_id,
        )
    )
    school_class = result.scalar_one_or_none()
    if not school_class:
        raise NotFoundError(entity, class_id)
    return school_class


async def get_academic_year(
    db: AsyncSession,
    school_id: UUID,
    academic_year_id: UUID,
    entity: str = "Academic year",
) -> AcademicYear:
    result = await db.execute(
        select(AcademicYear).where(
            AcademicYear.id == academic_year_id,
            AcademicYear.school_id == school_id,
        )
    )
    ay = result.scalar_one_or_none()
    if not ay:
        raise NotFoundError(entity, academic_year_id)
    return ay


async def get_enrollment(
    db: AsyncSession,
    school_id: UUID,
    enrollment_id: UUID,
    for_update: bool = False,
    reload: bool = False,
) -> Enrollment:
    """Get enrollment with student, academic year and class loaded.
    for_update locks the row (no-op on SQLite); reload overwrites an instance already in the session."""
    stmt = select(Enrollment).where(
        Enrollment.id == enrollment_id,
        Enrollment.school_id == school_id,
    )
    if for_update:
        stmt = stmt.with_for_update(of=Enrollment)
    if reload:
        stmt = stmt.execution_options(populate_existing=True)
    result = await db.execute(stmt)
    enrollment = result.unique().scalar_one_or_none()
    if not enrollment:
        raise NotFoundError("Enrollment", enrollment_id)
    return enrollment


async def find_active_enrollment(
    db: AsyncSession,
    school_id: UUID,
    student_id: UUID,
    for_update: bool = False,
) -> Optional[Enrollment]:
    """The student's ACTIVE enrollment, if any. At most one exists per student."""
    stmt = (
        select(Enrollment)
        .where(
            Enrollment.school_id == school_id,
            Enrollment.student_id == student_id,
            Enrollment.status == EnrollmentStatus.ACTIVE.value,
        )
        .order_by(Enrollment.enrollment_date.desc())
        .limit(1)
    )
    if for_update:
        stmt = stmt.with_for_update(of=Enrollment)
    result = await db.execute(stmt)
    return result.unique().scalar_one_or_none()


async def find_enrollment_for_year(
    db: AsyncSession,
    school_id: UUID,
    student_id: UUID,
    academic_year_id: UUID,
) -> Optional[Enrollment]:
    result = await db.execute(
        select(Enrollment).where(
            Enrollment.school_id == school_id,
            Enrollment.student_id == student_id,
            Enrollment.academic_year_id == academic_year_id,
        )
    )
    return result.unique().scalar_one_or_none()


async def find_class_by_grade(
    db: AsyncSession,
    school_id: UUID,
    grade: str,
    prefer_academic_year_id: Optional[UUID] = None,
) -> Optional[SchoolClass]:
    """First class of the given grade in the school. Classes of prefer_academic_year_id come first."""
    stmt = select(SchoolClass).where(
        SchoolClass.school_id == school_id,
        SchoolClass.grade == grade,
    )
    if prefer_academic_year_id is not None:
        stmt = stmt.order_by(
            case((SchoolClass.academic_year_id == prefer_academic_year_id, 0), else_=1),
            SchoolClass.name,
        )
    else:
        stmt = stmt.order_by(SchoolClass.name)
    result = await db.execute(stmt.limit(1))
    return result.scalar_one_or_none()


async def class_lookup_by_name(
    db: AsyncSession,
    school_id: UUID,
    prefer_academic_year_id: Optional[UUID] = None,
) -> Dict[str, SchoolClass]:
    """All classes of the school keyed by name. On a name clash the class of prefer_academic_year_id wins."""
    result = await db.execute(select(SchoolClass).where(SchoolClass.school_id == school_id))
    lookup: Dict[str, SchoolClass] = {}
    for school_class in result.scalars().all():
        existing = lookup.get(school_class.name)
        if existing is None or (
            school_class.academic_year_id == prefer_academic_year_id
            and existing.academic_year_id != prefer_academic_year_id
        ):
            lookup[school_class.name] = school_class
    return lookup


async def existing_admission_numbers(db: AsyncSession, school_id: UUID) -> Set[str]:
    """Admission numbers already taken in the school, soft-deleted students included (the unique key covers them)."""
    result = await db.execute(select(Student.admission_number).where(Student.school_id == school_id))
    return {row[0] for row in result.all()}


async def admission_number_taken(db: AsyncSession, school_id: UUID, admission_number: str) -> bool:
    result = await db.execute(
        select(Student.id).where(
            Student.school_id == school_id,
            Student.admission_number == admission_number,
        )
    )
    return result.first() is not None
