"""
Bulk student import with all-or-nothing semantics.

Phase 1 validates every row outside any transaction and collects all errors.
Phase 2 runs only when Phase 1 found no blocking errors: one transaction creates
each student, its ACTIVE enrollment and its guardian. The first failing row rolls
back the whole batch.
"""
import asyncio
import logging
from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from registrar.auth.models import User
from registrar.auth.rbac import Action, is_allowed
from registrar.core import lookups
from registrar.core.enums import EnrollmentStatus
from registrar.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ServiceError, TransactionError
from registrar.core.models import Enrollment, Guardian, Student, student_guardians
from registrar.core.timeutils import utcnow
from registrar.db.session import Database

from .schemas import ImportResult, ImportRowError, ResolvedStudentRow, StudentImportRow
from .validation import validate_rows

logger = logging.getLogger(__name__)


class RowWriteError(Exception):
    """A row failed during the write phase. Raised inside the transaction so that it rolls back."""

    def __init__(self, row_number: int, message: str) -> None:
        super().__init__(f"Row {row_number} failed: {message}")
        self.row_number = row_number
        self.message = message


def _finish(result: ImportResult) -> ImportResult:
    result.completed_at = utcnow()
    result.duration_ms = int((result.completed_at - result.started_at).total_seconds() * 1000)
    return result


class StudentImportService:
    def __init__(
        self,
        database: Database,
        isolation_level: str = "SERIALIZABLE",
        max_wait_seconds: float = 5.0,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._database = database
        self._isolation_level = isolation_level
        self._max_wait_seconds = max_wait_seconds
        self._timeout_seconds = timeout_seconds

    async def import_students(
        self,
        admin_user_id: UUID,
        academic_year_id: UUID,
        rows: List[StudentImportRow],
        dry_run: bool = False,
    ) -> ImportResult:
        """
        Import rows as students enrolled in academic_year_id.

        Raises ServiceError only for admin/academic-year verification. Row problems and write
        failures are reported in the returned ImportResult; success_count is either 0 or
        total_rows.
        """
        result = ImportResult(total_rows=len(rows), dry_run=dry_run, started_at=utcnow())
        all_row_numbers = list(range(1, len(rows) + 1))

        if not rows:
            result.errors.append(ImportRowError(row_number=0, field="import", message="No rows to import"))
            return _finish(result)

        school_id = await self._verify_admin(admin_user_id, academic_year_id)

        async with self._database.session() as db:
            classes = await lookups.class_lookup_by_name(db, school_id, prefer_academic_year_id=academic_year_id)
            existing_admission_numbers = await lookups.existing_admission_numbers(db, school_id)

        resolved_rows, errors = validate_rows(
            rows,
            {name: school_class.id for name, school_class in classes.items()},
            existing_admission_numbers,
        )
        result.errors = errors

        if result.has_blocking_errors:
            logger.warning(
                "Student import rejected for school %s: %d validation errors in %d rows",
                school_id, len(errors), len(rows),
            )
            result.failure_count = len(rows)
            result.failed_row_numbers = all_row_numbers
            return _finish(result)

        if dry_run:
            return _finish(result)

        try:
            await self._write_phase(school_id, academic_year_id, resolved_rows)
        except RowWriteError as e:
            logger.warning("Student import rolled back for school %s: %s", school_id, e)
            result.errors = [ImportRowError(row_number=e.row_number, field="import", message=e.message)]
            result.failure_count = len(rows)
            result.failed_row_numbers = all_row_numbers
            return _finish(result)
        except (TransactionError, SQLAlchemyError) as e:
            message = e.message if isinstance(e, TransactionError) else TransactionError().message
            logger.error("Student import transaction failed for school %s: %s", school_id, e)
            result.errors = [ImportRowError(row_number=0, field="transaction", message=message)]
            result.failure_count = len(rows)
            result.failed_row_numbers = all_row_numbers
            return _finish(result)

        result.success_count = len(rows)
        result.successful_row_numbers = all_row_numbers
        logger.info("Imported %d students into school %s (academic year %s)", len(rows), school_id, academic_year_id)
        return _finish(result)

    async def _verify_admin(self, admin_user_id: UUID, academic_year_id: UUID) -> UUID:
        """The admin's school id, once the admin and the academic year check out."""
        async with self._database.session() as db:
            admin = (await db.execute(select(User).where(User.id == admin_user_id))).scalar_one_or_none()
            if not admin:
                raise NotFoundError("Admin user", admin_user_id)
            if not admin.school_id:
                raise ForbiddenError("Admin is not associated with any school")
            if not is_allowed(admin.role, Action.STUDENT_IMPORT):
                raise ForbiddenError("User does not have admin privileges")
            await lookups.get_academic_year(db, admin.school_id, academic_year_id)
            return admin.school_id

    async def _write_phase(
        self,
        school_id: UUID,
        academic_year_id: UUID,
        rows: List[ResolvedStudentRow],
    ) -> None:
        async with self._database.session() as tx:
            try:
                try:
                    await asyncio.wait_for(
                        tx.connection(execution_options={"isolation_level": self._isolation_level}),
                        timeout=self._max_wait_seconds,
                    )
                except asyncio.TimeoutError:
                    raise TransactionError("Timed out waiting to start the import transaction")
                try:
                    await asyncio.wait_for(
                        self._write_rows(tx, school_id, academic_year_id, rows),
                        timeout=self._timeout_seconds,
                    )
                except asyncio.TimeoutError:
                    raise TransactionError("Import transaction timed out - all changes rolled back")
                await tx.commit()
            except BaseException:
                await tx.rollback()
                raise

    async def _write_rows(
        self,
        tx: AsyncSession,
        school_id: UUID,
        academic_year_id: UUID,
        rows: List[ResolvedStudentRow],
    ) -> None:
        for row in rows:
            try:
                await _write_row(tx, school_id, academic_year_id, row)
            except ServiceError as e:
                raise RowWriteError(row.row_number, e.message) from e
            except IntegrityError as e:
                raise RowWriteError(row.row_number, "Student or enrollment conflicts with existing data") from e


async def _write_row(
    tx: AsyncSession,
    school_id: UUID,
    academic_year_id: UUID,
    row: ResolvedStudentRow,
) -> None:
    # Phase 1 ran without locks; another import may have taken the number since
    if await lookups.admission_number_taken(tx, school_id, row.admission_number):
        raise ConflictError(f'Admission number "{row.admission_number}" already exists in this school')

    student = Student(
        school_id=school_id,
        admission_number=row.admission_number,
        first_name=row.first_name,
        last_name=row.last_name,
        date_of_birth=row.date_of_birth,
        gender=row.gender.value,
        address=row.address,
    )
    tx.add(student)
    await tx.flush()

    tx.add(
        Enrollment(
            school_id=school_id,
            student_id=student.id,
            academic_year_id=academic_year_id,
            class_id=row.class_id,
            status=EnrollmentStatus.ACTIVE.value,
            enrollment_date=utcnow(),
        )
    )

    if row.parent_name or row.parent_email or row.parent_phone:
        guardian = Guardian(
            school_id=school_id,
            full_name=row.parent_name,
            email=row.parent_email,
            phone=row.parent_phone,
            address=row.address,
            is_primary_contact=True,
            is_emergency_contact=True,
        )
        tx.add(guardian)
        await tx.flush()
        await tx.execute(student_guardians.insert().values(student_id=student.id, guardian_id=guardian.id))

    await tx.flush()
