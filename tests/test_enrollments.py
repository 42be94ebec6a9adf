from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy import select

from registrar.api.v1.enrollments import transitions
from registrar.api.v1.enrollments.schemas import EnrollmentCreate, EnrollmentFilters
from registrar.api.v1.enrollments.service import EnrollmentService
from registrar.core import lookups
from registrar.core.config import settings
from registrar.core.enums import EnrollmentStatus
from registrar.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from registrar.core.models import Enrollment


@pytest.fixture()
def service(database) -> EnrollmentService:
    return EnrollmentService(database)


def _payload(world, student=None, year=None, school_class=None, **extra) -> EnrollmentCreate:
    return EnrollmentCreate(
        student_id=(student or world.students[0]).id,
        academic_year_id=(year or world.year_2024).id,
        class_id=(school_class or world.grade5_2024).id,
        **extra,
    )


def test_transition_table() -> None:
    assert transitions.can_transition(EnrollmentStatus.PENDING, EnrollmentStatus.ACTIVE)
    assert transitions.can_transition(EnrollmentStatus.ACTIVE, EnrollmentStatus.COMPLETED)
    assert transitions.can_transition(EnrollmentStatus.PENDING, EnrollmentStatus.DROPPED)
    assert not transitions.can_transition(EnrollmentStatus.PENDING, EnrollmentStatus.COMPLETED)
    assert not transitions.can_transition(EnrollmentStatus.COMPLETED, EnrollmentStatus.ACTIVE)
    for terminal in transitions.TERMINAL_STATUSES:
        for target in transitions.ALLOWED_SOURCES:
            assert not transitions.can_transition(terminal, target)


@pytest.mark.asyncio
async def test_enroll_student_success(service, world, admin_ctx) -> None:
    enrollment = await service.enroll_student(world.school.id, _payload(world, previous_school="Hillside Primary"), admin_ctx)

    assert enrollment.status == EnrollmentStatus.ACTIVE
    assert enrollment.student_id == world.students[0].id
    assert enrollment.student.admission_number == "ADM-001"
    assert enrollment.academic_year.name == "2024"
    assert enrollment.school_class.name == "Grade 5A"
    assert enrollment.previous_school == "Hillside Primary"
    assert enrollment.enrollment_date is not None
    assert enrollment.completion_date is None


@pytest.mark.asyncio
async def test_enroll_student_requires_all_ids(service, world, admin_ctx) -> None:
    payload = EnrollmentCreate(student_id=world.students[0].id, academic_year_id=world.year_2024.id)
    with pytest.raises(ValidationError) as exc:
        await service.enroll_student(world.school.id, payload, admin_ctx)
    assert exc.value.message == "Student, class, and academic year are required"


@pytest.mark.asyncio
async def test_enroll_student_twice_in_same_year_conflicts(service, world, admin_ctx) -> None:
    await service.enroll_student(world.school.id, _payload(world, status=EnrollmentStatus.PENDING), admin_ctx)

    with pytest.raises(ConflictError) as exc:
        await service.enroll_student(world.school.id, _payload(world, status=EnrollmentStatus.PENDING), admin_ctx)
    assert "2024" in exc.value.message


@pytest.mark.asyncio
async def test_unique_constraint_backs_the_duplicate_check(service, world, admin_ctx, monkeypatch) -> None:
    await service.enroll_student(world.school.id, _payload(world, status=EnrollmentStatus.PENDING), admin_ctx)

    async def no_existing(*args, **kwargs):
        return None

    monkeypatch.setattr(lookups, "find_enrollment_for_year", no_existing)
    with pytest.raises(ConflictError):
        await service.enroll_student(world.school.id, _payload(world, status=EnrollmentStatus.PENDING), admin_ctx)


@pytest.mark.asyncio
async def test_second_active_enrollment_is_refused(service, world, admin_ctx) -> None:
    await service.enroll_student(world.school.id, _payload(world), admin_ctx)

    with pytest.raises(ConflictError) as exc:
        await service.enroll_student(
            world.school.id, _payload(world, year=world.year_2025, school_class=world.grade6_2025), admin_ctx
        )
    assert "active enrollment" in exc.value.message


@pytest.mark.asyncio
async def test_pending_enrollment_activates_once_previous_year_closes(service, world, admin_ctx) -> None:
    current = await service.enroll_student(world.school.id, _payload(world), admin_ctx)
    pending = await service.enroll_student(
        world.school.id,
        _payload(world, year=world.year_2025, school_class=world.grade6_2025, status=EnrollmentStatus.PENDING),
        admin_ctx,
    )
    assert pending.status == EnrollmentStatus.PENDING

    with pytest.raises(ConflictError):
        await service.activate_enrollment(world.school.id, pending.id, admin_ctx)

    await service.complete_enrollment(world.school.id, current.id, admin_ctx)
    activated = await service.activate_enrollment(world.school.id, pending.id, admin_ctx)
    assert activated.status == EnrollmentStatus.ACTIVE
    assert activated.completion_date is None


@pytest.mark.asyncio
async def test_enroll_with_entities_of_another_school_is_not_found(service, world, admin_ctx) -> None:
    with pytest.raises(NotFoundError) as exc:
        await service.enroll_student(world.school.id, _payload(world, school_class=world.other_class), admin_ctx)
    assert exc.value.message == f"Class with id {world.other_class.id} not found"

    with pytest.raises(NotFoundError) as exc:
        await service.enroll_student(world.school.id, _payload(world, student=world.other_student), admin_ctx)
    assert exc.value.entity == "Student"


@pytest.mark.asyncio
async def test_enroll_into_another_school_is_forbidden(service, world, context_for) -> None:
    other_ctx = context_for(world.other_admin)
    with pytest.raises(ForbiddenError):
        await service.enroll_student(world.school.id, _payload(world), other_ctx)


@pytest.mark.asyncio
async def test_teacher_reads_but_cannot_write(service, world, admin_ctx, teacher_ctx) -> None:
    enrollment = await service.enroll_student(world.school.id, _payload(world), admin_ctx)

    fetched = await service.get_enrollment_by_id(world.school.id, enrollment.id, teacher_ctx)
    assert fetched.id == enrollment.id

    with pytest.raises(ForbiddenError):
        await service.enroll_student(
            world.school.id, _payload(world, student=world.students[1]), teacher_ctx
        )
    with pytest.raises(ForbiddenError):
        await service.drop_enrollment(world.school.id, enrollment.id, teacher_ctx)


@pytest.mark.asyncio
async def test_get_enrollment_by_id_not_found(service, world, admin_ctx) -> None:
    missing = uuid4()
    with pytest.raises(NotFoundError) as exc:
        await service.get_enrollment_by_id(world.school.id, missing, admin_ctx)
    assert exc.value.message == f"Enrollment with id {missing} not found"


@pytest.mark.asyncio
async def test_complete_active_enrollment_sets_completion_date(service, world, admin_ctx) -> None:
    enrollment = await service.enroll_student(world.school.id, _payload(world), admin_ctx)

    completed = await service.complete_enrollment(world.school.id, enrollment.id, admin_ctx)

    assert completed.status == EnrollmentStatus.COMPLETED
    assert completed.completion_date is not None


@pytest.mark.asyncio
async def test_complete_dropped_enrollment_conflicts(service, world, admin_ctx) -> None:
    enrollment = await service.enroll_student(world.school.id, _payload(world), admin_ctx)
    await service.drop_enrollment(world.school.id, enrollment.id, admin_ctx)

    with pytest.raises(ConflictError) as exc:
        await service.complete_enrollment(world.school.id, enrollment.id, admin_ctx)
    assert exc.value.message == "Cannot complete enrollment with status: DROPPED"


@pytest.mark.asyncio
async def test_pending_enrollment_can_be_dropped_not_suspended(service, world, admin_ctx) -> None:
    enrollment = await service.enroll_student(
        world.school.id, _payload(world, status=EnrollmentStatus.PENDING), admin_ctx
    )

    with pytest.raises(ConflictError) as exc:
        await service.suspend_enrollment(world.school.id, enrollment.id, admin_ctx)
    assert exc.value.message == "Cannot suspend enrollment with status: PENDING"

    dropped = await service.drop_enrollment(world.school.id, enrollment.id, admin_ctx)
    assert dropped.status == EnrollmentStatus.DROPPED


@pytest.mark.asyncio
async def test_repeated_and_suspended_are_final(service, world, admin_ctx) -> None:
    first = await service.enroll_student(world.school.id, _payload(world), admin_ctx)
    repeated = await service.mark_enrollment_as_repeated(world.school.id, first.id, admin_ctx)
    assert repeated.status == EnrollmentStatus.REPEATED

    second = await service.enroll_student(world.school.id, _payload(world, student=world.students[1]), admin_ctx)
    suspended = await service.suspend_enrollment(world.school.id, second.id, admin_ctx)
    assert suspended.status == EnrollmentStatus.SUSPENDED

    with pytest.raises(ConflictError) as exc:
        await service.activate_enrollment(world.school.id, suspended.id, admin_ctx)
    assert exc.value.message == "Cannot activate enrollment with status: SUSPENDED"

    with pytest.raises(ConflictError) as exc:
        await service.mark_enrollment_as_repeated(world.school.id, repeated.id, admin_ctx)
    assert exc.value.message == "Cannot mark enrollment as repeated with status: REPEATED"


@pytest.mark.asyncio
async def test_transfer_within_academic_year(service, world, factory, admin_ctx) -> None:
    grade5b = await factory.school_class(world.school.id, world.year_2024.id, "Grade 5B", "5")
    enrollment = await service.enroll_student(world.school.id, _payload(world), admin_ctx)

    moved = await service.transfer_enrollment(world.school.id, enrollment.id, grade5b.id, admin_ctx)

    assert moved.class_id == grade5b.id
    assert moved.school_class.name == "Grade 5B"
    assert moved.status == EnrollmentStatus.ACTIVE


@pytest.mark.asyncio
async def test_transfer_to_class_of_other_year_is_not_found(service, world, admin_ctx) -> None:
    enrollment = await service.enroll_student(world.school.id, _payload(world), admin_ctx)

    with pytest.raises(NotFoundError):
        await service.transfer_enrollment(world.school.id, enrollment.id, world.grade6_2025.id, admin_ctx)


@pytest.mark.asyncio
async def test_transfer_requires_active_enrollment(service, world, admin_ctx) -> None:
    enrollment = await service.enroll_student(world.school.id, _payload(world), admin_ctx)
    await service.complete_enrollment(world.school.id, enrollment.id, admin_ctx)

    with pytest.raises(ValidationError) as exc:
        await service.transfer_enrollment(world.school.id, enrollment.id, world.form3_2024.id, admin_ctx)
    assert exc.value.message == "Can only transfer active enrollments"


@pytest.mark.asyncio
async def test_get_current_enrollment(service, world, admin_ctx) -> None:
    student = world.students[0]
    assert await service.get_current_enrollment(world.school.id, student.id, admin_ctx) is None

    enrollment = await service.enroll_student(world.school.id, _payload(world), admin_ctx)
    current = await service.get_current_enrollment(world.school.id, student.id, admin_ctx)
    assert current.id == enrollment.id

    with pytest.raises(NotFoundError):
        await service.get_current_enrollment(world.school.id, world.other_student.id, admin_ctx)


@pytest.mark.asyncio
async def test_pagination_contract(service, world, factory, admin_ctx) -> None:
    start = datetime(2024, 1, 8, tzinfo=timezone.utc)
    for n in range(45):
        student = await factory.student(world.school.id, f"BULK-{n:03d}")
        await factory.enrollment(student, world.year_2024.id, world.grade5_2024.id, enrollment_date=start + timedelta(days=n))

    first_page = await service.get_enrollments(world.school.id, EnrollmentFilters(page=1, limit=20), admin_ctx)
    last_page = await service.get_enrollments(world.school.id, EnrollmentFilters(page=3, limit=20), admin_ctx)

    assert first_page.pagination.total == 45
    assert first_page.pagination.total_pages == 3
    assert len(first_page.enrollments) == 20
    assert first_page.enrollments[0].student.admission_number == "BULK-044"
    assert len(last_page.enrollments) == 5
    assert last_page.enrollments[-1].student.admission_number == "BULK-000"


@pytest.mark.asyncio
async def test_list_filters_and_tenant_scope(service, world, factory, admin_ctx) -> None:
    a, b, c = world.students
    await factory.enrollment(a, world.year_2024.id, world.grade5_2024.id)
    await factory.enrollment(b, world.year_2024.id, world.grade5_2024.id, status=EnrollmentStatus.DROPPED)
    await factory.enrollment(c, world.year_2025.id, world.grade6_2025.id)
    await factory.enrollment(world.other_student, world.other_year.id, world.other_class.id)

    everything = await service.get_enrollments(world.school.id, None, admin_ctx)
    assert everything.pagination.total == 3

    dropped = await service.get_enrollments(
        world.school.id, EnrollmentFilters(status=EnrollmentStatus.DROPPED), admin_ctx
    )
    assert [e.student_id for e in dropped.enrollments] == [b.id]

    by_year = await service.get_enrollments(
        world.school.id, EnrollmentFilters(academic_year_id=world.year_2025.id), admin_ctx
    )
    assert [e.student_id for e in by_year.enrollments] == [c.id]

    empty = await service.get_enrollments(world.school.id, EnrollmentFilters(student_id=uuid4()), admin_ctx)
    assert empty.enrollments == []
    assert empty.pagination.total_pages == 0


@pytest.mark.asyncio
async def test_failed_transition_leaves_row_untouched(service, database, world, admin_ctx) -> None:
    enrollment = await service.enroll_student(world.school.id, _payload(world), admin_ctx)
    await service.complete_enrollment(world.school.id, enrollment.id, admin_ctx)

    with pytest.raises(ConflictError):
        await service.drop_enrollment(world.school.id, enrollment.id, admin_ctx)

    async with database.session() as db:
        row = (await db.execute(select(Enrollment).where(Enrollment.id == enrollment.id))).unique().scalar_one()
    assert row.status == EnrollmentStatus.COMPLETED.value


@pytest.mark.asyncio
async def test_page_size_follows_settings(service, world, factory, admin_ctx, monkeypatch) -> None:
    for student in world.students:
        await factory.enrollment(student, world.year_2024.id, world.grade5_2024.id)

    monkeypatch.setattr(settings, "max_page_size", 200)
    wide = await service.get_enrollments(world.school.id, EnrollmentFilters(limit=150), admin_ctx)
    assert wide.pagination.limit == 150
    assert len(wide.enrollments) == 3

    monkeypatch.setattr(settings, "max_page_size", 2)
    capped = await service.get_enrollments(world.school.id, EnrollmentFilters(limit=150), admin_ctx)
    assert capped.pagination.limit == 2
    assert capped.pagination.total_pages == 2
    assert len(capped.enrollments) == 2

    monkeypatch.setattr(settings, "default_page_size", 1)
    assert EnrollmentFilters().limit == 1
