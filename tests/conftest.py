import os
from datetime import date, datetime, timezone
from types import SimpleNamespace
from typing import AsyncGenerator, Dict, Optional
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./registrar_test.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from registrar.auth.models import User  # noqa: E402
from registrar.auth.schemas import ServiceContext  # noqa: E402
from registrar.auth.security import create_access_token  # noqa: E402
from registrar.core.enums import EnrollmentStatus, Role  # noqa: E402
from registrar.core.models import AcademicYear, Enrollment, School, SchoolClass, Student  # noqa: E402
from registrar.db.session import Database  # noqa: E402
from registrar.main import create_app  # noqa: E402


class Factory:
    """Inserts rows directly, bypassing the services."""

    def __init__(self, database: Database) -> None:
        self.database = database

    async def _save(self, obj):
        async with self.database.transaction() as tx:
            tx.add(obj)
        return obj

    async def school(self, name: str, slug: str) -> School:
        return await self._save(School(name=name, slug=slug))

    async def user(self, school_id: Optional[UUID], role: Role, email: str) -> User:
        return await self._save(User(school_id=school_id, full_name=email.split("@")[0], email=email, role=role.value))

    async def academic_year(self, school_id: UUID, name: str, year: int, is_current: bool = False) -> AcademicYear:
        return await self._save(
            AcademicYear(
                school_id=school_id,
                name=name,
                start_date=date(year, 1, 8),
                end_date=date(year, 12, 5),
                is_current=is_current,
            )
        )

    async def school_class(self, school_id: UUID, academic_year_id: UUID, name: str, grade: str) -> SchoolClass:
        return await self._save(
            SchoolClass(school_id=school_id, academic_year_id=academic_year_id, name=name, grade=grade)
        )

    async def student(self, school_id: UUID, admission_number: str, first_name: str = "Tariro", last_name: str = "Moyo") -> Student:
        return await self._save(
            Student(
                school_id=school_id,
                admission_number=admission_number,
                first_name=first_name,
                last_name=last_name,
                gender="FEMALE",
            )
        )

    async def enrollment(
        self,
        student: Student,
        academic_year_id: UUID,
        class_id: UUID,
        status: EnrollmentStatus = EnrollmentStatus.ACTIVE,
        enrollment_date: Optional[datetime] = None,
    ) -> Enrollment:
        return await self._save(
            Enrollment(
                school_id=student.school_id,
                student_id=student.id,
                academic_year_id=academic_year_id,
                class_id=class_id,
                status=status.value,
                enrollment_date=enrollment_date or datetime(2024, 1, 8, tzinfo=timezone.utc),
            )
        )


@pytest.fixture()
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    """Fresh SQLite database file per test."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'registrar.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture()
def factory(database: Database) -> Factory:
    return Factory(database)


@pytest.fixture()
async def world(factory: Factory) -> SimpleNamespace:
    """
    Two schools. Greenwood has years 2024 and 2025, Grade 5A (grade 5) in 2024,
    Grade 5A and Grade 6A in 2025, Form 3 Science (grade FORM_3) in 2024 and three students.
    Riverside has one year, one class and one student.
    """
    school = await factory.school("Greenwood High", "greenwood-high")
    other_school = await factory.school("Riverside Academy", "riverside-academy")

    admin = await factory.user(school.id, Role.ADMIN, "admin@greenwood.test")
    teacher = await factory.user(school.id, Role.TEACHER, "teacher@greenwood.test")
    other_admin = await factory.user(other_school.id, Role.ADMIN, "admin@riverside.test")

    year_2024 = await factory.academic_year(school.id, "2024", 2024)
    year_2025 = await factory.academic_year(school.id, "2025", 2025, is_current=True)
    other_year = await factory.academic_year(other_school.id, "2024", 2024)

    grade5_2024 = await factory.school_class(school.id, year_2024.id, "Grade 5A", "5")
    form3_2024 = await factory.school_class(school.id, year_2024.id, "Form 3 Science", "FORM_3")
    grade5_2025 = await factory.school_class(school.id, year_2025.id, "Grade 5A", "5")
    grade6_2025 = await factory.school_class(school.id, year_2025.id, "Grade 6A", "6")
    other_class = await factory.school_class(other_school.id, other_year.id, "Grade 5", "5")

    students = [
        await factory.student(school.id, "ADM-001", "Tariro", "Moyo"),
        await factory.student(school.id, "ADM-002", "Tendai", "Chikwanha"),
        await factory.student(school.id, "ADM-003", "Rudo", "Ncube"),
    ]
    other_student = await factory.student(other_school.id, "RIV-001", "Farai", "Dube")

    return SimpleNamespace(
        school=school,
        other_school=other_school,
        admin=admin,
        teacher=teacher,
        other_admin=other_admin,
        year_2024=year_2024,
        year_2025=year_2025,
        other_year=other_year,
        grade5_2024=grade5_2024,
        form3_2024=form3_2024,
        grade5_2025=grade5_2025,
        grade6_2025=grade6_2025,
        other_class=other_class,
        students=students,
        other_student=other_student,
    )


def _context_for(user: User) -> ServiceContext:
    return ServiceContext(user_id=user.id, school_id=user.school_id, role=Role(user.role))


@pytest.fixture()
def admin_ctx(world) -> ServiceContext:
    return _context_for(world.admin)


@pytest.fixture()
def teacher_ctx(world) -> ServiceContext:
    return _context_for(world.teacher)


def _auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(
        subject={
            "sub": str(user.id),
            "user_id": str(user.id),
            "school_id": str(user.school_id) if user.school_id else None,
            "role": user.role,
        }
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
async def client(database: Database) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to an app that uses the per-test database."""
    app = create_app(database=database)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def context_for():
    """ServiceContext builder for any seeded user."""
    return _context_for


@pytest.fixture()
def auth_headers():
    """Bearer headers builder for any seeded user."""
    return _auth_headers
