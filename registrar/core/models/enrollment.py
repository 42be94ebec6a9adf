import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, UniqueConstraint, Uuid, text
from sqlalchemy.orm import relationship

from registrar.core.timeutils import utcnow
from registrar.db.session import Base


class Enrollment(Base):
    """
    Student enrollment per academic year. One row per (student, academic_year).
    At most one ACTIVE row per student across all years.
    Promotion creates a NEW row; the old row becomes COMPLETED with promoted_to_class_id set.
    Terminal rows are kept for history and never reopened.
    """

    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("student_id", "academic_year_id", name="uq_enrollment_student_year"),
        Index(
            "uq_enrollment_one_active_per_student",
            "student_id",
            unique=True,
            sqlite_where=text("status = 'ACTIVE'"),
            postgresql_where=text("status = 'ACTIVE'"),
        ),
    )

    id = Column(Uuid(), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid(), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    academic_year_id = Column(Uuid(), ForeignKey("academic_years.id", ondelete="RESTRICT"), nullable=False)
    class_id = Column(Uuid(), ForeignKey("classes.id"), nullable=False)
    status = Column(String(20), nullable=False, default="ACTIVE")  # PENDING | ACTIVE | COMPLETED | DROPPED | REPEATED | SUSPENDED
    enrollment_date = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    completion_date = Column(DateTime(timezone=True), nullable=True)
    promoted_to_class_id = Column(Uuid(), ForeignKey("classes.id"), nullable=True)
    previous_school = Column(String(255), nullable=True)
    transfer_certificate_no = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    student = relationship("Student", lazy="joined", innerjoin=True)
    academic_year = relationship("AcademicYear", lazy="joined", innerjoin=True)
    school_class = relationship("SchoolClass", foreign_keys=[class_id], lazy="joined", innerjoin=True)
    promoted_to_class = relationship("SchoolClass", foreign_keys=[promoted_to_class_id])
