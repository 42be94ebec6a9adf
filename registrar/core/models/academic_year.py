import uuid

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from registrar.core.timeutils import utcnow
from registrar.db.session import Base


class AcademicYear(Base):
    """
    Academic year per school. Name is unique per school.
    Enrollments and classes belong to exactly one academic year.
    """

    __tablename__ = "academic_years"
    __table_args__ = (
        UniqueConstraint("school_id", "name", name="uq_academic_year_school_name"),
    )

    id = Column(Uuid(), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False)  # e.g. "2025-2026"
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_current = Column(Boolean, nullable=False, default=False)
    status = Column(String(20), nullable=False, default="ACTIVE")  # ACTIVE | COMPLETED | ARCHIVED
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    school = relationship("School")
