"""School classes (e.g. Grade 5A, Form 3 Science). Model named SchoolClass to avoid Python 'class' keyword."""
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship

from registrar.core.timeutils import utcnow
from registrar.db.session import Base


class SchoolClass(Base):
    """
    Class within one academic year. grade is a string: numeric ("5") for auto-promotion,
    or a label ("FORM_3") that forces an explicit target class on promotion.
    """

    __tablename__ = "classes"

    id = Column(Uuid(), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    academic_year_id = Column(Uuid(), ForeignKey("academic_years.id", ondelete="RESTRICT"), nullable=False)
    name = Column(String(100), nullable=False)
    grade = Column(String(20), nullable=False)
    stream = Column(String(50), nullable=True)
    class_teacher_id = Column(Uuid(), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    academic_year = relationship("AcademicYear", backref="classes")
    class_teacher = relationship("User", foreign_keys=[class_teacher_id])
