import uuid

from sqlalchemy import Column, Date, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from registrar.core.timeutils import utcnow
from registrar.db.session import Base


class Student(Base):
    """Student owned by a school. admission_number is unique per school. Soft delete via deleted_at."""

    __tablename__ = "students"
    __table_args__ = (
        UniqueConstraint("school_id", "admission_number", name="uq_student_school_admission_number"),
    )

    id = Column(Uuid(), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    admission_number = Column(String(50), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String(10), nullable=True)  # MALE | FEMALE | OTHER
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    guardians = relationship("Guardian", secondary="student_guardians", back_populates="students")
