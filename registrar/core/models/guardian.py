import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Table, Text, Uuid
from sqlalchemy.orm import relationship

from registrar.core.timeutils import utcnow
from registrar.db.session import Base


student_guardians = Table(
    "student_guardians",
    Base.metadata,
    Column("student_id", Uuid(), ForeignKey("students.id", ondelete="CASCADE"), primary_key=True),
    Column("guardian_id", Uuid(), ForeignKey("guardians.id", ondelete="CASCADE"), primary_key=True),
)


class Guardian(Base):
    """Parent or guardian contact. Many-to-many with Student; one guardian may cover siblings."""

    __tablename__ = "guardians"

    id = Column(Uuid(), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    relationship_type = Column("relationship", String(30), nullable=False, default="GUARDIAN")  # FATHER | MOTHER | GUARDIAN | OTHER
    is_primary_contact = Column(Boolean, nullable=False, default=False)
    is_emergency_contact = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    students = relationship("Student", secondary=student_guardians, back_populates="guardians")
