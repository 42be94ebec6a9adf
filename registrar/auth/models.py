import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint, Uuid

from registrar.core.timeutils import utcnow
from registrar.db.session import Base


class User(Base):
    """
    User within a school. Credentials and sessions are owned by the external auth provider;
    this row only carries what authorization needs (school and role).
    """

    __tablename__ = "users"
    __table_args__ = (
        # Email must be unique per school
        UniqueConstraint("school_id", "email", name="uq_user_school_email"),
    )

    id = Column(Uuid(), primary_key=True, default=uuid.uuid4)
    # Null school_id means the user has not been attached to a tenant yet
    school_id = Column(Uuid(), ForeignKey("schools.id"), nullable=True, index=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    # SUPER_ADMIN, ADMIN, TEACHER, STUDENT, PARENT, ACCOUNTANT
    role = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default="ACTIVE")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
