import uuid

from sqlalchemy import Column, DateTime, String, Uuid

from registrar.core.timeutils import utcnow
from registrar.db.session import Base


class School(Base):
    """Tenant. Every other row carries school_id; onboarding (slug generation etc.) lives outside this service."""

    __tablename__ = "schools"

    id = Column(Uuid(), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    status = Column(String(20), nullable=False, default="ACTIVE")  # ACTIVE | SUSPENDED
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
