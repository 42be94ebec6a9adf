from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from registrar.core.enums import Role


class ServiceContext(BaseModel):
    """Authenticated caller as supplied by the auth provider.
    school_id is None when the user is not attached to any school; every operation rejects that.
    """

    user_id: UUID
    school_id: Optional[UUID] = None
    role: Role
