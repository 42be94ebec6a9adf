from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from registrar.auth.schemas import ServiceContext
from registrar.auth.security import decode_access_token
from registrar.core.enums import Role


# Tokens are issued by the external auth provider; this service only reads them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token", auto_error=True)


async def get_service_context(token: str = Depends(oauth2_scheme)) -> ServiceContext:
    """Resolve the caller's (user_id, school_id, role) from the access token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
    except JWTError:
        raise credentials_exception

    user_id_str = payload.get("user_id") or payload.get("sub")
    role_name = payload.get("role")
    if not user_id_str or not role_name:
        raise credentials_exception

    try:
        user_id = UUID(user_id_str)
        role = Role(role_name)
    except ValueError:
        raise credentials_exception

    school_id: Optional[UUID] = None
    school_id_str = payload.get("school_id")
    if school_id_str:
        try:
            school_id = UUID(school_id_str)
        except ValueError:
            raise credentials_exception

    return ServiceContext(user_id=user_id, school_id=school_id, role=role)
