from enum import Enum
from typing import Optional

from fastapi import status


class ErrorKind(str, Enum):
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    CONFLICT = "CONFLICT"
    TRANSACTION = "TRANSACTION"


class ServiceError(Exception):
    """Base exception for service layer errors."""

    kind: ErrorKind = ErrorKind.TRANSACTION

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ForbiddenError(ServiceError):
    """Caller's tenant or role does not authorize the operation."""

    kind = ErrorKind.FORBIDDEN

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class NotFoundError(ServiceError):
    """Entity does not exist within the caller's school. Cross-tenant rows look the same as missing ones."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, entity_id: Optional[object] = None) -> None:
        message = f"{entity} with id {entity_id} not found" if entity_id is not None else f"{entity} not found"
        super().__init__(message, status.HTTP_404_NOT_FOUND)
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(ServiceError):
    kind = ErrorKind.VALIDATION

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class ConflictError(ServiceError):
    kind = ErrorKind.CONFLICT

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class TransactionError(ServiceError):
    """Storage failure, timeout or unexpected error inside a transaction. The transaction is rolled back."""

    kind = ErrorKind.TRANSACTION

    def __init__(self, message: str = "Transaction failed - all changes rolled back") -> None:
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)
