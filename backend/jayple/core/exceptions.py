# backend/jayple/core/exceptions.py
"""
Domain-specific exceptions for the Jayple dispatch engine.

Every exception carries the RPC error code surfaced to callers
("not-found", "failed-precondition", ...) and converts to an
HTTPException at the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: str = "internal"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class UnauthenticatedException(DomainException):
    """Raised when there is no verified caller."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "unauthenticated"


class PermissionDeniedException(DomainException):
    """Wrong role, not the owning party, or a blocked account."""

    status_code = status.HTTP_403_FORBIDDEN
    default_code = "permission-denied"


class InvalidArgumentException(DomainException):
    """Raised when the request shape is malformed."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "invalid-argument"


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not-found"


class FailedPreconditionException(DomainException):
    """Raised when the record is in the wrong lifecycle state for the transition."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "failed-precondition"


class ResourceExhaustedException(DomainException):
    """Raised when no freelancer can take the booking."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_code = "resource-exhausted"


class InternalException(DomainException):
    """Unexpected store or scheduler failure."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    Used when data access operations fail, such as query failures or
    constraint violations that are not transaction conflicts.
    """
