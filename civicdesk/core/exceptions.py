"""Custom exception classes for CivicDesk."""

from typing import Iterable

from fastapi import HTTPException, status


class CivicDeskError(Exception):
    """Base exception for CivicDesk."""

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class AuthenticationError(CivicDeskError):
    """Raised when no authenticated user is available."""
    pass


class PermissionDeniedError(CivicDeskError):
    """Raised when the user lacks a permission (and no delegation applies)."""

    def __init__(self, permission: str, message: str = "Insufficient permission"):
        self.permission = permission
        super().__init__(message)


class InvalidPermissionError(CivicDeskError):
    """Raised when an override contains tokens outside the catalog universe."""

    def __init__(self, invalid: Iterable[str]):
        self.invalid = sorted(set(invalid))
        super().__init__(f"Invalid permissions provided: {', '.join(self.invalid)}")


class AuditWriteFailure(CivicDeskError):
    """Raised when an audit record could not be written.

    The enclosing unit of work must be rolled back.
    """
    pass


class ResourceNotFoundError(CivicDeskError):
    """Raised when a requested resource is not found."""
    pass


class ValidationError(CivicDeskError):
    """Raised when input validation fails."""
    pass


class CatalogError(CivicDeskError):
    """Raised when the default permission matrix cannot be loaded."""
    pass


# HTTP exception shortcut
def unauthorized(detail: str = "Not authenticated") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )
