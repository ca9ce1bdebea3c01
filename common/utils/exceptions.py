"""
Custom HTTP exceptions with error codes.

Extends FastAPI's HTTPException with standardized error codes
for consistent API error responses. Infrastructure clients (content
repository, local storage) raise the same hierarchy so callers can
handle them uniformly or let them surface through the API.

Example:
    from common.utils import UnauthorizedException

    @router.get("/notifications")
    async def get_notifications(request: Request):
        if not getattr(request.state, "user", None):
            raise UnauthorizedException("Authentication required")
"""

from typing import Optional, Any, Dict
from fastapi import HTTPException


class APIException(HTTPException):
    """
    Base API exception with error code support.

    Provides consistent error response format across the API.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        code: Optional[str] = None,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Create an API exception.

        Args:
            status_code: HTTP status code
            message: Human-readable error message
            code: Machine-readable error code
            details: Additional error details
            headers: Optional response headers
        """
        detail: Dict[str, Any] = {"message": message}

        if code:
            detail["code"] = code

        if details is not None:
            detail["details"] = details

        self.message = message
        self.code = code

        super().__init__(
            status_code=status_code,
            detail=detail,
            headers=headers,
        )

    def __str__(self) -> str:
        if self.code:
            return f"{self.code}: {self.message}"
        return self.message


class UnauthorizedException(APIException):
    """401 Unauthorized - Missing or invalid authentication."""

    def __init__(
        self,
        message: str = "Unauthorized",
        code: str = "UNAUTHORIZED",
        details: Optional[Any] = None,
    ):
        super().__init__(401, message, code, details)


class NotFoundException(APIException):
    """404 Not Found - Resource doesn't exist."""

    def __init__(
        self,
        message: str = "Not found",
        code: str = "NOT_FOUND",
        details: Optional[Any] = None,
    ):
        super().__init__(404, message, code, details)


class ServiceUnavailableException(APIException):
    """503 Service Unavailable - Service temporarily unavailable."""

    def __init__(
        self,
        message: str = "Service unavailable",
        code: str = "SERVICE_UNAVAILABLE",
        retry_after: Optional[int] = None,
        details: Optional[Any] = None,
    ):
        headers = {}
        if retry_after:
            headers["Retry-After"] = str(retry_after)

        if retry_after and details is None:
            details = {"retryAfter": retry_after}

        super().__init__(
            status_code=503,
            message=message,
            code=code,
            details=details,
            headers=headers if headers else None,
        )


class ContentRepositoryException(ServiceUnavailableException):
    """503 - The content repository query failed or returned garbage."""

    def __init__(
        self,
        message: str = "Content repository unavailable",
        code: str = "REPOSITORY_UNAVAILABLE",
        details: Optional[Any] = None,
    ):
        super().__init__(message=message, code=code, details=details)


class StorageUnavailableException(ServiceUnavailableException):
    """503 - The persistent local store could not be read or written."""

    def __init__(
        self,
        message: str = "Local storage unavailable",
        code: str = "STORAGE_UNAVAILABLE",
        details: Optional[Any] = None,
    ):
        super().__init__(message=message, code=code, details=details)
