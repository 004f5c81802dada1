"""
Domain error to HTTP error mapping for endpoints.
"""

from fastapi import HTTPException, status

from app.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BusyError,
    BusinessLogicError,
    DuplicateError,
    LivedeskError,
    NotFoundError,
    ValidationError,
)


def http_error(exc: LivedeskError) -> HTTPException:
    """Translate a domain error into the matching HTTPException."""
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    if isinstance(exc, (DuplicateError, BusinessLogicError)):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"error": type(exc).__name__, "message": exc.message, "details": exc.details},
        )
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.message)
    if isinstance(exc, BusyError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=exc.message,
            headers={"Retry-After": str(max(1, round(exc.retry_after)))},
        )
    if isinstance(exc, AuthenticationError):
        return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=exc.message)
    if isinstance(exc, AuthorizationError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.message)
