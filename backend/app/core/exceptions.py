"""
Custom exceptions for the application.
"""

from typing import Any, Optional


class LivedeskError(Exception):
    """Base exception for livedesk."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(LivedeskError):
    """Resource not found."""

    pass


class SessionNotFoundError(NotFoundError):
    """Chat session does not exist."""

    def __init__(self, session_id: Any):
        super().__init__(f"Chat session {session_id} not found", details={"session_id": str(session_id)})
        self.session_id = session_id


class DepartmentNotFoundError(NotFoundError):
    """Department does not exist."""

    pass


class ArticleNotFoundError(NotFoundError):
    """Knowledge base article does not exist."""

    pass


class DuplicateError(LivedeskError):
    """Duplicate resource detected."""

    pass


class DuplicateSlugError(DuplicateError):
    """Department slug already taken."""

    def __init__(self, slug: str):
        super().__init__(f"Department slug '{slug}' already exists", details={"slug": slug})
        self.slug = slug


class ValidationError(LivedeskError):
    """Validation error (malformed input)."""

    pass


class BusinessLogicError(LivedeskError):
    """Business logic constraint violation."""

    pass


class InvalidTransitionError(BusinessLogicError):
    """Requested status transition is not in the transition table."""

    def __init__(self, current: Any, requested: Any):
        current_value = getattr(current, "value", current)
        requested_value = getattr(requested, "value", requested)
        super().__init__(
            f"Cannot apply {requested_value} to a session in {current_value}",
            details={"current": current_value, "requested": requested_value},
        )
        self.current = current
        self.requested = requested


class AlreadyRatedError(BusinessLogicError):
    """Session already carries a rating."""

    pass


class NotResolvedError(BusinessLogicError):
    """Session must be RESOLVED or CLOSED before it can be rated."""

    pass


class SlugLockedError(BusinessLogicError):
    """Department slug cannot change while sessions reference it."""

    pass


class BusyError(LivedeskError):
    """Session lock could not be acquired in time."""

    def __init__(self, message: str, retry_after: float = 1.0):
        super().__init__(message, details={"retry_after": retry_after})
        self.retry_after = retry_after


class AuthenticationError(LivedeskError):
    """Authentication failed."""

    pass


class AuthorizationError(LivedeskError):
    """Authorization failed."""

    pass


class NotificationError(LivedeskError):
    """Staff notification could not be delivered."""

    pass
