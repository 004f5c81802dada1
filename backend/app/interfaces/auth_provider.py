"""
Authentication provider interface.

Turns a bearer token into a pre-validated principal. Identity itself is
managed outside this service.
"""

from abc import ABC, abstractmethod

from app.models.principal import Principal


class IAuthProvider(ABC):
    """Abstract interface for bearer token validation."""

    @abstractmethod
    async def verify_token(self, token: str) -> Principal:
        """
        Verify a bearer token.

        Args:
            token: Raw token without the "Bearer" scheme

        Returns:
            Principal carried by the token

        Raises:
            Exception: If the token is invalid
        """
        pass

    @abstractmethod
    def is_enabled(self) -> bool:
        """Check if authentication is enforced."""
        pass
