"""
Mock authentication provider for local development.
"""

from app.interfaces.auth_provider import IAuthProvider
from app.models.enums import PrincipalRole
from app.models.principal import Principal

STAFF_PREFIXES = {
    "admin:": PrincipalRole.ADMIN,
    "agent:": PrincipalRole.AGENT,
}


class MockAuthProvider(IAuthProvider):
    """Mock auth provider that derives a principal from the raw token."""

    def __init__(self, enabled: bool = False):
        """
        Initialize mock auth provider.

        Args:
            enabled: Whether authentication is required
        """
        self._enabled = enabled
        self._mock_principals = {
            "dev_admin": Principal(
                id="dev_admin",
                role=PrincipalRole.ADMIN,
                display_name="Developer",
                email="dev@example.com",
            ),
            "dev_agent": Principal(
                id="dev_agent",
                role=PrincipalRole.AGENT,
                display_name="Support Agent",
                email="agent@example.com",
            ),
        }

    async def verify_token(self, token: str) -> Principal:
        """
        Verify token - in mock mode, token is treated as principal id.

        "admin:<id>" and "agent:<id>" tokens yield staff principals; any other
        token is a visitor.

        Args:
            token: Principal id (in mock mode)

        Returns:
            Mock principal
        """
        if token in self._mock_principals:
            return self._mock_principals[token]
        for prefix, role in STAFF_PREFIXES.items():
            if token.startswith(prefix) and len(token) > len(prefix):
                principal_id = token[len(prefix):]
                return Principal(id=principal_id, role=role, display_name=principal_id)
        return Principal(id=token, role=PrincipalRole.VISITOR, display_name=token)

    def is_enabled(self) -> bool:
        """Check if authentication is enabled."""
        return self._enabled
