"""
Local JWT authentication provider.
"""

from __future__ import annotations

from jose import JWTError

from app.core.config import Settings
from app.core.security import decode_access_token
from app.interfaces.auth_provider import IAuthProvider
from app.models.enums import PrincipalRole
from app.models.principal import Principal


class LocalAuthProvider(IAuthProvider):
    """Local auth provider with HMAC JWT validation."""

    def __init__(self, settings: Settings):
        if not settings.LOCAL_JWT_SECRET:
            raise ValueError("LOCAL_JWT_SECRET must be set for local auth")
        self._settings = settings

    async def verify_token(self, token: str) -> Principal:
        claims = decode_access_token(token, self._settings)
        subject = claims.get("sub")
        if not subject:
            raise JWTError("Missing subject")
        try:
            role = PrincipalRole(str(claims.get("role") or PrincipalRole.VISITOR.value).upper())
        except ValueError as exc:
            raise JWTError("Invalid role claim") from exc
        name = claims.get("name")
        return Principal(
            id=str(subject),
            role=role,
            display_name=str(name) if name else None,
        )

    def is_enabled(self) -> bool:
        return True
