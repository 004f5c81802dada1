"""
Security helpers for local authentication.

Identity lives outside this service; these helpers only mint and read the
bearer tokens that carry a principal (id, role, display name).
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import jwt

from app.core.config import Settings

JWT_ALGORITHM = "HS256"


def create_access_token(
    principal_id: str,
    role: str,
    settings: Settings,
    display_name: str | None = None,
    expires_minutes: int | None = None,
) -> str:
    """Create a signed JWT for a principal."""
    now = datetime.now(timezone.utc)
    expires = now + timedelta(minutes=expires_minutes or settings.LOCAL_JWT_EXPIRE_MINUTES)
    payload = {
        "sub": principal_id,
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int(expires.timestamp()),
    }
    if display_name:
        payload["name"] = display_name
    if settings.LOCAL_JWT_ISSUER:
        payload["iss"] = settings.LOCAL_JWT_ISSUER
    return jwt.encode(payload, settings.LOCAL_JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> dict[str, object]:
    """Decode and verify a JWT. Raises jose.JWTError on failure."""
    options = {"verify_iss": bool(settings.LOCAL_JWT_ISSUER)}
    return jwt.decode(
        token,
        settings.LOCAL_JWT_SECRET,
        algorithms=[JWT_ALGORITHM],
        issuer=settings.LOCAL_JWT_ISSUER or None,
        options=options,
    )
