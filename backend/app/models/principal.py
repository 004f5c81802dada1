"""
Authenticated caller model.

Identity is owned by an external collaborator; the chat core only sees a
pre-validated principal.
"""

from typing import Optional

from pydantic import BaseModel

from app.models.enums import PrincipalRole


class Principal(BaseModel):
    """Pre-validated caller identity."""

    id: str
    role: PrincipalRole = PrincipalRole.VISITOR
    display_name: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_staff(self) -> bool:
        return self.role.is_staff
