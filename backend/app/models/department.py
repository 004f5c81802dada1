"""
Department models.

Departments are routing targets. Each may carry a pool of agents that the
router rotates through.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class DepartmentBase(BaseModel):
    """Base department fields."""

    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    description: Optional[str] = Field(None, max_length=1000)
    contact_email: Optional[EmailStr] = Field(None, description="Team contact address")
    is_active: bool = Field(True, description="Whether the router may pick it")
    sort_order: int = Field(0, description="Lower values come first")


class DepartmentCreate(DepartmentBase):
    """Schema for creating a department."""

    slug: str = Field(..., min_length=1, max_length=100, pattern=SLUG_PATTERN)


class DepartmentUpdate(BaseModel):
    """Schema for updating a department. Only provided fields change."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, min_length=1, max_length=100, pattern=SLUG_PATTERN)
    description: Optional[str] = Field(None, max_length=1000)
    contact_email: Optional[EmailStr] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


class Department(DepartmentBase):
    """Department model."""

    id: UUID
    slug: str
    created_at: datetime
    updated_at: datetime


class DepartmentAgent(BaseModel):
    """Agent membership in a department pool."""

    department_id: UUID
    agent_id: str
    is_available: bool = True
    last_assigned_at: Optional[datetime] = None
    created_at: datetime
