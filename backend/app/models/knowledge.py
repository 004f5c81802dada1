"""
Knowledge base article models.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


def normalize_keywords(keywords: Optional[list[str]]) -> Optional[list[str]]:
    """Lower-case, strip and de-duplicate keywords, keeping a stable order."""
    if keywords is None:
        return None
    return sorted({k.strip().lower() for k in keywords if k and k.strip()})


class KnowledgeArticleBase(BaseModel):
    """Base article fields."""

    title: str = Field(..., min_length=1, max_length=300)
    content: str = Field(..., min_length=1, max_length=50000)
    keywords: list[str] = Field(default_factory=list)
    category: Optional[str] = Field(None, max_length=100)
    is_active: bool = True
    sort_order: int = 0

    @field_validator("keywords")
    @classmethod
    def _normalize(cls, value: list[str]) -> list[str]:
        return normalize_keywords(value) or []


class KnowledgeArticleCreate(KnowledgeArticleBase):
    """Schema for creating an article."""

    pass


class KnowledgeArticleUpdate(BaseModel):
    """
    Schema for updating an article.

    The counter fields are an explicit admin correction; they are the only
    way counters ever go down.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=300)
    content: Optional[str] = Field(None, min_length=1, max_length=50000)
    keywords: Optional[list[str]] = None
    category: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None
    views: Optional[int] = Field(None, ge=0)
    helpful: Optional[int] = Field(None, ge=0)
    not_helpful: Optional[int] = Field(None, ge=0)

    @field_validator("keywords")
    @classmethod
    def _normalize(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        return normalize_keywords(value)


class KnowledgeArticle(KnowledgeArticleBase):
    """Knowledge base article."""

    id: UUID
    views: int = 0
    helpful: int = 0
    not_helpful: int = 0
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime
