"""
Knowledge base repository interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from app.models.knowledge import KnowledgeArticle, KnowledgeArticleCreate, KnowledgeArticleUpdate


class IKnowledgeRepository(ABC):
    """Abstract interface for knowledge base articles."""

    @abstractmethod
    async def create(self, data: KnowledgeArticleCreate, created_by: Optional[str] = None) -> KnowledgeArticle:
        """Create an article."""
        pass

    @abstractmethod
    async def get(self, article_id: UUID) -> Optional[KnowledgeArticle]:
        """Get an article by ID."""
        pass

    @abstractmethod
    async def list(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[KnowledgeArticle]:
        """List articles for admins, ordered by sort_order then newest."""
        pass

    @abstractmethod
    async def search(
        self,
        query: str,
        category: Optional[str] = None,
        limit: int = 5,
    ) -> list[KnowledgeArticle]:
        """
        Public search over active articles.

        Matches title/content substrings or keyword overlap, ordered by
        views then helpful votes.
        """
        pass

    @abstractmethod
    async def update(self, article_id: UUID, data: KnowledgeArticleUpdate) -> Optional[KnowledgeArticle]:
        """Update an article. Returns None if not found."""
        pass

    @abstractmethod
    async def delete(self, article_id: UUID) -> bool:
        """Delete an article. Returns False if not found."""
        pass

    @abstractmethod
    async def record_view(self, article_id: UUID) -> Optional[KnowledgeArticle]:
        """Increment the view counter."""
        pass

    @abstractmethod
    async def record_feedback(self, article_id: UUID, helpful: bool) -> Optional[KnowledgeArticle]:
        """Increment the helpful or not-helpful counter."""
        pass
