"""
SQLite implementation of knowledge base repository.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import select, update

from app.infrastructure.local.database import KnowledgeArticleORM, get_session_factory
from app.interfaces.knowledge_repository import IKnowledgeRepository
from app.models.knowledge import KnowledgeArticle, KnowledgeArticleCreate, KnowledgeArticleUpdate
from app.utils.datetime_utils import ensure_utc, now_utc

MIN_QUERY_LENGTH = 2


def _orm_to_model(orm: KnowledgeArticleORM) -> KnowledgeArticle:
    return KnowledgeArticle(
        id=UUID(orm.id),
        title=orm.title,
        content=orm.content,
        keywords=orm.keywords or [],
        category=orm.category,
        is_active=bool(orm.is_active),
        sort_order=orm.sort_order or 0,
        views=orm.views or 0,
        helpful=orm.helpful or 0,
        not_helpful=orm.not_helpful or 0,
        created_by=orm.created_by,
        created_at=ensure_utc(orm.created_at),
        updated_at=ensure_utc(orm.updated_at),
    )


def _matches(article: KnowledgeArticle, text: str, terms: set[str]) -> bool:
    """Substring match on title/content, or any keyword in ``terms``."""
    if text in article.title.lower() or text in article.content.lower():
        return True
    return bool(terms & set(article.keywords))


class SqliteKnowledgeRepository(IKnowledgeRepository):
    """SQLite implementation of knowledge base repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    async def create(self, data: KnowledgeArticleCreate, created_by: Optional[str] = None) -> KnowledgeArticle:
        async with self._session_factory() as session:
            now = now_utc()
            orm = KnowledgeArticleORM(
                id=str(uuid4()),
                title=data.title,
                content=data.content,
                keywords=data.keywords,
                category=data.category,
                is_active=data.is_active,
                sort_order=data.sort_order,
                views=0,
                helpful=0,
                not_helpful=0,
                created_by=created_by,
                created_at=now,
                updated_at=now,
            )
            session.add(orm)
            await session.commit()
            await session.refresh(orm)
            return _orm_to_model(orm)

    async def get(self, article_id: UUID) -> Optional[KnowledgeArticle]:
        async with self._session_factory() as session:
            orm = await session.get(KnowledgeArticleORM, str(article_id))
            return _orm_to_model(orm) if orm else None

    async def list(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[KnowledgeArticle]:
        async with self._session_factory() as session:
            query = select(KnowledgeArticleORM)
            if category:
                query = query.where(KnowledgeArticleORM.category == category)
            query = query.order_by(
                KnowledgeArticleORM.sort_order.asc(),
                KnowledgeArticleORM.created_at.desc(),
            )
            result = await session.execute(query)
            articles = [_orm_to_model(orm) for orm in result.scalars().all()]

        if search:
            text = search.strip().lower()
            articles = [a for a in articles if _matches(a, text, {text})]
        return articles

    async def search(
        self,
        query: str,
        category: Optional[str] = None,
        limit: int = 5,
    ) -> list[KnowledgeArticle]:
        text = (query or "").strip().lower()
        if len(text) < MIN_QUERY_LENGTH:
            return []

        async with self._session_factory() as session:
            stmt = select(KnowledgeArticleORM).where(KnowledgeArticleORM.is_active == True)  # noqa: E712
            if category:
                stmt = stmt.where(KnowledgeArticleORM.category == category)
            stmt = stmt.order_by(
                KnowledgeArticleORM.views.desc(),
                KnowledgeArticleORM.helpful.desc(),
            )
            result = await session.execute(stmt)
            articles = [_orm_to_model(orm) for orm in result.scalars().all()]

        terms = set(text.split())
        return [a for a in articles if _matches(a, text, terms)][:limit]

    async def update(self, article_id: UUID, data: KnowledgeArticleUpdate) -> Optional[KnowledgeArticle]:
        async with self._session_factory() as session:
            orm = await session.get(KnowledgeArticleORM, str(article_id))
            if not orm:
                return None
            for key, value in data.model_dump(exclude_unset=True).items():
                setattr(orm, key, value)
            orm.updated_at = now_utc()
            await session.commit()
            await session.refresh(orm)
            return _orm_to_model(orm)

    async def delete(self, article_id: UUID) -> bool:
        async with self._session_factory() as session:
            orm = await session.get(KnowledgeArticleORM, str(article_id))
            if not orm:
                return False
            await session.delete(orm)
            await session.commit()
            return True

    async def record_view(self, article_id: UUID) -> Optional[KnowledgeArticle]:
        return await self._increment(article_id, "views")

    async def record_feedback(self, article_id: UUID, helpful: bool) -> Optional[KnowledgeArticle]:
        return await self._increment(article_id, "helpful" if helpful else "not_helpful")

    async def _increment(self, article_id: UUID, counter: str) -> Optional[KnowledgeArticle]:
        column = getattr(KnowledgeArticleORM, counter)
        async with self._session_factory() as session:
            # Single UPDATE so concurrent increments are not lost.
            result = await session.execute(
                update(KnowledgeArticleORM)
                .where(KnowledgeArticleORM.id == str(article_id))
                .values({counter: column + 1})
            )
            await session.commit()
            if not result.rowcount:
                return None
            orm = await session.get(KnowledgeArticleORM, str(article_id))
            await session.refresh(orm)
            return _orm_to_model(orm)
