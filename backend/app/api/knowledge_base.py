"""
Knowledge base admin API endpoints.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from app.api.deps import AdminUser, KnowledgeRepo, StaffUser
from app.models.knowledge import KnowledgeArticle, KnowledgeArticleCreate, KnowledgeArticleUpdate

router = APIRouter()


@router.get("", response_model=list[KnowledgeArticle])
async def list_articles(
    staff: StaffUser,
    knowledge_repo: KnowledgeRepo,
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
):
    """List all articles, including inactive ones."""
    return await knowledge_repo.list(category=category, search=search)


@router.post("", response_model=KnowledgeArticle, status_code=status.HTTP_201_CREATED)
async def create_article(
    article: KnowledgeArticleCreate,
    admin: AdminUser,
    knowledge_repo: KnowledgeRepo,
):
    return await knowledge_repo.create(article, created_by=admin.id)


@router.get("/{article_id}", response_model=KnowledgeArticle)
async def get_article(
    article_id: UUID,
    staff: StaffUser,
    knowledge_repo: KnowledgeRepo,
):
    article = await knowledge_repo.get(article_id)
    if not article:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Article {article_id} not found",
        )
    return article


@router.put("/{article_id}", response_model=KnowledgeArticle)
async def update_article(
    article_id: UUID,
    update: KnowledgeArticleUpdate,
    admin: AdminUser,
    knowledge_repo: KnowledgeRepo,
):
    """Update an article. Counter fields overwrite the stored counts."""
    article = await knowledge_repo.update(article_id, update)
    if not article:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Article {article_id} not found",
        )
    return article


@router.delete("/{article_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_article(
    article_id: UUID,
    admin: AdminUser,
    knowledge_repo: KnowledgeRepo,
):
    deleted = await knowledge_repo.delete(article_id)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Article {article_id} not found",
        )
