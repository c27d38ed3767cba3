from datetime import datetime
from typing import List, Literal, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import Field
from sqlalchemy.orm import Session
from lamont.api.dependencies import get_current_user_id
from lamont.api.schemas import CamelModel
from lamont.core.database import get_db
from lamont.models.article import Article

router = APIRouter(prefix="/articles", tags=["articles"])

ARTICLE_NOT_FOUND_MESSAGE = "Article not found"

ArticleStatus = Literal["draft", "published", "archived"]


class ArticleCreate(CamelModel):
    title: str = Field(min_length=5, max_length=200)
    content: str = ""
    snippet: Optional[str] = Field(default=None, max_length=300)
    keywords: List[str] = Field(default_factory=list)
    status: ArticleStatus = "draft"
    seo_score: Optional[int] = Field(default=None, ge=0, le=100)
    readability_score: Optional[int] = Field(default=None, ge=0, le=100)


class ArticleUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=5, max_length=200)
    content: Optional[str] = None
    snippet: Optional[str] = Field(default=None, max_length=300)
    keywords: Optional[List[str]] = None
    status: Optional[ArticleStatus] = None
    seo_score: Optional[int] = Field(default=None, ge=0, le=100)
    readability_score: Optional[int] = Field(default=None, ge=0, le=100)


class ArticleResponse(CamelModel):
    id: int
    user_id: str
    title: str
    content: str
    snippet: Optional[str]
    keywords: List[str]
    status: str
    seo_score: Optional[int]
    readability_score: Optional[int]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


def _get_owned_article(article_id: int, user_id: str, db: Session) -> Article:
    article = db.query(Article).filter(
        Article.id == article_id,
        Article.user_id == user_id
    ).first()
    if not article:
        raise HTTPException(status_code=404, detail=ARTICLE_NOT_FOUND_MESSAGE)
    return article


@router.get("/", response_model=List[ArticleResponse])
async def list_articles(
    status: Optional[ArticleStatus] = Query(default=None),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """List the current user's articles, most recently updated first"""
    query = db.query(Article).filter(Article.user_id == user_id)
    if status:
        query = query.filter(Article.status == status)
    return query.order_by(Article.updated_at.desc(), Article.id.desc()).all()


@router.post("/", response_model=ArticleResponse, status_code=201)
async def create_article(
    article: ArticleCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    db_article = Article(user_id=user_id, **article.model_dump())
    db.add(db_article)
    db.commit()
    db.refresh(db_article)
    return db_article


@router.get("/{article_id}", response_model=ArticleResponse)
async def get_article(
    article_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    return _get_owned_article(article_id, user_id, db)


@router.put("/{article_id}", response_model=ArticleResponse)
async def update_article(
    article_id: int,
    article_update: ArticleUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    article = _get_owned_article(article_id, user_id, db)
    for field, value in article_update.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(article, field, value)
    db.commit()
    db.refresh(article)
    return article


@router.delete("/{article_id}")
async def delete_article(
    article_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    article = _get_owned_article(article_id, user_id, db)
    db.delete(article)
    db.commit()
    return {"message": "Article deleted successfully"}
