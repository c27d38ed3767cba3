import logging
import math
from datetime import datetime
from typing import List, Literal, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import EmailStr, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload
from starlette.concurrency import run_in_threadpool
from lamont.api.dependencies import require_admin
from lamont.api.schemas import CamelModel
from lamont.core.database import get_db
from lamont.core.security import get_password_hash
from lamont.models.settings import UserSettings
from lamont.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

EMAIL_TAKEN_MESSAGE = "User with this email already exists"


class SettingsSummary(CamelModel):
    id: int
    theme: Optional[str]
    language: Optional[str]
    website_url: Optional[str]
    business_description: Optional[str]


class AdminUserResponse(CamelModel):
    id: str
    name: Optional[str]
    email: str
    role: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    settings: Optional[SettingsSummary] = None


class Pagination(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class UserListResponse(CamelModel):
    users: List[AdminUserResponse]
    pagination: Pagination


class AdminUserCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    role: Literal["user", "admin"] = "user"


class UserCreatedResponse(CamelModel):
    message: str
    user: AdminUserResponse


@router.get("/", response_model=UserListResponse)
async def list_users(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str = Query(default=""),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Page through accounts, newest first, optionally filtered by email substring"""
    query = db.query(User)
    if search:
        # Emails are stored lower-cased
        query = query.filter(User.email.contains(search.strip().lower(), autoescape=True))

    total = query.count()
    users = (
        query.options(joinedload(User.settings))
        .order_by(User.created_at.desc(), User.id)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    total_pages = math.ceil(total / limit)

    return {
        "users": [AdminUserResponse.model_validate(user) for user in users],
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": total_pages,
            "has_next_page": page < total_pages,
            "has_prev_page": page > 1,
        },
    }


@router.post("/", response_model=UserCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: AdminUserCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create an account on someone's behalf. No session is started for it."""
    email = user_data.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=EMAIL_TAKEN_MESSAGE)

    hashed_password = await run_in_threadpool(get_password_hash, user_data.password)

    try:
        db_user = User(name=user_data.name, email=email, hashed_password=hashed_password, role=user_data.role)
        db.add(db_user)
        db.flush()
        db.add(UserSettings(user_id=db_user.id))
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=EMAIL_TAKEN_MESSAGE)

    db.refresh(db_user)
    logger.info(f"Admin {admin.id} created user {db_user.id} with role {db_user.role}")
    return UserCreatedResponse(message="User created successfully", user=AdminUserResponse.model_validate(db_user))
