import json
import logging
from datetime import datetime
from typing import List, Literal, Optional, Union
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import AnyHttpUrl, Field, field_validator
from sqlalchemy.orm import Session
from lamont.api.dependencies import get_current_user, get_current_user_id
from lamont.api.schemas import CamelModel
from lamont.core.database import get_db
from lamont.models.user import User
from lamont.services.google_oauth import (
    OAuthExchangeError,
    OAuthNetworkError,
    exchange_code_for_tokens,
)
from lamont.services.settings_service import settings_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user", tags=["user"])


class WebsiteUrlPayload(CamelModel):
    website_url: AnyHttpUrl


class BusinessDescriptionPayload(CamelModel):
    business_description: str = Field(min_length=10, max_length=2000)


class Competitor(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    website: AnyHttpUrl


class CompetitorsPayload(CamelModel):
    competitors: List[Competitor] = Field(max_length=10)


class SitemapPayload(CamelModel):
    # "" is an explicit "no sitemap" answer and still completes the step
    sitemap_url: Union[AnyHttpUrl, Literal[""]]


class SearchConsolePayload(CamelModel):
    connected: bool = False


class TargetAudiencePayload(CamelModel):
    target_languages: List[str] = Field(min_length=1)
    audience_size: int = Field(gt=0)

    @field_validator("target_languages")
    @classmethod
    def languages_not_blank(cls, value: List[str]) -> List[str]:
        cleaned = [language.strip() for language in value if language.strip()]
        if not cleaned:
            raise ValueError("At least one language must be selected")
        return cleaned


class Preferences(CamelModel):
    theme: Optional[Literal["light", "dark", "system"]] = None
    email_notifications: Optional[bool] = None


class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    preferences: Optional[Preferences] = None


class ProfileResponse(CamelModel):
    id: str
    email: str
    name: Optional[str]
    role: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    preferences: dict


def _saved(message: str, **data):
    return {"success": True, "message": message, "data": data}


# Website URL
# -----------------------------

@router.get("/website-url")
async def get_website_url(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    row = settings_service.get_settings(user_id, db)
    return {"websiteUrl": row.website_url if row else None}


@router.post("/website-url")
async def save_website_url(
    payload: WebsiteUrlPayload,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    row = settings_service.upsert_settings(user_id, {"website_url": str(payload.website_url)}, db)
    logger.info(f"Saved website URL for user {user_id}")
    return _saved("Website URL saved successfully", websiteUrl=row.website_url)


# Business description
# -----------------------------

@router.get("/business-description")
async def get_business_description(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    row = settings_service.get_settings(user_id, db)
    return {"businessDescription": row.business_description if row else None}


@router.post("/business-description")
async def save_business_description(
    payload: BusinessDescriptionPayload,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    row = settings_service.upsert_settings(
        user_id, {"business_description": payload.business_description.strip()}, db
    )
    return _saved("Business description saved successfully", businessDescription=row.business_description)


# Competitors
# -----------------------------

@router.get("/competitors")
async def get_competitors(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    row = settings_service.get_settings(user_id, db)
    return {"competitors": row.competitors_list() if row else []}


@router.post("/competitors")
async def save_competitors(
    payload: CompetitorsPayload,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    competitors = [
        {"name": competitor.name, "website": str(competitor.website)}
        for competitor in payload.competitors
    ]
    row = settings_service.upsert_settings(user_id, {"competitors": json.dumps(competitors)}, db)
    return _saved("Competitors updated successfully", competitors=row.competitors_list())


# Sitemap
# -----------------------------

@router.get("/sitemap")
async def get_sitemap(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    row = settings_service.get_settings(user_id, db)
    return {"sitemapUrl": row.sitemap_url if row else None}


@router.post("/sitemap")
async def save_sitemap(
    payload: SitemapPayload,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    sitemap_url = str(payload.sitemap_url) if payload.sitemap_url else ""
    row = settings_service.upsert_settings(user_id, {"sitemap_url": sitemap_url}, db)
    return _saved("Sitemap URL saved successfully", sitemapUrl=row.sitemap_url)


# Google Search Console
# -----------------------------

@router.get("/google-search-console")
async def get_search_console(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    row = settings_service.get_settings(user_id, db)
    return {"connected": row.has_google_search_console if row else None}


@router.post("/google-search-console")
async def save_search_console(
    payload: SearchConsolePayload,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    row = settings_service.upsert_settings(user_id, {"has_google_search_console": payload.connected}, db)
    return _saved("Google Search Console preference saved", connected=row.has_google_search_console)


@router.get("/google-search-console/callback")
async def google_search_console_callback(
    code: Optional[str] = Query(default=None),
    error: Optional[str] = Query(default=None),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """OAuth redirect target: exchange the code and mark Search Console as connected"""
    if error or not code:
        logger.info(f"Search Console authorization not granted for user {user_id}: {error or 'missing code'}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Authorization code missing")

    try:
        tokens = await exchange_code_for_tokens(code)
    except OAuthNetworkError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google is not reachable right now, please try again",
            headers={"Retry-After": "30"},
        )
    except OAuthExchangeError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Token exchange failed")

    settings_service.upsert_settings(
        user_id,
        {
            "has_google_search_console": True,
            "google_search_console_tokens": json.dumps(tokens.to_dict()),
        },
        db,
    )
    logger.info(f"Connected Google Search Console for user {user_id}")
    return _saved("Google Search Console connected", connected=True)


# Target audience
# -----------------------------

@router.get("/target-audience")
async def get_target_audience(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    row = settings_service.get_settings(user_id, db)
    if row is None:
        return {"targetLanguages": None, "audienceSize": None}
    return {
        "targetLanguages": row.target_languages_list() if row.target_languages is not None else None,
        "audienceSize": row.audience_size,
    }


@router.post("/target-audience")
async def save_target_audience(
    payload: TargetAudiencePayload,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    row = settings_service.upsert_settings(
        user_id,
        {
            "target_languages": json.dumps(payload.target_languages),
            "audience_size": payload.audience_size,
        },
        db,
    )
    logger.info(f"User {user_id} set target languages: {', '.join(payload.target_languages)}")
    return _saved(
        "Target audience saved successfully",
        targetLanguages=row.target_languages_list(),
        audienceSize=row.audience_size,
    )


# Profile
# -----------------------------

def _profile(user: User, db: Session) -> ProfileResponse:
    row = settings_service.get_settings(user.id, db)
    preferences = {
        "theme": row.theme if row else "light",
        "emailNotifications": row.notifications if row else True,
        "language": row.language if row else "english",
    }
    return ProfileResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        created_at=user.created_at,
        updated_at=user.updated_at,
        preferences=preferences,
    )


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _profile(current_user, db)


@router.patch("/profile", response_model=ProfileResponse)
async def update_profile(
    update: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update display name and preferences. Email is never changed here."""
    if update.name is not None:
        current_user.name = update.name
        db.commit()
        db.refresh(current_user)

    if update.preferences is not None:
        values = {}
        if update.preferences.theme is not None:
            values["theme"] = update.preferences.theme
        if update.preferences.email_notifications is not None:
            values["notifications"] = update.preferences.email_notifications
        if values:
            settings_service.upsert_settings(current_user.id, values, db)

    return _profile(current_user, db)
