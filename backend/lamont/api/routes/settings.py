from typing import Literal, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from lamont.api.dependencies import get_current_user_id
from lamont.api.schemas import CamelModel
from lamont.core.database import get_db
from lamont.services.settings_service import settings_service

router = APIRouter(prefix="/settings", tags=["settings"])

DEFAULT_PREFERENCES = {"theme": "light", "language": "english", "notifications": True}


class PreferencesUpdate(CamelModel):
    theme: Optional[Literal["light", "dark", "system"]] = None
    language: Optional[Literal["english", "spanish", "french", "german"]] = None
    notifications: Optional[bool] = None


class PreferencesResponse(CamelModel):
    theme: str
    language: str
    notifications: bool


@router.get("/", response_model=PreferencesResponse)
async def get_preferences(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """General preferences, falling back to defaults before the settings row exists"""
    row = settings_service.get_settings(user_id, db)
    if row is None:
        return DEFAULT_PREFERENCES
    return row


@router.put("/", response_model=PreferencesResponse)
async def update_preferences(
    update: PreferencesUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    values = update.model_dump(exclude_none=True)
    if not values:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No valid fields provided for update",
        )
    return settings_service.upsert_settings(user_id, values, db)
