import logging
from typing import Any, Dict, Optional
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.sql import func
from lamont.models.settings import UserSettings

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class SettingsService:
    """Reads and writes the single settings row each user owns"""

    @staticmethod
    def get_settings(user_id: str, db: Session) -> Optional[UserSettings]:
        return db.query(UserSettings).filter(UserSettings.user_id == user_id).first()

    @staticmethod
    def upsert_settings(user_id: str, values: Dict[str, Any], db: Session) -> UserSettings:
        """
        Write ``values`` onto the user's settings row, creating it if needed.

        Uses INSERT ... ON CONFLICT (user_id) DO UPDATE where the dialect has it,
        so two concurrent onboarding posts for the same user cannot both insert.
        Columns not in ``values`` are left untouched; last writer wins per column.
        Commits on success and rolls back on failure.
        """
        if not values:
            raise ValueError("upsert_settings needs at least one column to write")

        unknown = [key for key in values if not hasattr(UserSettings, key)]
        if unknown:
            raise ValueError(f"Unknown settings columns: {', '.join(unknown)}")

        dialect = db.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        try:
            if insert is not None:
                statement = insert(UserSettings).values(user_id=user_id, **values)
                statement = statement.on_conflict_do_update(
                    index_elements=[UserSettings.user_id],
                    set_={**values, "updated_at": func.now()},
                )
                db.execute(statement)
                db.commit()
            else:
                SettingsService._update_or_insert(user_id, values, db)
        except Exception:
            db.rollback()
            raise

        # Statement-level writes bypass the identity map
        db.expire_all()
        return SettingsService.get_settings(user_id, db)

    @staticmethod
    def _update_or_insert(user_id: str, values: Dict[str, Any], db: Session) -> None:
        updated = db.query(UserSettings).filter(UserSettings.user_id == user_id).update(
            values, synchronize_session=False
        )
        if updated:
            db.commit()
            return
        db.add(UserSettings(user_id=user_id, **values))
        try:
            db.commit()
        except IntegrityError:
            # Another request created the row first, fall back to updating it
            db.rollback()
            logger.info(f"Settings row for user {user_id} appeared concurrently, updating instead")
            db.query(UserSettings).filter(UserSettings.user_id == user_id).update(
                values, synchronize_session=False
            )
            db.commit()


settings_service = SettingsService()
