import json
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Boolean
from sqlalchemy.sql import func
from sqlalchemy.orm import backref, relationship
from lamont.core.database import Base


class UserSettings(Base):
    """
    Per-user settings and onboarding answers.

    One row per user (unique user_id). Onboarding progress is derived from
    these columns on every read; nothing here records "onboarded" directly.
    """
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False)

    # Onboarding answers - None means the step has not been answered yet
    website_url = Column(String, nullable=True)
    business_description = Column(Text, nullable=True)
    competitors = Column(Text, nullable=True)  # JSON-serialised list
    # Empty string is a deliberate "no sitemap" answer, distinct from None
    sitemap_url = Column(String, nullable=True)
    has_google_search_console = Column(Boolean, nullable=True)
    target_languages = Column(Text, nullable=True)  # JSON-serialised list
    audience_size = Column(Integer, nullable=True)

    # General preferences
    theme = Column(String, nullable=False, default="light")
    language = Column(String, nullable=False, default="english")
    notifications = Column(Boolean, nullable=False, default=True)

    # Raw OAuth token response from the Search Console connection
    google_search_console_tokens = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", backref=backref("settings", uselist=False))

    def competitors_list(self) -> list:
        return _load_list(self.competitors)

    def target_languages_list(self) -> list:
        return _load_list(self.target_languages)


def _load_list(value) -> list:
    if not value:
        return []
    try:
        loaded = json.loads(value)
    except ValueError:
        return []
    return loaded if isinstance(loaded, list) else []
