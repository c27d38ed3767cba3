"""
Onboarding progress, computed from the current settings row.

The steps form an ordered checklist; the first unanswered one is where the
user goes next. Each field has its own notion of "unanswered":

- website URL / business description: missing or blank
- competitors: missing, blank, or an empty serialised list ("[]")
- sitemap URL: None only (an empty string means "I have no sitemap")
- Search Console: None only (False is a valid answer)
- target languages: None only
"""

import json
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class OnboardingStep(str, Enum):
    WEBSITE_URL = "website-url"
    BUSINESS_DESCRIPTION = "business-description"
    COMPETITORS = "competitors"
    SITEMAP = "sitemap"
    GOOGLE_SEARCH_CONSOLE = "google-search-console"
    TARGET_AUDIENCE = "target-audience"
    DASHBOARD = "dashboard"


# Attribute on UserSettings -> camelCase key used by API payloads
_FIELD_KEYS = {
    "website_url": "websiteUrl",
    "business_description": "businessDescription",
    "competitors": "competitors",
    "sitemap_url": "sitemapUrl",
    "has_google_search_console": "hasGoogleSearchConsole",
    "target_languages": "targetLanguages",
}


def _read(settings: Any, attribute: str) -> Any:
    if settings is None:
        return None
    if isinstance(settings, Mapping):
        camel = _FIELD_KEYS[attribute]
        if camel in settings:
            return settings[camel]
        return settings.get(attribute)
    return getattr(settings, attribute, None)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _competitors_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    if isinstance(value, str):
        text = value.strip()
        if not text or text == "[]":
            return True
        try:
            decoded = json.loads(text)
        except ValueError:
            return False
        return isinstance(decoded, list) and len(decoded) == 0
    return False


def _website_url_done(settings: Any) -> bool:
    return not _is_blank(_read(settings, "website_url"))


def _business_description_done(settings: Any) -> bool:
    return not _is_blank(_read(settings, "business_description"))


def _competitors_done(settings: Any) -> bool:
    return not _competitors_missing(_read(settings, "competitors"))


def _sitemap_done(settings: Any) -> bool:
    return _read(settings, "sitemap_url") is not None


def _search_console_done(settings: Any) -> bool:
    return _read(settings, "has_google_search_console") is not None


def _target_languages_done(settings: Any) -> bool:
    return _read(settings, "target_languages") is not None


# Order matters: the first failing check decides the next step
_CHECKLIST = (
    (OnboardingStep.WEBSITE_URL, _website_url_done),
    (OnboardingStep.BUSINESS_DESCRIPTION, _business_description_done),
    (OnboardingStep.COMPETITORS, _competitors_done),
    (OnboardingStep.SITEMAP, _sitemap_done),
    (OnboardingStep.GOOGLE_SEARCH_CONSOLE, _search_console_done),
    (OnboardingStep.TARGET_AUDIENCE, _target_languages_done),
)


def next_step(settings: Optional[Any]) -> OnboardingStep:
    """Return the first incomplete onboarding step, or DASHBOARD when all are done.

    ``settings`` may be a UserSettings row, a mapping with camelCase or
    snake_case keys, or None for a user who has no settings row yet.
    """
    for step, is_done in _CHECKLIST:
        if not is_done(settings):
            return step
    return OnboardingStep.DASHBOARD


def onboarding_status(settings: Optional[Any]) -> Dict[str, bool]:
    """Per-field completion flags, using the same predicates as next_step."""
    return {
        "websiteUrl": _website_url_done(settings),
        "businessDescription": _business_description_done(settings),
        "competitors": _competitors_done(settings),
        "sitemap": _sitemap_done(settings),
        "googleSearchConsole": _search_console_done(settings),
        "targetLanguages": _target_languages_done(settings),
    }


def redirect_path(step: OnboardingStep) -> str:
    if step == OnboardingStep.DASHBOARD:
        return "/dashboard"
    return f"/onboarding/{step.value}"
