"""
Google OAuth 2.0 authorization-code exchange for the Search Console connection.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from lamont.core.config import settings

logger = logging.getLogger(__name__)


class OAuthExchangeError(Exception):
    """Google answered, but refused the exchange or returned an unusable body."""


class OAuthNetworkError(Exception):
    """The token endpoint could not be reached in time. Safe to retry."""


@dataclass(frozen=True)
class GoogleOAuthTokens:
    access_token: str
    refresh_token: Optional[str]
    expires_in: Optional[int]
    scope: Optional[str]
    token_type: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "expiresIn": self.expires_in,
            "scope": self.scope,
            "tokenType": self.token_type,
        }


async def exchange_code_for_tokens(
    code: str,
    *,
    client_id: Optional[str] = None,
    client_secret: Optional[str] = None,
    redirect_uri: Optional[str] = None,
    token_url: Optional[str] = None,
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> GoogleOAuthTokens:
    """Trade an authorization code for access/refresh tokens.

    Raises OAuthNetworkError on timeouts and connection failures, and
    OAuthExchangeError when Google rejects the code.
    """
    data = {
        "code": code,
        "client_id": client_id or settings.GOOGLE_CLIENT_ID,
        "client_secret": client_secret or settings.GOOGLE_CLIENT_SECRET,
        "redirect_uri": redirect_uri or settings.GOOGLE_SEARCH_CONSOLE_REDIRECT_URI,
        "grant_type": "authorization_code",
    }
    url = token_url or settings.GOOGLE_TOKEN_URL
    timeout = timeout if timeout is not None else settings.OUTBOUND_TIMEOUT_SECONDS

    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.post(url, data=data)
    except httpx.TimeoutException as e:
        logger.warning(f"Google token exchange timed out after {timeout}s")
        raise OAuthNetworkError("Timed out contacting Google") from e
    except httpx.TransportError as e:
        logger.warning(f"Google token exchange failed to connect: {type(e).__name__}")
        raise OAuthNetworkError("Could not reach Google") from e

    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    if response.status_code >= 400 or "error" in body:
        logger.error(
            f"Google token exchange rejected ({response.status_code}): "
            f"{body.get('error', 'unknown_error')}"
        )
        raise OAuthExchangeError(body.get("error_description") or body.get("error") or "Token exchange failed")

    access_token = body.get("access_token")
    if not access_token:
        raise OAuthExchangeError("Token response did not include an access token")

    return GoogleOAuthTokens(
        access_token=access_token,
        refresh_token=body.get("refresh_token"),
        expires_in=body.get("expires_in"),
        scope=body.get("scope"),
        token_type=body.get("token_type"),
    )
