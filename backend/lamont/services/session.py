import logging
from typing import Optional
from starlette.requests import Request
from starlette.responses import Response
from lamont.core.config import settings
from lamont.core.tokens import TokenPayload, TokenService

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


def extract_token(request: Request, cookie_name: str = settings.COOKIE_NAME) -> Optional[str]:
    """
    Find the session token on a request.

    The httpOnly cookie wins; the Authorization header is the fallback for
    API and edge clients that cannot carry cookies.
    """
    token = request.cookies.get(cookie_name)
    if token:
        return token

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header[:len(BEARER_PREFIX)].lower() == BEARER_PREFIX:
        header_token = auth_header[len(BEARER_PREFIX):].strip()
        return header_token or None

    return None


def resolve_session(request: Request, token_service: TokenService) -> Optional[TokenPayload]:
    """Verify the request's token and return its claims, or None when unauthenticated."""
    token = extract_token(request)
    if token is None:
        return None

    payload = token_service.verify(token)
    if payload is None:
        # Reason is deliberately not surfaced
        logger.debug(f"Discarding invalid session token on {request.url.path}")
    return payload


def resolve_user_id(request: Request, token_service: TokenService) -> Optional[str]:
    """Map a request to the user id in its session token, without touching the database."""
    payload = resolve_session(request, token_service)
    return payload.user_id if payload else None


def set_session_cookie(response: Response, token: str, max_age: int) -> None:
    """Attach the session token as an httpOnly, same-site-strict cookie."""
    response.set_cookie(
        key=settings.COOKIE_NAME,
        value=token,
        max_age=max_age,
        path="/",
        httponly=True,
        samesite="strict",
        secure=settings.cookie_secure,
    )


def clear_session_cookie(response: Response) -> None:
    # Tokens are stateless, so logging out only removes the client's copy
    response.delete_cookie(
        key=settings.COOKIE_NAME,
        path="/",
        httponly=True,
        samesite="strict",
        secure=settings.cookie_secure,
    )
