import logging
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from lamont.core.database import get_db
from lamont.core.errors import ADMIN_REQUIRED_MESSAGE, AUTH_REQUIRED_MESSAGE
from lamont.core.rate_limit import RegistrationRateLimiter
from lamont.core.tokens import TokenService
from lamont.models.user import User
from lamont.services.session import resolve_user_id

logger = logging.getLogger(__name__)


def get_token_service(request: Request) -> TokenService:
    """App-scoped token service, set up in lamont.main"""
    return request.app.state.token_service


def get_registration_limiter(request: Request) -> RegistrationRateLimiter:
    """App-scoped registration limiter, set up in lamont.main"""
    return request.app.state.registration_limiter


def _credentials_exception() -> HTTPException:
    # Same response whatever went wrong, so callers cannot probe accounts or tokens
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=AUTH_REQUIRED_MESSAGE,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(
    request: Request,
    token_service: TokenService = Depends(get_token_service),
) -> str:
    """
    Require a valid session and return its user id.

    Reads the token from the ``token`` cookie or the Authorization header and
    verifies it. Does not hit the database.
    """
    user_id = resolve_user_id(request, token_service)
    if user_id is None:
        raise _credentials_exception()
    return user_id


async def get_current_user(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> User:
    """
    Require a valid session whose user still exists.

    Layered on get_current_user_id for endpoints that need the live row
    (current name/role), e.g. after an account was removed.
    """
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        logger.info(f"Session for user {user_id} refers to a missing account")
        raise _credentials_exception()
    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Require a session whose live account has the admin role (403 otherwise)"""
    if current_user.role != "admin":
        logger.info(f"User {current_user.id} denied admin access")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=ADMIN_REQUIRED_MESSAGE,
        )
    return current_user
