import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import EmailStr, Field, ValidationInfo, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from lamont.api.dependencies import (
    get_current_user,
    get_current_user_id,
    get_registration_limiter,
    get_token_service,
)
from lamont.api.schemas import CamelModel
from lamont.core.config import settings
from lamont.core.database import get_db
from lamont.core.errors import DATABASE_ERROR_MESSAGE, INVALID_CREDENTIALS_MESSAGE
from lamont.core.rate_limit import RegistrationRateLimiter
from lamont.core.security import dummy_verify, get_password_hash, verify_password
from lamont.core.tokens import TokenService
from lamont.models.settings import UserSettings
from lamont.models.user import User
from lamont.services.onboarding import next_step, onboarding_status, redirect_path, OnboardingStep
from lamont.services.session import clear_session_cookie, set_session_cookie
from lamont.services.settings_service import settings_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

EMAIL_TAKEN_MESSAGE = "User with this email already exists"
RATE_LIMITED_MESSAGE = "Too many registration attempts from this IP address. Please try again later."


class RegisterRequest(CamelModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    confirm_password: str

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, value: str, info: ValidationInfo) -> str:
        if "password" in info.data and value != info.data["password"]:
            raise ValueError("Passwords must match")
        return value


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserResponse(CamelModel):
    id: str
    email: str
    name: Optional[str]
    role: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AuthResponse(CamelModel):
    user: UserResponse
    token: str


class OnboardingStatusResponse(CamelModel):
    redirect_to: str
    next_step: OnboardingStep
    onboarding_complete: bool
    # Keys are already camelCase, see services.onboarding.onboarding_status
    onboarding_status: dict[str, bool]


def get_client_ip(request: Request, trusted_proxy_count: Optional[int] = None) -> str:
    """
    Client address used to key the registration limiter.

    Defaults to the socket peer. With ``trusted_proxy_count`` proxies in front
    of the app, the address is the X-Forwarded-For entry appended by the
    outermost of them; entries to its left are client-supplied and ignored.
    """
    if trusted_proxy_count is None:
        trusted_proxy_count = settings.TRUSTED_PROXY_COUNT

    peer = request.client.host if request.client and request.client.host else "127.0.0.1"
    if trusted_proxy_count <= 0:
        return peer

    hops = [hop.strip() for hop in request.headers.get("x-forwarded-for", "").split(",") if hop.strip()]
    if len(hops) < trusted_proxy_count:
        return peer
    return hops[-trusted_proxy_count]


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: RegisterRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
    limiter: RegistrationRateLimiter = Depends(get_registration_limiter),
):
    """Create an account and start a session for it"""
    email = user_data.email.lower()

    if db.query(User).filter(User.email == email).first():
        logger.info("Registration rejected: email already registered")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=EMAIL_TAKEN_MESSAGE)

    client_ip = get_client_ip(request)
    decision = limiter.hit(client_ip)
    if not decision.allowed:
        logger.warning(f"Registration rate limit exceeded for {client_ip}")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=RATE_LIMITED_MESSAGE,
            headers={"Retry-After": str(decision.retry_after)},
        )

    # bcrypt is deliberately slow; keep it off the event loop
    hashed_password = await run_in_threadpool(get_password_hash, user_data.password)

    try:
        db_user = User(name=user_data.name, email=email, hashed_password=hashed_password, role="user")
        db.add(db_user)
        db.flush()
        # Settings row is created with the user so later onboarding writes only update it
        db.add(UserSettings(user_id=db_user.id))
        db.commit()
        db.refresh(db_user)
    except IntegrityError:
        # Two requests raced past the existence check; the unique index caught the second
        db.rollback()
        limiter.release(client_ip)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=EMAIL_TAKEN_MESSAGE)
    except SQLAlchemyError:
        db.rollback()
        limiter.release(client_ip)
        logger.exception("Registration transaction failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=DATABASE_ERROR_MESSAGE,
        )

    # Only mint a session once the account is durably stored
    token = token_service.issue(db_user.id, db_user.email, db_user.role)
    set_session_cookie(response, token, token_service.ttl_seconds)
    logger.info(f"Registered user {db_user.id}")

    return AuthResponse(user=UserResponse.model_validate(db_user), token=token)


@router.post("/login", response_model=AuthResponse)
async def login(
    credentials: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
):
    """Verify credentials and start a session"""
    user = db.query(User).filter(User.email == credentials.email.lower()).first()

    if user is None:
        # Same work and same answer as a wrong password, so emails cannot be enumerated
        await run_in_threadpool(dummy_verify)
        logger.info("Login failed: unknown email")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=INVALID_CREDENTIALS_MESSAGE,
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not await run_in_threadpool(verify_password, credentials.password, user.hashed_password):
        logger.info(f"Login failed: wrong password for user {user.id}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=INVALID_CREDENTIALS_MESSAGE,
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = token_service.issue(user.id, user.email, user.role)
    set_session_cookie(response, token, token_service.ttl_seconds)
    logger.info(f"User {user.id} logged in")

    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.post("/logout")
async def logout(response: Response):
    """Drop the session cookie. Tokens are not revoked server-side."""
    clear_session_cookie(response)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Session check - the signed-in user, or 401"""
    return current_user


@router.get("/onboarding-status", response_model=OnboardingStatusResponse)
async def get_onboarding_status(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Where the user should go next, recomputed from their settings"""
    user_settings = settings_service.get_settings(user_id, db)
    step = next_step(user_settings)
    return {
        "redirect_to": redirect_path(step),
        "next_step": step,
        "onboarding_complete": step == OnboardingStep.DASHBOARD,
        "onboarding_status": onboarding_status(user_settings),
    }


@router.get("/check-onboarding")
async def check_onboarding(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Older boolean form of onboarding-status"""
    user_settings = settings_service.get_settings(user_id, db)
    return {"onboarded": next_step(user_settings) == OnboardingStep.DASHBOARD}
