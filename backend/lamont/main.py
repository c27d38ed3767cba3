import logging
import sys
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from lamont.core.config import settings
from lamont.core.database import engine, Base
from lamont.core.errors import register_exception_handlers
from lamont.core.rate_limit import RegistrationRateLimiter
from lamont.core.scheduler import start_scheduler, stop_scheduler
from lamont.core.tokens import build_token_service
from lamont.api.routes import auth, user, users, articles
from lamont.api.routes import settings as settings_routes
# Imported for their side effect of registering tables on Base.metadata
from lamont.models import article as _article_model, settings as _settings_model, user as _user_model  # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage app lifecycle events.

    Startup: create missing tables, start the rate-limit purge job
    Shutdown: stop background scheduler
    """
    # In production, use migrations instead of create_all
    Base.metadata.create_all(bind=engine)
    start_scheduler(app.state.registration_limiter)
    yield
    stop_scheduler()


app = FastAPI(
    title="Lamont.ai API",
    description="Accounts, onboarding and content for Lamont.ai",
    version="1.0.0",
    lifespan=lifespan
)

# Process-wide collaborators, reached through lamont.api.dependencies
# A restart (or a new signing key) drops every rate-limit window and session
app.state.token_service = build_token_service(settings)
app.state.registration_limiter = RegistrationRateLimiter(
    limit=settings.REGISTRATION_RATE_LIMIT,
    window_seconds=settings.REGISTRATION_RATE_WINDOW_SECONDS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,  # Session cookie must be sent cross-origin
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# All routes are prefixed with /api for consistency
app.include_router(auth.router, prefix="/api")
app.include_router(user.router, prefix="/api")
app.include_router(settings_routes.router, prefix="/api")
app.include_router(articles.router, prefix="/api")
app.include_router(users.router, prefix="/api")

logger.info(f"Token backend: {settings.TOKEN_BACKEND}")


@app.get("/")
async def root():
    """Root endpoint - API information"""
    return {"message": "Lamont.ai API", "version": "1.0.0"}


@app.get("/health")
async def health():
    """Health check endpoint - used by monitoring/deployment tools"""
    return {"status": "healthy"}
