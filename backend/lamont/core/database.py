from sqlalchemy import create_engine
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker
from lamont.core.config import settings


def _connect_args(url: str) -> dict:
    # SQLite connections are bound to their creating thread by default,
    # but FastAPI runs sync dependencies in a thread pool
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


# Create database engine - manages connection pool
engine = create_engine(settings.DATABASE_URL, connect_args=_connect_args(settings.DATABASE_URL))

# Create session factory - each request gets a new session
# autocommit=False: Changes require explicit commit (prevents accidental commits)
# autoflush=False: Don't auto-flush before queries
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for all database models
Base = declarative_base()


def get_db():
    """
    Dependency for getting database session.

    The session is closed after the request completes, even when the
    handler raises.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
