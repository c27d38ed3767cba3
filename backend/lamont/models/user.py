import uuid
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from lamont.core.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """
    User model representing application users.

    Stores authentication credentials and profile information.
    Passwords are stored as bcrypt hashes (never plaintext).
    """
    __tablename__ = "users"

    # Opaque identifier - also carried in the session token's sub claim
    id = Column(String(36), primary_key=True, default=_new_id)
    # Always stored lower-cased so the unique index is case-insensitive
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False, default="user")  # "user" or "admin"
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
