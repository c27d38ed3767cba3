from passlib.context import CryptContext
from lamont.core.config import settings

# CryptContext handles password hashing using bcrypt
# bcrypt__rounds pins the cost factor so every stored digest is comparable
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash using constant-time comparison"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # Unknown or corrupted digest - treat like a mismatch
        return False


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt"""
    # bcrypt generates a salt per call and embeds it in the digest
    return pwd_context.hash(password)


def dummy_verify() -> None:
    """Spend the same time as a real verification when no user matched"""
    pwd_context.dummy_verify()
