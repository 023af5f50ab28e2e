"""Password hashing for admin accounts.

Hashes are bcrypt via passlib. The work factor comes from BCRYPT_ROUNDS;
hashes made with a lower factor are reported as stale on login so the
caller can store a fresh one.
"""

from typing import Optional, Tuple

from passlib.context import CryptContext

from ..config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__default_rounds=settings.bcrypt_rounds,
    bcrypt__min_rounds=settings.bcrypt_rounds,
)


def get_password_hash(password: str) -> str:
    """Hash a plain text password."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain text password against a stored hash."""
    return pwd_context.verify(plain_password, hashed_password)


def verify_and_update_password(
    plain_password: str,
    hashed_password: str,
) -> Tuple[bool, Optional[str]]:
    """
    Verify a password and rehash it when the stored hash is outdated.

    Returns:
        (valid, new_hash) where new_hash is None unless the password was
        valid and the stored hash should be replaced
    """
    return pwd_context.verify_and_update(plain_password, hashed_password)
