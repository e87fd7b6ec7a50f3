"""bcrypt hashing for staff passwords."""

import bcrypt

from criollo_shared.config.logging import get_logger

logger = get_logger(__name__)

BCRYPT_ROUNDS = 12
_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """False for a wrong password and for any stored value that is not a bcrypt hash."""
    if not hashed_password or not hashed_password.startswith(_BCRYPT_PREFIXES):
        logger.warning("Non-bcrypt password hash found during verification")
        return False

    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


def needs_rehash(hashed_password: str) -> bool:
    """True when the stored hash uses a different scheme or cost factor."""
    if not hashed_password.startswith(_BCRYPT_PREFIXES):
        return True
    try:
        rounds = int(hashed_password.split("$")[2])
    except (IndexError, ValueError):
        return True
    return rounds != BCRYPT_ROUNDS
