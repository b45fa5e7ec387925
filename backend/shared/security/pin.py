"""
PIN hashing utilities using bcrypt.

Staff PINs are short numeric codes, so they are never stored or logged in
plain text; only bcrypt hashes are persisted.
"""

import bcrypt

from shared.config.logging import get_logger
from shared.config.settings import settings

logger = get_logger(__name__)

_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def hash_pin(pin: str) -> str:
    """
    Hash a staff PIN using bcrypt.

    Example:
        hashed = hash_pin("1234")
        # Returns something like: $2b$12$...
    """
    salt = bcrypt.gensalt(rounds=settings.pin_hash_rounds)
    return bcrypt.hashpw(pin.encode("utf-8"), salt).decode("utf-8")


def verify_pin(plain_pin: str, pin_hash: str | None) -> bool:
    """
    Verify a PIN against its stored hash.

    Non-bcrypt hashes are rejected outright (no plaintext PIN support).
    """
    if not pin_hash:
        return False
    if not pin_hash.startswith(_BCRYPT_PREFIXES):
        logger.warning("Rejected non-bcrypt PIN hash; stored PINs must be migrated")
        return False

    return bcrypt.checkpw(plain_pin.encode("utf-8"), pin_hash.encode("utf-8"))
