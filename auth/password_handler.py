import logging
import os

import bcrypt

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password.
MAX_PASSWORD_BYTES = 72
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))


def _password_bytes(password: str | bytes) -> bytes:
    return password if isinstance(password, bytes) else password.encode('utf-8')


def password_too_long(password: str | bytes) -> bool:
    return len(_password_bytes(password)) > MAX_PASSWORD_BYTES


def hash_password(password: str | bytes) -> str:
    """
    Hash a password with a fresh salt at BCRYPT_ROUNDS cost.

    Raises ValueError for passwords bcrypt would silently truncate.
    """
    if password_too_long(password):
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(password), salt).decode('utf-8')


def verify_password(plain_password: str, stored_hash: str | None) -> bool:
    """
    Check a login attempt. Accounts with no or an unreadable stored hash never match.
    """
    if not stored_hash or password_too_long(plain_password):
        return False
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), stored_hash.encode('utf-8'))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False
