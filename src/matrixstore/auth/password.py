"""Password hashing utilities.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and is resistant to rainbow table attacks.
The work factor comes from MATRIXSTORE_BCRYPT_ROUNDS (12 by default,
roughly 100ms per hash on modern hardware).

Accounts created before hashing was introduced store the raw password in
`password_hash`. Those are still verified (constant-time compare) and
upgraded to bcrypt on the next successful login.
"""

import secrets

import bcrypt

from matrixstore.config import settings
from matrixstore.errors import HashingError


def hash_password(password: str) -> str:
    """Hash a password with bcrypt.

    Passwords are truncated to 72 bytes (bcrypt's limit).
    Raises HashingError if the digest cannot be computed.
    """
    pw_bytes = password.encode("utf-8")[:72]
    try:
        salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
        return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")
    except (ValueError, TypeError) as e:
        raise HashingError(cause=e) from e


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its stored digest.

    Supports bcrypt ($2b$...) and legacy plaintext rows.
    Use needs_upgrade() to check if a stored value should be re-hashed.
    """
    if _is_legacy_hash(password_hash):
        return secrets.compare_digest(
            password.encode("utf-8"), password_hash.encode("utf-8")
        )
    try:
        pw_bytes = password.encode("utf-8")[:72]
        return bcrypt.checkpw(pw_bytes, password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def needs_upgrade(password_hash: str) -> bool:
    """Check if a stored password should be upgraded to bcrypt."""
    return _is_legacy_hash(password_hash)


def _is_legacy_hash(password_hash: str) -> bool:
    return not password_hash.startswith("$2")
