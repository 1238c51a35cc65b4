"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
Access tokens live for one hour (MATRIXSTORE_ACCESS_TOKEN_EXPIRE_MINUTES).
There is no refresh token and no revocation list: a token is valid until
its `exp` claim passes.

The token carries only the user id (`sub`), never the user record.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from matrixstore.config import settings
from matrixstore.errors import InvalidToken

TOKEN_TYPE = "access"


def create_access_token(user_id: int, issued_at: Optional[datetime] = None) -> str:
    """Create a signed access token for `user_id`.

    `issued_at` defaults to now; expiry is issued_at + the configured lifetime.
    """
    issued_at = issued_at or datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "type": TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=settings.access_token_expire_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> int:
    """Verify a token and return the user id it was issued for.

    Raises InvalidToken on a bad signature, a malformed token, missing
    claims, a non-access token, or once the expiry instant is reached.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp", "iat"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise InvalidToken("Token has expired", cause=e) from e
    except jwt.InvalidTokenError as e:
        raise InvalidToken(cause=e) from e

    if payload.get("type") != TOKEN_TYPE:
        raise InvalidToken("Not an access token")
    try:
        return int(payload["sub"])
    except (TypeError, ValueError) as e:
        raise InvalidToken(cause=e) from e
