"""FastAPI auth dependencies — the request authorization gate.

Learn: These are used as Depends() in route handlers (or at router level)
to extract and validate the caller's identity from the request.

Two rejection paths, matching what existing clients expect:
- no token at all → 401 Unauthorized
- a token that fails verification → 403 Forbidden
"""

from typing import Optional

import structlog
from fastapi import Header, Request

from matrixstore.auth.jwt import verify_token
from matrixstore.errors import Forbidden, InvalidToken, Unauthorized

logger = structlog.get_logger()


class CurrentIdentity:
    """The authenticated caller. All matrix queries are scoped by user_id."""

    def __init__(self, user_id: int):
        self.user_id = user_id

    def __repr__(self) -> str:
        return f"CurrentIdentity(user_id={self.user_id})"


def _extract_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token part of `<scheme> <token>`, or None if absent."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) < 2:
        return None
    return parts[1]


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> CurrentIdentity:
    """Validate the bearer token and attach the identity to the request."""
    token = _extract_token(authorization)
    if token is None:
        raise Unauthorized()

    try:
        user_id = verify_token(token)
    except InvalidToken as e:
        logger.info("auth.token_rejected", reason=e.message)
        raise Forbidden() from e

    identity = CurrentIdentity(user_id=user_id)
    request.state.identity = identity
    return identity
