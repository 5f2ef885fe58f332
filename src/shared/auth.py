"""Bearer-token identity.

Tokens are HS256 JWTs issued by the storefront's auth service and carry the
upstream customer id as ``userId``. Cart mutation paths treat a bad token as
"guest"; account paths reject it with 401.
"""

import jwt
import structlog
from fastapi import Depends, Header

from shared.components import Components, get_components
from shared.config import AuthSettings
from shared.errors import AuthenticationError

logger = structlog.get_logger(__name__)


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def decode_customer_id(token: str, settings: AuthSettings) -> int:
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError("Invalid or expired token") from exc

    customer_id = claims.get("userId")
    try:
        return int(customer_id)
    except (TypeError, ValueError) as exc:
        raise AuthenticationError("Token does not identify a customer") from exc


def resolve_customer_id(authorization: str | None, settings: AuthSettings) -> int | None:
    """Return the customer id for a valid token, ``None`` for anything else."""
    token = bearer_token(authorization)
    if token is None:
        return None
    try:
        return decode_customer_id(token, settings)
    except AuthenticationError as exc:
        logger.info("Bearer token rejected, proceeding as guest", reason=exc.message)
        return None


async def optional_customer_id(
    authorization: str | None = Header(default=None),
    components: Components = Depends(get_components),
) -> int | None:
    return resolve_customer_id(authorization, components.settings.auth)


async def required_customer_id(
    authorization: str | None = Header(default=None),
    components: Components = Depends(get_components),
) -> int:
    token = bearer_token(authorization)
    if token is None:
        raise AuthenticationError("Missing Authorization header")
    return decode_customer_id(token, components.settings.auth)
