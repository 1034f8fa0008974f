"""
Endpoint Dependencies

Shared dependencies for billing API endpoints.
"""

import hmac
import logging
from typing import Optional

import jwt
from fastapi import Depends, Header

from backend.core.conf import settings
from backend.src.billing.domain import AuthenticatedUser
from backend.src.billing.shared.exceptions import UnauthenticatedError

logger = logging.getLogger(__name__)


async def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization")
) -> AuthenticatedUser:
    """
    Verify the bearer token and return the caller.

    Tokens are issued by the auth provider and signed with AUTH_JWT_SECRET.
    This is a dependency that can be overridden in tests.
    """
    if not authorization:
        raise UnauthenticatedError("Missing authorization header")

    token = authorization
    if authorization.startswith("Bearer "):
        token = authorization[7:]

    if not settings.AUTH_JWT_SECRET:
        logger.error("[AUTH] AUTH_JWT_SECRET not configured")
        raise UnauthenticatedError("Auth not configured")

    try:
        decoded = jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=[settings.AUTH_JWT_ALGORITHM],
            audience=settings.AUTH_JWT_AUDIENCE,
        )
    except jwt.InvalidTokenError as e:
        logger.warning(f"[AUTH] Invalid token: {e}")
        raise UnauthenticatedError("Invalid token")

    user_id = decoded.get('sub')
    if not user_id:
        raise UnauthenticatedError("Invalid token")

    return AuthenticatedUser(id=user_id, email=decoded.get('email'), access_token=token)


async def get_current_user_id(user: AuthenticatedUser = Depends(get_current_user)) -> str:
    """Narrow the caller to their id."""
    return user.id


async def verify_reconcile_token(
    token: Optional[str] = Header(None, alias="X-Reconcile-Token")
) -> None:
    """Check the scheduler's shared token for the reconciliation sweep."""
    if not settings.BILLING_RECONCILE_TOKEN:
        logger.error("[AUTH] BILLING_RECONCILE_TOKEN not configured")
        raise UnauthenticatedError("Reconciliation not configured")

    if not token or not hmac.compare_digest(token, settings.BILLING_RECONCILE_TOKEN):
        logger.warning("[AUTH] Invalid reconciliation token")
        raise UnauthenticatedError("Invalid token")
