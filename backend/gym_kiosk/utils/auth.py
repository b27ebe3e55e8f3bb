from fastapi import Header, HTTPException
from typing import Optional
import hmac
import logging

from gym_kiosk.utils.config import settings

logger = logging.getLogger(__name__)


async def verify_token(authorization: Optional[str] = Header(None)) -> str:
    """Check the bearer token sent by the admin dashboard."""
    if not authorization:
        raise HTTPException(
            status_code=401,
            detail="Authorization header required"
        )

    try:
        scheme, token = authorization.split()
    except ValueError:
        raise HTTPException(
            status_code=401,
            detail="Invalid authorization header format"
        )

    if scheme.lower() != 'bearer':
        raise HTTPException(
            status_code=401,
            detail="Invalid authentication scheme"
        )

    if not settings.API_TOKEN:
        logger.error("API_TOKEN is not configured, rejecting admin request")
        raise HTTPException(
            status_code=401,
            detail="Token verification failed"
        )

    if not hmac.compare_digest(token, settings.API_TOKEN):
        raise HTTPException(
            status_code=401,
            detail="Invalid token"
        )

    return "admin"
