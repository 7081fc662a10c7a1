"""
Authorization gate for protected routes.

Two FastAPI dependencies form the gate:

- ``authenticate`` verifies the bearer token (401 on failure)
- ``authorize_admin`` depends on ``authenticate`` and requires the
  administrator role (403 on failure)

Because ``authorize_admin`` declares ``authenticate`` as its own dependency,
a request without a valid token is always rejected with 401 before the role
is inspected, and neither stage lets the route handler run on rejection.
"""

from typing import Optional

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from catalog.errors import AuthenticationError, AuthorizationError
from catalog.models import Role

from .security import TokenClaims
from .services import ServiceContainer, get_services

logger = structlog.get_logger(__name__)

# auto_error=False so a missing header yields our 401 instead of FastAPI's 403
security = HTTPBearer(auto_error=False)


async def authenticate(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    services: ServiceContainer = Depends(get_services)
) -> TokenClaims:
    """
    Verify the bearer token on the request.

    Returns:
        Decoded token claims

    Raises:
        AuthenticationError: Token missing, malformed, badly signed or expired
    """
    if credentials is None or not credentials.credentials:
        logger.info("Missing bearer token", path=request.url.path)
        raise AuthenticationError()

    claims = services.tokens.verify_token(credentials.credentials)
    if claims is None:
        logger.warning("Invalid bearer token", path=request.url.path)
        raise AuthenticationError()

    request.state.claims = claims
    return claims


async def authorize_admin(claims: TokenClaims = Depends(authenticate)) -> TokenClaims:
    """
    Require the administrator role.

    Raises:
        AuthorizationError: Authenticated, but not an administrator
    """
    if claims.role is not Role.ADMINISTRATOR:
        logger.warning("Non-admin request to admin route", subject_id=claims.subject_id)
        raise AuthorizationError()
    return claims
