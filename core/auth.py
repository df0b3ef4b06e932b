import logging
import secrets
import time
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from config.settings import Settings
from core.container import ServiceContainer, get_container

logger = logging.getLogger(__name__)

# Define security scheme for Swagger UI (auto_error=False allows us to handle missing tokens gracefully)
security = HTTPBearer(auto_error=False)

ACTION_HEADER = "x-auth0-action"
USER_SYNC_HEADER = "x-user-sync"
ACTION_POST_REGISTRATION = "post-user-registration"
FRONTEND_TRIGGERED = "frontend-triggered"


class SyncAuthError(Exception):
    """The sync endpoint caller could not be authenticated."""


def _extract_token(header_val: Optional[str]) -> Optional[str]:
    """Helper to strip 'Bearer ' prefix; returns None for any other scheme."""
    if not header_val:
        return None
    hv = header_val.strip()
    if hv.lower().startswith("bearer "):
        return hv.split(None, 1)[1].strip() or None
    return None


def verify_sync_request(request: Request, settings: Settings) -> str:
    """
    Authenticate a call to the user-sync endpoint. Returns the caller kind.

    - Auth0 Action: X-Auth0-Action: post-user-registration plus
      Authorization: Bearer <BACKEND_API_TOKEN>.
    - Mobile app resync: X-User-Sync: frontend-triggered plus any bearer token.
    """
    auth_header = request.headers.get("authorization")
    token = _extract_token(auth_header)

    if request.headers.get(ACTION_HEADER) == ACTION_POST_REGISTRATION:
        expected = settings.BACKEND_API_TOKEN
        if not expected or not token or not secrets.compare_digest(token, expected):
            logger.warning("Sync rejected: invalid Auth0 Action token")
            raise SyncAuthError("Unauthorized - Invalid Auth0 Action token")
        return "auth0_action"

    if request.headers.get(USER_SYNC_HEADER) == FRONTEND_TRIGGERED:
        if not token:
            logger.warning("Sync rejected: frontend call without bearer token")
            raise SyncAuthError("Unauthorized - Missing or invalid token")
        return "frontend"

    logger.warning("Sync rejected: unknown request source")
    raise SyncAuthError("Unauthorized - Invalid request source")


async def sync_request_source(request: Request, container: ServiceContainer = Depends(get_container)) -> str:
    """Dependency form of verify_sync_request; SyncAuthError is answered with a flat 401."""
    return verify_sync_request(request, container.settings)


def issue_token(user_id: str, role: str, secret: str, expires_in: int = 3600) -> str:
    """Mint an HS256 bearer token (admin tooling and tests)."""
    now = int(time.time())
    return jwt.encode({"sub": user_id, "role": role, "iat": now, "exp": now + expires_in}, secret, algorithm="HS256")


async def get_current_user(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(security),
    container: ServiceContainer = Depends(get_container),
):
    """
    Async JWT auth dependency.
    Returns {"user_id": <sub>, "role": <role>}.
    """
    token_value = creds.credentials if creds and creds.credentials else None
    if not token_value:
        token_value = _extract_token(request.headers.get("authorization"))

    if not token_value:
        logger.warning("Authentication failed: no bearer token")
        raise HTTPException(status_code=401, detail="Missing Authorization token")

    try:
        payload = jwt.decode(token_value, container.settings.JWT_SECRET, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        logger.warning("Token expired")
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        logger.warning("Token decode error: %s", e)
        raise HTTPException(status_code=401, detail="Invalid token")

    if not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid token")
    return {"user_id": payload["sub"], "role": payload.get("role", "passenger")}


async def require_admin(user: dict = Depends(get_current_user)):
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
