# api/routes_auth0.py
"""
Inbound user sync, called by the Auth0 post-registration Action and by the
mobile app after login. Responses use the flat {"status", "message"} shape
those clients already parse, not the API envelope.
"""
import json
import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import sync_request_source
from core.db import get_db_session
from services.user_sync_service import SyncOk, UserSyncService, generate_auth0_id

logger = logging.getLogger(__name__)

router = APIRouter()


def sync_error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "error", "message": message})


@router.options("/sync-user")
async def sync_user_preflight():
    return Response(status_code=200)


@router.post("/sync-user")
async def sync_user(
    request: Request,
    # resolved in order: the caller is authenticated before a connection is opened
    source: str = Depends(sync_request_source),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        payload = json.loads(await request.body())
    except ValueError:
        return sync_error(400, "Invalid JSON input")
    if not isinstance(payload, dict):
        return sync_error(400, "Invalid JSON input")

    email = payload.get("email")
    if not email or not isinstance(email, str):
        return sync_error(400, "Missing required field: email")
    auth0_id = payload.get("auth0_id")
    if auth0_id is not None and not isinstance(auth0_id, str):
        return sync_error(400, "Invalid field: auth0_id")
    if not auth0_id:
        payload["auth0_id"] = generate_auth0_id(email)
        logger.info("Generated auth0_id %s for %s", payload["auth0_id"], email)

    result = await UserSyncService(session).sync_user(payload)
    if not isinstance(result, SyncOk):
        logger.error("User sync failed (%s) for %s: %s", source, payload["auth0_id"], result.reason)
        return sync_error(500, "User sync failed")

    return {
        "status": "success",
        "message": f"User {result.action}",
        "action": result.action,
        "user_id": result.user_id,
        "auth0_id": result.auth0_id,
    }
