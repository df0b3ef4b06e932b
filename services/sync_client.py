"""
Post-registration hook: push a freshly registered Auth0 user to the backend.

This is the Python side of the Auth0 "post user registration" action. It
builds the sync payload from the Auth0 user object and POSTs it to
/api/auth0/sync-user with the shared bearer token.

Registration must never fail because of the sync. UserSyncClient.sync()
turns every failure (transport error, non-2xx, unreadable body) into
SyncFailed instead of raising; on_post_user_registration() logs it and
returns. There is no retry or dead-letter queue.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from config.settings import Settings
from services.user_sync_service import SyncFailed, SyncOk, SyncResult

logger = logging.getLogger(__name__)

SYNC_PATH = "/api/auth0/sync-user"
ACTION_HEADER_VALUE = "post-user-registration"


def build_sync_payload(user: Dict[str, Any]) -> Dict[str, Any]:
    """Map an Auth0 user object (event.user) onto the sync endpoint body."""
    identities = user.get("identities") or [{}]
    identity = identities[0] or {}
    app_metadata = user.get("app_metadata") or {}
    user_metadata = user.get("user_metadata") or {}
    return {
        "auth0_id": user.get("user_id"),
        "email": user.get("email"),
        "name": user.get("name") or user.get("nickname") or user.get("email"),
        "email_verified": bool(user.get("email_verified", False)),
        "picture": user.get("picture"),
        "provider": identity.get("provider") or "auth0",
        "connection": identity.get("connection"),
        "created_at": user.get("created_at"),
        "user_type": app_metadata.get("user_type") or "passenger",
        "roles": app_metadata.get("roles") or ["passenger"],
        "phone_number": user_metadata.get("phone_number"),
        "address": user_metadata.get("address"),
        "birthday": user_metadata.get("birthday"),
        "gender": user_metadata.get("gender"),
    }


class UserSyncClient:
    def __init__(self, base_url: str, token: str, client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self._client = client
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[httpx.AsyncClient] = None) -> "UserSyncClient":
        return cls(settings.BACKEND_API_URL, settings.BACKEND_API_TOKEN, client=client)

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.token}",
            "X-Auth0-Action": ACTION_HEADER_VALUE,
        }

    async def _post(self, client: httpx.AsyncClient, payload: Dict[str, Any]) -> httpx.Response:
        return await client.post(f"{self.base_url}{SYNC_PATH}", json=payload, headers=self._headers())

    async def sync(self, user: Dict[str, Any]) -> SyncResult:
        payload = build_sync_payload(user)
        logger.info("Syncing user to database: %s", payload.get("auth0_id"))
        try:
            if self._client is not None:
                resp = await self._post(self._client, payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await self._post(client, payload)
        except httpx.HTTPError as e:
            return SyncFailed(reason=f"transport error: {e}")

        if not (200 <= resp.status_code < 300):
            return SyncFailed(reason=f"HTTP {resp.status_code}: {resp.text}")
        try:
            body = resp.json()
        except ValueError:
            return SyncFailed(reason="unreadable response body")
        if not isinstance(body, dict):
            return SyncFailed(reason="unexpected response body")
        if body.get("status") != "success":
            return SyncFailed(reason=body.get("message") or "sync rejected")
        return SyncOk(
            action=body.get("action", "created"),
            user_id=body.get("user_id"),
            auth0_id=body.get("auth0_id") or payload.get("auth0_id"),
        )


async def on_post_user_registration(user: Dict[str, Any], client: UserSyncClient) -> SyncResult:
    """Run the sync for a new registration; failures are logged, never raised."""
    result = await client.sync(user)
    if isinstance(result, SyncFailed):
        logger.error("Failed to sync user %s to database: %s", user.get("user_id"), result.reason)
    else:
        logger.info("User %s successfully synced to database (%s)", result.auth0_id, result.action)
    return result
