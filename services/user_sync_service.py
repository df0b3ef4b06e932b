"""
Mirror Auth0 users into the users table.

Called by POST /api/auth0/sync-user (the Auth0 post-registration action and
the mobile app's frontend-triggered resync). One row per auth0_id: insert on
first sight, update afterwards, so a redelivered registration event is
harmless.

sync_user() never raises for storage problems. It returns SyncOk or
SyncFailed and the caller decides what to do (the HTTP route answers 500,
the registration hook logs and carries on).
"""
import hashlib
import json
import logging
import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.db_models import User

logger = logging.getLogger(__name__)

ADDRESS_FIELDS = ("house_number", "street_name", "barangay", "city_municipality", "province", "postal_code")
BIRTHDAY_FORMATS = ("%B %d, %Y", "%b %d, %Y", "%Y-%m-%d")


@dataclass(frozen=True)
class SyncOk:
    action: str  # "created" | "updated"
    user_id: Optional[int]
    auth0_id: str


@dataclass(frozen=True)
class SyncFailed:
    reason: str


SyncResult = Union[SyncOk, SyncFailed]


def generate_auth0_id(email: str, now: Optional[float] = None) -> str:
    """Fallback identifier when the caller did not send one."""
    digest = hashlib.md5(email.encode("utf-8")).hexdigest()
    return f"auth0|{digest}|{int(now if now is not None else time.time())}"


def parse_birthday(value: Any) -> Optional[date]:
    """Accept "January 5, 1990", "Jan 5, 1990" or "1990-01-05"; anything else -> None."""
    if not value or not isinstance(value, str):
        return None
    for fmt in BIRTHDAY_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).date()
        except ValueError:
            continue
    return None


def parse_created_at(value: Any) -> Optional[datetime]:
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed.replace(tzinfo=None)


def extract_address(payload: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """Address may come as an object, a JSON string, or flat top-level keys."""
    address = payload.get("address") or {}
    if isinstance(address, str):
        try:
            address = json.loads(address)
        except json.JSONDecodeError:
            address = {}
    if not isinstance(address, dict):
        address = {}
    return {f: address.get(f) or payload.get(f) for f in ADDRESS_FIELDS}


def user_columns(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Map a sync payload onto users columns (auth0_id excluded)."""
    roles = payload.get("roles") or ["passenger"]
    if not isinstance(roles, list):
        roles = [roles]
    name = payload.get("name") or ""
    columns = {
        "email": payload["email"],
        "email_verified": bool(payload.get("email_verified")),
        "name": name,
        "first_name": payload.get("first_name"),
        "last_name": payload.get("last_name"),
        "nickname": payload.get("nickname") or name,
        "picture": payload.get("picture"),
        "provider": payload.get("provider") or "auth0",
        "connection": payload.get("connection"),
        "user_type": payload.get("user_type") or "passenger",
        "roles": roles,
        "phone_number": payload.get("phone_number"),
        "birthday": parse_birthday(payload.get("birthday")),
        "gender": payload.get("gender"),
    }
    columns.update(extract_address(payload))
    return columns


class UserSyncService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_auth0_id(self, auth0_id: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.auth0_id == auth0_id))
        return result.scalar_one_or_none()

    async def sync_user(self, payload: Dict[str, Any]) -> SyncResult:
        """
        Upsert one user keyed by payload["auth0_id"].

        The payload must already carry "email" and "auth0_id" (the route fills
        in a generated auth0_id when it is missing).
        """
        auth0_id = payload["auth0_id"]
        try:
            return await self._upsert(auth0_id, payload)
        except IntegrityError as ie:
            # Another delivery inserted the same auth0_id between our SELECT and INSERT.
            await self.session.rollback()
            logger.warning("Concurrent insert for %s (%s); retrying as update", auth0_id, ie)
            try:
                return await self._upsert(auth0_id, payload)
            except SQLAlchemyError as e:
                await self.session.rollback()
                logger.error("User sync retry failed for %s: %s", auth0_id, e)
                return SyncFailed(reason=str(e))
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("User sync failed for %s: %s", auth0_id, e)
            return SyncFailed(reason=str(e))

    async def _upsert(self, auth0_id: str, payload: Dict[str, Any]) -> SyncOk:
        columns = user_columns(payload)
        user = await self.get_by_auth0_id(auth0_id)
        if user:
            for key, value in columns.items():
                setattr(user, key, value)
            user.updated_at = datetime.utcnow()
            action = "updated"
        else:
            created_at = parse_created_at(payload.get("created_at"))
            user = User(auth0_id=auth0_id, **columns)
            if created_at:
                user.created_at = created_at
            self.session.add(user)
            action = "created"
        await self.session.commit()
        logger.info("User %s %s (id=%s)", auth0_id, action, user.id)
        return SyncOk(action=action, user_id=user.id, auth0_id=auth0_id)
