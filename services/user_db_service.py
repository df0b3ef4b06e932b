"""
DB-backed user administration.

Key methods:
- list_users(...): filtered, paginated listing for the admin panel
- create_user / update_user: server-side form validation, uniqueness checks
- set_discount_status / set_verified: admin approval actions
- submit_discount_application / discount_status: passenger discount flow

Users are never hard-deleted.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import bcrypt
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from core.errors import ConflictError, FormValidationError
from models.db_models import User
from services.validation import (
    DISCOUNT_TYPES,
    blank_field_errors,
    normalize_phone,
    parse_iso_date,
    validate_user_form,
)

logger = logging.getLogger(__name__)

# Percentage granted once an application is approved
DISCOUNT_PERCENTAGES = {
    "Student": 20,
    "Senior Citizen": 30,
    "PWD": 20,
    "Pregnant": 20,
}
DEFAULT_DISCOUNT_PERCENTAGE = 20

UPDATE_REQUIRED_FIELDS = ("email", "user_type")
DRIVER_ONLY_FIELDS = ("drivers_license_path",)
PASSENGER_ONLY_FIELDS = ("discount_type", "discount_applied", "discount_file_path")


def discount_percentage(discount_type: Optional[str]) -> int:
    return DISCOUNT_PERCENTAGES.get(discount_type or "", DEFAULT_DISCOUNT_PERCENTAGE)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def clean_form_for_user_type(data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop fields that do not apply to the user type; mark applied discounts pending."""
    cleaned = dict(data)
    user_type = cleaned.get("user_type") or "passenger"
    if user_type == "driver":
        for f in PASSENGER_ONLY_FIELDS:
            cleaned.pop(f, None)
    elif user_type == "passenger":
        for f in DRIVER_ONLY_FIELDS:
            cleaned.pop(f, None)
    if not cleaned.get("password"):
        cleaned.pop("password", None)
    if cleaned.get("discount_applied") and not cleaned.get("discount_status"):
        cleaned["discount_status"] = "pending"
    return cleaned


class UserDBService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user(self, user_id: int) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_auth0_id(self, auth0_id: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.auth0_id == auth0_id))
        return result.scalar_one_or_none()

    @staticmethod
    def _filters(search: Optional[str], user_type: Optional[str], discount_status: Optional[str]) -> list:
        conditions = []
        if user_type:
            conditions.append(User.user_type == user_type)
        if discount_status == "pending":
            conditions += [User.discount_type.is_not(None), User.discount_verified == False]  # noqa: E712
        elif discount_status == "approved":
            conditions += [User.discount_type.is_not(None), User.discount_verified == True]  # noqa: E712
        elif discount_status == "none":
            conditions.append(User.discount_type.is_(None))
        if search:
            like = f"%{search.strip()}%"
            conditions.append(or_(
                User.username.ilike(like),
                User.email.ilike(like),
                User.first_name.ilike(like),
                User.last_name.ilike(like),
                User.name.ilike(like),
            ))
        return conditions

    async def list_users(
        self,
        search: Optional[str] = None,
        user_type: Optional[str] = None,
        discount_status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Dict[str, Any]], int]:
        conditions = self._filters(search, user_type, discount_status)
        total = (await self.session.execute(
            select(func.count(User.id)).where(*conditions)
        )).scalar_one()
        stmt = (
            select(User)
            .where(*conditions)
            .order_by(User.created_at.desc(), User.id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        users = (await self.session.execute(stmt)).scalars().all()
        return [self.to_dict(u) for u in users], total

    async def _ensure_unique(self, username: Optional[str], email: Optional[str], exclude_id: Optional[int] = None):
        if username:
            stmt = select(User.id).where(User.username == username)
            if exclude_id:
                stmt = stmt.where(User.id != exclude_id)
            if (await self.session.execute(stmt)).first():
                raise ConflictError("Username already exists")
        if email:
            stmt = select(User.id).where(User.email == email)
            if exclude_id:
                stmt = stmt.where(User.id != exclude_id)
            if (await self.session.execute(stmt)).first():
                raise ConflictError("Email already exists")

    @staticmethod
    def _apply(user: User, data: Dict[str, Any]) -> None:
        for key, value in data.items():
            if key == "password":
                user.password_hash = hash_password(value)
            elif key == "birthday":
                user.birthday = parse_iso_date(value)
            elif key == "phone_number" and value:
                user.phone_number = normalize_phone(value)
            elif hasattr(User, key) and key not in ("id", "auth0_id", "created_at"):
                setattr(user, key, value)

    async def create_user(self, data: Dict[str, Any]) -> Dict[str, Any]:
        errors = validate_user_form(data, mode="create")
        if errors:
            raise FormValidationError(errors)
        data = clean_form_for_user_type(data)
        await self._ensure_unique(data.get("username"), data.get("email"))

        user = User(provider="admin", roles=[data.get("user_type") or "passenger"])
        self._apply(user, data)
        if not user.name:
            user.name = " ".join(p for p in (user.first_name, user.last_name) if p)
        self.session.add(user)
        await self._commit("create_user")
        logger.info("Admin created user id=%s username=%s", user.id, user.username)
        return self.to_dict(user)

    async def update_user(self, user_id: int, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        user = await self.get_user(user_id)
        if not user:
            return None
        merged_type = data.get("user_type") or user.user_type
        errors = blank_field_errors(data, UPDATE_REQUIRED_FIELDS)
        errors.update(validate_user_form({**data, "user_type": merged_type}, mode="update"))
        if errors:
            raise FormValidationError(errors)
        await self._ensure_unique(data.get("username"), data.get("email"), exclude_id=user_id)
        # an empty password field means "keep the current one"
        if "password" in data and not (data["password"] or "").strip():
            data = {k: v for k, v in data.items() if k != "password"}

        self._apply(user, data)
        user.updated_at = datetime.utcnow()
        await self._commit("update_user")
        return self.to_dict(user)

    async def set_discount_status(self, user_id: int, status: str, rejection_reason: Optional[str] = None) -> Optional[Dict[str, Any]]:
        user = await self.get_user(user_id)
        if not user:
            return None
        percentage = discount_percentage(user.discount_type)
        user.discount_status = status
        user.discount_verified = status == "approved"
        user.discount_amount = percentage if status == "approved" else None
        user.updated_at = datetime.utcnow()
        await self._commit("set_discount_status")
        if status == "rejected" and rejection_reason:
            logger.info("Discount rejected for user %s: %s", user_id, rejection_reason)
        return {
            "user_id": user.id,
            "discount_status": status,
            "discount_amount": float(user.discount_amount) if user.discount_amount is not None else None,
            "discount_verified": user.discount_verified,
            "discount_type": user.discount_type,
            "static_percentage": percentage,
        }

    async def set_verified(self, user_id: int, is_verified: bool) -> Optional[Dict[str, Any]]:
        user = await self.get_user(user_id)
        if not user:
            return None
        user.is_verified = is_verified
        if user.user_type == "driver":
            user.drivers_license_verified = is_verified
        user.updated_at = datetime.utcnow()
        await self._commit("set_verified")
        return self.to_dict(user)

    async def pending_discounts(self) -> List[Dict[str, Any]]:
        stmt = (
            select(User)
            .where(User.discount_applied == True)  # noqa: E712
            .where(User.discount_status == "pending")
            .order_by(User.created_at.asc(), User.id.asc())
        )
        users = (await self.session.execute(stmt)).scalars().all()
        return [self.to_dict(u) for u in users]

    async def submit_discount_application(
        self, auth0_id: str, discount_type: str, document_path: str, document_name: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        if discount_type not in DISCOUNT_TYPES:
            raise FormValidationError({"discount_type": "Discount type must be PWD, Senior Citizen, Student or Pregnant"})
        user = await self.get_by_auth0_id(auth0_id)
        if not user:
            return None
        if user.user_type != "passenger":
            raise FormValidationError({"user_type": "Only passengers can apply for a fare discount"})
        user.discount_type = discount_type
        user.discount_applied = True
        user.discount_status = "pending"
        user.discount_verified = False
        user.discount_amount = None
        user.discount_file_path = document_path
        user.discount_document_name = document_name
        user.updated_at = datetime.utcnow()
        await self._commit("submit_discount_application")
        return self.discount_state(user)

    async def discount_status(self, auth0_id: str) -> Optional[Dict[str, Any]]:
        user = await self.get_by_auth0_id(auth0_id)
        return self.discount_state(user) if user else None

    async def _commit(self, op: str) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("DB %s failed: %s", op, e)
            raise

    @staticmethod
    def discount_state(user: User) -> Dict[str, Any]:
        return {
            "discount_applied": bool(user.discount_applied),
            "discount_status": user.discount_status,
            "discount_type": user.discount_type,
            "discount_amount": float(user.discount_amount) if user.discount_amount is not None else None,
            "discount_file_path": user.discount_file_path,
            "discount_verified": bool(user.discount_verified),
        }

    @staticmethod
    def to_dict(user: User) -> Dict[str, Any]:
        """Convert User ORM model to dict (never exposes the password hash)."""
        return {
            "id": user.id,
            "auth0_id": user.auth0_id,
            "username": user.username,
            "email": user.email,
            "email_verified": bool(user.email_verified),
            "name": user.name,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "user_type": user.user_type,
            "roles": user.roles,
            "phone_number": user.phone_number,
            "house_number": user.house_number,
            "street_name": user.street_name,
            "barangay": user.barangay,
            "city_municipality": user.city_municipality,
            "province": user.province,
            "postal_code": user.postal_code,
            "birthday": user.birthday.isoformat() if user.birthday else None,
            "gender": user.gender,
            "is_verified": bool(user.is_verified),
            "drivers_license_path": user.drivers_license_path,
            "drivers_license_verified": bool(user.drivers_license_verified),
            **UserDBService.discount_state(user),
            "created_at": user.created_at.isoformat() if user.created_at else None,
            "updated_at": user.updated_at.isoformat() if user.updated_at else None,
        }
