"""
Jeepney fleet CRUD with MySQL backend.

Rules:
- jeepney_number and plate_number are unique and never blank
- a route, when given, must exist
- a driver may be assigned to only one active jeepney at a time
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from core.errors import ConflictError, FormValidationError, NotFoundError
from models.db_models import Jeepney, Route, User
from services.validation import blank_field_errors

logger = logging.getLogger(__name__)

UPDATE_REQUIRED_FIELDS = ("plate_number", "capacity", "status")


def _strip_names(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v.strip() if isinstance(v, str) else v for k, v in data.items()}


def driver_display_name(driver: Optional[User]) -> Optional[str]:
    if driver is None:
        return None
    full = " ".join(p for p in (driver.first_name, driver.last_name) if p)
    return driver.name or full or driver.username


class JeepneyDBService:
    """DB-backed jeepney service using async SQLAlchemy."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_jeepney(self, jeepney_id: int) -> Optional[Jeepney]:
        result = await self.session.execute(select(Jeepney).where(Jeepney.id == jeepney_id))
        return result.unique().scalar_one_or_none()

    async def list_jeepneys(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Dict[str, Any]], int]:
        conditions = []
        if status:
            conditions.append(Jeepney.status == status)
        if search:
            like = f"%{search.strip()}%"
            conditions.append(or_(Jeepney.jeepney_number.ilike(like), Jeepney.plate_number.ilike(like)))

        total = (await self.session.execute(select(func.count(Jeepney.id)).where(*conditions))).scalar_one()
        stmt = (
            select(Jeepney)
            .where(*conditions)
            .order_by(Jeepney.created_at.desc(), Jeepney.id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        jeepneys = (await self.session.execute(stmt)).unique().scalars().all()
        return [self.to_dict(j) for j in jeepneys], total

    async def _check_route(self, route_id: Optional[int]) -> None:
        if route_id is None:
            return
        if not (await self.session.execute(select(Route.id).where(Route.id == route_id))).first():
            raise FormValidationError({"route_id": "Route not found"})

    async def _check_driver(self, driver_id: Optional[int], status: str, exclude_id: Optional[int] = None) -> None:
        if driver_id is None:
            return
        driver = (await self.session.execute(select(User).where(User.id == driver_id))).unique().scalar_one_or_none()
        if not driver or driver.user_type != "driver":
            raise FormValidationError({"driver_id": "Driver not found"})
        if status != "active":
            return
        stmt = (
            select(Jeepney.jeepney_number)
            .where(Jeepney.driver_id == driver_id)
            .where(Jeepney.status == "active")
        )
        if exclude_id:
            stmt = stmt.where(Jeepney.id != exclude_id)
        existing = (await self.session.execute(stmt)).first()
        if existing:
            raise ConflictError(f"Driver is already assigned to active jeepney {existing[0]}")

    async def _check_unique(self, jeepney_number: Optional[str], plate_number: Optional[str], exclude_id: Optional[int] = None):
        for column, value, label in (
            (Jeepney.jeepney_number, jeepney_number, "Jeepney number"),
            (Jeepney.plate_number, plate_number, "Plate number"),
        ):
            if not value:
                continue
            stmt = select(Jeepney.id).where(column == value)
            if exclude_id:
                stmt = stmt.where(Jeepney.id != exclude_id)
            if (await self.session.execute(stmt)).first():
                raise ConflictError(f"{label} already exists")

    async def create_jeepney(self, data: Dict[str, Any]) -> Dict[str, Any]:
        data = _strip_names(data)
        errors = blank_field_errors(data, ("jeepney_number", "plate_number"))
        if errors:
            raise FormValidationError(errors)
        await self._check_unique(data["jeepney_number"], data["plate_number"])
        await self._check_route(data.get("route_id"))
        await self._check_driver(data.get("driver_id"), data.get("status", "active"))

        jeepney = Jeepney(**data)
        self.session.add(jeepney)
        await self._commit("create_jeepney")
        logger.info("Created jeepney %s (%s)", jeepney.jeepney_number, jeepney.plate_number)
        self.session.expunge(jeepney)
        return self.to_dict(await self.get_jeepney(jeepney.id))

    async def update_jeepney(self, jeepney_id: int, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        jeepney = await self.get_jeepney(jeepney_id)
        if not jeepney:
            return None
        data = _strip_names(data)
        errors = blank_field_errors(data, UPDATE_REQUIRED_FIELDS)
        if errors:
            raise FormValidationError(errors)
        await self._check_unique(None, data.get("plate_number"), exclude_id=jeepney_id)
        if "route_id" in data:
            await self._check_route(data["route_id"])
        driver_id = data["driver_id"] if "driver_id" in data else jeepney.driver_id
        status = data.get("status") or jeepney.status
        await self._check_driver(driver_id, status, exclude_id=jeepney_id)

        for key, value in data.items():
            setattr(jeepney, key, value)
        jeepney.updated_at = datetime.utcnow()
        await self._commit("update_jeepney")
        self.session.expunge(jeepney)
        return self.to_dict(await self.get_jeepney(jeepney_id))

    async def delete_jeepney(self, jeepney_id: int) -> bool:
        jeepney = await self.get_jeepney(jeepney_id)
        if not jeepney:
            return False
        await self.session.delete(jeepney)
        await self._commit("delete_jeepney")
        logger.info("Deleted jeepney id=%s", jeepney_id)
        return True

    async def unassign_driver(self, jeepney_id: int) -> Optional[Dict[str, Any]]:
        jeepney = await self.get_jeepney(jeepney_id)
        if not jeepney:
            return None
        if jeepney.driver_id is None:
            raise FormValidationError({"driver_id": "No driver assigned to this jeepney"})
        unassigned = {
            "driver_id": jeepney.driver_id,
            "driver_name": driver_display_name(jeepney.driver),
            "jeepney_number": jeepney.jeepney_number,
        }
        jeepney.driver_id = None
        jeepney.updated_at = datetime.utcnow()
        await self._commit("unassign_driver")
        logger.info("Unassigned driver %s from jeepney %s", unassigned["driver_id"], jeepney.jeepney_number)
        return unassigned

    async def reassign_driver(self, from_jeepney_id: int, to_jeepney_id: int, driver_id: int) -> Dict[str, Any]:
        """Move a driver between jeepneys; both rows change in one commit."""
        source = await self.get_jeepney(from_jeepney_id)
        if not source:
            raise NotFoundError("Source jeepney not found")
        if source.driver_id != driver_id:
            raise FormValidationError({"driver_id": "Driver is not assigned to the source jeepney"})
        target = await self.get_jeepney(to_jeepney_id)
        if not target:
            raise NotFoundError("Destination jeepney not found")
        if target.driver_id is not None:
            raise ConflictError("Destination jeepney already has a driver assigned")

        source.driver_id = None
        target.driver_id = driver_id
        now = datetime.utcnow()
        source.updated_at = target.updated_at = now
        await self._commit("reassign_driver")
        logger.info("Reassigned driver %s: %s -> %s", driver_id, source.jeepney_number, target.jeepney_number)
        return {
            "driver_id": driver_id,
            "from_jeepney": source.jeepney_number,
            "to_jeepney": target.jeepney_number,
        }

    async def _commit(self, op: str) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("DB %s failed: %s", op, e)
            raise

    @staticmethod
    def to_dict(jeepney: Jeepney) -> Dict[str, Any]:
        """Convert Jeepney ORM model to dict."""
        return {
            "id": jeepney.id,
            "jeepney_number": jeepney.jeepney_number,
            "plate_number": jeepney.plate_number,
            "model": jeepney.model,
            "capacity": jeepney.capacity,
            "route_id": jeepney.route_id,
            "route_name": jeepney.route.route_name if jeepney.route else None,
            "driver_id": jeepney.driver_id,
            "driver_name": driver_display_name(jeepney.driver),
            "status": jeepney.status,
            "created_at": jeepney.created_at.isoformat() if jeepney.created_at else None,
            "updated_at": jeepney.updated_at.isoformat() if jeepney.updated_at else None,
        }
