"""
Read-only driver queries for the admin jeepney screens.

Drivers are users with user_type == "driver". Search and availability only
consider verified drivers, since only those may be put on a jeepney.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.db_models import Jeepney, User
from services.jeepney_db_service import driver_display_name

logger = logging.getLogger(__name__)

DRIVER_ORDER = (User.first_name, User.last_name, User.id)


class DriverDBService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_driver(self, driver_id: int) -> Optional[User]:
        stmt = select(User).where(User.id == driver_id, User.user_type == "driver")
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def list_drivers(self, page: int = 1, limit: int = 10) -> Tuple[List[Dict[str, Any]], int]:
        is_driver = User.user_type == "driver"
        total = (await self.session.execute(select(func.count(User.id)).where(is_driver))).scalar_one()
        stmt = select(User).where(is_driver).order_by(*DRIVER_ORDER).limit(limit).offset((page - 1) * limit)
        drivers = (await self.session.execute(stmt)).scalars().all()
        return [self.to_dict(d) for d in drivers], total

    async def search_drivers(self, query: str = "", limit: int = 10) -> List[Dict[str, Any]]:
        like = f"%{query.strip()}%"
        stmt = (
            select(User)
            .where(User.user_type == "driver", User.is_verified == True)  # noqa: E712
            .where(or_(
                (User.first_name + " " + User.last_name).ilike(like),
                User.name.ilike(like),
                User.phone_number.ilike(like),
                User.email.ilike(like),
            ))
            .order_by(*DRIVER_ORDER)
            .limit(limit)
        )
        drivers = (await self.session.execute(stmt)).scalars().all()
        return [self.to_dict(d) for d in drivers]

    async def available_drivers(self) -> List[Dict[str, Any]]:
        """Verified drivers that no jeepney names, whatever that jeepney's status."""
        assigned = select(Jeepney.id).where(Jeepney.driver_id == User.id).exists()
        stmt = (
            select(User)
            .where(User.user_type == "driver", User.is_verified == True)  # noqa: E712
            .where(~assigned)
            .order_by(*DRIVER_ORDER)
        )
        drivers = (await self.session.execute(stmt)).scalars().all()
        return [self.to_dict(d) for d in drivers]

    @staticmethod
    def to_dict(driver: User) -> Dict[str, Any]:
        return {
            "id": driver.id,
            "name": driver_display_name(driver),
            "phone": driver.phone_number,
            "email": driver.email,
            "license_path": driver.drivers_license_path,
            "license_verified": bool(driver.drivers_license_verified),
            "is_verified": bool(driver.is_verified),
            "jeepneys": [j.jeepney_number for j in driver.jeepneys],
        }
