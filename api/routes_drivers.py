from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import require_admin
from core.db import get_db_session
from core.response import ok, paginate
from services.driver_db_service import DriverDBService

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("")
async def list_drivers(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session: AsyncSession = Depends(get_db_session),
):
    drivers, total = await DriverDBService(session).list_drivers(page, limit)
    return ok({"drivers": drivers, "pagination": paginate(total, page, limit)})


@router.get("/search")
async def search_drivers(
    q: str = "",
    limit: int = Query(10, ge=1, le=100),
    session: AsyncSession = Depends(get_db_session),
):
    """Verified drivers matching name, phone or email (the jeepney form's driver picker)."""
    drivers = await DriverDBService(session).search_drivers(q, limit)
    return ok({"drivers": drivers, "count": len(drivers)})


@router.get("/available")
async def available_drivers(session: AsyncSession = Depends(get_db_session)):
    drivers = await DriverDBService(session).available_drivers()
    return ok({"drivers": drivers, "count": len(drivers)})


@router.get("/{driver_id}")
async def get_driver(driver_id: int, session: AsyncSession = Depends(get_db_session)):
    driver = await DriverDBService(session).get_driver(driver_id)
    if not driver:
        raise HTTPException(status_code=404, detail="Driver not found")
    return ok(DriverDBService.to_dict(driver))
