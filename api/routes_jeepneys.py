from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import require_admin
from core.db import get_db_session
from core.response import ok, paginate
from models.schemas import DriverReassignment, JeepneyCreate, JeepneyUpdate
from services.jeepney_db_service import JeepneyDBService

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("")
async def list_jeepneys(
    status: Optional[str] = Query(None, pattern="^(active|inactive|maintenance)$"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session: AsyncSession = Depends(get_db_session),
):
    jeepneys, total = await JeepneyDBService(session).list_jeepneys(status, search, page, limit)
    return ok({"jeepneys": jeepneys, "pagination": paginate(total, page, limit)})


@router.get("/{jeepney_id}")
async def get_jeepney(jeepney_id: int, session: AsyncSession = Depends(get_db_session)):
    jeepney = await JeepneyDBService(session).get_jeepney(jeepney_id)
    if not jeepney:
        raise HTTPException(status_code=404, detail="Jeepney not found")
    return ok(JeepneyDBService.to_dict(jeepney))


@router.post("", status_code=201)
async def create_jeepney(body: JeepneyCreate, session: AsyncSession = Depends(get_db_session)):
    return ok(await JeepneyDBService(session).create_jeepney(body.model_dump()))


@router.patch("/{jeepney_id}")
async def update_jeepney(jeepney_id: int, body: JeepneyUpdate, session: AsyncSession = Depends(get_db_session)):
    updated = await JeepneyDBService(session).update_jeepney(jeepney_id, body.model_dump(exclude_unset=True))
    if updated is None:
        raise HTTPException(status_code=404, detail="Jeepney not found")
    return ok(updated)


@router.delete("/{jeepney_id}")
async def delete_jeepney(jeepney_id: int, session: AsyncSession = Depends(get_db_session)):
    if not await JeepneyDBService(session).delete_jeepney(jeepney_id):
        raise HTTPException(status_code=404, detail="Jeepney not found")
    return ok({"message": f"Jeepney {jeepney_id} deleted"})


@router.post("/reassign-driver")
async def reassign_driver(body: DriverReassignment, session: AsyncSession = Depends(get_db_session)):
    """Move a driver to a jeepney that has none; the source jeepney is left without a driver."""
    result = await JeepneyDBService(session).reassign_driver(body.from_jeepney_id, body.to_jeepney_id, body.driver_id)
    return ok(result)


@router.post("/{jeepney_id}/unassign-driver")
async def unassign_driver(jeepney_id: int, session: AsyncSession = Depends(get_db_session)):
    unassigned = await JeepneyDBService(session).unassign_driver(jeepney_id)
    if unassigned is None:
        raise HTTPException(status_code=404, detail="Jeepney not found")
    return ok({"unassigned_driver": unassigned})
