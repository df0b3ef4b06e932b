from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import require_admin
from core.db import get_db_session
from core.response import ok
from models.schemas import CheckpointCreate, CheckpointUpdate, RouteCreate, RouteUpdate
from services.checkpoint_db_service import CheckpointDBService

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/routes")
async def list_routes(session: AsyncSession = Depends(get_db_session)):
    return ok({"routes": await CheckpointDBService(session).list_routes()})


@router.post("/routes", status_code=201)
async def create_route(body: RouteCreate, session: AsyncSession = Depends(get_db_session)):
    return ok(await CheckpointDBService(session).create_route(body.model_dump()))


@router.get("/routes/{route_id}")
async def get_route(route_id: int, session: AsyncSession = Depends(get_db_session)):
    route = await CheckpointDBService(session).get_route(route_id)
    if not route:
        raise HTTPException(status_code=404, detail="Route not found")
    return ok(CheckpointDBService.route_to_dict(route))


@router.patch("/routes/{route_id}")
async def update_route(route_id: int, body: RouteUpdate, session: AsyncSession = Depends(get_db_session)):
    updated = await CheckpointDBService(session).update_route(route_id, body.model_dump(exclude_unset=True))
    if updated is None:
        raise HTTPException(status_code=404, detail="Route not found")
    return ok(updated)


@router.delete("/routes/{route_id}")
async def delete_route(route_id: int, session: AsyncSession = Depends(get_db_session)):
    if not await CheckpointDBService(session).delete_route(route_id):
        raise HTTPException(status_code=404, detail="Route not found")
    return ok({"message": f"Route {route_id} deleted"})


@router.get("/routes/{route_id}/qr")
async def route_qr_codes(route_id: int, session: AsyncSession = Depends(get_db_session)):
    """Printable QR payloads for all active checkpoints of a route."""
    codes = await CheckpointDBService(session).route_qr_codes(route_id)
    if codes is None:
        raise HTTPException(status_code=404, detail="Route not found or has no active checkpoints")
    return ok(codes)


@router.get("/routes/{route_id}/checkpoints")
async def route_checkpoints(route_id: int, session: AsyncSession = Depends(get_db_session)):
    """Checkpoints of one route in sequence order."""
    service = CheckpointDBService(session)
    if not await service.get_route(route_id):
        raise HTTPException(status_code=404, detail="Route not found")
    return ok({"route_id": route_id, "checkpoints": await service.route_checkpoints(route_id)})


@router.post("/checkpoints", status_code=201)
async def create_checkpoint(body: CheckpointCreate, session: AsyncSession = Depends(get_db_session)):
    return ok(await CheckpointDBService(session).create_checkpoint(body.model_dump()))


@router.patch("/checkpoints/{checkpoint_id}")
async def update_checkpoint(checkpoint_id: int, body: CheckpointUpdate, session: AsyncSession = Depends(get_db_session)):
    updated = await CheckpointDBService(session).update_checkpoint(checkpoint_id, body.model_dump(exclude_unset=True))
    if updated is None:
        raise HTTPException(status_code=404, detail="Checkpoint not found")
    return ok(updated)


@router.delete("/checkpoints/{checkpoint_id}")
async def delete_checkpoint(checkpoint_id: int, session: AsyncSession = Depends(get_db_session)):
    if not await CheckpointDBService(session).delete_checkpoint(checkpoint_id):
        raise HTTPException(status_code=404, detail="Checkpoint not found")
    return ok({"message": f"Checkpoint {checkpoint_id} deleted"})


@router.get("/checkpoints/{checkpoint_id}/qr")
async def checkpoint_qr(checkpoint_id: int, session: AsyncSession = Depends(get_db_session)):
    """QR payload for printing at the checkpoint; valid for 30 days."""
    qr = await CheckpointDBService(session).checkpoint_qr(checkpoint_id)
    if qr is None:
        raise HTTPException(status_code=404, detail="Checkpoint not found or inactive")
    return ok(qr)
