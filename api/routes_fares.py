# api/routes_fares.py
"""
Fare endpoints.

- /fares/*: lookups against the process fare table (built-in or FARE_MATRIX_FILE)
- /fare-matrix/route/{id}/fare: public lookup against the DB matrix of one route
- /admin/fare-matrix/*: matrix maintenance (admin token)
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import require_admin
from core.container import ServiceContainer, get_container
from core.db import get_db_session
from core.response import error, ok
from models.schemas import FareEntryUpsert, FareMatrixGenerate
from services.fare_db_service import FareDBService

router = APIRouter()
admin_router = APIRouter(dependencies=[Depends(require_admin)])


def fare_not_found(from_checkpoint: str, to_checkpoint: str) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content=error(code="fare_not_found", message=f"No fare from {from_checkpoint!r} to {to_checkpoint!r}"),
    )


@router.get("/fares/lookup")
async def lookup_fare(
    from_checkpoint: str = Query(..., alias="from"),
    to_checkpoint: str = Query(..., alias="to"),
    container: ServiceContainer = Depends(get_container),
):
    fare = container.fare_table.lookup(from_checkpoint, to_checkpoint)
    if fare is None:
        return fare_not_found(from_checkpoint, to_checkpoint)
    return ok({"from": from_checkpoint, "to": to_checkpoint, "fare": fare})


@router.get("/fares/checkpoints")
async def list_checkpoints(container: ServiceContainer = Depends(get_container)):
    table = container.fare_table
    return ok({"route": table.route, "checkpoints": list(table.checkpoints)})


@router.get("/fare-matrix/route/{route_id}/fare")
async def route_fare(
    route_id: int,
    from_checkpoint: str = Query(..., alias="from"),
    to_checkpoint: str = Query(..., alias="to"),
    session: AsyncSession = Depends(get_db_session),
):
    table = await FareDBService(session).fare_table_for_route(route_id)
    if table is None:
        raise HTTPException(status_code=404, detail="Route not found")
    fare = table.lookup(from_checkpoint, to_checkpoint)
    if fare is None:
        return fare_not_found(from_checkpoint, to_checkpoint)
    return ok({"route_id": route_id, "from": from_checkpoint, "to": to_checkpoint, "fare": fare})


@admin_router.get("")
async def all_matrices(session: AsyncSession = Depends(get_db_session)):
    return ok(await FareDBService(session).all_matrices())


@admin_router.get("/stats")
async def matrix_stats(session: AsyncSession = Depends(get_db_session)):
    return ok(await FareDBService(session).stats())


@admin_router.post("/route/{route_id}/generate")
async def generate_route_matrix(
    route_id: int,
    body: Optional[FareMatrixGenerate] = None,
    session: AsyncSession = Depends(get_db_session),
):
    """Replace the route's matrix with tiered fares by stop count."""
    effective_date = body.effective_date if body else None
    result = await FareDBService(session).generate_route_matrix(route_id, effective_date)
    if result is None:
        raise HTTPException(status_code=404, detail="Route not found")
    return ok(result)


@admin_router.get("/route/{route_id}")
async def route_matrix(route_id: int, session: AsyncSession = Depends(get_db_session)):
    matrix = await FareDBService(session).route_matrix(route_id)
    if matrix is None:
        raise HTTPException(status_code=404, detail="Route not found")
    return ok(matrix)


@admin_router.post("")
async def upsert_fare_entry(body: FareEntryUpsert, session: AsyncSession = Depends(get_db_session)):
    """Create the (route, from, to) entry, or update it if it already exists."""
    return ok(await FareDBService(session).upsert_entry(body.model_dump()))


@admin_router.delete("/{entry_id}")
async def delete_fare_entry(entry_id: int, session: AsyncSession = Depends(get_db_session)):
    if not await FareDBService(session).delete_entry(entry_id):
        raise HTTPException(status_code=404, detail="Fare entry not found")
    return ok({"message": f"Fare entry {entry_id} deactivated"})
