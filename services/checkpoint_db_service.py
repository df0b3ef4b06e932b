"""
Routes and their ordered checkpoints.

Checkpoint order is fixed once created: (route_id, sequence_order) and
(route_id, checkpoint_name) are unique, sequence_order cannot be edited, and a
checkpoint referenced by fare entries cannot be deleted.
"""
import json
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from core.errors import ConflictError, FormValidationError
from models.db_models import Checkpoint, FareMatrixEntry, Jeepney, Route
from services.validation import blank_field_errors

logger = logging.getLogger(__name__)

QR_TYPE = "route_checkpoint"
QR_TTL = timedelta(days=30)

ROUTE_REQUIRED_FIELDS = ("route_name", "status")
CHECKPOINT_REQUIRED_FIELDS = ("checkpoint_name", "fare_from_origin", "is_origin", "is_destination", "status")


def _stripped_name(data: Dict[str, Any], field: str, required: tuple) -> Dict[str, Any]:
    """Trim `field` and reject null or blank values of required columns."""
    errors = blank_field_errors(data, required)
    if errors:
        raise FormValidationError(errors)
    if isinstance(data.get(field), str):
        data = {**data, field: data[field].strip()}
    return data


def checkpoint_type(checkpoint: Checkpoint) -> str:
    if checkpoint.is_origin:
        return "start"
    if checkpoint.is_destination:
        return "end"
    return "checkpoint"


def build_checkpoint_qr(checkpoint: Checkpoint, route_name: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """QR payload printed at a checkpoint and scanned by drivers and passengers."""
    now = now or datetime.utcnow()
    return {
        "type": QR_TYPE,
        "checkpointId": str(checkpoint.id),
        "checkpointName": checkpoint.checkpoint_name,
        "checkpointType": checkpoint_type(checkpoint),
        "route": route_name,
        "route_id": checkpoint.route_id,
        "sequence_order": checkpoint.sequence_order,
        "fare_from_origin": float(checkpoint.fare_from_origin) if checkpoint.fare_from_origin is not None else None,
        "timestamp": now.isoformat(),
        "expires_at": (now + QR_TTL).isoformat(),
    }


class CheckpointDBService:
    def __init__(self, session: AsyncSession):
        self.session = session

    # ---- routes ----

    async def get_route(self, route_id: int) -> Optional[Route]:
        result = await self.session.execute(select(Route).where(Route.id == route_id))
        return result.scalar_one_or_none()

    async def list_routes(self) -> List[Dict[str, Any]]:
        routes = (await self.session.execute(select(Route).order_by(Route.id))).scalars().all()
        return [self.route_to_dict(r) for r in routes]

    async def _ensure_route_name_free(self, name: str, exclude_id: Optional[int] = None) -> None:
        stmt = select(Route.id).where(Route.route_name == name)
        if exclude_id:
            stmt = stmt.where(Route.id != exclude_id)
        if (await self.session.execute(stmt)).first():
            raise ConflictError("Route name already exists")

    async def create_route(self, data: Dict[str, Any]) -> Dict[str, Any]:
        data = _stripped_name(data, "route_name", ROUTE_REQUIRED_FIELDS)
        await self._ensure_route_name_free(data["route_name"])
        route = Route(**data)
        self.session.add(route)
        await self._commit("create_route")
        logger.info("Created route id=%s name=%s", route.id, route.route_name)
        return self.route_to_dict(route, checkpoint_count=0)

    async def update_route(self, route_id: int, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        route = await self.get_route(route_id)
        if not route:
            return None
        data = _stripped_name(data, "route_name", ROUTE_REQUIRED_FIELDS)
        if "route_name" in data:
            await self._ensure_route_name_free(data["route_name"], exclude_id=route_id)
        for key, value in data.items():
            setattr(route, key, value)
        route.updated_at = datetime.utcnow()
        await self._commit("update_route")
        return self.route_to_dict(route)

    async def delete_route(self, route_id: int) -> bool:
        """Remove an unused route; refuses while checkpoints, fares or jeepneys point at it."""
        route = await self.get_route(route_id)
        if not route:
            return False
        for model, label in ((Checkpoint, "checkpoints"), (FareMatrixEntry, "fare matrix entries"), (Jeepney, "jeepneys")):
            refs = (await self.session.execute(
                select(func.count(model.id)).where(model.route_id == route_id)
            )).scalar_one()
            if refs:
                raise ConflictError(f"Route is referenced by {refs} {label}")
        await self.session.delete(route)
        await self._commit("delete_route")
        logger.info("Deleted route id=%s", route_id)
        return True

    async def route_qr_codes(self, route_id: int) -> Optional[Dict[str, Any]]:
        """QR payloads for every active checkpoint of a route, in sequence order."""
        route = await self.get_route(route_id)
        if not route:
            return None
        now = datetime.utcnow()
        codes = []
        for checkpoint in route.checkpoints:
            if checkpoint.status != "active":
                continue
            payload = build_checkpoint_qr(checkpoint, route.route_name, now)
            codes.append({
                "checkpoint": self.to_dict(checkpoint),
                "qr_data": payload,
                "qr_string": json.dumps(payload),
            })
        if not codes:
            return None
        return {
            "route_id": route.id,
            "route_name": route.route_name,
            "checkpoint_count": len(codes),
            "qr_codes": codes,
        }

    # ---- checkpoints ----

    async def get_checkpoint(self, checkpoint_id: int) -> Optional[Checkpoint]:
        result = await self.session.execute(select(Checkpoint).where(Checkpoint.id == checkpoint_id))
        return result.unique().scalar_one_or_none()

    async def route_checkpoints(self, route_id: int) -> List[Dict[str, Any]]:
        stmt = (
            select(Checkpoint)
            .where(Checkpoint.route_id == route_id)
            .order_by(Checkpoint.sequence_order)
        )
        checkpoints = (await self.session.execute(stmt)).unique().scalars().all()
        return [self.to_dict(c) for c in checkpoints]

    async def _ensure_unique(self, route_id: int, name: Optional[str], sequence_order: Optional[int], exclude_id: Optional[int] = None):
        if sequence_order is not None:
            stmt = select(Checkpoint.id).where(
                Checkpoint.route_id == route_id, Checkpoint.sequence_order == sequence_order
            )
            if exclude_id:
                stmt = stmt.where(Checkpoint.id != exclude_id)
            if (await self.session.execute(stmt)).first():
                raise ConflictError(f"Sequence order {sequence_order} already used on this route")
        if name:
            stmt = select(Checkpoint.id).where(
                Checkpoint.route_id == route_id, Checkpoint.checkpoint_name == name
            )
            if exclude_id:
                stmt = stmt.where(Checkpoint.id != exclude_id)
            if (await self.session.execute(stmt)).first():
                raise ConflictError(f"Checkpoint {name!r} already exists on this route")

    async def create_checkpoint(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if not await self.get_route(data["route_id"]):
            raise FormValidationError({"route_id": "Route not found"})
        data = _stripped_name(data, "checkpoint_name", CHECKPOINT_REQUIRED_FIELDS)
        await self._ensure_unique(data["route_id"], data["checkpoint_name"], data["sequence_order"])

        checkpoint = Checkpoint(**data)
        self.session.add(checkpoint)
        await self._commit("create_checkpoint")
        logger.info("Created checkpoint %s (route %s, #%s)",
                    checkpoint.checkpoint_name, checkpoint.route_id, checkpoint.sequence_order)
        return self.to_dict(checkpoint)

    async def update_checkpoint(self, checkpoint_id: int, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        checkpoint = await self.get_checkpoint(checkpoint_id)
        if not checkpoint:
            return None
        new_order = data.pop("sequence_order", None)
        if new_order is not None and new_order != checkpoint.sequence_order:
            raise FormValidationError({"sequence_order": "Checkpoint order cannot be changed"})
        data = _stripped_name(data, "checkpoint_name", CHECKPOINT_REQUIRED_FIELDS)
        if "checkpoint_name" in data:
            await self._ensure_unique(checkpoint.route_id, data["checkpoint_name"], None, exclude_id=checkpoint_id)

        for key, value in data.items():
            setattr(checkpoint, key, value)
        checkpoint.updated_at = datetime.utcnow()
        await self._commit("update_checkpoint")
        return self.to_dict(checkpoint)

    async def delete_checkpoint(self, checkpoint_id: int) -> bool:
        checkpoint = await self.get_checkpoint(checkpoint_id)
        if not checkpoint:
            return False
        refs = (await self.session.execute(
            select(func.count(FareMatrixEntry.id)).where(
                (FareMatrixEntry.from_checkpoint_id == checkpoint_id)
                | (FareMatrixEntry.to_checkpoint_id == checkpoint_id)
            )
        )).scalar_one()
        if refs:
            raise ConflictError(f"Checkpoint is referenced by {refs} fare matrix entries")
        await self.session.delete(checkpoint)
        await self._commit("delete_checkpoint")
        logger.info("Deleted checkpoint id=%s", checkpoint_id)
        return True

    async def checkpoint_qr(self, checkpoint_id: int) -> Optional[Dict[str, Any]]:
        checkpoint = await self.get_checkpoint(checkpoint_id)
        if not checkpoint or checkpoint.status != "active":
            return None
        payload = build_checkpoint_qr(checkpoint, checkpoint.route.route_name)
        return {"qr_data": payload, "qr_string": json.dumps(payload)}

    async def _commit(self, op: str) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("DB %s failed: %s", op, e)
            raise

    @staticmethod
    def route_to_dict(route: Route, checkpoint_count: Optional[int] = None) -> Dict[str, Any]:
        if checkpoint_count is None:
            checkpoint_count = len(route.checkpoints)
        return {
            "id": route.id,
            "route_name": route.route_name,
            "origin": route.origin,
            "destination": route.destination,
            "status": route.status,
            "checkpoint_count": checkpoint_count,
        }

    @staticmethod
    def to_dict(checkpoint: Checkpoint) -> Dict[str, Any]:
        return {
            "id": checkpoint.id,
            "route_id": checkpoint.route_id,
            "checkpoint_name": checkpoint.checkpoint_name,
            "sequence_order": checkpoint.sequence_order,
            "fare_from_origin": float(checkpoint.fare_from_origin) if checkpoint.fare_from_origin is not None else None,
            "is_origin": bool(checkpoint.is_origin),
            "is_destination": bool(checkpoint.is_destination),
            "latitude": checkpoint.latitude,
            "longitude": checkpoint.longitude,
            "status": checkpoint.status,
        }
