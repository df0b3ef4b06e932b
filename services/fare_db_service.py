"""
DB-backed fare matrix.

Entries are directed (from -> to) per route. Writes upsert on
(route_id, from_checkpoint_id, to_checkpoint_id); deletes only deactivate.
Reads turn the active, currently effective rows into a FareTable so the
HTTP lookup shares the exact-match semantics of the in-process table.
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, Optional

from sqlalchemy import func, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from core.errors import FormValidationError
from models.db_models import Checkpoint, FareMatrixEntry, Route
from services.fare_service import FareSegment, FareTable, tiered_fare

logger = logging.getLogger(__name__)


class FareDBService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _route_checkpoints(self, route_id: int) -> list:
        stmt = (
            select(Checkpoint)
            .where(Checkpoint.route_id == route_id)
            .order_by(Checkpoint.sequence_order)
        )
        return list((await self.session.execute(stmt)).unique().scalars().all())

    async def _active_entries(self, route_id: int, today: Optional[date] = None) -> list:
        stmt = (
            select(FareMatrixEntry)
            .where(FareMatrixEntry.route_id == route_id)
            .where(FareMatrixEntry.status == "active")
            .order_by(FareMatrixEntry.effective_date.desc(), FareMatrixEntry.id.desc())
        )
        if today is not None:
            stmt = stmt.where(FareMatrixEntry.effective_date <= today).where(
                or_(FareMatrixEntry.expiry_date.is_(None), FareMatrixEntry.expiry_date >= today)
            )
        return list((await self.session.execute(stmt)).unique().scalars().all())

    async def route_matrix(self, route_id: int) -> Optional[Dict[str, Any]]:
        route = (await self.session.execute(select(Route).where(Route.id == route_id))).scalar_one_or_none()
        if not route:
            return None
        checkpoints = await self._route_checkpoints(route_id)
        entries = await self._active_entries(route_id)
        return {
            "route": {"id": route.id, "route_name": route.route_name},
            "checkpoints": [
                {"id": c.id, "checkpoint_name": c.checkpoint_name, "sequence_order": c.sequence_order}
                for c in checkpoints
            ],
            "entries": [self.to_dict(e) for e in entries],
        }

    async def all_matrices(self) -> Dict[str, Any]:
        """Active entries grouped per route, routes ordered by name."""
        stmt = (
            select(Route, FareMatrixEntry)
            .join(FareMatrixEntry, FareMatrixEntry.route_id == Route.id)
            .where(FareMatrixEntry.status == "active")
            .order_by(Route.route_name, FareMatrixEntry.from_checkpoint_id, FareMatrixEntry.to_checkpoint_id)
        )
        matrices: Dict[int, Dict[str, Any]] = {}
        for route, entry in (await self.session.execute(stmt)).unique().all():
            matrix = matrices.setdefault(
                route.id, {"route_id": route.id, "route_name": route.route_name, "entries": []}
            )
            matrix["entries"].append(self.to_dict(entry))
        for matrix in matrices.values():
            matrix["entry_count"] = len(matrix["entries"])
        return {"fare_matrices": list(matrices.values()), "total_routes": len(matrices)}

    async def stats(self) -> Dict[str, Any]:
        active = FareMatrixEntry.status == "active"
        total = (await self.session.execute(select(func.count(FareMatrixEntry.id)).where(active))).scalar_one()
        base = (await self.session.execute(
            select(func.count(FareMatrixEntry.id)).where(active, FareMatrixEntry.is_base_fare == True)  # noqa: E712
        )).scalar_one()
        stmt = (
            select(
                Route.id,
                Route.route_name,
                func.count(FareMatrixEntry.id),
                func.min(FareMatrixEntry.fare_amount),
                func.max(FareMatrixEntry.fare_amount),
                func.avg(FareMatrixEntry.fare_amount),
            )
            .join(FareMatrixEntry, FareMatrixEntry.route_id == Route.id)
            .where(active)
            .group_by(Route.id, Route.route_name)
            .order_by(Route.route_name)
        )
        per_route = [
            {
                "route_id": route_id,
                "route_name": name,
                "entry_count": count,
                "min_fare": float(lo),
                "max_fare": float(hi),
                "avg_fare": round(float(avg), 2),
            }
            for route_id, name, count, lo, hi, avg in (await self.session.execute(stmt)).all()
        ]
        return {"total_entries": total, "base_fare_entries": base, "route_statistics": per_route}

    async def generate_route_matrix(self, route_id: int, effective_date: Optional[date] = None) -> Optional[Dict[str, Any]]:
        """
        Rebuild a route's matrix from its active checkpoints.

        Every existing entry of the route is deactivated first, then each
        ordered pair of distinct active checkpoints gets a tiered fare by
        stop count. Pairs that already had a row are updated in place.
        """
        route = (await self.session.execute(select(Route).where(Route.id == route_id))).scalar_one_or_none()
        if not route:
            return None
        checkpoints = [c for c in await self._route_checkpoints(route_id) if c.status == "active"]
        if len(checkpoints) < 2:
            raise FormValidationError({"route_id": "Route needs at least two active checkpoints"})

        effective_date = effective_date or date.today()
        now = datetime.utcnow()
        await self.session.execute(
            update(FareMatrixEntry)
            .where(FareMatrixEntry.route_id == route_id)
            .values(status="inactive", updated_at=now)
        )
        existing = {
            (e.from_checkpoint_id, e.to_checkpoint_id): e
            for e in (await self.session.execute(
                select(FareMatrixEntry).where(FareMatrixEntry.route_id == route_id)
            )).unique().scalars().all()
        }

        created = updated = 0
        for origin in checkpoints:
            for dest in checkpoints:
                if origin.id == dest.id:
                    continue
                stops = abs(dest.sequence_order - origin.sequence_order)
                entry = existing.get((origin.id, dest.id))
                if entry is None:
                    entry = FareMatrixEntry(route_id=route_id, from_checkpoint_id=origin.id, to_checkpoint_id=dest.id)
                    self.session.add(entry)
                    created += 1
                else:
                    updated += 1
                entry.fare_amount = tiered_fare(stops)
                entry.is_base_fare = stops == 1
                entry.effective_date = effective_date
                entry.expiry_date = None
                entry.status = "active"
                entry.updated_at = now
        await self._commit("generate_fare_matrix")
        logger.info("Generated fare matrix for route %s: %d created, %d updated", route_id, created, updated)
        return {
            "route_id": route_id,
            "created_entries": created,
            "updated_entries": updated,
            "total_entries": created + updated,
        }

    async def fare_table_for_route(self, route_id: int, today: Optional[date] = None) -> Optional[FareTable]:
        """Newest effective entry first, so the first-declared rule picks it."""
        route = (await self.session.execute(select(Route).where(Route.id == route_id))).scalar_one_or_none()
        if not route:
            return None
        checkpoints = await self._route_checkpoints(route_id)
        entries = await self._active_entries(route_id, today or date.today())
        segments = [
            FareSegment(e.from_checkpoint.checkpoint_name, e.to_checkpoint.checkpoint_name, float(e.fare_amount))
            for e in entries
        ]
        return FareTable([c.checkpoint_name for c in checkpoints], segments, route=route.route_name)

    async def upsert_entry(self, data: Dict[str, Any]) -> Dict[str, Any]:
        route_id = data["route_id"]
        from_id, to_id = data["from_checkpoint_id"], data["to_checkpoint_id"]
        errors = {}
        if from_id == to_id:
            errors["to_checkpoint_id"] = "From and to checkpoints must differ"
        if data["fare_amount"] < 0:
            errors["fare_amount"] = "Fare must not be negative"
        route_ids = {c.id for c in await self._route_checkpoints(route_id)}
        if from_id not in route_ids:
            errors["from_checkpoint_id"] = "Checkpoint does not belong to this route"
        if to_id not in route_ids:
            errors["to_checkpoint_id"] = "Checkpoint does not belong to this route"
        if errors:
            raise FormValidationError(errors)

        stmt = select(FareMatrixEntry).where(
            FareMatrixEntry.route_id == route_id,
            FareMatrixEntry.from_checkpoint_id == from_id,
            FareMatrixEntry.to_checkpoint_id == to_id,
        )
        entry = (await self.session.execute(stmt)).unique().scalars().first()
        created = entry is None
        if created:
            entry = FareMatrixEntry(route_id=route_id, from_checkpoint_id=from_id, to_checkpoint_id=to_id)
            self.session.add(entry)
        entry.fare_amount = data["fare_amount"]
        entry.is_base_fare = data.get("is_base_fare", False)
        entry.effective_date = data.get("effective_date") or date.today()
        entry.expiry_date = data.get("expiry_date")
        entry.status = "active"
        entry.updated_at = datetime.utcnow()
        await self._commit("upsert_fare_entry")
        logger.info("%s fare entry %s -> %s on route %s: %s",
                    "Created" if created else "Updated", from_id, to_id, route_id, data["fare_amount"])
        self.session.expunge(entry)
        return {**self.to_dict(await self._get_entry(entry.id)), "created": created}

    async def _get_entry(self, entry_id: int) -> Optional[FareMatrixEntry]:
        result = await self.session.execute(select(FareMatrixEntry).where(FareMatrixEntry.id == entry_id))
        return result.unique().scalar_one_or_none()

    async def delete_entry(self, entry_id: int) -> bool:
        entry = await self._get_entry(entry_id)
        if not entry:
            return False
        entry.status = "inactive"
        entry.updated_at = datetime.utcnow()
        await self._commit("delete_fare_entry")
        logger.info("Deactivated fare entry id=%s", entry_id)
        return True

    async def _commit(self, op: str) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("DB %s failed: %s", op, e)
            raise

    @staticmethod
    def to_dict(entry: FareMatrixEntry) -> Dict[str, Any]:
        return {
            "id": entry.id,
            "route_id": entry.route_id,
            "from_checkpoint_id": entry.from_checkpoint_id,
            "from_checkpoint": entry.from_checkpoint.checkpoint_name if entry.from_checkpoint else None,
            "to_checkpoint_id": entry.to_checkpoint_id,
            "to_checkpoint": entry.to_checkpoint.checkpoint_name if entry.to_checkpoint else None,
            "fare_amount": float(entry.fare_amount),
            "is_base_fare": bool(entry.is_base_fare),
            "status": entry.status,
            "effective_date": entry.effective_date.isoformat() if entry.effective_date else None,
            "expiry_date": entry.expiry_date.isoformat() if entry.expiry_date else None,
        }
