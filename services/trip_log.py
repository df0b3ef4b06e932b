"""
Local trip log kept by the mobile client while a trip is in progress.

Scans of checkpoint QR codes are parsed into CheckpointScan values and
appended to an in-memory TripLogger. Nothing here touches the database.
"""
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from services.checkpoint_db_service import QR_TYPE
from services.fare_service import FareTable


class InvalidQRCode(ValueError):
    pass


@dataclass(frozen=True)
class CheckpointScan:
    checkpoint_id: str
    checkpoint_name: str
    checkpoint_type: str = "checkpoint"
    route: Optional[str] = None
    sequence_order: Optional[int] = None


@dataclass(frozen=True)
class TripLog:
    time: datetime
    location: str
    passengers: int


def parse_checkpoint_qr(raw: str) -> CheckpointScan:
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise InvalidQRCode("QR code is not valid JSON") from e
    if not isinstance(data, dict) or data.get("type") != QR_TYPE:
        raise InvalidQRCode("QR code is not a route checkpoint")
    checkpoint_id = data.get("checkpointId")
    name = data.get("checkpointName")
    if checkpoint_id in (None, "") or not name:
        raise InvalidQRCode("QR code is missing checkpoint details")
    return CheckpointScan(
        checkpoint_id=str(checkpoint_id),
        checkpoint_name=name,
        checkpoint_type=data.get("checkpointType") or "checkpoint",
        route=data.get("route"),
        sequence_order=data.get("sequence_order"),
    )


@dataclass
class TripLogger:
    _logs: List[TripLog] = field(default_factory=list)

    def record_scan(self, scan: CheckpointScan, passengers: int, at: Optional[datetime] = None) -> TripLog:
        if passengers < 0:
            raise ValueError("passenger count cannot be negative")
        entry = TripLog(time=at or datetime.now(), location=scan.checkpoint_name, passengers=passengers)
        self._logs.append(entry)
        return entry

    def logs(self) -> List[TripLog]:
        return list(self._logs)

    def clear(self) -> None:
        self._logs.clear()


def fare_for(from_scan: CheckpointScan, to_scan: CheckpointScan, table: FareTable) -> Optional[float]:
    return table.lookup(from_scan.checkpoint_name, to_scan.checkpoint_name)
