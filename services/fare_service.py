# services/fare_service.py
"""
Fare lookup over an ordered checkpoint route.

A FareTable holds one route (ordered, unique checkpoint names) and a flat list
of directed fare segments. Lookup is an exact (from, to) match: no reverse
direction, no multi-hop summation, no base-fare fallback. When the table holds
more than one entry for the same pair, the first one declared wins.
"""
import json
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FareSegment:
    from_checkpoint: str
    to_checkpoint: str
    fare: float

    def to_dict(self) -> dict:
        return {"from": self.from_checkpoint, "to": self.to_checkpoint, "fare": self.fare}


class FareTable:
    def __init__(self, checkpoints: Iterable[str], segments: Iterable[FareSegment], route: str = ""):
        self.route = route
        self.checkpoints: list[str] = list(checkpoints)
        if len(set(self.checkpoints)) != len(self.checkpoints):
            raise ValueError(f"duplicate checkpoint names in route {route!r}")

        declared = set(self.checkpoints)
        self.segments: list[FareSegment] = []
        self._index: dict[tuple[str, str], FareSegment] = {}
        for seg in segments:
            for name in (seg.from_checkpoint, seg.to_checkpoint):
                if name not in declared:
                    raise ValueError(f"fare segment references undeclared checkpoint {name!r}")
            if seg.fare < 0:
                raise ValueError(f"negative fare for {seg.from_checkpoint!r} -> {seg.to_checkpoint!r}")
            self.segments.append(seg)
            key = (seg.from_checkpoint, seg.to_checkpoint)
            if key in self._index:
                logger.debug("Duplicate fare entry %s -> %s ignored (first wins)", *key)
                continue
            self._index[key] = seg

    def segment(self, from_checkpoint: str, to_checkpoint: str) -> Optional[FareSegment]:
        return self._index.get((from_checkpoint, to_checkpoint))

    def lookup(self, from_checkpoint: str, to_checkpoint: str) -> Optional[float]:
        """Return the fare of the exact (from, to) entry, or None when there is none."""
        seg = self.segment(from_checkpoint, to_checkpoint)
        return seg.fare if seg else None

    def __contains__(self, name: str) -> bool:
        return name in self.checkpoints

    def to_dict(self) -> dict:
        return {
            "route": self.route,
            "checkpoints": list(self.checkpoints),
            "segments": [s.to_dict() for s in self.segments],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FareTable":
        if not isinstance(data, dict):
            raise ValueError("fare table must be an object with checkpoints and segments")
        segments = []
        for i, s in enumerate(data.get("segments", [])):
            try:
                segments.append(FareSegment(s["from"], s["to"], float(s["fare"])))
            except (KeyError, TypeError, ValueError) as e:
                raise ValueError(f"malformed fare segment #{i}: {s!r}") from e
        checkpoints = data.get("checkpoints", [])
        if not isinstance(checkpoints, list):
            raise ValueError("fare table checkpoints must be a list of names")
        return cls(checkpoints, segments, route=data.get("route", ""))


def load_fare_table(path: str) -> FareTable:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    table = FareTable.from_dict(data)
    logger.info("Loaded fare table %r from %s (%d segments)", table.route, path, len(table.segments))
    return table


# Tejero - Pala-pala line as shipped with the passenger app.
DEFAULT_ROUTE = "Robinson Tejero - Robinson Pala-pala"

DEFAULT_CHECKPOINTS = [
    "Robinson Tejero",
    "Malabon",
    "Riverside",
    "Lancaster New City",
    "Pasong Camachile I",
    "Open Canal",
    "Santiago",
    "Bella Vista",
    "San Francisco",
    "Country Meadow",
    "Pabahay",
    "Monterey",
    "Langkaan",
    "Tierra Vista",
    "Robinson Pala-pala",
]

DEFAULT_SEGMENTS = [
    FareSegment("Robinson Tejero", "Malabon", 12),
    FareSegment("Malabon", "Riverside", 14),
    FareSegment("Riverside", "Lancaster New City", 16),
    FareSegment("Lancaster New City", "Pasong Camachile I", 18),
    FareSegment("Pasong Camachile I", "Open Canal", 20),
    FareSegment("Open Canal", "Santiago", 22),
    FareSegment("Santiago", "Bella Vista", 24),
    FareSegment("Bella Vista", "San Francisco", 26),
    FareSegment("San Francisco", "Country Meadow", 28),
    FareSegment("Country Meadow", "Pabahay", 30),
    FareSegment("Pabahay", "Monterey", 33),
    FareSegment("Monterey", "Langkaan", 36),
    FareSegment("Langkaan", "Tierra Vista", 40),
    FareSegment("Tierra Vista", "Robinson Pala-pala", 45),
    # overlapping long-haul entries; kept as published
    FareSegment("Robinson Tejero", "Robinson Pala-pala", 500),
    FareSegment("Lancaster New City", "Robinson Pala-pala", 30),
]


def default_fare_table() -> FareTable:
    return FareTable(DEFAULT_CHECKPOINTS, DEFAULT_SEGMENTS, route=DEFAULT_ROUTE)


# Distance tiers used when an admin generates a whole route matrix
BASE_FARE = 13.00
SHORT_FARE = 15.00
MEDIUM_MAX_STOPS, MEDIUM_MAX_FARE = 12, 30.00
LONG_REF_STOPS, LONG_REF_FARE = 16, 50.00


def tiered_fare(stops: int) -> float:
    """Fare for a trip spanning `stops` checkpoints (difference in sequence_order)."""
    if stops < 1:
        raise ValueError("a trip spans at least one stop")
    if stops == 1:
        return BASE_FARE
    if stops == 2:
        return SHORT_FARE
    if stops <= MEDIUM_MAX_STOPS:
        fare = SHORT_FARE + (stops - 2) / (MEDIUM_MAX_STOPS - 2) * (MEDIUM_MAX_FARE - SHORT_FARE)
    else:
        slope = (LONG_REF_FARE - MEDIUM_MAX_FARE) / (LONG_REF_STOPS - MEDIUM_MAX_STOPS)
        fare = MEDIUM_MAX_FARE + (stops - MEDIUM_MAX_STOPS) * slope
    return round(fare, 2)
