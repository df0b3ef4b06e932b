import json

import pytest

from services.fare_service import (
    DEFAULT_CHECKPOINTS,
    DEFAULT_SEGMENTS,
    FareSegment,
    FareTable,
    default_fare_table,
    load_fare_table,
    tiered_fare,
)


def test_default_table_known_pair():
    assert default_fare_table().lookup("Robinson Tejero", "Malabon") == 12


def test_unknown_names_are_not_found():
    table = default_fare_table()
    assert table.lookup("Tejero Terminal", "Pala-pala Terminal") is None
    assert table.lookup("", "") is None


def test_every_declared_entry_returns_its_fare():
    table = default_fare_table()
    for seg in DEFAULT_SEGMENTS:
        assert table.lookup(seg.from_checkpoint, seg.to_checkpoint) == seg.fare


def test_undeclared_pairs_miss():
    """No reverse direction, no summing hops, no same-checkpoint fare."""
    table = default_fare_table()
    declared = {(s.from_checkpoint, s.to_checkpoint) for s in DEFAULT_SEGMENTS}
    for a in DEFAULT_CHECKPOINTS:
        for b in DEFAULT_CHECKPOINTS:
            if (a, b) not in declared:
                assert table.lookup(a, b) is None, (a, b)


def test_overlapping_long_haul_entries_are_verbatim():
    table = default_fare_table()
    assert table.lookup("Robinson Tejero", "Robinson Pala-pala") == 500
    assert table.lookup("Lancaster New City", "Robinson Pala-pala") == 30
    assert table.lookup("Robinson Pala-pala", "Robinson Tejero") is None


def test_first_declared_duplicate_wins():
    table = FareTable(
        ["A", "B"],
        [FareSegment("A", "B", 10), FareSegment("A", "B", 99)],
    )
    assert table.lookup("A", "B") == 10
    assert table.segment("A", "B") == FareSegment("A", "B", 10)
    assert len(table.segments) == 2


@pytest.mark.parametrize(
    "checkpoints, segments",
    [
        (["A", "A"], []),
        (["A", "B"], [FareSegment("A", "C", 5)]),
        (["A", "B"], [FareSegment("A", "B", -1)]),
    ],
)
def test_invalid_tables_are_rejected(checkpoints, segments):
    with pytest.raises(ValueError):
        FareTable(checkpoints, segments)


def test_load_fare_table_from_file(tmp_path):
    path = tmp_path / "fares.json"
    path.write_text(json.dumps({
        "route": "Test Line",
        "checkpoints": ["North", "Middle", "South"],
        "segments": [{"from": "North", "to": "South", "fare": 25}],
    }))
    table = load_fare_table(str(path))
    assert table.route == "Test Line"
    assert table.checkpoints == ["North", "Middle", "South"]
    assert table.lookup("North", "South") == 25.0
    assert table.lookup("North", "Middle") is None
    assert "Middle" in table


def test_to_dict_keeps_declaration_order():
    table = default_fare_table()
    data = table.to_dict()
    assert data["checkpoints"] == DEFAULT_CHECKPOINTS
    assert data["segments"][0] == {"from": "Robinson Tejero", "to": "Malabon", "fare": 12}
    assert FareTable.from_dict(data).lookup("Langkaan", "Tierra Vista") == 40


@pytest.mark.asyncio
async def test_lookup_endpoint_hit(client):
    resp = await client.get("/fares/lookup", params={"from": "Malabon", "to": "Riverside"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["data"] == {"from": "Malabon", "to": "Riverside", "fare": 14}


@pytest.mark.asyncio
async def test_lookup_endpoint_miss(client):
    resp = await client.get("/fares/lookup", params={"from": "Riverside", "to": "Malabon"})
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "fare_not_found"


@pytest.mark.asyncio
async def test_checkpoints_endpoint(client):
    resp = await client.get("/fares/checkpoints")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["checkpoints"][0] == "Robinson Tejero"
    assert data["checkpoints"][-1] == "Robinson Pala-pala"
    assert len(data["checkpoints"]) == 15


@pytest.mark.parametrize(
    "data",
    [
        {"checkpoints": ["A", "B"], "segments": [{"from": "A", "fare": 5}]},
        {"checkpoints": ["A", "B"], "segments": [{"from": "A", "to": "B", "fare": "cheap"}]},
        {"checkpoints": ["A", "B"], "segments": [{"from": "A", "to": "B", "fare": None}]},
        {"checkpoints": ["A", "B"], "segments": ["A->B"]},
        {"checkpoints": "A,B", "segments": []},
        ["A", "B"],
    ],
)
def test_malformed_table_data_raises_value_error(data):
    with pytest.raises(ValueError):
        FareTable.from_dict(data)


@pytest.mark.parametrize(
    "stops, fare",
    [(1, 13.0), (2, 15.0), (3, 16.5), (7, 22.5), (12, 30.0), (13, 35.0), (16, 50.0), (18, 60.0)],
)
def test_tiered_fare(stops, fare):
    assert tiered_fare(stops) == fare


def test_tiered_fare_never_decreases():
    fares = [tiered_fare(n) for n in range(1, 25)]
    assert fares == sorted(fares)
    with pytest.raises(ValueError):
        tiered_fare(0)
