import pytest


async def _route(client, admin_headers, name="Tejero - Pala-pala"):
    resp = await client.post("/admin/routes", json={"route_name": name}, headers=admin_headers)
    assert resp.status_code == 201
    return resp.json()["data"]["id"]


async def _driver(client, admin_headers, n=1):
    form = {
        "username": f"driver{n}",
        "email": f"driver{n}@example.com",
        "password": "Secret123",
        "first_name": "Mang",
        "last_name": f"Driver{n}",
        "phone_number": "09171234567",
        "birthday": "1980-02-29",
        "house_number": "1",
        "street_name": "Aguinaldo Hwy",
        "barangay": "Pabahay",
        "city_municipality": "Dasmarinas",
        "province": "Cavite",
        "postal_code": "4114",
        "user_type": "driver",
        "drivers_license_path": "uploads/license.jpg",
    }
    resp = await client.post("/admin/users", json=form, headers=admin_headers)
    assert resp.status_code == 201
    return resp.json()["data"]["id"]


def _jeepney(**overrides):
    body = {"jeepney_number": "LKB-001", "plate_number": "ABC 1234", "model": "Sarao", "capacity": 18}
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_jeepney_crud(client, admin_headers):
    route_id = await _route(client, admin_headers)
    driver_id = await _driver(client, admin_headers)

    resp = await client.post(
        "/admin/jeepneys", json=_jeepney(route_id=route_id, driver_id=driver_id), headers=admin_headers
    )
    assert resp.status_code == 201
    jeepney = resp.json()["data"]
    assert jeepney["route_name"] == "Tejero - Pala-pala"
    assert jeepney["driver_name"] == "Mang Driver1"
    assert jeepney["status"] == "active"

    resp = await client.get(f"/admin/jeepneys/{jeepney['id']}", headers=admin_headers)
    assert resp.json()["data"]["plate_number"] == "ABC 1234"

    resp = await client.patch(
        f"/admin/jeepneys/{jeepney['id']}", json={"status": "maintenance", "capacity": 20}, headers=admin_headers
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "maintenance"
    assert resp.json()["data"]["capacity"] == 20

    resp = await client.delete(f"/admin/jeepneys/{jeepney['id']}", headers=admin_headers)
    assert resp.status_code == 200
    resp = await client.get(f"/admin/jeepneys/{jeepney['id']}", headers=admin_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_jeepney_numbers_are_unique(client, admin_headers):
    assert (await client.post("/admin/jeepneys", json=_jeepney(), headers=admin_headers)).status_code == 201

    resp = await client.post("/admin/jeepneys", json=_jeepney(plate_number="XYZ 9876"), headers=admin_headers)
    assert resp.status_code == 409
    assert resp.json()["error"]["message"] == "Jeepney number already exists"

    resp = await client.post("/admin/jeepneys", json=_jeepney(jeepney_number="LKB-002"), headers=admin_headers)
    assert resp.status_code == 409
    assert resp.json()["error"]["message"] == "Plate number already exists"


@pytest.mark.asyncio
async def test_jeepney_field_rules(client, admin_headers):
    resp = await client.post("/admin/jeepneys", json=_jeepney(capacity=0), headers=admin_headers)
    assert resp.status_code == 400

    resp = await client.post("/admin/jeepneys", json=_jeepney(status="parked"), headers=admin_headers)
    assert resp.status_code == 400

    resp = await client.post("/admin/jeepneys", json=_jeepney(route_id=404), headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["fields"] == {"route_id": "Route not found"}


@pytest.mark.asyncio
async def test_driver_has_one_active_jeepney(client, admin_headers):
    driver_id = await _driver(client, admin_headers)
    resp = await client.post("/admin/jeepneys", json=_jeepney(driver_id=driver_id), headers=admin_headers)
    assert resp.status_code == 201

    second = _jeepney(jeepney_number="LKB-002", plate_number="XYZ 9876", driver_id=driver_id)
    resp = await client.post("/admin/jeepneys", json=second, headers=admin_headers)
    assert resp.status_code == 409

    # an inactive jeepney may still name the driver
    resp = await client.post("/admin/jeepneys", json={**second, "status": "inactive"}, headers=admin_headers)
    assert resp.status_code == 201
    resp = await client.patch(
        f"/admin/jeepneys/{resp.json()['data']['id']}", json={"status": "active"}, headers=admin_headers
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_list_jeepneys_filters(client, admin_headers):
    await client.post("/admin/jeepneys", json=_jeepney(), headers=admin_headers)
    await client.post(
        "/admin/jeepneys",
        json=_jeepney(jeepney_number="LKB-002", plate_number="XYZ 9876", status="maintenance"),
        headers=admin_headers,
    )

    resp = await client.get("/admin/jeepneys", headers=admin_headers)
    assert resp.json()["data"]["pagination"]["total"] == 2

    resp = await client.get("/admin/jeepneys", params={"status": "maintenance"}, headers=admin_headers)
    assert [j["jeepney_number"] for j in resp.json()["data"]["jeepneys"]] == ["LKB-002"]

    resp = await client.get("/admin/jeepneys", params={"search": "ABC"}, headers=admin_headers)
    assert [j["jeepney_number"] for j in resp.json()["data"]["jeepneys"]] == ["LKB-001"]


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["jeepney_number", "plate_number"])
async def test_whitespace_only_names_are_rejected(client, admin_headers, field):
    resp = await client.post("/admin/jeepneys", json=_jeepney(**{field: "   "}), headers=admin_headers)
    assert resp.status_code == 400
    assert field in resp.json()["error"]["fields"]


@pytest.mark.asyncio
async def test_jeepney_names_are_trimmed(client, admin_headers):
    resp = await client.post(
        "/admin/jeepneys", json=_jeepney(jeepney_number=" LKB-001 ", plate_number=" ABC 1234"), headers=admin_headers
    )
    assert resp.status_code == 201
    assert resp.json()["data"]["jeepney_number"] == "LKB-001"
    assert resp.json()["data"]["plate_number"] == "ABC 1234"


@pytest.mark.asyncio
@pytest.mark.parametrize("body, field", [
    ({"plate_number": None}, "plate_number"),
    ({"plate_number": "  "}, "plate_number"),
    ({"capacity": None}, "capacity"),
    ({"status": None}, "status"),
])
async def test_update_rejects_null_required_columns(client, admin_headers, body, field):
    jeepney_id = (await client.post("/admin/jeepneys", json=_jeepney(), headers=admin_headers)).json()["data"]["id"]

    resp = await client.patch(f"/admin/jeepneys/{jeepney_id}", json=body, headers=admin_headers)
    assert resp.status_code == 400
    assert field in resp.json()["error"]["fields"]

    resp = await client.get(f"/admin/jeepneys/{jeepney_id}", headers=admin_headers)
    assert resp.json()["data"]["plate_number"] == "ABC 1234"


@pytest.mark.asyncio
async def test_unassign_driver(client, admin_headers):
    driver_id = await _driver(client, admin_headers)
    jeepney_id = (await client.post(
        "/admin/jeepneys", json=_jeepney(driver_id=driver_id), headers=admin_headers
    )).json()["data"]["id"]

    resp = await client.post(f"/admin/jeepneys/{jeepney_id}/unassign-driver", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["unassigned_driver"] == {
        "driver_id": driver_id,
        "driver_name": "Mang Driver1",
        "jeepney_number": "LKB-001",
    }
    resp = await client.get(f"/admin/jeepneys/{jeepney_id}", headers=admin_headers)
    assert resp.json()["data"]["driver_id"] is None

    resp = await client.post(f"/admin/jeepneys/{jeepney_id}/unassign-driver", headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["fields"] == {"driver_id": "No driver assigned to this jeepney"}

    resp = await client.post("/admin/jeepneys/999/unassign-driver", headers=admin_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_reassign_driver(client, admin_headers):
    driver_id = await _driver(client, admin_headers)
    other_driver = await _driver(client, admin_headers, n=2)
    source = (await client.post(
        "/admin/jeepneys", json=_jeepney(driver_id=driver_id), headers=admin_headers
    )).json()["data"]["id"]
    target = (await client.post(
        "/admin/jeepneys", json=_jeepney(jeepney_number="LKB-002", plate_number="XYZ 9876"), headers=admin_headers
    )).json()["data"]["id"]
    taken = (await client.post(
        "/admin/jeepneys",
        json=_jeepney(jeepney_number="LKB-003", plate_number="JKL 5555", driver_id=other_driver),
        headers=admin_headers,
    )).json()["data"]["id"]

    def move(src, dst, drv):
        body = {"from_jeepney_id": src, "to_jeepney_id": dst, "driver_id": drv}
        return client.post("/admin/jeepneys/reassign-driver", json=body, headers=admin_headers)

    resp = await move(source, taken, driver_id)
    assert resp.status_code == 409
    assert resp.json()["error"]["message"] == "Destination jeepney already has a driver assigned"

    resp = await move(source, target, other_driver)
    assert resp.status_code == 400

    resp = await move(999, target, driver_id)
    assert resp.status_code == 404
    assert resp.json()["error"]["message"] == "Source jeepney not found"
    resp = await move(source, 999, driver_id)
    assert resp.status_code == 404
    assert resp.json()["error"]["message"] == "Destination jeepney not found"

    resp = await move(source, target, driver_id)
    assert resp.status_code == 200
    assert resp.json()["data"]["driver_id"] == driver_id

    resp = await client.get(f"/admin/jeepneys/{source}", headers=admin_headers)
    assert resp.json()["data"]["driver_id"] is None
    resp = await client.get(f"/admin/jeepneys/{target}", headers=admin_headers)
    assert resp.json()["data"]["driver_id"] == driver_id
