import pytest


async def _driver(client, admin_headers, n, first="Mang", last=None, verified=True, phone="09171234567"):
    form = {
        "username": f"driver{n}",
        "email": f"driver{n}@example.com",
        "password": "Secret123",
        "first_name": first,
        "last_name": last or f"Driver{n}",
        "phone_number": phone,
        "birthday": "1980-02-29",
        "house_number": "1",
        "street_name": "Aguinaldo Hwy",
        "barangay": "Pabahay",
        "city_municipality": "Dasmarinas",
        "province": "Cavite",
        "postal_code": "4114",
        "user_type": "driver",
        "drivers_license_path": f"uploads/license{n}.jpg",
    }
    resp = await client.post("/admin/users", json=form, headers=admin_headers)
    assert resp.status_code == 201
    driver_id = resp.json()["data"]["id"]
    if verified:
        resp = await client.patch(f"/admin/users/{driver_id}/verify", json={"is_verified": True}, headers=admin_headers)
        assert resp.status_code == 200
    return driver_id


@pytest.mark.asyncio
async def test_drivers_require_admin(client, passenger_headers):
    assert (await client.get("/admin/drivers")).status_code == 401
    assert (await client.get("/admin/drivers", headers=passenger_headers("auth0|p1"))).status_code == 403


@pytest.mark.asyncio
async def test_list_and_get_drivers(client, admin_headers):
    second = await _driver(client, admin_headers, 2, first="Pedro")
    first = await _driver(client, admin_headers, 1, first="Andres", verified=False)
    passenger = (await client.post(
        "/admin/users",
        json={"username": "pax", "email": "pax@example.com", "password": "Secret123", "user_type": "passenger",
              "first_name": "P", "last_name": "X", "phone_number": "09171234567", "birthday": "1990-01-01",
              "house_number": "1", "street_name": "S", "barangay": "B", "city_municipality": "C",
              "province": "P", "postal_code": "4114"},
        headers=admin_headers,
    )).json()["data"]["id"]

    resp = await client.get("/admin/drivers", params={"limit": 1}, headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["pagination"]["total"] == 2
    assert [d["id"] for d in data["drivers"]] == [first]

    resp = await client.get("/admin/drivers", params={"page": 2, "limit": 1}, headers=admin_headers)
    assert [d["id"] for d in resp.json()["data"]["drivers"]] == [second]

    resp = await client.get(f"/admin/drivers/{second}", headers=admin_headers)
    driver = resp.json()["data"]
    assert driver["name"] == "Pedro Driver2"
    assert driver["license_path"] == "uploads/license2.jpg"
    assert driver["license_verified"] is True
    assert driver["is_verified"] is True
    assert driver["jeepneys"] == []

    resp = await client.get(f"/admin/drivers/{passenger}", headers=admin_headers)
    assert resp.status_code == 404
    resp = await client.get("/admin/drivers/999", headers=admin_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_search_verified_drivers(client, admin_headers):
    await _driver(client, admin_headers, 1, first="Jose", last="Rizal")
    await _driver(client, admin_headers, 2, first="Jose", last="Unverified", verified=False)
    await _driver(client, admin_headers, 3, first="Andres", last="Bonifacio", phone="09181112222")

    resp = await client.get("/admin/drivers/search", params={"q": "jose riz"}, headers=admin_headers)
    assert [d["name"] for d in resp.json()["data"]["drivers"]] == ["Jose Rizal"]

    resp = await client.get("/admin/drivers/search", params={"q": "0918111"}, headers=admin_headers)
    assert [d["name"] for d in resp.json()["data"]["drivers"]] == ["Andres Bonifacio"]

    resp = await client.get("/admin/drivers/search", params={"q": "driver3@"}, headers=admin_headers)
    assert resp.json()["data"]["count"] == 1

    resp = await client.get("/admin/drivers/search", params={"limit": 1}, headers=admin_headers)
    assert resp.json()["data"]["count"] == 1


@pytest.mark.asyncio
async def test_available_drivers_have_no_jeepney(client, admin_headers):
    busy = await _driver(client, admin_headers, 1)
    parked = await _driver(client, admin_headers, 2)
    free = await _driver(client, admin_headers, 3)
    await _driver(client, admin_headers, 4, verified=False)

    await client.post(
        "/admin/jeepneys", json={"jeepney_number": "LKB-001", "plate_number": "ABC 1234", "driver_id": busy},
        headers=admin_headers,
    )
    await client.post(
        "/admin/jeepneys",
        json={"jeepney_number": "LKB-002", "plate_number": "XYZ 9876", "driver_id": parked, "status": "inactive"},
        headers=admin_headers,
    )

    resp = await client.get("/admin/drivers/available", headers=admin_headers)
    assert resp.status_code == 200
    assert [d["id"] for d in resp.json()["data"]["drivers"]] == [free]

    resp = await client.get(f"/admin/drivers/{busy}", headers=admin_headers)
    assert resp.json()["data"]["jeepneys"] == ["LKB-001"]
