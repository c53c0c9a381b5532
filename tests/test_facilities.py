"""
Tests for the facility catalogue: CRUD, search and the availability probe.
"""

import pytest
from httpx import AsyncClient

FACILITY = {
    "name": "Auditorium North",
    "type": "AUDITORIUM",
    "capacity": 250,
    "location": "North Campus, Block C",
    "building": "Block C",
    "floor": "G",
    "amenities": ["Stage", "PA System", "Stage"],
    "status": "ACTIVE",
    "availability_windows": [
        {"day_of_week": "MONDAY", "start_time": "08:00", "end_time": "12:00"},
        {"day_of_week": "FRIDAY", "start_time": "13:00", "end_time": "18:00"},
    ],
}


@pytest.mark.asyncio
async def test_admin_creates_facility(client: AsyncClient, admin_headers, admin_user):
    response = await client.post("/api/v1/facilities/", json=FACILITY, headers=admin_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["amenities"] == ["Stage", "PA System"]
    assert [w["day_of_week"] for w in data["availability_windows"]] == ["MONDAY", "FRIDAY"]
    assert data["created_by"] == admin_user.id


@pytest.mark.asyncio
async def test_user_cannot_manage_facilities(client: AsyncClient, auth_headers, test_facility):
    assert (await client.post("/api/v1/facilities/", json=FACILITY, headers=auth_headers)).status_code == 403
    assert (
        await client.put(f"/api/v1/facilities/{test_facility.id}", json=FACILITY, headers=auth_headers)
    ).status_code == 403
    assert (await client.delete(f"/api/v1/facilities/{test_facility.id}", headers=auth_headers)).status_code == 403


@pytest.mark.asyncio
async def test_invalid_facility_payloads(client: AsyncClient, admin_headers):
    negative = await client.post("/api/v1/facilities/", json={**FACILITY, "capacity": -1}, headers=admin_headers)
    assert negative.status_code == 422

    inverted = {
        **FACILITY,
        "availability_windows": [{"day_of_week": "MONDAY", "start_time": "12:00", "end_time": "08:00"}],
    }
    assert (await client.post("/api/v1/facilities/", json=inverted, headers=admin_headers)).status_code == 422

    offset = {
        **FACILITY,
        "availability_windows": [{"day_of_week": "MONDAY", "start_time": "09:00+02:00", "end_time": "17:00+02:00"}],
    }
    assert (await client.post("/api/v1/facilities/", json=offset, headers=admin_headers)).status_code == 422


@pytest.mark.asyncio
async def test_update_replaces_windows(client: AsyncClient, admin_headers):
    created = (await client.post("/api/v1/facilities/", json=FACILITY, headers=admin_headers)).json()

    update = {
        **FACILITY,
        "status": "UNDER_MAINTENANCE",
        "availability_windows": [{"day_of_week": "TUESDAY", "start_time": "09:00", "end_time": "10:00"}],
    }
    response = await client.put(f"/api/v1/facilities/{created['id']}", json=update, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "UNDER_MAINTENANCE"
    assert [w["day_of_week"] for w in response.json()["availability_windows"]] == ["TUESDAY"]


@pytest.mark.asyncio
async def test_get_and_delete(client: AsyncClient, auth_headers, admin_headers, test_facility):
    got = await client.get(f"/api/v1/facilities/{test_facility.id}", headers=auth_headers)
    assert got.status_code == 200
    assert got.json()["name"] == "Lab A"

    assert (await client.delete(f"/api/v1/facilities/{test_facility.id}", headers=admin_headers)).status_code == 204
    assert (await client.get(f"/api/v1/facilities/{test_facility.id}", headers=auth_headers)).status_code == 404


@pytest.mark.asyncio
async def test_list_requires_authentication(client: AsyncClient, test_facility):
    assert (await client.get("/api/v1/facilities/")).status_code == 401


@pytest.mark.asyncio
async def test_search_filters_combine(client: AsyncClient, auth_headers, admin_headers, test_facility, weekday_facility):
    await client.post("/api/v1/facilities/", json=FACILITY, headers=admin_headers)

    everything = await client.get("/api/v1/facilities/", headers=auth_headers)
    assert [f["name"] for f in everything.json()] == ["Auditorium North", "Lab A", "Meeting Room 1"]

    by_type = await client.get("/api/v1/facilities/search?type=LAB", headers=auth_headers)
    assert [f["name"] for f in by_type.json()] == ["Lab A"]

    by_location = await client.get("/api/v1/facilities/search?location=north", headers=auth_headers)
    assert [f["name"] for f in by_location.json()] == ["Auditorium North"]

    big = await client.get("/api/v1/facilities/search?min_capacity=20&status=ACTIVE", headers=auth_headers)
    assert [f["name"] for f in big.json()] == ["Auditorium North", "Lab A"]

    none = await client.get("/api/v1/facilities/search?type=LAB&location=library", headers=auth_headers)
    assert none.json() == []


@pytest.mark.asyncio
async def test_availability_probe(client: AsyncClient, auth_headers, test_facility):
    url = f"/api/v1/facilities/{test_facility.id}/availability"
    params = {"date": "2030-01-07", "start_time": "10:00", "end_time": "11:00"}

    free = await client.get(url, params=params, headers=auth_headers)
    assert free.json() == {
        "facility_id": test_facility.id, "available": True, "reason": None, "conflicting_booking": None,
    }

    booking = await client.post(
        "/api/v1/bookings/",
        json={"facility_id": test_facility.id, "date": "2030-01-07", "start_time": "10:30",
              "end_time": "11:30", "purpose": "Lab session", "expected_attendees": 10},
        headers=auth_headers,
    )
    taken = await client.get(url, params=params, headers=auth_headers)
    assert taken.json()["available"] is False
    assert taken.json()["reason"] == "BOOKING_OVERLAP"
    assert taken.json()["conflicting_booking"]["id"] == booking.json()["id"]


@pytest.mark.asyncio
async def test_availability_probe_rejects_utc_offset(client: AsyncClient, auth_headers, weekday_facility):
    url = f"/api/v1/facilities/{weekday_facility.id}/availability"
    params = {"date": "2030-01-07", "start_time": "10:00:00+02:00", "end_time": "11:00:00+02:00"}
    response = await client.get(url, params=params, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "VALIDATION_ERROR"
