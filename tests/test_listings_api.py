"""Integration tests for listing CRUD, search and availability."""

from bson import ObjectId

from conftest import PNG_IMAGE, make_listing


def listing_payload(**overrides):
    body = {
        "title": "Sea view apartment",
        "description": "Two rooms by the beach.",
        "location": "Porto",
        "price": 85,
        "max_guests": 3,
        "bedrooms": 1,
        "has_bathroom": True,
        "type": "apartment",
        "amenities": ["wifi", "wifi", " balcony "],
        "image": PNG_IMAGE,
    }
    body.update(overrides)
    return body


async def test_host_creates_listing(client, host):
    response = await client.post("/api/listings/", json=listing_payload(), headers=host["headers"])

    assert response.status_code == 201, response.json()
    data = response.json()
    assert data["host_id"] == host["id"]
    assert data["amenities"] == ["wifi", "balcony"]
    fetched = await client.get(f"/api/listings/{data['_id']}")
    assert fetched.json()["title"] == "Sea view apartment"


async def test_plain_user_cannot_create_listing(client, guest):
    response = await client.post("/api/listings/", json=listing_payload(), headers=guest["headers"])
    assert response.status_code == 403


async def test_listing_validation(client, host):
    for overrides in (
        {"image": "https://example.com/cat.png"},
        {"image": "data:image/png;base64,***"},
        {"image": "data:image/bmp;base64,iVBORw0KGgo="},
        {"max_guests": 0},
        {"price": -5},
        {"type": "castle"},
    ):
        response = await client.post("/api/listings/", json=listing_payload(**overrides), headers=host["headers"])
        assert response.status_code == 422, overrides


async def test_search_filters(client, db, host):
    await make_listing(db, host["id"], price=50, max_guests=2, location="Lisbon", type="apartment", bedrooms=1)
    await make_listing(db, host["id"], price=150, max_guests=6, location="Lisbon Old Town", type="house", bedrooms=3)
    await make_listing(db, host["id"], price=90, max_guests=4, location="Porto", type="hotel", bedrooms=1)

    async def search(**params):
        response = await client.get("/api/listings/", params=params)
        assert response.status_code == 200
        return sorted(item["price"] for item in response.json())

    assert await search() == [50, 90, 150]
    assert await search(location="lisbon") == [50, 150]
    assert await search(min_price=60, max_price=160) == [90, 150]
    assert await search(type="hotel") == [90]
    assert await search(bedrooms=1) == [50, 90]
    assert await search(guests=4) == [90, 150]
    assert await search(location="lisbon", guests=3) == [150]


async def test_get_missing_listing(client):
    assert (await client.get(f"/api/listings/{ObjectId()}")).status_code == 404
    assert (await client.get("/api/listings/nope")).status_code == 404


async def test_my_listings(client, db, host, guest):
    await make_listing(db, host["id"])
    await make_listing(db, str(ObjectId()))

    response = await client.get("/api/listings/mine", headers=host["headers"])
    assert [item["host_id"] for item in response.json()] == [host["id"]]


async def test_owner_updates_listing_but_not_its_host(client, host, listing_id):
    response = await client.put(
        f"/api/listings/{listing_id}",
        json={"price": 130, "host_id": "someone-else"},
        headers=host["headers"],
    )
    assert response.status_code == 200
    assert response.json()["price"] == 130
    assert response.json()["host_id"] == host["id"]


async def test_non_owner_cannot_update_or_delete(client, guest, listing_id):
    update = await client.put(f"/api/listings/{listing_id}", json={"price": 1}, headers=guest["headers"])
    delete = await client.delete(f"/api/listings/{listing_id}", headers=guest["headers"])
    assert update.status_code == delete.status_code == 403


async def test_owner_deletes_listing(client, host, listing_id):
    response = await client.delete(f"/api/listings/{listing_id}", headers=host["headers"])
    assert response.status_code == 200
    assert (await client.get(f"/api/listings/{listing_id}")).status_code == 404


async def test_availability(client, guest, listing_id):
    await client.post(
        "/api/bookings/",
        json={"listing_id": listing_id, "check_in": "2025-06-02", "check_out": "2025-06-04", "guests": 2},
        headers=guest["headers"],
    )

    response = await client.get(
        f"/api/listings/{listing_id}/availability", params={"check_in": "2025-06-01", "check_out": "2025-06-05"}
    )
    data = response.json()
    assert data["booked"] == [{"check_in": "2025-06-02", "check_out": "2025-06-04", "status": "pending"}]
    assert [item["available"] for item in data["days"]] == [True, False, False, True]


async def test_availability_rejects_bad_window(client, listing_id):
    url = f"/api/listings/{listing_id}/availability"
    inverted = await client.get(url, params={"check_in": "2025-06-05", "check_out": "2025-06-01"})
    too_long = await client.get(url, params={"check_in": "2025-01-01", "check_out": "2026-06-01"})
    assert inverted.status_code == too_long.status_code == 400
