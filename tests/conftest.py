from datetime import date, datetime

import pytest_asyncio
from bson import ObjectId
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from auth.jwt_handler import create_access_token
from bookings.admission import get_today
from database.connection import ensure_indexes
from main import app

TODAY = date(2025, 5, 20)
PNG_IMAGE = "data:image/png;base64,iVBORw0KGgo="


@pytest_asyncio.fixture
async def db():
    database = AsyncMongoMockClient()[f"stayfinder_test_{ObjectId()}"]
    await ensure_indexes(database)
    return database


@pytest_asyncio.fixture
async def client(db):
    app.mongodb = db
    app.dependency_overrides[get_today] = lambda: TODAY
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def set_today(day: date):
    app.dependency_overrides[get_today] = lambda: day


async def make_user(db, name: str, role: str = "user") -> dict:
    result = await db["users"].insert_one({
        "name": name,
        "email": f"{name.lower().replace(' ', '.')}@example.com",
        "password": None,
        "role": role,
        "created_at": datetime.utcnow(),
    })
    user_id = str(result.inserted_id)
    token = create_access_token({"sub": user_id}, user_type=role)
    return {"id": user_id, "headers": {"Authorization": f"Bearer {token}"}}


async def make_listing(db, host_id: str, price: float = 100.0, max_guests: int = 4, **extra) -> str:
    doc = {
        "title": "Riverside cabin",
        "description": "Quiet cabin by the river.",
        "location": "Lisbon",
        "price": price,
        "max_guests": max_guests,
        "bedrooms": 2,
        "has_bathroom": True,
        "type": "house",
        "amenities": ["wifi", "kitchen"],
        "image": PNG_IMAGE,
        "host_id": host_id,
        "created_at": datetime.utcnow(),
        "updated_at": datetime.utcnow(),
    }
    doc.update(extra)
    result = await db["listings"].insert_one(doc)
    return str(result.inserted_id)


@pytest_asyncio.fixture
async def host(db):
    return await make_user(db, "Hana Host", role="host")


@pytest_asyncio.fixture
async def guest(db):
    return await make_user(db, "Gil Guest")


@pytest_asyncio.fixture
async def stranger(db):
    return await make_user(db, "Sam Stranger")


@pytest_asyncio.fixture
async def listing_id(db, host):
    return await make_listing(db, host["id"], price=100.0, max_guests=4)
