import logging
import os

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING

logger = logging.getLogger(__name__)

MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
MONGODB_DB = os.getenv("MONGODB_DB", "stayfinder")


def get_client() -> AsyncIOMotorClient:
    return AsyncIOMotorClient(MONGODB_URL, tz_aware=False)


async def ensure_indexes(db):
    """Create the indexes the API relies on.

    The unique (listing_id, night) index on ``booking_nights`` is what keeps two
    active bookings from holding the same night of a listing.
    """
    await db["users"].create_index([("email", ASCENDING)], unique=True)
    await db["listings"].create_index([("host_id", ASCENDING)])
    await db["bookings"].create_index([("listing_id", ASCENDING), ("status", ASCENDING)])
    await db["bookings"].create_index([("user_id", ASCENDING)])
    await db["booking_nights"].create_index(
        [("listing_id", ASCENDING), ("night", ASCENDING)], unique=True
    )
    await db["booking_nights"].create_index([("booking_id", ASCENDING)])
    logger.info("MongoDB indexes ensured")
