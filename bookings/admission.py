# bookings/admission.py

"""
Booking admission check.

Decides whether a requested stay may be booked and, if so, writes it. The
checks run in a fixed order and each failure raises its own ``BookingError``:

    1. required fields present            -> MissingFields
    2. dates parse                        -> InvalidDate
    3. check-in is not before today       -> PastCheckIn
    4. check-out is after check-in        -> InvalidRange
       and no longer than MAX_STAY_NIGHTS -> StayTooLong
    5. guest count is >= 1                -> InvalidGuestCount
       listing exists                     -> ListingNotFound
    6. guests fit the listing             -> GuestLimitExceeded
    7. no active booking overlaps         -> DatesUnavailable

Step 7 is checked twice. A read against ``bookings`` rejects obvious
conflicts early, then every night of the stay is claimed in
``booking_nights``, whose unique (listing_id, night) index makes the claim
fail for the loser of a race between two overlapping requests. The booking
document is only inserted once all its nights are held.

Dates are handled as calendar dates and stored as naive midnight (UTC)
datetimes, so time of day never takes part in an overlap comparison.
"""
import logging
import os
from datetime import date, datetime, timedelta
from typing import List, Optional
from zoneinfo import ZoneInfo

from bson import ObjectId
from pymongo.errors import AutoReconnect, BulkWriteError, DuplicateKeyError, PyMongoError

from bookings.errors import (
    DatesUnavailable,
    GuestLimitExceeded,
    InvalidDate,
    InvalidGuestCount,
    InvalidRange,
    ListingNotFound,
    MissingFields,
    PastCheckIn,
    StayTooLong,
    StorageError,
)
from bookings.pricing import DEFAULT_PRICING, PricingStrategy

logger = logging.getLogger(__name__)

REFERENCE_TZ = ZoneInfo(os.getenv("BOOKING_TIMEZONE", "UTC"))

ACTIVE_STATUSES = ("pending", "confirmed")

MAX_STAY_NIGHTS = int(os.getenv("MAX_STAY_NIGHTS", "365"))
DUPLICATE_KEY = 11000


# --- Calendar helpers ---

def today_in_reference_zone() -> date:
    return datetime.now(REFERENCE_TZ).date()


def get_today() -> date:
    """FastAPI dependency for "today" in the server's reference time zone."""
    return today_in_reference_zone()


def to_storage(day: date) -> datetime:
    return datetime(day.year, day.month, day.day)


def from_storage(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_stay_date(value)


def parse_stay_date(value) -> date:
    """Parse a check-in/check-out value into a calendar date.

    Accepts ``date``/``datetime`` objects, ``YYYY-MM-DD`` strings and full ISO
    datetimes. Timezone-aware datetimes are moved to the reference zone before
    the time of day is dropped.
    """
    if isinstance(value, datetime):
        return _calendar_date(value)
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidDate()
    text = value.strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        return _calendar_date(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        raise InvalidDate()


def _calendar_date(value: datetime) -> date:
    if value.tzinfo is not None:
        value = value.astimezone(REFERENCE_TZ)
    return value.date()


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Half-open ranges [start, end) intersect; touching ranges do not."""
    return a_start < b_end and a_end > b_start


def stay_nights(check_in: date, check_out: date) -> List[date]:
    return [check_in + timedelta(days=n) for n in range((check_out - check_in).days)]


# --- Validation (steps 1-4) ---

def validate_stay(listing_id, check_in, check_out, guests, today: date):
    """Run the input checks that need no storage access.

    Returns the parsed ``(check_in, check_out, guests)``.
    """
    if listing_id in (None, "") or check_in in (None, "") or check_out in (None, "") or guests is None:
        raise MissingFields()

    check_in_date = parse_stay_date(check_in)
    check_out_date = parse_stay_date(check_out)

    if check_in_date < today:
        raise PastCheckIn()
    if check_out_date <= check_in_date:
        raise InvalidRange()
    if (check_out_date - check_in_date).days > MAX_STAY_NIGHTS:
        raise StayTooLong(f"Stays cannot be longer than {MAX_STAY_NIGHTS} nights")

    if isinstance(guests, bool) or not isinstance(guests, int) or guests < 1:
        raise InvalidGuestCount()

    return check_in_date, check_out_date, guests


# --- Storage access ---

async def retry_read(operation, *args, **kwargs):
    """Run a read, retrying exactly once after a transient storage error."""
    try:
        return await operation(*args, **kwargs)
    except AutoReconnect as exc:
        logger.warning("Transient storage error during read (%s), retrying once", exc)
        return await operation(*args, **kwargs)


async def find_listing(db, listing_id: str) -> dict:
    if not ObjectId.is_valid(listing_id):
        raise ListingNotFound()
    listing = await retry_read(db["listings"].find_one, {"_id": ObjectId(listing_id)})
    if not listing:
        raise ListingNotFound()
    return listing


async def find_conflicting_booking(db, listing_id: str, check_in: date, check_out: date) -> Optional[dict]:
    query = {
        "listing_id": listing_id,
        "status": {"$in": list(ACTIVE_STATUSES)},
        "check_in": {"$lt": to_storage(check_out)},
        "check_out": {"$gt": to_storage(check_in)},
    }
    return await retry_read(db["bookings"].find_one, query)


async def claim_nights(db, listing_id: str, booking_id: ObjectId, check_in: date, check_out: date):
    """Reserve every night of the stay, or none of them.

    Raises ``DatesUnavailable`` when another booking already holds one of the
    nights.
    """
    claims = [
        {"listing_id": listing_id, "night": to_storage(night), "booking_id": booking_id}
        for night in stay_nights(check_in, check_out)
    ]
    try:
        await db["booking_nights"].insert_many(claims, ordered=True)
    except DuplicateKeyError:
        await _release_after_failure(db, booking_id)
        raise DatesUnavailable()
    except BulkWriteError as exc:
        await _release_after_failure(db, booking_id)
        if _only_duplicate_keys(exc):
            raise DatesUnavailable()
        logger.error("Failed to claim nights for listing %s: %s", listing_id, exc.details)
        raise StorageError()
    except PyMongoError:
        logger.exception("Failed to claim nights for listing %s", listing_id)
        await _release_after_failure(db, booking_id)
        raise StorageError()


def _only_duplicate_keys(exc: BulkWriteError) -> bool:
    errors = (exc.details or {}).get("writeErrors", [])
    return bool(errors) and all(error.get("code") == DUPLICATE_KEY for error in errors)


async def release_nights(db, booking_id: ObjectId) -> int:
    result = await db["booking_nights"].delete_many({"booking_id": booking_id})
    return result.deleted_count


async def _release_after_failure(db, booking_id: ObjectId):
    try:
        await release_nights(db, booking_id)
    except PyMongoError:
        logger.exception("Could not release night claims of booking %s", booking_id)


# --- Admission ---

async def admit_booking(
    db,
    *,
    user_id: str,
    listing_id,
    check_in,
    check_out,
    guests,
    today: date,
    add_ons: Optional[dict] = None,
    special_requests: Optional[str] = None,
    client_total_price: Optional[float] = None,
    client_total_nights: Optional[int] = None,
    pricing: PricingStrategy = DEFAULT_PRICING,
) -> dict:
    """Validate a stay request and store it as a ``pending`` booking.

    Returns the inserted booking document.
    """
    check_in_date, check_out_date, guests = validate_stay(listing_id, check_in, check_out, guests, today)

    listing = await find_listing(db, listing_id)
    if guests > listing["max_guests"]:
        raise GuestLimitExceeded(f"Maximum {listing['max_guests']} guests allowed")

    conflict = await find_conflicting_booking(db, listing_id, check_in_date, check_out_date)
    if conflict:
        raise DatesUnavailable()

    nights = (check_out_date - check_in_date).days
    add_ons = add_ons or {}
    quote = pricing.quote(listing, nights, guests, add_ons)
    if client_total_price is not None and client_total_price != quote.total_price:
        logger.debug(
            "Ignoring client total %.2f for listing %s, server total is %.2f",
            client_total_price, listing_id, quote.total_price,
        )
    if client_total_nights is not None and client_total_nights != nights:
        logger.debug("Ignoring client night count %s, server count is %s", client_total_nights, nights)

    booking_id = ObjectId()
    await claim_nights(db, listing_id, booking_id, check_in_date, check_out_date)

    now = datetime.utcnow()
    booking_doc = {
        "_id": booking_id,
        "user_id": user_id,
        "listing_id": listing_id,
        "check_in": to_storage(check_in_date),
        "check_out": to_storage(check_out_date),
        "guests": guests,
        "total_nights": nights,
        "total_price": quote.total_price,
        "price_breakdown": quote.as_breakdown(),
        "add_ons": add_ons,
        "special_requests": special_requests.strip() if special_requests else None,
        "status": "pending",
        "created_at": now,
        "updated_at": now,
    }
    try:
        await db["bookings"].insert_one(booking_doc)
    except PyMongoError:
        logger.exception("Failed to insert booking for listing %s", listing_id)
        await _release_after_failure(db, booking_id)
        raise StorageError()

    logger.info(
        "Booking %s admitted for listing %s (%s to %s, %d nights)",
        booking_id, listing_id, check_in_date, check_out_date, nights,
    )
    return booking_doc
