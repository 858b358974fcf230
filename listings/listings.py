# listings.py

from fastapi import APIRouter, HTTPException, Request, Depends, Query
from pydantic import BaseModel
from bson import ObjectId
from datetime import date, datetime
from typing import List, Optional
import logging
import re

from models.listing import ListingCreate, ListingUpdate, ListingResponse, PropertyType
from models.user import User
from users.users import get_current_host, get_current_user
from bookings.admission import ACTIVE_STATUSES, from_storage, parse_stay_date, to_storage, stay_nights
from bookings.errors import BookingError, InvalidRange

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/listings", tags=["listings"])

MAX_AVAILABILITY_DAYS = 366

# --- Pydantic Models ---

class BookedRange(BaseModel):
    check_in: date
    check_out: date
    status: str

class DayAvailability(BaseModel):
    day: date
    available: bool

class AvailabilityResponse(BaseModel):
    listing_id: str
    booked: List[BookedRange]
    days: List[DayAvailability]

# --- Helpers ---

def serialize_listing(listing: dict) -> dict:
    listing["_id"] = str(listing["_id"])
    return listing

async def get_listing_or_404(request: Request, listing_id: str) -> dict:
    if not ObjectId.is_valid(listing_id):
        raise HTTPException(status_code=404, detail="Listing not found")
    listing = await request.app.mongodb["listings"].find_one({"_id": ObjectId(listing_id)})
    if not listing:
        raise HTTPException(status_code=404, detail="Listing not found")
    return listing

async def get_owned_listing(request: Request, listing_id: str, current_user: User) -> dict:
    listing = await get_listing_or_404(request, listing_id)
    if listing.get("host_id") != current_user.id:
        raise HTTPException(status_code=403, detail="Not authorized to modify this listing")
    return listing

# --- Endpoints ---

@router.get("/", response_model=List[ListingResponse])
async def search_listings(
    request: Request,
    location: Optional[str] = None,
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    type: Optional[PropertyType] = None,
    bedrooms: Optional[int] = Query(None, ge=0),
    guests: Optional[int] = Query(None, ge=1),
):
    """Searches listings. Every filter is optional and they combine with AND."""
    query = {}
    if location:
        query["location"] = {"$regex": re.escape(location), "$options": "i"}
    if min_price is not None or max_price is not None:
        query["price"] = {}
        if min_price is not None:
            query["price"]["$gte"] = min_price
        if max_price is not None:
            query["price"]["$lte"] = max_price
    if type:
        query["type"] = type
    if bedrooms is not None:
        query["bedrooms"] = bedrooms
    if guests is not None:
        query["max_guests"] = {"$gte": guests}

    listings = await request.app.mongodb["listings"].find(query).sort("created_at", -1).to_list(length=100)
    return [serialize_listing(listing) for listing in listings]

@router.get("/mine", response_model=List[ListingResponse])
async def get_my_listings(request: Request, current_user: User = Depends(get_current_host)):
    listings = await request.app.mongodb["listings"].find(
        {"host_id": current_user.id}
    ).sort("created_at", -1).to_list(length=None)
    return [serialize_listing(listing) for listing in listings]

@router.get("/{listing_id}", response_model=ListingResponse)
async def get_listing(listing_id: str, request: Request):
    return serialize_listing(await get_listing_or_404(request, listing_id))

@router.get("/{listing_id}/availability", response_model=AvailabilityResponse)
async def get_availability(listing_id: str, check_in: str, check_out: str, request: Request):
    """Lists the active bookings inside a window and marks each night free or taken."""
    await get_listing_or_404(request, listing_id)
    try:
        start = parse_stay_date(check_in)
        end = parse_stay_date(check_out)
        if end <= start:
            raise InvalidRange()
        if (end - start).days > MAX_AVAILABILITY_DAYS:
            raise BookingError(f"Availability window cannot exceed {MAX_AVAILABILITY_DAYS} days")
    except BookingError as e:
        raise HTTPException(status_code=400, detail=e.message)

    bookings = await request.app.mongodb["bookings"].find({
        "listing_id": listing_id,
        "status": {"$in": list(ACTIVE_STATUSES)},
        "check_in": {"$lt": to_storage(end)},
        "check_out": {"$gt": to_storage(start)},
    }).sort("check_in", 1).to_list(length=None)

    booked = []
    taken = set()
    for b in bookings:
        b_start, b_end = from_storage(b["check_in"]), from_storage(b["check_out"])
        booked.append({"check_in": b_start, "check_out": b_end, "status": b["status"]})
        taken.update(stay_nights(b_start, b_end))

    days = [{"day": night, "available": night not in taken} for night in stay_nights(start, end)]
    return {"listing_id": listing_id, "booked": booked, "days": days}

@router.post("/", response_model=ListingResponse, status_code=201)
async def create_listing(listing: ListingCreate, request: Request, current_user: User = Depends(get_current_host)):
    """Allows a host to publish a new listing."""
    db = request.app.mongodb
    listing_doc = listing.model_dump()
    listing_doc["host_id"] = current_user.id
    listing_doc["created_at"] = datetime.utcnow()
    listing_doc["updated_at"] = listing_doc["created_at"]

    result = await db["listings"].insert_one(listing_doc)
    new_listing = await db["listings"].find_one({"_id": result.inserted_id})
    if not new_listing:
        raise HTTPException(status_code=500, detail="Failed to create listing.")

    logger.info("Host %s created listing %s (image %d chars)", current_user.id, result.inserted_id, len(listing.image))
    return serialize_listing(new_listing)

@router.put("/{listing_id}", response_model=ListingResponse)
async def update_listing(listing_id: str, update: ListingUpdate, request: Request, current_user: User = Depends(get_current_user)):
    """Allows the owning host to change a listing. The owner itself cannot change."""
    listing = await get_owned_listing(request, listing_id, current_user)
    changes = update.model_dump(exclude_unset=True, exclude_none=True)
    if changes:
        changes["updated_at"] = datetime.utcnow()
        await request.app.mongodb["listings"].update_one({"_id": listing["_id"]}, {"$set": changes})
        logger.info("Listing %s updated: %s", listing_id, sorted(changes))
    updated = await request.app.mongodb["listings"].find_one({"_id": listing["_id"]})
    return serialize_listing(updated)

@router.delete("/{listing_id}")
async def delete_listing(listing_id: str, request: Request, current_user: User = Depends(get_current_user)):
    listing = await get_owned_listing(request, listing_id, current_user)
    await request.app.mongodb["listings"].delete_one({"_id": listing["_id"]})
    logger.info("Listing %s removed by host %s", listing_id, current_user.id)
    return {"message": "Listing removed"}
