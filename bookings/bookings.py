# bookings.py

from fastapi import APIRouter, HTTPException, Request, Depends
from bson import ObjectId
from datetime import date
from typing import List, Optional, Tuple

from models.booking import BookingCreate, BookingResponse, BookingStatusUpdate
from models.user import User
from users.users import get_current_user, get_current_host
from bookings.admission import admit_booking, from_storage, get_today
from bookings.errors import BookingNotFound, MissingFields
from bookings.pricing import PricingStrategy, get_pricing_strategy
from bookings.status import apply_transition, booking_roles

router = APIRouter(prefix="/api/bookings", tags=["bookings"])

# --- Helpers ---

def serialize_booking(booking: dict, listing: Optional[dict] = None) -> dict:
    booking = dict(booking)
    booking["_id"] = str(booking["_id"])
    booking["check_in"] = from_storage(booking["check_in"])
    booking["check_out"] = from_storage(booking["check_out"])
    if listing is not None:
        summary = dict(listing)
        summary["_id"] = str(summary["_id"])
        booking["listing"] = summary
    return booking

async def find_listing_doc(db, listing_id: str) -> Optional[dict]:
    if not ObjectId.is_valid(listing_id):
        return None
    return await db["listings"].find_one({"_id": ObjectId(listing_id)})

async def attach_listings(db, bookings: List[dict]) -> List[dict]:
    """Serializes bookings with a summary of the listing each one refers to."""
    listing_ids = {b["listing_id"] for b in bookings if ObjectId.is_valid(b["listing_id"])}
    listings = await db["listings"].find(
        {"_id": {"$in": [ObjectId(i) for i in listing_ids]}}
    ).to_list(length=None)
    by_id = {str(listing["_id"]): listing for listing in listings}
    return [serialize_booking(b, by_id.get(b["listing_id"])) for b in bookings]

async def load_booking_for(db, booking_id: str, current_user: User) -> Tuple[dict, Optional[dict], set]:
    """Loads a booking the caller is a party to.

    Callers who are neither the guest nor the listing's host get the same
    not-found error as for a missing booking.
    """
    if not ObjectId.is_valid(booking_id):
        raise BookingNotFound()
    booking = await db["bookings"].find_one({"_id": ObjectId(booking_id)})
    if not booking:
        raise BookingNotFound()
    listing = await find_listing_doc(db, booking["listing_id"])
    roles = booking_roles(booking, listing, current_user.id)
    if not roles:
        raise BookingNotFound()
    return booking, listing, roles

# --- Booking Endpoints ---

@router.post("/", response_model=BookingResponse, status_code=201)
async def create_booking(
    booking: BookingCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    today: date = Depends(get_today),
    pricing: PricingStrategy = Depends(get_pricing_strategy),
):
    """Books a stay. Totals are always computed on the server."""
    db = request.app.mongodb
    booking_doc = await admit_booking(
        db,
        user_id=current_user.id,
        listing_id=booking.listing_id,
        check_in=booking.check_in,
        check_out=booking.check_out,
        guests=booking.guests,
        today=today,
        add_ons=booking.add_ons.model_dump(),
        special_requests=booking.special_requests,
        client_total_price=booking.total_price,
        client_total_nights=booking.total_nights,
        pricing=pricing,
    )
    listing = await find_listing_doc(db, booking_doc["listing_id"])
    return serialize_booking(booking_doc, listing)

@router.get("/user", response_model=List[BookingResponse])
async def get_my_bookings(request: Request, current_user: User = Depends(get_current_user)):
    """Gets the caller's own bookings, newest first."""
    db = request.app.mongodb
    bookings = await db["bookings"].find({"user_id": current_user.id}).sort("created_at", -1).to_list(length=None)
    return await attach_listings(db, bookings)

@router.get("/host", response_model=List[BookingResponse])
async def get_host_bookings(request: Request, current_user: User = Depends(get_current_host)):
    """Gets all bookings made on listings the caller hosts."""
    db = request.app.mongodb
    listings = await db["listings"].find({"host_id": current_user.id}, {"_id": 1}).to_list(length=None)
    listing_ids = [str(listing["_id"]) for listing in listings]
    bookings = await db["bookings"].find(
        {"listing_id": {"$in": listing_ids}}
    ).sort("created_at", -1).to_list(length=None)
    return await attach_listings(db, bookings)

@router.get("/listing/{listing_id}", response_model=List[BookingResponse])
async def get_listing_bookings(listing_id: str, request: Request, current_user: User = Depends(get_current_user)):
    db = request.app.mongodb
    listing = await find_listing_doc(db, listing_id)
    if not listing:
        raise HTTPException(status_code=404, detail="Listing not found")
    if listing.get("host_id") != current_user.id:
        raise HTTPException(status_code=403, detail="Not authorized")
    bookings = await db["bookings"].find({"listing_id": listing_id}).sort("check_in", 1).to_list(length=None)
    return [serialize_booking(b, listing) for b in bookings]

@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(booking_id: str, request: Request, current_user: User = Depends(get_current_user)):
    booking, listing, _ = await load_booking_for(request.app.mongodb, booking_id, current_user)
    return serialize_booking(booking, listing)

@router.patch("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: str,
    update: BookingStatusUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    today: date = Depends(get_today),
):
    """Moves a booking through its lifecycle. Repeating the current status is a no-op."""
    if not update.status:
        raise MissingFields("Please provide a status")
    db = request.app.mongodb
    booking, listing, roles = await load_booking_for(db, booking_id, current_user)
    updated = await apply_transition(db, booking, update.status, roles, today)
    return serialize_booking(updated, listing)

@router.patch("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str,
    request: Request,
    current_user: User = Depends(get_current_user),
    today: date = Depends(get_today),
):
    """Cancels a booking before its check-in date, as the guest or the host."""
    db = request.app.mongodb
    booking, listing, roles = await load_booking_for(db, booking_id, current_user)
    updated = await apply_transition(db, booking, "cancelled", roles, today)
    return serialize_booking(updated, listing)
