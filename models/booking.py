from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import date, datetime

from models.listing import ListingSummary

class AddOns(BaseModel):
    breakfast: bool = False
    parking: bool = False
    extra_bed: bool = False
    early_check_in: bool = False
    late_check_out: bool = False

class BookingCreate(BaseModel):
    # Everything is optional here so the admission check can report
    # missing or malformed fields with its own rejection codes.
    listing_id: Optional[str] = None
    check_in: Optional[str] = None
    check_out: Optional[str] = None
    guests: Optional[int] = None
    add_ons: AddOns = AddOns()
    special_requests: Optional[str] = None
    # Client-side totals are accepted for compatibility and ignored.
    total_price: Optional[float] = None
    total_nights: Optional[int] = None

class BookingStatusUpdate(BaseModel):
    status: Optional[str] = None

class PriceBreakdown(BaseModel):
    base_price: float
    add_ons_price: float
    total_price: float
    number_of_nights: int

class BookingResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    user_id: str
    listing_id: str
    check_in: date
    check_out: date
    guests: int
    total_nights: int
    total_price: float
    price_breakdown: PriceBreakdown
    add_ons: AddOns = AddOns()
    special_requests: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    listing: Optional[ListingSummary] = None
