"""
Listing schemas.

A listing is stored in the ``listings`` collection with ``host_id`` pointing at
the owning user. The image is kept inline as a base64 data URL, so its decoded
size is capped by MongoDB's document size limit.
"""
import base64
import binascii
import re
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PropertyType = Literal["hotel", "apartment", "house"]

IMAGE_DATA_URL = re.compile(r"^data:image/(jpeg|jpg|png|gif);base64,")
MAX_IMAGE_BYTES = 16 * 1024 * 1024


def validate_image(value: str) -> str:
    if not IMAGE_DATA_URL.match(value):
        raise ValueError("Invalid image format. Must be a base64 JPEG, PNG or GIF data URL.")
    payload = value.split(",", 1)[1]
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValueError("Image data is not valid base64.")
    if len(raw) > MAX_IMAGE_BYTES:
        raise ValueError("Image size exceeds the 16MB document limit.")
    return value


def unique_amenities(values: List[str]) -> List[str]:
    seen = []
    for item in values:
        item = item.strip()
        if item and item not in seen:
            seen.append(item)
    return seen


class ListingBase(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    price: float = Field(..., ge=0, description="Price per night")
    max_guests: int = Field(..., ge=1)
    bedrooms: int = Field(..., ge=0)
    has_bathroom: bool = False
    type: PropertyType
    amenities: List[str] = []

    @field_validator('amenities')
    @classmethod
    def dedupe_amenities(cls, v):
        return unique_amenities(v)


class ListingCreate(ListingBase):
    image: str

    @field_validator('image')
    @classmethod
    def check_image(cls, v):
        return validate_image(v)


class ListingUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, ge=0)
    max_guests: Optional[int] = Field(None, ge=1)
    bedrooms: Optional[int] = Field(None, ge=0)
    has_bathroom: Optional[bool] = None
    type: Optional[PropertyType] = None
    amenities: Optional[List[str]] = None
    image: Optional[str] = None

    @field_validator('amenities')
    @classmethod
    def dedupe_amenities(cls, v):
        return unique_amenities(v) if v is not None else v

    @field_validator('image')
    @classmethod
    def check_image(cls, v):
        return validate_image(v) if v is not None else v


class ListingResponse(ListingBase):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    host_id: str
    image: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ListingSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    title: str
    location: str
    price: float
    max_guests: int
    type: str
    host_id: str
