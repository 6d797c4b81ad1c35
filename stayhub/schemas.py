from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List

from pydantic import BaseModel, Field

from .models import BookingStatus

# ==== Bookings ====

class BookingCreateIn(BaseModel):
    room_id: int
    check_in_date: date
    check_out_date: date
    guests: int = Field(default=1, ge=1)
    special_requests: Optional[str] = Field(default=None, max_length=2000)

    class Config:
        extra = "forbid"

class BookingUpdateIn(BaseModel):
    check_in_date: date
    check_out_date: date
    guests: Optional[int] = Field(default=None, ge=1)

    class Config:
        extra = "forbid"

class BookingOut(BaseModel):
    id: int
    guest_id: int
    room_id: int
    check_in_date: date
    check_out_date: date
    guests: int
    total_price: Decimal
    status: BookingStatus
    special_requests: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    # Denormalized display fields
    room_type: str
    hotel_id: int
    hotel_name: str
    hotel_city: str

    class Config:
        use_enum_values = True
        from_attributes = True

# ==== Rooms ====

class RoomOut(BaseModel):
    id: int
    host_id: int
    hotel_id: int
    room_type: str
    description: Optional[str] = None
    price_per_night: Decimal
    max_guests: int
    is_available: bool
    amenities: List[str] = []
    hotel_name: str
    hotel_city: str

    class Config:
        from_attributes = True

class RoomCreateIn(BaseModel):
    hotel_id: int
    room_type: str = Field(default="standard", min_length=1, max_length=50)
    description: Optional[str] = None
    price_per_night: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    max_guests: int = Field(default=2, ge=1, le=50)
    is_available: bool = True
    amenities: List[str] = []

    class Config:
        extra = "forbid"

class RoomUpdateIn(BaseModel):
    room_type: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = None
    price_per_night: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    max_guests: Optional[int] = Field(default=None, ge=1, le=50)
    is_available: Optional[bool] = None
    amenities: Optional[List[str]] = None

    class Config:
        extra = "forbid"

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

class RoomSearchOut(BaseModel):
    rooms: List[RoomOut]
    pagination: Pagination

# ==== Hotels ====

class HotelOut(BaseModel):
    id: int
    name: str
    city: str
    address: Optional[str] = None
    description: Optional[str] = None

    class Config:
        from_attributes = True

# ==== Users & auth ====

class UserOut(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    role: str

    class Config:
        from_attributes = True

class ProfileUpdateIn(BaseModel):
    full_name: Optional[str] = Field(default=None, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=50)

    class Config:
        extra = "forbid"

class LoginIn(BaseModel):
    email: str
    password: str

class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
