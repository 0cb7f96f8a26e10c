from pydantic import BaseModel, Field, validator
from typing import List, Optional, Literal
from datetime import datetime, date
from decimal import Decimal
from enum import Enum

from smart_ticket.config import settings

class BookingStatus(str, Enum):
    """Booking status enumeration"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"

class PaymentStatus(str, Enum):
    """Payment status enumeration"""
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"

TERMINAL_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED, BookingStatus.NO_SHOW})

class PassengerDetails(BaseModel):
    """Optional details of the travelling passenger"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    age: Optional[int] = Field(None, ge=0, le=120)
    gender: Optional[Literal["male", "female", "other"]] = None
    id_number: Optional[str] = Field(None, max_length=100)
    id_type: Optional[Literal["aadhar", "passport", "driving_license", "pan"]] = None

# Request Models
class BookingCreateRequest(BaseModel):
    """Request to reserve one seat on a scheduled trip"""
    route_id: int
    schedule_id: int
    travel_date: date
    seat_number: str = Field(..., min_length=1, max_length=20)
    fare: Decimal = Field(..., ge=0)
    payment_method: Literal["card", "upi", "wallet", "cash", "netbanking"] = "card"
    passenger_details: Optional[PassengerDetails] = None
    special_requests: Optional[str] = Field(None, max_length=settings.BOOKING_MAX_SPECIAL_REQUESTS)
    
    @validator('seat_number', 'special_requests')
    def strip_text(cls, v):
        return v.strip() if v is not None else v

class BookingCancelRequest(BaseModel):
    """Request to cancel a booking"""
    reason: Optional[str] = Field(None, max_length=settings.BOOKING_MAX_SPECIAL_REQUESTS)

# Response Models
class BookingResponse(BaseModel):
    id: int
    booking_reference: str
    qr_code: str
    user_id: int
    route_id: int
    schedule_id: int
    vehicle_id: int
    travel_date: date
    seat_number: str
    fare: Decimal
    status: BookingStatus
    payment_status: PaymentStatus
    payment_method: Optional[str] = None
    passenger_name: Optional[str] = None
    passenger_age: Optional[int] = None
    passenger_gender: Optional[str] = None
    passenger_id_number: Optional[str] = None
    passenger_id_type: Optional[str] = None
    special_requests: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True

class Pagination(BaseModel):
    current: int
    pages: int
    total: int

class BookingListResponse(BaseModel):
    bookings: List[BookingResponse]
    pagination: Pagination

class SeatMap(BaseModel):
    """Seat availability for one schedule on one travel date"""
    schedule_id: int
    travel_date: date
    capacity: int
    taken_seats: List[str]
    available_seats: List[str]

class BookingStatistics(BaseModel):
    total: int
    pending: int
    confirmed: int
    cancelled: int
    completed: int
    no_show: int
    total_fare: Decimal
