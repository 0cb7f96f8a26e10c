"""
Booking Module

Seat reservation and booking lifecycle management:

- ledger.py: per-(schedule, travel date) seat ledger with conflict detection
- booking_service.py: booking state machine (confirm, cancel, check-in, complete, no-show)
- notifications.py: route-scoped WebSocket fan-out of booking events
- ticket_service.py: check-in QR code rendering
- router.py: FastAPI endpoints
- schemas.py: Pydantic models for booking requests and responses
"""

from .router import router
from .ledger import SeatLedger
from .booking_service import BookingService
from .exceptions import (
    BookingError, BookingValidationError, SeatOccupiedError, BookingNotFoundError,
    BookingAccessDeniedError, InvalidBookingStateError
)
from .schemas import BookingCreateRequest, BookingResponse, BookingStatus, PaymentStatus

__all__ = [
    "router",
    "SeatLedger",
    "BookingService",
    "BookingError",
    "BookingValidationError",
    "SeatOccupiedError",
    "BookingNotFoundError",
    "BookingAccessDeniedError",
    "InvalidBookingStateError",
    "BookingCreateRequest",
    "BookingResponse",
    "BookingStatus",
    "PaymentStatus"
]
