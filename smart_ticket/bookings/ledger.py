import logging
import re
import secrets
import string
import time
import uuid
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from smart_ticket.models import Booking, Schedule, ACTIVE_BOOKING_STATUSES
from smart_ticket.bookings.schemas import BookingStatus, PaymentStatus, PassengerDetails
from smart_ticket.bookings.exceptions import BookingValidationError, SeatOccupiedError

logger = logging.getLogger(__name__)

SEAT_LABEL_PATTERN = re.compile(r"^(?:seat\s*)?(\d+)$", re.IGNORECASE)
BASE36_ALPHABET = string.digits + string.ascii_uppercase

def seat_label(seat_index: int) -> str:
    """Human-facing label for a 1-based seat index"""
    return f"Seat {seat_index}"

def normalize_seat_label(raw_label: str, capacity: int) -> str:
    """
    Parse "Seat 14", "seat14" or "14" into the canonical "Seat 14" form,
    rejecting labels outside 1..capacity.
    """
    match = SEAT_LABEL_PATTERN.match(raw_label.strip())
    if not match:
        raise BookingValidationError.for_field(
            "seat_number", f"Invalid seat label '{raw_label}', expected e.g. 'Seat 14'"
        )

    seat_index = int(match.group(1))
    if seat_index < 1 or seat_index > capacity:
        raise BookingValidationError.for_field(
            "seat_number", f"Seat must be between 1 and {capacity}"
        )

    return seat_label(seat_index)

def _to_base36(value: int) -> str:
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits)) or "0"

def generate_booking_reference() -> str:
    """Generate human-readable booking reference: ST + base36 timestamp + random suffix"""
    timestamp = _to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(5))
    return f"ST{timestamp}{suffix}"

def generate_check_in_token() -> str:
    return str(uuid.uuid4())

class SeatLedger:
    """
    Per-(schedule, travel date) view of which seats are held.

    The pre-check in reserve() only gives a friendly early answer; the partial
    unique index on bookings is what settles concurrent attempts for one seat.
    """

    def __init__(self, db: Session):
        self.db = db

    def _active_bookings(self, schedule_id: int, travel_date: date):
        return self.db.query(Booking).filter(
            Booking.schedule_id == schedule_id,
            Booking.travel_date == travel_date,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES)
        )

    def is_seat_taken(self, schedule_id: int, travel_date: date, seat_number: str) -> bool:
        """Check whether a pending or confirmed booking holds the seat"""
        existing = self._active_bookings(schedule_id, travel_date).filter(
            Booking.seat_number == seat_number
        ).first()
        return existing is not None

    def taken_seats(self, schedule_id: int, travel_date: date) -> List[str]:
        rows = self._active_bookings(schedule_id, travel_date).with_entities(Booking.seat_number).all()
        return sorted((row[0] for row in rows), key=lambda label: int(SEAT_LABEL_PATTERN.match(label).group(1)))

    def available_seats(self, schedule: Schedule, travel_date: date) -> List[str]:
        taken = set(self.taken_seats(schedule.id, travel_date))
        return [
            seat_label(index)
            for index in range(1, schedule.vehicle.capacity + 1)
            if seat_label(index) not in taken
        ]

    def reserve(
        self,
        user_id: int,
        schedule: Schedule,
        travel_date: date,
        seat_number: str,
        fare: Decimal,
        payment_method: str = "card",
        passenger_details: Optional[PassengerDetails] = None,
        special_requests: Optional[str] = None,
        today: Optional[date] = None
    ) -> Booking:
        """Atomically claim a seat, creating exactly one pending booking"""

        today = today or date.today()
        if travel_date < today:
            raise BookingValidationError.for_field("travel_date", "Travel date cannot be in the past")

        if fare < 0:
            raise BookingValidationError.for_field("fare", "Fare must be non-negative")

        seat = normalize_seat_label(seat_number, schedule.vehicle.capacity)

        if self.is_seat_taken(schedule.id, travel_date, seat):
            raise SeatOccupiedError(seat)

        passenger = passenger_details or PassengerDetails()
        booking = Booking(
            booking_reference=generate_booking_reference(),
            qr_code=generate_check_in_token(),
            user_id=user_id,
            route_id=schedule.route_id,
            schedule_id=schedule.id,
            vehicle_id=schedule.vehicle_id,
            travel_date=travel_date,
            seat_number=seat,
            fare=fare,
            status=BookingStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            payment_method=payment_method,
            passenger_name=passenger.name,
            passenger_age=passenger.age,
            passenger_gender=passenger.gender,
            passenger_id_number=passenger.id_number,
            passenger_id_type=passenger.id_type,
            special_requests=special_requests
        )

        try:
            self.db.add(booking)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            # Lost the race against a concurrent reservation for the same seat
            if self.is_seat_taken(schedule.id, travel_date, seat):
                logger.info("Seat conflict on schedule %s for %s: %s", schedule.id, travel_date, seat)
                raise SeatOccupiedError(seat)
            raise

        self.db.refresh(booking)
        return booking
