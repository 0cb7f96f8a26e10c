from typing import Dict, List, Optional, Tuple
from datetime import date, datetime, timezone
from decimal import Decimal
import logging
import math

from sqlalchemy.orm import Session

from smart_ticket.models import Booking, Route, Schedule, User
from smart_ticket.bookings.schemas import (
    BookingCreateRequest, BookingResponse, BookingStatistics, BookingStatus,
    PaymentStatus, SeatMap, TERMINAL_STATUSES
)
from smart_ticket.bookings.exceptions import (
    BookingAccessDeniedError, BookingNotFoundError, InvalidBookingStateError
)
from smart_ticket.bookings.ledger import SeatLedger

logger = logging.getLogger(__name__)

# Statuses each lifecycle action may start from
ALLOWED_TRANSITIONS: Dict[str, frozenset] = {
    "confirm": frozenset({BookingStatus.PENDING}),
    "cancel": frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED}),
    "check_in": frozenset({BookingStatus.CONFIRMED}),
    "complete": frozenset({BookingStatus.CONFIRMED}),
    "no_show": frozenset({BookingStatus.CONFIRMED}),
}

def _now() -> datetime:
    return datetime.now(timezone.utc)

class BookingService:
    """Booking lifecycle: create, confirm, cancel, check in, complete, no-show"""

    def __init__(self, db: Session, notifier=None, ledger: Optional[SeatLedger] = None):
        self.db = db
        self.notifier = notifier
        self.ledger = ledger or SeatLedger(db)

    def create_booking(
        self,
        request: BookingCreateRequest,
        current_user: User,
        today: Optional[date] = None
    ) -> Booking:
        """Validate catalog references, then reserve the seat through the ledger"""

        route = self.db.query(Route).filter(
            Route.id == request.route_id,
            Route.is_active.is_(True)
        ).first()
        if not route:
            raise BookingNotFoundError("Route not found")

        schedule = self.db.query(Schedule).filter(Schedule.id == request.schedule_id).first()
        if not schedule or not schedule.is_active or schedule.route_id != route.id:
            raise BookingNotFoundError("Schedule not found or does not belong to this route")

        booking = self.ledger.reserve(
            user_id=current_user.id,
            schedule=schedule,
            travel_date=request.travel_date,
            seat_number=request.seat_number,
            fare=request.fare,
            payment_method=request.payment_method,
            passenger_details=request.passenger_details,
            special_requests=request.special_requests,
            today=today
        )

        self._log_action("create", booking, current_user, seat=booking.seat_number, fare=str(booking.fare))
        self._notify(booking, "booking:create")
        return booking

    def get_booking(self, booking_id: int, current_user: User) -> Booking:
        """Get a booking the current user owns (admins see all)"""
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            raise BookingNotFoundError("Booking not found")
        self._ensure_access(booking, current_user)
        return booking

    def get_booking_by_reference(self, booking_reference: str, current_user: User) -> Booking:
        booking = self.db.query(Booking).filter(
            Booking.booking_reference == booking_reference.upper()
        ).first()
        if not booking:
            raise BookingNotFoundError("Booking not found")
        self._ensure_access(booking, current_user)
        return booking

    def get_user_bookings(
        self,
        user_id: int,
        booking_status: Optional[BookingStatus] = None,
        page: int = 1,
        limit: int = 10
    ) -> Tuple[List[Booking], int, int]:
        """Return (bookings, total, pages) for a user, newest first"""
        query = self.db.query(Booking).filter(Booking.user_id == user_id)
        if booking_status:
            query = query.filter(Booking.status == booking_status.value)

        total = query.count()
        bookings = (
            query.order_by(Booking.created_at.desc(), Booking.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return bookings, total, math.ceil(total / limit) if total else 0

    def get_seat_map(self, schedule_id: int, travel_date: date) -> SeatMap:
        schedule = self.db.query(Schedule).filter(Schedule.id == schedule_id).first()
        if not schedule:
            raise BookingNotFoundError("Schedule not found")

        return SeatMap(
            schedule_id=schedule.id,
            travel_date=travel_date,
            capacity=schedule.vehicle.capacity,
            taken_seats=self.ledger.taken_seats(schedule.id, travel_date),
            available_seats=self.ledger.available_seats(schedule, travel_date)
        )

    def cancel_booking(self, booking_id: int, current_user: User, reason: Optional[str] = None) -> Booking:
        """Cancel a pending or confirmed booking, recording reason, actor and time"""
        booking = self.get_booking(booking_id, current_user)
        self._check_transition(booking, "cancel")

        booking.status = BookingStatus.CANCELLED.value
        booking.cancellation_reason = reason
        booking.cancelled_at = _now()
        booking.cancelled_by = current_user.id
        self._save(booking)

        self._log_action("cancel", booking, current_user, reason=reason)
        self._notify(booking, "booking:cancel")
        return booking

    def confirm_booking(self, booking_id: int, current_user: User) -> Booking:
        """Confirm a pending booking and mark it paid"""
        booking = self.get_booking(booking_id, current_user)
        self._check_transition(booking, "confirm")

        booking.status = BookingStatus.CONFIRMED.value
        booking.payment_status = PaymentStatus.PAID.value
        self._save(booking)

        self._log_action("confirm", booking, current_user)
        self._notify(booking, "booking:confirm")
        return booking

    def check_in(self, booking_id: int, current_user: User) -> Booking:
        booking = self.get_booking(booking_id, current_user)
        self._check_transition(booking, "check_in")
        if booking.check_in_time is not None:
            raise InvalidBookingStateError("check_in", booking.status, "Booking is already checked in")

        booking.check_in_time = _now()
        self._save(booking)

        self._log_action("check_in", booking, current_user)
        return booking

    def complete_booking(self, booking_id: int, current_user: User) -> Booking:
        booking = self.get_booking(booking_id, current_user)
        self._check_transition(booking, "complete")

        booking.status = BookingStatus.COMPLETED.value
        booking.check_out_time = _now()
        self._save(booking)

        self._log_action("complete", booking, current_user)
        return booking

    def mark_no_show(self, booking_id: int, current_user: User) -> Booking:
        booking = self.get_booking(booking_id, current_user)
        self._check_transition(booking, "no_show")

        booking.status = BookingStatus.NO_SHOW.value
        self._save(booking)

        self._log_action("no_show", booking, current_user)
        return booking

    def get_statistics(
        self,
        user_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> BookingStatistics:
        """Count a user's bookings per status and sum their fares"""
        query = self.db.query(Booking).filter(Booking.user_id == user_id)
        if start_date and end_date:
            query = query.filter(Booking.travel_date >= start_date, Booking.travel_date <= end_date)

        bookings = query.all()
        counts = {status.value: 0 for status in BookingStatus}
        for booking in bookings:
            counts[booking.status] = counts.get(booking.status, 0) + 1

        return BookingStatistics(
            total=len(bookings),
            total_fare=sum((Decimal(b.fare) for b in bookings), Decimal("0")),
            **counts
        )

    def _ensure_access(self, booking: Booking, current_user: User):
        if booking.user_id != current_user.id and not current_user.is_admin:
            raise BookingAccessDeniedError()

    def _check_transition(self, booking: Booking, action: str):
        current = BookingStatus(booking.status)
        if current in ALLOWED_TRANSITIONS[action]:
            return
        if current in TERMINAL_STATUSES:
            raise InvalidBookingStateError(
                action, current.value, f"Booking is already {current.value.replace('_', ' ')}"
            )
        raise InvalidBookingStateError(action, current.value)

    def _save(self, booking: Booking):
        self.db.commit()
        self.db.refresh(booking)

    def _notify(self, booking: Booking, event: str):
        """Hand the event to the notification sink; delivery problems never fail the booking"""
        if self.notifier is None:
            return
        try:
            payload = BookingResponse.model_validate(booking).model_dump(mode="json")
            self.notifier.notify(booking.route_id, event, payload)
        except Exception:
            logger.warning("Failed to queue %s event for booking %s", event, booking.id, exc_info=True)

    def _log_action(self, action: str, booking: Booking, actor: User, **details):
        logger.info(
            "Booking %s: id=%s reference=%s user=%s actor=%s %s",
            action, booking.id, booking.booking_reference, booking.user_id, actor.id,
            " ".join(f"{key}={value}" for key, value in details.items())
        )
