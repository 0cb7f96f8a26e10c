from decimal import Decimal

import pytest

from smart_ticket.models import Route, Schedule
from smart_ticket.bookings.booking_service import BookingService
from smart_ticket.bookings.exceptions import (
    BookingAccessDeniedError, BookingNotFoundError, InvalidBookingStateError
)
from smart_ticket.bookings.schemas import BookingCreateRequest, BookingStatus

class RecordingNotifier:
    def __init__(self):
        self.events = []

    def notify(self, route_id, event, payload):
        self.events.append((route_id, event, payload))

class BrokenNotifier:
    def notify(self, route_id, event, payload):
        raise ConnectionError("socket gone")

def make_request(route, schedule, travel_date, seat="Seat 1"):
    return BookingCreateRequest(
        route_id=route.id,
        schedule_id=schedule.id,
        travel_date=travel_date,
        seat_number=seat,
        fare=Decimal("20")
    )

@pytest.fixture
def notifier():
    return RecordingNotifier()

@pytest.fixture
def service(db, notifier):
    return BookingService(db, notifier=notifier)

@pytest.fixture
def booking(service, user, route, schedule, travel_date):
    return service.create_booking(make_request(route, schedule, travel_date), user)

def test_create_booking_emits_route_scoped_event(booking, notifier, route):
    assert booking.status == "pending"
    assert len(notifier.events) == 1
    route_id, event, payload = notifier.events[0]
    assert route_id == route.id
    assert event == "booking:create"
    assert payload["booking_reference"] == booking.booking_reference

def test_create_booking_survives_notifier_failure(db, user, route, schedule, travel_date):
    service = BookingService(db, notifier=BrokenNotifier())

    booking = service.create_booking(make_request(route, schedule, travel_date), user)

    assert booking.id is not None
    assert booking.status == "pending"

def test_create_booking_rejects_schedule_of_another_route(db, service, user, route, schedule, travel_date):
    other_route = Route(name="Other", start_location="X", end_location="Y", base_fare=Decimal("5"))
    db.add(other_route)
    db.commit()

    with pytest.raises(BookingNotFoundError):
        service.create_booking(make_request(other_route, schedule, travel_date), user)

def test_create_booking_rejects_unknown_route(service, user, route, schedule, travel_date):
    request = make_request(route, schedule, travel_date)
    request.route_id = 9999

    with pytest.raises(BookingNotFoundError):
        service.create_booking(request, user)

def test_create_booking_rejects_inactive_schedule(db, service, user, route, schedule, travel_date):
    schedule.is_active = False
    db.commit()

    with pytest.raises(BookingNotFoundError):
        service.create_booking(make_request(route, schedule, travel_date), user)

def test_confirm_pending_booking_marks_paid(service, booking, user, notifier):
    confirmed = service.confirm_booking(booking.id, user)

    assert confirmed.status == "confirmed"
    assert confirmed.payment_status == "paid"
    assert notifier.events[-1][1] == "booking:confirm"

def test_confirm_only_succeeds_once(service, booking, user):
    service.confirm_booking(booking.id, user)

    with pytest.raises(InvalidBookingStateError) as exc_info:
        service.confirm_booking(booking.id, user)

    assert exc_info.value.code == "INVALID_STATE_TRANSITION"

def test_cancel_pending_booking_records_reason(service, booking, user, notifier):
    cancelled = service.cancel_booking(booking.id, user, "change of plans")

    assert cancelled.status == "cancelled"
    assert cancelled.cancellation_reason == "change of plans"
    assert cancelled.cancelled_at is not None
    assert cancelled.cancelled_by == user.id
    assert notifier.events[-1][1] == "booking:cancel"

    with pytest.raises(InvalidBookingStateError):
        service.cancel_booking(booking.id, user, "again")

def test_cancel_confirmed_booking(service, booking, user):
    service.confirm_booking(booking.id, user)

    assert service.cancel_booking(booking.id, user).status == "cancelled"

def test_check_in_requires_confirmed(service, booking, user):
    with pytest.raises(InvalidBookingStateError):
        service.check_in(booking.id, user)

    service.confirm_booking(booking.id, user)
    checked_in = service.check_in(booking.id, user)

    assert checked_in.check_in_time is not None
    assert checked_in.status == "confirmed"

    with pytest.raises(InvalidBookingStateError):
        service.check_in(booking.id, user)

def test_complete_records_check_out(service, booking, user, admin):
    service.confirm_booking(booking.id, user)

    completed = service.complete_booking(booking.id, admin)

    assert completed.status == "completed"
    assert completed.check_out_time is not None

@pytest.mark.parametrize("finish", ["cancel", "complete", "no_show"])
def test_terminal_states_reject_every_transition(service, booking, user, admin, finish):
    if finish == "cancel":
        service.cancel_booking(booking.id, user)
    else:
        service.confirm_booking(booking.id, user)
        if finish == "complete":
            service.complete_booking(booking.id, admin)
        else:
            service.mark_no_show(booking.id, admin)

    for action in (
        lambda: service.confirm_booking(booking.id, user),
        lambda: service.cancel_booking(booking.id, user),
        lambda: service.check_in(booking.id, user),
        lambda: service.complete_booking(booking.id, admin),
        lambda: service.mark_no_show(booking.id, admin),
    ):
        with pytest.raises(InvalidBookingStateError):
            action()

def test_other_user_is_denied(service, booking, other_user):
    with pytest.raises(BookingAccessDeniedError):
        service.get_booking(booking.id, other_user)
    with pytest.raises(BookingAccessDeniedError):
        service.cancel_booking(booking.id, other_user)
    with pytest.raises(BookingAccessDeniedError):
        service.confirm_booking(booking.id, other_user)

def test_admin_may_act_on_any_booking(service, booking, admin):
    cancelled = service.cancel_booking(booking.id, admin, "operator cancelled")

    assert cancelled.status == "cancelled"
    assert cancelled.cancelled_by == admin.id

def test_missing_booking_is_not_found(service, user):
    with pytest.raises(BookingNotFoundError):
        service.confirm_booking(424242, user)

def test_seat_map_lists_free_and_taken(service, booking, schedule, travel_date):
    seat_map = service.get_seat_map(schedule.id, travel_date)

    assert seat_map.capacity == 50
    assert seat_map.taken_seats == ["Seat 1"]
    assert len(seat_map.available_seats) == 49
    assert "Seat 1" not in seat_map.available_seats

def test_statistics_count_per_status(service, user, route, schedule, travel_date):
    first = service.create_booking(make_request(route, schedule, travel_date, "Seat 1"), user)
    service.create_booking(make_request(route, schedule, travel_date, "Seat 2"), user)
    service.cancel_booking(first.id, user)

    stats = service.get_statistics(user.id)

    assert stats.total == 2
    assert stats.pending == 1
    assert stats.cancelled == 1
    assert stats.total_fare == Decimal("40")

def test_user_bookings_are_paginated(service, user, route, schedule, travel_date):
    for seat in range(1, 4):
        service.create_booking(make_request(route, schedule, travel_date, f"Seat {seat}"), user)

    bookings, total, pages = service.get_user_bookings(user.id, BookingStatus.PENDING, page=1, limit=2)

    assert total == 3
    assert pages == 2
    assert len(bookings) == 2
