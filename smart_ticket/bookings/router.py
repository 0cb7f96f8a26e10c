from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response, WebSocket, status
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from smart_ticket.database import get_db
from smart_ticket.auth.dependencies import get_current_user, require_admin
from smart_ticket.bookings.schemas import (
    BookingCreateRequest, BookingCancelRequest, BookingResponse, BookingListResponse,
    BookingStatistics, BookingStatus, Pagination, SeatMap
)
from smart_ticket.bookings.booking_service import BookingService
from smart_ticket.bookings.ticket_service import TicketService
from smart_ticket.bookings.exceptions import BookingError
from smart_ticket.bookings.notifications import BackgroundNotifier, event_hub, websocket_endpoint

router = APIRouter()

def _http_error(error: BookingError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.to_detail())

def get_booking_service(background_tasks: BackgroundTasks, db: Session = Depends(get_db)) -> BookingService:
    return BookingService(db, notifier=BackgroundNotifier(event_hub, background_tasks))

@router.get("", response_model=BookingListResponse)
def list_my_bookings(
    booking_status: Optional[BookingStatus] = Query(None, alias="status", description="Filter by booking status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Get the current user's bookings, newest first"""
    bookings, total, pages = booking_service.get_user_bookings(current_user.id, booking_status, page, limit)
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        pagination=Pagination(current=page, pages=pages, total=total)
    )

@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    request: BookingCreateRequest,
    current_user = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Reserve a seat; answers 409 SEAT_OCCUPIED when the seat is already held"""
    try:
        return booking_service.create_booking(request, current_user)
    except BookingError as e:
        raise _http_error(e)

@router.get("/stats/overview", response_model=BookingStatistics)
def get_booking_statistics(
    start_date: Optional[date] = Query(None, description="Travel date from"),
    end_date: Optional[date] = Query(None, description="Travel date to"),
    current_user = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Get booking counts and fare totals for the current user"""
    return booking_service.get_statistics(current_user.id, start_date, end_date)

@router.get("/reference/{booking_reference}", response_model=BookingResponse)
def get_booking_by_reference(
    booking_reference: str,
    current_user = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Get booking by reference number"""
    try:
        return booking_service.get_booking_by_reference(booking_reference, current_user)
    except BookingError as e:
        raise _http_error(e)

@router.get("/schedules/{schedule_id}/seats", response_model=SeatMap)
def get_seat_map(
    schedule_id: int,
    travel_date: date = Query(..., description="Travel date"),
    booking_service: BookingService = Depends(get_booking_service)
):
    """List taken and free seats for a schedule on a date"""
    try:
        return booking_service.get_seat_map(schedule_id, travel_date)
    except BookingError as e:
        raise _http_error(e)

@router.websocket("/ws")
async def booking_events(websocket: WebSocket):
    """WebSocket endpoint for route-scoped booking events"""
    await websocket_endpoint(websocket, event_hub)

@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: int,
    current_user = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Get booking details by ID"""
    try:
        return booking_service.get_booking(booking_id, current_user)
    except BookingError as e:
        raise _http_error(e)

@router.put("/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: int,
    cancellation: Optional[BookingCancelRequest] = None,
    current_user = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Cancel a booking"""
    reason = cancellation.reason if cancellation else None
    try:
        return booking_service.cancel_booking(booking_id, current_user, reason)
    except BookingError as e:
        raise _http_error(e)

@router.put("/{booking_id}/confirm", response_model=BookingResponse)
def confirm_booking(
    booking_id: int,
    current_user = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Confirm a pending booking"""
    try:
        return booking_service.confirm_booking(booking_id, current_user)
    except BookingError as e:
        raise _http_error(e)

@router.put("/{booking_id}/check-in", response_model=BookingResponse)
def check_in(
    booking_id: int,
    current_user = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Check in for a confirmed booking"""
    try:
        return booking_service.check_in(booking_id, current_user)
    except BookingError as e:
        raise _http_error(e)

@router.put("/{booking_id}/complete", response_model=BookingResponse)
def complete_booking(
    booking_id: int,
    current_user = Depends(require_admin),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Mark a confirmed booking as completed (admin)"""
    try:
        return booking_service.complete_booking(booking_id, current_user)
    except BookingError as e:
        raise _http_error(e)

@router.put("/{booking_id}/no-show", response_model=BookingResponse)
def mark_no_show(
    booking_id: int,
    current_user = Depends(require_admin),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Mark a confirmed booking as a no-show (admin)"""
    try:
        return booking_service.mark_no_show(booking_id, current_user)
    except BookingError as e:
        raise _http_error(e)

@router.get("/{booking_id}/qr")
def get_booking_qr_code(
    booking_id: int,
    current_user = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Get the check-in QR code image for a booking"""
    try:
        booking = booking_service.get_booking(booking_id, current_user)
    except BookingError as e:
        raise _http_error(e)

    return Response(
        content=TicketService.generate_qr_code_png(booking),
        media_type="image/png",
        headers={"Content-Disposition": f'inline; filename="{booking.booking_reference}.png"'}
    )
