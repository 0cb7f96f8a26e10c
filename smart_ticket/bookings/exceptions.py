from typing import Dict, List, Optional

class BookingError(Exception):
    """Base class for booking domain errors; carries a stable machine-readable code"""
    status_code = 400
    code = "BOOKING_ERROR"
    
    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
    
    def to_detail(self) -> Dict:
        return {"message": self.message, "code": self.code}

class BookingValidationError(BookingError):
    status_code = 400
    code = "VALIDATION_ERROR"
    
    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.errors = errors or []
    
    @classmethod
    def for_field(cls, field: str, message: str) -> "BookingValidationError":
        return cls(message, errors=[{"field": field, "message": message}])
    
    def to_detail(self) -> Dict:
        detail = super().to_detail()
        detail["errors"] = self.errors
        return detail

class SeatOccupiedError(BookingError):
    status_code = 409
    code = "SEAT_OCCUPIED"
    
    def __init__(self, seat_number: str):
        super().__init__(f"{seat_number} is already booked")
        self.seat_number = seat_number

class BookingNotFoundError(BookingError):
    status_code = 404
    code = "NOT_FOUND"

class BookingAccessDeniedError(BookingError):
    status_code = 403
    code = "FORBIDDEN"
    
    def __init__(self, message: str = "Access denied"):
        super().__init__(message)

class InvalidBookingStateError(BookingError):
    status_code = 409
    code = "INVALID_STATE_TRANSITION"
    
    def __init__(self, action: str, current_status: str, message: Optional[str] = None):
        super().__init__(message or f"Cannot {action.replace('_', ' ')} a booking with status '{current_status}'")
        self.action = action
        self.current_status = current_status
