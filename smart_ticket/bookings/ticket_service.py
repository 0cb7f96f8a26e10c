from io import BytesIO

import qrcode
from qrcode import constants

from smart_ticket.models import Booking

class TicketService:
    """Renders a booking's check-in token as a scannable QR code"""

    @staticmethod
    def qr_payload(booking: Booking) -> str:
        return f"{booking.booking_reference}:{booking.qr_code}"

    @staticmethod
    def generate_qr_code_png(booking: Booking, box_size: int = 10, border: int = 4) -> bytes:
        """Return PNG bytes for the booking's QR code"""
        qr = qrcode.QRCode(
            version=None,
            error_correction=constants.ERROR_CORRECT_M,
            box_size=box_size,
            border=border,
        )
        qr.add_data(TicketService.qr_payload(booking))
        qr.make(fit=True)

        image = qr.make_image(fill_color="black", back_color="white")
        buffer = BytesIO()
        image.save(buffer)
        return buffer.getvalue()
