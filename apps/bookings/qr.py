# apps/bookings/qr.py
import base64
import json
from io import BytesIO

import qrcode


def build_qr_payload(reservation):
    """Check-in data encoded into a reservation's QR code."""
    start = reservation.local_start()
    end = reservation.local_end()
    return {
        'bookingId': reservation.pk,
        'userId': reservation.user_id,
        'roomId': reservation.room_id,
        'roomName': reservation.room.name,
        'date': start.strftime('%Y-%m-%d'),
        'startTime': start.strftime('%H:%M'),
        'endTime': end.strftime('%H:%M'),
    }


def generate_qr_code(payload):
    """Render ``payload`` as JSON inside a QR code and return a PNG data URL."""
    image = qrcode.make(json.dumps(payload, separators=(',', ':')))
    buffer = BytesIO()
    image.save(buffer)
    encoded = base64.b64encode(buffer.getvalue()).decode('ascii')
    return f"data:image/png;base64,{encoded}"
