from urllib.parse import quote

from .conf import setting

GENERIC_MESSAGE = "Hi, I'd like to make a booking at the guest house"


def whatsapp_link(message, number=None):
    number = number or setting("WHATSAPP_NUMBER")
    return f"https://wa.me/{number}?text={quote(message)}"


def booking_message(booking):
    return (
        "Hi, I just submitted a booking request. Here are my details:\n\n"
        f"Name: {booking.guest_name}\n"
        f"Check-in: {booking.check_in_date.isoformat()}\n"
        f"Check-out: {booking.check_out_date.isoformat()}\n"
        f"Guests: {booking.number_of_guests}"
    )


def contact_links(booking=None):
    """Phone and WhatsApp links guests can fall back to, prefilled for a booking if given."""
    message = booking_message(booking) if booking is not None else GENERIC_MESSAGE
    phone = setting("PHONE_NUMBER")
    return {
        "phone": phone,
        "phone_link": f"tel:{phone}",
        "whatsapp_link": whatsapp_link(message),
    }
