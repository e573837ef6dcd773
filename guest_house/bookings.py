import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from . import billing, pricing
from .availability import is_available
from .choices import BookingPaymentStatus, BookingStatus, FareClass
from .exceptions import RoomNotFound, RoomUnavailable
from .records import BookingRecord

logger = logging.getLogger(__name__)


@dataclass
class BookingRequest:
    room_id: int
    guest_name: str
    guest_email: str
    guest_phone: str
    check_in_date: date
    check_out_date: date
    number_of_guests: int = 1
    special_requests: str = ""
    fare_class: str = FareClass.FULL_BOARD


def quote(room_id, check_in, check_out, fare_class=FareClass.FULL_BOARD):
    """Return (nights, nightly_rate, total, deposit, balance) for a stay."""
    nights = billing.nights(check_in, check_out)
    nightly_rate = pricing.rate(room_id, fare_class)
    total = billing.total(nights, nightly_rate)
    deposit, balance = billing.split(total)
    return nights, nightly_rate, total, deposit, balance


def create_booking(store, request: BookingRequest) -> BookingRecord:
    """
    Create a pending booking for a free room.

    The total is always derived here from the fare table; callers never
    supply it. Raises RoomNotFound or RoomUnavailable and stores nothing
    in either case.
    """
    check_in = billing.as_day(request.check_in_date)
    check_out = billing.as_day(request.check_out_date)
    if check_out <= check_in:
        raise ValueError("check_out must be after check_in")

    room = store.find_room(request.room_id)
    if room is None:
        raise RoomNotFound()

    with store.booking_guard(room.id):
        if not is_available(store, room.id, check_in, check_out):
            logger.info("Room %s is taken for %s..%s", room.id, check_in, check_out)
            raise RoomUnavailable()

        nights, nightly_rate, total, deposit, balance = quote(room.id, check_in, check_out, request.fare_class)
        record = BookingRecord(
            room_id=room.id,
            guest_name=request.guest_name.strip(),
            guest_email=request.guest_email.strip().lower(),
            guest_phone=request.guest_phone.strip(),
            check_in_date=check_in,
            check_out_date=check_out,
            number_of_guests=request.number_of_guests,
            special_requests=(request.special_requests or "").strip(),
            status=BookingStatus.PENDING,
            total_amount=total,
            deposit_amount=deposit,
            balance_amount=balance,
            deposit_paid=False,
            payment_status=BookingPaymentStatus.PENDING_DEPOSIT,
        )
        booking_id = store.insert_booking(record)

    logger.info(
        "Booking %s created in %s store: room %s, %s nights x %s = %s (deposit %s)",
        booking_id, store.name, room.id, nights, nightly_rate, total, deposit,
    )
    return store.find_booking(booking_id)


def set_status(store, booking_id, status) -> Optional[BookingRecord]:
    """
    Overwrite a booking's status. Any status may follow any other; returns
    None when the booking does not exist.
    """
    status = BookingStatus(status)
    booking = store.update_booking(booking_id, status=status)
    if booking is None:
        logger.info("Status update for unknown booking %s", booking_id)
        return None
    logger.info("Booking %s is now %s", booking_id, status)
    return booking


def get_booking(store, booking_id):
    return store.find_booking(booking_id)


def list_bookings(store, room_id=None, guest_email=None, start=None, end=None):
    return store.list_bookings(room_id=room_id, guest_email=guest_email, start=start, end=end)
