"""
Plain records exchanged between the booking core and its stores.

Stores hand these out instead of ORM instances so that the live database
adapter and the in-memory fallback are interchangeable.
"""
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import List, Optional

from .choices import BookingPaymentStatus, BookingStatus, PaymentStatus


@dataclass
class RoomRecord:
    name: str
    description: str
    bed_only: int
    bb: int
    half_board: int
    full_board: int
    capacity: int = 1
    amenities: List[str] = field(default_factory=list)
    image_url: str = ""
    id: Optional[int] = None

    @property
    def price(self):
        # Availability and totals are quoted at the full-board rate.
        return self.full_board

    def copy(self, **changes):
        return replace(self, **changes)


@dataclass
class BookingRecord:
    room_id: int
    guest_name: str
    guest_email: str
    guest_phone: str
    check_in_date: date
    check_out_date: date
    number_of_guests: int
    total_amount: int
    deposit_amount: int
    balance_amount: int
    special_requests: str = ""
    status: str = BookingStatus.PENDING
    deposit_paid: bool = False
    payment_status: str = BookingPaymentStatus.PENDING_DEPOSIT
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def nights(self):
        return (self.check_out_date - self.check_in_date).days

    def copy(self, **changes):
        return replace(self, **changes)


@dataclass
class PaymentRecord:
    booking_id: int
    amount: int
    payment_type: str
    payment_method: str
    payment_reference: str = ""
    status: str = PaymentStatus.PENDING
    paid_at: Optional[datetime] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def copy(self, **changes):
        return replace(self, **changes)
