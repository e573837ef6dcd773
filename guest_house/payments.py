import logging
from typing import Optional

from django.utils import timezone

from .choices import BookingPaymentStatus, PaymentMethod, PaymentStatus, PaymentType
from .records import PaymentRecord

logger = logging.getLogger(__name__)


def payment_status_for(paid, deposit_amount, total_amount):
    """Map the amount received so far onto a booking payment status."""
    if paid >= total_amount:
        return BookingPaymentStatus.FULLY_PAID
    if paid >= deposit_amount:
        return BookingPaymentStatus.DEPOSIT_PAID
    return BookingPaymentStatus.PENDING_DEPOSIT


def amount_paid(payments):
    return sum(p.amount for p in payments if p.status == PaymentStatus.COMPLETED)


def reconcile(store, booking_id):
    """
    Recompute a booking's payment status from all of its completed payments
    and write it back. Safe to repeat; returns the booking or None.
    """
    booking = store.find_booking(booking_id)
    if booking is None:
        return None

    paid = amount_paid(store.find_payments_by_booking(booking_id))
    payment_status = payment_status_for(paid, booking.deposit_amount, booking.total_amount)
    deposit_paid = payment_status != BookingPaymentStatus.PENDING_DEPOSIT
    logger.info("Booking %s: %s of %s received, %s", booking_id, paid, booking.total_amount, payment_status)
    return store.update_booking(booking_id, payment_status=payment_status, deposit_paid=deposit_paid)


def record_payment(store, booking_id, amount, payment_type, payment_method, reference="") -> Optional[PaymentRecord]:
    """
    Record a payment against a booking and reconcile the booking.

    Cash is settled at the desk, so it starts out pending; every other
    method is taken as completed on submission.
    """
    if store.find_booking(booking_id) is None:
        logger.info("Payment for unknown booking %s ignored", booking_id)
        return None

    payment_method = PaymentMethod(payment_method)
    if payment_method == PaymentMethod.CASH:
        status, paid_at = PaymentStatus.PENDING, None
    else:
        status, paid_at = PaymentStatus.COMPLETED, timezone.now()

    payment_id = store.insert_payment(PaymentRecord(
        booking_id=int(booking_id),
        amount=int(amount),
        payment_type=PaymentType(payment_type),
        payment_method=payment_method,
        payment_reference=(reference or "").strip(),
        status=status,
        paid_at=paid_at,
    ))
    logger.info("Payment %s of %s by %s recorded for booking %s (%s)", payment_id, amount, payment_method, booking_id, status)
    reconcile(store, booking_id)
    return store.find_payment(payment_id)


def update_payment_status(store, payment_id, status) -> Optional[PaymentRecord]:
    status = PaymentStatus(status)
    patch = {"status": status}
    if status == PaymentStatus.COMPLETED:
        patch["paid_at"] = timezone.now()
    payment = store.update_payment(payment_id, **patch)
    if payment is None:
        logger.info("Status update for unknown payment %s", payment_id)
        return None
    reconcile(store, payment.booking_id)
    return payment


def payments_for_booking(store, booking_id):
    return store.find_payments_by_booking(booking_id)
