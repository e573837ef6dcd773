from collections import Counter

from .choices import BookingStatus, PaymentStatus, PaymentType


def booking_stats(bookings):
    counts = Counter(b.status for b in bookings)
    stats = {"total": len(bookings)}
    for status in BookingStatus:
        stats[status.value] = counts.get(status, 0)
    return stats


def payment_stats(payments):
    completed = [p for p in payments if p.status == PaymentStatus.COMPLETED]
    return {
        "total_revenue": sum(p.amount for p in completed),
        "total_deposits": sum(p.amount for p in completed if p.payment_type == PaymentType.DEPOSIT),
        "total_balance": sum(p.amount for p in completed if p.payment_type == PaymentType.BALANCE),
        "completed_payments": len(completed),
        "pending_payments": sum(1 for p in payments if p.status == PaymentStatus.PENDING),
    }
