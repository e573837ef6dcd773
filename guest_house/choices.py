from django.db import models


class FareClass(models.TextChoices):
    BED_ONLY = "bed_only", "Bed only"
    BED_AND_BREAKFAST = "bb", "Bed & breakfast"
    HALF_BOARD = "half_board", "Half board"
    FULL_BOARD = "full_board", "Full board"


class BookingStatus(models.TextChoices):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class BookingPaymentStatus(models.TextChoices):
    PENDING_DEPOSIT = "pending_deposit"
    DEPOSIT_PAID = "deposit_paid"
    FULLY_PAID = "fully_paid"


class PaymentType(models.TextChoices):
    DEPOSIT = "deposit"
    BALANCE = "balance"
    FULL = "full"


class PaymentMethod(models.TextChoices):
    MPESA = "mpesa", "M-Pesa"
    CASH = "cash", "Cash"
    CHEQUE = "cheque", "Cheque"
    BANK_TRANSFER = "bank_transfer", "Bank transfer"


class PaymentStatus(models.TextChoices):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


# Bookings in these states hold their room for the booked nights.
BLOCKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)
