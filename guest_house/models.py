from django.db import models
from django.core.validators import MinValueValidator

from .choices import (
    BookingPaymentStatus, BookingStatus, PaymentMethod, PaymentStatus, PaymentType,
)
from .records import BookingRecord, PaymentRecord, RoomRecord


class Room(models.Model):
    name = models.CharField(max_length=100)
    description = models.TextField()
    price = models.PositiveIntegerField(help_text="Full-board nightly rate, used for ordering")
    bed_only = models.PositiveIntegerField()
    bb = models.PositiveIntegerField()
    half_board = models.PositiveIntegerField()
    full_board = models.PositiveIntegerField()
    capacity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    amenities = models.JSONField(default=list, blank=True)
    image_url = models.URLField(max_length=300, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["name"], name="room_name_idx"),
            models.Index(fields=["price"], name="room_price_idx"),
            models.Index(fields=["capacity"], name="room_capacity_idx"),
        ]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        self.price = self.full_board
        super().save(*args, **kwargs)

    def to_record(self):
        return RoomRecord(
            id=self.pk,
            name=self.name,
            description=self.description,
            bed_only=self.bed_only,
            bb=self.bb,
            half_board=self.half_board,
            full_board=self.full_board,
            capacity=self.capacity,
            amenities=list(self.amenities or []),
            image_url=self.image_url,
        )


class Booking(models.Model):
    Status = BookingStatus

    room = models.ForeignKey(Room, on_delete=models.PROTECT, related_name="bookings")
    guest_name = models.CharField(max_length=150)
    guest_email = models.EmailField()
    guest_phone = models.CharField(max_length=50)
    check_in_date = models.DateField()
    check_out_date = models.DateField()  # exclusive
    number_of_guests = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    special_requests = models.TextField(blank=True)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    total_amount = models.PositiveIntegerField()
    deposit_amount = models.PositiveIntegerField()
    # total - deposit; goes negative only for totals under one deposit step
    balance_amount = models.IntegerField()
    deposit_paid = models.BooleanField(default=False)
    payment_status = models.CharField(
        max_length=16, choices=BookingPaymentStatus.choices, default=BookingPaymentStatus.PENDING_DEPOSIT,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["guest_email"], name="booking_email_idx"),
            models.Index(fields=["check_in_date", "check_out_date"], name="booking_dates_idx"),
            models.Index(fields=["status"], name="booking_status_idx"),
            models.Index(fields=["payment_status"], name="booking_pay_status_idx"),
            models.Index(fields=["-created_at"], name="booking_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(check_out_date__gt=models.F("check_in_date")),
                name="booking_check_out_after_check_in",
            ),
        ]

    def __str__(self):
        return f"{self.guest_name} {self.check_in_date}..{self.check_out_date}"

    def to_record(self):
        return BookingRecord(
            id=self.pk,
            room_id=self.room_id,
            guest_name=self.guest_name,
            guest_email=self.guest_email,
            guest_phone=self.guest_phone,
            check_in_date=self.check_in_date,
            check_out_date=self.check_out_date,
            number_of_guests=self.number_of_guests,
            special_requests=self.special_requests,
            status=self.status,
            total_amount=self.total_amount,
            deposit_amount=self.deposit_amount,
            balance_amount=self.balance_amount,
            deposit_paid=self.deposit_paid,
            payment_status=self.payment_status,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class Payment(models.Model):
    Type = PaymentType
    Method = PaymentMethod
    Status = PaymentStatus

    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name="payments")
    amount = models.PositiveIntegerField()
    payment_type = models.CharField(max_length=10, choices=Type.choices)
    payment_method = models.CharField(max_length=16, choices=Method.choices)
    payment_reference = models.CharField(max_length=100, blank=True)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    paid_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["status"], name="payment_status_idx"),
            models.Index(fields=["payment_type"], name="payment_type_idx"),
            models.Index(fields=["payment_method"], name="payment_method_idx"),
            models.Index(fields=["-created_at"], name="payment_created_idx"),
        ]

    def to_record(self):
        return PaymentRecord(
            id=self.pk,
            booking_id=self.booking_id,
            amount=self.amount,
            payment_type=self.payment_type,
            payment_method=self.payment_method,
            payment_reference=self.payment_reference,
            status=self.status,
            paid_at=self.paid_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
