import re

from django.utils import timezone
from rest_framework import serializers

from .choices import BookingStatus, FareClass, PaymentMethod, PaymentStatus, PaymentType

PHONE_RE = re.compile(r"^[+]?[\d\s\-()]+$")


class GuestInput(serializers.Serializer):
    name = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=50)

    def validate_name(self, value):
        if not value.strip():
            raise serializers.ValidationError("Name is required")
        return value.strip()

    def validate_phone(self, value):
        if not PHONE_RE.match(value.strip()):
            raise serializers.ValidationError("Please enter a valid phone number")
        return value.strip()


class RoomSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    name = serializers.CharField(read_only=True)
    description = serializers.CharField(read_only=True)
    price = serializers.IntegerField(read_only=True)
    bed_only = serializers.IntegerField(read_only=True)
    bb = serializers.IntegerField(read_only=True)
    half_board = serializers.IntegerField(read_only=True)
    full_board = serializers.IntegerField(read_only=True)
    capacity = serializers.IntegerField(read_only=True)
    amenities = serializers.ListField(child=serializers.CharField(), read_only=True)
    image_url = serializers.CharField(read_only=True)

    def to_representation(self, instance):
        available = None
        if isinstance(instance, tuple):
            instance, available = instance
        data = super().to_representation(instance)
        if available is not None:
            data["available"] = available
        return data


class RoomWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    description = serializers.CharField()
    bed_only = serializers.IntegerField(min_value=0)
    bb = serializers.IntegerField(min_value=0)
    half_board = serializers.IntegerField(min_value=0)
    full_board = serializers.IntegerField(min_value=0)
    capacity = serializers.IntegerField(min_value=1, default=1)
    amenities = serializers.ListField(child=serializers.CharField(max_length=100), default=list)
    image_url = serializers.URLField(max_length=300, allow_blank=True, default="")


class BookingSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    room_id = serializers.IntegerField(read_only=True)
    guest_name = serializers.CharField(read_only=True)
    guest_email = serializers.EmailField(read_only=True)
    guest_phone = serializers.CharField(read_only=True)
    check_in_date = serializers.DateField(read_only=True)
    check_out_date = serializers.DateField(read_only=True)
    nights = serializers.IntegerField(read_only=True)
    number_of_guests = serializers.IntegerField(read_only=True)
    special_requests = serializers.CharField(read_only=True)
    status = serializers.CharField(read_only=True)
    total_amount = serializers.IntegerField(read_only=True)
    deposit_amount = serializers.IntegerField(read_only=True)
    balance_amount = serializers.IntegerField(read_only=True)
    deposit_paid = serializers.BooleanField(read_only=True)
    payment_status = serializers.CharField(read_only=True)
    created_at = serializers.DateTimeField(read_only=True)
    updated_at = serializers.DateTimeField(read_only=True)


class BookingCreateSerializer(serializers.Serializer):
    room_id = serializers.IntegerField()
    guest = GuestInput()
    check_in = serializers.DateField()
    check_out = serializers.DateField()
    guests = serializers.IntegerField(min_value=1, default=1)
    special_requests = serializers.CharField(allow_blank=True, required=False, default="")
    fare_class = serializers.ChoiceField(choices=FareClass.choices, default=FareClass.FULL_BOARD)

    def validate_check_in(self, value):
        if value < timezone.localdate():
            raise serializers.ValidationError("Check-in date cannot be in the past")
        return value

    def validate(self, data):
        if data["check_out"] <= data["check_in"]:
            raise serializers.ValidationError({"check_out": "Check-out date must be after check-in date"})
        return data


class BookingStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=BookingStatus.choices)


class PaymentSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    booking_id = serializers.IntegerField(read_only=True)
    amount = serializers.IntegerField(read_only=True)
    payment_type = serializers.CharField(read_only=True)
    payment_method = serializers.CharField(read_only=True)
    payment_reference = serializers.CharField(read_only=True)
    status = serializers.CharField(read_only=True)
    paid_at = serializers.DateTimeField(read_only=True)
    created_at = serializers.DateTimeField(read_only=True)
    updated_at = serializers.DateTimeField(read_only=True)


class PaymentCreateSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField()
    amount = serializers.IntegerField(min_value=0)
    payment_type = serializers.ChoiceField(choices=PaymentType.choices)
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)
    payment_reference = serializers.CharField(max_length=100, allow_blank=True, required=False, default="")


class PaymentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=PaymentStatus.choices)
