from django.contrib import admin

from .models import Booking, Payment, Room


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ("name", "capacity", "bed_only", "bb", "half_board", "full_board")
    readonly_fields = ("price",)


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("guest_name", "room", "check_in_date", "check_out_date", "status", "payment_status")
    list_filter = ("status", "payment_status")
    search_fields = ("guest_name", "guest_email", "guest_phone")
    inlines = [PaymentInline]
