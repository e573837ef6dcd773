from django.urls import path
from rest_framework.routers import DefaultRouter

from .views import BookingViewSet, PaymentViewSet, RoomViewSet, contact, stats

router = DefaultRouter()
router.register(r"rooms", RoomViewSet, basename="room")
router.register(r"bookings", BookingViewSet, basename="booking")
router.register(r"payments", PaymentViewSet, basename="payment")

urlpatterns = [
    path("stats/", stats, name="stats"),
    path("contact/", contact, name="contact"),
] + router.urls
