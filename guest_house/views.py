import logging
from datetime import datetime

from django.http import JsonResponse
from rest_framework import status, viewsets
from rest_framework.decorators import action, api_view
from rest_framework.response import Response

from . import bookings, payments, reports, rooms
from .availability import is_available, rooms_with_availability
from .contact import contact_links
from .exceptions import StoreUnavailable
from .serializers import (
    BookingCreateSerializer, BookingSerializer, BookingStatusSerializer,
    PaymentCreateSerializer, PaymentSerializer, PaymentStatusSerializer, RoomSerializer,
    RoomWriteSerializer,
)
from .store import fallback_store, select_store

logger = logging.getLogger(__name__)


def welcome(request):
    return JsonResponse({"message": "Welcome to the Guest House booking service"})


def health_check(request):
    store = select_store()
    return JsonResponse({"status": "ok", "store": store.name})


def parse_stay(params):
    """
    Read optional check_in/check_out query params. Returns (check_in, check_out, error).
    """
    check_in_str = params.get("check_in")
    check_out_str = params.get("check_out")
    if not (check_in_str and check_out_str):
        return None, None, None
    try:
        check_in = datetime.strptime(check_in_str, "%Y-%m-%d").date()
        check_out = datetime.strptime(check_out_str, "%Y-%m-%d").date()
    except ValueError:
        return None, None, "Invalid date format. Use YYYY-MM-DD"
    if check_out <= check_in:
        return None, None, "check_out must be after check_in"
    return check_in, check_out, None


class RoomViewSet(viewsets.ViewSet):

    def list(self, request):
        """List rooms cheapest first, flagged available for the requested dates"""
        check_in, check_out, error = parse_stay(request.query_params)
        if error:
            return Response({"error": error}, status=status.HTTP_400_BAD_REQUEST)

        try:
            annotated = rooms_with_availability(select_store(), check_in, check_out)
        except StoreUnavailable as exc:
            logger.warning("Room listing failed (%s), serving the fallback catalog", exc)
            annotated = rooms_with_availability(fallback_store(), check_in, check_out)
        return Response(RoomSerializer(annotated, many=True).data)

    def retrieve(self, request, pk=None):
        room = select_store().find_room(pk)
        if room is None:
            return Response({"error": "Room not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(RoomSerializer(room).data)

    def create(self, request):
        serializer = RoomWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        room = rooms.create_room(select_store(require_rooms=False), **serializer.validated_data)
        return Response(RoomSerializer(room).data, status=status.HTTP_201_CREATED)

    def update(self, request, pk=None, partial=False):
        serializer = RoomWriteSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)

        room = rooms.update_room(select_store(require_rooms=False), pk, **serializer.validated_data)
        if room is None:
            return Response({"error": "Room not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(RoomSerializer(room).data)

    def partial_update(self, request, pk=None):
        return self.update(request, pk, partial=True)

    def destroy(self, request, pk=None):
        if not rooms.delete_room(select_store(require_rooms=False), pk):
            return Response({"error": "Room not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["get"])
    def availability(self, request, pk=None):
        """Check one room for a stay"""
        check_in, check_out, error = parse_stay(request.query_params)
        if error or check_in is None:
            return Response({"error": error or "check_in and check_out are required"},
                            status=status.HTTP_400_BAD_REQUEST)

        store = select_store()
        if store.find_room(pk) is None:
            return Response({"error": "Room not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response({
            "room_id": int(pk),
            "check_in": check_in,
            "check_out": check_out,
            "available": is_available(store, pk, check_in, check_out),
        })


class BookingViewSet(viewsets.ViewSet):

    def list(self, request):
        """All bookings, or those touching ?start=&end= (inclusive) ordered by check-in"""
        params = request.query_params
        start, end = params.get("start"), params.get("end")
        if bool(start) != bool(end):
            return Response({"error": "start and end must be given together"},
                            status=status.HTTP_400_BAD_REQUEST)
        if start:
            try:
                start = datetime.strptime(start, "%Y-%m-%d").date()
                end = datetime.strptime(end, "%Y-%m-%d").date()
            except ValueError:
                return Response({"error": "Invalid date format. Use YYYY-MM-DD"},
                                status=status.HTTP_400_BAD_REQUEST)
            if end < start:
                return Response({"error": "end must not be before start"},
                                status=status.HTTP_400_BAD_REQUEST)
        else:
            start = end = None

        results = bookings.list_bookings(select_store(), room_id=params.get("room"), start=start, end=end)
        return Response(BookingSerializer(results, many=True).data)

    def retrieve(self, request, pk=None):
        booking = bookings.get_booking(select_store(), pk)
        if booking is None:
            return Response({"error": "Booking not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(BookingSerializer(booking).data)

    def create(self, request):
        """Submit a booking request; the room must be free for the stay"""
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        booking = bookings.create_booking(select_store(), bookings.BookingRequest(
            room_id=data["room_id"],
            guest_name=data["guest"]["name"],
            guest_email=data["guest"]["email"],
            guest_phone=data["guest"]["phone"],
            check_in_date=data["check_in"],
            check_out_date=data["check_out"],
            number_of_guests=data["guests"],
            special_requests=data["special_requests"],
            fare_class=data["fare_class"],
        ))
        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"])
    def by_email(self, request):
        """Get bookings by guest email"""
        email = request.query_params.get("email")
        if not email:
            return Response({"error": "Email parameter is required"},
                            status=status.HTTP_400_BAD_REQUEST)

        results = bookings.list_bookings(select_store(), guest_email=email.strip())
        return Response(BookingSerializer(results, many=True).data)

    @action(detail=True, methods=["post"], url_path="status")
    def set_status(self, request, pk=None):
        serializer = BookingStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = bookings.set_status(select_store(), pk, serializer.validated_data["status"])
        if booking is None:
            return Response({"error": "Booking not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(BookingSerializer(booking).data)

    @action(detail=True, methods=["get"], url_path="payments")
    def booking_payments(self, request, pk=None):
        store = select_store()
        if bookings.get_booking(store, pk) is None:
            return Response({"error": "Booking not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(PaymentSerializer(payments.payments_for_booking(store, pk), many=True).data)

    @action(detail=True, methods=["get"])
    def contact(self, request, pk=None):
        """Phone and WhatsApp links prefilled with the booking details"""
        booking = bookings.get_booking(select_store(), pk)
        if booking is None:
            return Response({"error": "Booking not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(contact_links(booking))


class PaymentViewSet(viewsets.ViewSet):

    def list(self, request):
        return Response(PaymentSerializer(select_store().list_payments(), many=True).data)

    def retrieve(self, request, pk=None):
        payment = select_store().find_payment(pk)
        if payment is None:
            return Response({"error": "Payment not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(PaymentSerializer(payment).data)

    def create(self, request):
        """Record a payment and bring the booking's payment status up to date"""
        serializer = PaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        payment = payments.record_payment(
            select_store(),
            data["booking_id"],
            data["amount"],
            data["payment_type"],
            data["payment_method"],
            data["payment_reference"],
        )
        if payment is None:
            return Response({"error": "Booking not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="status")
    def set_status(self, request, pk=None):
        serializer = PaymentStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        payment = payments.update_payment_status(select_store(), pk, serializer.validated_data["status"])
        if payment is None:
            return Response({"error": "Payment not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(PaymentSerializer(payment).data)


@api_view(["GET"])
def stats(request):
    store = select_store()
    return Response({
        "bookings": reports.booking_stats(store.list_bookings()),
        "payments": reports.payment_stats(store.list_payments()),
    })


@api_view(["GET"])
def contact(request):
    return Response(contact_links())
