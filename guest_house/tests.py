from datetime import date, datetime, timedelta
from io import StringIO
from unittest import mock

from django.apps import apps
from django.core.management import call_command
from django.db import OperationalError
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from . import billing, bookings, payments, rooms
from .availability import is_available, overlaps, rooms_with_availability
from .catalog import ROOMS
from .choices import BookingPaymentStatus, BookingStatus, FareClass, PaymentStatus
from .contact import contact_links
from .exceptions import RoomInUse, RoomNotFound, RoomUnavailable, StoreError, StoreUnavailable
from .models import Booking, Payment, Room
from .pricing import PRICING_TABLE, PricingTable
from .records import BookingRecord
from .reports import booking_stats, payment_stats
from .store import DjangoStore, MemoryStore, select_store


def make_room(room_id=2, **overrides):
    """Create a catalog room with a fixed primary key so fare table lookups line up."""
    data = next(room for room in ROOMS if room["id"] == room_id) if room_id in (1, 2, 3) else {
        "name": f"Room {room_id}", "description": "Extra room",
        "bed_only": 900, "bb": 1100, "half_board": 2000, "full_board": 3000, "capacity": 2,
    }
    data = {**data, **overrides}
    data.pop("id", None)
    return Room.objects.create(pk=room_id, **data)


def use_fresh_fallback_store(test):
    """Swap the app's fallback store for an empty one for the duration of a test."""
    store = MemoryStore()
    patcher = mock.patch.object(apps.get_app_config("guest_house"), "fallback_store", store)
    patcher.start()
    test.addCleanup(patcher.stop)
    return store


def booking_request(room_id=2, check_in=None, check_out=None, **overrides):
    check_in = check_in or date.today() + timedelta(days=1)
    check_out = check_out or check_in + timedelta(days=1)
    fields = dict(
        room_id=room_id,
        guest_name="Test Guest",
        guest_email="guest@example.com",
        guest_phone="+254 700 000000",
        check_in_date=check_in,
        check_out_date=check_out,
        number_of_guests=1,
    )
    fields.update(overrides)
    return bookings.BookingRequest(**fields)


class BillingTestCase(SimpleTestCase):
    """Stay length and deposit arithmetic"""

    def test_deposit_is_half_rounded_up_to_fifty(self):
        for total, expected in [(0, 0), (1, 50), (100, 50), (101, 100), (3500, 1750), (4300, 2150), (6350, 3200)]:
            with self.subTest(total=total):
                self.assertEqual(billing.deposit(total), expected)

    def test_deposit_bounds_and_split(self):
        for total in range(0, 20000, 37):
            with self.subTest(total=total):
                deposit = billing.deposit(total)
                half = -(-total // 2)
                self.assertEqual(deposit % 50, 0)
                self.assertGreaterEqual(deposit, half)
                self.assertLess(deposit, half + 50)
                self.assertEqual(deposit + billing.balance(total, deposit), total)

    def test_nights_grow_by_one_per_day(self):
        check_in = date(2025, 6, 10)
        for extra in range(1, 15):
            with self.subTest(extra=extra):
                self.assertEqual(billing.nights(check_in, check_in + timedelta(days=extra)), extra)

    def test_nights_ignore_time_of_day(self):
        self.assertEqual(billing.nights(datetime(2025, 6, 10, 23, 30), datetime(2025, 6, 12, 1, 0)), 2)
        self.assertEqual(billing.nights("2025-06-10", "2025-06-13"), 3)

    def test_nights_rejects_empty_range(self):
        with self.assertRaises(ValueError):
            billing.nights(date(2025, 6, 10), date(2025, 6, 10))

    def test_total(self):
        self.assertEqual(billing.total(3, 4300), 12900)


class PricingTestCase(SimpleTestCase):

    def test_catalog_rates(self):
        self.assertEqual(PRICING_TABLE.rate(1), 3500)
        self.assertEqual(PRICING_TABLE.rate(2, FareClass.BED_AND_BREAKFAST), 1500)
        self.assertEqual(PRICING_TABLE.rate("3", FareClass.HALF_BOARD), 4300)

    def test_unknown_room_charged_default_rate(self):
        self.assertNotIn(42, PRICING_TABLE)
        self.assertEqual(PRICING_TABLE.rate(42), 3500)

    @override_settings(GUEST_HOUSE={"DEFAULT_NIGHTLY_RATE": 5000})
    def test_default_rate_comes_from_settings(self):
        self.assertEqual(PRICING_TABLE.rate(42, FareClass.BED_ONLY), 5000)

    def test_explicit_default_rate(self):
        table = PricingTable({7: {"full_board": 100}}, default_rate=250)
        self.assertEqual(table.rate(7), 100)
        self.assertEqual(table.rate(7, FareClass.BED_ONLY), 250)
        self.assertEqual(table.rate(8), 250)


class OverlapTestCase(SimpleTestCase):
    """Half-open [check_in, check_out) ranges"""

    def test_overlap_scenarios(self):
        start, end = date(2025, 6, 10), date(2025, 6, 15)
        scenarios = [
            (date(2025, 6, 8), date(2025, 6, 12), True, 'starts before and overlaps'),
            (date(2025, 6, 12), date(2025, 6, 20), True, 'starts during existing booking'),
            (date(2025, 6, 11), date(2025, 6, 13), True, 'completely within existing booking'),
            (date(2025, 6, 1), date(2025, 6, 30), True, 'completely encompasses existing booking'),
            (date(2025, 6, 10), date(2025, 6, 15), True, 'same dates'),
            (date(2025, 6, 15), date(2025, 6, 18), False, 'check-in on existing check-out'),
            (date(2025, 6, 1), date(2025, 6, 10), False, 'check-out on existing check-in'),
        ]
        for new_start, new_end, expected, description in scenarios:
            with self.subTest(scenario=description):
                self.assertEqual(overlaps(start, end, new_start, new_end), expected)


class AvailabilityTestCase(TestCase):
    """Availability against the database store"""

    def setUp(self):
        self.store = DjangoStore()
        self.room = make_room(2)
        self.existing = Booking.objects.create(
            room=self.room, guest_name="Existing", guest_email="existing@example.com",
            guest_phone="0700000000", check_in_date=date(2025, 6, 10), check_out_date=date(2025, 6, 15),
            total_amount=21500, deposit_amount=10750, balance_amount=10750, status=BookingStatus.CONFIRMED,
        )

    def test_back_to_back_and_overlapping_queries(self):
        self.assertTrue(is_available(self.store, self.room.pk, date(2025, 6, 15), date(2025, 6, 18)))
        self.assertFalse(is_available(self.store, self.room.pk, date(2025, 6, 12), date(2025, 6, 20)))
        self.assertTrue(is_available(self.store, self.room.pk, date(2025, 6, 1), date(2025, 6, 10)))

    def test_pending_booking_blocks(self):
        self.existing.status = BookingStatus.PENDING
        self.existing.save()
        self.assertFalse(is_available(self.store, self.room.pk, date(2025, 6, 11), date(2025, 6, 12)))

    def test_cancelled_and_completed_bookings_do_not_block(self):
        for booking_status in (BookingStatus.CANCELLED, BookingStatus.COMPLETED):
            with self.subTest(status=booking_status):
                self.existing.status = booking_status
                self.existing.save()
                self.assertTrue(is_available(self.store, self.room.pk, date(2025, 6, 11), date(2025, 6, 12)))

    def test_other_rooms_unaffected(self):
        other = make_room(1)
        self.assertTrue(is_available(self.store, other.pk, date(2025, 6, 11), date(2025, 6, 12)))

    def test_datetimes_are_compared_by_day(self):
        self.assertTrue(is_available(
            self.store, self.room.pk, datetime(2025, 6, 15, 22, 0), datetime(2025, 6, 16, 9, 0),
        ))

    def test_fails_open_when_database_unreachable(self):
        with mock.patch.object(Booking.objects, "filter", side_effect=OperationalError("connection refused")):
            self.assertTrue(is_available(self.store, self.room.pk, date(2025, 6, 11), date(2025, 6, 12)))

    def test_rooms_with_availability(self):
        make_room(1)
        make_room(3)
        annotated = rooms_with_availability(self.store, date(2025, 6, 12), date(2025, 6, 13))
        self.assertEqual([room.id for room, _ in annotated], [1, 2, 3])
        self.assertEqual([available for _, available in annotated], [True, False, True])


class MemoryStoreTestCase(SimpleTestCase):
    """The fallback store runs the same rules as the database"""

    def setUp(self):
        self.store = MemoryStore()

    def test_seeded_with_catalog(self):
        self.assertEqual([room.name for room in self.store.list_rooms()],
                         ["Single Room", "Double Room", "Double Room + Extra Bed"])

    def test_availability_and_booking(self):
        booking = bookings.create_booking(self.store, booking_request(
            2, check_in=date(2025, 6, 10), check_out=date(2025, 6, 15),
        ))
        self.assertEqual(booking.total_amount, 5 * 4300)
        self.assertTrue(is_available(self.store, 2, date(2025, 6, 15), date(2025, 6, 18)))
        self.assertFalse(is_available(self.store, 2, date(2025, 6, 12), date(2025, 6, 20)))
        self.assertTrue(is_available(self.store, 2, date(2025, 6, 1), date(2025, 6, 10)))

    def test_updates_unknown_ids(self):
        self.assertIsNone(self.store.update_booking(99, status=BookingStatus.CONFIRMED))
        self.assertIsNone(self.store.update_payment("nope", status=PaymentStatus.COMPLETED))
        self.assertIsNone(self.store.find_room("abc"))

    def test_fail_open_on_unreachable_store(self):
        class BrokenStore(MemoryStore):
            def find_bookings_overlapping(self, *args, **kwargs):
                raise StoreUnavailable("down")

        self.assertTrue(is_available(BrokenStore(), 2, date(2025, 6, 10), date(2025, 6, 11)))

    def test_room_management(self):
        room = rooms.create_room(
            self.store, name="Garden Suite", description="Opens onto the garden",
            bed_only=3000, bb=3400, half_board=5000, full_board=7000, capacity=4,
        )
        self.assertEqual(room.id, 4)
        self.assertEqual(self.store.list_rooms()[-1].name, "Garden Suite")

        self.assertEqual(rooms.update_room(self.store, 4, full_board=7500).price, 7500)
        self.assertIsNone(rooms.update_room(self.store, 99, name="Nowhere"))

        bookings.create_booking(self.store, booking_request(2))
        with self.assertRaises(RoomInUse):
            rooms.delete_room(self.store, 2)
        self.assertTrue(rooms.delete_room(self.store, 4))
        self.assertFalse(rooms.delete_room(self.store, 4))
        self.assertIsNone(self.store.find_room(4))

    def test_bookings_in_date_window(self):
        for room_id, check_in, check_out in [
            (2, date(2025, 6, 1), date(2025, 6, 5)),
            (2, date(2025, 6, 10), date(2025, 6, 15)),
            (2, date(2025, 6, 20), date(2025, 6, 25)),
            (1, date(2025, 5, 25), date(2025, 7, 5)),
        ]:
            bookings.create_booking(self.store, booking_request(room_id, check_in=check_in, check_out=check_out))

        window = bookings.list_bookings(self.store, start=date(2025, 6, 5), end=date(2025, 6, 12))
        self.assertEqual([b.check_in_date for b in window],
                         [date(2025, 5, 25), date(2025, 6, 1), date(2025, 6, 10)])

    def test_purge_stale_pending(self):
        booking = bookings.create_booking(self.store, booking_request(2))
        self.assertEqual(self.store.purge_stale_pending_bookings(timezone.now() - timedelta(hours=1)), 0)
        self.assertEqual(self.store.purge_stale_pending_bookings(timezone.now() + timedelta(seconds=1)), 1)
        self.assertIsNone(self.store.find_booking(booking.id))


class BookingLifecycleTestCase(TestCase):

    def setUp(self):
        self.store = DjangoStore()
        self.room = make_room(2)

    def test_create_booking_is_pending_with_deposit(self):
        booking = bookings.create_booking(self.store, booking_request(
            2, check_in=date(2025, 6, 10), check_out=date(2025, 6, 13),
            guest_email="  Guest@Example.COM ", special_requests="Late arrival",
        ))
        self.assertIsNotNone(booking.id)
        self.assertEqual(booking.status, BookingStatus.PENDING)
        self.assertEqual(booking.payment_status, BookingPaymentStatus.PENDING_DEPOSIT)
        self.assertFalse(booking.deposit_paid)
        self.assertEqual(booking.total_amount, 12900)
        self.assertEqual(booking.deposit_amount, 6450)
        self.assertEqual(booking.balance_amount, 6450)
        self.assertEqual(booking.guest_email, "guest@example.com")
        self.assertEqual(Booking.objects.get(pk=booking.id).special_requests, "Late arrival")

    def test_fare_class_rate(self):
        booking = bookings.create_booking(self.store, booking_request(2, fare_class=FareClass.BED_ONLY))
        self.assertEqual(booking.total_amount, 1200)
        self.assertEqual(booking.deposit_amount, 600)

    def test_room_missing_from_fare_table_uses_default_rate(self):
        make_room(99)
        booking = bookings.create_booking(self.store, booking_request(99))
        self.assertEqual(booking.total_amount, 3500)

    def test_unavailable_room_creates_nothing(self):
        bookings.create_booking(self.store, booking_request(2, check_in=date(2025, 6, 10), check_out=date(2025, 6, 15)))
        with self.assertRaises(RoomUnavailable):
            bookings.create_booking(self.store, booking_request(
                2, check_in=date(2025, 6, 12), check_out=date(2025, 6, 20),
            ))
        self.assertEqual(Booking.objects.count(), 1)

    def test_unknown_room(self):
        with self.assertRaises(RoomNotFound):
            bookings.create_booking(self.store, booking_request(404))
        self.assertEqual(Booking.objects.count(), 0)

    def test_invalid_range(self):
        with self.assertRaises(ValueError):
            bookings.create_booking(self.store, booking_request(
                2, check_in=date(2025, 6, 10), check_out=date(2025, 6, 10),
            ))

    @override_settings(GUEST_HOUSE={"SERIALIZE_BOOKINGS": True})
    def test_serialized_booking_creation(self):
        booking = bookings.create_booking(self.store, booking_request(2))
        self.assertEqual(Booking.objects.get(pk=booking.id).room_id, 2)

    def test_any_status_may_follow_any_other(self):
        booking = bookings.create_booking(self.store, booking_request(2))
        for new_status in (BookingStatus.CONFIRMED, BookingStatus.COMPLETED, BookingStatus.PENDING,
                           BookingStatus.CANCELLED, BookingStatus.CONFIRMED):
            with self.subTest(status=new_status):
                updated = bookings.set_status(self.store, booking.id, new_status)
                self.assertEqual(updated.status, new_status)
                self.assertEqual(Booking.objects.get(pk=booking.id).status, new_status)

    def test_set_status_unknown_booking(self):
        self.assertIsNone(bookings.set_status(self.store, 12345, BookingStatus.CONFIRMED))

    def test_bookings_in_date_window(self):
        make_room(1)
        make_room(3)
        stays = [
            (2, date(2025, 6, 1), date(2025, 6, 5)),
            (2, date(2025, 6, 10), date(2025, 6, 15)),
            (2, date(2025, 6, 20), date(2025, 6, 25)),
            (1, date(2025, 5, 25), date(2025, 7, 5)),
            (3, date(2025, 6, 12), date(2025, 6, 14)),
        ]
        for room_id, check_in, check_out in stays:
            bookings.create_booking(self.store, booking_request(room_id, check_in=check_in, check_out=check_out))

        window = bookings.list_bookings(self.store, start=date(2025, 6, 5), end=date(2025, 6, 12))
        self.assertEqual(
            [(b.room_id, b.check_in_date) for b in window],
            [(1, date(2025, 5, 25)), (2, date(2025, 6, 1)), (2, date(2025, 6, 10)), (3, date(2025, 6, 12))],
        )
        self.assertEqual(len(bookings.list_bookings(self.store, room_id=2, start=date(2025, 6, 5), end=date(2025, 6, 12))), 2)
        self.assertEqual(bookings.list_bookings(self.store, start=date(2025, 8, 1), end=date(2025, 8, 31)), [])

    def test_cancelled_booking_frees_room(self):
        booking = bookings.create_booking(self.store, booking_request(2, check_in=date(2025, 6, 10), check_out=date(2025, 6, 15)))
        bookings.set_status(self.store, booking.id, BookingStatus.CANCELLED)
        again = bookings.create_booking(self.store, booking_request(2, check_in=date(2025, 6, 11), check_out=date(2025, 6, 12)))
        self.assertEqual(again.status, BookingStatus.PENDING)


class PaymentReconciliationTestCase(TestCase):

    def setUp(self):
        self.store = DjangoStore()
        make_room(2)
        self.booking = bookings.create_booking(self.store, booking_request(
            2, check_in=date(2025, 6, 10), check_out=date(2025, 6, 11),
        ))

    def test_deposit_then_balance(self):
        self.assertEqual((self.booking.total_amount, self.booking.deposit_amount), (4300, 2150))

        payment = payments.record_payment(self.store, self.booking.id, 2150, "deposit", "mpesa", "QWE123")
        self.assertEqual(payment.status, PaymentStatus.COMPLETED)
        self.assertIsNotNone(payment.paid_at)
        booking = self.store.find_booking(self.booking.id)
        self.assertEqual(booking.payment_status, BookingPaymentStatus.DEPOSIT_PAID)
        self.assertTrue(booking.deposit_paid)

        payments.record_payment(self.store, self.booking.id, 2150, "balance", "bank_transfer")
        booking = self.store.find_booking(self.booking.id)
        self.assertEqual(booking.payment_status, BookingPaymentStatus.FULLY_PAID)
        self.assertTrue(booking.deposit_paid)

    def test_cash_waits_for_confirmation(self):
        payment = payments.record_payment(self.store, self.booking.id, 4300, "full", "cash")
        self.assertEqual(payment.status, PaymentStatus.PENDING)
        self.assertIsNone(payment.paid_at)
        booking = self.store.find_booking(self.booking.id)
        self.assertEqual(booking.payment_status, BookingPaymentStatus.PENDING_DEPOSIT)
        self.assertFalse(booking.deposit_paid)

        payment = payments.update_payment_status(self.store, payment.id, PaymentStatus.COMPLETED)
        self.assertIsNotNone(payment.paid_at)
        booking = self.store.find_booking(self.booking.id)
        self.assertEqual(booking.payment_status, BookingPaymentStatus.FULLY_PAID)

    def test_partial_payment_below_deposit(self):
        payments.record_payment(self.store, self.booking.id, 2000, "deposit", "cheque")
        booking = self.store.find_booking(self.booking.id)
        self.assertEqual(booking.payment_status, BookingPaymentStatus.PENDING_DEPOSIT)
        self.assertFalse(booking.deposit_paid)

    def test_refund_moves_status_back(self):
        payment = payments.record_payment(self.store, self.booking.id, 2150, "deposit", "mpesa")
        payments.update_payment_status(self.store, payment.id, PaymentStatus.REFUNDED)
        booking = self.store.find_booking(self.booking.id)
        self.assertEqual(booking.payment_status, BookingPaymentStatus.PENDING_DEPOSIT)
        self.assertFalse(booking.deposit_paid)

    def test_reconcile_is_idempotent(self):
        payments.record_payment(self.store, self.booking.id, 2150, "deposit", "mpesa")
        first = payments.reconcile(self.store, self.booking.id)
        second = payments.reconcile(self.store, self.booking.id)
        self.assertEqual(first.payment_status, second.payment_status)
        self.assertEqual(first.deposit_paid, second.deposit_paid)

    def test_reconcile_uses_stored_deposit(self):
        Booking.objects.filter(pk=self.booking.id).update(deposit_amount=3000)
        payments.record_payment(self.store, self.booking.id, 2150, "deposit", "mpesa")
        self.assertEqual(self.store.find_booking(self.booking.id).payment_status, BookingPaymentStatus.PENDING_DEPOSIT)

    def test_unknown_ids(self):
        self.assertIsNone(payments.record_payment(self.store, 999, 100, "deposit", "mpesa"))
        self.assertEqual(Payment.objects.count(), 0)
        self.assertIsNone(payments.update_payment_status(self.store, 999, PaymentStatus.COMPLETED))
        self.assertIsNone(payments.reconcile(self.store, 999))

    def test_payment_status_thresholds(self):
        self.assertEqual(payments.payment_status_for(0, 2150, 4300), BookingPaymentStatus.PENDING_DEPOSIT)
        self.assertEqual(payments.payment_status_for(2150, 2150, 4300), BookingPaymentStatus.DEPOSIT_PAID)
        self.assertEqual(payments.payment_status_for(5000, 2150, 4300), BookingPaymentStatus.FULLY_PAID)


class ReportsAndContactTestCase(SimpleTestCase):

    def test_stats(self):
        store = MemoryStore()
        first = bookings.create_booking(store, booking_request(2, check_in=date(2025, 6, 10), check_out=date(2025, 6, 11)))
        second = bookings.create_booking(store, booking_request(1, check_in=date(2025, 6, 10), check_out=date(2025, 6, 11)))
        bookings.set_status(store, second.id, BookingStatus.CONFIRMED)
        payments.record_payment(store, first.id, 2150, "deposit", "mpesa")
        payments.record_payment(store, first.id, 2150, "balance", "cash")
        payments.record_payment(store, second.id, 3500, "full", "bank_transfer")

        self.assertEqual(booking_stats(store.list_bookings()), {
            "total": 2, "pending": 1, "confirmed": 1, "cancelled": 0, "completed": 0,
        })
        self.assertEqual(payment_stats(store.list_payments()), {
            "total_revenue": 5650, "total_deposits": 2150, "total_balance": 0,
            "completed_payments": 2, "pending_payments": 1,
        })

    @override_settings(GUEST_HOUSE={"WHATSAPP_NUMBER": "254700111222", "PHONE_NUMBER": "+254700111222"})
    def test_contact_links(self):
        booking = BookingRecord(
            room_id=1, guest_name="Jane Doe", guest_email="jane@example.com", guest_phone="0700",
            check_in_date=date(2025, 6, 10), check_out_date=date(2025, 6, 12), number_of_guests=2,
            total_amount=7000, deposit_amount=3500, balance_amount=3500,
        )
        links = contact_links(booking)
        self.assertEqual(links["phone_link"], "tel:+254700111222")
        self.assertTrue(links["whatsapp_link"].startswith("https://wa.me/254700111222?text="))
        self.assertIn("Jane%20Doe", links["whatsapp_link"])
        self.assertIn("2025-06-12", links["whatsapp_link"])
        self.assertIn("https://wa.me/254700111222?text=", contact_links()["whatsapp_link"])


class BookingApiTestCase(APITestCase):
    """Booking funnel over HTTP"""

    def setUp(self):
        for room_id in (3, 1, 2):
            make_room(room_id)
        self.check_in = date.today() + timedelta(days=5)
        self.check_out = date.today() + timedelta(days=7)

    def booking_payload(self, **overrides):
        payload = {
            'room_id': 2,
            'guest': {'name': 'API Guest', 'email': 'api@example.com', 'phone': '+254 712 345678'},
            'check_in': self.check_in.isoformat(),
            'check_out': self.check_out.isoformat(),
            'guests': 2,
        }
        payload.update(overrides)
        return payload

    def test_rooms_listed_by_price_with_availability(self):
        self.client.post('/api/bookings/', self.booking_payload(), format='json')
        response = self.client.get('/api/rooms/', {
            'check_in': self.check_in.isoformat(), 'check_out': self.check_out.isoformat(),
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([room['id'] for room in response.data], [1, 2, 3])
        self.assertEqual([room['available'] for room in response.data], [True, False, True])
        self.assertEqual(response.data[1]['price'], 4300)

    def test_rooms_bad_dates(self):
        response = self.client.get('/api/rooms/', {'check_in': '10/06/2025', 'check_out': '2025-06-12'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Invalid date format', response.data['error'])

    def test_rooms_fall_back_to_catalog_when_empty(self):
        Room.objects.all().delete()
        use_fresh_fallback_store(self)
        response = self.client.get('/api/rooms/')
        self.assertEqual(len(response.data), 3)
        self.assertTrue(all(room['available'] for room in response.data))

    def test_room_listed_from_empty_database_can_be_booked(self):
        Room.objects.all().delete()
        fallback = use_fresh_fallback_store(self)

        listed = self.client.get('/api/rooms/').data
        self.assertEqual([room['id'] for room in listed], [1, 2, 3])

        response = self.client.post('/api/bookings/', self.booking_payload(room_id=listed[0]['id']), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data['total_amount'], 2 * 3500)
        self.assertEqual(len(fallback.list_bookings()), 1)
        self.assertEqual(Booking.objects.count(), 0)

    def test_bookings_in_date_window(self):
        self.client.post('/api/bookings/', self.booking_payload(), format='json')
        later = self.check_out + timedelta(days=10)
        self.client.post('/api/bookings/', self.booking_payload(
            check_in=later.isoformat(), check_out=(later + timedelta(days=1)).isoformat(),
        ), format='json')

        response = self.client.get('/api/bookings/', {
            'start': self.check_out.isoformat(), 'end': (self.check_out + timedelta(days=3)).isoformat(),
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([b['check_in_date'] for b in response.data], [self.check_in.isoformat()])
        self.assertEqual(len(self.client.get('/api/bookings/').data), 2)

        for params in ({'start': self.check_in.isoformat()},
                       {'start': '2025/06/01', 'end': '2025-06-02'},
                       {'start': self.check_out.isoformat(), 'end': self.check_in.isoformat()}):
            with self.subTest(params=params):
                self.assertEqual(self.client.get('/api/bookings/', params).status_code,
                                 status.HTTP_400_BAD_REQUEST)

    def test_room_availability_endpoint(self):
        url = '/api/rooms/2/availability/'
        params = {'check_in': self.check_in.isoformat(), 'check_out': self.check_out.isoformat()}
        self.assertTrue(self.client.get(url, params).data['available'])
        self.client.post('/api/bookings/', self.booking_payload(), format='json')
        self.assertFalse(self.client.get(url, params).data['available'])
        self.assertEqual(self.client.get('/api/rooms/77/availability/', params).status_code,
                         status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_booking(self):
        response = self.client.post('/api/bookings/', self.booking_payload(special_requests='Vegetarian'), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['payment_status'], 'pending_deposit')
        self.assertEqual(response.data['nights'], 2)
        self.assertEqual(response.data['total_amount'], 8600)
        self.assertEqual(response.data['deposit_amount'], 4300)
        self.assertEqual(response.data['balance_amount'], 4300)
        self.assertEqual(response.data['number_of_guests'], 2)

    def test_client_total_is_ignored(self):
        response = self.client.post('/api/bookings/', self.booking_payload(total_amount=1), format='json')
        self.assertEqual(response.data['total_amount'], 8600)

    def test_overlapping_booking_conflict(self):
        self.client.post('/api/bookings/', self.booking_payload(), format='json')
        response = self.client.post('/api/bookings/', self.booking_payload(
            check_in=(self.check_in + timedelta(days=1)).isoformat(),
            check_out=(self.check_out + timedelta(days=3)).isoformat(),
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertIn('Room is not available', response.data['error'])
        self.assertEqual(Booking.objects.count(), 1)

    def test_back_to_back_booking_allowed(self):
        self.client.post('/api/bookings/', self.booking_payload(), format='json')
        response = self.client.post('/api/bookings/', self.booking_payload(
            check_in=self.check_out.isoformat(),
            check_out=(self.check_out + timedelta(days=2)).isoformat(),
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_validation_errors(self):
        scenarios = [
            ({'check_out': self.check_in.isoformat()}, 'check_out'),
            ({'check_in': (date.today() - timedelta(days=3)).isoformat()}, 'check_in'),
            ({'guest': {'name': ' ', 'email': 'a@example.com', 'phone': '0700'}}, 'guest'),
            ({'guest': {'name': 'A', 'email': 'not-an-email', 'phone': '0700'}}, 'guest'),
            ({'guest': {'name': 'A', 'email': 'a@example.com', 'phone': 'call me'}}, 'guest'),
            ({'guests': 0}, 'guests'),
            ({'fare_class': 'all_inclusive'}, 'fare_class'),
        ]
        for overrides, field in scenarios:
            with self.subTest(field=field, overrides=overrides):
                response = self.client.post('/api/bookings/', self.booking_payload(**overrides), format='json')
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertIn(field, response.data)
        self.assertEqual(Booking.objects.count(), 0)

    def test_unknown_room(self):
        response = self.client.post('/api/bookings/', self.booking_payload(room_id=55), format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_lookup_and_by_email(self):
        created = self.client.post('/api/bookings/', self.booking_payload(), format='json').data
        self.assertEqual(self.client.get(f"/api/bookings/{created['id']}/").data['guest_name'], 'API Guest')
        self.assertEqual(self.client.get('/api/bookings/999/').status_code, status.HTTP_404_NOT_FOUND)

        response = self.client.get('/api/bookings/by_email/', {'email': 'API@example.com'})
        self.assertEqual([b['id'] for b in response.data], [created['id']])
        self.assertEqual(self.client.get('/api/bookings/by_email/').status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(len(self.client.get('/api/bookings/', {'room': 2}).data), 1)
        self.assertEqual(len(self.client.get('/api/bookings/', {'room': 1}).data), 0)

    def test_status_update(self):
        created = self.client.post('/api/bookings/', self.booking_payload(), format='json').data
        url = f"/api/bookings/{created['id']}/status/"
        response = self.client.post(url, {'status': 'completed'}, format='json')
        self.assertEqual(response.data['status'], 'completed')
        response = self.client.post(url, {'status': 'pending'}, format='json')
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(self.client.post(url, {'status': 'lost'}, format='json').status_code,
                         status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.post('/api/bookings/999/status/', {'status': 'confirmed'}, format='json').status_code,
                         status.HTTP_404_NOT_FOUND)

    def test_contact_links(self):
        created = self.client.post('/api/bookings/', self.booking_payload(), format='json').data
        response = self.client.get(f"/api/bookings/{created['id']}/contact/")
        self.assertIn('API%20Guest', response.data['whatsapp_link'])
        self.assertTrue(self.client.get('/api/contact/').data['phone_link'].startswith('tel:'))


class RoomManagementApiTestCase(APITestCase):
    """Maintaining the room catalog over HTTP"""

    room_payload = {
        'name': 'Garden Suite',
        'description': 'Opens onto the garden',
        'bed_only': 3000,
        'bb': 3400,
        'half_board': 5000,
        'full_board': 7000,
        'capacity': 4,
        'amenities': ['Free Wi-Fi', 'Patio'],
    }

    def test_first_room_goes_to_empty_database(self):
        response = self.client.post('/api/rooms/', self.room_payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data['price'], 7000)
        room = Room.objects.get()
        self.assertEqual((room.pk, room.price, room.capacity), (response.data['id'], 7000, 4))

    def test_update_and_partial_update(self):
        make_room(2)
        response = self.client.put('/api/rooms/2/', self.room_payload, format='json')
        self.assertEqual(response.data['name'], 'Garden Suite')

        response = self.client.patch('/api/rooms/2/', {'full_board': 5200}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['price'], 5200)
        self.assertEqual(response.data['name'], 'Garden Suite')
        self.assertEqual(Room.objects.get(pk=2).price, 5200)

        self.assertEqual(self.client.patch('/api/rooms/2/', {'capacity': 0}, format='json').status_code,
                         status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.put('/api/rooms/99/', self.room_payload, format='json').status_code,
                         status.HTTP_404_NOT_FOUND)

    def test_invalid_room(self):
        payload = {key: value for key, value in self.room_payload.items() if key != 'full_board'}
        response = self.client.post('/api/rooms/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('full_board', response.data)
        self.assertEqual(Room.objects.count(), 0)

    def test_delete(self):
        make_room(1)
        make_room(2)
        self.assertEqual(self.client.delete('/api/rooms/2/').status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(list(Room.objects.values_list('pk', flat=True)), [1])
        self.assertEqual(self.client.delete('/api/rooms/2/').status_code, status.HTTP_404_NOT_FOUND)

    def test_room_with_bookings_is_kept(self):
        make_room(2)
        bookings.create_booking(DjangoStore(), booking_request(2))
        response = self.client.delete('/api/rooms/2/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertIn('cannot be deleted', response.data['error'])
        self.assertTrue(Room.objects.filter(pk=2).exists())


class PaymentApiTestCase(APITestCase):

    def setUp(self):
        make_room(2)
        check_in = date.today() + timedelta(days=3)
        response = self.client.post('/api/bookings/', {
            'room_id': 2,
            'guest': {'name': 'Payer', 'email': 'payer@example.com', 'phone': '0712345678'},
            'check_in': check_in.isoformat(),
            'check_out': (check_in + timedelta(days=1)).isoformat(),
        }, format='json')
        self.booking_id = response.data['id']

    def pay(self, amount, payment_type, method, **extra):
        return self.client.post('/api/payments/', {
            'booking_id': self.booking_id, 'amount': amount,
            'payment_type': payment_type, 'payment_method': method, **extra,
        }, format='json')

    def test_deposit_and_balance_flow(self):
        response = self.pay(2150, 'deposit', 'mpesa', payment_reference='MPESA42')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'completed')
        booking = self.client.get(f'/api/bookings/{self.booking_id}/').data
        self.assertEqual(booking['payment_status'], 'deposit_paid')
        self.assertTrue(booking['deposit_paid'])

        self.pay(2150, 'balance', 'mpesa')
        booking = self.client.get(f'/api/bookings/{self.booking_id}/').data
        self.assertEqual(booking['payment_status'], 'fully_paid')

        listed = self.client.get(f'/api/bookings/{self.booking_id}/payments/').data
        self.assertEqual(len(listed), 2)

    def test_cash_payment_confirmed_later(self):
        response = self.pay(2150, 'deposit', 'cash')
        self.assertEqual(response.data['status'], 'pending')
        self.assertIsNone(response.data['paid_at'])
        self.assertEqual(self.client.get(f'/api/bookings/{self.booking_id}/').data['payment_status'], 'pending_deposit')

        response = self.client.post(f"/api/payments/{response.data['id']}/status/", {'status': 'completed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(response.data['paid_at'])
        self.assertEqual(self.client.get(f'/api/bookings/{self.booking_id}/').data['payment_status'], 'deposit_paid')

    def test_unknown_targets(self):
        response = self.client.post('/api/payments/', {
            'booking_id': 999, 'amount': 100, 'payment_type': 'deposit', 'payment_method': 'mpesa',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.post('/api/payments/999/status/', {'status': 'completed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.client.get('/api/payments/999/').status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.client.get('/api/bookings/999/payments/').status_code, status.HTTP_404_NOT_FOUND)

    def test_invalid_payment(self):
        scenarios = [(-5, 'deposit', 'mpesa'), (100, 'deposit', 'paypal'), (100, 'tip', 'mpesa')]
        for amount, payment_type, method in scenarios:
            with self.subTest(amount=amount, payment_type=payment_type, method=method):
                response = self.pay(amount, payment_type, method)
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Payment.objects.count(), 0)

    def test_stats(self):
        self.pay(2150, 'deposit', 'mpesa')
        self.pay(2150, 'balance', 'cash')
        response = self.client.get('/api/stats/')
        self.assertEqual(response.data['bookings']['total'], 1)
        self.assertEqual(response.data['bookings']['pending'], 1)
        self.assertEqual(response.data['payments']['total_revenue'], 2150)
        self.assertEqual(response.data['payments']['pending_payments'], 1)
        self.assertEqual(len(self.client.get('/api/payments/').data), 2)


class FallbackModeTestCase(APITestCase):
    """Database unreachable: the funnel keeps working on the in-memory store"""

    def setUp(self):
        config = apps.get_app_config("guest_house")
        patchers = [
            mock.patch.object(DjangoStore, "is_reachable", return_value=False),
            mock.patch.object(config, "fallback_store", MemoryStore()),
        ]
        for patcher in patchers:
            patcher.start()
            self.addCleanup(patcher.stop)

    def test_health_reports_fallback(self):
        self.assertEqual(self.client.get('/health').json()['store'], 'fallback')

    def test_rooms_and_booking_served_from_fallback(self):
        rooms = self.client.get('/api/rooms/').data
        self.assertEqual([room['name'] for room in rooms], ['Single Room', 'Double Room', 'Double Room + Extra Bed'])

        check_in = date.today() + timedelta(days=2)
        response = self.client.post('/api/bookings/', {
            'room_id': 3,
            'guest': {'name': 'Offline', 'email': 'offline@example.com', 'phone': '0711111111'},
            'check_in': check_in.isoformat(),
            'check_out': (check_in + timedelta(days=1)).isoformat(),
            'guests': 3,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_amount'], 6300)
        self.assertEqual(Booking.objects.count(), 0)

        payment = self.client.post('/api/payments/', {
            'booking_id': response.data['id'], 'amount': 3150, 'payment_type': 'deposit', 'payment_method': 'mpesa',
        }, format='json')
        self.assertEqual(payment.status_code, status.HTTP_201_CREATED)
        booking = self.client.get(f"/api/bookings/{response.data['id']}/").data
        self.assertEqual(booking['payment_status'], 'deposit_paid')

    @override_settings(GUEST_HOUSE={"FALLBACK_ENABLED": False})
    def test_fallback_can_be_disabled(self):
        self.assertEqual(self.client.get('/health').json()['store'], 'database')


class StoreFailureTestCase(APITestCase):

    def test_empty_database_served_from_fallback(self):
        config = apps.get_app_config("guest_house")
        self.assertIs(select_store(), config.fallback_store)
        self.assertIs(select_store(require_rooms=False), config.live_store)
        make_room(1)
        self.assertIs(select_store(), config.live_store)

    def test_room_listing_survives_database_failure(self):
        make_room(2)
        use_fresh_fallback_store(self)
        with mock.patch.object(DjangoStore, "list_rooms", side_effect=StoreUnavailable("server closed the connection")):
            response = self.client.get('/api/rooms/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([room['name'] for room in response.data],
                         ['Single Room', 'Double Room', 'Double Room + Extra Bed'])

    def test_unexpected_store_failure_is_generic(self):
        make_room(1)
        with mock.patch.object(DjangoStore, "list_bookings", side_effect=StoreError("disk I/O error")):
            response = self.client.get('/api/bookings/')
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertNotIn('disk', response.data['error'])

    def test_database_errors_are_translated(self):
        with mock.patch.object(Booking.objects, "filter", side_effect=OperationalError("gone away")):
            with self.assertRaises(StoreUnavailable):
                DjangoStore().find_booking(1)


class ManagementCommandTestCase(TestCase):

    def test_populate_db(self):
        out = StringIO()
        call_command('populate_db', stdout=out)
        call_command('populate_db', stdout=out)
        self.assertEqual(Room.objects.count(), 3)
        self.assertEqual(list(Room.objects.order_by('price').values_list('full_board', flat=True)), [3500, 4300, 6300])
        self.assertIn('already exists', out.getvalue())
        self.assertEqual(list(Room.objects.order_by('pk').values_list('pk', flat=True)), [1, 2, 3])

    @override_settings(GUEST_HOUSE={"CURRENCY": "USD"})
    def test_populate_db_prints_configured_currency(self):
        out = StringIO()
        call_command('populate_db', stdout=out)
        self.assertIn('Single Room - USD 3500', out.getvalue())

    def test_seeded_rooms_keep_catalog_ids(self):
        Room.objects.create(name='Temporary', description='Gone soon', bed_only=1, bb=1, half_board=1, full_board=1).delete()
        call_command('populate_db', stdout=StringIO())

        self.assertEqual(
            dict(Room.objects.values_list('name', 'pk')),
            {room['name']: room['id'] for room in ROOMS},
        )
        single = Room.objects.get(name='Single Room')
        booking = bookings.create_booking(DjangoStore(), booking_request(single.pk))
        self.assertEqual(booking.total_amount, single.full_board)

        added = Room.objects.create(name='Annex', description='Added later', bed_only=1, bb=1, half_board=1, full_board=1)
        self.assertGreater(added.pk, 3)

    def test_purge_stale_bookings(self):
        store = DjangoStore()
        make_room(2)
        stale = bookings.create_booking(store, booking_request(2, check_in=date(2025, 6, 1), check_out=date(2025, 6, 2)))
        confirmed = bookings.create_booking(store, booking_request(2, check_in=date(2025, 6, 3), check_out=date(2025, 6, 4)))
        fresh = bookings.create_booking(store, booking_request(2, check_in=date(2025, 6, 5), check_out=date(2025, 6, 6)))
        bookings.set_status(store, confirmed.id, BookingStatus.CONFIRMED)
        payments.record_payment(store, stale.id, 100, "deposit", "cash")
        Booking.objects.filter(pk__in=[stale.id, confirmed.id]).update(
            created_at=timezone.now() - timedelta(hours=30),
        )

        out = StringIO()
        call_command('purge_stale_bookings', '--dry-run', stdout=out)
        self.assertIn('1 pending bookings', out.getvalue())
        self.assertEqual(Booking.objects.count(), 3)

        call_command('purge_stale_bookings', stdout=out)
        self.assertEqual(set(Booking.objects.values_list('pk', flat=True)), {confirmed.id, fresh.id})
        self.assertEqual(Payment.objects.count(), 0)
