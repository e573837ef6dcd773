"""
Storage seam of the booking core.

`DjangoStore` is the live adapter over the ORM. `MemoryStore` is the
non-durable stand-in used when the database cannot be reached (and in
tests): single process, last write wins, nothing shared across workers.
"""
import functools
import itertools
import logging
import threading
from contextlib import contextmanager, nullcontext
from datetime import timedelta

from django.apps import apps
from django.db import DatabaseError, InterfaceError, OperationalError, connection, transaction
from django.db.models import ProtectedError
from django.utils import timezone

from . import availability
from .billing import as_day
from .catalog import fallback_rooms
from .choices import BookingStatus
from .conf import setting
from .exceptions import RoomInUse, StoreError, StoreUnavailable
from .models import Booking, Payment, Room

logger = logging.getLogger(__name__)


class Store:
    """Operations the booking core needs from a backing store."""

    name = "store"

    def is_reachable(self):
        raise NotImplementedError

    def find_room(self, room_id):
        raise NotImplementedError

    def list_rooms(self):
        """Rooms ordered by full-board price, cheapest first."""
        raise NotImplementedError

    def has_rooms(self):
        raise NotImplementedError

    def insert_room(self, record):
        raise NotImplementedError

    def update_room(self, room_id, **patch):
        raise NotImplementedError

    def delete_room(self, room_id):
        """Delete a room; False if there is no such room, RoomInUse if bookings reference it."""
        raise NotImplementedError

    def find_bookings_overlapping(self, room_id, start, end, statuses):
        raise NotImplementedError

    def find_booking(self, booking_id):
        raise NotImplementedError

    def list_bookings(self, room_id=None, guest_email=None, start=None, end=None):
        """
        Bookings, newest first. With `start` and `end`, only stays touching
        the inclusive window [start, end], ordered by check-in date.
        """
        raise NotImplementedError

    def insert_booking(self, record):
        raise NotImplementedError

    def update_booking(self, booking_id, **patch):
        """Apply `patch` and return the updated record, or None if there is no such booking."""
        raise NotImplementedError

    def insert_payment(self, record):
        raise NotImplementedError

    def update_payment(self, payment_id, **patch):
        raise NotImplementedError

    def find_payment(self, payment_id):
        raise NotImplementedError

    def find_payments_by_booking(self, booking_id):
        raise NotImplementedError

    def list_payments(self):
        raise NotImplementedError

    def purge_stale_pending_bookings(self, older_than, dry_run=False):
        raise NotImplementedError

    def booking_guard(self, room_id):
        """Context wrapped around the availability check and the booking insert."""
        return nullcontext()


def _translate_errors(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except (OperationalError, InterfaceError) as exc:
            raise StoreUnavailable(str(exc)) from exc
        except DatabaseError as exc:
            raise StoreError(str(exc)) from exc
    return wrapper


def _to_int(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class DjangoStore(Store):
    name = "database"

    def is_reachable(self):
        try:
            connection.ensure_connection()
        except (OperationalError, InterfaceError) as exc:
            logger.warning("Database unreachable: %s", exc)
            return False
        return True

    @_translate_errors
    def find_room(self, room_id):
        room_id = _to_int(room_id)
        if room_id is None:
            return None
        room = Room.objects.filter(pk=room_id).first()
        return room.to_record() if room else None

    @_translate_errors
    def list_rooms(self):
        return [room.to_record() for room in Room.objects.order_by("price", "pk")]

    @_translate_errors
    def has_rooms(self):
        return Room.objects.exists()

    @_translate_errors
    def insert_room(self, record):
        fields = {key: value for key, value in vars(record).items() if key != "id"}
        return Room.objects.create(**fields).pk

    @_translate_errors
    def update_room(self, room_id, **patch):
        if "full_board" in patch:
            patch["price"] = patch["full_board"]
        return self._update(Room, room_id, patch)

    @_translate_errors
    def delete_room(self, room_id):
        room_id = _to_int(room_id)
        if room_id is None:
            return False
        try:
            deleted, _ = Room.objects.filter(pk=room_id).delete()
        except ProtectedError as exc:
            raise RoomInUse() from exc
        return deleted > 0

    @_translate_errors
    def find_bookings_overlapping(self, room_id, start, end, statuses):
        room_id = _to_int(room_id)
        if room_id is None:
            return []
        # Half-open ranges: [check_in, check_out) against [start, end).
        qs = Booking.objects.filter(
            room_id=room_id,
            status__in=list(statuses),
            check_in_date__lt=end,
            check_out_date__gt=start,
        )
        return [booking.to_record() for booking in qs]

    @_translate_errors
    def find_booking(self, booking_id):
        booking_id = _to_int(booking_id)
        if booking_id is None:
            return None
        booking = Booking.objects.filter(pk=booking_id).first()
        return booking.to_record() if booking else None

    @_translate_errors
    def list_bookings(self, room_id=None, guest_email=None, start=None, end=None):
        qs = Booking.objects.all()
        if room_id is not None:
            qs = qs.filter(room_id=_to_int(room_id))
        if guest_email:
            qs = qs.filter(guest_email__iexact=guest_email)
        if start is not None and end is not None:
            qs = qs.filter(check_in_date__lte=end, check_out_date__gte=start).order_by("check_in_date", "pk")
        else:
            qs = qs.order_by("-created_at", "-pk")
        return [booking.to_record() for booking in qs]

    @_translate_errors
    def insert_booking(self, record):
        fields = {
            key: value for key, value in vars(record).items()
            if key not in ("id", "created_at", "updated_at")
        }
        booking = Booking.objects.create(**fields)
        return booking.pk

    @_translate_errors
    def update_booking(self, booking_id, **patch):
        return self._update(Booking, booking_id, patch)

    @_translate_errors
    def insert_payment(self, record):
        fields = {
            key: value for key, value in vars(record).items()
            if key not in ("id", "created_at", "updated_at")
        }
        payment = Payment.objects.create(**fields)
        return payment.pk

    @_translate_errors
    def update_payment(self, payment_id, **patch):
        return self._update(Payment, payment_id, patch)

    @_translate_errors
    def find_payment(self, payment_id):
        payment_id = _to_int(payment_id)
        if payment_id is None:
            return None
        payment = Payment.objects.filter(pk=payment_id).first()
        return payment.to_record() if payment else None

    @_translate_errors
    def find_payments_by_booking(self, booking_id):
        booking_id = _to_int(booking_id)
        if booking_id is None:
            return []
        qs = Payment.objects.filter(booking_id=booking_id).order_by("-created_at", "-pk")
        return [payment.to_record() for payment in qs]

    @_translate_errors
    def list_payments(self):
        return [payment.to_record() for payment in Payment.objects.order_by("-created_at", "-pk")]

    @_translate_errors
    def purge_stale_pending_bookings(self, older_than, dry_run=False):
        qs = Booking.objects.filter(status=BookingStatus.PENDING, created_at__lt=older_than)
        if dry_run:
            return qs.count()
        count = qs.count()
        qs.delete()
        return count

    @contextmanager
    def booking_guard(self, room_id):
        if not setting("SERIALIZE_BOOKINGS"):
            yield
            return
        # Lock the room row so concurrent submissions for it queue up behind
        # the availability check.
        with transaction.atomic():
            Room.objects.select_for_update().filter(pk=_to_int(room_id)).first()
            yield

    def _update(self, model, pk, patch):
        pk = _to_int(pk)
        if pk is None:
            return None
        instance = model.objects.filter(pk=pk).first()
        if instance is None:
            return None
        for attr, value in patch.items():
            setattr(instance, attr, value)
        instance.save(update_fields=[*patch.keys(), "updated_at"])
        return instance.to_record()


class MemoryStore(Store):
    name = "fallback"

    def __init__(self, rooms=None):
        self._lock = threading.RLock()
        self._rooms = {room.id: room for room in (fallback_rooms() if rooms is None else rooms)}
        self._bookings = {}
        self._payments = {}
        self._room_ids = itertools.count(max(self._rooms, default=0) + 1)
        self._booking_ids = itertools.count(1)
        self._payment_ids = itertools.count(1)

    def is_reachable(self):
        return True

    def find_room(self, room_id):
        with self._lock:
            return self._rooms.get(_to_int(room_id))

    def list_rooms(self):
        with self._lock:
            rooms = list(self._rooms.values())
        return sorted(rooms, key=lambda room: (room.price, room.id))

    def has_rooms(self):
        return bool(self._rooms)

    def insert_room(self, record):
        with self._lock:
            room_id = next(self._room_ids)
            self._rooms[room_id] = record.copy(id=room_id)
        return room_id

    def update_room(self, room_id, **patch):
        room_id = _to_int(room_id)
        with self._lock:
            current = self._rooms.get(room_id)
            if current is None:
                return None
            self._rooms[room_id] = current.copy(**patch)
            return self._rooms[room_id]

    def delete_room(self, room_id):
        room_id = _to_int(room_id)
        with self._lock:
            if room_id not in self._rooms:
                return False
            if any(b.room_id == room_id for b in self._bookings.values()):
                raise RoomInUse()
            del self._rooms[room_id]
        return True

    def find_bookings_overlapping(self, room_id, start, end, statuses):
        room_id = _to_int(room_id)
        with self._lock:
            return [
                booking for booking in self._bookings.values()
                if booking.room_id == room_id
                and booking.status in statuses
                and availability.overlaps(booking.check_in_date, booking.check_out_date, start, end)
            ]

    def find_booking(self, booking_id):
        with self._lock:
            return self._bookings.get(_to_int(booking_id))

    def list_bookings(self, room_id=None, guest_email=None, start=None, end=None):
        with self._lock:
            bookings = list(self._bookings.values())
        if room_id is not None:
            bookings = [b for b in bookings if b.room_id == _to_int(room_id)]
        if guest_email:
            bookings = [b for b in bookings if b.guest_email.lower() == guest_email.lower()]
        if start is not None and end is not None:
            start, end = as_day(start), as_day(end)
            bookings = [b for b in bookings if b.check_in_date <= end and b.check_out_date >= start]
            return sorted(bookings, key=lambda b: (b.check_in_date, b.id))
        return sorted(bookings, key=lambda b: (b.created_at, b.id), reverse=True)

    def insert_booking(self, record):
        now = timezone.now()
        with self._lock:
            booking_id = next(self._booking_ids)
            self._bookings[booking_id] = record.copy(id=booking_id, created_at=now, updated_at=now)
        return booking_id

    def update_booking(self, booking_id, **patch):
        with self._lock:
            return self._update(self._bookings, _to_int(booking_id), patch)

    def insert_payment(self, record):
        now = timezone.now()
        with self._lock:
            payment_id = next(self._payment_ids)
            self._payments[payment_id] = record.copy(id=payment_id, created_at=now, updated_at=now)
        return payment_id

    def update_payment(self, payment_id, **patch):
        with self._lock:
            return self._update(self._payments, _to_int(payment_id), patch)

    def find_payment(self, payment_id):
        with self._lock:
            return self._payments.get(_to_int(payment_id))

    def find_payments_by_booking(self, booking_id):
        booking_id = _to_int(booking_id)
        with self._lock:
            payments = [p for p in self._payments.values() if p.booking_id == booking_id]
        return sorted(payments, key=lambda p: (p.created_at, p.id), reverse=True)

    def list_payments(self):
        with self._lock:
            payments = list(self._payments.values())
        return sorted(payments, key=lambda p: (p.created_at, p.id), reverse=True)

    def purge_stale_pending_bookings(self, older_than, dry_run=False):
        with self._lock:
            stale = [
                booking_id for booking_id, booking in self._bookings.items()
                if booking.status == BookingStatus.PENDING and booking.created_at < older_than
            ]
            if not dry_run:
                for booking_id in stale:
                    del self._bookings[booking_id]
                self._payments = {
                    pid: p for pid, p in self._payments.items() if p.booking_id not in stale
                }
        return len(stale)

    @staticmethod
    def _update(table, pk, patch):
        current = table.get(pk)
        if current is None:
            return None
        table[pk] = current.copy(updated_at=timezone.now(), **patch)
        return table[pk]


def stale_cutoff(hours=None):
    hours = setting("STALE_PENDING_HOURS") if hours is None else hours
    return timezone.now() - timedelta(hours=hours)


def fallback_store():
    return apps.get_app_config("guest_house").fallback_store


def _serves_live(store, require_rooms):
    if not store.is_reachable():
        logger.warning("Database unreachable, serving from the fallback store")
        return False
    if not require_rooms:
        return True
    try:
        has_rooms = store.has_rooms()
    except StoreUnavailable as exc:
        logger.warning("Database failed while probing rooms (%s), serving from the fallback store", exc)
        return False
    if not has_rooms:
        logger.warning("Database holds no rooms, serving the catalog from the fallback store")
    return has_rooms


def select_store(require_rooms=True):
    """
    Live store when the database answers and holds rooms, the app's
    fallback store otherwise. An empty database is treated like an
    unreachable one so that every room listed can also be booked;
    room management passes require_rooms=False to reach it anyway.
    """
    config = apps.get_app_config("guest_house")
    if not setting("FALLBACK_ENABLED") or _serves_live(config.live_store, require_rooms):
        return config.live_store
    return config.fallback_store
