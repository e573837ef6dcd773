import logging

from .billing import as_day
from .choices import BLOCKING_STATUSES
from .exceptions import StoreUnavailable

logger = logging.getLogger(__name__)


def overlaps(existing_start, existing_end, start, end):
    """
    Whether stay [existing_start, existing_end) clashes with [start, end).

    Both ranges are half-open, so a stay ending on the day another begins
    does not clash with it.
    """
    existing_start, existing_end = as_day(existing_start), as_day(existing_end)
    start, end = as_day(start), as_day(end)
    return existing_start < end and start < existing_end


def is_available(store, room_id, check_in, check_out):
    """
    True when no pending or confirmed booking of `room_id` overlaps the stay.

    Fails open: if the store cannot be asked, the room is reported as free
    rather than blocking the guest.
    """
    check_in, check_out = as_day(check_in), as_day(check_out)
    try:
        clashes = store.find_bookings_overlapping(room_id, check_in, check_out, BLOCKING_STATUSES)
    except StoreUnavailable as exc:
        logger.warning("Availability of room %s unknown (%s), treating it as available", room_id, exc)
        return True
    clashes = [b for b in clashes if overlaps(b.check_in_date, b.check_out_date, check_in, check_out)]
    if clashes:
        logger.debug("Room %s clashes with bookings %s", room_id, [b.id for b in clashes])
    return not clashes


def rooms_with_availability(store, check_in=None, check_out=None):
    """Room catalog annotated with an `available` flag for the requested stay."""
    rooms = store.list_rooms()
    if not check_in or not check_out:
        return [(room, True) for room in rooms]
    return [(room, is_available(store, room.id, check_in, check_out)) for room in rooms]
