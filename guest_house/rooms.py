import logging

from .pricing import PRICING_TABLE
from .records import RoomRecord

logger = logging.getLogger(__name__)


def create_room(store, **fields) -> RoomRecord:
    room_id = store.insert_room(RoomRecord(**fields))
    if room_id not in PRICING_TABLE:
        logger.warning(
            "Room %s (%s) has no fare table entry, bookings will be charged %s per night",
            room_id, fields.get("name"), PRICING_TABLE.default_rate,
        )
    logger.info("Room %s created in %s store", room_id, store.name)
    return store.find_room(room_id)


def update_room(store, room_id, **changes):
    room = store.update_room(room_id, **changes)
    if room is None:
        logger.info("Update for unknown room %s", room_id)
        return None
    logger.info("Room %s updated: %s", room_id, ", ".join(sorted(changes)))
    return room


def delete_room(store, room_id):
    """Returns False when there is no such room; raises RoomInUse while bookings reference it."""
    deleted = store.delete_room(room_id)
    if deleted:
        logger.info("Room %s deleted from %s store", room_id, store.name)
    return deleted
