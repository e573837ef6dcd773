import logging

from .catalog import ROOMS
from .choices import FareClass
from .conf import setting

logger = logging.getLogger(__name__)


class PricingTable:
    """Static nightly rates per room and fare class."""

    def __init__(self, rates, default_rate=None):
        self._rates = {
            str(room_id): {FareClass(fare): int(amount) for fare, amount in fares.items()}
            for room_id, fares in rates.items()
        }
        self._default_rate = default_rate

    @property
    def default_rate(self):
        if self._default_rate is not None:
            return self._default_rate
        return int(setting("DEFAULT_NIGHTLY_RATE"))

    def __contains__(self, room_id):
        return str(room_id) in self._rates

    def rate(self, room_id, fare_class=FareClass.FULL_BOARD):
        fares = self._rates.get(str(room_id))
        if fares is None:
            logger.info("No fare table entry for room %s, charging default rate %s", room_id, self.default_rate)
            return self.default_rate
        return fares.get(FareClass(fare_class), self.default_rate)


PRICING_TABLE = PricingTable({
    room["id"]: {fare: room[fare.value] for fare in FareClass}
    for room in ROOMS
})


def rate(room_id, fare_class=FareClass.FULL_BOARD):
    return PRICING_TABLE.rate(room_id, fare_class)
