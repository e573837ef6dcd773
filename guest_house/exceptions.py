import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class GuestHouseError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request could not be completed"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class RoomNotFound(GuestHouseError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Room not found"


class RoomUnavailable(GuestHouseError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Room is not available for the selected dates"


class RoomInUse(GuestHouseError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Room has bookings and cannot be deleted"


class StoreError(GuestHouseError):
    """The backing store failed while executing an otherwise valid operation."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Something went wrong, please try again later"


class StoreUnavailable(StoreError):
    """The backing store cannot be reached at all."""

    default_message = "Booking service is temporarily unavailable"


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is not None:
        return response

    if isinstance(exc, StoreError):
        # Keep store internals out of the response body.
        logger.error("Store failure in %s: %s", context.get("view").__class__.__name__, exc)
        return Response({"error": StoreError.default_message}, status=exc.status_code)
    if isinstance(exc, GuestHouseError):
        return Response({"error": exc.message}, status=exc.status_code)
    return None
