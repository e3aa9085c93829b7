from fastapi import status


class ReservationError(Exception):
    """A request the guest can fix, reported back with a readable message."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequest(ReservationError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(ReservationError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(ReservationError):
    status_code = status.HTTP_409_CONFLICT
