from datetime import date, time
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

ROOM = "room"
SPA = "spa"


# Pydantic Schemas for Request bodies
class ReservationRequest(BaseModel):
    """Body of POST /bookings and POST /check-availability."""

    type: Optional[str] = None
    data: Any = None  # validated per type, so a bad payload gets a 400


class ChatRequest(BaseModel):
    message: str = ""
    conversationContext: Optional[str] = ""


def _date_part(value: Any) -> Any:
    # Models sometimes emit full timestamps ("2026-10-19T14:00:00"); keep the day
    if isinstance(value, str) and len(value) > 10 and value[10] in "T ":
        return value[:10]
    return value


# Payloads carried inside ReservationRequest.data. The widget and the chat
# directives speak camelCase, the models speak snake_case.
class _Payload(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        coerce_numbers_to_str=True,  # "roomNumber": 101
    )


class RoomQuery(_Payload):
    room_id: Optional[int] = Field(default=None, alias="roomId")
    room_number: Optional[str] = Field(default=None, alias="roomNumber")
    check_in: date = Field(alias="checkIn")
    check_out: date = Field(alias="checkOut")

    @field_validator("check_in", "check_out", mode="before")
    @classmethod
    def day_only(cls, value: Any) -> Any:
        return _date_part(value)


class SpaQuery(_Payload):
    service_id: int = Field(alias="serviceId")
    appointment_date: date = Field(alias="appointmentDate")
    appointment_time: time = Field(alias="appointmentTime")

    @field_validator("appointment_date", mode="before")
    @classmethod
    def day_only(cls, value: Any) -> Any:
        return _date_part(value)


class GuestDetails(_Payload):
    guest_name: str = Field(alias="guestName", min_length=1)
    guest_email: Optional[str] = Field(default=None, alias="guestEmail")
    guest_phone: Optional[str] = Field(default=None, alias="guestPhone")


class RoomBookingData(RoomQuery, GuestDetails):
    num_guests: int = Field(default=1, alias="numGuests", ge=1)


class SpaBookingData(SpaQuery, GuestDetails):
    pass
