"""Availability verdicts for rooms and spa slots.

A room is unavailable for a requested stay when a non-cancelled booking of
that room touches the range, bounds included. A spa slot is unavailable when
a non-cancelled appointment holds the exact same service, date and time.
"""
import math
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from errors import InvalidRequest, NotFound
from models import CANCELLED, Booking, Room, SpaAppointment, SpaService, User
from schemas import ROOM, SPA, RoomQuery, SpaQuery


ONE_DAY = timedelta(days=1)

PayloadT = TypeVar("PayloadT", bound=BaseModel)


def parse_payload(model: Type[PayloadT], data: Any) -> PayloadT:
    try:
        return model.model_validate(data or {})
    except ValidationError as exc:
        fields = sorted({str(err["loc"][-1]) if err["loc"] else "data" for err in exc.errors()})
        raise InvalidRequest(f"Invalid or missing fields: {', '.join(fields)}") from exc


def format_price(amount: float) -> str:
    return f"${amount:,.2f}"


def quote_stay(price_per_night: float, check_in: date, check_out: date) -> Tuple[int, float]:
    """Return (nights, total price); a started day counts as a full night."""
    nights = math.ceil((check_out - check_in) / ONE_DAY)
    return nights, round(price_per_night * nights, 2)


def validate_stay_dates(check_in: date, check_out: date, today: Optional[date] = None) -> None:
    today = today or date.today()
    if check_in < today:
        raise InvalidRequest(
            f"Check-in date {check_in.isoformat()} is in the past. "
            "Please choose today or a future date."
        )
    if check_out < today:
        raise InvalidRequest(
            f"Check-out date {check_out.isoformat()} is in the past. "
            "Please choose today or a future date."
        )
    if check_out <= check_in:
        raise InvalidRequest("Check-out date must be after the check-in date.")


def validate_appointment_date(appointment_date: date, today: Optional[date] = None) -> None:
    today = today or date.today()
    if appointment_date < today:
        raise InvalidRequest(
            f"Appointment date {appointment_date.isoformat()} is in the past. "
            "Please choose today or a future date."
        )


async def resolve_room(
    session: AsyncSession,
    room_id: Optional[int] = None,
    room_number: Optional[str] = None,
    lock: bool = False,
) -> Room:
    # Room numbers are what guests and the assistant see; ids are accepted too.
    if room_number:
        statement = select(Room).where(Room.room_number == room_number)
    elif room_id is not None:
        statement = select(Room).where(Room.id == room_id)
    else:
        raise InvalidRequest("Either roomNumber or roomId is required.")

    if lock:
        statement = statement.with_for_update()

    result = await session.execute(statement)
    room = result.scalars().first()
    if room is None:
        raise NotFound("Room not found")
    return room


async def resolve_service(session: AsyncSession, service_id: int) -> SpaService:
    service = await session.get(SpaService, service_id)
    if service is None:
        raise NotFound("Service not found")
    return service


async def find_room_conflicts(
    session: AsyncSession, room_id: int, check_in: date, check_out: date
) -> List[Booking]:
    statement = (
        select(Booking)
        .where(
            Booking.room_id == room_id,
            Booking.status != CANCELLED,
            Booking.check_in_date <= check_out,
            Booking.check_out_date >= check_in,
        )
        .order_by(Booking.check_in_date)
    )
    result = await session.execute(statement)
    return list(result.scalars().all())


async def find_spa_conflicts(session: AsyncSession, query: SpaQuery) -> List[SpaAppointment]:
    statement = select(SpaAppointment).where(
        SpaAppointment.service_id == query.service_id,
        SpaAppointment.appointment_date == query.appointment_date,
        SpaAppointment.appointment_time == query.appointment_time,
        SpaAppointment.status != CANCELLED,
    )
    result = await session.execute(statement)
    return list(result.scalars().all())


def room_summary(room: Room) -> Dict[str, Any]:
    return {
        "id": room.id,
        "room_number": room.room_number,
        "room_type": room.room_type,
        "price_per_night": room.price_per_night,
        "capacity": room.capacity,
    }


def service_summary(service: SpaService) -> Dict[str, Any]:
    return {
        "id": service.id,
        "service_name": service.service_name,
        "price": service.price,
        "duration_minutes": service.duration_minutes,
    }


def booking_conflict(booking: Booking) -> Dict[str, Any]:
    return {
        "id": booking.id,
        "check_in_date": booking.check_in_date,
        "check_out_date": booking.check_out_date,
        "status": booking.status,
    }


def appointment_conflict(appointment: SpaAppointment) -> Dict[str, Any]:
    return {
        "id": appointment.id,
        "appointment_date": appointment.appointment_date,
        "appointment_time": appointment.appointment_time,
        "status": appointment.status,
    }


async def check_room(
    session: AsyncSession, query: RoomQuery, today: Optional[date] = None
) -> Dict[str, Any]:
    validate_stay_dates(query.check_in, query.check_out, today)
    room = await resolve_room(session, query.room_id, query.room_number)
    label = f"Room {room.room_number} ({room.room_type})"
    stay = f"{query.check_in.isoformat()} to {query.check_out.isoformat()}"

    if not room.is_available:
        return {
            "available": False,
            "message": f"{label} is not open for bookings at the moment.",
            "room": room_summary(room),
        }

    conflicts = await find_room_conflicts(session, room.id, query.check_in, query.check_out)
    if conflicts:
        return {
            "available": False,
            "message": f"{label} is already booked for the dates {stay}.",
            "conflicts": [booking_conflict(b) for b in conflicts],
        }

    nights, total_price = quote_stay(room.price_per_night, query.check_in, query.check_out)
    return {
        "available": True,
        "message": (
            f"{label} is available from {stay}: {nights} night(s) at "
            f"{format_price(room.price_per_night)}/night, total {format_price(total_price)}."
        ),
        "room": room_summary(room),
        "nights": nights,
        "totalPrice": total_price,
    }


async def check_spa(
    session: AsyncSession, query: SpaQuery, today: Optional[date] = None
) -> Dict[str, Any]:
    validate_appointment_date(query.appointment_date, today)
    service = await resolve_service(session, query.service_id)
    slot = f"{query.appointment_time.strftime('%H:%M')} on {query.appointment_date.isoformat()}"

    if not service.is_available:
        return {
            "available": False,
            "message": f"{service.service_name} is not being offered at the moment.",
            "service": service_summary(service),
        }

    conflicts = await find_spa_conflicts(session, query)
    if conflicts:
        return {
            "available": False,
            "message": f"{service.service_name} is not available at {slot}.",
            "conflicts": [appointment_conflict(a) for a in conflicts],
        }

    return {
        "available": True,
        "message": f"{service.service_name} is available at {slot}.",
        "service": service_summary(service),
    }


async def check_availability(
    session: AsyncSession, kind: str, data: Any, today: Optional[date] = None
) -> Dict[str, Any]:
    if kind == ROOM:
        return await check_room(session, parse_payload(RoomQuery, data), today)
    if kind == SPA:
        return await check_spa(session, parse_payload(SpaQuery, data), today)
    raise InvalidRequest("Invalid type")


async def room_status(
    session: AsyncSession,
    room_id: Optional[int] = None,
    room_number: Optional[str] = None,
    check_in: Optional[date] = None,
    check_out: Optional[date] = None,
) -> Dict[str, Any]:
    """All bookings of a room and, when both dates are given, a verdict."""
    room = await resolve_room(session, room_id, room_number)

    statement = (
        select(Booking, User)
        .join(User, Booking.user_id == User.id)
        .where(Booking.room_id == room.id)
        .order_by(Booking.check_in_date)
    )
    result = await session.execute(statement)
    bookings = []
    for booking, user in result.all():
        entry = booking_conflict(booking)
        entry["guest_name"] = user.name
        entry["room_number"] = room.room_number
        bookings.append(entry)

    if check_in is None or check_out is None:
        return {"bookings": bookings}

    overlapping = [
        b for b in bookings
        if b["status"] != CANCELLED
        and b["check_in_date"] <= check_out
        and b["check_out_date"] >= check_in
    ]
    is_available = not overlapping and room.is_available
    return {
        "roomId": room.id,
        "roomNumber": room.room_number,
        "requested": {"checkIn": check_in, "checkOut": check_out},
        "isAvailable": is_available,
        "overlapping": overlapping,
        "message": (
            "Room is available for those dates."
            if is_available
            else "Room is not available for those dates."
        ),
    }
