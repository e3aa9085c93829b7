import logging
from datetime import date
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from availability import (
    find_room_conflicts,
    find_spa_conflicts,
    format_price,
    parse_payload,
    quote_stay,
    resolve_room,
    resolve_service,
    validate_appointment_date,
    validate_stay_dates,
)
from errors import Conflict, InvalidRequest
from models import PENDING, Booking, Room, SpaAppointment, SpaService, User
from schemas import ROOM, SPA, RoomBookingData, SpaBookingData

logger = logging.getLogger(__name__)


async def get_or_create_user(
    session: AsyncSession,
    name: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
) -> Tuple[User, bool]:
    """Find a guest by name, refreshing contact details, or create one.

    Only flushes: the reservation that needs the user commits both together.
    """
    result = await session.execute(select(User).where(User.name == name).order_by(User.id))
    user = result.scalars().first()

    if user is not None:
        changed = False
        if email and user.email != email:
            user.email = email
            changed = True
        if phone and user.phone != phone:
            user.phone = phone
            changed = True
        if changed:
            session.add(user)
            await session.flush()
        return user, False

    user = User(name=name, email=email, phone=phone)
    session.add(user)
    await session.flush()
    return user, True


def user_summary(user: User) -> Dict[str, Any]:
    return {"name": user.name, "email": user.email, "phone": user.phone}


def booking_payload(booking: Booking, user: User, room: Room) -> Dict[str, Any]:
    payload = booking.model_dump()
    payload["user"] = user_summary(user)
    payload["room"] = {"room_number": room.room_number, "room_type": room.room_type}
    return payload


def appointment_payload(appointment: SpaAppointment, user: User, service: SpaService) -> Dict[str, Any]:
    payload = appointment.model_dump()
    payload["user"] = user_summary(user)
    payload["service"] = {
        "service_name": service.service_name,
        "price": service.price,
        "duration_minutes": service.duration_minutes,
    }
    return payload


async def _commit(session: AsyncSession, conflict_message: str) -> None:
    try:
        await session.commit()
    except IntegrityError:
        # A concurrent request won the slot between our check and insert
        await session.rollback()
        raise Conflict(conflict_message)


async def create_room_booking(
    session: AsyncSession, data: RoomBookingData, today: Optional[date] = None
) -> Dict[str, Any]:
    validate_stay_dates(data.check_in, data.check_out, today)

    # Row lock serialises concurrent bookings of the same room until commit
    room = await resolve_room(session, data.room_id, data.room_number, lock=True)
    if not room.is_available:
        raise Conflict(f"Room {room.room_number} is not open for bookings at the moment.")
    if data.num_guests > room.capacity:
        raise InvalidRequest(
            f"Room {room.room_number} ({room.room_type}) sleeps at most {room.capacity} guest(s)."
        )

    conflicts = await find_room_conflicts(session, room.id, data.check_in, data.check_out)
    if conflicts:
        raise Conflict(
            f"Room {room.room_number} ({room.room_type}) is already booked for the dates "
            f"{data.check_in.isoformat()} to {data.check_out.isoformat()}."
        )

    user, is_new = await get_or_create_user(
        session, data.guest_name, data.guest_email, data.guest_phone
    )
    nights, total_price = quote_stay(room.price_per_night, data.check_in, data.check_out)

    booking = Booking(
        room_id=room.id,
        user_id=user.id,
        check_in_date=data.check_in,
        check_out_date=data.check_out,
        number_of_guests=data.num_guests,
        total_price=total_price,
        status=PENDING,
    )
    session.add(booking)
    await _commit(session, f"Room {room.room_number} was just booked for those dates.")
    await session.refresh(booking)

    logger.info(
        "Booking %s created: room %s, %s -> %s, user %s",
        booking.id, room.room_number, booking.check_in_date, booking.check_out_date, user.id,
    )
    new_guest = "(New guest profile created) " if is_new else ""
    return {
        "success": True,
        "booking": booking_payload(booking, user, room),
        "isNewUser": is_new,
        "message": (
            f"Booking received for {user.name}! {new_guest}Booking ID: {booking.id}. "
            f"Room {room.room_number} for {nights} night(s). Total: {format_price(total_price)}. "
            "Status: pending confirmation."
        ),
    }


async def create_spa_appointment(
    session: AsyncSession, data: SpaBookingData, today: Optional[date] = None
) -> Dict[str, Any]:
    validate_appointment_date(data.appointment_date, today)

    service = await resolve_service(session, data.service_id)
    if not service.is_available:
        raise Conflict(f"{service.service_name} is not being offered at the moment.")

    slot = f"{data.appointment_time.strftime('%H:%M')} on {data.appointment_date.isoformat()}"
    if await find_spa_conflicts(session, data):
        raise Conflict(f"{service.service_name} is not available at {slot}.")

    user, is_new = await get_or_create_user(
        session, data.guest_name, data.guest_email, data.guest_phone
    )
    appointment = SpaAppointment(
        service_id=service.id,
        user_id=user.id,
        appointment_date=data.appointment_date,
        appointment_time=data.appointment_time,
        status=PENDING,
    )
    session.add(appointment)
    await _commit(session, f"{service.service_name} at {slot} was just booked by another guest.")
    await session.refresh(appointment)

    logger.info("Spa appointment %s created: service %s at %s, user %s",
                appointment.id, service.id, slot, user.id)
    new_guest = "(New guest profile created) " if is_new else ""
    return {
        "success": True,
        "appointment": appointment_payload(appointment, user, service),
        "isNewUser": is_new,
        "message": (
            f"Spa appointment received for {user.name}! {new_guest}Appointment ID: {appointment.id}. "
            f"{service.service_name} at {slot}. Status: pending confirmation."
        ),
    }


async def create_reservation(
    session: AsyncSession, kind: str, data: Any, today: Optional[date] = None
) -> Dict[str, Any]:
    if kind == ROOM:
        return await create_room_booking(session, parse_payload(RoomBookingData, data), today)
    if kind == SPA:
        return await create_spa_appointment(session, parse_payload(SpaBookingData, data), today)
    raise InvalidRequest("Invalid booking type")
