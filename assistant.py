"""Chat turn handling: retrieve context, prompt the model, act on its directive."""
import logging
import os
from datetime import date
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from availability import check_availability, format_price
from catalog import list_activities, list_rooms, list_spa_services
from directives import AVAILABILITY, Directive, DirectiveError, extract_directive
from errors import ReservationError
from llm import generate_reply
from reservations import create_reservation

logger = logging.getLogger(__name__)

RESORT_NAME = os.getenv("RESORT_NAME", "Paradise Resort & Spa")

# Lines of the widget's conversation transcript forwarded to the model
CONTEXT_MAX_LINES = 6

ROOM_KEYWORDS = ("room", "availab", "book", "stay", "night", "suite")
SPA_KEYWORDS = ("spa", "massage", "treatment", "facial")
ACTIVITY_KEYWORDS = ("activit", "things to do", "sport", "tour", "excursion", "yoga")

DIRECTIVE_FALLBACK = (
    "Sorry, I couldn't process that request automatically. "
    "Could you confirm the details so I can try again?"
)
ACTION_FALLBACK = "Sorry, something went wrong while handling your request. Please try again."

DIRECTIVE_INSTRUCTIONS = """\
When the guest asks whether a specific room or treatment is free on specific dates, end your reply with exactly one line:
CHECK_AVAILABILITY: {"type": "room", "data": {"roomNumber": "101", "checkIn": "YYYY-MM-DD", "checkOut": "YYYY-MM-DD"}}
or
CHECK_AVAILABILITY: {"type": "spa", "data": {"serviceId": 1, "appointmentDate": "YYYY-MM-DD", "appointmentTime": "HH:MM"}}

Only when the guest has confirmed they want to book and has given their full name, end your reply with exactly one line:
BOOKING_REQUEST: {"type": "room", "data": {"roomNumber": "101", "guestName": "Full Name", "guestEmail": "optional", "guestPhone": "optional", "checkIn": "YYYY-MM-DD", "checkOut": "YYYY-MM-DD", "numGuests": 2}}
or
BOOKING_REQUEST: {"type": "spa", "data": {"serviceId": 1, "guestName": "Full Name", "guestEmail": "optional", "guestPhone": "optional", "appointmentDate": "YYYY-MM-DD", "appointmentTime": "HH:MM"}}

Use at most one of these lines per reply. Only use room numbers and service ids listed below; never invent them. Do not tell the guest a booking is confirmed, the system will add the result."""


def _mentions(text: str, keywords) -> bool:
    return any(keyword in text for keyword in keywords)


async def build_context(session: AsyncSession, message: str) -> str:
    lowered = message.lower()
    sections = []

    if _mentions(lowered, ROOM_KEYWORDS):
        rooms = await list_rooms(session)
        if rooms:
            lines = ["Available Rooms:"]
            for room in rooms:
                line = (
                    f"- Room {room.room_number}: {room.room_type} - "
                    f"{format_price(room.price_per_night)}/night (Capacity: {room.capacity})"
                )
                if room.description:
                    line += f" - {room.description}"
                if room.amenities:
                    line += f" - Amenities: {room.amenities}"
                lines.append(line)
            sections.append("\n".join(lines))

    if _mentions(lowered, SPA_KEYWORDS):
        services = await list_spa_services(session)
        if services:
            lines = ["Spa Services:"]
            for service in services:
                line = f"- [serviceId {service.id}] {service.service_name}"
                if service.description:
                    line += f": {service.description}"
                line += f" - {format_price(service.price)} ({service.duration_minutes} min)"
                lines.append(line)
            sections.append("\n".join(lines))

    if _mentions(lowered, ACTIVITY_KEYWORDS):
        activities = await list_activities(session)
        if activities:
            lines = ["Activities:"]
            for activity in activities:
                line = f"- {activity.activity_name}"
                if activity.description:
                    line += f": {activity.description}"
                line += f" - {format_price(activity.price)}"
                if activity.duration_minutes:
                    line += f" ({activity.duration_minutes} min)"
                if activity.schedule:
                    line += f" - {activity.schedule}"
                lines.append(line)
            sections.append("\n".join(lines))

    return "\n\n".join(sections)


def trim_conversation(conversation_context: Optional[str], max_lines: int = CONTEXT_MAX_LINES) -> str:
    if not conversation_context:
        return ""
    lines = [line for line in conversation_context.splitlines() if line.strip()]
    return "\n".join(lines[-max_lines:])


def build_prompt(message: str, conversation_context: str, context: str, today: date) -> str:
    parts = [
        f"You are a helpful AI assistant for {RESORT_NAME}. You help guests with:\n"
        "- Room availability and booking inquiries\n"
        "- Spa services and appointments\n"
        "- Resort activities (water sports, yoga, excursions)\n"
        "- General resort information and amenities\n"
        "- Check-in/check-out procedures\n\n"
        "Be friendly, professional, and concise. Use the data provided below to give "
        "accurate information. Keep responses under 4-5 sentences unless more detail is needed.",
        f"Today's date is {today.isoformat()}.",
        DIRECTIVE_INSTRUCTIONS,
    ]
    if context:
        parts.append(context)
    history = trim_conversation(conversation_context)
    if history:
        parts.append(f"Recent conversation:\n{history}")
    parts.append(f"User: {message}\n\nAssistant:")
    return "\n\n".join(parts)


def _append(text: str, addition: str) -> str:
    return "\n\n".join(part for part in (text.strip(), addition.strip()) if part)


async def _run_directive(
    session: AsyncSession, directive: Directive, today: date
) -> Dict[str, Any]:
    verdict = await check_availability(session, directive.type, directive.data, today)
    if directive.kind == AVAILABILITY or not verdict["available"]:
        return {"reply": _append(directive.text, verdict["message"])}

    result = await create_reservation(session, directive.type, directive.data, today)
    booking = result.get("booking") or result.get("appointment")
    return {"reply": _append(directive.text, result["message"]), "bookingData": booking}


async def handle_chat(
    session: AsyncSession,
    message: str,
    conversation_context: Optional[str],
    api_key: str,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    today = today or date.today()
    context = await build_context(session, message)
    prompt = build_prompt(message, conversation_context or "", context, today)
    raw_reply = await generate_reply(prompt, api_key)

    try:
        directive = extract_directive(raw_reply)
    except DirectiveError as exc:
        logger.warning("Could not parse directive from model reply: %s", exc)
        return {"reply": _append(exc.text, DIRECTIVE_FALLBACK)}

    if directive is None:
        return {"reply": raw_reply.strip()}

    try:
        return await _run_directive(session, directive, today)
    except ReservationError as exc:
        logger.info("%s directive rejected (%s): %s", directive.kind, exc.status_code, exc.message)
        return {"reply": _append(directive.text, exc.message)}
    except Exception:
        logger.exception("Failed to execute %s directive", directive.kind)
        await session.rollback()
        return {"reply": _append(directive.text, ACTION_FALLBACK)}
