import logging
import os
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Depends, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession

from database import init_db, get_session
from models import Activity, Room, SpaService
from schemas import ChatRequest, ReservationRequest
from errors import ReservationError
from availability import check_availability, room_status
from reservations import create_reservation
from catalog import list_activities, list_rooms, list_spa_services
from llm import LLMError
import assistant

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Resort Reservation Assistant")

CHAT_ERROR_REPLY = "Sorry, I encountered an error. Please try again."
MISSING_KEY_REPLY = "API key not configured. Please add GEMINI_API_KEY to your .env file."


@app.on_event("startup")
async def on_startup():
    await init_db()


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


# --- Endpoint 1: POST /bookings ---
@app.post("/bookings")
async def create_booking(
    request: ReservationRequest,
    session: AsyncSession = Depends(get_session),
):
    try:
        return await create_reservation(session, request.type, request.data)
    except ReservationError as exc:
        logger.info("Booking rejected (%s): %s", exc.status_code, exc.message)
        return JSONResponse({"success": False, "message": exc.message}, status_code=exc.status_code)
    except Exception:
        logger.exception("Error in bookings API")
        return JSONResponse(
            {"success": False, "message": "Something went wrong"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


# --- Endpoint 2: GET /bookings/status ---
@app.get("/bookings/status")
async def get_booking_status(
    roomId: Optional[int] = None,
    roomNumber: Optional[str] = None,
    checkIn: Optional[str] = None,
    checkOut: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    if roomId is None and not roomNumber:
        return JSONResponse({"error": "Missing roomId"}, status_code=status.HTTP_400_BAD_REQUEST)
    try:
        return await room_status(
            session, roomId, roomNumber, _parse_date(checkIn), _parse_date(checkOut)
        )
    except ReservationError as exc:
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)
    except Exception as exc:
        logger.exception("Booking status check error")
        return JSONResponse({"error": str(exc)}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


# --- Endpoint 3: POST /check-availability ---
@app.post("/check-availability")
async def post_check_availability(
    request: ReservationRequest,
    session: AsyncSession = Depends(get_session),
):
    try:
        return await check_availability(session, request.type, request.data)
    except ReservationError as exc:
        return JSONResponse({"available": False, "message": exc.message}, status_code=exc.status_code)
    except Exception:
        logger.exception("Error checking availability")
        return JSONResponse(
            {"available": False, "message": "Error checking availability"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


# --- Endpoint 4: POST /chat ---
@app.post("/chat")
async def chat(
    request: ChatRequest,
    session: AsyncSession = Depends(get_session),
):
    message = request.message.strip()
    if not message:
        return JSONResponse(
            {"reply": "Please type a message so I can help."},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    # Read per request so a key added to the environment is picked up without a restart
    api_key = os.getenv("GEMINI_API_KEY")
    if not api_key:
        return JSONResponse(
            {"reply": MISSING_KEY_REPLY},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    try:
        return await assistant.handle_chat(session, message, request.conversationContext, api_key)
    except LLMError as exc:
        logger.error("Gemini call failed: %s", exc)
        return JSONResponse({"reply": CHAT_ERROR_REPLY}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    except Exception:
        logger.exception("Error in chat API")
        return JSONResponse(
            {"reply": "Sorry, something went wrong. Please try again."},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


# --- Catalog: what the assistant can talk about ---
@app.get("/rooms", response_model=List[Room])
async def get_rooms(session: AsyncSession = Depends(get_session)):
    return await list_rooms(session)


@app.get("/spa-services", response_model=List[SpaService])
async def get_spa_services(session: AsyncSession = Depends(get_session)):
    return await list_spa_services(session)


@app.get("/activities", response_model=List[Activity])
async def get_activities(session: AsyncSession = Depends(get_session)):
    return await list_activities(session)


@app.get("/health")
def health() -> Dict[str, Any]:
    return {"status": "ok"}


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # the chat widget is embedded on other origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
