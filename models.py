from typing import Optional
from datetime import date, datetime, time, timezone
from sqlmodel import SQLModel, Field
from sqlalchemy import DateTime, Index, text

PENDING = "pending"
CONFIRMED = "confirmed"
CANCELLED = "cancelled"

STATUSES = (PENDING, CONFIRMED, CANCELLED)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime(timezone=True))


class Room(SQLModel, table=True):
    __tablename__ = "rooms"

    id: Optional[int] = Field(default=None, primary_key=True)
    room_number: str = Field(index=True, unique=True)
    room_type: str
    description: Optional[str] = None
    price_per_night: float
    capacity: int = 2
    is_available: bool = True
    amenities: Optional[str] = None  # comma separated


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"

    id: Optional[int] = Field(default=None, primary_key=True)
    room_id: int = Field(foreign_key="rooms.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    check_in_date: date = Field(index=True)
    check_out_date: date = Field(index=True)
    number_of_guests: int = 1
    total_price: float
    status: str = Field(default=PENDING, index=True)
    created_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime(timezone=True))


class SpaService(SQLModel, table=True):
    __tablename__ = "spa_services"

    id: Optional[int] = Field(default=None, primary_key=True)
    service_name: str
    description: Optional[str] = None
    price: float
    duration_minutes: int = 60
    is_available: bool = True


class SpaAppointment(SQLModel, table=True):
    __tablename__ = "spa_appointments"
    __table_args__ = (
        # Database-level protection against double booking a treatment slot.
        # Cancelled rows are excluded so a cancelled slot can be booked again.
        Index(
            "unique_active_spa_slot",
            "service_id",
            "appointment_date",
            "appointment_time",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    service_id: int = Field(foreign_key="spa_services.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    appointment_date: date
    appointment_time: time
    status: str = Field(default=PENDING)
    created_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime(timezone=True))


class Activity(SQLModel, table=True):
    __tablename__ = "activities"

    id: Optional[int] = Field(default=None, primary_key=True)
    activity_name: str
    description: Optional[str] = None
    price: float = 0
    duration_minutes: Optional[int] = None
    schedule: Optional[str] = None
    is_available: bool = True
