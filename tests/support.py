import asyncio
import os
from datetime import date, timedelta

from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel, select

import models
from database import get_session
from main import app

# Every asyncio.run / TestClient request gets its own event loop, so
# connections must not outlive a single use.
engine = create_async_engine(os.environ["DATABASE_URL"], poolclass=NullPool)
TestSession = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def days_from_now(days):
    return date.today() + timedelta(days=days)


async def _reset():
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)


def reset_db():
    asyncio.run(_reset())


def add(*objects):
    async def _add():
        async with TestSession() as session:
            session.add_all(objects)
            await session.commit()
            for obj in objects:
                await session.refresh(obj)
        return objects

    return asyncio.run(_add())


def call(fn, *args, **kwargs):
    """Run an async service function with a fresh session."""
    async def _call():
        async with TestSession() as session:
            return await fn(session, *args, **kwargs)

    return asyncio.run(_call())


def count(model, *criteria):
    async def _count():
        async with TestSession() as session:
            result = await session.execute(select(model).where(*criteria))
            return len(result.scalars().all())

    return asyncio.run(_count())


async def override_get_session():
    async with TestSession() as session:
        yield session


def make_client():
    app.dependency_overrides[get_session] = override_get_session
    return TestClient(app)


def seed_inventory():
    """Two rooms, one spa service, one activity and a known guest."""
    guest = models.User(name="Existing Guest", email="guest@example.com")
    garden = models.Room(room_number="101", room_type="Garden View", price_per_night=100, capacity=2)
    suite = models.Room(room_number="301", room_type="Family Suite", price_per_night=250, capacity=5,
                        description="Two bedrooms near the pool")
    massage = models.SpaService(service_name="Swedish Massage", price=90, duration_minutes=60)
    yoga = models.Activity(activity_name="Sunrise Yoga", price=0, schedule="Daily 6:30 AM")
    add(guest, garden, suite, massage, yoga)
    return {"guest": guest, "garden": garden, "suite": suite, "massage": massage, "yoga": yoga}


def add_booking(room, user, check_in, check_out, status=models.PENDING):
    booking = models.Booking(
        room_id=room.id,
        user_id=user.id,
        check_in_date=check_in,
        check_out_date=check_out,
        number_of_guests=1,
        total_price=0,
        status=status,
    )
    add(booking)
    return booking
