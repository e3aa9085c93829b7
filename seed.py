# seed.py
# Populate an empty database with a demo inventory: python seed.py
import asyncio
import logging

from sqlmodel import select

from database import async_session, init_db
from models import Activity, Room, SpaService

logger = logging.getLogger(__name__)

ROOMS = [
    dict(room_number="101", room_type="Standard Garden View", price_per_night=120, capacity=2,
         description="Queen bed overlooking the tropical gardens", amenities="wifi,air conditioning"),
    dict(room_number="102", room_type="Standard Garden View", price_per_night=120, capacity=2,
         description="Twin beds overlooking the tropical gardens", amenities="wifi,air conditioning"),
    dict(room_number="201", room_type="Deluxe Ocean View", price_per_night=220, capacity=3,
         description="King bed with a private balcony facing the ocean", amenities="wifi,minibar,balcony"),
    dict(room_number="301", room_type="Family Suite", price_per_night=340, capacity=5,
         description="Two bedrooms and a lounge, steps from the pool", amenities="wifi,kitchenette,minibar"),
    dict(room_number="401", room_type="Beach Villa", price_per_night=520, capacity=4,
         description="Private villa with plunge pool on the beach", amenities="wifi,plunge pool,butler"),
]

SPA_SERVICES = [
    dict(service_name="Swedish Massage", description="Full body relaxation massage",
         price=90, duration_minutes=60),
    dict(service_name="Deep Tissue Massage", description="Targeted pressure for muscle tension",
         price=110, duration_minutes=60),
    dict(service_name="Hydrating Facial", description="Cleanse, exfoliate and hydrate",
         price=75, duration_minutes=45),
    dict(service_name="Couples Retreat", description="Side by side massage with champagne",
         price=240, duration_minutes=90),
]

ACTIVITIES = [
    dict(activity_name="Sunrise Yoga", description="Beach yoga for all levels",
         price=0, duration_minutes=60, schedule="Daily 6:30 AM"),
    dict(activity_name="Snorkel Tour", description="Guided reef snorkelling by boat",
         price=65, duration_minutes=120, schedule="Mon, Wed, Fri 10:00 AM"),
    dict(activity_name="Kayak Rental", description="Single or double sea kayaks",
         price=25, duration_minutes=60, schedule="Daily 9:00 AM - 5:00 PM"),
    dict(activity_name="Sunset Catamaran", description="Cruise with drinks and canapes",
         price=95, duration_minutes=150, schedule="Tue, Sat 5:00 PM"),
]


async def seed() -> int:
    """Insert the demo inventory into empty tables; returns rows added."""
    await init_db()
    added = 0
    async with async_session() as session:
        for model, rows in ((Room, ROOMS), (SpaService, SPA_SERVICES), (Activity, ACTIVITIES)):
            result = await session.execute(select(model).limit(1))
            if result.scalars().first() is not None:
                logger.info("%s already has data, skipping", model.__tablename__)
                continue
            session.add_all([model(**row) for row in rows])
            added += len(rows)
        await session.commit()
    return added


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    count = asyncio.run(seed())
    print("Seeded", count, "rows")
