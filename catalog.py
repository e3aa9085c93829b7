from typing import List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from models import Activity, Room, SpaService


async def list_rooms(session: AsyncSession) -> List[Room]:
    statement = (
        select(Room)
        .where(Room.is_available == True)  # noqa: E712
        .order_by(Room.price_per_night, Room.room_number)
    )
    result = await session.execute(statement)
    return list(result.scalars().all())


async def list_spa_services(session: AsyncSession) -> List[SpaService]:
    statement = (
        select(SpaService)
        .where(SpaService.is_available == True)  # noqa: E712
        .order_by(SpaService.price)
    )
    result = await session.execute(statement)
    return list(result.scalars().all())


async def list_activities(session: AsyncSession) -> List[Activity]:
    statement = (
        select(Activity)
        .where(Activity.is_available == True)  # noqa: E712
        .order_by(Activity.price)
    )
    result = await session.execute(statement)
    return list(result.scalars().all())
