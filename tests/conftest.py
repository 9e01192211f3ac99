"""Shared fixtures: in-memory database, fixed clock, bookings at each stage."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import uuid
from collections.abc import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import shortlet.models  # noqa: F401
from shortlet.database import Base
from shortlet.domain.actor import Actor
from shortlet.domain.booking_state import ActorRole
from shortlet.models.booking import Booking
from shortlet.services.booking_service import booking_service
from shortlet.services.snapshot_service import snapshot_service

from helpers import (
    BOOKED_ON,
    CHECK_IN,
    CHECK_OUT,
    CLEANING_FEE,
    ROOM_FEE,
    SECURITY_DEPOSIT,
    at,
)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def guest() -> Actor:
    return Actor(user_id=uuid.uuid4(), role=ActorRole.GUEST)


@pytest.fixture
def host() -> Actor:
    return Actor(user_id=uuid.uuid4(), role=ActorRole.HOST)


@pytest.fixture
def admin() -> Actor:
    return Actor(user_id=uuid.uuid4(), role=ActorRole.ADMIN)


@pytest.fixture
async def pending_booking(db, guest, host) -> Booking:
    booking = await booking_service.create_booking(
        db,
        guest_id=guest.user_id,
        host_id=host.user_id,
        property_id=uuid.uuid4(),
        check_in_date=CHECK_IN,
        check_out_date=CHECK_OUT,
        room_fee=ROOM_FEE,
        cleaning_fee=CLEANING_FEE,
        security_deposit=SECURITY_DEPOSIT,
        now=at(BOOKED_ON),
    )
    await db.commit()
    return booking


@pytest.fixture
async def confirmed_booking(db, pending_booking) -> Booking:
    booking = await snapshot_service.confirm_booking(db, pending_booking.id, now=at(BOOKED_ON, 13))
    await db.commit()
    return booking


@pytest.fixture
async def checked_in_booking(db, confirmed_booking, guest) -> Booking:
    booking = await booking_service.check_in(db, confirmed_booking.id, guest, now=at(CHECK_IN, 15))
    await db.commit()
    return booking


@pytest.fixture
async def checked_out_booking(db, checked_in_booking, guest) -> Booking:
    booking = await booking_service.check_out(db, checked_in_booking.id, guest, now=at(CHECK_OUT, 10))
    await db.commit()
    return booking


@pytest.fixture
def fresh(session_factory):
    """Load a row in a new session (sees what other sessions committed)."""

    async def _fresh(model, id):
        async with session_factory() as session:
            return await session.get(model, id)

    return _fresh
