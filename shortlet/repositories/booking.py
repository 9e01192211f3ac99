"""Booking repository."""

import uuid
from datetime import date, datetime

from sqlalchemy import func, select
from sqlalchemy.orm.attributes import flag_modified

from shortlet.domain.booking_state import BookingStatus, StayStatus
from shortlet.models.booking import Booking
from shortlet.models.financial import FinancialSnapshot
from shortlet.repositories.base import BaseRepository, storage_errors


class BookingRepository(BaseRepository[Booking]):
    model = Booking
    resource_name = "Booking"

    async def list_settlement_candidate_ids(self) -> list[uuid.UUID]:
        """Ids of ACTIVE, checked-in or checked-out, non-blocked bookings."""
        async with storage_errors(self.resource_name):
            result = await self.db.execute(
                select(Booking.id)
                .where(
                    Booking.status == BookingStatus.ACTIVE,
                    Booking.stay_status.in_([StayStatus.CHECKED_IN, StayStatus.CHECKED_OUT]),
                    Booking.is_blocked_dates.is_(False),
                )
                .order_by(Booking.check_in_date, Booking.id)
            )
            return list(result.scalars().all())

    async def list_due_for_activation_ids(self, today: date) -> list[uuid.UUID]:
        """Ids of CONFIRMED bookings whose check-in day has arrived."""
        async with storage_errors(self.resource_name):
            result = await self.db.execute(
                select(Booking.id)
                .where(
                    Booking.status == BookingStatus.CONFIRMED,
                    Booking.check_in_date <= today,
                    Booking.is_blocked_dates.is_(False),
                )
                .order_by(Booking.check_in_date, Booking.id)
            )
            return list(result.scalars().all())

    async def list_due_for_check_out_ids(self, last_day: date) -> list[uuid.UUID]:
        """Ids of checked-in ACTIVE bookings scheduled to check out on or before ``last_day``."""
        async with storage_errors(self.resource_name):
            result = await self.db.execute(
                select(Booking.id)
                .where(
                    Booking.status == BookingStatus.ACTIVE,
                    Booking.stay_status == StayStatus.CHECKED_IN,
                    Booking.check_out_date <= last_day,
                    Booking.is_blocked_dates.is_(False),
                )
                .order_by(Booking.check_out_date, Booking.id)
            )
            return list(result.scalars().all())

    async def confirmed_room_fee_volume(self, host_id: uuid.UUID, since: datetime) -> int:
        """Room fees (kobo) of the host's bookings confirmed since ``since``, cancellations excluded."""
        async with storage_errors(self.resource_name, host_id):
            result = await self.db.execute(
                select(func.coalesce(func.sum(FinancialSnapshot.room_fee), 0))
                .join(Booking, FinancialSnapshot.booking_id == Booking.id)
                .where(
                    Booking.host_id == host_id,
                    Booking.status != BookingStatus.CANCELLED,
                    FinancialSnapshot.snapshot_at >= since,
                )
            )
            return int(result.scalar_one())

    async def save(self, booking: Booking, now: datetime) -> Booking:
        """Write the booking, bumping its version even when only children changed.

        Raises:
            ConcurrentUpdateError: If another writer committed first
        """
        booking.updated_at = now
        flag_modified(booking, "updated_at")
        await self.flush(booking.id)
        return booking
