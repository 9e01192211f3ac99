"""Release event repository."""

import logging
import uuid
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError

from shortlet.core.exceptions import DuplicateReleaseError
from shortlet.domain.release_state import ReleaseEventType, ReleaseStatus
from shortlet.models.financial import ReleaseEvent
from shortlet.repositories.base import BaseRepository, storage_errors

logger = logging.getLogger(__name__)

_CONFLICT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class ReleaseEventRepository(BaseRepository[ReleaseEvent]):
    model = ReleaseEvent
    resource_name = "ReleaseEvent"

    async def list_for_booking(self, booking_id: uuid.UUID) -> list[ReleaseEvent]:
        async with storage_errors(self.resource_name, booking_id):
            result = await self.db.execute(
                select(ReleaseEvent)
                .where(ReleaseEvent.booking_id == booking_id)
                .order_by(ReleaseEvent.release_date, ReleaseEvent.event_type)
            )
            return list(result.scalars().all())

    async def create_released_once(
        self,
        booking_id: uuid.UUID,
        host_id: uuid.UUID,
        event_type: ReleaseEventType,
        amount: int,
        currency: str,
        release_date: datetime,
        released_at: datetime,
    ) -> bool:
        """Insert a RELEASED event unless one already exists for (booking, type).

        Uses the dialect's ON CONFLICT DO NOTHING where available, so two
        concurrent passes cannot both create the row.

        Returns:
            True if this call created the event, False if it already existed

        Raises:
            DuplicateReleaseError: Only on dialects without conflict-free
                inserts, when the uniqueness constraint rejects the row
        """
        values = {
            "id": uuid.uuid4(),
            "booking_id": booking_id,
            "host_id": host_id,
            "event_type": event_type,
            "amount": amount,
            "currency": currency,
            "release_date": release_date,
            "status": ReleaseStatus.RELEASED,
            "released_at": released_at,
            "claimed_amount": 0,
        }

        insert = _CONFLICT_INSERTS.get(self.dialect_name)
        if insert is not None:
            stmt = (
                insert(ReleaseEvent)
                .values(**values)
                .on_conflict_do_nothing(index_elements=["booking_id", "event_type"])
                .returning(ReleaseEvent.id)
            )
            async with storage_errors(self.resource_name, booking_id):
                result = await self.db.execute(stmt)
                return result.scalar_one_or_none() is not None

        return await self._create_with_savepoint(values)

    async def _create_with_savepoint(self, values: dict) -> bool:
        booking_id, event_type = values["booking_id"], values["event_type"]
        async with storage_errors(self.resource_name, booking_id):
            existing = await self.db.execute(
                select(ReleaseEvent.id).where(
                    ReleaseEvent.booking_id == booking_id,
                    ReleaseEvent.event_type == event_type,
                )
            )
            if existing.first() is not None:
                return False
            try:
                async with self.db.begin_nested():
                    self.db.add(ReleaseEvent(**values))
            except IntegrityError as exc:
                raise DuplicateReleaseError(str(booking_id), event_type.value) from exc
        return True

    async def list_available_for_host(self, host_id: uuid.UUID) -> list[ReleaseEvent]:
        """RELEASED events with unclaimed funds, oldest release first."""
        async with storage_errors(self.resource_name, host_id):
            result = await self.db.execute(
                select(ReleaseEvent)
                .where(
                    ReleaseEvent.host_id == host_id,
                    ReleaseEvent.status == ReleaseStatus.RELEASED,
                    ReleaseEvent.claimed_amount < ReleaseEvent.amount,
                )
                .order_by(ReleaseEvent.released_at, ReleaseEvent.id)
            )
            return list(result.scalars().all())

    async def available_balance(self, host_id: uuid.UUID) -> int:
        async with storage_errors(self.resource_name, host_id):
            result = await self.db.execute(
                select(
                    func.coalesce(func.sum(ReleaseEvent.amount - ReleaseEvent.claimed_amount), 0)
                ).where(
                    ReleaseEvent.host_id == host_id,
                    ReleaseEvent.status == ReleaseStatus.RELEASED,
                )
            )
            return int(result.scalar_one())

    async def total_released(self, host_id: uuid.UUID) -> int:
        async with storage_errors(self.resource_name, host_id):
            result = await self.db.execute(
                select(func.coalesce(func.sum(ReleaseEvent.amount), 0)).where(
                    ReleaseEvent.host_id == host_id,
                    ReleaseEvent.status == ReleaseStatus.RELEASED,
                )
            )
            return int(result.scalar_one())
