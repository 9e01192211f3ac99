"""Dispute repository."""

import uuid

from sqlalchemy import select

from shortlet.domain.dispute_state import DisputeStatus
from shortlet.models.dispute import Dispute
from shortlet.repositories.base import BaseRepository, storage_errors


class DisputeRepository(BaseRepository[Dispute]):
    model = Dispute
    resource_name = "Dispute"

    async def has_open_dispute(self, booking_id: uuid.UUID) -> bool:
        async with storage_errors(self.resource_name, booking_id):
            result = await self.db.execute(
                select(Dispute.id).where(
                    Dispute.booking_id == booking_id,
                    Dispute.status == DisputeStatus.OPEN,
                )
            )
            return result.first() is not None
