"""Payout account and payout request repositories."""

import uuid

from sqlalchemy import select

from shortlet.models.payout import PayoutAccount, PayoutRequest
from shortlet.repositories.base import BaseRepository, storage_errors


class PayoutAccountRepository(BaseRepository[PayoutAccount]):
    model = PayoutAccount
    resource_name = "PayoutAccount"

    async def get_for_host(self, host_id: uuid.UUID) -> PayoutAccount | None:
        async with storage_errors(self.resource_name, host_id):
            result = await self.db.execute(
                select(PayoutAccount).where(PayoutAccount.host_id == host_id)
            )
            return result.scalar_one_or_none()


class PayoutRequestRepository(BaseRepository[PayoutRequest]):
    model = PayoutRequest
    resource_name = "PayoutRequest"

    async def get_by_reference(self, reference: str) -> PayoutRequest | None:
        async with storage_errors(self.resource_name, reference):
            result = await self.db.execute(
                select(PayoutRequest).where(PayoutRequest.reference == reference)
            )
            return result.scalar_one_or_none()

    async def list_for_host(self, host_id: uuid.UUID) -> list[PayoutRequest]:
        async with storage_errors(self.resource_name, host_id):
            result = await self.db.execute(
                select(PayoutRequest)
                .where(PayoutRequest.host_id == host_id)
                .order_by(PayoutRequest.requested_at.desc())
            )
            return list(result.scalars().all())
