"""Financial audit trail service."""

from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from shortlet.models.admin import AuditLog


class AuditService:
    """Service for immutable financial audit logging."""

    FINANCIAL_ACTIONS = {
        "snapshot_create",
        "booking_confirm",
        "booking_activate",
        "booking_check_in",
        "booking_check_out",
        "booking_cancel",
        "booking_complete",
        "dispute_open",
        "dispute_resolve",
        "release_create",
        "payout_request",
        "payout_processing",
        "payout_complete",
        "payout_fail",
        "payout_account_register",
    }

    async def log_financial_action(
        self,
        db: AsyncSession,
        user_id: UUID | None,
        action: str,
        resource_type: str,
        resource_id: UUID,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
    ) -> AuditLog:
        """Log a financial action (immutable).

        Args:
            db: Database session
            user_id: User performing the action, None for scheduled jobs
            action: Action name (e.g., "release_create")
            resource_type: Resource type (e.g., "booking", "payout")
            resource_id: Resource ID
            old_values: Previous state
            new_values: New state

        Returns:
            Created audit log entry
        """
        if action not in self.FINANCIAL_ACTIONS:
            raise ValueError(f"Unknown audit action: {action}")
        audit = AuditLog(
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            old_values=old_values,
            new_values=new_values,
        )
        db.add(audit)
        return audit

    async def log_status_change(
        self,
        db: AsyncSession,
        user_id: UUID | None,
        action: str,
        resource_type: str,
        resource_id: UUID,
        old_status: str | None,
        new_status: str,
        **extra: Any,
    ) -> AuditLog:
        """Log a status transition with optional extra fields."""
        new_values: dict[str, Any] = {"status": new_status}
        new_values.update({k: v for k, v in extra.items() if v is not None})
        return await self.log_financial_action(
            db=db,
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            old_values={"status": old_status} if old_status else None,
            new_values=new_values,
        )


audit_service = AuditService()
