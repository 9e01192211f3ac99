"""Immutability enforcement for financial records using SQLAlchemy events."""

import logging
from datetime import UTC, datetime

from sqlalchemy import event

from shortlet.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

_registered = False


class ImmutabilityViolationError(ValidationError):
    """Raised when attempting to modify immutable financial records."""

    def __init__(self, model_name: str, operation: str, record_id: str):
        self.model_name = model_name
        self.operation = operation
        self.record_id = record_id
        super().__init__(
            f"Immutability violation: Cannot {operation} {model_name} record {record_id}. "
            "Financial records are immutable after creation."
        )


def _reject(model_name: str, operation: str):
    def listener(mapper, connection, target):
        logger.error(
            f"IMMUTABILITY_VIOLATION: Attempted to {operation} {model_name} "
            f"record_id={target.id} at {datetime.now(UTC).isoformat()}"
        )
        raise ImmutabilityViolationError(model_name, operation, str(target.id))

    return listener


def register_immutability_enforcement() -> None:
    """Register listeners that make snapshots and audit entries write-once.

    Safe to call more than once.
    """
    global _registered
    if _registered:
        return

    from shortlet.models.admin import AuditLog
    from shortlet.models.financial import FinancialSnapshot

    for model in (FinancialSnapshot, AuditLog):
        event.listen(model, "before_update", _reject(model.__name__, "UPDATE"))
        event.listen(model, "before_delete", _reject(model.__name__, "DELETE"))

    _registered = True
    logger.info("Immutability enforcement registered for financial records")
