"""Repository base class and storage error translation."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Generic, TypeVar

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from shortlet.core.exceptions import (
    ConcurrentUpdateError,
    NotFoundError,
    TransientStorageError,
)
from shortlet.database import Base

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


@asynccontextmanager
async def storage_errors(resource: str = "Record", identifier: Any = None) -> AsyncIterator[None]:
    """Translate driver failures into the domain's retryable errors.

    Connectivity failures become TransientStorageError, a failed optimistic
    version check becomes ConcurrentUpdateError. Everything else (integrity
    violations included) propagates unchanged.
    """
    try:
        yield
    except StaleDataError as exc:
        logger.warning(f"Concurrent update on {resource} {identifier}: {exc}")
        raise ConcurrentUpdateError(resource, str(identifier) if identifier else None) from exc
    except (OperationalError, InterfaceError) as exc:
        logger.warning(f"Storage unavailable while writing {resource} {identifier}: {exc}")
        raise TransientStorageError(f"Storage unavailable: {exc.__class__.__name__}") from exc
    except DBAPIError as exc:
        if exc.connection_invalidated:
            logger.warning(f"Connection invalidated while writing {resource} {identifier}")
            raise TransientStorageError("Storage connection was invalidated") from exc
        raise


class BaseRepository(Generic[ModelT]):
    """Per-entity data access bound to one session."""

    model: type[ModelT]
    resource_name: str = "Record"

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, id: Any) -> ModelT | None:
        async with storage_errors(self.resource_name, id):
            return await self.db.get(self.model, id)

    async def get_or_404(self, id: Any) -> ModelT:
        obj = await self.get(id)
        if obj is None:
            raise NotFoundError(self.resource_name, str(id))
        return obj

    def add(self, obj: ModelT) -> ModelT:
        self.db.add(obj)
        return obj

    async def flush(self, identifier: Any = None) -> None:
        async with storage_errors(self.resource_name, identifier):
            await self.db.flush()

    @property
    def dialect_name(self) -> str:
        return self.db.get_bind().dialect.name
