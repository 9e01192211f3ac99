"""Cron entry point for one settlement pass.

Usage::

    python -m shortlet.settle
    shortlet-settle

Exits 0 when the pass ran (per-booking failures are logged and counted),
1 when it could not run at all.
"""

import asyncio
import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from shortlet.core.exceptions import AppException
from shortlet.core.logging_config import configure_logging
from shortlet.database import close_db
from shortlet.services.settlement_service import SettlementResult, settlement_service

logger = logging.getLogger("shortlet.settle")


async def _run() -> SettlementResult:
    try:
        return await settlement_service.run_settlement_pass()
    finally:
        await close_db()


def main() -> int:
    configure_logging()
    try:
        result = asyncio.run(_run())
    except (AppException, SQLAlchemyError, OSError) as e:
        logger.error(f"Settlement pass aborted: {e}")
        return 1
    logger.info(f"Settlement pass result: {result.to_dict()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
