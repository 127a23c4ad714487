# taskflow/scripts/sweep_expired_tokens.py

"""
Remove refresh token records whose expiry has passed.

Intended to run periodically (cron, scheduled job):

    python -m taskflow.scripts.sweep_expired_tokens

Revoked but unexpired records are kept; they still answer "revoked" until
they expire.
"""

import asyncio
import logging
from typing import Optional

from taskflow.adapters.configuration.config import Settings, settings as default_settings
from taskflow.adapters.outbound.persistence.database import Database
from taskflow.adapters.outbound.persistence.repositories import AsyncTokenRepository

logger = logging.getLogger(__name__)


async def run_sweep(database: Database, app_settings: Optional[Settings] = None) -> int:
    """Delete expired records and return how many were removed."""
    app_settings = app_settings or default_settings
    ledger = AsyncTokenRepository(
        database.session_factory, operation_timeout=app_settings.DB_OPERATION_TIMEOUT_SECONDS
    )
    count = await ledger.sweep_expired()
    logger.info(f"Expired refresh token sweep removed {count} record(s)")
    return count


async def main() -> int:
    database = Database.from_settings(default_settings)
    try:
        return await run_sweep(database)
    finally:
        await database.dispose()


if __name__ == "__main__":
    logging.basicConfig(
        level=default_settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(main())
