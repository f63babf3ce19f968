"""Market-scoped unit of work: lock → transaction → commit, with bounded retry.

Used by every writer of market pools, positions and balances (trades,
rollbacks, resolution). One attempt is:

    async with market lock:
        SET LOCAL lock_timeout
        result = await work()          # reads FOR UPDATE, mutates, writes
        COMMIT

Any exception rolls the transaction back. ContentionError and retryable DB
errors (serialization failure, deadlock, lock timeout) re-run `work` against
fresh state; everything else propagates after rollback.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import is_retryable_db_error, set_lock_timeout
from src.pm_common.errors import ContentionError, LedgerIntegrityError
from src.pm_common.market_locks import MarketLockRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_in_market_transaction(
    db: AsyncSession,
    market_id: str,
    work: Callable[[], Awaitable[T]],
    *,
    locks: MarketLockRegistry,
    max_retries: int,
    operation: str,
) -> T:
    async with locks.lock_for(market_id):
        for attempt in range(1, max_retries + 1):
            try:
                await set_lock_timeout(db)
                result = await work()
                await db.commit()
                return result
            except ContentionError:
                await db.rollback()
                logger.warning(
                    "%s on market %s lost a race (attempt %d/%d)",
                    operation, market_id, attempt, max_retries,
                )
            except DBAPIError as e:
                await db.rollback()
                if not is_retryable_db_error(e):
                    raise
                logger.warning(
                    "%s on market %s hit DB contention (attempt %d/%d): %s",
                    operation, market_id, attempt, max_retries, e.orig,
                )
            except LedgerIntegrityError as e:
                await db.rollback()
                logger.error("%s on market %s aborted: %s", operation, market_id, e.message)
                raise
            except Exception:
                await db.rollback()
                raise
    raise ContentionError()
