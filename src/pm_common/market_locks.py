"""Per-market asyncio locks.

Every mutation of a market's pools, its positions, or the balances of its
traders runs under the market's lock. The lock only serializes coroutines
inside one process; cross-process safety comes from SELECT ... FOR UPDATE
on the market row plus the version compare-and-swap in MarketRepository.
"""

import asyncio
from collections import defaultdict


class MarketLockRegistry:
    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def lock_for(self, market_id: str) -> asyncio.Lock:
        return self._locks[market_id]


_registry: MarketLockRegistry | None = None


def get_market_locks() -> MarketLockRegistry:
    """Process-wide registry shared by trade, rollback and settlement services."""
    global _registry  # noqa: PLW0603
    if _registry is None:
        _registry = MarketLockRegistry()
    return _registry
