"""Time-ordered ids for markets and trades.

Trade ids double as the tiebreaker in the trade feed, so ids from one worker
must sort by creation time. Each API worker gets its own ID_WORKER_ID (0-1023)
so two processes writing to the same database never mint the same id.

Layout, most significant bit first:
    41 bits  milliseconds since ID_EPOCH_MS
    10 bits  worker id
    12 bits  per-millisecond counter
"""

import threading
import time

from config.settings import settings

ID_EPOCH_MS = 1_700_000_000_000
WORKER_BITS = 10
COUNTER_BITS = 12
MAX_WORKER_ID = (1 << WORKER_BITS) - 1
COUNTER_MASK = (1 << COUNTER_BITS) - 1


class SnowflakeIdGenerator:
    def __init__(self, machine_id: int = 0) -> None:
        if not 0 <= machine_id <= MAX_WORKER_ID:
            raise ValueError(f"machine_id must be 0-{MAX_WORKER_ID}")
        self._worker = machine_id
        self._counter = 0
        self._last_ms = -1
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            # A clock that steps backwards keeps issuing from the last millisecond
            now_ms = max(_wall_ms(), self._last_ms)
            if now_ms == self._last_ms:
                self._counter = (self._counter + 1) & COUNTER_MASK
                if self._counter == 0:
                    now_ms = self._next_millisecond()
            else:
                self._counter = 0
            self._last_ms = now_ms
            return str(compose_id(now_ms, self._worker, self._counter))

    def _next_millisecond(self) -> int:
        while (now_ms := _wall_ms()) <= self._last_ms:
            time.sleep(0.0001)
        return now_ms


def compose_id(timestamp_ms: int, worker: int, counter: int) -> int:
    elapsed = timestamp_ms - ID_EPOCH_MS
    return (elapsed << (WORKER_BITS + COUNTER_BITS)) | (worker << COUNTER_BITS) | counter


def id_timestamp_ms(raw_id: str) -> int:
    """Creation time (epoch ms) encoded in an id, with any prefix stripped."""
    digits = raw_id.lstrip("abcdefghijklmnopqrstuvwxyz_")
    return (int(digits) >> (WORKER_BITS + COUNTER_BITS)) + ID_EPOCH_MS


def _wall_ms() -> int:
    return time.time_ns() // 1_000_000


_generator = SnowflakeIdGenerator(settings.ID_WORKER_ID)


def generate_id(prefix: str = "") -> str:
    """generate_id("mkt_") -> "mkt_7301..."; unprefixed ids are plain digits."""
    return f"{prefix}{_generator.next_id()}"
