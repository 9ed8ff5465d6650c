"""Snowflake ID Generator Module

A Python implementation of Twitter's Snowflake algorithm for generating unique,
time-ordered 64-bit identifiers. Each record stored by the service gets one of
these ids when the deployment runs with ``ID_STRATEGY=snowflake``.

Bit Layout
==========
::

    |1 bit|         41 bits          | 5 bits | 5 bits |  12 bits  |
    |sign |  ms since custom epoch   |   dc   | worker | sequence  |
    |  0  |                          |  0-31  |  0-31  |  0-4095   |

- Sign bit: Always 0 (ids fit a signed BIGINT column)
- Timestamp: ~69 years of milliseconds from SNOWFLAKE_EPOCH_MS
- Datacenter / worker: 32 x 32 generator instances per deployment
- Sequence: 4096 ids per millisecond per instance

Generation Flow
===============
::

    ┌─────────────┐
    │  next_id()   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ acquire lock │
    └──────┬──────┘
           ▼
    ┌─────────────┐   now < last    ┌──────────────────────┐
    │  read clock  │ ──────────────▶ │ ClockRegressionError │
    └──────┬──────┘                 └──────────────────────┘
           ▼
    now == last?  ── yes ─▶ sequence += 1 ── wrapped? ─▶ spin to next ms
           │ no
           ▼
    sequence = 0
           ▼
    ┌─────────────┐
    │ compose id   │
    └─────────────┘

Key Behaviours
==============
- Thread-safe: one ``threading.Lock`` guards the read-modify-write of the state.
- Never returns a duplicate or a smaller id than one it returned before.
- Out-of-range worker/datacenter ids are rejected at construction.
- Clock regression fails the call immediately; retrying is the caller's decision.
- A clock outside the 41-bit window after the epoch fails the call with ClockOutOfRangeError.
"""

import logging
import threading
import time
from collections.abc import Callable
from typing import NamedTuple

from tinyurl.exceptions import ClockOutOfRangeError, ClockRegressionError

__all__ = [
    "DEFAULT_EPOCH_MS",
    "SnowflakeIdGenerator",
    "SnowflakeParts",
    "parse_id",
]

logger = logging.getLogger("tinyurl.snowflake")

DEFAULT_EPOCH_MS = 1594720861895

WORKER_ID_BITS = 5
DATACENTER_ID_BITS = 5
SEQUENCE_BITS = 12
TIMESTAMP_BITS = 63 - WORKER_ID_BITS - DATACENTER_ID_BITS - SEQUENCE_BITS

MAX_WORKER_ID = (1 << WORKER_ID_BITS) - 1
MAX_DATACENTER_ID = (1 << DATACENTER_ID_BITS) - 1
SEQUENCE_MASK = (1 << SEQUENCE_BITS) - 1
MAX_TIMESTAMP_DELTA = (1 << TIMESTAMP_BITS) - 1

WORKER_ID_SHIFT = SEQUENCE_BITS
DATACENTER_ID_SHIFT = SEQUENCE_BITS + WORKER_ID_BITS
TIMESTAMP_SHIFT = SEQUENCE_BITS + WORKER_ID_BITS + DATACENTER_ID_BITS


def _current_millis() -> int:
    return time.time_ns() // 1_000_000


class SnowflakeParts(NamedTuple):
    """Fields packed into a snowflake id."""

    timestamp_ms: int
    datacenter_id: int
    worker_id: int
    sequence: int


def parse_id(snowflake_id: int, epoch: int = DEFAULT_EPOCH_MS) -> SnowflakeParts:
    """Split a snowflake id back into its fields.

    Args:
        snowflake_id: An id produced by ``SnowflakeIdGenerator``.
        epoch: The epoch the id was minted against.

    Returns:
        SnowflakeParts with the absolute timestamp in milliseconds.
    """
    return SnowflakeParts(
        timestamp_ms=(snowflake_id >> TIMESTAMP_SHIFT) + epoch,
        datacenter_id=(snowflake_id >> DATACENTER_ID_SHIFT) & MAX_DATACENTER_ID,
        worker_id=(snowflake_id >> WORKER_ID_SHIFT) & MAX_WORKER_ID,
        sequence=snowflake_id & SEQUENCE_MASK,
    )


class SnowflakeIdGenerator:
    """A thread-safe Snowflake ID generator.

    Attributes:
        worker_id: Worker id of this instance (0-31).
        datacenter_id: Datacenter id of this instance (0-31).
        epoch: The custom epoch timestamp in milliseconds.
    """

    def __init__(
        self,
        worker_id: int,
        datacenter_id: int,
        epoch: int = DEFAULT_EPOCH_MS,
        clock: Callable[[], int] = _current_millis,
    ):
        """Initializes a new generator instance.

        Args:
            worker_id: Worker id, provisioned externally (0-31).
            datacenter_id: Datacenter id, provisioned externally (0-31).
            epoch: The custom epoch timestamp in milliseconds.
            clock: Source of wall-clock milliseconds.

        Raises:
            ValueError: If worker_id or datacenter_id does not fit its bit width.
        """
        if not 0 <= worker_id <= MAX_WORKER_ID:
            raise ValueError(f"Worker ID must be between 0 and {MAX_WORKER_ID}, got {worker_id}")
        if not 0 <= datacenter_id <= MAX_DATACENTER_ID:
            raise ValueError(
                f"Datacenter ID must be between 0 and {MAX_DATACENTER_ID}, got {datacenter_id}"
            )

        self.worker_id = worker_id
        self.datacenter_id = datacenter_id
        self.epoch = epoch
        self._clock = clock
        self._sequence = 0
        self._last_timestamp = -1
        self._lock = threading.Lock()

    def _wait_for_next_millis(self, last_timestamp: int) -> int:
        """Spins until the clock moves past ``last_timestamp``."""
        timestamp = self._clock()
        while timestamp <= last_timestamp:
            timestamp = self._clock()
        return timestamp

    def next_id(self) -> int:
        """Generates a new unique id.

        Returns:
            A 64-bit id, strictly greater than every id this instance returned before.

        Raises:
            ClockRegressionError: If the system clock moved backwards.
            ClockOutOfRangeError: If the clock is before the epoch or past the 41-bit window.
        """
        with self._lock:
            timestamp = self._clock()

            if timestamp < self._last_timestamp:
                logger.error(
                    "Clock is moving backwards. Rejecting requests until %d.",
                    self._last_timestamp,
                )
                raise ClockRegressionError(self._last_timestamp, timestamp)

            if not 0 <= timestamp - self.epoch <= MAX_TIMESTAMP_DELTA:
                logger.error("Clock %d is outside the id window of epoch %d.", timestamp, self.epoch)
                raise ClockOutOfRangeError(timestamp, self.epoch)

            if timestamp == self._last_timestamp:
                self._sequence = (self._sequence + 1) & SEQUENCE_MASK
                if self._sequence == 0:
                    timestamp = self._wait_for_next_millis(self._last_timestamp)
            else:
                self._sequence = 0

            delta = timestamp - self.epoch
            self._last_timestamp = timestamp

            return (
                (delta << TIMESTAMP_SHIFT)
                | (self.datacenter_id << DATACENTER_ID_SHIFT)
                | (self.worker_id << WORKER_ID_SHIFT)
                | self._sequence
            )
