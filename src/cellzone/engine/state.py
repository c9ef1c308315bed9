"""In-memory resolution state and per-cell serialization.

Nothing here is persisted: the state is built fresh when the engine is
constructed and dropped with it. Learning expiry is lazy; every reader
compares the clock against ``learn_until`` and no timer ever fires.
"""

import logging
import threading
import time
from collections.abc import Callable, Hashable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import timedelta

from cellzone.cells.models import CellKey

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class StateSnapshot:
    current_area: int | None
    current_cell: CellKey | None
    learn_target_area: int | None
    learn_until: float


class ResolutionState:
    """Thread-safe holder for the current area/cell and the learning session."""

    def __init__(self, clock: Clock = time.monotonic) -> None:
        self.clock = clock
        self._lock = threading.Lock()
        self._current_area: int | None = None
        self._current_cell: CellKey | None = None
        self._learn_target_area: int | None = None
        self._learn_until: float = 0.0
        self._sequence = 0

    def start_learning(
        self, target_area_id: int, duration: timedelta, now: float | None = None
    ) -> float:
        """Redirect sightings to ``target_area_id`` for ``duration``.

        Replaces any session already in progress. Returns the deadline.
        """
        if now is None:
            now = self.clock()
        until = now + duration.total_seconds()
        with self._lock:
            self._learn_target_area = target_area_id
            self._learn_until = until
        logger.info(
            "Learning area %s for %.0fs", target_area_id, duration.total_seconds()
        )
        return until

    def learning_target(self, now: float | None = None) -> int | None:
        """Return the area being learned, or None if no session is active."""
        if now is None:
            now = self.clock()
        with self._lock:
            if self._learn_target_area is None or now > self._learn_until:
                return None
            return self._learn_target_area

    def learning_remaining(self, now: float | None = None) -> float:
        if now is None:
            now = self.clock()
        with self._lock:
            if self._learn_target_area is None:
                return 0.0
            return max(0.0, self._learn_until - now)

    def record_resolution(self, cell: CellKey, area_id: int) -> tuple[bool, int]:
        """Store the latest resolution.

        Returns whether the area changed, and the sequence number that
        orders this resolution against every other one.
        """
        with self._lock:
            changed = self._current_area != area_id
            self._current_area = area_id
            self._current_cell = cell
            self._sequence += 1
            return changed, self._sequence

    def next_sequence(self) -> int:
        with self._lock:
            self._sequence += 1
            return self._sequence

    @property
    def current_cell(self) -> CellKey | None:
        with self._lock:
            return self._current_cell

    @property
    def current_area(self) -> int | None:
        with self._lock:
            return self._current_area

    def snapshot(self) -> StateSnapshot:
        with self._lock:
            return StateSnapshot(
                current_area=self._current_area,
                current_cell=self._current_cell,
                learn_target_area=self._learn_target_area,
                learn_until=self._learn_until,
            )


class KeyedLocks:
    """One lock per key; holders of different keys never block each other."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Hashable, threading.Lock] = {}

    def _lock_for(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self._lock_for(key)
        with lock:
            yield

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
