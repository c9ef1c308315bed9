"""Cell engine: sighting processing, learning commands and profile refresh.

Sightings are handled on a bounded worker pool. All store work for one
(cell_id, network_type) key runs under that key's lock, so two sightings
of the same cell never interleave their read-modify-write, while
sightings of different cells proceed in parallel.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy.engine import Engine
from sqlmodel import Session

from cellzone.areas.models import DEFAULT_AREA_ID, Area
from cellzone.cells.models import CellKey
from cellzone.cells.normalizer import CellSighting, sighting_key
from cellzone.cells.store import append_sighting, find_cell, reassign_since, resolve_or_create
from cellzone.engine.applier import ProfileApplier
from cellzone.engine.resolver import resolve_profile
from cellzone.engine.state import KeyedLocks, ResolutionState
from cellzone.sinks.base import ConfigurationSink, StatusIndicator

logger = logging.getLogger(__name__)


class InvalidCommandError(ValueError):
    """A command was rejected before touching any state."""


def _require_int(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidCommandError(f"{name} must be an integer, got {value!r}")
    return value


@dataclass(frozen=True)
class StartLearning:
    """Assign sightings to ``target_area_id`` for the next ``duration_seconds``."""

    target_area_id: int
    duration_seconds: int

    def __post_init__(self) -> None:
        _require_int("target_area_id", self.target_area_id)
        _require_int("duration_seconds", self.duration_seconds)
        if self.duration_seconds <= 0:
            raise InvalidCommandError("Learning duration must be positive")
        if self.target_area_id == DEFAULT_AREA_ID:
            raise InvalidCommandError("Cannot learn into the default area")


@dataclass(frozen=True)
class Refresh:
    """Re-apply the profile of the last known cell."""


@dataclass(frozen=True)
class ReassignHistorical:
    """Move every cell seen in the last ``since_seconds`` to ``target_area_id``."""

    target_area_id: int
    since_seconds: int

    def __post_init__(self) -> None:
        _require_int("target_area_id", self.target_area_id)
        _require_int("since_seconds", self.since_seconds)
        if self.since_seconds < 0:
            raise InvalidCommandError("Reassignment window cannot be negative")


@dataclass(frozen=True)
class LearnArea:
    """Learn an area the way the area list offers it.

    A positive ``seconds`` learns forward for that long and moves the
    current cell. A negative ``seconds`` moves every cell seen in the
    last ``-seconds``. Zero moves only the current cell.
    """

    area_id: int
    seconds: int

    def __post_init__(self) -> None:
        _require_int("area_id", self.area_id)
        _require_int("seconds", self.seconds)
        if self.area_id == DEFAULT_AREA_ID:
            raise InvalidCommandError("Cannot learn into the default area")


Command = StartLearning | Refresh | ReassignHistorical | LearnArea


@dataclass(frozen=True)
class SightingOutcome:
    cell: CellKey
    cell_row_id: int
    area_id: int
    created: bool
    area_changed: bool
    applied: bool


class CellEngine:
    """Owns the resolution state and turns sightings into profile changes."""

    def __init__(
        self,
        db_engine: Engine,
        sink: ConfigurationSink,
        indicator: StatusIndicator,
        state: ResolutionState | None = None,
        worker_threads: int = 4,
        no_profile_label: str = "No profile",
        unknown_area_label: str = "Unknown area",
    ) -> None:
        self.db_engine = db_engine
        self.state = state or ResolutionState()
        self.applier = ProfileApplier(sink, indicator)
        self.no_profile_label = no_profile_label
        self.unknown_area_label = unknown_area_label
        self._locks = KeyedLocks()
        self._executor = ThreadPoolExecutor(
            max_workers=worker_threads, thread_name_prefix="sighting"
        )

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
        logger.info("Cell engine stopped")

    # --- Sightings ---

    def on_sighting(self, sighting: CellSighting) -> Future[SightingOutcome | None]:
        """Observer callback: queue a sighting for processing."""
        return self._executor.submit(self._handle_sighting, sighting)

    def _handle_sighting(self, sighting: CellSighting) -> SightingOutcome | None:
        try:
            return self.process_sighting(sighting)
        except Exception:
            # Storage failure: drop this sighting and wait for the next one
            logger.exception("Error handling sighting from %s", sighting.source)
            return None

    def process_sighting(self, sighting: CellSighting) -> SightingOutcome | None:
        """Resolve, log and (on area change) apply one sighting.

        Returns None when the reading carried no signal.
        """
        key = sighting_key(sighting)
        if key is None:
            return None

        logger.info("Switch to cell %s (%s)", key.cell_id, key.network_type)
        with self._locks.hold(key):
            with Session(self.db_engine) as session:
                resolution = resolve_or_create(
                    session, key.cell_id, key.network_type, self.state
                )
                append_sighting(session, resolution.cell_row_id, sighting.timestamp)
            # Only committed work reaches the in-memory state
            changed, sequence = self.state.record_resolution(key, resolution.area_id)

        applied = False
        if changed:
            applied = self._apply(resolution.cell_row_id, sequence)

        return SightingOutcome(
            cell=key,
            cell_row_id=resolution.cell_row_id,
            area_id=resolution.area_id,
            created=resolution.created,
            area_changed=changed,
            applied=applied,
        )

    def _apply(self, cell_row_id: int, sequence: int) -> bool:
        with Session(self.db_engine) as session:
            resolved = resolve_profile(
                session, cell_row_id, self.no_profile_label, self.unknown_area_label
            )
        return self.applier.apply(resolved, sequence)

    # --- Commands ---

    def submit(self, command: Command) -> Future[object]:
        """Deliver a command asynchronously on the worker pool."""
        return self._executor.submit(self.handle, command)

    def handle(self, command: Command) -> object:
        """Execute a command synchronously."""
        if isinstance(command, StartLearning):
            return self.start_learning(command.target_area_id, command.duration_seconds)
        if isinstance(command, Refresh):
            return self.refresh()
        if isinstance(command, ReassignHistorical):
            return self.reassign_historical(command.target_area_id, command.since_seconds)
        if isinstance(command, LearnArea):
            return self.learn_area(command.area_id, command.seconds)
        raise InvalidCommandError(f"Unknown command: {command!r}")

    def _require_area(self, area_id: int) -> None:
        with Session(self.db_engine) as session:
            if session.get(Area, area_id) is None:
                raise InvalidCommandError(f"Area {area_id} does not exist")

    def start_learning(self, target_area_id: int, duration_seconds: int) -> float:
        """Start (or replace) the learning session. Returns the deadline."""
        command = StartLearning(target_area_id, duration_seconds)
        self._require_area(command.target_area_id)
        return self.state.start_learning(
            command.target_area_id, timedelta(seconds=command.duration_seconds)
        )

    def refresh(self) -> bool:
        """Re-resolve and re-apply the profile of the last known cell.

        Returns False if no cell has been seen yet.
        """
        key = self.state.current_cell
        if key is None:
            logger.info("Refresh requested before any sighting, nothing to apply")
            return False

        with Session(self.db_engine) as session:
            cell = find_cell(session, key.cell_id, key.network_type)
            cell_row_id = cell.id if cell is not None else None
        if cell_row_id is None:
            return False
        return self._apply(cell_row_id, self.state.next_sequence())

    def reassign_historical(self, target_area_id: int, since_seconds: int) -> int:
        """Move every cell seen in the last ``since_seconds`` (plus the current one)."""
        command = ReassignHistorical(target_area_id, since_seconds)
        self._require_area(command.target_area_id)
        since = datetime.now(UTC) - timedelta(seconds=command.since_seconds)
        with Session(self.db_engine) as session:
            count = reassign_since(session, command.target_area_id, since)
        self.refresh()
        return count

    def learn_area(self, area_id: int, seconds: int) -> int:
        """Forward learning for positive ``seconds``, backfill for negative ones."""
        command = LearnArea(area_id, seconds)
        self._require_area(command.area_id)
        if command.seconds > 0:
            self.start_learning(command.area_id, command.seconds)
            window = 0
        else:
            window = -command.seconds
        return self.reassign_historical(command.area_id, window)
