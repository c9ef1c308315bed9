"""Shared test fixtures."""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

import cellzone.database as db_module
from cellzone.areas.models import RingerMode, VolumeChannel
from cellzone.database import get_session, init_db
from cellzone.engine.core import CellEngine
from cellzone.engine.state import ResolutionState
from cellzone.main import app
from cellzone.sinks.base import StatusBoard


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSink:
    """ConfigurationSink that records every write."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def set_volume(self, channel: VolumeChannel, level: int) -> None:
        self.calls.append(("volume", channel, level))

    def set_wifi_enabled(self, enabled: bool) -> None:
        self.calls.append(("wifi", enabled))

    def set_ringer_mode(self, mode: RingerMode) -> None:
        self.calls.append(("ringer_mode", mode))


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created and seed data.

    StaticPool ensures every session uses the same connection,
    so the in-memory database is shared across the test.
    """
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(eng)
    return eng


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    with Session(engine) as s:
        yield s


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def state(clock) -> ResolutionState:
    return ResolutionState(clock=clock)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def board() -> StatusBoard:
    return StatusBoard()


@pytest.fixture
def cell_engine(engine, sink, board, state) -> Generator[CellEngine, None, None]:
    eng = CellEngine(
        engine,
        sink,
        board,
        state=state,
        worker_threads=4,
        no_profile_label="No profile",
        unknown_area_label="Unknown area",
    )
    yield eng
    eng.shutdown()


@pytest.fixture
def client(engine) -> Generator[TestClient, None, None]:
    """FastAPI TestClient with overridden DB engine and session."""
    # Patch the module-level engine so the lifespan's init_db() and the
    # cell engine both use the test engine.
    original_engine = db_module.engine
    db_module.engine = engine

    def _override_session() -> Generator[Session, None, None]:
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = _override_session
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    db_module.engine = original_engine
