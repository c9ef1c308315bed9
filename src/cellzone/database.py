"""Database setup, schema migration, seed data and session management."""

import logging
from collections.abc import Generator
from pathlib import Path

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine, select

from cellzone.areas.models import (
    DEFAULT_AREA_ID,
    VOLUME_APPLY_FALSE,
    Area,
    Profile,
    RingerMode,
    WifiMode,
)
from cellzone.cells.models import Cell, CellLog  # noqa: F401
from cellzone.config import settings

logger = logging.getLogger(__name__)

engine = create_engine(
    f"sqlite:///{settings.db_path}",
    echo=False,
    connect_args={"check_same_thread": False},
)

# Columns added to `area` after the first schema version, with their backfill.
_AREA_ADDED_COLUMNS = {
    "wifi_enabled": 1,
    "bluetooth_enabled": 0,
}


def migrate_db(eng: Engine) -> list[str]:
    """Add columns missing from an older schema. Returns the columns added."""
    inspector = inspect(eng)
    if not inspector.has_table("area"):
        return []
    existing = {col["name"] for col in inspector.get_columns("area")}
    added = []
    with eng.begin() as conn:
        for column, backfill in _AREA_ADDED_COLUMNS.items():
            if column in existing:
                continue
            conn.execute(text(f"ALTER TABLE area ADD COLUMN {column} BOOLEAN"))
            conn.execute(text(f"UPDATE area SET {column} = :value"), {"value": backfill})
            added.append(column)
    if added:
        logger.info("Migrated area table, added: %s", ", ".join(added))
    return added


def seed_db(session: Session) -> bool:
    """Insert the default profiles and areas into an empty database.

    Returns True if seed data was written.
    """
    if session.exec(select(Area)).first() is not None:
        return False

    # "Normal" remembers typical levels but changes nothing by default
    normal = Profile(
        name="Normal",
        ringtone_volume=5 - VOLUME_APPLY_FALSE,
        notification_volume=5 - VOLUME_APPLY_FALSE,
        media_volume=9 - VOLUME_APPLY_FALSE,
        alarm_volume=5 - VOLUME_APPLY_FALSE,
        wifi_enabled=WifiMode.keep,
        ringer_mode=RingerMode.keep,
    )
    # "Silent" mutes ringtone and notifications and enables vibration
    silent = Profile(
        name="Silent",
        ringtone_volume=0,
        notification_volume=0,
        media_volume=0 - VOLUME_APPLY_FALSE,
        alarm_volume=0 - VOLUME_APPLY_FALSE,
        wifi_enabled=WifiMode.keep,
        ringer_mode=RingerMode.vibrate,
    )
    session.add(normal)
    session.add(silent)
    session.commit()
    session.refresh(normal)
    session.refresh(silent)

    session.add(Area(id=DEFAULT_AREA_ID, name="Unknown", profile_id=normal.id, wifi_enabled=False))
    session.add(Area(name="Home", profile_id=normal.id, wifi_enabled=True))
    session.add(Area(name="Work", profile_id=silent.id, wifi_enabled=True))
    session.commit()
    logger.info("Seeded default profiles and areas")
    return True


def init_db(eng: Engine | None = None) -> None:
    """Create all tables, migrate older schemas and seed an empty database."""
    eng = eng or engine
    if eng.url.database and eng.url.database != ":memory:":
        Path(eng.url.database).parent.mkdir(parents=True, exist_ok=True)
    migrate_db(eng)
    SQLModel.metadata.create_all(eng)
    with Session(eng) as session:
        seed_db(session)


def get_session() -> Generator[Session, None, None]:
    """Yield a database session for FastAPI Depends()."""
    with Session(engine) as session:
        yield session
