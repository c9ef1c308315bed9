"""Tests for schema migration and seed data."""

from sqlalchemy import inspect, text
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from cellzone.areas.models import DEFAULT_AREA_ID, Area, Profile
from cellzone.database import init_db, migrate_db, seed_db


def _memory_engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


def test_seed_contents(session: Session):
    profiles = session.exec(select(Profile).order_by(Profile.id)).all()
    assert [p.name for p in profiles] == ["Normal", "Silent"]

    areas = session.exec(select(Area).order_by(Area.id)).all()
    assert [(a.id, a.name) for a in areas] == [(DEFAULT_AREA_ID, "Unknown"), (2, "Home"), (3, "Work")]
    assert [a.wifi_enabled for a in areas] == [False, True, True]


def test_seed_is_idempotent(engine, session: Session):
    assert seed_db(session) is False
    init_db(engine)
    assert len(session.exec(select(Area)).all()) == 3
    assert len(session.exec(select(Profile)).all()) == 2


def test_seed_skipped_when_areas_exist():
    eng = _memory_engine()
    SQLModel.metadata.create_all(eng)
    with Session(eng) as s:
        s.add(Area(id=DEFAULT_AREA_ID, name="Anywhere"))
        s.commit()
        assert seed_db(s) is False
        assert s.exec(select(Profile)).first() is None


def test_migrate_fresh_database_is_noop():
    assert migrate_db(_memory_engine()) == []


def test_migrate_current_schema_is_noop(engine):
    assert migrate_db(engine) == []


def test_migrate_adds_area_columns():
    eng = _memory_engine()
    with eng.begin() as conn:
        conn.execute(
            text("CREATE TABLE area (id INTEGER PRIMARY KEY, name VARCHAR NOT NULL, profile_id INTEGER)")
        )
        conn.execute(text("INSERT INTO area (id, name, profile_id) VALUES (1, 'Unknown', NULL)"))
        conn.execute(text("INSERT INTO area (id, name, profile_id) VALUES (2, 'Home', NULL)"))

    added = migrate_db(eng)
    assert added == ["wifi_enabled", "bluetooth_enabled"]

    columns = {col["name"] for col in inspect(eng).get_columns("area")}
    assert {"wifi_enabled", "bluetooth_enabled"} <= columns

    init_db(eng)
    with Session(eng) as s:
        areas = s.exec(select(Area).order_by(Area.id)).all()
        # Existing rows are kept and backfilled, seed data is not added
        assert [a.name for a in areas] == ["Unknown", "Home"]
        assert all(a.wifi_enabled is True for a in areas)
        assert all(a.bluetooth_enabled is False for a in areas)


def test_migrate_only_missing_columns():
    eng = _memory_engine()
    with eng.begin() as conn:
        conn.execute(
            text(
                "CREATE TABLE area (id INTEGER PRIMARY KEY, name VARCHAR NOT NULL, "
                "profile_id INTEGER, wifi_enabled BOOLEAN)"
            )
        )
    assert migrate_db(eng) == ["bluetooth_enabled"]
