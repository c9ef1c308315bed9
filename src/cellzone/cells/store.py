"""Cell CRUD, create-on-miss resolution, sighting log and retroactive reassignment."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import or_, update
from sqlmodel import Session, select

from cellzone.areas.models import DEFAULT_AREA_ID, Area
from cellzone.cells.models import Cell, CellLog, NetworkType
from cellzone.engine.state import ResolutionState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CellResolution:
    cell_row_id: int
    area_id: int
    created: bool


def _as_utc(ts: datetime) -> datetime:
    """Timestamps are stored timezone-aware in UTC; naive values are taken as UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC)


def find_cell(session: Session, cell_id: int, network_type: NetworkType) -> Cell | None:
    """Look up a cell by its radio identity."""
    stmt = select(Cell).where(Cell.cell_id == cell_id, Cell.cell_type == network_type)
    return session.exec(stmt).first()


def get_cell(session: Session, cell_row_id: int) -> Cell | None:
    """Get a cell by row id."""
    return session.get(Cell, cell_row_id)


def list_cells(session: Session, area_id: int | None = None) -> list[Cell]:
    """List cells, optionally only those assigned to one area."""
    stmt = select(Cell)
    if area_id is not None:
        stmt = stmt.where(Cell.area_id == area_id)
    stmt = stmt.order_by(Cell.id)  # type: ignore[arg-type]
    return list(session.exec(stmt).all())


def resolve_or_create(
    session: Session,
    cell_id: int,
    network_type: NetworkType,
    state: ResolutionState,
    now: float | None = None,
) -> CellResolution:
    """Resolve a cell to its area, creating the cell on first sighting.

    While a learning session is active the stored area is overwritten
    with the learning target, even when it already matches. New cells
    go to the learning target, or to the default area otherwise. A
    target that no longer exists is ignored.

    Changes are flushed, not committed: the caller commits them together
    with the sighting log entry. Callers must serialize calls for the
    same (cell_id, network_type).
    """
    learn_target = state.learning_target(now)
    if learn_target is not None and session.get(Area, learn_target) is None:
        logger.warning("Learning target area %s no longer exists, ignoring", learn_target)
        learn_target = None
    cell = find_cell(session, cell_id, network_type)

    if cell is not None:
        if learn_target is not None:
            cell.area_id = learn_target
            session.add(cell)
            session.flush()
            logger.debug("Cell %s/%s learned into area %s", cell_id, network_type, learn_target)
        return CellResolution(cell_row_id=cell.id, area_id=cell.area_id, created=False)  # type: ignore[arg-type]

    area_id = learn_target if learn_target is not None else DEFAULT_AREA_ID
    cell = Cell(cell_id=cell_id, cell_type=network_type, area_id=area_id)
    session.add(cell)
    session.flush()
    logger.info("New cell %s/%s in area %s", cell_id, network_type, area_id)
    return CellResolution(cell_row_id=cell.id, area_id=area_id, created=True)  # type: ignore[arg-type]


def assign_cell(session: Session, cell_row_id: int, area_id: int) -> Cell | None:
    """Move a single cell to another area. Return None if the cell doesn't exist.

    Raises:
        ValueError: If the area doesn't exist.
    """
    cell = session.get(Cell, cell_row_id)
    if cell is None:
        return None
    if session.get(Area, area_id) is None:
        raise ValueError(f"Area {area_id} does not exist")
    cell.area_id = area_id
    session.add(cell)
    session.commit()
    session.refresh(cell)
    logger.info("Assigned cell %s to area %s", cell_row_id, area_id)
    return cell


def append_sighting(
    session: Session, cell_row_id: int, timestamp: datetime | None = None
) -> CellLog:
    """Record one processed sighting of a cell.

    Commits the session, including any changes flushed by resolve_or_create().
    """
    entry = CellLog(cell_id=cell_row_id)
    if timestamp is not None:
        entry.timestamp = _as_utc(timestamp)
    session.add(entry)
    session.commit()
    session.refresh(entry)
    return entry


def get_sighting_history(
    session: Session,
    cell_row_id: int | None = None,
    limit: int = 100,
) -> list[CellLog]:
    """Get sightings, newest first, optionally for a single cell."""
    stmt = select(CellLog)
    if cell_row_id is not None:
        stmt = stmt.where(CellLog.cell_id == cell_row_id)
    stmt = stmt.order_by(
        CellLog.timestamp.desc(),  # type: ignore[attr-defined]
        CellLog.id.desc(),  # type: ignore[union-attr]
    ).limit(limit)
    return list(session.exec(stmt).all())


def reassign_since(session: Session, target_area_id: int, since: datetime) -> int:
    """Move every cell sighted after ``since`` to ``target_area_id``.

    The cell of the most recent sighting is always included, so a
    zero-width window still moves the current cell. Runs as a single
    UPDATE. Returns the number of cells updated.

    Raises:
        ValueError: If the target area doesn't exist.
    """
    if session.get(Area, target_area_id) is None:
        raise ValueError(f"Area {target_area_id} does not exist")

    latest = (
        select(CellLog.cell_id)
        .order_by(CellLog.timestamp.desc(), CellLog.id.desc())  # type: ignore[attr-defined,union-attr]
        .limit(1)
        .scalar_subquery()
    )
    recent = select(CellLog.cell_id).where(CellLog.timestamp > _as_utc(since))  # type: ignore[arg-type]
    stmt = (
        update(Cell)
        .where(or_(Cell.id == latest, Cell.id.in_(recent)))  # type: ignore[union-attr]
        .values(area_id=target_area_id)
    )
    result = session.connection().execute(stmt)
    session.commit()
    count = result.rowcount
    logger.info("Reassigned %d cell(s) seen since %s to area %s", count, since, target_area_id)
    return count
