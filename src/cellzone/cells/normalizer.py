"""Turn raw radio readings into normalized cell ids."""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from cellzone.cells.models import CellKey, NetworkType

logger = logging.getLogger(__name__)

# Value reported by the radio stack when no cell is visible.
CELL_NO_SIGNAL = -1


@dataclass
class RawCellLocation:
    """A cell location as reported by the radio stack.

    GSM/UMTS/LTE readings carry ``cid`` (plus ``lac``); CDMA readings
    carry ``base_station_id`` (plus ``network_id``/``system_id``).
    Fields that do not apply to the reading's family stay None.
    """

    cid: int | None = None
    lac: int | None = None
    base_station_id: int | None = None
    network_id: int | None = None
    system_id: int | None = None


@dataclass
class CellSighting:
    """A single observed cell-change event."""

    location: RawCellLocation | None
    network_type: NetworkType  # fixed when the observer was registered
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    source: str = "unknown"


def normalize_sighting(
    location: RawCellLocation | None, network_type: NetworkType
) -> int | None:
    """Return the cell id for a reading, or None when there is no signal."""
    if location is None:
        return None
    if network_type == NetworkType.cdma:
        cell = location.base_station_id
    else:
        cell = location.cid
    if cell is None or cell == CELL_NO_SIGNAL:
        return None
    return int(cell)


def sighting_key(sighting: CellSighting) -> CellKey | None:
    """Normalize a sighting to its CellKey, or None on signal loss."""
    cell = normalize_sighting(sighting.location, sighting.network_type)
    if cell is None:
        logger.info("Lost signal (%s), ignoring", sighting.source)
        return None
    return CellKey(cell, sighting.network_type)
