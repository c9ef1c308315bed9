"""Cell and sighting log models."""

import enum
from datetime import UTC, datetime
from typing import NamedTuple

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class NetworkType(enum.StrEnum):
    gsm = "gsm"
    cdma = "cdma"


class CellKey(NamedTuple):
    """Identity of a radio cell, scoped by network family."""

    cell_id: int
    network_type: NetworkType


class Cell(SQLModel, table=True):
    """A radio cell mapped to an area."""

    __table_args__ = (UniqueConstraint("cell_id", "cell_type"),)

    id: int | None = Field(default=None, primary_key=True)
    area_id: int = Field(index=True, foreign_key="area.id")
    cell_id: int = Field(index=True)
    cell_type: NetworkType

    @property
    def key(self) -> CellKey:
        return CellKey(self.cell_id, self.cell_type)


class CellLog(SQLModel, table=True):
    """Append-only history of sightings, one row per processed sighting."""

    __tablename__ = "cell_log"

    id: int | None = Field(default=None, primary_key=True)
    # Row id of the cell (cell.id), not the radio cell id
    cell_id: int = Field(index=True, foreign_key="cell.id")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        index=True,
    )
