"""Mock observer for development and testing.

Walks through a small fake route of cells on a timer, with the
occasional loss of signal.
"""

import asyncio
import logging
import random
from collections.abc import Callable
from datetime import UTC, datetime

from cellzone.cells.models import NetworkType
from cellzone.cells.normalizer import CELL_NO_SIGNAL, CellSighting, RawCellLocation
from cellzone.observer.base import BaseObserver

logger = logging.getLogger(__name__)

# (cid / base station id, lac / network id) along a commute
_ROUTE = [
    (10231, 401),
    (10232, 401),
    (20877, 402),
    (20901, 402),
    (31544, 405),
]


class MockObserver(BaseObserver):
    """Generates fake cell changes for development."""

    def __init__(self, network_type: NetworkType = NetworkType.gsm, interval: int = 5) -> None:
        self.network_type = network_type
        self.interval = interval
        self._callbacks: list[Callable[[CellSighting], object]] = []
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._tick = 0

    async def start(self) -> None:
        logger.info("Starting mock observer (interval=%ds)", self.interval)
        self._running = True
        self._task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        logger.info("Stopping mock observer")
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    def on_event(self, callback: Callable[[CellSighting], object]) -> None:
        self._callbacks.append(callback)

    async def _poll_loop(self) -> None:
        while self._running:
            try:
                sighting = self._next_sighting(datetime.now(UTC))
                for cb in self._callbacks:
                    cb(sighting)
                self._tick += 1
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Mock observer error")

            await asyncio.sleep(self.interval)

    def _location(self, cell: int, area_code: int) -> RawCellLocation:
        if self.network_type == NetworkType.cdma:
            return RawCellLocation(base_station_id=cell, network_id=area_code)
        return RawCellLocation(cid=cell, lac=area_code)

    def _next_sighting(self, now: datetime) -> CellSighting:
        # Signal drops out roughly one tick in ten
        if random.random() < 0.1:
            location = self._location(CELL_NO_SIGNAL, CELL_NO_SIGNAL)
        else:
            cell, area_code = _ROUTE[self._tick % len(_ROUTE)]
            location = self._location(cell, area_code)
        return CellSighting(
            location=location,
            network_type=self.network_type,
            timestamp=now,
            source="mock",
        )
