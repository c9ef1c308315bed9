"""Modem / router cell observer via a JSON status endpoint.

Polls an HTTP endpoint that reports the serving cell (as exposed by
OpenWrt/ModemManager bridges and most LTE router status pages) and
emits a sighting whenever the serving cell changes.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import httpx

from cellzone.cells.models import NetworkType
from cellzone.cells.normalizer import CellSighting, RawCellLocation, normalize_sighting
from cellzone.observer.base import BaseObserver

logger = logging.getLogger(__name__)

_CID_KEYS = ("cid", "cell_id", "cellid", "ci")
_LAC_KEYS = ("lac", "tac")
_BID_KEYS = ("base_station_id", "bid", "bsid")
_NID_KEYS = ("network_id", "nid")
_SID_KEYS = ("system_id", "sid")


def _parse_int(value: object) -> int | None:
    """Parse decimal ints and 0x-prefixed hex strings; anything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        value = value.strip()
        try:
            return int(value, 0)
        except ValueError:
            return None
    return None


def _first_int(data: dict[str, Any], keys: tuple[str, ...]) -> int | None:
    for key in keys:
        if key in data:
            parsed = _parse_int(data[key])
            if parsed is not None:
                return parsed
    return None


def parse_status(data: object) -> RawCellLocation | None:
    """Extract the serving cell from a status payload.

    Accepts the cell fields at the top level or nested under ``cell``
    or ``serving_cell``. Returns None when no cell fields are present.
    """
    if not isinstance(data, dict):
        return None
    for nested in ("serving_cell", "cell"):
        if isinstance(data.get(nested), dict):
            data = data[nested]
            break

    location = RawCellLocation(
        cid=_first_int(data, _CID_KEYS),
        lac=_first_int(data, _LAC_KEYS),
        base_station_id=_first_int(data, _BID_KEYS),
        network_id=_first_int(data, _NID_KEYS),
        system_id=_first_int(data, _SID_KEYS),
    )
    if location.cid is None and location.base_station_id is None:
        return None
    return location


class ModemObserver(BaseObserver):
    """Polls a modem status endpoint and reports cell changes."""

    def __init__(
        self,
        url: str,
        network_type: NetworkType = NetworkType.gsm,
        username: str | None = None,
        password: str | None = None,
        poll_interval: int = 15,
    ) -> None:
        self.url = url
        self.network_type = network_type
        self.username = username
        self.password = password
        self.poll_interval = poll_interval
        self._callbacks: list[Callable[[CellSighting], object]] = []
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._last_cell: int | None = None
        self._seen_any = False

    async def start(self) -> None:
        logger.info("Starting modem observer polling %s", self.url)
        self._running = True
        self._task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        logger.info("Stopping modem observer")
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    def on_event(self, callback: Callable[[CellSighting], object]) -> None:
        self._callbacks.append(callback)

    def _handle_status(self, data: object, now: datetime) -> CellSighting | None:
        """Turn one status payload into a sighting, if the cell changed."""
        location = parse_status(data)
        cell = normalize_sighting(location, self.network_type)
        if self._seen_any and cell == self._last_cell:
            return None
        self._seen_any = True
        self._last_cell = cell

        sighting = CellSighting(
            location=location,
            network_type=self.network_type,
            timestamp=now,
            source="modem",
        )
        for cb in self._callbacks:
            cb(sighting)
        return sighting

    async def _poll_loop(self) -> None:
        auth = httpx.BasicAuth(self.username, self.password or "") if self.username else None

        async with httpx.AsyncClient(auth=auth, timeout=15.0) as client:
            while self._running:
                try:
                    resp = await client.get(self.url)
                    resp.raise_for_status()
                    self._handle_status(resp.json(), datetime.now(UTC))
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception("Modem poll error")

                await asyncio.sleep(self.poll_interval)
