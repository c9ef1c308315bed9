"""Tests for the modem status observer."""

import asyncio
from datetime import UTC, datetime
from unittest.mock import patch

import httpx
import pytest

from cellzone.cells.models import NetworkType
from cellzone.cells.normalizer import CellSighting, RawCellLocation
from cellzone.observer.modem import ModemObserver, parse_status


class TestParseStatus:
    def test_flat_gsm(self):
        loc = parse_status({"cid": 4711, "lac": 12})
        assert loc == RawCellLocation(cid=4711, lac=12)

    def test_nested_serving_cell(self):
        loc = parse_status({"modem": "up", "serving_cell": {"cell_id": "0x1A2B", "tac": "300"}})
        assert loc.cid == 0x1A2B
        assert loc.lac == 300

    def test_cdma_fields(self):
        loc = parse_status({"cell": {"bid": 77, "nid": 3, "sid": 4100}})
        assert loc == RawCellLocation(base_station_id=77, network_id=3, system_id=4100)

    def test_no_cell_fields(self):
        assert parse_status({"signal": -90}) is None

    def test_not_a_dict(self):
        assert parse_status(["cid", 1]) is None

    def test_unparseable_values_skipped(self):
        loc = parse_status({"cid": "n/a", "ci": 55, "lac": True})
        assert loc.cid == 55
        assert loc.lac is None


class TestChangeDetection:
    def _observer(self):
        observer = ModemObserver("http://modem.local/status")
        received: list[CellSighting] = []
        observer.on_event(received.append)
        return observer, received

    def test_first_poll_always_emits(self):
        observer, received = self._observer()
        assert observer._handle_status({"cid": 1}, datetime.now(UTC)) is not None
        assert len(received) == 1
        assert received[0].source == "modem"

    def test_unchanged_cell_is_not_repeated(self):
        observer, received = self._observer()
        now = datetime.now(UTC)
        observer._handle_status({"cid": 1}, now)
        assert observer._handle_status({"cid": 1, "lac": 9}, now) is None
        observer._handle_status({"cid": 2}, now)
        assert [s.location.cid for s in received] == [1, 2]

    def test_signal_loss_is_reported_once(self):
        observer, received = self._observer()
        now = datetime.now(UTC)
        observer._handle_status({"cid": 1}, now)
        observer._handle_status({"cid": -1}, now)
        observer._handle_status({}, now)
        observer._handle_status({"cid": 1}, now)
        assert len(received) == 3
        assert received[1].location.cid == -1

    def test_cdma_observer_tracks_base_station(self):
        observer = ModemObserver("http://modem.local/status", network_type=NetworkType.cdma)
        received: list[CellSighting] = []
        observer.on_event(received.append)
        now = datetime.now(UTC)
        observer._handle_status({"bid": 7, "cid": 1}, now)
        observer._handle_status({"bid": 7, "cid": 2}, now)
        assert len(received) == 1
        assert received[0].network_type == NetworkType.cdma


class TestPollLoop:
    @pytest.mark.asyncio
    async def test_start_stop_lifecycle(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"serving_cell": {"cid": 4711, "lac": 12}})

        transport = httpx.MockTransport(handler)
        real_client = httpx.AsyncClient

        def _client(**kwargs):
            return real_client(transport=transport, **kwargs)

        observer = ModemObserver(
            "http://modem.local/status", username="admin", password="pw", poll_interval=1
        )
        received: list[CellSighting] = []
        observer.on_event(received.append)

        with patch("cellzone.observer.modem.httpx.AsyncClient", side_effect=_client):
            await observer.start()
            await asyncio.sleep(0.2)
            await observer.stop()

        assert observer._running is False
        assert len(requests) >= 1
        assert requests[0].headers["Authorization"].startswith("Basic ")
        assert [s.location.cid for s in received] == [4711]

    @pytest.mark.asyncio
    async def test_http_error_is_logged_not_raised(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(503))
        real_client = httpx.AsyncClient

        observer = ModemObserver("http://modem.local/status", poll_interval=1)
        received: list[CellSighting] = []
        observer.on_event(received.append)

        with patch(
            "cellzone.observer.modem.httpx.AsyncClient",
            side_effect=lambda **kw: real_client(transport=transport, **kw),
        ):
            await observer.start()
            await asyncio.sleep(0.2)
            assert observer._task is not None
            assert not observer._task.done()
            await observer.stop()

        assert received == []
