"""Tests for sighting normalization."""

from cellzone.cells.models import CellKey, NetworkType
from cellzone.cells.normalizer import (
    CELL_NO_SIGNAL,
    CellSighting,
    RawCellLocation,
    normalize_sighting,
    sighting_key,
)


class TestNormalizeSighting:
    def test_gsm_uses_cid(self):
        loc = RawCellLocation(cid=4711, lac=12, base_station_id=99)
        assert normalize_sighting(loc, NetworkType.gsm) == 4711

    def test_cdma_uses_base_station_id(self):
        loc = RawCellLocation(cid=4711, base_station_id=99, network_id=3)
        assert normalize_sighting(loc, NetworkType.cdma) == 99

    def test_no_signal_sentinel(self):
        loc = RawCellLocation(cid=CELL_NO_SIGNAL, lac=CELL_NO_SIGNAL)
        assert normalize_sighting(loc, NetworkType.gsm) is None

    def test_missing_field_for_family(self):
        # A GSM-shaped reading on a CDMA listener carries no base station id
        loc = RawCellLocation(cid=4711)
        assert normalize_sighting(loc, NetworkType.cdma) is None

    def test_missing_location(self):
        assert normalize_sighting(None, NetworkType.gsm) is None


class TestSightingKey:
    def test_key_carries_registered_network_type(self):
        sighting = CellSighting(
            location=RawCellLocation(base_station_id=7), network_type=NetworkType.cdma
        )
        assert sighting_key(sighting) == CellKey(7, NetworkType.cdma)

    def test_lost_signal_is_none(self):
        sighting = CellSighting(
            location=RawCellLocation(cid=CELL_NO_SIGNAL), network_type=NetworkType.gsm
        )
        assert sighting_key(sighting) is None
