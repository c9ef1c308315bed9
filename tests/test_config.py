"""Tests for configuration parsing."""

import pytest
from pydantic import ValidationError

import cellzone.config as config_module
from cellzone.config import Settings, load_config


class TestObserverModesParsing:
    def test_comma_separated_string(self):
        s = Settings(observer_modes="modem,mock")
        assert s.observer_modes == ["modem", "mock"]

    def test_comma_separated_with_spaces(self):
        s = Settings(observer_modes=" modem , mock ")
        assert s.observer_modes == ["modem", "mock"]

    def test_single_value_string(self):
        s = Settings(observer_modes="mock")
        assert s.observer_modes == ["mock"]

    def test_empty_string(self):
        s = Settings(observer_modes="")
        assert s.observer_modes == []

    def test_list_input(self):
        s = Settings(observer_modes=["modem", "mock"])
        assert s.observer_modes == ["modem", "mock"]

    def test_list_filters_empty_strings(self):
        s = Settings(observer_modes=["modem", "", "mock"])
        assert s.observer_modes == ["modem", "mock"]


class TestNetworkType:
    def test_default_is_gsm(self):
        assert Settings().network_type == "gsm"

    def test_normalized(self):
        assert Settings(network_type=" CDMA ").network_type == "cdma"

    def test_unknown_rejected(self):
        with pytest.raises(ValidationError):
            Settings(network_type="lte")


class TestWorkerThreads:
    def test_default(self):
        assert Settings().worker_threads == 4

    def test_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(worker_threads=0)


class TestLoadConfig:
    def test_reads_env_file(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "CELLZONE_NETWORK_TYPE=cdma\n"
            "CELLZONE_NO_PROFILE_LABEL=\"Nothing bound\"\n"
            "CELLZONE_POLL_INTERVAL=30\n"
        )
        monkeypatch.setattr(config_module, "_ENV_FILE", env_file)
        cfg = load_config()
        assert cfg.network_type == "cdma"
        assert cfg.no_profile_label == "Nothing bound"
        assert cfg.poll_interval == 30

    def test_env_overrides_env_file(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("CELLZONE_MOCK_INTERVAL=9\n")
        monkeypatch.setattr(config_module, "_ENV_FILE", env_file)
        monkeypatch.setenv("CELLZONE_MOCK_INTERVAL", "2")
        assert load_config().mock_interval == 2

    def test_missing_env_file(self, tmp_path, monkeypatch):
        monkeypatch.setattr(config_module, "_ENV_FILE", tmp_path / "missing.env")
        cfg = load_config()
        assert cfg.unknown_area_label == "Unknown area"
        assert cfg.sink_webhook_url is None


def test_observer_modes_from_environment(tmp_path, monkeypatch):
    monkeypatch.setattr(config_module, "_ENV_FILE", tmp_path / "missing.env")
    monkeypatch.setenv("CELLZONE_OBSERVER_MODES", "modem,mock")
    assert load_config().observer_modes == ["modem", "mock"]
