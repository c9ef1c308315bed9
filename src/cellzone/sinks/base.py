"""Interfaces for the device configuration sink and the status indicator."""

import logging
import threading
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from cellzone.areas.models import RingerMode, VolumeChannel

logger = logging.getLogger(__name__)


class ConfigurationSink(Protocol):
    """Receives device settings. Writes are fire-and-forget."""

    def set_volume(self, channel: VolumeChannel, level: int) -> None: ...

    def set_wifi_enabled(self, enabled: bool) -> None: ...

    def set_ringer_mode(self, mode: RingerMode) -> None: ...


class StatusIndicator(Protocol):
    """Displays a (title, subtitle) pair until replaced."""

    def show(self, title: str, subtitle: str) -> None: ...


class LoggingConfigurationSink:
    """Sink that only logs what would be written."""

    def set_volume(self, channel: VolumeChannel, level: int) -> None:
        logger.info("Set %s volume to %d", channel, level)

    def set_wifi_enabled(self, enabled: bool) -> None:
        logger.info("Set wifi %s", "on" if enabled else "off")

    def set_ringer_mode(self, mode: RingerMode) -> None:
        logger.info("Set ringer mode to %s", mode.name)


@dataclass(frozen=True)
class StatusLine:
    title: str
    subtitle: str
    shown_at: datetime


class StatusBoard:
    """In-memory status indicator holding the latest line."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: StatusLine | None = None

    def show(self, title: str, subtitle: str) -> None:
        with self._lock:
            self._current = StatusLine(title, subtitle, datetime.now(UTC))
        logger.info("Status: %s / %s", title, subtitle)

    @property
    def current(self) -> StatusLine | None:
        with self._lock:
            return self._current


class CompositeStatusIndicator:
    """Fans a status update out to several indicators."""

    def __init__(self, *indicators: StatusIndicator) -> None:
        self.indicators = list(indicators)

    def show(self, title: str, subtitle: str) -> None:
        for indicator in self.indicators:
            indicator.show(title, subtitle)
