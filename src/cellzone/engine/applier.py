"""Apply a resolved profile to the device and update the status indicator."""

import logging
import threading

from cellzone.areas.models import Applied, Profile, RingerMode, WifiMode
from cellzone.engine.resolver import ResolvedProfile
from cellzone.sinks.base import ConfigurationSink, StatusIndicator

logger = logging.getLogger(__name__)


class ProfileApplier:
    """Writes profile settings to a ConfigurationSink.

    Each application carries the sequence number of the resolution that
    produced it. Applications are serialized and one older than the last
    applied is dropped, so a slow earlier resolution can never overwrite
    the status of a later one.
    """

    def __init__(self, sink: ConfigurationSink, indicator: StatusIndicator) -> None:
        self.sink = sink
        self.indicator = indicator
        self._lock = threading.Lock()
        self._last_sequence = 0

    def apply(self, resolved: ResolvedProfile, sequence: int) -> bool:
        """Apply ``resolved``. Returns False if it was stale and dropped."""
        with self._lock:
            if sequence <= self._last_sequence:
                logger.debug(
                    "Dropping stale profile application #%d (last #%d)",
                    sequence,
                    self._last_sequence,
                )
                return False
            self._last_sequence = sequence

            if resolved.profile is not None:
                self._write_settings(resolved.profile)

            logger.info(
                "Apply profile %s (in area %s)", resolved.profile_name, resolved.area_name
            )
            self.indicator.show(resolved.area_name, resolved.profile_name)
            return True

    def _write_settings(self, profile: Profile) -> None:
        for channel, setting in profile.volumes().items():
            if isinstance(setting, Applied):
                self.sink.set_volume(channel, setting.level)

        ringer_mode = RingerMode(profile.ringer_mode)
        if ringer_mode != RingerMode.keep:
            self.sink.set_ringer_mode(ringer_mode)

        wifi = WifiMode(profile.wifi_enabled)
        if wifi != WifiMode.keep:
            self.sink.set_wifi_enabled(wifi == WifiMode.on)
