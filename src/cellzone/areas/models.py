"""Area and profile models, plus the stored volume encoding."""

import enum
from dataclasses import dataclass

from sqlmodel import Field, SQLModel

# Well-known id of the fallback area every unlearned cell belongs to.
DEFAULT_AREA_ID = 1

# Subtracted from a stored volume that should be kept but not applied.
VOLUME_APPLY_FALSE = 100


class RingerMode(enum.IntEnum):
    keep = -1  # leave the device ringer mode alone
    silent = 0
    vibrate = 1
    normal = 2


class WifiMode(enum.IntEnum):
    keep = -1
    off = 0
    on = 1


class VolumeChannel(enum.StrEnum):
    ring = "ring"
    notification = "notification"
    media = "media"
    alarm = "alarm"


@dataclass(frozen=True)
class Applied:
    """A volume level that is written to the device."""

    level: int


@dataclass(frozen=True)
class Suppressed:
    """A volume level that is remembered but leaves the device volume untouched."""

    level: int


VolumeSetting = Applied | Suppressed


def encode_volume(setting: VolumeSetting) -> int:
    """Convert a tagged volume to its persisted integer."""
    if setting.level < 0:
        raise ValueError(f"Volume level must be >= 0, got {setting.level}")
    if isinstance(setting, Suppressed):
        return setting.level - VOLUME_APPLY_FALSE
    return setting.level


def decode_volume(stored: int) -> VolumeSetting:
    """Convert a persisted integer back to a tagged volume."""
    if stored >= 0:
        return Applied(stored)
    return Suppressed(stored + VOLUME_APPLY_FALSE)


class Profile(SQLModel, table=True):
    """A named bundle of volume, ringer and wifi settings."""

    id: int | None = Field(default=None, primary_key=True)
    name: str
    # Volumes are stored shifted; see encode_volume()/decode_volume()
    ringtone_volume: int = 5
    notification_volume: int = 5
    media_volume: int = 5
    alarm_volume: int = 5
    wifi_enabled: int = WifiMode.on
    ringer_mode: int = RingerMode.normal

    def volume(self, channel: VolumeChannel) -> VolumeSetting:
        return decode_volume(getattr(self, VOLUME_COLUMNS[channel]))

    def volumes(self) -> dict[VolumeChannel, VolumeSetting]:
        return {channel: self.volume(channel) for channel in VolumeChannel}

    def set_volume(self, channel: VolumeChannel, setting: VolumeSetting) -> None:
        setattr(self, VOLUME_COLUMNS[channel], encode_volume(setting))


VOLUME_COLUMNS: dict[VolumeChannel, str] = {
    VolumeChannel.ring: "ringtone_volume",
    VolumeChannel.notification: "notification_volume",
    VolumeChannel.media: "media_volume",
    VolumeChannel.alarm: "alarm_volume",
}


class Area(SQLModel, table=True):
    """A named place that a profile is bound to."""

    id: int | None = Field(default=None, primary_key=True)
    name: str
    profile_id: int | None = Field(default=None, foreign_key="profile.id")
    wifi_enabled: bool = False
    bluetooth_enabled: bool = False  # stored only, not used for resolution
