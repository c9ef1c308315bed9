"""Area and profile management: CRUD, profile binding, cascading deletes."""

import logging
from typing import Any

from sqlalchemy import update
from sqlmodel import Session, select

from cellzone.areas.models import (
    DEFAULT_AREA_ID,
    Applied,
    Area,
    Profile,
    RingerMode,
    VolumeChannel,
    VolumeSetting,
    WifiMode,
)
from cellzone.cells.models import Cell

logger = logging.getLogger(__name__)


# --- Areas ---


def create_area(
    session: Session,
    name: str,
    profile_id: int | None = None,
    wifi_enabled: bool = False,
    bluetooth_enabled: bool = False,
) -> Area:
    """Create a new area.

    Raises:
        ValueError: If profile_id is given but the profile doesn't exist.
    """
    if profile_id is not None and session.get(Profile, profile_id) is None:
        raise ValueError(f"Profile {profile_id} does not exist")
    area = Area(
        name=name,
        profile_id=profile_id,
        wifi_enabled=wifi_enabled,
        bluetooth_enabled=bluetooth_enabled,
    )
    session.add(area)
    session.commit()
    session.refresh(area)
    logger.info("Created area: %s (id=%s)", name, area.id)
    return area


def get_area(session: Session, area_id: int) -> Area | None:
    """Get an area by ID."""
    return session.get(Area, area_id)


def list_areas(session: Session) -> list[Area]:
    """List all areas, default area first."""
    stmt = select(Area).order_by(Area.id)  # type: ignore[arg-type]
    return list(session.exec(stmt).all())


def list_area_summaries(session: Session, no_profile_label: str) -> list[dict[str, Any]]:
    """Return each area with the name of its bound profile.

    Areas without a profile (or bound to a deleted one) get
    ``no_profile_label`` instead.
    """
    stmt = (
        select(Area, Profile)
        .join(Profile, Area.profile_id == Profile.id, isouter=True)  # type: ignore[arg-type]
        .order_by(Area.id)  # type: ignore[arg-type]
    )
    result = []
    for area, profile in session.exec(stmt).all():
        result.append(
            {
                "area": area,
                "profile_name": profile.name if profile is not None else no_profile_label,
                "is_default": area.id == DEFAULT_AREA_ID,
            }
        )
    return result


def rename_area(session: Session, area_id: int, name: str) -> Area | None:
    """Rename an area. Return None if not found.

    Raises:
        ValueError: If area_id is the default area.
    """
    if area_id == DEFAULT_AREA_ID:
        raise ValueError("The default area cannot be renamed")
    area = session.get(Area, area_id)
    if area is None:
        return None
    area.name = name
    session.add(area)
    session.commit()
    session.refresh(area)
    logger.info("Renamed area %s to %s", area_id, name)
    return area


def update_area(session: Session, area_id: int, **kwargs: object) -> Area | None:
    """Update area settings. Return None if not found.

    ``name`` goes through rename_area(); a ``profile_id`` must refer to
    an existing profile (None unbinds).

    Raises:
        ValueError: On an unknown profile, or a rename of the default area.
    """
    area = session.get(Area, area_id)
    if area is None:
        return None

    if "name" in kwargs:
        if area_id == DEFAULT_AREA_ID:
            raise ValueError("The default area cannot be renamed")

    profile_id = kwargs.get("profile_id")
    if profile_id is not None and session.get(Profile, profile_id) is None:
        raise ValueError(f"Profile {profile_id} does not exist")

    for key in ("name", "profile_id", "wifi_enabled", "bluetooth_enabled"):
        if key in kwargs:
            setattr(area, key, kwargs[key])

    session.add(area)
    session.commit()
    session.refresh(area)
    return area


def set_area_profile(session: Session, area_id: int, profile_id: int | None) -> Area | None:
    """Bind a profile to an area (None unbinds)."""
    return update_area(session, area_id, profile_id=profile_id)


def delete_area(session: Session, area_id: int) -> bool:
    """Delete an area, moving its cells back to the default area.

    Returns True if the area was deleted, False if not found. Deleting
    the default area is a no-op and also returns False.
    """
    if area_id == DEFAULT_AREA_ID:
        logger.info("Ignoring delete of the default area")
        return False
    area = session.get(Area, area_id)
    if area is None:
        return False

    # Reset cells first so no cell ever points at a missing area
    result = session.connection().execute(
        update(Cell).where(Cell.area_id == area_id).values(area_id=DEFAULT_AREA_ID)  # type: ignore[arg-type]
    )
    session.delete(area)
    session.commit()
    logger.info(
        "Deleted area: %s (id=%s), %d cell(s) reset to default", area.name, area_id, result.rowcount
    )
    return True


# --- Profiles ---


def create_profile(
    session: Session,
    name: str,
    volumes: dict[VolumeChannel, VolumeSetting] | None = None,
    wifi: WifiMode = WifiMode.on,
    ringer_mode: RingerMode = RingerMode.normal,
) -> Profile:
    """Create a new profile. Unspecified volumes default to Applied(5)."""
    profile = Profile(name=name, wifi_enabled=int(wifi), ringer_mode=int(ringer_mode))
    for channel in VolumeChannel:
        profile.set_volume(channel, (volumes or {}).get(channel, Applied(5)))
    session.add(profile)
    session.commit()
    session.refresh(profile)
    logger.info("Created profile: %s (id=%s)", name, profile.id)
    return profile


def get_profile(session: Session, profile_id: int) -> Profile | None:
    """Get a profile by ID."""
    return session.get(Profile, profile_id)


def list_profiles(session: Session) -> list[Profile]:
    """List all profiles."""
    stmt = select(Profile).order_by(Profile.id)  # type: ignore[arg-type]
    return list(session.exec(stmt).all())


def update_profile(
    session: Session,
    profile_id: int,
    name: str | None = None,
    volumes: dict[VolumeChannel, VolumeSetting] | None = None,
    wifi: WifiMode | None = None,
    ringer_mode: RingerMode | None = None,
) -> Profile | None:
    """Update a profile. Return None if not found."""
    profile = session.get(Profile, profile_id)
    if profile is None:
        return None

    if name is not None:
        profile.name = name
    for channel, setting in (volumes or {}).items():
        profile.set_volume(VolumeChannel(channel), setting)
    if wifi is not None:
        profile.wifi_enabled = int(WifiMode(wifi))
    if ringer_mode is not None:
        profile.ringer_mode = int(RingerMode(ringer_mode))

    session.add(profile)
    session.commit()
    session.refresh(profile)
    return profile


def rename_profile(session: Session, profile_id: int, name: str) -> Profile | None:
    return update_profile(session, profile_id, name=name)


def delete_profile(session: Session, profile_id: int) -> bool:
    """Delete a profile and unbind it from every area.

    Returns True if the profile was deleted, False if not found.
    """
    profile = session.get(Profile, profile_id)
    if profile is None:
        return False

    areas = session.exec(select(Area).where(Area.profile_id == profile_id)).all()
    for area in areas:
        area.profile_id = None
        session.add(area)

    session.delete(profile)
    session.commit()
    logger.info("Deleted profile: %s (id=%s)", profile.name, profile_id)
    return True
