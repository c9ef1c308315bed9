"""Resolve a cell to its area name and bound profile."""

from dataclasses import dataclass

from sqlmodel import Session

from cellzone.areas.models import Area, Profile
from cellzone.cells.models import Cell


@dataclass(frozen=True)
class ResolvedProfile:
    area_name: str
    profile: Profile | None
    profile_name: str


def resolve_profile(
    session: Session,
    cell_row_id: int,
    no_profile_label: str,
    unknown_area_label: str,
) -> ResolvedProfile:
    """Join a cell's area with the area's profile.

    Missing pieces are expected and fall back to the given labels:
    an unbound (or dangling) profile yields ``no_profile_label``, an
    unknown cell or area yields ``unknown_area_label``.
    """
    cell = session.get(Cell, cell_row_id)
    area = session.get(Area, cell.area_id) if cell is not None else None
    if area is None:
        return ResolvedProfile(unknown_area_label, None, no_profile_label)

    profile = session.get(Profile, area.profile_id) if area.profile_id is not None else None
    if profile is None:
        return ResolvedProfile(area.name, None, no_profile_label)
    return ResolvedProfile(area.name, profile, profile.name)
