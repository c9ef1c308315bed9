"""REST API endpoints."""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from sqlmodel import Session

from cellzone.areas.manager import (
    create_area,
    create_profile,
    delete_area,
    delete_profile,
    get_area,
    get_profile,
    list_area_summaries,
    list_profiles,
    update_area,
    update_profile,
)
from cellzone.areas.models import (
    DEFAULT_AREA_ID,
    Applied,
    Area,
    Profile,
    RingerMode,
    Suppressed,
    VolumeChannel,
    VolumeSetting,
    WifiMode,
)
from cellzone.cells.models import Cell, CellLog, NetworkType
from cellzone.cells.normalizer import CellSighting, RawCellLocation
from cellzone.cells.store import assign_cell, get_sighting_history, list_cells
from cellzone.config import settings
from cellzone.database import get_session
from cellzone.engine.core import CellEngine, InvalidCommandError, LearnArea

router = APIRouter(prefix="/api")


def get_engine(request: Request) -> CellEngine:
    """The engine built by the application lifespan."""
    return request.app.state.cell_engine


# Request models
class VolumeIn(BaseModel):
    level: int = Field(ge=0)
    apply: bool = True

    def to_setting(self) -> VolumeSetting:
        return Applied(self.level) if self.apply else Suppressed(self.level)


class CreateAreaRequest(BaseModel):
    name: str
    profile_id: int | None = None
    wifi_enabled: bool = False
    bluetooth_enabled: bool = False


class UpdateAreaRequest(BaseModel):
    name: str | None = None
    profile_id: int | None = None
    wifi_enabled: bool | None = None
    bluetooth_enabled: bool | None = None


class ProfileRequest(BaseModel):
    name: str | None = None
    volumes: dict[VolumeChannel, VolumeIn] = {}
    wifi: WifiMode | None = None
    ringer_mode: RingerMode | None = None


class AssignCellRequest(BaseModel):
    area_id: int


class LearnRequest(BaseModel):
    area_id: int
    seconds: int


class SightingRequest(BaseModel):
    network_type: NetworkType = NetworkType.gsm
    cid: int | None = None
    lac: int | None = None
    base_station_id: int | None = None
    network_id: int | None = None
    system_id: int | None = None


def _profile_out(profile: Profile) -> dict[str, Any]:
    volumes = {}
    for channel, setting in profile.volumes().items():
        volumes[str(channel)] = {"level": setting.level, "apply": isinstance(setting, Applied)}
    return {
        "id": profile.id,
        "name": profile.name,
        "volumes": volumes,
        "wifi": WifiMode(profile.wifi_enabled).name,
        "ringer_mode": RingerMode(profile.ringer_mode).name,
    }


# --- Engine status and commands ---


@router.get("/status")
def status(request: Request, engine: CellEngine = Depends(get_engine)) -> dict[str, Any]:
    snapshot = engine.state.snapshot()
    board = getattr(request.app.state, "status_board", None)
    line = board.current if board is not None else None
    cell = snapshot.current_cell
    return {
        "current_area": snapshot.current_area,
        "current_cell": (
            {"cell_id": cell.cell_id, "network_type": cell.network_type} if cell else None
        ),
        "learning": {
            "area_id": engine.state.learning_target(),
            "seconds_left": round(engine.state.learning_remaining(), 1),
        },
        "status": (
            {"title": line.title, "subtitle": line.subtitle, "shown_at": line.shown_at}
            if line
            else None
        ),
    }


@router.post("/sightings")
def post_sighting(
    request: SightingRequest,
    engine: CellEngine = Depends(get_engine),
) -> dict[str, Any]:
    location = RawCellLocation(
        cid=request.cid,
        lac=request.lac,
        base_station_id=request.base_station_id,
        network_id=request.network_id,
        system_id=request.system_id,
    )
    sighting = CellSighting(
        location=location,
        network_type=request.network_type,
        timestamp=datetime.now(UTC),
        source="api",
    )
    outcome = engine.process_sighting(sighting)
    if outcome is None:
        return {"status": "no_signal"}
    return {
        "status": "resolved",
        "cell_row_id": outcome.cell_row_id,
        "area_id": outcome.area_id,
        "created": outcome.created,
        "area_changed": outcome.area_changed,
        "applied": outcome.applied,
    }


@router.get("/sightings/history")
def sighting_history(
    cell_id: int | None = None,
    limit: int = 100,
    session: Session = Depends(get_session),
) -> list[CellLog]:
    return get_sighting_history(session, cell_row_id=cell_id, limit=limit)


@router.post("/learn")
def learn(
    request: LearnRequest,
    engine: CellEngine = Depends(get_engine),
) -> dict[str, Any]:
    try:
        command = LearnArea(request.area_id, request.seconds)
        reassigned = engine.handle(command)
    except InvalidCommandError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"status": "learning" if request.seconds > 0 else "reassigned", "cells": reassigned}


@router.post("/refresh")
def refresh(engine: CellEngine = Depends(get_engine)) -> dict[str, bool]:
    return {"applied": engine.refresh()}


# --- Areas ---


@router.get("/areas")
def list_all_areas(session: Session = Depends(get_session)) -> list[dict[str, Any]]:
    summaries = list_area_summaries(session, settings.no_profile_label)
    return [
        {**s["area"].model_dump(), "profile_name": s["profile_name"], "is_default": s["is_default"]}
        for s in summaries
    ]


@router.post("/areas", status_code=201)
def create_new_area(
    request: CreateAreaRequest,
    session: Session = Depends(get_session),
) -> Area:
    try:
        return create_area(
            session,
            request.name,
            profile_id=request.profile_id,
            wifi_enabled=request.wifi_enabled,
            bluetooth_enabled=request.bluetooth_enabled,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/areas/{area_id}")
def area_detail(area_id: int, session: Session = Depends(get_session)) -> dict[str, Any]:
    area = get_area(session, area_id)
    if area is None:
        raise HTTPException(status_code=404, detail="Area not found")
    return {"area": area, "cells": list_cells(session, area_id=area_id)}


@router.patch("/areas/{area_id}")
def update_existing_area(
    area_id: int,
    request: UpdateAreaRequest,
    session: Session = Depends(get_session),
    engine: CellEngine = Depends(get_engine),
) -> Area:
    # Only explicitly sent fields; an explicit null profile_id unbinds
    updates = request.model_dump(exclude_unset=True)
    try:
        area = update_area(session, area_id, **updates)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if area is None:
        raise HTTPException(status_code=404, detail="Area not found")
    engine.refresh()
    return area


@router.delete("/areas/{area_id}")
def delete_existing_area(
    area_id: int,
    session: Session = Depends(get_session),
    engine: CellEngine = Depends(get_engine),
) -> dict[str, str]:
    if area_id == DEFAULT_AREA_ID:
        raise HTTPException(status_code=400, detail="The default area cannot be deleted")
    if not delete_area(session, area_id):
        raise HTTPException(status_code=404, detail="Area not found")
    engine.refresh()
    return {"status": "deleted"}


# --- Profiles ---


@router.get("/profiles")
def list_all_profiles(session: Session = Depends(get_session)) -> list[dict[str, Any]]:
    return [_profile_out(p) for p in list_profiles(session)]


@router.post("/profiles", status_code=201)
def create_new_profile(
    request: ProfileRequest,
    session: Session = Depends(get_session),
) -> dict[str, Any]:
    if not request.name:
        raise HTTPException(status_code=400, detail="Profile name is required")
    profile = create_profile(
        session,
        request.name,
        volumes={ch: v.to_setting() for ch, v in request.volumes.items()},
        wifi=request.wifi if request.wifi is not None else WifiMode.on,
        ringer_mode=request.ringer_mode if request.ringer_mode is not None else RingerMode.normal,
    )
    return _profile_out(profile)


@router.get("/profiles/{profile_id}")
def profile_detail(profile_id: int, session: Session = Depends(get_session)) -> dict[str, Any]:
    profile = get_profile(session, profile_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return _profile_out(profile)


@router.patch("/profiles/{profile_id}")
def update_existing_profile(
    profile_id: int,
    request: ProfileRequest,
    session: Session = Depends(get_session),
    engine: CellEngine = Depends(get_engine),
) -> dict[str, Any]:
    profile = update_profile(
        session,
        profile_id,
        name=request.name,
        volumes={ch: v.to_setting() for ch, v in request.volumes.items()},
        wifi=request.wifi,
        ringer_mode=request.ringer_mode,
    )
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    engine.refresh()
    return _profile_out(profile)


@router.delete("/profiles/{profile_id}")
def delete_existing_profile(
    profile_id: int,
    session: Session = Depends(get_session),
    engine: CellEngine = Depends(get_engine),
) -> dict[str, str]:
    if not delete_profile(session, profile_id):
        raise HTTPException(status_code=404, detail="Profile not found")
    engine.refresh()
    return {"status": "deleted"}


# --- Cells ---


@router.get("/cells")
def list_all_cells(
    area_id: int | None = None,
    session: Session = Depends(get_session),
) -> list[Cell]:
    return list_cells(session, area_id=area_id)


@router.patch("/cells/{cell_row_id}")
def assign_existing_cell(
    cell_row_id: int,
    request: AssignCellRequest,
    session: Session = Depends(get_session),
    engine: CellEngine = Depends(get_engine),
) -> Cell:
    try:
        cell = assign_cell(session, cell_row_id, request.area_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if cell is None:
        raise HTTPException(status_code=404, detail="Cell not found")
    engine.refresh()
    return cell
