"""Storey elevation planning.

Stacks the floor build-ups from the ground up. A storey's elevation is the
top of its floor construction; its walls start there and end below the next
storey's floor construction (or at the storey height when nothing is above).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from perimeter_ifc.errors import AssemblyNotFoundError
from perimeter_ifc.models.building import BuildingModel, FloorAssemblyConfig, Storey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreyRuntimeInfo:
    """Derived per-storey layout. Recomputed on every export."""

    storey_id: str
    name: str
    elevation: float
    wall_height: float
    floor_assembly: FloorAssemblyConfig


def wall_height(
    storey: Storey,
    floor: FloorAssemblyConfig,
    next_floor: FloorAssemblyConfig | None,
) -> float:
    """Height from the top of this floor's construction to the next floor's underside."""
    height = floor.top_thickness + floor.top_offset + storey.height
    if next_floor is not None:
        height += next_floor.bottom_offset
    return height


def _resolve_floor(model: BuildingModel, storey: Storey) -> FloorAssemblyConfig:
    floor = model.get_floor_assembly_by_id(storey.floor_assembly_id)
    if floor is None:
        raise AssemblyNotFoundError(
            f"Floor assembly '{storey.floor_assembly_id}' of storey "
            f"'{storey.name}' ({storey.id}) not found",
            details={"storey_id": storey.id, "assembly_id": storey.floor_assembly_id},
        )
    return floor


def plan_storeys(model: BuildingModel, storeys: list[Storey]) -> list[StoreyRuntimeInfo]:
    """Compute elevation and wall height for storeys ordered bottom to top."""
    floors = [_resolve_floor(model, s) for s in storeys]

    infos: list[StoreyRuntimeInfo] = []
    accumulator = 0.0
    for i, (storey, floor) in enumerate(zip(storeys, floors)):
        next_floor = floors[i + 1] if i + 1 < len(floors) else None

        elevation = accumulator + floor.bottom_offset + floor.construction_thickness
        info = StoreyRuntimeInfo(
            storey_id=storey.id,
            name=storey.name,
            elevation=elevation,
            wall_height=wall_height(storey, floor, next_floor),
            floor_assembly=floor,
        )
        infos.append(info)
        logger.debug(
            "Storey %s: elevation %.1f, wall height %.1f",
            storey.name, info.elevation, info.wall_height,
        )

        accumulator += floor.total_thickness + storey.height

    return infos
