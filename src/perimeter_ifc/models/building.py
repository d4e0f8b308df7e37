"""Building model consumed by the exporter.

The editor owns this data; the exporter only reads it through the query
methods on :class:`BuildingModel`. Coordinates are millimetres.

Perimeter corners usually run clockwise, which puts the outside of each wall
on the left of its direction (start corner → end corner). The outside is
always taken from the corners' outside points.
"""

from __future__ import annotations

import math
from enum import Enum
from pathlib import Path

import numpy as np
from pydantic import BaseModel, Field, field_validator, model_validator

from perimeter_ifc.models.geometry import Point2D, Polygon2D
from perimeter_ifc.models.ifc_id import generate_ifc_id


class FloorAssemblyConfig(BaseModel):
    """Vertical build-up of a floor.

    From bottom to top: ``bottom_offset`` (e.g. ceiling battens below the
    structure), the structural ``construction_thickness``, the ``top_thickness``
    layers (screed, finish) and a final ``top_offset``.
    """

    id: str = Field(default_factory=generate_ifc_id)
    name: str = ""
    bottom_offset: float = Field(default=0.0, ge=0)
    construction_thickness: float = Field(gt=0)
    top_thickness: float = Field(default=0.0, ge=0)
    top_offset: float = Field(default=0.0, ge=0)

    @property
    def total_thickness(self) -> float:
        return self.bottom_offset + self.construction_thickness + self.top_thickness + self.top_offset


class WallAssemblyConfig(BaseModel):
    """Named wall build-up. Walls reference it by id."""

    id: str = Field(default_factory=generate_ifc_id)
    name: str = ""


class Storey(BaseModel):
    """A storey. ``height`` runs from the finished floor to the next floor's underside."""

    id: str = Field(default_factory=generate_ifc_id)
    name: str
    level: int = 0
    height: float = Field(gt=0, description="Clear storey height in millimetres")
    floor_assembly_id: str


class PerimeterCorner(BaseModel):
    """Corner of a perimeter with its inner and outer face points."""

    id: str = Field(default_factory=generate_ifc_id)
    inside_point: Point2D
    outside_point: Point2D


class OpeningType(str, Enum):
    DOOR = "door"
    WINDOW = "window"
    PASSAGE = "passage"


class WallOpening(BaseModel):
    """Door, window or passage hosted in a perimeter wall.

    Position is the centre of the opening measured along the wall from its
    start corner.
    """

    id: str = Field(default_factory=generate_ifc_id)
    opening_type: OpeningType = OpeningType.DOOR
    center_offset_from_wall_start: float = Field(ge=0)
    width: float = Field(gt=0)
    height: float = Field(gt=0)
    sill_height: float | None = Field(default=None, ge=0)


class PerimeterWall(BaseModel):
    """Exterior wall segment between two perimeter corners."""

    id: str = Field(default_factory=generate_ifc_id)
    start_corner_id: str
    end_corner_id: str
    thickness: float = Field(gt=0)
    wall_assembly_id: str
    openings: list[WallOpening] = Field(default_factory=list)


class Perimeter(BaseModel):
    """Closed ring of exterior walls on one storey."""

    id: str = Field(default_factory=generate_ifc_id)
    storey_id: str
    corners: list[PerimeterCorner]
    walls: list[PerimeterWall] = Field(default_factory=list)

    @field_validator("corners")
    @classmethod
    def at_least_3_corners(cls, v: list[PerimeterCorner]) -> list[PerimeterCorner]:
        if len(v) < 3:
            raise ValueError("Perimeter must have at least 3 corners")
        return v

    @model_validator(mode="after")
    def walls_reference_corners(self) -> Perimeter:
        corner_ids = {c.id for c in self.corners}
        for wall in self.walls:
            for cid in (wall.start_corner_id, wall.end_corner_id):
                if cid not in corner_ids:
                    raise ValueError(f"Wall {wall.id} references unknown corner {cid}")
        return self

    @property
    def inside_polygon(self) -> Polygon2D:
        return Polygon2D(vertices=[c.inside_point for c in self.corners])

    @property
    def outside_polygon(self) -> Polygon2D:
        return Polygon2D(vertices=[c.outside_point for c in self.corners])

    def get_corner(self, corner_id: str) -> PerimeterCorner:
        corner = next((c for c in self.corners if c.id == corner_id), None)
        if corner is None:
            raise KeyError(f"Corner {corner_id} not found in perimeter {self.id}")
        return corner

    def wall_frame(self, wall: PerimeterWall) -> tuple[np.ndarray, np.ndarray, float]:
        """Unit direction, outward normal and inside length of a wall.

        The outward side is read from the corners' outside points, so both
        windings are handled.
        """
        start_corner = self.get_corner(wall.start_corner_id)
        end_corner = self.get_corner(wall.end_corner_id)
        start, end = start_corner.inside_point, end_corner.inside_point
        delta = np.array([end.x - start.x, end.y - start.y])
        length = float(np.hypot(*delta))
        if math.isclose(length, 0.0, abs_tol=1e-9):
            raise ValueError(f"Wall {wall.id} has zero length")
        direction = delta / length
        outward = np.array([-direction[1], direction[0]])

        offset = np.array([
            start_corner.outside_point.x - start.x + end_corner.outside_point.x - end.x,
            start_corner.outside_point.y - start.y + end_corner.outside_point.y - end.y,
        ])
        if float(offset @ outward) < 0:
            outward = -outward
        return direction, outward, length


class FloorArea(BaseModel):
    """Extra floor region not covered by a perimeter (e.g. a terrace)."""

    id: str = Field(default_factory=generate_ifc_id)
    storey_id: str
    area: Polygon2D


class FloorOpening(BaseModel):
    """Hole in a storey's floor (stairwell, shaft)."""

    id: str = Field(default_factory=generate_ifc_id)
    storey_id: str
    area: Polygon2D


class BuildingModel(BaseModel):
    """Read-only view of the editor's building model."""

    name: str = "Untitled Building"
    storeys: list[Storey] = Field(default_factory=list)
    perimeters: list[Perimeter] = Field(default_factory=list)
    floor_areas: list[FloorArea] = Field(default_factory=list)
    floor_openings: list[FloorOpening] = Field(default_factory=list)
    floor_assemblies: list[FloorAssemblyConfig] = Field(default_factory=list)
    wall_assemblies: list[WallAssemblyConfig] = Field(default_factory=list)

    # ── File I/O ──────────────────────────────────────────────────────

    @classmethod
    def load(cls, path: str | Path) -> BuildingModel:
        """Load a model from a JSON file."""
        path = Path(path)
        return cls.model_validate_json(path.read_text())

    def save(self, path: str | Path) -> Path:
        """Save the model to a JSON file. Creates parent dirs if needed."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2))
        return path

    # ── Queries ───────────────────────────────────────────────────────

    def get_storeys_ordered_by_level(self) -> list[Storey]:
        """Storeys from bottom to top."""
        return sorted(self.storeys, key=lambda s: s.level)

    def get_perimeters_by_storey(self, storey_id: str) -> list[Perimeter]:
        return [p for p in self.perimeters if p.storey_id == storey_id]

    def get_floor_areas_by_storey(self, storey_id: str) -> list[FloorArea]:
        return [a for a in self.floor_areas if a.storey_id == storey_id]

    def get_floor_openings_by_storey(self, storey_id: str) -> list[FloorOpening]:
        return [o for o in self.floor_openings if o.storey_id == storey_id]

    def get_floor_assembly_by_id(self, assembly_id: str) -> FloorAssemblyConfig | None:
        return next((a for a in self.floor_assemblies if a.id == assembly_id), None)

    def get_wall_assembly_by_id(self, assembly_id: str) -> WallAssemblyConfig | None:
        return next((a for a in self.wall_assemblies if a.id == assembly_id), None)
