"""Building data models."""

from perimeter_ifc.models.ifc_id import generate_ifc_id, is_valid_ifc_id
from perimeter_ifc.models.geometry import Point2D, Polygon2D, PolygonWithHoles2D
from perimeter_ifc.models.building import (
    BuildingModel,
    FloorArea,
    FloorAssemblyConfig,
    FloorOpening,
    OpeningType,
    Perimeter,
    PerimeterCorner,
    PerimeterWall,
    Storey,
    WallAssemblyConfig,
    WallOpening,
)

__all__ = [
    "generate_ifc_id",
    "is_valid_ifc_id",
    "Point2D",
    "Polygon2D",
    "PolygonWithHoles2D",
    "BuildingModel",
    "FloorArea",
    "FloorAssemblyConfig",
    "FloorOpening",
    "OpeningType",
    "Perimeter",
    "PerimeterCorner",
    "PerimeterWall",
    "Storey",
    "WallAssemblyConfig",
    "WallOpening",
]
