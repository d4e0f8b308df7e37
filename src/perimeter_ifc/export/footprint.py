"""Floor footprints per storey.

Perimeters and free floor areas are merged into non-overlapping regions;
floor openings that overlap the merged footprint are cut out as holes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from shapely.geometry import MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union

from perimeter_ifc.config import FootprintFace
from perimeter_ifc.export.elevation import StoreyRuntimeInfo
from perimeter_ifc.models.building import BuildingModel, Perimeter
from perimeter_ifc.models.geometry import (
    POINT_TOLERANCE,
    Point2D,
    Polygon2D,
    PolygonWithHoles2D,
    dedupe_ring,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FloorGeometry:
    """Slab outline of one storey."""

    storey_id: str
    polygons: list[PolygonWithHoles2D]
    thickness: float


def to_shapely(polygon: Polygon2D) -> Polygon:
    shape = Polygon(polygon.as_tuples())
    if not shape.is_valid:
        shape = shape.buffer(0)
    return shape


def _parts(geometry: BaseGeometry) -> list[Polygon]:
    """Polygon parts of any shapely geometry, skipping lines and points."""
    if geometry.is_empty:
        return []
    if isinstance(geometry, Polygon):
        return [geometry]
    if isinstance(geometry, MultiPolygon):
        return list(geometry.geoms)
    if hasattr(geometry, "geoms"):
        return [p for g in geometry.geoms for p in _parts(g)]
    return []


def union_polygons(polygons: list[Polygon2D]) -> list[Polygon]:
    """Union into minimal non-overlapping regions."""
    if not polygons:
        return []
    return _parts(unary_union([to_shapely(p) for p in polygons]))


def _ring(coords, tolerance: float) -> Polygon2D | None:
    points = dedupe_ring([Point2D(x=x, y=y) for x, y in coords], tolerance)
    if len(points) < 3:
        return None
    return Polygon2D(vertices=points)


def from_shapely(shape: Polygon, tolerance: float = POINT_TOLERANCE) -> PolygonWithHoles2D | None:
    """Convert back to a polygon with holes, or None if degenerate."""
    if shape.area < tolerance * tolerance:
        return None
    outer = _ring(shape.exterior.coords, tolerance)
    if outer is None:
        return None
    holes = [h for h in (_ring(i.coords, tolerance) for i in shape.interiors) if h is not None]
    return PolygonWithHoles2D(outer=outer, holes=holes)


def perimeter_polygon(perimeter: Perimeter, face: FootprintFace) -> Polygon2D:
    if face is FootprintFace.INSIDE:
        return perimeter.inside_polygon
    return perimeter.outside_polygon


def build_footprint(
    footprint_polygons: list[Polygon2D],
    opening_polygons: list[Polygon2D],
    tolerance: float = POINT_TOLERANCE,
) -> list[PolygonWithHoles2D]:
    """Merged footprint minus the openings that overlap it."""
    merged = union_polygons(footprint_polygons)
    if not merged:
        return []

    openings = [to_shapely(o) for o in opening_polygons]
    relevant = [
        o for o in openings
        if any(region.intersection(o).area > tolerance * tolerance for region in merged)
    ]
    if len(relevant) < len(openings):
        logger.debug("Dropped %d floor opening(s) outside the footprint", len(openings) - len(relevant))

    if relevant:
        cut = unary_union(merged).difference(unary_union(relevant))
        regions = _parts(cut)
    else:
        regions = merged

    result = []
    for region in regions:
        converted = from_shapely(region, tolerance)
        if converted is not None:
            result.append(converted)
    return result


def compute_floor_geometry(
    model: BuildingModel,
    infos: list[StoreyRuntimeInfo],
    face: FootprintFace = FootprintFace.OUTSIDE,
    tolerance: float = POINT_TOLERANCE,
) -> list[FloorGeometry]:
    """Slab outlines for every storey that has a footprint."""
    geometries: list[FloorGeometry] = []

    for info in infos:
        base_areas = [perimeter_polygon(p, face) for p in model.get_perimeters_by_storey(info.storey_id)]
        base_areas.extend(a.area for a in model.get_floor_areas_by_storey(info.storey_id))
        openings = [o.area for o in model.get_floor_openings_by_storey(info.storey_id)]

        polygons = build_footprint(base_areas, openings, tolerance)
        if not polygons:
            logger.debug("Storey %s has no floor footprint, no slab emitted", info.name)
            continue

        geometries.append(FloorGeometry(
            storey_id=info.storey_id,
            polygons=polygons,
            thickness=info.floor_assembly.construction_thickness,
        ))

    return geometries
