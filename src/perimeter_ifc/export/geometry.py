"""IFC geometry for walls, openings and floor slabs.

All shapes are extruded area solids over polyline profiles:

- walls: 4-point profile in the wall's local frame (X along the wall, Z up,
  Y to its left), extruded up by the storey's wall height
- openings: width × wall thickness rectangle, placed relative to the host wall
  on the outside half-space of the wall
- slabs: footprint outline (with holes), extruded down by the floor thickness
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from perimeter_ifc.config import ExportSettings
from perimeter_ifc.errors import AssemblyNotFoundError, ProfileError
from perimeter_ifc.export.elevation import StoreyRuntimeInfo
from perimeter_ifc.export.footprint import FloorGeometry
from perimeter_ifc.export.step import (
    DEFAULT_PRECISION,
    Handle,
    Raw,
    StepEnum,
    StepParameter,
    StepWriter,
    format_number,
    typed_value,
)
from perimeter_ifc.models.building import (
    BuildingModel,
    Perimeter,
    PerimeterWall,
    WallOpening,
)
from perimeter_ifc.models.geometry import Point2D, PolygonWithHoles2D, dedupe_ring, signed_area
from perimeter_ifc.models.ifc_id import generate_ifc_id

logger = logging.getLogger(__name__)

MIN_POSITIVE_LENGTH = 1e-6
MIN_MEASURE = 0.01

Vec = tuple[float, ...]


def _new_guid() -> str:
    """Generate a new IFC GlobalId for a rooted entity."""
    return generate_ifc_id()


# ---------------------------------------------------------------------------
# Planar helpers
# ---------------------------------------------------------------------------

def to_local(point: Point2D, origin: Point2D, direction: np.ndarray, normal: np.ndarray) -> Point2D:
    """Project a world point into the frame (origin, direction, normal)."""
    delta = np.array([point.x - origin.x, point.y - origin.y])
    return Point2D(x=float(delta @ direction), y=float(delta @ normal))


def ensure_counter_clockwise(points: list[Point2D]) -> list[Point2D]:
    return list(reversed(points)) if signed_area(points) < 0 else list(points)


def ensure_clockwise(points: list[Point2D]) -> list[Point2D]:
    return list(points) if signed_area(points) < 0 else list(reversed(points))


def wall_outside_sign(perimeter: Perimeter, wall: PerimeterWall) -> float:
    """+1 when the wall's outside lies on local +Y of its placement, else -1.

    Wall placements keep Z up and X along the wall, so local +Y is always
    the left normal. Clockwise perimeters have their outside there.
    """
    direction, outward, _ = perimeter.wall_frame(wall)
    left = np.array([-direction[1], direction[0]])
    return 1.0 if float(outward @ left) > 0 else -1.0


def wall_local_profile(perimeter: Perimeter, wall: PerimeterWall) -> list[Point2D]:
    """Wall outline in its placement frame, origin at the inside start corner.

    Corners are inside start, inside end, outside end, outside start. The
    outside face is at local Y = +thickness for clockwise perimeters and at
    -thickness for counter-clockwise ones.
    """
    start = perimeter.get_corner(wall.start_corner_id)
    end = perimeter.get_corner(wall.end_corner_id)
    direction, _, _ = perimeter.wall_frame(wall)
    left = np.array([-direction[1], direction[0]])
    origin = start.inside_point
    world = [start.inside_point, end.inside_point, end.outside_point, start.outside_point]
    return [to_local(p, origin, direction, left) for p in world]


def _normalized(components: Vec) -> Vec:
    vector = np.asarray(components, dtype=float)
    length = float(np.linalg.norm(vector))
    if length == 0.0:
        return (0.0, 0.0, 1.0) if len(components) == 3 else (1.0, 0.0)
    return tuple(float(c) for c in vector / length)


# ---------------------------------------------------------------------------
# Shared state
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class IfcContext:
    """Entities every product refers to."""

    owner_history: Handle
    body_context: Handle
    world_placement: Handle
    z_axis: Handle
    x_axis: Handle


@dataclass
class MaterialUsageCache:
    """Material layer sets and their usages written during one export.

    Layer sets are keyed by assembly and thickness; a usage also depends on
    which side of the wall axis the layer grows towards.
    """

    precision: int = DEFAULT_PRECISION
    layer_sets: dict[str, Handle] = field(default_factory=dict)
    usages: dict[str, Handle] = field(default_factory=dict)

    def key(self, assembly_id: str, thickness: float) -> str:
        return f"{assembly_id}:{format_number(thickness, self.precision)}"

    def get_layer_set(self, assembly_id: str, thickness: float) -> Handle | None:
        return self.layer_sets.get(self.key(assembly_id, thickness))

    def put_layer_set(self, assembly_id: str, thickness: float, layer_set: Handle) -> None:
        self.layer_sets[self.key(assembly_id, thickness)] = layer_set

    def get(self, assembly_id: str, thickness: float, sense: str = "POSITIVE") -> Handle | None:
        return self.usages.get(f"{self.key(assembly_id, thickness)}:{sense}")

    def put(self, assembly_id: str, thickness: float, usage: Handle, sense: str = "POSITIVE") -> None:
        self.usages[f"{self.key(assembly_id, thickness)}:{sense}"] = usage

    def __len__(self) -> int:
        return len(self.usages)


# ---------------------------------------------------------------------------
# Emitter
# ---------------------------------------------------------------------------

class GeometryEmitter:
    """Writes geometry and building elements into a STEP writer."""

    def __init__(self, writer: StepWriter, settings: ExportSettings):
        self.writer = writer
        self.settings = settings
        self._context: IfcContext | None = None

    @property
    def context(self) -> IfcContext:
        if self._context is None:
            raise RuntimeError("Geometric context has not been created")
        return self._context

    def bind_context(self, context: IfcContext) -> None:
        self._context = context

    # ── Primitives ────────────────────────────────────────────────────

    def cartesian_point(self, coordinates: Vec) -> Handle:
        return self.writer.add_entity("IFCCARTESIANPOINT", [[float(c) for c in coordinates]])

    def direction(self, components: Vec) -> Handle:
        return self.writer.add_entity("IFCDIRECTION", [list(_normalized(components))])

    def axis_placement(
        self,
        location: Vec = (0.0, 0.0, 0.0),
        ref_direction: Handle | None = None,
    ) -> Handle:
        """IfcAxis2Placement3D with world Z up."""
        point = self.cartesian_point(location)
        return self.writer.add_entity(
            "IFCAXIS2PLACEMENT3D",
            [point, self.context.z_axis, ref_direction or self.context.x_axis],
        )

    def local_placement(
        self,
        parent: Handle | None,
        location: Vec = (0.0, 0.0, 0.0),
        ref_direction: Handle | None = None,
    ) -> Handle:
        axis = self.axis_placement(location, ref_direction)
        return self.writer.add_entity("IFCLOCALPLACEMENT", [parent, axis])

    def polyline(self, points: list[Point2D]) -> Handle:
        """Closed polyline. Repeats the first point unless disabled in settings."""
        ring = dedupe_ring(points, self.settings.point_tolerance)
        if len(ring) < 3:
            raise ProfileError(
                f"Closed polyline needs at least 3 distinct points, got {len(ring)}"
            )
        handles = [self.cartesian_point((p.x, p.y)) for p in ring]
        if self.settings.repeat_closing_point:
            handles.append(handles[0])
        return self.writer.add_entity("IFCPOLYLINE", [handles])

    def closed_profile(self, points: list[Point2D]) -> Handle:
        outer = self.polyline(ensure_counter_clockwise(points))
        return self.writer.add_entity(
            "IFCARBITRARYCLOSEDPROFILEDEF", [StepEnum("AREA"), None, outer]
        )

    def polygon_profile(self, polygon: PolygonWithHoles2D) -> Handle:
        """Outer ring counter-clockwise, holes clockwise."""
        if not polygon.holes:
            return self.closed_profile(polygon.outer.vertices)
        outer = self.polyline(ensure_counter_clockwise(polygon.outer.vertices))
        inner = [self.polyline(ensure_clockwise(h.vertices)) for h in polygon.holes]
        return self.writer.add_entity(
            "IFCARBITRARYPROFILEDEFWITHVOIDS", [StepEnum("AREA"), None, outer, inner]
        )

    def rectangle_profile(self, width: float, depth: float) -> Handle:
        return self.closed_profile([
            Point2D(x=0, y=0),
            Point2D(x=width, y=0),
            Point2D(x=width, y=depth),
            Point2D(x=0, y=depth),
        ])

    def extruded_solid(self, profile: Handle, direction: Handle, depth: float) -> Handle:
        position = self.axis_placement()
        return self.writer.add_entity(
            "IFCEXTRUDEDAREASOLID",
            [profile, position, direction, max(float(depth), MIN_POSITIVE_LENGTH)],
        )

    def body_shape(self, solids: list[Handle]) -> Handle:
        """Swept-solid body representation wrapped in a product shape."""
        representation = self.writer.add_entity(
            "IFCSHAPEREPRESENTATION",
            [self.context.body_context, "Body", "SweptSolid", solids],
        )
        return self.writer.add_entity("IFCPRODUCTDEFINITIONSHAPE", [None, None, [representation]])

    def property_set(self, related: Handle, name: str, properties: list[tuple[str, StepParameter]]) -> Handle:
        """Property set of single values attached to one object."""
        values = [
            self.writer.add_entity("IFCPROPERTYSINGLEVALUE", [prop_name, None, value, None])
            for prop_name, value in properties
        ]
        pset = self.writer.add_entity(
            "IFCPROPERTYSET",
            [_new_guid(), self.context.owner_history, name, None, values],
        )
        self.writer.add_entity(
            "IFCRELDEFINESBYPROPERTIES",
            [_new_guid(), self.context.owner_history, None, None, [related], pset],
        )
        return pset

    def _positive_length(self, value: float) -> Raw:
        return typed_value(
            "IFCPOSITIVELENGTHMEASURE", max(float(value), MIN_MEASURE), self.writer.precision
        )

    def _non_negative_length(self, value: float) -> Raw:
        return typed_value(
            "IFCNONNEGATIVELENGTHMEASURE", max(float(value), 0.0), self.writer.precision
        )

    # ── Walls ─────────────────────────────────────────────────────────

    def emit_walls(
        self,
        model: BuildingModel,
        perimeter: Perimeter,
        info: StoreyRuntimeInfo,
        storey_placement: Handle,
        cache: MaterialUsageCache,
    ) -> list[Handle]:
        """All walls of a perimeter, with their openings."""
        elements: list[Handle] = []
        for wall in perimeter.walls:
            assembly = model.get_wall_assembly_by_id(wall.wall_assembly_id)
            if assembly is None:
                raise AssemblyNotFoundError(
                    f"Wall assembly '{wall.wall_assembly_id}' of wall {wall.id} "
                    f"on storey '{info.name}' not found",
                    details={
                        "wall_id": wall.id,
                        "storey_id": info.storey_id,
                        "assembly_id": wall.wall_assembly_id,
                    },
                )
            elements.append(
                self.emit_wall(perimeter, wall, info, storey_placement, cache, assembly.name)
            )
        return elements

    def emit_wall(
        self,
        perimeter: Perimeter,
        wall: PerimeterWall,
        info: StoreyRuntimeInfo,
        storey_placement: Handle,
        cache: MaterialUsageCache,
        assembly_name: str = "",
    ) -> Handle:
        """Create an IfcWall with extruded geometry, material and properties."""
        profile = self.closed_profile(wall_local_profile(perimeter, wall))

        direction, _, _ = perimeter.wall_frame(wall)
        side = wall_outside_sign(perimeter, wall)
        origin = perimeter.get_corner(wall.start_corner_id).inside_point
        placement = self.local_placement(
            storey_placement,
            (origin.x, origin.y, 0.0),
            self.direction((float(direction[0]), float(direction[1]), 0.0)),
        )

        solid = self.extruded_solid(profile, self.context.z_axis, info.wall_height)
        shape = self.body_shape([solid])

        ifc_wall = self.writer.add_entity(
            "IFCWALL",
            [
                _new_guid(), self.context.owner_history, wall.id, None, None,
                placement, shape, None, None,
            ],
        )

        usage = self.ensure_wall_material_usage(
            wall.wall_assembly_id, wall.thickness, cache, assembly_name,
            sense="POSITIVE" if side > 0 else "NEGATIVE",
        )
        self.writer.add_entity(
            "IFCRELASSOCIATESMATERIAL",
            [_new_guid(), self.context.owner_history, None, None, [ifc_wall], usage],
        )

        self.property_set(ifc_wall, "PerimeterWall", [
            ("Thickness", self._positive_length(wall.thickness)),
            ("AssemblyId", typed_value("IFCIDENTIFIER", wall.wall_assembly_id)),
        ])

        for opening in wall.openings:
            self.emit_opening(opening, wall, ifc_wall, placement, side)

        return ifc_wall

    def ensure_wall_material_usage(
        self,
        assembly_id: str,
        thickness: float,
        cache: MaterialUsageCache,
        assembly_name: str = "",
        sense: str = "POSITIVE",
    ) -> Handle:
        """Material layer set usage for a wall build-up, written once per export.

        ``sense`` is POSITIVE when the layer grows towards local +Y of the
        wall placement and NEGATIVE otherwise.
        """
        cached = cache.get(assembly_id, thickness, sense)
        if cached is not None:
            return cached

        layer_set = cache.get_layer_set(assembly_id, thickness)
        if layer_set is None:
            label = f"Wall {assembly_name or assembly_id}"
            material = self.writer.add_entity("IFCMATERIAL", [label, None, None])
            layer = self.writer.add_entity(
                "IFCMATERIALLAYER",
                [material, max(float(thickness), MIN_MEASURE), None, None, None, None, None],
            )
            layer_set = self.writer.add_entity("IFCMATERIALLAYERSET", [[layer], label, None])
            cache.put_layer_set(assembly_id, thickness, layer_set)

        usage = self.writer.add_entity(
            "IFCMATERIALLAYERSETUSAGE",
            [layer_set, StepEnum("AXIS2"), StepEnum(sense), 0.0, None],
        )
        cache.put(assembly_id, thickness, usage, sense)
        logger.debug(
            "Material usage for %s (%g mm, %s) written as %s", assembly_id, thickness, sense, usage
        )
        return usage

    # ── Openings ──────────────────────────────────────────────────────

    def emit_opening(
        self,
        opening: WallOpening,
        wall: PerimeterWall,
        ifc_wall: Handle,
        wall_placement: Handle,
        side: float = 1.0,
    ) -> Handle:
        """Create an IfcOpeningElement voiding its host wall.

        The opening profile starts at its left edge, so the placement is
        shifted from the centre offset by half the width. It spans the wall
        thickness on the wall's outside (``side`` as from wall_outside_sign).
        """
        left_edge = opening.center_offset_from_wall_start - opening.width / 2
        y_start = 0.0 if side > 0 else -wall.thickness
        placement = self.local_placement(
            wall_placement, (left_edge, y_start, opening.sill_height or 0.0)
        )

        profile = self.rectangle_profile(opening.width, wall.thickness)
        solid = self.extruded_solid(profile, self.context.z_axis, opening.height)
        shape = self.body_shape([solid])

        ifc_opening = self.writer.add_entity(
            "IFCOPENINGELEMENT",
            [
                _new_guid(), self.context.owner_history,
                f"{opening.opening_type.value}-{opening.id}", None, None,
                placement, shape, None, StepEnum("OPENING"),
            ],
        )

        self.writer.add_entity(
            "IFCRELVOIDSELEMENT",
            [_new_guid(), self.context.owner_history, None, None, ifc_wall, ifc_opening],
        )

        self.property_set(ifc_opening, "PerimeterOpening", [
            ("Width", self._positive_length(opening.width)),
            ("Height", self._positive_length(opening.height)),
            ("SillHeight", self._non_negative_length(opening.sill_height or 0.0)),
            ("Type", typed_value("IFCLABEL", opening.opening_type.value.upper())),
        ])
        return ifc_opening

    # ── Slabs ─────────────────────────────────────────────────────────

    def emit_slab(self, floor: FloorGeometry, storey_placement: Handle) -> Handle:
        """Create an IfcSlab hanging below the storey origin."""
        downward = self.direction((0.0, 0.0, -1.0))
        solids = [
            self.extruded_solid(self.polygon_profile(polygon), downward, floor.thickness)
            for polygon in floor.polygons
        ]
        shape = self.body_shape(solids)
        placement = self.local_placement(storey_placement)

        slab = self.writer.add_entity(
            "IFCSLAB",
            [
                _new_guid(), self.context.owner_history, "Floor", None, None,
                placement, shape, None, StepEnum("FLOOR"),
            ],
        )

        self.property_set(slab, "PerimeterFloor", [
            ("Thickness", self._positive_length(floor.thickness)),
        ])
        return slab
