"""Tests for the building model."""

import json
import tempfile
from pathlib import Path

import pytest
from pydantic import ValidationError

from perimeter_ifc.config import ExportSettings, FootprintFace
from perimeter_ifc.models import (
    BuildingModel,
    OpeningType,
    Perimeter,
    PerimeterCorner,
    PerimeterWall,
    Point2D,
    Polygon2D,
    PolygonWithHoles2D,
    Storey,
    WallOpening,
)
from perimeter_ifc.models.geometry import dedupe_ring

from builders import rectangle_perimeter, two_storey_model


class TestPolygon2D:
    def test_minimum_vertices(self):
        with pytest.raises(ValidationError):
            Polygon2D.from_tuples([(0, 0), (1, 1)])

    def test_orientation(self):
        ccw = Polygon2D.from_tuples([(0, 0), (4, 0), (4, 3), (0, 3)])
        assert ccw.signed_area == 12.0
        assert not ccw.is_clockwise
        assert ccw.area == 12.0
        assert Polygon2D.from_tuples([(0, 0), (0, 3), (4, 3), (4, 0)]).is_clockwise

    def test_with_holes_area(self):
        outer = Polygon2D.from_tuples([(0, 0), (10, 0), (10, 10), (0, 10)])
        hole = Polygon2D.from_tuples([(1, 1), (3, 1), (3, 3), (1, 3)])
        assert PolygonWithHoles2D(outer=outer, holes=[hole]).area == 96.0


class TestDedupeRing:
    def test_drops_closing_point(self):
        ring = [Point2D(x=0, y=0), Point2D(x=1, y=0), Point2D(x=1, y=1), Point2D(x=0, y=0)]
        assert len(dedupe_ring(ring)) == 3

    def test_respects_tolerance(self):
        ring = [Point2D(x=0, y=0), Point2D(x=0.5, y=0), Point2D(x=1, y=1)]
        assert len(dedupe_ring(ring, tolerance=1.0)) == 2
        assert len(dedupe_ring(ring)) == 3


class TestPerimeter:
    def test_clockwise_convention(self):
        perimeter = rectangle_perimeter("s", 6000.0, 4000.0)
        assert perimeter.inside_polygon.is_clockwise
        assert perimeter.outside_polygon.area > perimeter.inside_polygon.area

    def test_outward_normal_points_outside(self):
        perimeter = rectangle_perimeter("s", 6000.0, 4000.0)
        # west wall runs +Y; its outside is -X
        direction, outward, length = perimeter.wall_frame(perimeter.walls[0])
        assert tuple(direction) == (0.0, 1.0)
        assert tuple(outward) == (-1.0, 0.0)
        assert length == 4000.0

    def test_outward_normal_counter_clockwise(self):
        perimeter = rectangle_perimeter("s", 6000.0, 4000.0, counter_clockwise=True)
        assert not perimeter.inside_polygon.is_clockwise
        # east wall runs +Y; its outside is +X, to the right of the direction
        direction, outward, _ = perimeter.wall_frame(perimeter.walls[0])
        assert tuple(direction) == (0.0, 1.0)
        assert tuple(outward) == (1.0, 0.0)

    def test_unknown_corner_rejected(self):
        corners = [
            PerimeterCorner(inside_point=Point2D(x=x, y=y), outside_point=Point2D(x=x, y=y))
            for x, y in [(0, 0), (0, 1), (1, 0)]
        ]
        with pytest.raises(ValidationError):
            Perimeter(
                storey_id="s",
                corners=corners,
                walls=[PerimeterWall(start_corner_id=corners[0].id, end_corner_id="nope",
                                     thickness=300, wall_assembly_id="w")],
            )

    def test_too_few_corners(self):
        with pytest.raises(ValidationError):
            Perimeter(storey_id="s", corners=[])

    def test_get_corner_missing(self):
        perimeter = rectangle_perimeter("s", 1000.0, 1000.0)
        with pytest.raises(KeyError):
            perimeter.get_corner("missing")

    def test_zero_length_wall(self):
        corner = PerimeterCorner(inside_point=Point2D(x=0, y=0), outside_point=Point2D(x=0, y=0))
        other = PerimeterCorner(inside_point=Point2D(x=1, y=1), outside_point=Point2D(x=1, y=1))
        third = PerimeterCorner(inside_point=Point2D(x=0, y=0), outside_point=Point2D(x=0, y=0))
        wall = PerimeterWall(start_corner_id=corner.id, end_corner_id=third.id,
                             thickness=300, wall_assembly_id="w")
        perimeter = Perimeter(storey_id="s", corners=[corner, other, third], walls=[wall])
        with pytest.raises(ValueError):
            perimeter.wall_frame(wall)


class TestWallOpening:
    def test_defaults(self):
        opening = WallOpening(center_offset_from_wall_start=1000, width=900, height=2100)
        assert opening.opening_type is OpeningType.DOOR
        assert opening.sill_height is None

    def test_positive_dimensions(self):
        with pytest.raises(ValidationError):
            WallOpening(center_offset_from_wall_start=1000, width=0, height=2100)


class TestBuildingModel:
    def test_storey_queries(self):
        model = two_storey_model()
        model.storeys.reverse()
        assert [s.id for s in model.get_storeys_ordered_by_level()] == ["ground", "upper"]

    def test_lookups(self):
        model = two_storey_model()
        assert len(model.get_perimeters_by_storey("ground")) == 1
        assert model.get_floor_areas_by_storey("ground") == []
        assert model.get_floor_openings_by_storey("ground") == []
        assert model.get_floor_assembly_by_id("floor-joists").construction_thickness == 100.0
        assert model.get_floor_assembly_by_id("missing") is None
        assert model.get_wall_assembly_by_id("wall-strawbale").name == "Straw bale"
        assert model.get_wall_assembly_by_id("missing") is None

    def test_save_and_load(self):
        model = two_storey_model()
        with tempfile.TemporaryDirectory() as tmp:
            path = model.save(Path(tmp) / "nested" / "model.json")
            loaded = BuildingModel.load(path)
        assert loaded.name == model.name
        assert len(loaded.perimeters) == 2
        assert loaded.perimeters[0].walls[1].openings[0].width == 900.0
        assert loaded.perimeters[0].corners[0].outside_point == Point2D(x=-300, y=-300)

    def test_floor_total_thickness(self):
        floor = two_storey_model().floor_assemblies[0]
        assert floor.total_thickness == 150.0

    def test_storey_height_positive(self):
        with pytest.raises(ValidationError):
            Storey(name="s", height=0, floor_assembly_id="f")


class TestExportSettings:
    def test_defaults(self):
        settings = ExportSettings()
        assert settings.footprint_face is FootprintFace.OUTSIDE
        assert settings.repeat_closing_point is True
        assert settings.schema_name == "IFC4"

    def test_schema_normalised(self):
        assert ExportSettings(schema_name="ifc4").schema_name == "IFC4"
        for name in ("IFC2X3", "IFC5"):
            with pytest.raises(ValidationError):
                ExportSettings(schema_name=name)

    def test_version_defaults_to_package(self):
        from perimeter_ifc import __version__

        assert ExportSettings().version_string == __version__
        assert ExportSettings(application_version="2.0").version_string == "2.0"

    def test_load(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "settings.json"
            path.write_text(json.dumps({"project_name": "Hof", "footprint_face": "inside"}))
            settings = ExportSettings.load(path)
        assert settings.project_name == "Hof"
        assert settings.footprint_face is FootprintFace.INSIDE
