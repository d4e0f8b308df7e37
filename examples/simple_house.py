"""Two-storey straw bale house, exported to IFC4.

Ground floor: 8m x 6m inside, 400mm walls
- 1 door (south wall), 2 windows (east and west walls)
- terrace floor area along the east side
Upper floor: same perimeter
- 2 windows (north and south walls)
- stairwell opening in the floor

   N
   ↑
   |
   +--- E

Layout (top view, inside face):
   (0,6000) -------- (8000,6000)
       |                  |
    W  |                  |  E   [terrace]
       |                  |
   (0,0) ----------- (8000,0)
              S (door here)
"""

from pathlib import Path

from perimeter_ifc.config import ExportSettings
from perimeter_ifc.export.ifc import IFCExporter
from perimeter_ifc.models import (
    BuildingModel,
    FloorArea,
    FloorAssemblyConfig,
    FloorOpening,
    OpeningType,
    Perimeter,
    PerimeterCorner,
    PerimeterWall,
    Point2D,
    Polygon2D,
    Storey,
    WallAssemblyConfig,
    WallOpening,
)

WIDTH = 8000.0   # x-axis
DEPTH = 6000.0   # y-axis
WALL_T = 400.0   # wall thickness

# --- Assemblies ---
floor = FloorAssemblyConfig(
    id="floor-timber",
    name="Timber joist floor",
    bottom_offset=30.0,          # ceiling battens
    construction_thickness=220.0,
    top_thickness=60.0,          # screed and finish
)
bale_wall = WallAssemblyConfig(id="wall-bale", name="Straw bale, clay plaster")


def window(center: float, width: float = 1200.0) -> WallOpening:
    return WallOpening(
        opening_type=OpeningType.WINDOW,
        center_offset_from_wall_start=center,
        width=width,
        height=1400.0,
        sill_height=900.0,
    )


def perimeter(storey_id: str, openings: dict[str, list[WallOpening]]) -> Perimeter:
    """Clockwise ring: west, north, east, south walls."""
    t = WALL_T
    corners = [
        PerimeterCorner(inside_point=Point2D(x=0, y=0), outside_point=Point2D(x=-t, y=-t)),
        PerimeterCorner(inside_point=Point2D(x=0, y=DEPTH), outside_point=Point2D(x=-t, y=DEPTH + t)),
        PerimeterCorner(inside_point=Point2D(x=WIDTH, y=DEPTH),
                        outside_point=Point2D(x=WIDTH + t, y=DEPTH + t)),
        PerimeterCorner(inside_point=Point2D(x=WIDTH, y=0), outside_point=Point2D(x=WIDTH + t, y=-t)),
    ]
    sides = ["west", "north", "east", "south"]
    walls = [
        PerimeterWall(
            start_corner_id=corners[i].id,
            end_corner_id=corners[(i + 1) % 4].id,
            thickness=t,
            wall_assembly_id=bale_wall.id,
            openings=openings.get(side, []),
        )
        for i, side in enumerate(sides)
    ]
    return Perimeter(storey_id=storey_id, corners=corners, walls=walls)


ground = Storey(id="eg", name="Ground Floor", level=0, height=2600.0,
                floor_assembly_id=floor.id)
upper = Storey(id="og", name="Upper Floor", level=1, height=2400.0,
               floor_assembly_id=floor.id)

front_door = WallOpening(
    opening_type=OpeningType.DOOR,
    center_offset_from_wall_start=WIDTH / 2,   # south wall runs east to west
    width=1000.0,
    height=2100.0,
)

building = BuildingModel(
    name="Straw Bale House",
    storeys=[ground, upper],
    perimeters=[
        perimeter("eg", {
            "south": [front_door],
            "east": [window(DEPTH / 2)],
            "west": [window(DEPTH / 2)],
        }),
        perimeter("og", {
            "north": [window(2000.0), window(6000.0)],
            "south": [window(WIDTH / 2, width=1600.0)],
        }),
    ],
    floor_areas=[
        FloorArea(storey_id="eg", area=Polygon2D.from_tuples([
            (WIDTH + WALL_T, 0), (WIDTH + WALL_T, 4000),
            (WIDTH + 3000, 4000), (WIDTH + 3000, 0),
        ])),
    ],
    floor_openings=[
        FloorOpening(storey_id="og", area=Polygon2D.from_tuples([
            (500, 500), (1500, 500), (1500, 3500), (500, 3500),
        ])),
    ],
    floor_assemblies=[floor],
    wall_assemblies=[bale_wall],
)

# --- Export ---
settings = ExportSettings(
    project_name="Straw Bale House",
    author="Example Author",
    validate_references=True,
)
exporter = IFCExporter(building, settings)

output = Path(__file__).parent / "output"
output_file = exporter.write(output / exporter.filename())
print(f"📁 Exported to: {output_file}")
print(f"   Storeys: {len(building.storeys)}")
print(f"   Walls: {sum(len(p.walls) for p in building.perimeters)}")
print(f"   Openings: {sum(len(w.openings) for p in building.perimeters for w in p.walls)}")
