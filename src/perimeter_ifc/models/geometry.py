"""Geometric primitives for the building model (millimetres)."""

from __future__ import annotations

import math

from pydantic import BaseModel, Field, field_validator

POINT_TOLERANCE = 1e-3


class Point2D(BaseModel):
    """2D point in the XY plane."""

    x: float
    y: float

    def distance_to(self, other: Point2D) -> float:
        """Euclidean distance to another point."""
        return math.hypot(self.x - other.x, self.y - other.y)

    def is_close(self, other: Point2D, tolerance: float = POINT_TOLERANCE) -> bool:
        return self.distance_to(other) < tolerance

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Point2D):
            return NotImplemented
        return math.isclose(self.x, other.x, abs_tol=1e-6) and math.isclose(
            self.y, other.y, abs_tol=1e-6
        )

    def __hash__(self) -> int:
        return hash((round(self.x, 6), round(self.y, 6)))


def signed_area(points: list[Point2D]) -> float:
    """Shoelace area: positive for counter-clockwise rings."""
    n = len(points)
    if n < 3:
        return 0.0
    area = 0.0
    for i in range(n):
        j = (i + 1) % n
        area += points[i].x * points[j].y - points[j].x * points[i].y
    return area / 2.0


def dedupe_ring(points: list[Point2D], tolerance: float = POINT_TOLERANCE) -> list[Point2D]:
    """Drop an explicit closing point and merge consecutive near-duplicates."""
    result: list[Point2D] = []
    for p in points:
        if result and result[-1].is_close(p, tolerance):
            continue
        result.append(p)
    while len(result) > 1 and result[0].is_close(result[-1], tolerance):
        result.pop()
    return result


class Polygon2D(BaseModel):
    """Closed polygon in the XY plane. Minimum 3 vertices. Auto-closes (no need to repeat first vertex)."""

    vertices: list[Point2D]

    @field_validator("vertices")
    @classmethod
    def at_least_3_vertices(cls, v: list[Point2D]) -> list[Point2D]:
        if len(v) < 3:
            raise ValueError("Polygon must have at least 3 vertices")
        return v

    @classmethod
    def from_tuples(cls, coords: list[tuple[float, float]]) -> Polygon2D:
        return cls(vertices=[Point2D(x=x, y=y) for x, y in coords])

    @property
    def signed_area(self) -> float:
        return signed_area(self.vertices)

    @property
    def area(self) -> float:
        """Absolute area (shoelace)."""
        return abs(self.signed_area)

    @property
    def is_clockwise(self) -> bool:
        return self.signed_area < 0

    def as_tuples(self) -> list[tuple[float, float]]:
        return [v.as_tuple() for v in self.vertices]


class PolygonWithHoles2D(BaseModel):
    """Outer boundary plus zero or more hole rings."""

    outer: Polygon2D
    holes: list[Polygon2D] = Field(default_factory=list)

    @property
    def area(self) -> float:
        return self.outer.area - sum(h.area for h in self.holes)
