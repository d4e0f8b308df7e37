"""Export settings.

Header metadata, naming, and the geometric conventions used when building
footprints and profiles. Defaults produce a file that opens in common IFC4
viewers; settings can be loaded from a JSON file.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


class FootprintFace(str, Enum):
    """Which face of a perimeter bounds the floor footprint.

    OUTSIDE: outer face of the exterior walls (slab runs under the walls)
    INSIDE: inner face (slab stops at the finished wall surface)
    """

    OUTSIDE = "outside"
    INSIDE = "inside"


class ExportSettings(BaseModel):
    """Options for one IFC export run."""

    project_name: str = "Perimeter IFC Project"
    site_name: str = "Site"
    building_name: str = "Building"
    author: str = "Perimeter IFC User"
    organization: str = "Perimeter IFC"
    application_name: str = "Perimeter IFC"
    application_version: str = Field(default="", description="Defaults to the package version")
    schema_name: str = Field(default="IFC4", description="FILE_SCHEMA identifier")
    filename_prefix: str = "perimeter-ifc"

    footprint_face: FootprintFace = Field(
        default=FootprintFace.OUTSIDE,
        description="Perimeter face used for the floor footprint",
    )
    repeat_closing_point: bool = Field(
        default=True,
        description="Repeat the first point at the end of closed polylines",
    )
    point_tolerance: float = Field(
        default=1e-3, gt=0, description="Point equality tolerance in millimetres"
    )
    number_precision: int = Field(default=6, ge=1, le=12)
    validate_references: bool = Field(
        default=False, description="Check every #id reference after building the file"
    )

    @field_validator("schema_name")
    @classmethod
    def known_schema(cls, v: str) -> str:
        v = v.upper()
        if v != "IFC4":
            raise ValueError(f"Unsupported schema '{v}' (entity layouts are written for IFC4)")
        return v

    @property
    def version_string(self) -> str:
        if self.application_version:
            return self.application_version
        from perimeter_ifc import __version__

        return __version__

    @classmethod
    def load(cls, path: str | Path) -> ExportSettings:
        """Load settings from a JSON file."""
        return cls.model_validate_json(Path(path).read_text())
