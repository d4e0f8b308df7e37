"""IFC4 export of a building model.

Converts the perimeter-based building model into an ISO-10303-21 text file:
spatial hierarchy, walls with openings, and one floor slab per storey.
Each export call owns a fresh writer, id space and material cache; the
output is all-or-nothing.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path

from perimeter_ifc.config import ExportSettings
from perimeter_ifc.errors import EmptyModelError
from perimeter_ifc.export.elevation import plan_storeys
from perimeter_ifc.export.footprint import compute_floor_geometry
from perimeter_ifc.export.geometry import GeometryEmitter, MaterialUsageCache
from perimeter_ifc.export.spatial import (
    build_spatial_hierarchy,
    contain_elements,
    create_geometric_context,
    create_owner_history,
    create_units,
)
from perimeter_ifc.export.step import HeaderOptions, StepWriter
from perimeter_ifc.models.building import BuildingModel

logger = logging.getLogger(__name__)


class IFCExporter:
    """Export a BuildingModel to IFC4 text."""

    def __init__(self, model: BuildingModel, settings: ExportSettings | None = None):
        self.model = model
        self.settings = settings or ExportSettings()

    def export(self, timestamp: datetime | None = None) -> str:
        """Build the complete IFC file and return it as text."""
        model = self.model
        settings = self.settings

        storeys = model.get_storeys_ordered_by_level()
        if not storeys:
            raise EmptyModelError("Cannot export IFC without any storeys")

        infos = plan_storeys(model, storeys)
        floors = compute_floor_geometry(
            model, infos, settings.footprint_face, settings.point_tolerance
        )

        writer = StepWriter(precision=settings.number_precision)
        emitter = GeometryEmitter(writer, settings)

        owner_history = create_owner_history(writer, settings)
        unit_assignment = create_units(writer)
        context, model_context = create_geometric_context(writer, owner_history)
        emitter.bind_context(context)

        hierarchy = build_spatial_hierarchy(emitter, infos, settings, model_context, unit_assignment)

        material_cache = MaterialUsageCache(precision=settings.number_precision)

        for info in infos:
            storey_placement = hierarchy.storey_placements[info.storey_id]
            elements = []

            for perimeter in model.get_perimeters_by_storey(info.storey_id):
                elements.extend(
                    emitter.emit_walls(model, perimeter, info, storey_placement, material_cache)
                )

            for floor in floors:
                if floor.storey_id == info.storey_id:
                    elements.append(emitter.emit_slab(floor, storey_placement))

            contain_elements(emitter, hierarchy.storeys[info.storey_id], elements)

        if settings.validate_references:
            writer.validate_references()

        text = writer.build(HeaderOptions(
            name=self.filename(timestamp.date() if timestamp else None),
            author=settings.author,
            organization=settings.organization,
            application=f"{settings.application_name} {settings.version_string}",
            schema=settings.schema_name,
            timestamp=timestamp,
        ))
        logger.info(
            "Exported %s: %d storeys, %d entities, %d material usages",
            model.name, len(infos), len(writer), len(material_cache),
        )
        return text

    def export_bytes(self, timestamp: datetime | None = None) -> bytes:
        """The IFC file as bytes. Non-ASCII text is already escaped by the writer."""
        return self.export(timestamp).encode("ascii")

    def write(self, output_path: str | Path) -> Path:
        """Export to a file. Returns the output path."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(self.export_bytes())
        return output_path

    def filename(self, today: date | None = None) -> str:
        """Suggested download name, ``<prefix>-<YYYY-MM-DD>.ifc``."""
        today = today or date.today()
        return f"{self.settings.filename_prefix}-{today.isoformat()}.ifc"


def export_model_to_ifc(model: BuildingModel, settings: ExportSettings | None = None) -> str:
    """Export a model and return the IFC text."""
    return IFCExporter(model, settings).export()
