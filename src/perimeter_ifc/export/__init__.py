"""IFC export pipeline.

- step: ISO-10303-21 writer and parser
- elevation: storey elevations and wall heights
- footprint: floor outlines per storey
- geometry: walls, openings, slabs
- spatial: project context and spatial hierarchy
- ifc: export orchestration
"""

from perimeter_ifc.export.ifc import IFCExporter, export_model_to_ifc

__all__ = ["IFCExporter", "export_model_to_ifc"]
