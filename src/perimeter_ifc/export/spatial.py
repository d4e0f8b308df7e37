"""IFC project context and spatial structure.

Project → Site → Building → Storey. Each level's placement is relative to
its parent's placement; containment is expressed separately through
IfcRelAggregates (spatial levels) and IfcRelContainedInSpatialStructure
(building elements per storey).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from perimeter_ifc.config import ExportSettings
from perimeter_ifc.export.elevation import StoreyRuntimeInfo
from perimeter_ifc.export.geometry import GeometryEmitter, IfcContext
from perimeter_ifc.export.step import DERIVED, Handle, StepEnum, StepWriter
from perimeter_ifc.models.ifc_id import generate_ifc_id

logger = logging.getLogger(__name__)


@dataclass
class SpatialHierarchy:
    """Handles of the spatial structure written for one export."""

    project: Handle
    site: Handle
    building: Handle
    building_placement: Handle
    storeys: dict[str, Handle] = field(default_factory=dict)
    storey_placements: dict[str, Handle] = field(default_factory=dict)


def create_owner_history(writer: StepWriter, settings: ExportSettings, now: int | None = None) -> Handle:
    """Person, organisation and application that authored the file."""
    version = settings.version_string
    person = writer.add_entity(
        "IFCPERSON", [None, settings.author, None, None, None, None, None, None]
    )
    organization = writer.add_entity(
        "IFCORGANIZATION", [None, settings.organization, None, None, None]
    )
    person_org = writer.add_entity("IFCPERSONANDORGANIZATION", [person, organization, None])
    application = writer.add_entity(
        "IFCAPPLICATION",
        [
            organization,
            version,
            settings.application_name,
            f"{settings.application_name}-{version}".replace(" ", "-"),
        ],
    )
    created = int(time.time()) if now is None else now
    return writer.add_entity(
        "IFCOWNERHISTORY",
        [person_org, application, None, None, None, None, None, created],
    )


def create_units(writer: StepWriter) -> Handle:
    """Millimetres, square and cubic metres, radians."""
    units = [
        writer.add_entity(
            "IFCSIUNIT", [DERIVED, StepEnum("LENGTHUNIT"), StepEnum("MILLI"), StepEnum("METRE")]
        ),
        writer.add_entity(
            "IFCSIUNIT", [DERIVED, StepEnum("AREAUNIT"), None, StepEnum("SQUARE_METRE")]
        ),
        writer.add_entity(
            "IFCSIUNIT", [DERIVED, StepEnum("VOLUMEUNIT"), None, StepEnum("CUBIC_METRE")]
        ),
        writer.add_entity(
            "IFCSIUNIT", [DERIVED, StepEnum("PLANEANGLEUNIT"), None, StepEnum("RADIAN")]
        ),
    ]
    return writer.add_entity("IFCUNITASSIGNMENT", [units])


def create_geometric_context(writer: StepWriter, owner_history: Handle) -> tuple[IfcContext, Handle]:
    """World coordinate system, 3D model context and its Body sub-context."""
    origin = writer.add_entity("IFCCARTESIANPOINT", [[0.0, 0.0, 0.0]])
    z_axis = writer.add_entity("IFCDIRECTION", [[0.0, 0.0, 1.0]])
    x_axis = writer.add_entity("IFCDIRECTION", [[1.0, 0.0, 0.0]])
    world = writer.add_entity("IFCAXIS2PLACEMENT3D", [origin, z_axis, x_axis])

    model_context = writer.add_entity(
        "IFCGEOMETRICREPRESENTATIONCONTEXT", ["Model", "Model", 3, 0.01, world, None]
    )
    body_context = writer.add_entity(
        "IFCGEOMETRICREPRESENTATIONSUBCONTEXT",
        [
            "Body", "Model", DERIVED, DERIVED, DERIVED, DERIVED,
            model_context, None, StepEnum("MODEL_VIEW"), None,
        ],
    )
    context = IfcContext(
        owner_history=owner_history,
        body_context=body_context,
        world_placement=world,
        z_axis=z_axis,
        x_axis=x_axis,
    )
    return context, model_context


def _aggregate(emitter: GeometryEmitter, parent: Handle, children: list[Handle]) -> Handle:
    return emitter.writer.add_entity(
        "IFCRELAGGREGATES",
        [generate_ifc_id(), emitter.context.owner_history, None, None, parent, children],
    )


def _default_postal_address(writer: StepWriter) -> Handle:
    return writer.add_entity(
        "IFCPOSTALADDRESS",
        [
            StepEnum("OFFICE"), None, None, None, ["Main Office"], None,
            "Unknown City", None, None, "Unknown Country",
        ],
    )


def build_spatial_hierarchy(
    emitter: GeometryEmitter,
    infos: list[StoreyRuntimeInfo],
    settings: ExportSettings,
    model_context: Handle,
    unit_assignment: Handle,
) -> SpatialHierarchy:
    """Write project, site, building and one storey per runtime info."""
    writer = emitter.writer
    ctx = emitter.context

    project = writer.add_entity(
        "IFCPROJECT",
        [
            generate_ifc_id(), ctx.owner_history, settings.project_name,
            None, None, None, None, [model_context], unit_assignment,
        ],
    )

    site_placement = writer.add_entity("IFCLOCALPLACEMENT", [None, ctx.world_placement])
    site = writer.add_entity(
        "IFCSITE",
        [
            generate_ifc_id(), ctx.owner_history, settings.site_name, None, None,
            site_placement, None, None, StepEnum("ELEMENT"),
            None, None, None, None, None,
        ],
    )

    building_placement = writer.add_entity(
        "IFCLOCALPLACEMENT", [site_placement, ctx.world_placement]
    )
    address = _default_postal_address(writer)
    building = writer.add_entity(
        "IFCBUILDING",
        [
            generate_ifc_id(), ctx.owner_history, settings.building_name, None, None,
            building_placement, None, None, StepEnum("ELEMENT"),
            0.0, None, address,
        ],
    )

    _aggregate(emitter, project, [site])
    _aggregate(emitter, site, [building])

    hierarchy = SpatialHierarchy(
        project=project,
        site=site,
        building=building,
        building_placement=building_placement,
    )

    for info in infos:
        placement = emitter.local_placement(building_placement, (0.0, 0.0, info.elevation))
        storey = writer.add_entity(
            "IFCBUILDINGSTOREY",
            [
                generate_ifc_id(), ctx.owner_history, info.name, None, None,
                placement, None, None, StepEnum("ELEMENT"), float(info.elevation),
            ],
        )
        _aggregate(emitter, building, [storey])
        hierarchy.storeys[info.storey_id] = storey
        hierarchy.storey_placements[info.storey_id] = placement

    return hierarchy


def contain_elements(emitter: GeometryEmitter, storey: Handle, elements: list[Handle]) -> Handle | None:
    """Spatial containment of a storey's elements. Nothing is written for an empty storey."""
    if not elements:
        return None
    return emitter.writer.add_entity(
        "IFCRELCONTAINEDINSPATIALSTRUCTURE",
        [generate_ifc_id(), emitter.context.owner_history, None, None, elements, storey],
    )
