"""Perimeter IFC CLI.

Usage:
    python -m perimeter_ifc export MODEL.json [-o OUT.ifc] [--settings S.json] [--validate]
    python -m perimeter_ifc check FILE.ifc
    python -m perimeter_ifc version

Output is JSON on stdout; failures print ``{"ok": false, ...}`` and exit 1.
"""
from __future__ import annotations

import json
import logging
from collections import Counter
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from perimeter_ifc.config import ExportSettings
from perimeter_ifc.errors import IFCExportError
from perimeter_ifc.export.ifc import IFCExporter
from perimeter_ifc.export.step import find_dangling_references_in_text, iter_records
from perimeter_ifc.models.building import BuildingModel

app = typer.Typer(
    name="perimeter_ifc",
    help="Export perimeter building models to IFC4.",
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _output(data: dict) -> None:
    """Print JSON output to stdout."""
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _fail(message: str, **extra: object) -> None:
    _output({"ok": False, "error": message, **extra})
    raise typer.Exit(1)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command()
def export(
    model_path: Path = typer.Argument(..., help="Building model JSON file"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output .ifc path"),
    settings_path: Optional[Path] = typer.Option(None, "--settings", help="Export settings JSON"),
    validate: bool = typer.Option(False, "--validate", help="Check every #id reference"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Export a building model to an IFC file."""
    _setup_logging(verbose)
    if not model_path.exists():
        _fail(f"Model not found: {model_path}")

    try:
        model = BuildingModel.load(model_path)
        settings = ExportSettings.load(settings_path) if settings_path else ExportSettings()
    except ValidationError as e:
        _fail(f"Invalid input: {e.error_count()} validation error(s)", details=str(e))

    if validate:
        settings = settings.model_copy(update={"validate_references": True})

    exporter = IFCExporter(model, settings)
    target = output or model_path.parent / exporter.filename()
    try:
        exporter.write(target)
    except IFCExportError as e:
        _fail(e.message, details=e.details)

    counts = Counter(t for _, t, _ in iter_records(target.read_text()))
    _output({
        "ok": True,
        "output": str(target),
        "entities": sum(counts.values()),
        "storeys": counts.get("IFCBUILDINGSTOREY", 0),
        "walls": counts.get("IFCWALL", 0),
        "openings": counts.get("IFCOPENINGELEMENT", 0),
        "slabs": counts.get("IFCSLAB", 0),
    })


@app.command()
def check(ifc_path: Path = typer.Argument(..., help="IFC file to check")):
    """Report references that point at missing entities."""
    if not ifc_path.exists():
        _fail(f"File not found: {ifc_path}")
    try:
        dangling = find_dangling_references_in_text(ifc_path.read_text())
    except IFCExportError as e:
        _fail(e.message)
    result = {
        "ok": not dangling,
        "dangling": [{"entity": src, "reference": ref} for src, ref in dangling],
    }
    _output(result)
    if dangling:
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version."""
    from perimeter_ifc import __version__

    typer.echo(f"perimeter-ifc v{__version__}")


if __name__ == "__main__":
    app()
