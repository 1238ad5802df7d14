"""
Ballast CLI.

Command-line interface for setbacks, panel grids and array reconciliation
over a site survey JSON file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError as ModelValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .core.config import settings
from .core.models import CellState
from .export.payload import PayloadExporter, build_payload, build_submission
from .geometry.outline import oriented_dimensions
from .ingest.site_parser import Site, SiteParser
from .layout.grid_builder import PanelGridBuilder
from .layout.reconciler import GridReconciler
from .utils.logging_config import ensure_logging

app = typer.Typer(
    name="ballast",
    help="Ballast - solar panel layout for flat-roof ballast systems",
    add_completion=False,
)
console = Console()


@app.callback()
def main_options(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", "-l", help="Log level (DEBUG, INFO, WARNING, ERROR)"
    ),
):
    """Configure logging before any command runs."""
    ensure_logging(log_level or settings.log_level)


def _load_site(site_file: Path) -> Site:
    parser = SiteParser()
    try:
        return parser.load(site_file)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)
    except ModelValidationError as e:
        console.print(f"[red]Invalid site file {site_file}:[/red]")
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"])
            console.print(f"  {location}: {error['msg']}")
        raise typer.Exit(code=1)


def _export(site: Site, layout, output: Optional[Path]) -> None:
    if output is None:
        return
    payload = build_payload(
        layout,
        site.outline,
        site.spec,
        site.geodesy,
        roof_clearance_in=site.roof_clearance_in,
        is_landscape=site.source.panel.landscape,
    )
    PayloadExporter().export(build_submission([payload], site.spec), output)


@app.command()
def setback(
    site_file: Path = typer.Argument(..., help="Site survey JSON file"),
):
    """
    Show the building setback and obstruction clearances for a site.
    """
    site = _load_site(site_file)
    dims = oriented_dimensions(site.outline, site.geodesy)

    console.print(Panel.fit(
        f"[bold]{site.source.building_id or site_file.stem}[/bold]",
        border_style="green"
    ))

    table = Table(title="Outline")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Vertices", str(len(site.outline.polygon)))
    table.add_row("Winding", "clockwise" if site.outline.is_clockwise else "counter-clockwise")
    table.add_row("Heading", f"{site.outline.heading:.1f}°")
    table.add_row("Dimensions", f"{dims.width_ft:,.1f} x {dims.length_ft:,.1f} ft")
    table.add_row("Roof Area", f"{dims.area_sq_ft:,.0f} sq ft")
    table.add_row("Setback Vertices", str(len(site.setback)))
    table.add_row("Obstructions", str(len(site.obstructions)))

    console.print(table)

    if site.setback.is_empty:
        console.print("[yellow]No setback polygon could be built for this outline[/yellow]")

    for obstruction in site.obstructions:
        console.print(
            f"  [cyan]Obstruction {obstruction.obstruction_id}[/cyan]: "
            f"{len(obstruction.polygon)} vertices, height {obstruction.height:g}, "
            f"clearance {obstruction.setback_distance_m:.2f} m"
        )


@app.command()
def layout(
    site_file: Path = typer.Argument(..., help="Site survey JSON file"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the export payload to this JSON file"
    ),
    quarter_turn: bool = typer.Option(
        False, "--quarter-turn/--along-edge", help="Lay the grid across the longest edge"
    ),
    select_all: bool = typer.Option(
        False, "--select-all", help="Select every available panel before exporting"
    ),
):
    """
    Cover the whole building with a classified panel grid.
    """
    site = _load_site(site_file)
    builder = PanelGridBuilder(
        site.geodesy,
        margin_m=settings.grid_margin_m,
        default_obstruction_height=settings.default_obstruction_height,
    )
    panel_layout = builder.build(
        site.outline,
        site.setback,
        site.spec,
        alignment_angle=site.outline.alignment_angle(quarter_turn=quarter_turn),
    )

    if select_all:
        for panel in list(panel_layout.panels):
            if panel.state == CellState.AVAILABLE and panel.facing != "west":
                panel_layout.toggle_selection(panel.row, panel.col)

    table = Table(title=f"Panel Grid ({site.spec.mode.value})")
    table.add_column("State", style="cyan")
    table.add_column("Cells", justify="right")

    table.add_row("Grid", f"{panel_layout.grid.rows} x {panel_layout.grid.cols}")
    for state in (CellState.AVAILABLE, CellState.SELECTED, CellState.INTERSECTS):
        table.add_row(state.value, str(panel_layout.count(state)))

    console.print(table)
    _export(site, panel_layout.to_layout(), output)


@app.command()
def reconcile(
    site_file: Path = typer.Argument(..., help="Site survey JSON file"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the export payload to this JSON file"
    ),
):
    """
    Reconcile the site's arrays into the canonical building grid.
    """
    site = _load_site(site_file)
    manager = site.array_manager()

    console.print(f"[cyan]Placed {len(manager)} arrays[/cyan]")
    for array in manager:
        console.print(
            f"  Array {array.id}: {array.rows} x {array.cols}, rotation {array.rotation:.0f}°, "
            f"{array.panel_count} panels"
        )

    reconciler = GridReconciler(site.spec, site.outline, site.setback, site.geodesy)
    result = reconciler.reconcile(manager)
    meta = result.metadata

    table = Table(title="Reconciled Grid")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Grid", f"{meta.rows} x {meta.cols}")
    table.add_row("Selected", str(meta.selected))
    table.add_row("Obstructed", str(meta.obstructed))
    table.add_row("Available", str(meta.available))
    table.add_row("Total", str(meta.total_panels))
    table.add_row("Rotation", f"{meta.rotation:.1f}°")
    table.add_row("Collisions", str(meta.collisions))

    console.print(table)
    if meta.collisions:
        console.print(
            f"[yellow]{meta.collisions} panels landed on a cell already taken; "
            f"the later panel was kept[/yellow]"
        )
    _export(site, result.to_layout(), output)


@app.command()
def version():
    """Show version information."""
    from . import __version__
    console.print(f"Ballast v{__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
