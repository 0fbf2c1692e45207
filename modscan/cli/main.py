"""
CLI for mapping and recognizing mod screenshots.

Usage:
    modscan --help
    modscan map screenshot.png
    modscan analyze screenshot.png --save outputs/results.json
    modscan correct outputs/results.json slot_0_1 --selected
    modscan recalibrate
    modscan weights
"""

import json
import logging
from pathlib import Path
from typing import Annotated

import typer

from ..core.config import get_settings
from ..core.errors import ModScanError
from ..core.image import load_image
from ..core.layout import LayoutDescriptor, default_layout, load_layout_file
from ..core.types import Algorithm, AnalyzerResult
from ..pipeline import ScreenshotPipeline
from ..recognition.calibration import (
    CalibrationStore,
    Recalibrator,
    WeightsRegistry,
    load_weights_file,
    save_weights_file,
)
from ..storage import JsonFileStore


app = typer.Typer(
    name="modscan",
    help="Locate hex mods in a screenshot and detect which are selected.",
    add_completion=False,
)

LayoutOption = Annotated[Path | None, typer.Option("--layout", "-l", help="Layout JSON file")]


@app.callback()
def configure(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
):
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _fail(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


def _layout(path: Path | None) -> LayoutDescriptor:
    return load_layout_file(str(path)) if path else default_layout()


@app.command("map")
def map_image(
    image: Annotated[Path, typer.Argument(help="Screenshot file")],
    layout: LayoutOption = None,
):
    """Print the coordinate map of a screenshot."""
    try:
        with ScreenshotPipeline(layout=_layout(layout)) as pipeline:
            mapping = pipeline.map_screenshot(load_image(str(image)))
    except ModScanError as e:
        _fail(str(e))

    scale = mapping.scale
    zone = mapping.zone_boundary
    typer.echo(f"\nScale: {scale.scale_factor:.3f} ({scale.method.value}, confidence {scale.confidence:.2f})")
    typer.echo(f"Center: ({mapping.center.x:.1f}, {mapping.center.y:.1f})")
    typer.echo(f"Zone gap: y={zone.boundary_y:.1f}, {zone.gap_size_px:.0f}px, confidence {zone.confidence:.2f}\n")

    typer.echo(f"{'ID':<14} {'Name':<10} {'Zone':<8} {'Axial':<10} {'Center':<18} {'Conf':>5}")
    typer.echo("-" * 71)
    for eid, entity in sorted(mapping.coordinate_map.items()):
        spec = pipeline.layout.core_entity(eid)
        name = spec.display_name if spec else "-"
        axial = str(entity.axial) if entity.axial else "-"
        center = f"({entity.center.x:.0f}, {entity.center.y:.0f})"
        typer.echo(f"{eid:<14} {name:<10} {entity.zone.value:<8} {axial:<10} {center:<18} {entity.confidence:>5.2f}")

    box = mapping.bounding_box
    typer.echo(f"\nBounding box: ({box.left:.0f}, {box.top:.0f}) - ({box.right:.0f}, {box.bottom:.0f})")


@app.command()
def analyze(
    image: Annotated[Path, typer.Argument(help="Screenshot file")],
    layout: LayoutOption = None,
    save: Annotated[Path | None, typer.Option("--save", "-s", help="Write results JSON here")] = None,
):
    """Map a screenshot and classify every mapped hex."""
    try:
        with ScreenshotPipeline.persistent(layout=_layout(layout)) as pipeline:
            result = pipeline.process(load_image(str(image)))
    except ModScanError as e:
        _fail(str(e))

    batch = result.recognition
    typer.echo(f"\n{'ID':<14} {'Selected':<9} {'Conf':>5} {'Agree':>6}  Review")
    typer.echo("-" * 46)
    for eid, consensus in sorted(batch.results.items()):
        flag = "yes" if consensus.needs_review else ""
        typer.echo(
            f"{eid:<14} {str(consensus.selected):<9} {consensus.confidence:>5.2f} {consensus.agreement:>6.2f}  {flag}"
        )

    stats = batch.stats
    typer.echo(
        f"\n{stats.selected_count}/{stats.total_analyzed} selected, "
        f"avg confidence {stats.average_confidence:.2f}, {stats.processing_time_ms:.0f} ms"
    )
    if batch.partial:
        typer.echo(f"Partial result, missing: {', '.join(batch.missing)}", err=True)

    if save:
        save.parent.mkdir(parents=True, exist_ok=True)
        save.write_text(json.dumps(result.to_dict(), indent=2), encoding="utf-8")
        typer.echo(f"Saved: {save}")


@app.command()
def correct(
    results: Annotated[Path, typer.Argument(help="Results JSON written by 'analyze --save'")],
    region_id: Annotated[str, typer.Argument(help="Entity id to correct")],
    selected: Annotated[bool, typer.Option("--selected/--unselected", help="The true state")] = True,
):
    """Record a user correction for one region."""
    try:
        data = json.loads(results.read_text(encoding="utf-8"))
        region = data["recognition"]["results"][region_id]
    except (OSError, json.JSONDecodeError) as e:
        _fail(f"Could not read {results}: {e}")
    except KeyError:
        _fail(f"Region '{region_id}' not found in {results}")

    analyzer_results = {
        Algorithm(name): AnalyzerResult.from_dict(payload)
        for name, payload in region.get("per_algorithm", {}).items()
    }

    cal = get_settings().calibration
    store = CalibrationStore(JsonFileStore(cal.store_path))
    store.record_correction(region_id, analyzer_results, selected)
    typer.echo(f"Recorded {region_id} as {'selected' if selected else 'unselected'} ({len(store)} corrections)")

    if len(store) % cal.recalibrate_every == 0:
        _recalibrate(store)


def _recalibrate(store: CalibrationStore) -> None:
    cal = get_settings().calibration
    registry = WeightsRegistry(load_weights_file(cal.weights_path))
    weights = Recalibrator(store, registry, cal).recalibrate()
    save_weights_file(cal.weights_path, weights)
    typer.echo("Weights: " + ", ".join(f"{k}={v:.3f}" for k, v in weights.as_dict().items()))


@app.command()
def recalibrate():
    """Recompute analyzer weights from the correction log."""
    cal = get_settings().calibration
    store = CalibrationStore(JsonFileStore(cal.store_path))
    if cal.retention_days > 0:
        store.prune(cal.retention_days * 86400.0)
    typer.echo(f"{len(store)} corrections")
    _recalibrate(store)


@app.command()
def weights():
    """Show the current analyzer weights."""
    cal = get_settings().calibration
    current = load_weights_file(cal.weights_path)
    source = cal.weights_path if current else "defaults"
    current = WeightsRegistry(current).current()
    typer.echo(f"\nWeights ({source}):")
    for name, value in current.as_dict().items():
        typer.echo(f"  {name:<11} {value:.3f}")


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
