"""Batch print run: selection -> printable units -> document + manifest."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .config import AppConfig
from .congregation import load_congregation
from .errors import NotFoundError, ParseError
from .layout import PageOptions, render_document
from .tiles import TileFetcher, raster_fetcher
from .models import Granularity, PrintManifest
from .selection import PrintSelection
from .util import sha256_file, write_manifest

_LOGGER = logging.getLogger("territoryprint.printout")


@dataclass(frozen=True, slots=True)
class PrintRequest:
    template_id: str | None = None
    raster_id: str | None = None
    language: str | None = None
    territory_ids: tuple[str, ...] = ()
    region_ids: tuple[str, ...] = ()
    output_path: Path | None = None


@dataclass(slots=True)
class PrintReport:
    output_paths: list[Path] = field(default_factory=list)
    manifest_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


def run_print(
    cfg: AppConfig,
    request: PrintRequest,
    *,
    fetcher: TileFetcher | None = None,
) -> PrintReport:
    """Render the requested selection into one document under the output dir."""
    report = PrintReport()
    t0 = time.perf_counter()
    try:
        data = load_congregation(cfg.paths.congregation)
    except Exception as exc:
        report.add_error(f"Failed loading congregation data '{cfg.paths.congregation}': {exc}")
        return report
    report.add_info(
        f"Loaded {len(data.territories)} territories and {len(data.subregions)} subregions"
    )

    try:
        selection = PrintSelection(
            data,
            rasters=cfg.rasters,
            language=request.language or cfg.print_options.default_language,
            template_id=request.template_id or cfg.print_options.default_template,
        )
        if request.raster_id is not None:
            selection.set_raster(request.raster_id)
        if request.territory_ids:
            selection.set_selection(Granularity.TERRITORY, request.territory_ids)
        if request.region_ids:
            selection.set_selection(Granularity.REGION, request.region_ids)
    except NotFoundError as exc:
        report.add_error(str(exc))
        return report

    state = selection.state
    report.add_info(
        f"Template={state.template_id}, raster={state.map_raster_id}, language={state.language}, "
        f"items={len(selection.active_ids)}"
    )
    try:
        units = selection.compute_units()
    except ParseError as exc:
        report.add_error(f"Geometry could not be decoded: {exc}")
        return report
    if not units:
        report.add_error("Nothing selected for printing.")
        return report

    output_path = request.output_path or (
        cfg.paths.output_dir / f"{state.template_id}.{cfg.render.format}"
    )
    try:
        written = render_document(
            units,
            output_path,
            catalog=cfg.rasters,
            fetcher=fetcher or raster_fetcher(n_connections=cfg.render.tile_connections),
            options=PageOptions(dpi=cfg.render.dpi, min_span_m=cfg.render.min_span_m),
            fmt=cfg.render.format,
        )
    except Exception as exc:
        _LOGGER.exception("Print rendering failed")
        report.add_error(f"Print rendering failed: {exc}")
        return report
    report.output_paths.extend(written)

    manifest = PrintManifest.create(
        config_hash_sha256=sha256_file(cfg.source_path),
        output_path=str(output_path),
        units=units,
    )
    report.manifest_path = write_manifest(output_path, manifest.to_dict())

    elapsed = time.perf_counter() - t0
    report.summary = {"units": len(units), "files": len(written)}
    report.add_info(f"Printed {len(units)} page(s) in {elapsed:.2f}s")
    return report


def format_print_lines(report: PrintReport) -> Sequence[str]:
    lines: list[str] = []
    lines.extend(f"[INFO] {msg}" for msg in report.infos)
    lines.extend(f"[WARN] {msg}" for msg in report.warnings)
    lines.extend(f"[ERROR] {msg}" for msg in report.errors)
    if report.ok:
        lines.extend(f"[OUT] {path}" for path in report.output_paths)
        lines.append("[OK] Printing completed with no errors.")
    return lines
