"""Validation layer for config and congregation data."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .config import AppConfig
from .congregation import load_congregation
from .errors import ParseError
from .geometry import decode_many
from .models import CongregationData


@dataclass(slots=True)
class ValidationReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


class Validator:
    """Checks the congregation snapshot before anything is printed."""

    def __init__(self, cfg: AppConfig) -> None:
        self.cfg = cfg

    def run(self, *, strict_geometry: bool = False) -> ValidationReport:
        report = ValidationReport()
        report.add_info(
            f"Raster catalog: {len(self.cfg.rasters)} entries, default={self.cfg.rasters.default().id}"
        )
        path = self.cfg.paths.congregation
        if not path.exists():
            report.add_error(f"Missing congregation data file: {path}")
            return report
        try:
            data = load_congregation(path)
        except Exception as exc:
            report.add_error(f"Failed parsing congregation file '{path}': {exc}")
            return report
        report.add_info(
            f"Loaded congregation '{data.name or data.id}' from {path}: "
            f"territories={len(data.territories)}, subregions={len(data.subregions)}"
        )
        validate_congregation(data, report, strict_geometry=strict_geometry)
        return report


def validate_congregation(
    data: CongregationData,
    report: ValidationReport,
    *,
    strict_geometry: bool = False,
) -> None:
    if not data.territories:
        report.add_warning("Congregation has no territories.")

    invalid: list[str] = []
    missing: list[str] = []
    for territory in data.territories:
        _check_geometry(f"territory {territory.number}", territory.geometry, invalid, missing)
    for region in data.subregions:
        _check_geometry(f"subregion {region.name}", region.geometry, invalid, missing)

    if invalid:
        report.add_error("Invalid geometry: " + _format_code_list(invalid))
    if missing:
        msg = "Missing geometry (renders as an empty map): " + _format_code_list(missing)
        if strict_geometry:
            report.add_error(msg)
        else:
            report.add_warning(msg)

    territory_ids = {territory.id for territory in data.territories}
    dangling = [
        f"{region.name}->{territory_id}"
        for region in data.subregions
        for territory_id in region.territories
        if territory_id not in territory_ids
    ]
    if dangling:
        report.add_warning("Subregions reference unknown territories: " + _format_code_list(dangling))

    report.add_info(
        "Geometry check summary: "
        f"invalid={len(invalid)}, missing={len(missing)}, dangling_refs={len(dangling)}"
    )


def _check_geometry(
    name: str,
    wkt: str | None,
    invalid: list[str],
    missing: list[str],
) -> None:
    try:
        shapes = decode_many(wkt)
    except ParseError as exc:
        invalid.append(f"{name}({exc})")
        return
    if not shapes or all(shape.is_empty for shape in shapes):
        missing.append(name)


def _format_code_list(values: list[str], limit: int = 12) -> str:
    if len(values) <= limit:
        return ", ".join(values)
    shown = ", ".join(values[:limit])
    return f"{shown}, ... (+{len(values) - limit} more)"


def format_report_lines(report: ValidationReport) -> Iterable[str]:
    if report.infos:
        for info in report.infos:
            yield f"[INFO] {info}"
    if report.warnings:
        for warning in report.warnings:
            yield f"[WARN] {warning}"
    if report.errors:
        for error in report.errors:
            yield f"[ERROR] {error}"
    if report.ok:
        yield "[OK] Validation completed with no errors."
