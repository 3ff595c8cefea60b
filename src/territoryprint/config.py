"""Typed configuration loader for `config.yaml`."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml

from .errors import NotFoundError
from .messages import DEFAULT_LANGUAGE, require_language
from .rasters import RasterCatalog, catalog_from_config
from .templates import TEMPLATES


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _int(value: Any, field_name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(f"Expected float for '{field_name}'")


def _path_from_cfg(value: Any, field_name: str, root_dir: Path) -> Path:
    raw = _str(value, field_name)
    p = Path(raw)
    return p if p.is_absolute() else root_dir / p


@dataclass(frozen=True, slots=True)
class PathsConfig:
    congregation: Path
    output_dir: Path
    logs_dir: Path

    @property
    def build_directories(self) -> tuple[Path, ...]:
        return (self.output_dir, self.logs_dir)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> PathsConfig:
        return cls(
            congregation=_path_from_cfg(raw.get("congregation"), "paths.congregation", root_dir),
            output_dir=_path_from_cfg(raw.get("output_dir", "build"), "paths.output_dir", root_dir),
            logs_dir=_path_from_cfg(raw.get("logs_dir", "build/logs"), "paths.logs_dir", root_dir),
        )


@dataclass(frozen=True, slots=True)
class PrintConfig:
    default_language: str
    default_template: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> PrintConfig:
        language = _str(raw.get("default_language", DEFAULT_LANGUAGE), "print.default_language")
        template = _str(
            raw.get("default_template", TEMPLATES.default().id.value),
            "print.default_template",
        )
        try:
            require_language(language)
            TEMPLATES.resolve(template)
        except NotFoundError as exc:
            raise ValueError(f"Invalid print config: {exc}") from exc
        return cls(default_language=language, default_template=template)

    @classmethod
    def default(cls) -> PrintConfig:
        return cls(default_language=DEFAULT_LANGUAGE, default_template=TEMPLATES.default().id.value)


@dataclass(frozen=True, slots=True)
class RenderConfig:
    dpi: int
    min_span_m: float
    format: str
    tile_connections: int

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> RenderConfig:
        dpi = _int(raw.get("dpi", 300), "render.dpi")
        min_span_m = _float(raw.get("min_span_m", 300.0), "render.min_span_m")
        fmt = _str(raw.get("format", "pdf"), "render.format").casefold()
        tile_connections = _int(raw.get("tile_connections", 4), "render.tile_connections")
        if dpi < 50:
            raise ValueError("render.dpi must be >= 50")
        if min_span_m <= 0:
            raise ValueError("render.min_span_m must be > 0")
        if fmt not in {"pdf", "png"}:
            raise ValueError("render.format must be one of: pdf, png")
        if tile_connections < 1:
            raise ValueError("render.tile_connections must be >= 1")
        return cls(dpi=dpi, min_span_m=min_span_m, format=fmt, tile_connections=tile_connections)

    @classmethod
    def default(cls) -> RenderConfig:
        return cls.from_mapping({})


@dataclass(frozen=True, slots=True)
class AppConfig:
    source_path: Path
    paths: PathsConfig
    print_options: PrintConfig
    render: RenderConfig
    rasters: RasterCatalog

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path) -> AppConfig:
        root_dir = source_path.parent.resolve()
        print_raw = raw.get("print")
        render_raw = raw.get("render")
        rasters_raw = raw.get("rasters")
        if rasters_raw is not None and not isinstance(rasters_raw, list):
            raise ValueError("Expected list for 'rasters'")
        for idx, item in enumerate(rasters_raw or []):
            _mapping(item, f"rasters[{idx}]")
        return cls(
            source_path=source_path.resolve(),
            paths=PathsConfig.from_mapping(_mapping(raw.get("paths"), "paths"), root_dir),
            print_options=(
                PrintConfig.default()
                if print_raw is None
                else PrintConfig.from_mapping(_mapping(print_raw, "print"))
            ),
            render=(
                RenderConfig.default()
                if render_raw is None
                else RenderConfig.from_mapping(_mapping(render_raw, "render"))
            ),
            rasters=catalog_from_config(rasters_raw),
        )


def load_config(path: str | Path) -> AppConfig:
    """Load and validate the YAML config file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
