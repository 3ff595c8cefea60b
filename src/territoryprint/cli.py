"""CLI entrypoint for territory printouts."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from .config import AppConfig, load_config
from .messages import sorted_languages
from .printout import PrintRequest, format_print_lines, run_print
from .templates import TEMPLATES
from .util import ensure_directories, setup_logging
from .validate import Validator, format_report_lines

LOGGER = logging.getLogger("territoryprint.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="territoryprint",
        description="Territory card and subregion map printouts.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", default="config.yaml", help="Path to YAML config.")
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")

    validate_p = subparsers.add_parser("validate", help="Validate config and congregation data.")
    add_common(validate_p)
    validate_p.add_argument(
        "--strict-geometry",
        action="store_true",
        help="Treat territories without geometry as errors.",
    )

    for name, help_text in (
        ("list-templates", "List document templates."),
        ("list-rasters", "List map rasters."),
        ("list-languages", "List print languages."),
    ):
        list_p = subparsers.add_parser(name, help=help_text)
        add_common(list_p)

    render_p = subparsers.add_parser("render", help="Render printouts for a selection.")
    add_common(render_p)
    render_p.add_argument("--template", default=None, help="Template id.")
    render_p.add_argument("--raster", default=None, help="Map raster id.")
    render_p.add_argument("--language", default=None, help="Language code.")
    render_p.add_argument(
        "--territory",
        action="append",
        default=[],
        help="Territory id, in print order. Can be repeated.",
    )
    render_p.add_argument(
        "--region",
        action="append",
        default=[],
        help="Subregion id, in print order. Can be repeated.",
    )
    render_p.add_argument("--output", default=None, help="Output file path.")
    return parser


def _load_and_setup(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(args.config)
    setup_logging(cfg.paths.logs_dir / "print.log", verbose=args.verbose)
    ensure_directories(cfg.paths.build_directories)
    return cfg


def _run_validate(cfg: AppConfig, *, strict_geometry: bool) -> int:
    report = Validator(cfg).run(strict_geometry=strict_geometry)
    for line in format_report_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _run_list(cfg: AppConfig, command: str) -> int:
    if command == "list-templates":
        for template in TEMPLATES.list():
            LOGGER.info("%s\t%s\t%s", template.id.value, template.granularity.value, template.name)
    elif command == "list-rasters":
        for raster in cfg.rasters.list():
            LOGGER.info("%s\t%s", raster.id, raster.name)
    else:
        for code, name in sorted_languages():
            LOGGER.info("%s\t%s", code, name)
    return 0


def _run_render(cfg: AppConfig, args: argparse.Namespace) -> int:
    request = PrintRequest(
        template_id=args.template,
        raster_id=args.raster,
        language=args.language,
        territory_ids=tuple(str(item) for item in args.territory),
        region_ids=tuple(str(item) for item in args.region),
        output_path=Path(args.output).resolve() if args.output else None,
    )
    report = run_print(cfg, request)
    for line in format_print_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _dispatch(args: argparse.Namespace) -> int:
    cfg = _load_and_setup(args)
    command = str(args.command)
    if command == "validate":
        return _run_validate(cfg, strict_geometry=bool(args.strict_geometry))
    if command in {"list-templates", "list-rasters", "list-languages"}:
        return _run_list(cfg, command)
    if command == "render":
        return _run_render(cfg, args)
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
