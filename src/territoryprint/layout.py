"""Page layout: mounts printable units on fixed-size figures and writes them out."""

from __future__ import annotations

import dataclasses
import logging
import re
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from .errors import EmptyGeometryWarning
from .mapview import FitPolicy, MapHandle, MapView
from .models import PrintableUnit
from .rasters import RasterCatalog
from .tiles import TileFetcher

_LOGGER = logging.getLogger("territoryprint.layout")

_MM_PER_INCH = 25.4
_SAFE_NAME_RE = re.compile(r"[^A-Za-z0-9_.-]+")


@dataclass(frozen=True, slots=True)
class PageOptions:
    dpi: int = 300
    min_span_m: float = 300.0


@dataclass(slots=True)
class MountedPage:
    unit: PrintableUnit
    figure: Any
    views: tuple[MapView, ...]
    handles: tuple[MapHandle, ...]


def mount_page(
    unit: PrintableUnit,
    *,
    catalog: RasterCatalog,
    fetcher: TileFetcher | None = None,
    options: PageOptions = PageOptions(),
) -> MountedPage:
    """Create the page figure with its chrome and one mounted map per mount point."""
    plt = _require_pyplot()
    width_mm, height_mm = unit.page_size_mm
    fig = plt.figure(figsize=(width_mm / _MM_PER_INCH, height_mm / _MM_PER_INCH), dpi=options.dpi)
    views: list[MapView] = []
    handles: list[MapHandle] = []
    try:
        fig.patch.set_facecolor("white")
        for block in unit.chrome:
            fig.text(
                block.x,
                block.y,
                block.text,
                fontsize=block.font_size,
                fontweight=block.weight,
                ha=block.ha,
                va=block.va,
                wrap=block.wrap,
            )
        for spec in unit.maps:
            ax = fig.add_axes(list(spec.rect))
            view = MapView(
                catalog,
                fetcher=fetcher,
                fit=FitPolicy(padding_ratio=spec.padding_ratio, min_span_m=options.min_span_m),
                label_font_size=spec.label_font_size,
            )
            with warnings.catch_warnings(record=True) as caught:
                warnings.simplefilter("always", EmptyGeometryWarning)
                handles.append(view.mount(ax, spec.features, unit.raster.id))
            views.append(view)
            for warning in caught:
                if issubclass(warning.category, EmptyGeometryWarning):
                    _LOGGER.warning(
                        "%s %s: map '%s' has no geometry",
                        unit.template_id,
                        unit.item_id,
                        spec.name,
                    )
                else:
                    warnings.warn_explicit(
                        warning.message,
                        warning.category,
                        warning.filename,
                        warning.lineno,
                    )
    except Exception:
        for view, handle in zip(views, handles):
            view.unmount(handle)
        plt.close(fig)
        raise
    return MountedPage(unit=unit, figure=fig, views=tuple(views), handles=tuple(handles))


def close_page(page: MountedPage) -> None:
    plt = _require_pyplot()
    for view, handle in zip(page.views, page.handles):
        view.unmount(handle)
    plt.close(page.figure)


def render_document(
    units: Sequence[PrintableUnit],
    output_path: Path,
    *,
    catalog: RasterCatalog,
    fetcher: TileFetcher | None = None,
    options: PageOptions = PageOptions(),
    fmt: str = "pdf",
) -> list[Path]:
    """Write units as pages; one multi-page PDF, or one PNG per unit."""
    chosen = fmt.casefold()
    if chosen not in {"pdf", "png"}:
        raise ValueError("fmt must be 'pdf' or 'png'")
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if chosen == "pdf":
        from matplotlib.backends.backend_pdf import PdfPages

        with PdfPages(output_path) as pdf:
            for idx, unit in enumerate(units, start=1):
                page = mount_page(unit, catalog=catalog, fetcher=fetcher, options=options)
                try:
                    pdf.savefig(page.figure)
                finally:
                    close_page(page)
                _LOGGER.info("[print] (%d/%d) %s %s", idx, len(units), unit.template_id, unit.title)
        return [output_path]

    written: list[Path] = []
    for idx, unit in enumerate(units, start=1):
        page_path = output_path.with_name(
            f"{output_path.stem}_{idx:03d}_{_safe_name(unit.item_id)}.png"
        )
        page = mount_page(unit, catalog=catalog, fetcher=fetcher, options=options)
        try:
            page.figure.savefig(page_path, dpi=options.dpi, format="png")
        finally:
            close_page(page)
        written.append(page_path)
        _LOGGER.info("[print] (%d/%d) %s -> %s", idx, len(units), unit.title, page_path)
    return written


class PrintPreview:
    """Keeps pages mounted across selection changes.

    `sync` reuses a mounted page when only its raster changed and forwards the
    change with `MapView.set_raster`; pages whose content changed are
    remounted, pages no longer selected are closed. When a remount fails the
    pages mounted by that call are closed again and `pages` keeps only the
    earlier pages that are still open.
    """

    def __init__(
        self,
        catalog: RasterCatalog,
        *,
        fetcher: TileFetcher | None = None,
        options: PageOptions = PageOptions(dpi=100),
    ) -> None:
        self._catalog = catalog
        self._fetcher = fetcher
        self._options = options
        self._pages: list[MountedPage] = []

    @property
    def pages(self) -> tuple[MountedPage, ...]:
        return tuple(self._pages)

    def sync(self, units: Sequence[PrintableUnit]) -> None:
        existing = {page.unit.key: page for page in self._pages}
        pages: list[MountedPage] = []
        mounted: list[MountedPage] = []
        closed: list[MountedPage] = []
        try:
            for unit in units:
                page = existing.pop(unit.key, None)
                if page is not None and _same_content(page.unit, unit):
                    if page.unit.raster.id != unit.raster.id:
                        for view, handle in zip(page.views, page.handles):
                            view.set_raster(handle, unit.raster.id)
                    page.unit = unit
                    pages.append(page)
                    continue
                if page is not None:
                    close_page(page)
                    closed.append(page)
                page = mount_page(
                    unit,
                    catalog=self._catalog,
                    fetcher=self._fetcher,
                    options=self._options,
                )
                mounted.append(page)
                pages.append(page)
        except Exception:
            for page in mounted:
                close_page(page)
            self._pages = [
                page for page in self._pages if all(page is not item for item in closed)
            ]
            raise
        for stale in existing.values():
            close_page(stale)
        self._pages = pages

    def close(self) -> None:
        for page in self._pages:
            close_page(page)
        self._pages = []

    def __enter__(self) -> PrintPreview:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def _same_content(previous: PrintableUnit, current: PrintableUnit) -> bool:
    return dataclasses.replace(previous, raster=current.raster) == current


def _safe_name(value: str) -> str:
    return _SAFE_NAME_RE.sub("_", value).strip("_") or "unit"


def _require_pyplot() -> Any:
    try:
        import matplotlib

        matplotlib.use("Agg", force=False)
        import matplotlib.pyplot as plt
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for page layout") from exc
    return plt
