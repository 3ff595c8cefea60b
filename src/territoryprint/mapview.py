"""Mountable map surface: framed vector overlay over a swappable tile raster."""

from __future__ import annotations

import itertools
import logging
import warnings
import weakref
from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence

from matplotlib.artist import allow_rasterization
from matplotlib.image import AxesImage
from matplotlib.patches import PathPatch
from matplotlib.path import Path as MplPath
from shapely.geometry import MultiPolygon, Point, Polygon

from . import style
from .errors import EmptyGeometryWarning, MapViewStateError
from .models import Feature
from .rasters import MapRaster, RasterCatalog
from .tiles import Extent, TileFetcher, raster_fetcher

_LOGGER = logging.getLogger("territoryprint.mapview")

# Web Mercator square covering the whole world, (x0, x1, y0, y1)
WORLD_EXTENT: Extent = (
    -20_037_508.342789244,
    20_037_508.342789244,
    -20_037_508.342789244,
    20_037_508.342789244,
)

_OVERLAY_ZORDER = 2
_LABEL_ZORDER = 5
_BASEMAP_ZORDER = -8

_HANDLE_IDS = itertools.count(1)
_MOUNTED_CONTAINERS: weakref.WeakSet[Any] = weakref.WeakSet()


class MapViewState(str, Enum):
    UNMOUNTED = "unmounted"
    FITTED = "mounted-fitted"
    IDLE = "mounted-idle"


@dataclass(frozen=True, slots=True)
class MapHandle:
    """Opaque token owned by whoever mounted the view."""

    token: int


@dataclass(frozen=True, slots=True)
class FitPolicy:
    padding_ratio: float = 0.1
    min_span_m: float = 300.0


class _TileLayer(AxesImage):
    """Base raster image that fetches tiles for its current source at draw time.

    Only the most recently requested raster is ever fetched, so a burst of
    source changes costs one download and never paints an outdated raster.
    """

    def __init__(self, ax: Any, *, fetcher: TileFetcher, raster: MapRaster, extent: Extent) -> None:
        super().__init__(ax, interpolation="bilinear", origin="upper", extent=extent)
        self.set_zorder(_BASEMAP_ZORDER)
        self.set_in_layout(False)
        # transparent placeholder until tiles arrive
        self.set_data([[[1.0, 1.0, 1.0, 0.0]]])
        self._fetcher: TileFetcher | None = fetcher
        self._raster = raster
        self._loaded_key: tuple[str, Extent] | None = None
        self.attribution = ax.text(
            0.995,
            0.005,
            raster.source.attribution,
            transform=ax.transAxes,
            fontsize=5,
            ha="right",
            va="bottom",
            zorder=_LABEL_ZORDER + 1,
            bbox={"facecolor": "white", "alpha": 0.7, "edgecolor": "none", "pad": 1.0},
        )

    @property
    def raster(self) -> MapRaster:
        return self._raster

    @property
    def loaded_raster_id(self) -> str | None:
        return self._loaded_key[0] if self._loaded_key is not None else None

    def request(self, raster: MapRaster) -> None:
        self._raster = raster
        self.attribution.set_text(raster.source.attribution)
        self.stale = True

    def release(self) -> None:
        self._fetcher = None
        self._loaded_key = None

    @allow_rasterization
    def draw(self, renderer: Any) -> None:
        fetcher = self._fetcher
        if fetcher is None or not self._ensure_tiles(fetcher):
            return
        super().draw(renderer)

    def _ensure_tiles(self, fetcher: TileFetcher) -> bool:
        ax = self.axes
        x0, x1 = ax.get_xlim()
        y0, y1 = ax.get_ylim()
        viewport = (float(x0), float(x1), float(y0), float(y1))
        key = (self._raster.id, viewport)
        if key == self._loaded_key:
            return True
        _LOGGER.debug(
            "basemap fetch (%s): x=[%.1f, %.1f], y=[%.1f, %.1f]",
            self._raster.id,
            x0,
            x1,
            y0,
            y1,
        )
        try:
            image, image_extent = fetcher(self._raster, viewport)
        except Exception as exc:
            _LOGGER.warning("Basemap '%s' failed to load: %s", self._raster.id, exc)
            self._loaded_key = None
            return False
        self.set_data(image)
        self.set_extent(image_extent)
        ax.set_xlim(x0, x1)
        ax.set_ylim(y0, y1)
        self._loaded_key = key
        return True


class MapView:
    """One map on one container (a matplotlib Axes).

    Lifecycle: `mount` frames the features and installs overlay and base layer,
    `set_raster` swaps the base layer source in place, `unmount` releases the
    container.
    """

    def __init__(
        self,
        catalog: RasterCatalog,
        *,
        fetcher: TileFetcher | None = None,
        fit: FitPolicy | None = None,
        label_font_size: float = 12.0,
    ) -> None:
        self._catalog = catalog
        self._fetcher = fetcher if fetcher is not None else raster_fetcher()
        self._fit = fit if fit is not None else FitPolicy()
        self._label_font_size = label_font_size
        self._state = MapViewState.UNMOUNTED
        self._handle: MapHandle | None = None
        self._container: Any | None = None
        self._overlay: tuple[Any, ...] = ()
        self._base_layer: _TileLayer | None = None
        self._viewport: Extent | None = None

    @property
    def state(self) -> MapViewState:
        return self._state

    @property
    def handle(self) -> MapHandle | None:
        return self._handle

    @property
    def container(self) -> Any | None:
        return self._container

    @property
    def raster(self) -> MapRaster | None:
        return self._base_layer.raster if self._base_layer is not None else None

    @property
    def base_layer(self) -> _TileLayer | None:
        return self._base_layer

    @property
    def overlay_artists(self) -> tuple[Any, ...]:
        return self._overlay

    @property
    def viewport(self) -> Extent | None:
        return self._viewport

    def mount(
        self,
        container: Any,
        features: Sequence[Feature],
        raster_id: str | None = None,
    ) -> MapHandle:
        if self._state is not MapViewState.UNMOUNTED:
            raise MapViewStateError("Map view is already mounted")
        if container in _MOUNTED_CONTAINERS:
            raise MapViewStateError("Container already hosts a mounted map view")
        raster = self._catalog.get(raster_id) if raster_id is not None else self._catalog.default()

        drawable = tuple(feature for feature in features if _is_drawable(feature.geometry))
        if not drawable:
            warnings.warn(
                "Map mounted without drawable geometry; showing the world view.",
                EmptyGeometryWarning,
                stacklevel=2,
            )
        extent = fit_extent(
            [feature.geometry for feature in drawable],
            target_ratio=_container_aspect(container),
            padding_ratio=self._fit.padding_ratio,
            min_span_m=self._fit.min_span_m,
        )
        _configure_axes(container, extent)
        overlay = self._draw_overlay(container, drawable)
        base_layer = _TileLayer(container, fetcher=self._fetcher, raster=raster, extent=extent)
        container.add_image(base_layer)

        _MOUNTED_CONTAINERS.add(container)
        self._container = container
        self._overlay = overlay
        self._base_layer = base_layer
        self._viewport = extent
        self._handle = MapHandle(token=next(_HANDLE_IDS))
        self._state = MapViewState.FITTED
        _LOGGER.debug(
            "mounted map (features=%d, raster=%s, extent=%s)",
            len(drawable),
            raster.id,
            extent,
        )
        return self._handle

    def set_raster(self, handle: MapHandle, raster_id: str) -> None:
        self._check_handle(handle)
        raster = self._catalog.get(raster_id)
        self._require_base_layer().request(raster)
        self._state = MapViewState.IDLE

    def unmount(self, handle: MapHandle | None = None) -> None:
        if self._state is MapViewState.UNMOUNTED:
            return
        if handle is not None and handle != self._handle:
            return
        container = self._container
        base_layer = self._require_base_layer()
        base_layer.release()
        attached = set(container.get_children())
        for artist in (*self._overlay, base_layer, base_layer.attribution):
            if artist in attached:
                artist.remove()
        _MOUNTED_CONTAINERS.discard(container)
        self._container = None
        self._overlay = ()
        self._base_layer = None
        self._viewport = None
        self._handle = None
        self._state = MapViewState.UNMOUNTED

    def _check_handle(self, handle: MapHandle) -> None:
        if self._state is MapViewState.UNMOUNTED:
            raise MapViewStateError("Map view is not mounted")
        if handle != self._handle:
            raise MapViewStateError("Stale map handle")

    def _require_base_layer(self) -> _TileLayer:
        if self._base_layer is None:
            raise MapViewStateError("Map view has no base layer")
        return self._base_layer

    def _draw_overlay(self, ax: Any, features: Sequence[Feature]) -> tuple[Any, ...]:
        artists: list[Any] = []
        patch_kwargs = style.patch_kwargs()
        stroke = style.boundary_stroke()
        for feature in features:
            geometry = feature.geometry
            if isinstance(geometry, Point):
                (marker,) = ax.plot(
                    [geometry.x],
                    [geometry.y],
                    marker="o",
                    markersize=6,
                    color=stroke.color,
                    zorder=_OVERLAY_ZORDER,
                )
                artists.append(marker)
            else:
                for polygon in _explode_polygons(geometry):
                    patch = PathPatch(_polygon_path(polygon), zorder=_OVERLAY_ZORDER, **patch_kwargs)
                    ax.add_patch(patch)
                    artists.append(patch)
            if feature.label:
                anchor = _label_anchor(geometry)
                text_style = style.label(feature.label, self._label_font_size)
                artists.append(
                    ax.text(
                        anchor.x,
                        anchor.y,
                        text_style.text,
                        zorder=_LABEL_ZORDER,
                        **text_style.text_kwargs(),
                    )
                )
        return tuple(artists)


def fit_extent(
    geometries: Sequence[Any],
    *,
    target_ratio: float,
    padding_ratio: float = 0.1,
    min_span_m: float = 300.0,
) -> Extent:
    """Viewport `(x0, x1, y0, y1)` framing every geometry at the given aspect ratio."""
    if not geometries:
        return _fit_extent_aspect(*WORLD_EXTENT, target_ratio=target_ratio)
    bounds = [geometry.bounds for geometry in geometries]
    min_x = min(float(item[0]) for item in bounds)
    min_y = min(float(item[1]) for item in bounds)
    max_x = max(float(item[2]) for item in bounds)
    max_y = max(float(item[3]) for item in bounds)

    pad_x = (max_x - min_x) * padding_ratio
    pad_y = (max_y - min_y) * padding_ratio
    x0, x1 = _ensure_min_span(min_x - pad_x, max_x + pad_x, min_span_m)
    y0, y1 = _ensure_min_span(min_y - pad_y, max_y + pad_y, min_span_m)
    return _fit_extent_aspect(x0, x1, y0, y1, target_ratio=target_ratio)


def _ensure_min_span(start: float, end: float, min_span: float) -> tuple[float, float]:
    span = end - start
    if span >= min_span:
        return (start, end)
    center = (start + end) / 2.0
    half = min_span / 2.0
    return (center - half, center + half)


def _fit_extent_aspect(
    x0: float,
    x1: float,
    y0: float,
    y1: float,
    *,
    target_ratio: float,
) -> Extent:
    width = max(x1 - x0, 1e-6)
    height = max(y1 - y0, 1e-6)
    if width / height < target_ratio:
        expand = (target_ratio * height - width) / 2.0
        return (x0 - expand, x1 + expand, y0, y1)
    expand = (width / target_ratio - height) / 2.0
    return (x0, x1, y0 - expand, y1 + expand)


def _container_aspect(ax: Any) -> float:
    position = ax.get_position()
    fig_w, fig_h = ax.figure.get_size_inches()
    width = float(position.width) * float(fig_w)
    height = float(position.height) * float(fig_h)
    if width <= 0 or height <= 0:
        return 1.0
    return width / height


def _configure_axes(ax: Any, extent: Extent) -> None:
    ax.set_autoscale_on(False)
    ax.set_xlim(extent[0], extent[1])
    ax.set_ylim(extent[2], extent[3])
    ax.set_aspect("equal", adjustable="box")
    ax.set_xticks([])
    ax.set_yticks([])


def _is_drawable(geometry: Any) -> bool:
    if geometry is None:
        return False
    if hasattr(geometry, "is_empty") and bool(geometry.is_empty):
        return False
    return isinstance(geometry, (Point, Polygon, MultiPolygon))


def _explode_polygons(geometry: Any) -> list[Any]:
    if isinstance(geometry, Polygon):
        return [geometry]
    if isinstance(geometry, MultiPolygon):
        return [polygon for polygon in geometry.geoms if not polygon.is_empty]
    return []


def _ring_path(ring: Any) -> MplPath:
    return MplPath([(float(x), float(y)) for x, y, *_ in ring.coords], closed=True)


def _polygon_path(polygon: Any) -> MplPath:
    rings = [polygon.exterior, *polygon.interiors]
    return MplPath.make_compound_path(*(_ring_path(ring) for ring in rings))


def _label_anchor(geometry: Any) -> Any:
    if isinstance(geometry, Point):
        return geometry
    polygons = _explode_polygons(geometry)
    if not polygons:
        return geometry.centroid
    largest = max(polygons, key=lambda polygon: polygon.area)
    return largest.representative_point()
