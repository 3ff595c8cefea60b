"""Base map fetchers: XYZ tiles through contextily, WMS maps through GetMap."""

from __future__ import annotations

import io
import logging
from functools import lru_cache
from typing import Any, Callable, Mapping

import requests
from matplotlib.image import pil_to_array
from PIL import Image

from .rasters import MapRaster, TileSource, WmsSource

_LOGGER = logging.getLogger("territoryprint.tiles")

Extent = tuple[float, float, float, float]
TileFetcher = Callable[[MapRaster, Extent], tuple[Any, Extent]]

_USER_AGENT = "territory-print/0.1"
_PROJECTED_CRS = "EPSG:3857"


def contextily_fetcher(*, n_connections: int = 1) -> TileFetcher:
    """Tile fetcher backed by contextily, which owns download and caching."""

    def fetch(raster: MapRaster, extent: Extent) -> tuple[Any, Extent]:
        contextily = _require_contextily()
        x0, x1, y0, y1 = extent
        image, image_extent = contextily.bounds2img(
            x0,
            y0,
            x1,
            y1,
            zoom="auto",
            source=raster.provider,
            ll=False,
            use_cache=True,
            n_connections=n_connections,
            max_retries=1,
        )
        x_min, x_max, y_min, y_max = (float(item) for item in image_extent)
        return image, (x_min, x_max, y_min, y_max)

    return fetch


def wms_image_size(extent: Extent, max_size_px: int) -> tuple[int, int]:
    """Pixel size of a GetMap image keeping the viewport aspect ratio."""
    width_m = max(extent[1] - extent[0], 1e-6)
    height_m = max(extent[3] - extent[2], 1e-6)
    if width_m >= height_m:
        return max_size_px, max(1, round(max_size_px * height_m / width_m))
    return max(1, round(max_size_px * width_m / height_m)), max_size_px


def wms_getmap_params(source: WmsSource, extent: Extent) -> dict[str, str]:
    x0, x1, y0, y1 = extent
    width, height = wms_image_size(extent, source.max_size_px)
    # 1.3.0 renamed SRS to CRS; EPSG:3857 keeps easting/northing axis order in both
    crs_key = "SRS" if source.version.startswith("1.1") else "CRS"
    return {
        "SERVICE": "WMS",
        "REQUEST": "GetMap",
        "VERSION": source.version,
        "LAYERS": source.layers,
        "STYLES": "",
        crs_key: _PROJECTED_CRS,
        "BBOX": f"{x0:.3f},{y0:.3f},{x1:.3f},{y1:.3f}",
        "WIDTH": str(width),
        "HEIGHT": str(height),
        "FORMAT": source.image_format,
        "TRANSPARENT": "TRUE",
    }


class WmsFetcher:
    """Render a WMS layer for the whole viewport with a single GetMap request."""

    def __init__(self, *, session: Any | None = None, timeout_s: float = 30.0) -> None:
        if session is None:
            session = requests.Session()
            session.headers.update({"User-Agent": _USER_AGENT})
        self._session = session
        self._timeout_s = timeout_s

    def __call__(self, raster: MapRaster, extent: Extent) -> tuple[Any, Extent]:
        source = raster.source
        if not isinstance(source, WmsSource):
            raise TypeError(f"Raster '{raster.id}' is not a WMS source")
        params = wms_getmap_params(source, extent)
        _LOGGER.debug(
            "wms GetMap (%s): %s, %sx%s px",
            raster.id,
            params["BBOX"],
            params["WIDTH"],
            params["HEIGHT"],
        )
        response = self._session.get(source.url, params=params, timeout=self._timeout_s)
        response.raise_for_status()
        _require_image(raster.id, response.headers)
        with Image.open(io.BytesIO(response.content)) as image:
            pixels = pil_to_array(image.convert("RGBA"))
        return pixels, extent


def raster_fetcher(*, n_connections: int = 1, session: Any | None = None) -> TileFetcher:
    """Fetcher choosing contextily or GetMap by the raster's source kind."""
    tiles = contextily_fetcher(n_connections=n_connections)
    wms = WmsFetcher(session=session)

    def fetch(raster: MapRaster, extent: Extent) -> tuple[Any, Extent]:
        match raster.source:
            case WmsSource():
                return wms(raster, extent)
            case TileSource():
                return tiles(raster, extent)
        raise TypeError(f"Unsupported source for raster '{raster.id}'")

    return fetch


def _require_image(raster_id: str, headers: Mapping[str, str]) -> None:
    # service exceptions come back as XML with status 200
    content_type = str(headers.get("Content-Type", ""))
    if not content_type.startswith("image/"):
        raise ValueError(
            f"WMS '{raster_id}' returned '{content_type or 'unknown'}' instead of an image"
        )


@lru_cache(maxsize=1)
def _require_contextily() -> Any:
    try:
        import contextily as ctx
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("contextily is required for real basemap rendering") from exc
    return ctx
