"""Ordered catalog of base map rasters: XYZ tile sets and WMS layers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence, Union

from xyzservices import TileProvider

from .errors import NotFoundError

OSM_ATTRIBUTION = "\u00a9 OpenStreetMap contributors"


@dataclass(frozen=True, slots=True)
class TileSource:
    """Opaque tile-serving configuration consumed by the tile client."""

    url: str
    attribution: str
    tile_size: int = 256
    pixel_ratio: int = 1
    max_zoom: int = 19

    def provider(self, name: str) -> TileProvider:
        return TileProvider(
            name=name,
            url=self.url,
            attribution=self.attribution,
            max_zoom=self.max_zoom,
            tile_size=self.tile_size,
            pixel_ratio=self.pixel_ratio,
        )


@dataclass(frozen=True, slots=True)
class WmsSource:
    """WMS endpoint rendered with one GetMap request per viewport."""

    url: str
    layers: str
    attribution: str
    version: str = "1.3.0"
    image_format: str = "image/png"
    max_size_px: int = 2048


RasterSource = Union[TileSource, WmsSource]


@dataclass(frozen=True, slots=True)
class MapRaster:
    id: str
    name: str
    source: RasterSource

    @property
    def provider(self) -> TileProvider:
        if not isinstance(self.source, TileSource):
            raise TypeError(f"Raster '{self.id}' is not an XYZ tile source")
        return self.source.provider(self.id)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> MapRaster:
        raster_id = data.get("id")
        name = data.get("name")
        url = data.get("url")
        attribution = data.get("attribution", "")
        for field_name, value in (("id", raster_id), ("name", name), ("url", url)):
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"Expected non-empty string for 'rasters[].{field_name}'")
        if not isinstance(attribution, str):
            raise ValueError("Expected string for 'rasters[].attribution'")
        kind = data.get("type", "xyz")
        if kind == "wms":
            layers = data.get("layers")
            if not isinstance(layers, str) or not layers.strip():
                raise ValueError("Expected non-empty string for 'rasters[].layers'")
            return cls(
                id=raster_id.strip(),
                name=name.strip(),
                source=WmsSource(url=url.strip(), layers=layers.strip(), attribution=attribution),
            )
        if kind != "xyz":
            raise ValueError("rasters[].type must be one of: xyz, wms")
        tile_size = data.get("tile_size", 256)
        pixel_ratio = data.get("pixel_ratio", 1)
        if not isinstance(tile_size, int) or tile_size <= 0:
            raise ValueError("Expected positive integer for 'rasters[].tile_size'")
        if not isinstance(pixel_ratio, int) or pixel_ratio <= 0:
            raise ValueError("Expected positive integer for 'rasters[].pixel_ratio'")
        return cls(
            id=raster_id.strip(),
            name=name.strip(),
            source=TileSource(
                url=url.strip(),
                attribution=attribution,
                tile_size=tile_size,
                pixel_ratio=pixel_ratio,
            ),
        )


DEFAULT_RASTERS: tuple[MapRaster, ...] = (
    MapRaster(
        id="osm",
        name="World - OpenStreetMap",
        source=TileSource(
            url="https://a.osm.rrze.fau.de/osmhd/{z}/{x}/{y}.png",
            attribution=OSM_ATTRIBUTION,
            tile_size=256,
            pixel_ratio=2,
        ),
    ),
    MapRaster(
        id="osmBackup",
        name="World - OpenStreetMap (backup server, low DPI)",
        source=TileSource(
            url="https://tile.openstreetmap.org/{z}/{x}/{y}.png",
            attribution=OSM_ATTRIBUTION,
        ),
    ),
    MapRaster(
        id="mmlTaustakartta",
        name="Finland - Maanmittauslaitoksen taustakarttasarja",
        source=TileSource(
            url="https://tiles.kartat.kapsi.fi/taustakartta/{z}/{x}/{y}.jpg",
            attribution="\u00a9 Maanmittauslaitos",
            tile_size=128,
            pixel_ratio=2,
        ),
    ),
    MapRaster(
        id="vantaaKaupunkikartta",
        name="Finland - Vantaan kaupunkikartta",
        source=WmsSource(
            url="https://gis.vantaa.fi/geoserver/wms",
            layers="taustakartta:kaupunkikartta_single_layer",
            attribution="\u00a9 Vantaan kaupunki",
        ),
    ),
)


class RasterCatalog:
    """Immutable, ordered registry; index 0 is the default streets raster."""

    def __init__(self, rasters: Iterable[MapRaster] = DEFAULT_RASTERS) -> None:
        ordered = tuple(rasters)
        if not ordered:
            raise ValueError("Raster catalog must contain at least one raster")
        by_id: dict[str, MapRaster] = {}
        for raster in ordered:
            if raster.id in by_id:
                raise ValueError(f"Duplicate raster id '{raster.id}'")
            by_id[raster.id] = raster
        self._rasters = ordered
        self._by_id = by_id

    def list(self) -> tuple[MapRaster, ...]:
        return self._rasters

    def get(self, raster_id: str) -> MapRaster:
        try:
            return self._by_id[raster_id]
        except KeyError:
            raise NotFoundError("raster", raster_id) from None

    def default(self) -> MapRaster:
        return self._rasters[0]

    def __contains__(self, raster_id: object) -> bool:
        return raster_id in self._by_id

    def __len__(self) -> int:
        return len(self._rasters)


def catalog_from_config(raw: Sequence[Mapping[str, Any]] | None) -> RasterCatalog:
    """Build the catalog from the optional `rasters` config list."""
    if raw is None:
        return RasterCatalog()
    return RasterCatalog(MapRaster.from_mapping(item) for item in raw)
