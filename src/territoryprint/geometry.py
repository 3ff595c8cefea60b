"""WKT geometry decoding and Web Mercator projection."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pyproj import Transformer
from shapely import wkt as shapely_wkt
from shapely.errors import GEOSException
from shapely.geometry import MultiPolygon, Point, Polygon
from shapely.ops import transform as shapely_transform

from .errors import ParseError
from .models import Feature

GEOGRAPHIC_CRS = "EPSG:4326"
PROJECTED_CRS = "EPSG:3857"

SUPPORTED_TYPES = (Point, Polygon, MultiPolygon)


def decode(wkt: str) -> Any:
    """Parse one WKT string into a shapely geometry in geographic coordinates."""
    if not isinstance(wkt, str) or not wkt.strip():
        raise ParseError("Empty string is not valid WKT")
    try:
        geometry = shapely_wkt.loads(wkt)
    except (GEOSException, ValueError, TypeError) as exc:
        raise ParseError(f"Invalid WKT: {exc}") from exc
    if not isinstance(geometry, SUPPORTED_TYPES):
        raise ParseError(f"Unsupported geometry type: {geometry.geom_type}")
    return geometry


def decode_many(wkt: str | None) -> list[Any]:
    """Decode an optional WKT value; absent geometry yields an empty list."""
    if wkt is None:
        return []
    return [decode(wkt)]


@lru_cache(maxsize=8)
def _transformer(from_crs: str, to_crs: str) -> Transformer:
    return Transformer.from_crs(from_crs, to_crs, always_xy=True)


def project(geometry: Any, from_crs: str = GEOGRAPHIC_CRS, to_crs: str = PROJECTED_CRS) -> Any:
    """Return a reprojected copy; callers must not pass already-projected data."""
    if geometry is None or geometry.is_empty:
        return geometry
    return shapely_transform(_transformer(from_crs, to_crs).transform, geometry)


def to_feature(wkt: str, label: str | None = None) -> Feature:
    return Feature(geometry=project(decode(wkt)), label=label, crs=PROJECTED_CRS)


def to_features(wkt: str | None, label: str | None = None) -> list[Feature]:
    return [
        Feature(geometry=project(geometry), label=label, crs=PROJECTED_CRS)
        for geometry in decode_many(wkt)
    ]
