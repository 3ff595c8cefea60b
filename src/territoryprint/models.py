"""Domain models shared across pipeline modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Sequence


def _require_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _require_id(value: Any, field_name: str) -> str:
    # ids arrive as strings or integers depending on the exporter
    if isinstance(value, bool):
        raise ValueError(f"Expected string or integer id for '{field_name}'")
    if isinstance(value, int):
        return str(value)
    return _require_str(value, field_name)


def _optional_str(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"Expected string for '{field_name}'")
    stripped = value.strip()
    return stripped or None


class Granularity(str, Enum):
    """Which data item one printed document corresponds to."""

    TERRITORY = "territory"
    REGION = "region"


@dataclass(frozen=True, slots=True)
class Territory:
    """Territory record from the congregation snapshot."""

    id: str
    number: str
    subregion: str | None = None
    addresses: str | None = None
    geometry: str | None = None

    @property
    def display_name(self) -> str:
        if self.subregion:
            return f"{self.number} - {self.subregion}"
        return self.number

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Territory:
        return cls(
            id=_require_id(data.get("id"), "territory.id"),
            number=_require_id(data.get("number"), "territory.number"),
            subregion=_optional_str(data.get("subregion"), "territory.subregion"),
            addresses=_optional_str(data.get("addresses"), "territory.addresses"),
            geometry=_optional_str(data.get("geometry"), "territory.geometry"),
        )


@dataclass(frozen=True, slots=True)
class Region:
    """Subregion record; territories are referenced by id."""

    id: str
    name: str
    geometry: str | None = None
    territories: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Region:
        raw_ids = data.get("territories", [])
        if raw_ids is None:
            raw_ids = []
        if not isinstance(raw_ids, list):
            raise ValueError("Expected list for 'region.territories'")
        return cls(
            id=_require_id(data.get("id"), "region.id"),
            name=_require_str(data.get("name"), "region.name"),
            geometry=_optional_str(data.get("geometry"), "region.geometry"),
            territories=tuple(_require_id(item, "region.territories[]") for item in raw_ids),
        )


@dataclass(frozen=True, slots=True)
class CongregationData:
    """Read-only snapshot of one congregation's territories and subregions."""

    id: str
    name: str
    territories: tuple[Territory, ...] = ()
    subregions: tuple[Region, ...] = ()

    def territory(self, territory_id: str) -> Territory | None:
        for territory in self.territories:
            if territory.id == territory_id:
                return territory
        return None

    def region(self, region_id: str) -> Region | None:
        for region in self.subregions:
            if region.id == region_id:
                return region
        return None

    def region_territories(self, region: Region) -> tuple[Territory, ...]:
        """Resolve a region's territory references, skipping dangling ids."""
        by_id = {territory.id: territory for territory in self.territories}
        return tuple(by_id[item] for item in region.territories if item in by_id)

    def ids(self, granularity: Granularity) -> tuple[str, ...]:
        if granularity is Granularity.REGION:
            return tuple(region.id for region in self.subregions)
        return tuple(territory.id for territory in self.territories)


@dataclass(frozen=True, slots=True)
class Feature:
    """One projected (EPSG:3857) geometry with an optional label."""

    geometry: Any
    label: str | None = None
    crs: str = "EPSG:3857"


@dataclass(frozen=True, slots=True)
class MapSpec:
    """Mount point for one map on a page.

    `rect` is `(left, bottom, width, height)` in figure fractions.
    """

    name: str
    rect: tuple[float, float, float, float]
    features: tuple[Feature, ...]
    padding_ratio: float = 0.1
    label_font_size: float = 12.0


@dataclass(frozen=True, slots=True)
class TextBlock:
    """Static page chrome placed at a figure-fraction position."""

    text: str
    x: float
    y: float
    font_size: float = 10.0
    weight: str = "normal"
    ha: str = "left"
    va: str = "top"
    wrap: bool = False


@dataclass(frozen=True, slots=True)
class PrintableUnit:
    """Fully-resolved render instructions for one printed page."""

    template_id: str
    granularity: Granularity
    item_id: str
    raster: Any
    language: str
    title: str
    page_size_mm: tuple[float, float]
    maps: tuple[MapSpec, ...] = ()
    chrome: tuple[TextBlock, ...] = ()

    @property
    def key(self) -> tuple[str, str, str]:
        """Identity of the page apart from the raster."""
        return (self.template_id, self.item_id, self.language)

    def to_dict(self) -> dict[str, Any]:
        return {
            "template_id": self.template_id,
            "granularity": self.granularity.value,
            "item_id": self.item_id,
            "raster_id": self.raster.id,
            "language": self.language,
            "title": self.title,
            "page_size_mm": list(self.page_size_mm),
            "maps": [
                {"name": spec.name, "features": len(spec.features)} for spec in self.maps
            ],
        }


@dataclass(frozen=True, slots=True)
class PrintManifest:
    """Print run metadata written next to the rendered document."""

    generated_at_utc: str
    config_hash_sha256: str
    output_path: str
    units: tuple[Mapping[str, Any], ...] = field(default_factory=tuple)

    @classmethod
    def create(
        cls,
        *,
        config_hash_sha256: str,
        output_path: str,
        units: Sequence[PrintableUnit],
    ) -> PrintManifest:
        now = datetime.now(timezone.utc).isoformat()
        return cls(
            generated_at_utc=now,
            config_hash_sha256=config_hash_sha256,
            output_path=output_path,
            units=tuple(unit.to_dict() for unit in units),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at_utc": self.generated_at_utc,
            "config_hash_sha256": self.config_hash_sha256,
            "output_path": self.output_path,
            "units": [dict(item) for item in self.units],
        }
