"""Congregation snapshot loading (territories and subregions)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

import yaml

from .models import CongregationData, Region, Territory


def load_congregation(path: Path) -> CongregationData:
    """Load a congregation snapshot from YAML or JSON and validate ids."""
    if not path.exists():
        raise FileNotFoundError(f"Congregation file not found: {path}")
    with path.open("r", encoding="utf-8") as fh:
        if path.suffix.casefold() == ".json":
            raw = json.load(fh)
        else:
            raw = yaml.safe_load(fh)
    if not isinstance(raw, Mapping):
        raise ValueError(f"Expected mapping in {path}")
    return congregation_from_mapping(raw, source=str(path))


def congregation_from_mapping(raw: Mapping[str, Any], *, source: str = "<memory>") -> CongregationData:
    territories_raw = raw.get("territories", [])
    regions_raw = raw.get("subregions", [])
    if territories_raw is None:
        territories_raw = []
    if regions_raw is None:
        regions_raw = []
    if not isinstance(territories_raw, list):
        raise ValueError(f"Expected list for 'territories' in {source}")
    if not isinstance(regions_raw, list):
        raise ValueError(f"Expected list for 'subregions' in {source}")

    territories: list[Territory] = []
    seen_territories: set[str] = set()
    for idx, item in enumerate(territories_raw):
        if not isinstance(item, Mapping):
            raise ValueError(f"Expected mapping at territories[{idx}] in {source}")
        territory = Territory.from_mapping(item)
        if territory.id in seen_territories:
            raise ValueError(f"Duplicate territory id '{territory.id}' in {source}")
        seen_territories.add(territory.id)
        territories.append(territory)

    regions: list[Region] = []
    seen_regions: set[str] = set()
    for idx, item in enumerate(regions_raw):
        if not isinstance(item, Mapping):
            raise ValueError(f"Expected mapping at subregions[{idx}] in {source}")
        region = Region.from_mapping(item)
        if region.id in seen_regions:
            raise ValueError(f"Duplicate subregion id '{region.id}' in {source}")
        seen_regions.add(region.id)
        regions.append(region)

    congregation_id = raw.get("id", "")
    name = raw.get("name", "")
    return CongregationData(
        id=str(congregation_id).strip(),
        name=str(name).strip(),
        territories=tuple(territories),
        subregions=tuple(regions),
    )
