"""Print selection state and printable unit computation."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Iterable

from .errors import NotFoundError
from .messages import DEFAULT_LANGUAGE, require_language
from .models import CongregationData, Granularity, PrintableUnit
from .rasters import RasterCatalog
from .templates import TEMPLATES, RegionItem, Template, TemplateRegistry

_LOGGER = logging.getLogger("territoryprint.selection")


@dataclass(frozen=True, slots=True)
class SelectionState:
    template_id: str
    language: str
    map_raster_id: str
    region_ids: tuple[str, ...] = ()
    territory_ids: tuple[str, ...] = ()

    def ids_for(self, granularity: Granularity) -> tuple[str, ...]:
        if granularity is Granularity.REGION:
            return self.region_ids
        return self.territory_ids

    def with_ids(self, granularity: Granularity, ids: tuple[str, ...]) -> SelectionState:
        if granularity is Granularity.REGION:
            return dataclasses.replace(self, region_ids=ids)
        return dataclasses.replace(self, territory_ids=ids)


def _granularity(value: Granularity | str) -> Granularity:
    try:
        return Granularity(value)
    except ValueError:
        raise NotFoundError("granularity", str(value)) from None


def _first_ids(data: CongregationData, granularity: Granularity) -> tuple[str, ...]:
    ids = data.ids(granularity)
    return ids[:1]


class PrintSelection:
    """Owns the user-adjustable print options.

    Every command validates first and then replaces the whole state, so a
    failing command leaves the previous state untouched. Callers recompute
    units with `compute_units` after each successful command.
    """

    def __init__(
        self,
        data: CongregationData,
        *,
        rasters: RasterCatalog,
        templates: TemplateRegistry = TEMPLATES,
        language: str = DEFAULT_LANGUAGE,
        template_id: str | None = None,
    ) -> None:
        self._data = data
        self._rasters = rasters
        self._templates = templates
        # (granularity, id, index) of the last toggle-off, restored by an immediate re-toggle
        self._last_removed: tuple[Granularity, str, int] | None = None
        template = (
            templates.resolve(template_id) if template_id is not None else templates.default()
        )
        self._state = SelectionState(
            template_id=template.id.value,
            language=require_language(language),
            map_raster_id=rasters.default().id,
            region_ids=_first_ids(data, Granularity.REGION),
            territory_ids=_first_ids(data, Granularity.TERRITORY),
        )

    @property
    def state(self) -> SelectionState:
        return self._state

    @property
    def data(self) -> CongregationData:
        return self._data

    @property
    def template(self) -> Template:
        return self._templates.resolve(self._state.template_id)

    @property
    def active_granularity(self) -> Granularity:
        return self.template.granularity

    @property
    def active_ids(self) -> tuple[str, ...]:
        return self._state.ids_for(self.active_granularity)

    def set_template(self, template_id: str) -> SelectionState:
        template = self._templates.resolve(template_id)
        state = dataclasses.replace(self._state, template_id=template.id.value)
        if not state.ids_for(template.granularity):
            state = state.with_ids(
                template.granularity, _first_ids(self._data, template.granularity)
            )
        _LOGGER.debug("template -> %s", template.id.value)
        return self._commit(state)

    def set_raster(self, raster_id: str) -> SelectionState:
        raster = self._rasters.get(raster_id)
        return self._commit(dataclasses.replace(self._state, map_raster_id=raster.id))

    def set_language(self, language: str) -> SelectionState:
        code = require_language(language)
        return self._commit(dataclasses.replace(self._state, language=code))

    def toggle_selection(self, granularity: Granularity | str, item_id: str) -> SelectionState:
        chosen = _granularity(granularity)
        current = self._state.ids_for(chosen)
        if item_id in current:
            index = current.index(item_id)
            updated = current[:index] + current[index + 1 :]
            return self._commit(
                self._state.with_ids(chosen, updated),
                removed=(chosen, item_id, index),
            )
        self._require_item(chosen, item_id)
        index = len(current)
        if self._last_removed is not None and self._last_removed[:2] == (chosen, item_id):
            index = min(self._last_removed[2], len(current))
        updated = current[:index] + (item_id,) + current[index:]
        return self._commit(self._state.with_ids(chosen, updated))

    def set_selection(self, granularity: Granularity | str, item_ids: Iterable[str]) -> SelectionState:
        chosen = _granularity(granularity)
        ordered: list[str] = []
        for item_id in item_ids:
            if item_id in ordered:
                continue
            self._require_item(chosen, item_id)
            ordered.append(item_id)
        return self._commit(self._state.with_ids(chosen, tuple(ordered)))

    def reconcile(self, data: CongregationData) -> SelectionState:
        """Adopt a new data snapshot, dropping ids it no longer contains."""
        state = self._state
        for granularity in Granularity:
            available = set(data.ids(granularity))
            kept = tuple(item for item in state.ids_for(granularity) if item in available)
            dropped = len(state.ids_for(granularity)) - len(kept)
            if dropped:
                _LOGGER.info("Dropped %d stale %s selection(s)", dropped, granularity.value)
            state = state.with_ids(granularity, kept)
        active = self.template.granularity
        if not state.ids_for(active):
            state = state.with_ids(active, _first_ids(data, active))
        self._data = data
        return self._commit(state)

    def compute_units(self, data: CongregationData | None = None) -> list[PrintableUnit]:
        """Render instructions for the active selection, in selection order."""
        catalog = data if data is not None else self._data
        state = self._state
        template = self._templates.resolve(state.template_id)
        raster = self._rasters.get(state.map_raster_id)

        units: list[PrintableUnit] = []
        for item_id in state.ids_for(template.granularity):
            if template.granularity is Granularity.REGION:
                region = catalog.region(item_id)
                if region is None:
                    _LOGGER.warning("Selected region %s not in data; skipped", item_id)
                    continue
                item = RegionItem(region=region, territories=catalog.region_territories(region))
                units.append(template.render(item, raster, state.language))
            else:
                territory = catalog.territory(item_id)
                if territory is None:
                    _LOGGER.warning("Selected territory %s not in data; skipped", item_id)
                    continue
                units.append(template.render(territory, raster, state.language))
        return units

    def _require_item(self, granularity: Granularity, item_id: str) -> None:
        if item_id not in self._data.ids(granularity):
            raise NotFoundError(granularity.value, item_id)

    def _commit(
        self,
        state: SelectionState,
        *,
        removed: tuple[Granularity, str, int] | None = None,
    ) -> SelectionState:
        self._state = state
        self._last_removed = removed
        return state
