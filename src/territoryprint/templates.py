"""Document templates and their page renderers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Union

from . import geometry
from .errors import NotFoundError
from .messages import translate
from .models import Feature, Granularity, MapSpec, PrintableUnit, Region, TextBlock, Territory
from .rasters import MapRaster


class TemplateId(str, Enum):
    TERRITORY_CARD = "TerritoryCard"
    NEIGHBORHOOD_CARD = "NeighborhoodCard"
    RURAL_TERRITORY_CARD = "RuralTerritoryCard"
    REGION_PRINTOUT = "RegionPrintout"


@dataclass(frozen=True, slots=True)
class RegionItem:
    """A region together with the territories it references."""

    region: Region
    territories: tuple[Territory, ...]


PrintItem = Union[Territory, RegionItem]
Renderer = Callable[[PrintItem, MapRaster, str], PrintableUnit]


@dataclass(frozen=True, slots=True)
class Template:
    id: TemplateId
    name: str
    granularity: Granularity
    renderer: Renderer

    def render(self, item: PrintItem, raster: MapRaster, language: str) -> PrintableUnit:
        expected = RegionItem if self.granularity is Granularity.REGION else Territory
        if not isinstance(item, expected):
            raise TypeError(
                f"Template {self.id.value} renders {self.granularity.value} items, "
                f"got {type(item).__name__}"
            )
        return self.renderer(item, raster, language)


@dataclass(frozen=True, slots=True)
class _PagePolicy:
    card_label_size: float
    region_label_size: float
    overview_label_size: float
    card_padding: float
    neighborhood_padding: float
    overview_padding: float


# Page geometry is fixed per template so the print output is reproducible.
_PAGE_POLICY = _PagePolicy(
    card_label_size=14.0,
    region_label_size=9.0,
    overview_label_size=7.0,
    card_padding=0.1,
    neighborhood_padding=1.0,
    overview_padding=4.0,
)
_A6_LANDSCAPE = (148.0, 105.0)
_A5_PORTRAIT = (148.0, 210.0)
_A5_LANDSCAPE = (210.0, 148.0)
_A4_PORTRAIT = (210.0, 297.0)


def _expect(item: PrintItem, expected: type, template_id: TemplateId) -> None:
    if not isinstance(item, expected):
        raise TypeError(
            f"Template {template_id.value} renders {expected.__name__} items, got {type(item).__name__}"
        )


def _territory_features(territory: Territory, *, labelled: bool) -> tuple[Feature, ...]:
    label = territory.number if labelled else None
    return tuple(geometry.to_features(territory.geometry, label=label))


def _card_header(title: str, territory: Territory, language: str) -> list[TextBlock]:
    blocks = [
        TextBlock(text=title, x=0.04, y=0.96, font_size=9.0, weight="bold"),
        TextBlock(
            text=f"{translate(language, 'territory.number')} {territory.number}",
            x=0.96,
            y=0.96,
            font_size=18.0,
            weight="bold",
            ha="right",
        ),
    ]
    if territory.subregion:
        blocks.append(
            TextBlock(
                text=f"{translate(language, 'territory.subregion')}: {territory.subregion}",
                x=0.04,
                y=0.90,
                font_size=8.0,
            )
        )
    return blocks


def _addresses_block(territory: Territory, language: str, *, x: float, y: float) -> list[TextBlock]:
    if not territory.addresses:
        return []
    heading = translate(language, "territory.addresses")
    return [
        TextBlock(text=f"{heading}:\n{territory.addresses}", x=x, y=y, font_size=7.0, wrap=True),
    ]


def render_territory_card(item: PrintItem, raster: MapRaster, language: str) -> PrintableUnit:
    _expect(item, Territory, TemplateId.TERRITORY_CARD)
    chrome = _card_header(translate(language, "territory_card.title"), item, language)
    chrome.extend(_addresses_block(item, language, x=0.66, y=0.82))
    chrome.append(
        TextBlock(
            text=translate(language, "territory_card.footer"),
            x=0.04,
            y=0.10,
            font_size=5.5,
            wrap=True,
        )
    )
    return PrintableUnit(
        template_id=TemplateId.TERRITORY_CARD.value,
        granularity=Granularity.TERRITORY,
        item_id=item.id,
        raster=raster,
        language=language,
        title=item.display_name,
        page_size_mm=_A6_LANDSCAPE,
        maps=(
            MapSpec(
                name="territory",
                rect=(0.04, 0.14, 0.58, 0.70),
                features=_territory_features(item, labelled=False),
                padding_ratio=_PAGE_POLICY.card_padding,
                label_font_size=_PAGE_POLICY.card_label_size,
            ),
        ),
        chrome=tuple(chrome),
    )


def render_neighborhood_card(item: PrintItem, raster: MapRaster, language: str) -> PrintableUnit:
    _expect(item, Territory, TemplateId.NEIGHBORHOOD_CARD)
    chrome = _card_header(translate(language, "neighborhood_card.title"), item, language)
    return PrintableUnit(
        template_id=TemplateId.NEIGHBORHOOD_CARD.value,
        granularity=Granularity.TERRITORY,
        item_id=item.id,
        raster=raster,
        language=language,
        title=item.display_name,
        page_size_mm=_A5_PORTRAIT,
        maps=(
            MapSpec(
                name="neighborhood",
                rect=(0.04, 0.04, 0.92, 0.84),
                features=_territory_features(item, labelled=True),
                padding_ratio=_PAGE_POLICY.neighborhood_padding,
                label_font_size=_PAGE_POLICY.card_label_size,
            ),
        ),
        chrome=tuple(chrome),
    )


def render_rural_territory_card(item: PrintItem, raster: MapRaster, language: str) -> PrintableUnit:
    _expect(item, Territory, TemplateId.RURAL_TERRITORY_CARD)
    chrome = _card_header(translate(language, "rural_card.title"), item, language)
    chrome.append(
        TextBlock(
            text=translate(language, "territory.overview"),
            x=0.70,
            y=0.84,
            font_size=7.0,
            weight="bold",
        )
    )
    chrome.extend(_addresses_block(item, language, x=0.70, y=0.36))
    return PrintableUnit(
        template_id=TemplateId.RURAL_TERRITORY_CARD.value,
        granularity=Granularity.TERRITORY,
        item_id=item.id,
        raster=raster,
        language=language,
        title=item.display_name,
        page_size_mm=_A5_LANDSCAPE,
        maps=(
            MapSpec(
                name="territory",
                rect=(0.04, 0.06, 0.62, 0.78),
                features=_territory_features(item, labelled=False),
                padding_ratio=_PAGE_POLICY.card_padding,
                label_font_size=_PAGE_POLICY.card_label_size,
            ),
            MapSpec(
                name="overview",
                rect=(0.70, 0.40, 0.26, 0.42),
                features=_territory_features(item, labelled=True),
                padding_ratio=_PAGE_POLICY.overview_padding,
                label_font_size=_PAGE_POLICY.overview_label_size,
            ),
        ),
        chrome=tuple(chrome),
    )


def render_region_printout(item: PrintItem, raster: MapRaster, language: str) -> PrintableUnit:
    _expect(item, RegionItem, TemplateId.REGION_PRINTOUT)
    region = item.region
    features: list[Feature] = list(geometry.to_features(region.geometry))
    for territory in item.territories:
        features.extend(_territory_features(territory, labelled=True))
    chrome = [
        TextBlock(
            text=translate(language, "region_printout.title"),
            x=0.04,
            y=0.97,
            font_size=9.0,
            weight="bold",
        ),
        TextBlock(text=region.name, x=0.96, y=0.97, font_size=18.0, weight="bold", ha="right"),
    ]
    if item.territories:
        numbers = ", ".join(territory.number for territory in item.territories)
        chrome.append(
            TextBlock(
                text=f"{translate(language, 'region_printout.territories')}: {numbers}",
                x=0.04,
                y=0.945,
                font_size=7.0,
                wrap=True,
            )
        )
    return PrintableUnit(
        template_id=TemplateId.REGION_PRINTOUT.value,
        granularity=Granularity.REGION,
        item_id=region.id,
        raster=raster,
        language=language,
        title=region.name,
        page_size_mm=_A4_PORTRAIT,
        maps=(
            MapSpec(
                name="region",
                rect=(0.04, 0.04, 0.92, 0.88),
                features=tuple(features),
                padding_ratio=_PAGE_POLICY.card_padding,
                label_font_size=_PAGE_POLICY.region_label_size,
            ),
        ),
        chrome=tuple(chrome),
    )


def _renderer_for(template_id: TemplateId) -> Renderer:
    match template_id:
        case TemplateId.TERRITORY_CARD:
            return render_territory_card
        case TemplateId.NEIGHBORHOOD_CARD:
            return render_neighborhood_card
        case TemplateId.RURAL_TERRITORY_CARD:
            return render_rural_territory_card
        case TemplateId.REGION_PRINTOUT:
            return render_region_printout
    raise ValueError(f"No renderer for template {template_id!r}")


def _granularity_for(template_id: TemplateId) -> Granularity:
    match template_id:
        case TemplateId.REGION_PRINTOUT:
            return Granularity.REGION
        case TemplateId.TERRITORY_CARD | TemplateId.NEIGHBORHOOD_CARD | TemplateId.RURAL_TERRITORY_CARD:
            return Granularity.TERRITORY
    raise ValueError(f"No granularity for template {template_id!r}")


_TEMPLATE_NAMES: dict[TemplateId, str] = {
    TemplateId.TERRITORY_CARD: "Territory Card",
    TemplateId.NEIGHBORHOOD_CARD: "Neighborhood Map",
    TemplateId.RURAL_TERRITORY_CARD: "Rural Territory Card",
    TemplateId.REGION_PRINTOUT: "Subregion Map",
}


class TemplateRegistry:
    """Static template catalog in display order."""

    def __init__(self) -> None:
        self._templates = tuple(
            Template(
                id=template_id,
                name=_TEMPLATE_NAMES[template_id],
                granularity=_granularity_for(template_id),
                renderer=_renderer_for(template_id),
            )
            for template_id in TemplateId
        )
        self._by_id = {template.id.value: template for template in self._templates}

    def list(self) -> tuple[Template, ...]:
        return self._templates

    def resolve(self, template_id: str) -> Template:
        try:
            return self._by_id[str(getattr(template_id, "value", template_id))]
        except KeyError:
            raise NotFoundError("template", str(template_id)) from None

    def default(self) -> Template:
        return self._templates[0]


TEMPLATES = TemplateRegistry()
