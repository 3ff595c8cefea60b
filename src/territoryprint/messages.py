"""Supported print languages and localized page chrome."""

from __future__ import annotations

from typing import Mapping

from .errors import NotFoundError

DEFAULT_LANGUAGE = "en"

LANGUAGES: Mapping[str, str] = {
    "en": "English",
    "fi": "Suomi",
    "sv": "Svenska",
}

_MESSAGES: Mapping[str, Mapping[str, str]] = {
    "en": {
        "territory_card.title": "Territory Map Card",
        "neighborhood_card.title": "Neighborhood Map",
        "rural_card.title": "Rural Territory Card",
        "region_printout.title": "Subregion Map",
        "territory.number": "Territory",
        "territory.subregion": "Subregion",
        "territory.addresses": "Addresses",
        "territory.overview": "Overview",
        "territory_card.footer": (
            "Please keep this card in the envelope. Do not soil, mark or bend it. "
            "If this card is lost, please inform the territory servant."
        ),
        "region_printout.territories": "Territories",
    },
    "fi": {
        "territory_card.title": "Aluekortti",
        "neighborhood_card.title": "Lähialueen kartta",
        "rural_card.title": "Maaseutualueen kortti",
        "region_printout.title": "Osa-alueen kartta",
        "territory.number": "Alue",
        "territory.subregion": "Osa-alue",
        "territory.addresses": "Osoitteet",
        "territory.overview": "Yleiskartta",
        "territory_card.footer": (
            "Säilytä tämä kortti kotelossa. Älä likaa, merkitse tai taita sitä. "
            "Jos kortti katoaa, ilmoita siitä alueiden palvelijalle."
        ),
        "region_printout.territories": "Alueet",
    },
    "sv": {
        "territory_card.title": "Distriktskort",
        "neighborhood_card.title": "Karta över närområdet",
        "rural_card.title": "Distriktskort för landsbygd",
        "region_printout.title": "Delområdeskarta",
        "territory.number": "Distrikt",
        "territory.subregion": "Delområde",
        "territory.addresses": "Adresser",
        "territory.overview": "Översikt",
        "territory_card.footer": (
            "Förvara kortet i fodralet. Smutsa inte ner, märk eller vik det. "
            "Om kortet kommer bort, meddela distriktstjänaren."
        ),
        "region_printout.territories": "Distrikt",
    },
}


def require_language(code: str) -> str:
    if code not in LANGUAGES:
        raise NotFoundError("language", code)
    return code


def sorted_languages() -> list[tuple[str, str]]:
    """Language `(code, name)` pairs in display-name order."""
    return sorted(LANGUAGES.items(), key=lambda item: item[1].casefold())


def translate(language: str, key: str) -> str:
    """Look up a message, falling back to English and then to the key itself."""
    bundle = _MESSAGES.get(language, {})
    if key in bundle:
        return bundle[key]
    return _MESSAGES[DEFAULT_LANGUAGE].get(key, key)
