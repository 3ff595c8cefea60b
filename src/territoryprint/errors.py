"""Error taxonomy for geometry decoding, catalog lookups and map lifecycle."""

from __future__ import annotations


class TerritoryPrintError(Exception):
    """Base class for all print pipeline errors."""


class ParseError(TerritoryPrintError, ValueError):
    """Geometry wire format could not be decoded."""


class NotFoundError(TerritoryPrintError, LookupError):
    """Unknown raster, template, language or selection id."""

    def __init__(self, kind: str, item_id: str) -> None:
        super().__init__(f"Unknown {kind} id: '{item_id}'")
        self.kind = kind
        self.item_id = item_id


class MapViewStateError(TerritoryPrintError, RuntimeError):
    """Map view operation invalid in its current lifecycle state."""


class EmptyGeometryWarning(UserWarning):
    """A map was mounted without any drawable geometry."""
