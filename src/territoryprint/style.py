"""Visual style for territory boundaries and labels."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any

_Rgba = tuple[float, float, float, float]


def _rgba(red: int, green: int, blue: int, alpha: float) -> _Rgba:
    return (red / 255.0, green / 255.0, blue / 255.0, float(alpha))


@dataclass(frozen=True, slots=True)
class Stroke:
    color: _Rgba
    width: float


@dataclass(frozen=True, slots=True)
class Fill:
    color: _Rgba


@dataclass(frozen=True, slots=True)
class TextStyle:
    text: str
    font_size: float
    fill: Fill
    stroke: Stroke
    font_weight: str = "bold"
    font_family: str = "sans-serif"

    def path_effects(self) -> list[Any]:
        """Outline behind the glyphs so labels stay legible over any raster."""
        from matplotlib import patheffects

        return [
            patheffects.withStroke(
                linewidth=self.stroke.width,
                foreground=self.stroke.color,
            )
        ]

    def text_kwargs(self) -> dict[str, Any]:
        return {
            "color": self.fill.color,
            "fontsize": self.font_size,
            "fontweight": self.font_weight,
            "family": self.font_family,
            "ha": "center",
            "va": "center",
            "clip_on": True,
            "path_effects": self.path_effects(),
        }


@lru_cache(maxsize=1)
def boundary_stroke() -> Stroke:
    return Stroke(color=_rgba(255, 0, 0, 0.6), width=2.0)


@lru_cache(maxsize=1)
def boundary_fill() -> Fill:
    return Fill(color=_rgba(255, 0, 0, 0.1))


@lru_cache(maxsize=256)
def label(text: str, font_size: float) -> TextStyle:
    return TextStyle(
        text=text,
        font_size=float(font_size),
        fill=Fill(color=_rgba(0, 0, 0, 1.0)),
        stroke=Stroke(color=_rgba(255, 255, 255, 1.0), width=3.0),
    )


def patch_kwargs() -> dict[str, Any]:
    """Matplotlib patch keyword arguments for a territory boundary."""
    stroke = boundary_stroke()
    return {
        "facecolor": boundary_fill().color,
        "edgecolor": stroke.color,
        "linewidth": stroke.width,
        "joinstyle": "round",
    }
