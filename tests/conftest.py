"""Shared fixtures: headless matplotlib, in-memory data, offline tile fetcher."""

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pytest

from territoryprint.congregation import congregation_from_mapping
from territoryprint.rasters import RasterCatalog


SQUARE_A = "POLYGON((24.950 60.183, 24.955 60.183, 24.955 60.186, 24.950 60.186, 24.950 60.183))"
SQUARE_B = "POLYGON((24.955 60.183, 24.960 60.183, 24.960 60.186, 24.955 60.186, 24.955 60.183))"
SQUARE_C = "POLYGON((24.962 60.185, 24.966 60.185, 24.966 60.188, 24.962 60.188, 24.962 60.185))"
REGION_A = "POLYGON((24.948 60.181, 24.962 60.181, 24.962 60.188, 24.948 60.188, 24.948 60.181))"


class FakeFetcher:
    """Tile fetcher that records requests and returns a flat grey image."""

    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    def __call__(self, raster, extent):
        self.calls.append((raster.id, extent))
        if self.fail:
            raise OSError("tile server unreachable")
        grey = [0.6, 0.6, 0.6]
        return [[grey, grey], [grey, grey]], extent

    @property
    def raster_ids(self):
        return [raster_id for raster_id, _ in self.calls]


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def catalog():
    return RasterCatalog()


@pytest.fixture
def congregation_raw():
    return {
        "id": "c1",
        "name": "Test Congregation",
        "territories": [
            {"id": "t1", "number": "101", "subregion": "North", "geometry": SQUARE_A},
            {"id": "t2", "number": "102", "subregion": "North", "geometry": SQUARE_B},
            {"id": "t3", "number": "201", "subregion": "South", "geometry": SQUARE_C},
        ],
        "subregions": [
            {"id": "rA", "name": "North", "geometry": REGION_A, "territories": ["t1", "t2"]},
            {"id": "rB", "name": "South", "territories": ["t3"]},
        ],
    }


@pytest.fixture
def data(congregation_raw):
    return congregation_from_mapping(congregation_raw)


@pytest.fixture
def figure():
    fig = plt.figure(figsize=(4, 3), dpi=50)
    yield fig
    plt.close(fig)


@pytest.fixture
def ax(figure):
    return figure.add_axes([0.0, 0.0, 1.0, 1.0])
