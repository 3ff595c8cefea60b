"""
Tests for mapview module.

Run with: pytest tests/test_mapview.py -v
"""

import warnings

import pytest
from shapely.geometry import Point

from territoryprint.errors import EmptyGeometryWarning, MapViewStateError, NotFoundError
from territoryprint.geometry import to_feature, to_features
from territoryprint.mapview import WORLD_EXTENT, FitPolicy, MapView, MapViewState, fit_extent
from territoryprint.models import Feature

from conftest import FakeFetcher, SQUARE_A, SQUARE_B


def _contains(viewport, bounds):
    x0, x1, y0, y1 = viewport
    min_x, min_y, max_x, max_y = bounds
    return x0 <= min_x and max_x <= x1 and y0 <= min_y and max_y <= y1


@pytest.fixture
def features():
    return [to_feature(SQUARE_A, label="101"), to_feature(SQUARE_B, label="102")]


@pytest.fixture
def view(catalog, fetcher):
    return MapView(catalog, fetcher=fetcher)


class TestFitExtent:
    """Tests for fit_extent function."""

    def test_contains_all_geometries(self, features):
        """Test the fitted viewport frames every geometry."""
        geometries = [feature.geometry for feature in features]
        extent = fit_extent(geometries, target_ratio=1.5)
        for geometry in geometries:
            assert _contains(extent, geometry.bounds)

    def test_matches_aspect(self, features):
        """Test the viewport has the requested aspect ratio."""
        x0, x1, y0, y1 = fit_extent([feature.geometry for feature in features], target_ratio=2.0)
        assert (x1 - x0) / (y1 - y0) == pytest.approx(2.0)

    def test_min_span(self):
        """Test a single point still gets a usable viewport."""
        x0, x1, y0, y1 = fit_extent([Point(1000.0, 2000.0)], target_ratio=1.0, min_span_m=300.0)
        assert x1 - x0 == pytest.approx(300.0)
        assert y1 - y0 == pytest.approx(300.0)
        assert (x0 + x1) / 2 == pytest.approx(1000.0)

    def test_empty_is_world(self):
        """Test no geometry falls back to the whole world."""
        x0, x1, y0, y1 = fit_extent([], target_ratio=1.0)
        assert (x0, x1, y0, y1) == pytest.approx(WORLD_EXTENT)


class TestMount:
    """Tests for MapView.mount."""

    def test_fits_features(self, view, ax, features):
        """Test mounting frames every feature and enters the fitted state."""
        handle = view.mount(ax, features)
        assert handle is view.handle
        assert view.state is MapViewState.FITTED
        for feature in features:
            assert _contains(view.viewport, feature.geometry.bounds)
        assert ax.get_xlim() == pytest.approx(view.viewport[:2])

    def test_default_raster(self, view, ax, features, catalog):
        """Test mounting without raster id uses the catalog default."""
        view.mount(ax, features)
        assert view.raster is catalog.default()

    def test_overlay_drawn(self, view, ax, features):
        """Test polygons become patches and labels become text."""
        view.mount(ax, features)
        assert len(ax.patches) == 2
        texts = {text.get_text() for text in ax.texts}
        assert {"101", "102"} <= texts

    def test_single_base_layer(self, view, ax, features):
        """Test exactly one base image is installed under the overlay."""
        view.mount(ax, features)
        assert list(ax.images) == [view.base_layer]
        assert view.base_layer.get_zorder() < min(artist.get_zorder() for artist in view.overlay_artists)

    def test_point_marker(self, view, ax):
        """Test point features become markers."""
        view.mount(ax, [to_feature("POINT(24.95 60.18)")])
        assert len(ax.lines) == 1

    def test_multipolygon_parts(self, view, ax):
        """Test each multipolygon part gets its own patch."""
        wkt = "MULTIPOLYGON(((24.90 60.10, 24.91 60.10, 24.91 60.11, 24.90 60.10)), ((24.92 60.10, 24.93 60.10, 24.93 60.11, 24.92 60.10)))"
        view.mount(ax, [to_feature(wkt, label="7")])
        assert len(ax.patches) == 2
        assert [text.get_text() for text in ax.texts].count("7") == 1

    def test_empty_warns_and_shows_world(self, view, ax):
        """Test mounting nothing warns and frames the world."""
        with pytest.warns(EmptyGeometryWarning):
            view.mount(ax, [])
        x0, x1, y0, y1 = view.viewport
        assert x0 <= WORLD_EXTENT[0] and x1 >= WORLD_EXTENT[1]
        assert y0 <= WORLD_EXTENT[2] and y1 >= WORLD_EXTENT[3]
        assert view.overlay_artists == ()

    def test_mount_twice(self, view, ax, features, figure):
        """Test a mounted view cannot be mounted again."""
        view.mount(ax, features)
        other = figure.add_axes([0.5, 0.5, 0.5, 0.5])
        with pytest.raises(MapViewStateError):
            view.mount(other, features)

    def test_container_in_use(self, view, ax, features, catalog, fetcher):
        """Test two views cannot share one container."""
        view.mount(ax, features)
        with pytest.raises(MapViewStateError):
            MapView(catalog, fetcher=fetcher).mount(ax, features)

    def test_unknown_raster(self, view, ax, features):
        """Test unknown raster fails before touching the container."""
        with pytest.raises(NotFoundError):
            view.mount(ax, features, raster_id="nope")
        assert view.state is MapViewState.UNMOUNTED
        assert len(ax.patches) == 0

    def test_no_fetch_until_draw(self, view, ax, features, fetcher):
        """Test mounting itself does not download tiles."""
        view.mount(ax, features)
        assert fetcher.calls == []
        ax.figure.canvas.draw()
        assert fetcher.raster_ids == ["osm"]

    @pytest.mark.parametrize(
        "wkt",
        [
            "POINT(24.95 60.18)",
            SQUARE_A,
            "POLYGON((-10 -10, 10 -10, 10 10, -10 10, -10 -10), (-1 -1, 1 -1, 1 1, -1 1, -1 -1))",
            "MULTIPOLYGON(((170 50, 175 50, 175 55, 170 50)), ((-5 -40, 0 -40, 0 -35, -5 -40)))",
        ],
    )
    def test_decoded_geometry_is_framed(self, catalog, fetcher, ax, wkt):
        """Test decode, project and mount frames every input vertex."""
        feature = to_feature(wkt, label="x")
        view = MapView(catalog, fetcher=fetcher)
        with warnings.catch_warnings():
            warnings.simplefilter("error", EmptyGeometryWarning)
            view.mount(ax, [feature])
        assert view.overlay_artists
        assert _contains(view.viewport, feature.geometry.bounds)


class TestSetRaster:
    """Tests for MapView.set_raster."""

    def test_swaps_in_place(self, view, ax, features, fetcher):
        """Test two swaps keep overlay and base image and load only the last."""
        handle = view.mount(ax, features)
        overlay = view.overlay_artists
        base = view.base_layer
        viewport = view.viewport

        view.set_raster(handle, "osmBackup")
        view.set_raster(handle, "mmlTaustakartta")

        assert view.state is MapViewState.IDLE
        assert view.raster.id == "mmlTaustakartta"
        assert view.overlay_artists == overlay
        assert view.base_layer is base
        assert view.viewport == viewport
        assert len(ax.images) == 1
        assert len(ax.patches) == 2
        assert fetcher.calls == []

        ax.figure.canvas.draw()
        assert fetcher.raster_ids == ["mmlTaustakartta"]
        assert base.loaded_raster_id == "mmlTaustakartta"

    def test_attribution_follows_raster(self, view, ax, features):
        """Test the attribution text changes with the raster."""
        handle = view.mount(ax, features)
        view.set_raster(handle, "mmlTaustakartta")
        assert view.base_layer.attribution.get_text() == "© Maanmittauslaitos"

    def test_redraw_is_cached(self, view, ax, features, fetcher):
        """Test redrawing an unchanged map does not refetch."""
        view.mount(ax, features)
        ax.figure.canvas.draw()
        ax.figure.canvas.draw()
        assert len(fetcher.calls) == 1

    def test_unknown_raster_keeps_current(self, view, ax, features):
        """Test a failed swap leaves the current raster active."""
        handle = view.mount(ax, features, raster_id="osmBackup")
        with pytest.raises(NotFoundError):
            view.set_raster(handle, "nope")
        assert view.raster.id == "osmBackup"
        assert view.state is MapViewState.FITTED

    def test_unmounted(self, view):
        """Test swapping before mount is a lifecycle error."""
        with pytest.raises(MapViewStateError):
            view.set_raster(None, "osm")

    def test_stale_handle(self, view, ax, features):
        """Test a handle from an earlier mount is rejected."""
        old = view.mount(ax, features)
        view.unmount(old)
        view.mount(ax, features)
        with pytest.raises(MapViewStateError):
            view.set_raster(old, "osm")

    def test_fetch_failure_is_not_fatal(self, catalog, ax, features):
        """Test a failing tile server leaves the overlay drawable."""
        failing = FakeFetcher(fail=True)
        view = MapView(catalog, fetcher=failing)
        view.mount(ax, features)
        ax.figure.canvas.draw()
        assert len(failing.calls) == 1
        assert view.base_layer.loaded_raster_id is None


class TestUnmount:
    """Tests for MapView.unmount."""

    def test_never_mounted(self, view):
        """Test unmounting an unmounted view is a no-op."""
        view.unmount()
        assert view.state is MapViewState.UNMOUNTED

    def test_releases_container(self, view, ax, features, catalog, fetcher):
        """Test unmount removes every artist and frees the container."""
        handle = view.mount(ax, features)
        view.unmount(handle)
        assert view.state is MapViewState.UNMOUNTED
        assert view.handle is None
        assert len(ax.patches) == 0
        assert len(ax.images) == 0
        assert len(ax.texts) == 0
        MapView(catalog, fetcher=fetcher).mount(ax, features)

    def test_stale_handle_ignored(self, view, ax, features):
        """Test an outdated handle does not unmount the current mount."""
        old = view.mount(ax, features)
        view.unmount(old)
        view.mount(ax, features)
        view.unmount(old)
        assert view.state is MapViewState.FITTED

    def test_pending_raster_never_fetched(self, view, ax, features, fetcher):
        """Test a swap requested before unmount never downloads."""
        handle = view.mount(ax, features)
        view.set_raster(handle, "osmBackup")
        base = view.base_layer
        view.unmount(handle)
        ax.figure.canvas.draw()
        assert fetcher.calls == []
        assert base.loaded_raster_id is None

    def test_remount_after_unmount(self, view, ax, features):
        """Test a view can be mounted again after unmount."""
        handle = view.mount(ax, features)
        view.unmount(handle)
        new_handle = view.mount(ax, [Feature(geometry=Point(0.0, 0.0))])
        assert new_handle != handle
        assert view.state is MapViewState.FITTED


class TestFitPolicy:
    """Tests for FitPolicy padding."""

    def test_larger_padding_widens_view(self, catalog, fetcher, figure, features):
        """Test more padding gives a wider viewport."""
        tight = MapView(catalog, fetcher=fetcher, fit=FitPolicy(padding_ratio=0.1))
        loose = MapView(catalog, fetcher=fetcher, fit=FitPolicy(padding_ratio=1.0))
        tight.mount(figure.add_axes([0.0, 0.0, 0.5, 1.0]), features)
        loose.mount(figure.add_axes([0.5, 0.0, 0.5, 1.0]), features)
        assert loose.viewport[1] - loose.viewport[0] > tight.viewport[1] - tight.viewport[0]

    def test_empty_feature_geometry_skipped(self, view, ax):
        """Test features decoded from missing geometry add nothing."""
        with pytest.warns(EmptyGeometryWarning):
            view.mount(ax, to_features(None, label="x"))
