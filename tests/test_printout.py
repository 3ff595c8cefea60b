"""
Tests for printout and cli modules.

Run with: pytest tests/test_printout.py -v
"""

import json
import logging

import pytest
import yaml

from territoryprint import cli
from territoryprint.config import load_config
from territoryprint.printout import PrintRequest, format_print_lines, run_print


@pytest.fixture
def config_path(tmp_path, congregation_raw):
    (tmp_path / "c.yaml").write_text(yaml.safe_dump(congregation_raw), encoding="utf-8")
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "paths": {"congregation": "c.yaml", "output_dir": "build", "logs_dir": "build/logs"},
                "render": {"dpi": 60, "format": "pdf"},
            }
        ),
        encoding="utf-8",
    )
    return path


class TestRunPrint:
    """Tests for run_print function."""

    def test_default_selection(self, config_path, fetcher):
        """Test default request prints the first territory card."""
        cfg = load_config(config_path)
        report = run_print(cfg, PrintRequest(), fetcher=fetcher)
        assert report.ok, report.errors
        assert report.output_paths == [cfg.paths.output_dir / "TerritoryCard.pdf"]
        assert report.output_paths[0].exists()
        assert report.summary == {"units": 1, "files": 1}

    def test_manifest(self, config_path, fetcher, tmp_path):
        """Test the manifest lists units in selection order."""
        cfg = load_config(config_path)
        request = PrintRequest(
            template_id="RegionPrintout",
            raster_id="osmBackup",
            region_ids=("rB", "rA"),
            output_path=tmp_path / "regions.pdf",
        )
        report = run_print(cfg, request, fetcher=fetcher)
        assert report.ok, report.errors
        assert report.manifest_path == tmp_path / "regions.manifest.json"
        manifest = json.loads(report.manifest_path.read_text(encoding="utf-8"))
        assert [unit["item_id"] for unit in manifest["units"]] == ["rB", "rA"]
        assert {unit["raster_id"] for unit in manifest["units"]} == {"osmBackup"}
        assert len(manifest["config_hash_sha256"]) == 64

    def test_unknown_raster(self, config_path, fetcher):
        """Test unknown raster id is reported, not raised."""
        report = run_print(load_config(config_path), PrintRequest(raster_id="nope"), fetcher=fetcher)
        assert not report.ok
        assert "nope" in report.errors[0]
        assert fetcher.calls == []

    def test_unknown_territory(self, config_path, fetcher):
        """Test unknown territory id is reported."""
        report = run_print(load_config(config_path), PrintRequest(territory_ids=("t99",)), fetcher=fetcher)
        assert not report.ok

    def test_bad_geometry(self, config_path, congregation_raw, fetcher):
        """Test undecodable geometry is reported before rendering."""
        congregation_raw["territories"][0]["geometry"] = "POLYGON((oops))"
        (config_path.parent / "c.yaml").write_text(yaml.safe_dump(congregation_raw), encoding="utf-8")
        report = run_print(load_config(config_path), PrintRequest(), fetcher=fetcher)
        assert not report.ok
        assert "Geometry" in report.errors[0]

    def test_format_lines(self, config_path, fetcher):
        """Test successful report ends with output and OK lines."""
        report = run_print(load_config(config_path), PrintRequest(), fetcher=fetcher)
        lines = list(format_print_lines(report))
        assert lines[-1] == "[OK] Printing completed with no errors."
        assert any(line.startswith("[OUT] ") for line in lines)


class TestCli:
    """Tests for the command line entrypoint."""

    @pytest.fixture(autouse=True)
    def release_log_handlers(self):
        yield
        logger = logging.getLogger("territoryprint")
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.setLevel(logging.NOTSET)

    def test_list_templates(self, config_path, caplog):
        """Test list-templates logs every template id."""
        with caplog.at_level(logging.INFO, logger="territoryprint.cli"):
            assert cli.main(["list-templates", "--config", str(config_path)]) == 0
        assert "RegionPrintout" in caplog.text

    def test_list_languages(self, config_path, caplog):
        """Test list-languages logs language codes."""
        with caplog.at_level(logging.INFO, logger="territoryprint.cli"):
            assert cli.main(["list-languages", "--config", str(config_path)]) == 0
        assert "Suomi" in caplog.text

    def test_validate(self, config_path):
        """Test validate exit code follows the report."""
        assert cli.main(["validate", "--config", str(config_path)]) == 0
        assert cli.main(["validate", "--config", str(config_path), "--strict-geometry"]) == 1

    def test_unknown_command(self):
        """Test argparse rejects unknown subcommands."""
        with pytest.raises(SystemExit):
            cli.main(["publish"])
