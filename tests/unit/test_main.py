# tests/unit/test_main.py — v2
"""Tests for main.py — CLI entry point."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from PIL import Image

from tomatoscan.classification.model_classifier import ModelDiseaseClassifier
from tomatoscan.detection.yolo_detector import YoloLeafDetector
from tomatoscan.main import _build_parser, main
from tomatoscan.pipeline.orchestrator import AnalysisPipeline


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CACHE_BACKEND", "sqlite")
    monkeypatch.setenv("CACHE_ROOT", str(tmp_path / "cache"))
    monkeypatch.setenv("GOOGLE_API_KEY", "")
    yield
    logging.getLogger("tomatoscan").handlers.clear()


# ---------------------------------------------------------------------------
# Parser tests
# ---------------------------------------------------------------------------

class TestBuildParser:
    def test_version_flag(self):
        parser = _build_parser()
        with pytest.raises(SystemExit) as exc_info:
            parser.parse_args(["--version"])
        assert exc_info.value.code == 0

    def test_analyze_subcommand(self):
        args = _build_parser().parse_args(["analyze", "leaf.jpg", "--offline", "--json"])
        assert args.command == "analyze"
        assert args.image == Path("leaf.jpg")
        assert args.offline and args.json
        assert not args.no_validator

    def test_cache_subcommand(self):
        args = _build_parser().parse_args(["cache", "sweep"])
        assert args.action == "sweep"

    def test_cache_rejects_unknown_action(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["cache", "vacuum"])


# ---------------------------------------------------------------------------
# Command tests
# ---------------------------------------------------------------------------

class TestMain:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_missing_image(self):
        assert main(["analyze", "missing.jpg"]) == 1

    def test_analyze_offline_json(
        self, monkeypatch, capsys, tmp_path, leaf_image, make_backend, validator_factory,
        settings,
    ):
        image_path = tmp_path / "leaf.png"
        leaf_image.save(image_path)
        backend = make_backend()
        validator = validator_factory()

        def fake_build_pipeline(built_settings):
            return AnalysisPipeline(
                detector=YoloLeafDetector(backend),
                classifier=ModelDiseaseClassifier(backend),
                validator=validator,
                settings=settings,
            )

        monkeypatch.setattr("tomatoscan.api.facade.build_pipeline", fake_build_pipeline)
        assert main(["analyze", str(image_path), "--offline", "--json"]) == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload["success"] is True
        assert payload["report"]["disease_name"] == "Healthy"
        assert payload["report"]["source"] == "fallback"
        assert validator.calls == 0

    def test_analyze_failure_summary(
        self, monkeypatch, capsys, tmp_path, make_backend, validator_factory, settings,
    ):
        image_path = tmp_path / "blank.png"
        Image.new("RGB", (300, 300), (0, 0, 0)).save(image_path)
        backend = make_backend()

        monkeypatch.setattr(
            "tomatoscan.api.facade.build_pipeline",
            lambda _s: AnalysisPipeline(
                detector=YoloLeafDetector(backend),
                classifier=ModelDiseaseClassifier(backend),
                validator=validator_factory(),
                settings=settings,
            ),
        )
        assert main(["analyze", str(image_path)]) == 2
        out = capsys.readouterr().out
        assert "Analysis failed: Image quality is insufficient" in out

    def test_cache_stats_and_clear(self, capsys):
        assert main(["cache", "stats"]) == 0
        assert "Entries:  0/100" in capsys.readouterr().out
        assert main(["cache", "clear"]) == 0
        assert "Cache cleared" in capsys.readouterr().out
        assert main(["cache", "sweep"]) == 0
        assert "Removed 0 cache entries" in capsys.readouterr().out
