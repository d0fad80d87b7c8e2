"""Tests for the command line entry point."""

import json
from unittest.mock import AsyncMock

import pytest

from menu_lens import cli
from menu_lens.core.models import AnalysisResult, MenuItem, Position
from menu_lens.server.exceptions import UpstreamAuthError


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(cli, "setup_logging", lambda **kwargs: None)


def test_match_json(capsys):
    assert cli.main(["match", "Sfincione e granita", "--json"]) == 0

    items = json.loads(capsys.readouterr().out)
    assert [i["name"] for i in items] == ["Sfincione", "Granita"]


def test_match_text_no_results(capsys):
    assert cli.main(["match", "burger"]) == 0

    assert "No dishes found." in capsys.readouterr().out


def test_analyze_prints_items(capsys, monkeypatch, tmp_path):
    result = AnalysisResult(
        items=[MenuItem(name="Pho", definition="Beef noodle soup", position=Position(x=25, y=40))],
        payload_found=True,
    )
    analyze_file = AsyncMock(return_value=result)
    monkeypatch.setattr(cli.MenuAnalysisPipeline, "analyze_file", analyze_file)

    assert cli.main(["analyze", str(tmp_path / "menu.jpg"), "--positions", "--no-images"]) == 0

    out = capsys.readouterr().out
    assert "1. Pho" in out
    assert "x=25% y=40%" in out


def test_analyze_unreadable_file(capsys, tmp_path):
    path = tmp_path / "menu.jpg"
    path.write_bytes(b"not an image")

    assert cli.main(["analyze", str(path), "--no-images"]) == 1

    assert "Cannot prepare image" in capsys.readouterr().err


def test_analyze_upstream_error(capsys, monkeypatch, tmp_path):
    monkeypatch.setattr(
        cli.MenuAnalysisPipeline, "analyze_file", AsyncMock(side_effect=UpstreamAuthError("no key"))
    )

    assert cli.main(["analyze", str(tmp_path / "menu.jpg")]) == 1

    assert "Invalid API key" in capsys.readouterr().err
