"""Tests for the certificate CLI."""

import json
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

import cli

pytestmark = pytest.mark.unit


def _run(*args: str) -> int:
    with patch.object(sys, "argv", ["cli", *args]):
        return cli.main()


@pytest.fixture
def request_file(tmp_path: Path, valid_request) -> Path:
    path = tmp_path / "request.json"
    path.write_text(json.dumps(valid_request), encoding="utf-8")
    return path


def _fake_cairosvg() -> MagicMock:
    mock_cairosvg = MagicMock()

    def svg2png(bytestring: bytes, write_to: str, scale: float) -> None:
        Path(write_to).write_bytes(b"\x89PNG cli")

    mock_cairosvg.svg2png.side_effect = svg2png
    return mock_cairosvg


class TestListTemplates:
    def test_lists_bundled_layouts(self, capsys):
        assert _run("list-templates") == 0

        assert capsys.readouterr().out.split() == ["classic.svg", "modern.svg"]

    def test_empty_directory_fails(self, tmp_path):
        assert _run("--templates-dir", str(tmp_path), "list-templates") == 1


class TestRender:
    def test_writes_png(self, request_file, tmp_path):
        output = tmp_path / "out" / "certificate.png"
        output.parent.mkdir()

        with patch.dict("sys.modules", {"cairosvg": _fake_cairosvg()}):
            code = _run("render", str(request_file), "-o", str(output))

        assert code == 0
        assert output.read_bytes() == b"\x89PNG cli"
        assert list(output.parent.iterdir()) == [output]

    def test_invalid_request_fails(self, tmp_path, valid_request):
        del valid_request["signature"]
        path = tmp_path / "request.json"
        path.write_text(json.dumps(valid_request), encoding="utf-8")

        assert _run("render", str(path), "-o", str(tmp_path / "x.png")) == 1
        assert not (tmp_path / "x.png").exists()

    def test_unknown_template_fails(self, tmp_path, valid_request):
        valid_request["templateName"] = "nope.svg"
        path = tmp_path / "request.json"
        path.write_text(json.dumps(valid_request), encoding="utf-8")

        assert _run("render", str(path), "-o", str(tmp_path / "x.png")) == 1

    def test_unreadable_request_fails(self, tmp_path):
        assert _run("render", str(tmp_path / "missing.json")) == 1


def test_no_command_prints_help(capsys):
    assert _run() == 1
    assert "usage" in capsys.readouterr().out
