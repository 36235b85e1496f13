"""Tests for the command-line entry point."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from repo_flattener import main as cli
from tests.fakes import FakeRepoSource

URL = "https://github.com/acme/widgets"


@pytest.fixture
def source(monkeypatch: pytest.MonkeyPatch) -> FakeRepoSource:
    fake = FakeRepoSource({"README.md": b"# Widgets\n", "app.py": b"print(1)\n"})
    monkeypatch.setattr(cli, "GitHubRestAdapter", lambda *args, **kwargs: fake)
    return fake


def test_flatten_prints_container(source: FakeRepoSource, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["flatten", URL]) == 0

    out = capsys.readouterr().out
    assert out.startswith("<documents>\n")
    assert out.endswith("</documents>\n")
    assert 'path="app.py"' in out


def test_flatten_document_to_file(source: FakeRepoSource, tmp_path: Path) -> None:
    target = tmp_path / "widgets.md"
    assert cli.main(["flatten", URL, "--format", "document", "-o", str(target)]) == 0
    assert target.read_text(encoding="utf-8").startswith("# acme/widgets\n")


def test_flatten_json(source: FakeRepoSource, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["flatten", URL, "-f", "json"]) == 0
    body = json.loads(capsys.readouterr().out)
    assert [f["path"] for f in body["rendered"]] == ["README.md", "app.py"]


def test_flatten_error_exit_code(source: FakeRepoSource, capsys: pytest.CaptureFixture[str]) -> None:
    source.missing_repo = True
    assert cli.main(["flatten", URL]) == 1
    assert "error (404)" in capsys.readouterr().err


def test_unknown_format_is_rejected() -> None:
    with pytest.raises(SystemExit):
        cli.main(["flatten", URL, "--format", "pdf"])
