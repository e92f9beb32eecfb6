from __future__ import annotations

import json

from typer.testing import CliRunner

from memfs_cli.cli import app


def test_cli_help() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    assert "Usage:" in result.output
    assert "--help" in result.output


def test_cli_load_lists_kinds(tmp_path) -> None:
    (tmp_path / "a.txt").write_text("hello", encoding="utf-8")
    (tmp_path / "b.json").write_text('{"x":1}', encoding="utf-8")
    runner = CliRunner()

    result = runner.invoke(app, ["load", str(tmp_path)])

    assert result.exit_code == 0
    assert f"string\t{tmp_path / 'a.txt'}" in result.output
    assert f"object\t{tmp_path / 'b.json'}" in result.output
    assert "loaded=2" in result.output


def test_cli_load_missing_path_fails(tmp_path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["load", str(tmp_path / "missing")])

    assert result.exit_code == 1


def test_cli_write_then_read_and_kind(tmp_path) -> None:
    target = tmp_path / "doc.json"
    runner = CliRunner()

    written = runner.invoke(app, ["write", str(target), '{"a": [1, 2]}', "--kind", "object"])
    assert written.exit_code == 0
    assert json.loads(target.read_text(encoding="utf-8")) == {"a": [1, 2]}

    read = runner.invoke(app, ["read", str(target)])
    assert read.exit_code == 0
    assert '"a"' in read.output

    kind = runner.invoke(app, ["kind", str(target)])
    assert kind.exit_code == 0
    assert "object" in kind.output


def test_cli_write_rejects_invalid_number(tmp_path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["write", str(tmp_path / "n.txt"), "abc", "--kind", "number"])

    assert result.exit_code == 1
    assert not (tmp_path / "n.txt").exists()


def test_cli_read_missing_file_prints_undefined(tmp_path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["read", str(tmp_path / "ghost.txt")])

    assert result.exit_code == 0
    assert "undefined" in result.output


def test_cli_flush_rewrites_canonical_form(tmp_path) -> None:
    (tmp_path / "n.txt").write_text("  42\n", encoding="utf-8")
    (tmp_path / "o.json").write_text('{ "k" : true }', encoding="utf-8")
    runner = CliRunner()

    result = runner.invoke(app, ["flush", str(tmp_path)])

    assert result.exit_code == 0
    assert "persisted=2 failed=0" in result.output
    assert (tmp_path / "n.txt").read_text(encoding="utf-8") == "42"
    assert (tmp_path / "o.json").read_text(encoding="utf-8") == '{"k":true}'
