"""Tests for the build.py command line."""

from __future__ import annotations

import importlib.util
import json
from pathlib import Path

import pytest


BUILD_SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "build.py"


@pytest.fixture(scope="module")
def cli():
    module_spec = importlib.util.spec_from_file_location("bookgraph_build_cli", BUILD_SCRIPT)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    return module


def exit_code(cli, argv) -> int:
    with pytest.raises(SystemExit) as exc:
        cli.main(argv)
    return exc.value.code


class TestCheck:
    """Tests for the check command."""

    def test_clean_book(self, cli, make_book, scenario_files, capsys) -> None:
        book = make_book(scenario_files)

        assert exit_code(cli, ["check", str(book), "--md-fallback"]) == 0

        out = capsys.readouterr().out
        assert "[WARN] 3 EmptyPlaceholder" in out
        assert "[WARN] 2 NormalizedReference" in out

    def test_bare_book_argument(self, cli, make_book, scenario_files) -> None:
        book = make_book(scenario_files)
        assert exit_code(cli, [str(book), "--md-fallback"]) == 0

    def test_outline_path_argument(self, cli, make_book, scenario_files) -> None:
        book = make_book(scenario_files)
        assert exit_code(cli, ["check", str(book / "SUMMARY.md"), "--md-fallback"]) == 0

    def test_fallback_disabled_fails(self, cli, make_book, scenario_files, capsys) -> None:
        book = make_book(scenario_files)

        assert exit_code(cli, ["check", str(book), "--no-md-fallback"]) == 1

        out = capsys.readouterr().out
        assert "[ERROR] 2 MissingFile" in out
        assert "[ERROR] 1 BrokenLink" in out

    def test_fallback_needs_opt_in(self, cli, make_book, scenario_files, capsys) -> None:
        book = make_book(scenario_files)

        assert exit_code(cli, ["check", str(book)]) == 1
        assert "Fallback: /md -> .md off" in capsys.readouterr().out

    def test_fallback_from_book_yaml(self, cli, make_book, scenario_files) -> None:
        book = make_book(dict(scenario_files, **{"book.yaml": "slash_md_fallback: true\n"}))
        assert exit_code(cli, ["check", str(book)]) == 0

    def test_allow_errors(self, cli, make_book, scenario_files, capsys) -> None:
        book = make_book(scenario_files)

        assert exit_code(cli, ["check", str(book), "--no-md-fallback", "--allow-errors"]) == 0
        assert "Errors allowed by override" in capsys.readouterr().out

    def test_json_report(self, cli, make_book, scenario_files, tmp_path) -> None:
        book = make_book(scenario_files)
        report = tmp_path / "report.json"

        exit_code(cli, ["check", str(book), "--md-fallback", "--json-report", str(report)])

        records = json.loads(report.read_text(encoding="utf-8"))
        assert [r["kind"] for r in records] == ["EmptyPlaceholder", "NormalizedReference"]
        assert records[0]["nodeId"] == "3"

    def test_unknown_book(self, cli, tmp_path, monkeypatch, capsys) -> None:
        monkeypatch.chdir(tmp_path)

        assert exit_code(cli, ["nothing-here"]) == 1
        assert "Could not find book" in capsys.readouterr().out

    def test_parse_error(self, cli, make_book, capsys) -> None:
        book = make_book({"SUMMARY.md": "* [A](a.md)\n    * [B](b.md)\n  * [C](c.md)\n"})

        assert exit_code(cli, ["check", str(book)]) == 1
        assert "SUMMARY line 3" in capsys.readouterr().out

    def test_config_error(self, cli, make_book, capsys) -> None:
        book = make_book({"SUMMARY.md": "* [A](a.md)\n", "book.yaml": "max_workers: 0\n"})

        assert exit_code(cli, ["check", str(book)]) == 1
        assert "max_workers" in capsys.readouterr().out


class TestTreeAndGraph:
    """Tests for the tree and graph commands."""

    def test_tree(self, cli, make_book, scenario_files, capsys) -> None:
        book = make_book(scenario_files)

        cli.main(["tree", str(book), "--md-fallback"])

        out = capsys.readouterr().out
        assert "✓ 1 Intro  (intro.md)" in out
        assert "✓ 2 Parameters  (params.md)" in out
        assert "· 3 Future" in out

    def test_graph_json(self, cli, make_book, scenario_files, capsys) -> None:
        book = make_book(scenario_files)

        cli.main(["graph", str(book), "--json", "--md-fallback"])

        edges = json.loads(capsys.readouterr().out)
        assert [(e["from"], e["to"], e["anchor"]) for e in edges] == [
            ("1", "2", None),
            ("2", "1", "top"),
        ]

    def test_graph_hides_external_by_default(self, cli, make_book, capsys) -> None:
        book = make_book({"SUMMARY.md": "* [A](a.md)\n", "a.md": "[web](https://example.com)\n"})

        cli.main(["graph", str(book), "--json"])
        assert json.loads(capsys.readouterr().out) == []

        cli.main(["graph", str(book), "--json", "--external"])
        assert [e["kind"] for e in json.loads(capsys.readouterr().out)] == ["External"]


class TestPublish:
    """Tests for the publish command."""

    def test_markdown_only(self, cli, make_book, scenario_files, tmp_path) -> None:
        book = make_book(scenario_files)
        out = tmp_path / "out"

        cli.main(["publish", str(book), "--md", "--md-fallback", "--output-dir", str(out)])

        assert sorted(p.name for p in out.iterdir()) == ["handbook.md"]

    def test_all_by_default(self, cli, make_book, scenario_files, tmp_path) -> None:
        book = make_book(scenario_files)
        out = tmp_path / "out"

        cli.main(["publish", str(book), "--md-fallback", "--output-dir", str(out)])

        assert sorted(p.name for p in out.iterdir()) == ["handbook.json", "handbook.md"]

    def test_errors_block_publishing(self, cli, make_book, scenario_files, tmp_path) -> None:
        book = make_book(scenario_files)
        out = tmp_path / "out"

        code = exit_code(cli, ["publish", str(book), "--no-md-fallback", "--output-dir", str(out)])

        assert code == 1
        assert not out.exists()

    def test_force(self, cli, make_book, scenario_files, tmp_path) -> None:
        book = make_book(scenario_files)
        out = tmp_path / "out"

        cli.main(["publish", str(book), "--no-md-fallback", "--manifest", "--force", "--output-dir", str(out)])

        manifest = json.loads((out / "handbook.json").read_text(encoding="utf-8"))
        assert manifest["chapters"][1]["status"] == "MissingFile"
