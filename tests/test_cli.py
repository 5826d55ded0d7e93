import json

import pytest

from markerscan import cli
from markerscan.input_sources import DEFAULT_SOURCE_EXTENSIONS


def _run(argv, console):
    args = cli.build_arg_parser().parse_args(argv)
    runner = {
        "scan": cli.run_scan,
        "show": cli.run_show,
        "history": cli.run_history,
        "locate": cli.run_locate,
    }[args.command]
    return runner(args, console=console)


def test_scan_prints_markers(source_tree, tmp_path, console):
    state = tmp_path / "state.json"
    code = _run(["scan", str(source_tree), "--state", str(state), "--threads", "2"], console)
    output = console.file.getvalue()
    assert code == 0
    assert "TODO: wire config" in output
    assert "BUG: crashes on empty input" in output
    assert "HACK: pin plugin version" in output
    assert "not a source file" not in output
    assert not state.exists()


def test_scan_with_filter_records_history(source_tree, tmp_path, console):
    state = tmp_path / "state.json"
    code = _run(["scan", str(source_tree), "--filter", "crash", "--state", str(state)], console)
    output = console.file.getvalue()
    assert code == 0
    assert "BUG: crashes on empty input" in output
    assert "TODO: wire config" not in output
    data = json.loads(state.read_text(encoding="utf-8"))
    assert data["last_filter_keyword"] == "crash"
    assert data["recent_keywords"] == ["crash"]


def test_scan_no_history(source_tree, tmp_path, console):
    state = tmp_path / "state.json"
    _run(["scan", str(source_tree), "--filter", "crash", "--no-history", "--state", str(state)], console)
    assert not state.exists()


def test_scan_priority_and_output(source_tree, tmp_path, console):
    out_dir = tmp_path / "out"
    code = _run(
        ["scan", str(source_tree), "--priority", "medium", "--out", str(out_dir), "--state", str(tmp_path / "s.json")],
        console,
    )
    output = console.file.getvalue()
    assert code == 0
    assert "HACK: pin plugin version" in output
    assert "TODO: wire config" not in output.split("Marker Summary")[0]
    lines = (out_dir / "markers.jsonl").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 3
    summary = json.loads((out_dir / "summary.json").read_text(encoding="utf-8"))
    assert summary["priorities"] == {"HIGH": 1, "MEDIUM": 1, "LOW": 1}
    assert summary["scan_stats"]["files_total"] == 3
    assert summary["scan_stats"]["files_skipped"] == 1


def test_scan_custom_extension(source_tree, tmp_path, console):
    code = _run(["scan", str(source_tree), "--ext", "txt", "--state", str(tmp_path / "s.json")], console)
    output = console.file.getvalue()
    assert code == 0
    assert "TODO: not a source file" in output
    assert "wire config" not in output


def test_scan_missing_path(tmp_path, console):
    assert _run(["scan", str(tmp_path / "missing")], console) == 2
    assert "Input not found" in console.file.getvalue()


def test_resolve_extensions(monkeypatch):
    monkeypatch.delenv(cli.EXTENSIONS_ENV, raising=False)
    assert cli._resolve_extensions(None) == DEFAULT_SOURCE_EXTENSIONS
    assert cli._resolve_extensions([".py,.PYI"]) == {".py", ".pyi"}
    monkeypatch.setenv(cli.EXTENSIONS_ENV, "go, rs")
    assert cli._resolve_extensions(None) == {".go", ".rs"}
    assert cli._resolve_extensions(["kt"]) == {".kt"}


def test_resolve_state_path(monkeypatch, tmp_path):
    monkeypatch.setenv(cli.STATE_ENV, str(tmp_path / "env.json"))
    assert cli._resolve_state_path(None) == tmp_path / "env.json"
    assert cli._resolve_state_path(str(tmp_path / "x.json")) == tmp_path / "x.json"


def test_show_filters_saved_results(source_tree, tmp_path, console):
    out_dir = tmp_path / "out"
    state = tmp_path / "state.json"
    _run(["scan", str(source_tree), "--out", str(out_dir), "--filter", "Main.kt", "--state", str(state)], console)

    console.file.truncate(0)
    console.file.seek(0)
    assert _run(["show", str(out_dir), "--last", "--state", str(state)], console) == 0
    output = console.file.getvalue()
    assert "Using last filter keyword: Main.kt" in output
    assert "TODO: wire config" in output
    assert "HACK: pin plugin version" not in output


def test_show_missing_results(tmp_path, console):
    assert _run(["show", str(tmp_path)], console) == 2


def test_history_and_clear(tmp_path, console):
    state = tmp_path / "state.json"
    state.write_text(
        json.dumps({"last_filter_keyword": "bug", "recent_keywords": ["bug", "[todo]"]}),
        encoding="utf-8",
    )
    assert _run(["history", "--state", str(state)], console) == 0
    output = console.file.getvalue()
    assert "Last keyword: bug" in output
    assert " 2. [todo]" in output

    assert _run(["history", "--clear", "--state", str(state)], console) == 0
    data = json.loads(state.read_text(encoding="utf-8"))
    assert data == {"last_filter_keyword": "", "recent_keywords": []}


def test_locate(tmp_path, console):
    path = tmp_path / "A.kt"
    path.write_text("ab\n// TODO: x\n", encoding="utf-8")
    assert _run(["locate", str(path), "2"], console) == 0
    assert "offset=3" in console.file.getvalue()
    assert _run(["locate", str(path), "9"], console) == 2


def test_main_requires_command():
    with pytest.raises(SystemExit):
        cli.main([])


def test_scan_corrupt_archive(tmp_path, console):
    archive = tmp_path / "bad.zip"
    archive.write_bytes(b"this is not a zip archive")
    assert _run(["scan", str(archive)], console) == 2
    assert "Failed to open archive" in console.file.getvalue()


def test_scan_unwritable_out_dir(source_tree, tmp_path, console):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    code = _run(
        ["scan", str(source_tree), "--out", str(blocker / "out"), "--state", str(tmp_path / "s.json")],
        console,
    )
    assert code == 2
    assert "Failed to write results" in console.file.getvalue()


def test_locate_prints_bracketed_path_literally(tmp_path, console):
    folder = tmp_path / "[bold]"
    folder.mkdir()
    path = folder / "A.kt"
    path.write_text("// TODO: x\n", encoding="utf-8")
    assert _run(["locate", str(path), "1"], console) == 0
    assert f"{path}:1 offset=0" in console.file.getvalue()
