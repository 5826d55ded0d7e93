from __future__ import annotations

import argparse
import os
import zipfile
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn, TimeElapsedColumn

from .console import RichLogger, build_marker_table, build_summary_table
from .filtering import filter_markers, markers_by_priority
from .input_sources import DEFAULT_SOURCE_EXTENSIONS, InputItem, iter_source_items, normalize_extensions
from .models import MarkerItem, Priority
from .results import MARKERS_FILE_NAME, ResultStore, ResultWriter, load_markers
from .scanner import Scanner
from .state import FilterState, JsonFileStore, StateError
from .text_utils import line_start_offset

DEFAULT_MAX_FILE_MB = 25
DEFAULT_STATE_PATH = Path("~/.markerscan/state.json")
EXTENSIONS_ENV = "MARKERSCAN_EXTENSIONS"
STATE_ENV = "MARKERSCAN_STATE"


def default_thread_count() -> int:
    return min(32, (os.cpu_count() or 4) + 4)


def _add_state_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--state",
        help=f"Filter history file (default: ${STATE_ENV} or {DEFAULT_STATE_PATH}).",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="markerscan",
        description="Find TODO/FIXME/HACK/NOTE/BUG comments in source files and filter them.",
    )
    sub = ap.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Scan a file, directory or ZIP archive for marker comments.")
    scan.add_argument("path", help="File, directory or .zip archive to scan.")
    scan.add_argument(
        "--ext",
        action="append",
        help=f"File extension to scan (repeatable, default: ${EXTENSIONS_ENV} or .kt,.kts).",
    )
    scan.add_argument("--filter", dest="keyword", help="Only show markers containing this keyword.")
    scan.add_argument(
        "--priority",
        choices=[p.name.lower() for p in Priority],
        help="Only show markers of this priority.",
    )
    scan.add_argument(
        "--threads",
        type=int,
        default=default_thread_count(),
        help="Worker threads for scanning (default: auto).",
    )
    scan.add_argument(
        "--max-file-mb",
        type=int,
        default=DEFAULT_MAX_FILE_MB,
        help="Skip files larger than this (default: 25).",
    )
    scan.add_argument("--out", help="Write markers.jsonl and summary.json to this folder.")
    scan.add_argument("--follow-symlinks", action="store_true", help="Follow symlinks when walking directories.")
    scan.add_argument("--no-history", action="store_true", help="Do not record the filter keyword.")
    _add_state_arg(scan)
    scan.add_argument("-v", "--verbose", action="store_true", help="Verbose debug logs")

    show = sub.add_parser("show", help="Filter markers from a previous --out folder or markers.jsonl.")
    show.add_argument("results", help="Results folder or markers.jsonl file.")
    show.add_argument("--filter", dest="keyword", help="Only show markers containing this keyword.")
    show.add_argument(
        "--last",
        action="store_true",
        help="Reuse the last recorded filter keyword when --filter is not given.",
    )
    _add_state_arg(show)
    show.add_argument("-v", "--verbose", action="store_true", help="Verbose debug logs")

    history = sub.add_parser("history", help="Show or clear the filter keyword history.")
    history.add_argument("--clear", action="store_true", help="Forget the last keyword and history.")
    _add_state_arg(history)
    history.add_argument("-v", "--verbose", action="store_true", help="Verbose debug logs")

    locate = sub.add_parser("locate", help="Print the character offset where a line starts.")
    locate.add_argument("file", help="Source file.")
    locate.add_argument("line", type=int, help="1-based line number.")
    locate.add_argument("-v", "--verbose", action="store_true", help="Verbose debug logs")

    return ap


def _resolve_extensions(explicit: Optional[List[str]]) -> frozenset[str]:
    if explicit:
        values: List[str] = []
        for raw in explicit:
            values.extend(raw.split(","))
        resolved = normalize_extensions(values)
        if resolved:
            return resolved
    env_value = os.environ.get(EXTENSIONS_ENV, "")
    if env_value.strip():
        resolved = normalize_extensions(env_value.split(","))
        if resolved:
            return resolved
    return DEFAULT_SOURCE_EXTENSIONS


def _resolve_state_path(explicit: str | None) -> Path:
    if explicit and explicit.strip():
        return Path(explicit.strip()).expanduser()
    env_value = os.environ.get(STATE_ENV, "")
    if env_value.strip():
        return Path(env_value.strip()).expanduser()
    return DEFAULT_STATE_PATH.expanduser()


def _open_filter_state(explicit: str | None, logger: RichLogger) -> FilterState:
    return FilterState(JsonFileStore(_resolve_state_path(explicit), logger), logger)


def _scan_items(
    items: List[InputItem],
    scanner: Scanner,
    threads: int,
    console: Console,
    logger: RichLogger,
) -> Dict[str, int]:
    stats = {
        "files_total": len(items),
        "files_skipped": 0,
        "files_failed": 0,
        "markers": 0,
    }
    if not items:
        return stats

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold]Scanning files"),
        BarColumn(bar_width=None),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )

    with progress:
        task_id = progress.add_task("scan", total=len(items))
        with ThreadPoolExecutor(max_workers=max(1, threads)) as executor:
            future_map = {executor.submit(scanner.scan_item, item): item for item in items}
            for future in as_completed(future_map):
                item = future_map[future]
                try:
                    outcome = future.result()
                except Exception as exc:
                    logger.warn(f"Failed to scan {item.display_name}: {exc}")
                    stats["files_failed"] += 1
                    progress.advance(task_id)
                    continue

                if outcome.failed:
                    stats["files_failed"] += 1
                elif outcome.skipped:
                    stats["files_skipped"] += 1
                stats["markers"] += len(outcome.items)
                if outcome.items:
                    logger.debug(f"Hit {item.display_name}: markers={len(outcome.items)}, lines={outcome.lines}")
                progress.advance(task_id)

    return stats


def _record_keyword(args, keyword: str | None, logger: RichLogger) -> None:
    if not keyword or not keyword.strip() or getattr(args, "no_history", False):
        return
    try:
        _open_filter_state(args.state, logger).set_last_keyword(keyword)
    except StateError as exc:
        logger.warn(str(exc))


def _print_markers(console: Console, items: Iterable[MarkerItem], keyword: str | None, total: int) -> None:
    shown = list(items)
    title = "Markers"
    if keyword and keyword.strip():
        title = f"Markers matching '{escape(keyword.strip())}' ({len(shown)} of {total})"
    console.print(build_marker_table(shown, title=title))


def run_scan(args, console: Optional[Console] = None) -> int:
    console = console or Console()
    logger = RichLogger(console=console, verbose=args.verbose)

    extensions = _resolve_extensions(args.ext)
    input_path = Path(args.path).expanduser()
    try:
        items = list(iter_source_items(input_path, extensions, logger, follow_symlinks=args.follow_symlinks))
    except FileNotFoundError:
        logger.error(f"Input not found: {input_path}")
        return 2
    except zipfile.BadZipFile as exc:
        logger.error(f"Failed to open archive {input_path}: {exc}")
        return 2
    except OSError as exc:
        logger.error(f"Failed to read {input_path}: {exc}")
        return 2

    logger.info(f"Extensions: {', '.join(sorted(extensions))}")
    if not items:
        logger.warn(f"No matching source files under {input_path}")

    store = ResultStore()
    scanner = Scanner(store=store, logger=logger, max_file_mb=args.max_file_mb)
    stats = _scan_items(items, scanner, args.threads, console, logger)

    all_items = store.items()
    shown = filter_markers(all_items, args.keyword)
    if args.priority:
        shown = markers_by_priority(shown, Priority.from_name(args.priority))

    _print_markers(console, shown, args.keyword, len(all_items))
    summary = store.summary()
    console.print(build_summary_table(summary))
    _record_keyword(args, args.keyword, logger)

    if args.out:
        summary["scan_stats"] = stats
        out_dir = Path(args.out).expanduser()
        try:
            writer = ResultWriter(out_dir=out_dir, logger=logger)
            writer.write_all(all_items, summary)
        except OSError as exc:
            logger.error(f"Failed to write results to {out_dir}: {exc}")
            return 2

    return 1 if stats["files_failed"] else 0


def run_show(args, console: Optional[Console] = None) -> int:
    console = console or Console()
    logger = RichLogger(console=console, verbose=args.verbose)

    path = Path(args.results).expanduser()
    if path.is_dir():
        path = path / MARKERS_FILE_NAME
    if not path.exists():
        logger.error(f"Results not found: {path}")
        return 2

    keyword = args.keyword
    if keyword is None and args.last:
        keyword = _open_filter_state(args.state, logger).last_keyword
        if keyword:
            logger.info(f"Using last filter keyword: {keyword}")

    items = load_markers(path, logger)
    shown = filter_markers(items, keyword)
    _print_markers(console, shown, keyword, len(items))
    if args.keyword:
        _record_keyword(args, args.keyword, logger)
    return 0


def run_history(args, console: Optional[Console] = None) -> int:
    console = console or Console()
    logger = RichLogger(console=console, verbose=args.verbose)

    try:
        state = _open_filter_state(args.state, logger)
        if args.clear:
            state.clear()
            logger.done("Filter history cleared")
            return 0
    except StateError as exc:
        logger.error(str(exc))
        return 1

    console.print(f"Last keyword: {state.last_keyword or '-'}", markup=False)
    for idx, keyword in enumerate(state.recent_keywords, start=1):
        console.print(f"{idx:>2}. {keyword}", markup=False)
    return 0


def run_locate(args, console: Optional[Console] = None) -> int:
    console = console or Console()
    logger = RichLogger(console=console, verbose=args.verbose)

    path = Path(args.file).expanduser()
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.error(f"Failed to read {path}: {exc}")
        return 2

    offset = line_start_offset(text, args.line)
    if offset is None:
        logger.error(f"Line {args.line} is out of range for {path}")
        return 2
    console.print(f"{path}:{args.line} offset={offset}", markup=False)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    if args.command == "scan":
        return run_scan(args)
    if args.command == "show":
        return run_show(args)
    if args.command == "history":
        return run_history(args)
    if args.command == "locate":
        return run_locate(args)
    return 2
