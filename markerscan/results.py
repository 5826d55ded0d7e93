from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Dict, Iterable, List

from .console import RichLogger
from .filtering import sort_markers
from .models import MarkerItem, Priority

MARKERS_FILE_NAME = "markers.jsonl"
SUMMARY_FILE_NAME = "summary.json"


class ResultStore:
    """Markers grouped by file. Re-scanning a file replaces its previous items."""

    def __init__(self):
        self._lock = threading.Lock()
        self.by_file: Dict[str, List[MarkerItem]] = {}

    def replace_file(self, file_id: str, items: Iterable[MarkerItem]) -> None:
        with self._lock:
            self.by_file[file_id] = list(items)

    def remove_file(self, file_id: str) -> None:
        with self._lock:
            self.by_file.pop(file_id, None)

    def clear(self) -> None:
        with self._lock:
            self.by_file.clear()

    def items(self) -> List[MarkerItem]:
        with self._lock:
            collected = [item for items in self.by_file.values() for item in items]
        return sort_markers(collected)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(items) for items in self.by_file.values())

    def summary(self) -> Dict[str, object]:
        with self._lock:
            counts = {p.name: 0 for p in Priority}
            for items in self.by_file.values():
                for item in items:
                    counts[item.priority.name] += 1
            files_with_markers = sum(1 for items in self.by_file.values() if items)
            return {
                "files_scanned": len(self.by_file),
                "files_with_markers": files_with_markers,
                "total": sum(counts.values()),
                "priorities": counts,
            }


class ResultWriter:
    def __init__(self, out_dir: Path, logger: RichLogger):
        self.out_dir = out_dir
        self.logger = logger
        self.out_dir.mkdir(parents=True, exist_ok=True)

    def write_all(self, items: Iterable[MarkerItem], summary: Dict[str, object]) -> None:
        with open(self.out_dir / MARKERS_FILE_NAME, "w", encoding="utf-8") as f:
            for item in items:
                f.write(json.dumps(item.to_dict(), ensure_ascii=False) + "\n")

        with open(self.out_dir / SUMMARY_FILE_NAME, "w", encoding="utf-8") as f:
            json.dump(summary, f, indent=2)

        self.logger.done(f"Results written to: {self.out_dir}")


def load_markers(path: Path, logger: RichLogger) -> List[MarkerItem]:
    items: List[MarkerItem] = []
    if not path.exists():
        return items
    with open(path, "r", encoding="utf-8", errors="replace") as handle:
        for line_no, line in enumerate(handle, start=1):
            raw = line.strip()
            if not raw:
                continue
            try:
                data = json.loads(raw)
                line_number = int(data["line_no"])
                if line_number < 1:
                    raise ValueError(f"line_no must be >= 1, got {line_number}")
                items.append(
                    MarkerItem(
                        file_id=str(data.get("file") or ""),
                        line_number=line_number,
                        text=str(data.get("text") or ""),
                        priority=Priority.from_name(str(data.get("priority") or "LOW")),
                    )
                )
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
                logger.warn(f"Skipping malformed record {path}:{line_no} ({exc})")
    return items
