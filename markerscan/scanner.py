from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from .console import RichLogger
from .extractors import extract_markers
from .input_sources import InputItem, detect_text_encoding, is_likely_binary
from .models import MarkerItem
from .results import ResultStore


@dataclass
class ScanOutcome:
    file_id: str
    items: List[MarkerItem] = field(default_factory=list)
    lines: int = 0
    skipped: bool = False
    failed: bool = False


class Scanner:
    def __init__(
        self,
        store: ResultStore,
        logger: RichLogger,
        max_file_mb: int = 25,
    ):
        self.store = store
        self.logger = logger
        self.max_file_bytes = max(1, max_file_mb) * 1024 * 1024

    def read_text(self, item: InputItem) -> str | None:
        data = item.read_bytes()
        if is_likely_binary(data[:4096]):
            return None
        enc = detect_text_encoding(data[:4])
        return data.decode(enc, errors="replace")

    def scan_item(self, item: InputItem) -> ScanOutcome:
        outcome = ScanOutcome(file_id=item.display_name)

        if item.size_bytes == 0:
            self.logger.debug(f"Empty file: {item.display_name}")
            outcome.skipped = True
            self.store.replace_file(outcome.file_id, [])
            return outcome

        if item.size_bytes > self.max_file_bytes:
            self.logger.warn(f"Skipping too-large file ({item.size_bytes} bytes): {item.display_name}")
            outcome.skipped = True
            self.store.replace_file(outcome.file_id, [])
            return outcome

        try:
            text = self.read_text(item)
        except Exception as e:
            self.logger.warn(f"Failed to scan {item.display_name}: {e}")
            outcome.failed = True
            self.store.replace_file(outcome.file_id, [])
            return outcome

        if text is None:
            self.logger.debug(f"Skipping binary file: {item.display_name}")
            outcome.skipped = True
            self.store.replace_file(outcome.file_id, [])
            return outcome

        outcome.items = extract_markers(text, outcome.file_id)
        outcome.lines = text.count("\n") + 1
        self.store.replace_file(outcome.file_id, outcome.items)
        return outcome
