from __future__ import annotations

import re
from typing import List, Optional

PATH_SEP_RX = re.compile(r"[\\/]")


def file_base_name(file_id: str | None) -> str:
    if not file_id:
        return ""
    return PATH_SEP_RX.split(file_id.rstrip("/\\"))[-1]


def split_lines(text: str | None) -> List[str]:
    if not text:
        return []
    return text.split("\n")


def line_start_offset(text: str | None, line_number: int) -> Optional[int]:
    """Character offset of the first character of a 1-based line, or None."""
    if line_number < 1:
        return None
    lines = split_lines(text)
    if line_number > len(lines):
        return None
    return sum(len(line) + 1 for line in lines[: line_number - 1])


def trim_snippet(text: str, max_len: int = 240) -> str:
    value = text.strip()
    if len(value) <= max_len:
        return value
    return value[: max_len - 3] + "..."
