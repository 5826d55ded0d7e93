from __future__ import annotations

from typing import List

from .models import MarkerItem, Priority
from .patterns import MARKER_RX
from .text_utils import split_lines

PRIORITY_BY_KEYWORD = {
    "FIXME": Priority.HIGH,
    "BUG": Priority.HIGH,
    "HACK": Priority.MEDIUM,
    "TODO": Priority.LOW,
    "NOTE": Priority.LOW,
}


def determine_priority(keyword: str) -> Priority:
    return PRIORITY_BY_KEYWORD.get(keyword.upper(), Priority.LOW)


def build_marker_text(keyword: str, content: str | None) -> str:
    """Label a marker as ``KEYWORD: content``.

    Only the captured content is trimmed. A bare marker keeps its label without
    a trailing space, so ``// TODO`` becomes ``TODO:``.
    """
    body = (content or "").strip()
    label = f"{keyword.upper()}:"
    if not body:
        return label
    return f"{label} {body}"


def extract_markers(text: str | None, file_id: str | None) -> List[MarkerItem]:
    """Scan ``text`` line by line and return one item per line holding a marker comment.

    Only the first marker on a line is reported. The marker may appear anywhere in
    the line, e.g. after code. Empty or missing text yields an empty list.
    """
    items: List[MarkerItem] = []
    source = file_id or ""
    for line_no, line in enumerate(split_lines(text), start=1):
        m = MARKER_RX.search(line)
        if not m:
            continue
        keyword = m.group(1).upper()
        items.append(
            MarkerItem(
                file_id=source,
                line_number=line_no,
                text=build_marker_text(keyword, m.group(2)),
                priority=determine_priority(keyword),
            )
        )
    return items
