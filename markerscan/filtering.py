from __future__ import annotations

from typing import Iterable, List, Optional

from .models import MarkerItem, Priority


def normalize_keyword(keyword: str | None) -> str:
    if keyword is None:
        return ""
    return keyword.strip().lower()


class KeywordMatcher:
    """Case-insensitive substring match against an item's text, file name and display text."""

    def __init__(self, keyword: str | None):
        self.keyword = normalize_keyword(keyword)

    @property
    def is_empty(self) -> bool:
        return not self.keyword

    def matches(self, item: MarkerItem) -> bool:
        if self.is_empty:
            return True
        if self.keyword in item.text.lower():
            return True
        if self.keyword in item.file_name.lower():
            return True
        return self.keyword in item.display_text.lower()


def filter_markers(items: Iterable[Optional[MarkerItem]] | None, keyword: str | None) -> List[MarkerItem]:
    if items is None:
        return []
    matcher = KeywordMatcher(keyword)
    if matcher.is_empty:
        return list(items)
    return [item for item in items if item is not None and matcher.matches(item)]


def markers_by_priority(items: Iterable[Optional[MarkerItem]], priority: Priority) -> List[MarkerItem]:
    return [item for item in items if item is not None and item.priority is priority]


def search_markers(items: Iterable[Optional[MarkerItem]], search_text: str | None) -> List[MarkerItem]:
    # Narrower than filter_markers: looks at the marker text only.
    if search_text is None or not search_text.strip():
        return [item for item in items if item is not None]
    needle = search_text.lower()
    return [item for item in items if item is not None and needle in item.text.lower()]


def sort_markers(items: Iterable[MarkerItem], by_priority: bool = False) -> List[MarkerItem]:
    if by_priority:
        return sorted(items, key=lambda i: (i.priority.level, i.file_id, i.line_number))
    return sorted(items, key=lambda i: (i.file_id, i.line_number))
