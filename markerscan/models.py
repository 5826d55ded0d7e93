from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .text_utils import file_base_name


class Priority(Enum):
    HIGH = ("High", 1)
    MEDIUM = ("Medium", 2)
    LOW = ("Low", 3)

    def __init__(self, display_name: str, level: int):
        self.display_name = display_name
        self.level = level

    def __str__(self) -> str:
        return self.display_name

    @classmethod
    def from_name(cls, value: str) -> "Priority":
        key = value.strip().upper()
        try:
            return cls[key]
        except KeyError:
            raise ValueError(f"Unknown priority: {value}") from None


@dataclass(frozen=True)
class MarkerItem:
    file_id: str
    line_number: int
    text: str = ""
    priority: Priority = Priority.LOW

    def __post_init__(self):
        if self.text is None:
            object.__setattr__(self, "text", "")
        if self.priority is None:
            object.__setattr__(self, "priority", Priority.LOW)
        if self.file_id is None:
            object.__setattr__(self, "file_id", "")

    @property
    def file_name(self) -> str:
        return file_base_name(self.file_id)

    @property
    def display_text(self) -> str:
        return f"[{self.file_name}:{self.line_number}] {self.text} ({self.priority.display_name})"

    def to_dict(self) -> dict[str, object]:
        return {
            "file": self.file_id,
            "line_no": self.line_number,
            "text": self.text,
            "priority": self.priority.name,
        }

    def __str__(self) -> str:
        return self.display_text
