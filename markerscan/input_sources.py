from __future__ import annotations

import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .console import RichLogger

DEFAULT_SOURCE_EXTENSIONS = frozenset({".kt", ".kts"})


def normalize_extensions(values: Iterable[str]) -> frozenset[str]:
    normalized = set()
    for raw in values:
        value = raw.strip().lower()
        if not value:
            continue
        if not value.startswith("."):
            value = "." + value
        normalized.add(value)
    return frozenset(normalized)


def detect_text_encoding(sample: bytes) -> str:
    if sample.startswith(b"\xef\xbb\xbf"):
        return "utf-8-sig"
    if sample.startswith(b"\xff\xfe") or sample.startswith(b"\xfe\xff"):
        return "utf-16"
    return "utf-8"


def is_likely_binary(sample: bytes) -> bool:
    if b"\x00" in sample:
        return True
    if not sample:
        return False
    non_printable = 0
    for b in sample[:2048]:
        if b in (9, 10, 13):
            continue
        if b >= 32 and b != 127:
            continue
        non_printable += 1
    return (non_printable / max(1, min(len(sample), 2048))) > 0.25


@dataclass(frozen=True)
class InputItem:
    display_name: str
    size_bytes: int
    is_zip_member: bool
    file_path: Optional[Path] = None
    zip_path: Optional[Path] = None
    zip_member: Optional[str] = None

    @property
    def name(self) -> str:
        if self.is_zip_member and self.zip_member:
            return Path(self.zip_member).name
        if self.file_path is not None:
            return self.file_path.name
        return Path(self.display_name).name

    def read_bytes(self) -> bytes:
        if self.is_zip_member:
            assert self.zip_path is not None and self.zip_member is not None
            with zipfile.ZipFile(self.zip_path, "r") as zf:
                with zf.open(self.zip_member, "r") as f:
                    return f.read()
        assert self.file_path is not None
        return self.file_path.read_bytes()


def is_source_item(item: InputItem, extensions: Iterable[str] = DEFAULT_SOURCE_EXTENSIONS) -> bool:
    suffix = Path(item.name).suffix.lower()
    if not suffix:
        return False
    return suffix in extensions


def iter_input_items(
    input_path: Path,
    follow_symlinks: bool,
    logger: RichLogger,
) -> Iterator[InputItem]:
    if not input_path.exists():
        raise FileNotFoundError(str(input_path))

    if input_path.is_file() and input_path.suffix.lower() == ".zip":
        logger.info(f"Input is a ZIP archive: {input_path}")
        with zipfile.ZipFile(input_path, "r") as zf:
            for info in zf.infolist():
                if info.is_dir():
                    continue
                yield InputItem(
                    display_name=f"{input_path.name}:{info.filename}",
                    size_bytes=info.file_size,
                    is_zip_member=True,
                    zip_path=input_path,
                    zip_member=info.filename,
                )
        return

    if input_path.is_file():
        yield InputItem(
            display_name=str(input_path),
            size_bytes=input_path.stat().st_size,
            is_zip_member=False,
            file_path=input_path,
        )
        return

    for p in sorted(input_path.rglob("*")):
        try:
            if (not follow_symlinks) and p.is_symlink():
                continue
            if p.is_dir():
                continue
            yield InputItem(
                display_name=str(p),
                size_bytes=p.stat().st_size,
                is_zip_member=False,
                file_path=p,
            )
        except OSError as e:
            logger.warn(f"Skipping unreadable path: {p} ({e})")


def iter_source_items(
    input_path: Path,
    extensions: Iterable[str],
    logger: RichLogger,
    follow_symlinks: bool = False,
) -> Iterator[InputItem]:
    allowed = normalize_extensions(extensions)
    for item in iter_input_items(input_path, follow_symlinks, logger):
        if is_source_item(item, allowed):
            yield item
        else:
            logger.debug(f"Skipping non-source file: {item.display_name}")
