"""File-backed store: immutable handles over entries of the application directory."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import IO

PAGE_FILE = "page.xml"
CONFIGURATION_FILE = "configuration.xml"
RESOURCE_DESCRIPTOR_FILE = "resource.xml"
DETAIL = "detail"


@dataclass(frozen=True)
class ResourceLocation:
    """Handle to a file-system entry.

    Identity is the absolute path; the content behind it may change at any
    time, so every query goes back to the file system.
    """

    path: Path

    @classmethod
    def of(cls, path: str | Path) -> ResourceLocation:
        return cls(Path(path).absolute())

    @property
    def name(self) -> str:
        return self.path.name

    def exists(self) -> bool:
        return self.path.exists()

    def is_dir(self) -> bool:
        return self.path.is_dir()

    def is_file(self) -> bool:
        return self.path.is_file()

    def last_modified(self) -> int:
        """Modification time in nanoseconds, or 0 if the entry is missing."""
        try:
            return self.path.stat().st_mtime_ns
        except FileNotFoundError:
            return 0

    def child(self, name: str) -> ResourceLocation:
        return ResourceLocation(self.path / name)

    def parent(self) -> ResourceLocation:
        return ResourceLocation(self.path.parent)

    def children(self) -> list[ResourceLocation]:
        """Child entries sorted by name; empty if this is not a directory."""
        if not self.path.is_dir():
            return []
        return [ResourceLocation(p) for p in sorted(self.path.iterdir())]

    def child_directories(self) -> list[ResourceLocation]:
        return [c for c in self.children() if c.is_dir()]

    def create_file(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.touch(exist_ok=True)

    def open_read(self) -> IO[bytes]:
        return self.path.open("rb")

    def open_write(self) -> IO[bytes]:
        return self.path.open("wb")

    def read_text(self) -> str:
        return self.path.read_text(encoding="utf-8")

    def write_text(self, text: str) -> None:
        self.path.write_text(text, encoding="utf-8")

    def relative_to(self, other: ResourceLocation) -> str:
        """Slash-separated path of this entry relative to ``other``."""
        return self.path.relative_to(other.path).as_posix()

    def __str__(self) -> str:
        return str(self.path)
