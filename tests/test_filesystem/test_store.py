"""Tests for resource locations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from portofino.filesystem.store import ResourceLocation

if TYPE_CHECKING:
    from pathlib import Path


class TestResourceLocation:
    def test_identity_is_the_absolute_path(self, tmp_path: Path) -> None:
        a = ResourceLocation.of(tmp_path / "orders")
        b = ResourceLocation.of(tmp_path).child("orders")
        assert a == b
        assert hash(a) == hash(b)
        assert a.name == "orders"
        assert a.parent() == ResourceLocation.of(tmp_path)

    def test_missing_entry(self, tmp_path: Path) -> None:
        location = ResourceLocation.of(tmp_path / "missing")
        assert not location.exists()
        assert location.last_modified() == 0
        assert location.children() == []

    def test_create_file_makes_parents(self, tmp_path: Path) -> None:
        location = ResourceLocation.of(tmp_path / "a" / "b" / "page.xml")
        location.create_file()
        assert location.is_file()
        assert location.last_modified() > 0

    def test_children_are_sorted(self, tmp_path: Path) -> None:
        for name in ("b", "a", "c"):
            (tmp_path / name).mkdir()
        (tmp_path / "file.txt").write_text("x")
        root = ResourceLocation.of(tmp_path)
        assert [c.name for c in root.children()] == ["a", "b", "c", "file.txt"]
        assert [c.name for c in root.child_directories()] == ["a", "b", "c"]

    def test_text_round_trip(self, tmp_path: Path) -> None:
        location = ResourceLocation.of(tmp_path / "action.py")
        location.write_text("print('ciao')\n")
        assert location.read_text() == "print('ciao')\n"
        assert location.relative_to(ResourceLocation.of(tmp_path)) == "action.py"
