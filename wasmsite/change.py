"""Kinds of source changes and the set of changes awaiting a rebuild."""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Iterator


class Change(Enum):
    """A kind of change that was detected in the watched sources."""

    BIN_SOURCE = "bin-source"
    """A source file of the bin target changed."""
    LIB_SOURCE = "lib-source"
    """A source file of the lib target changed."""
    ASSET = "asset"
    """An asset file changed."""
    STYLE = "style"
    """A style file changed."""
    CONF = "conf"
    """The Cargo.toml changed."""
    ADDITIONAL = "additional"
    """One of the additionally watched files changed."""


class ChangeSet:
    """An insertion-ordered set of changes without duplicates."""

    __slots__ = ("_changes",)

    def __init__(self, changes: Iterable[Change] = ()) -> None:
        self._changes: list[Change] = []
        for change in changes:
            self.add(change)

    @classmethod
    def all_changes(cls) -> ChangeSet:
        """A set that asks for every build step."""
        return cls(
            [
                Change.BIN_SOURCE,
                Change.LIB_SOURCE,
                Change.STYLE,
                Change.CONF,
                Change.ASSET,
            ]
        )

    def is_empty(self) -> bool:
        return not self._changes

    def clear(self) -> None:
        self._changes.clear()

    def need_server_build(self) -> bool:
        return any(
            change in self._changes
            for change in (Change.BIN_SOURCE, Change.CONF, Change.ADDITIONAL)
        )

    def need_front_build(self) -> bool:
        return any(
            change in self._changes
            for change in (Change.LIB_SOURCE, Change.CONF, Change.ADDITIONAL)
        )

    def need_style_build(self, css_files: bool, css_in_source: bool) -> bool:
        return (css_files and Change.STYLE in self._changes) or (
            css_in_source and Change.LIB_SOURCE in self._changes
        )

    def need_assets_change(self) -> bool:
        return Change.ASSET in self._changes

    def add(self, change: Change) -> bool:
        """Add a change; return True if it was not already present."""
        if change in self._changes:
            return False
        self._changes.append(change)
        return True

    def copy(self) -> ChangeSet:
        return ChangeSet(self._changes)

    def __iter__(self) -> Iterator[Change]:
        return iter(self._changes)

    def __len__(self) -> int:
        return len(self._changes)

    def __contains__(self, change: object) -> bool:
        return change in self._changes

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ChangeSet):
            return NotImplemented
        return self._changes == other._changes

    def __repr__(self) -> str:
        names = ", ".join(change.name for change in self._changes)
        return f"ChangeSet([{names}])"