"""Cargo build profiles."""

from __future__ import annotations

from dataclasses import dataclass

_BUILTIN = ("debug", "release")


@dataclass(frozen=True)
class Profile:
    """A cargo profile: the built-in debug or release one, or a named one."""

    name: str
    named: bool = False

    def __post_init__(self) -> None:
        if not self.named and self.name not in _BUILTIN:
            raise ValueError(
                f"unknown built-in profile {self.name!r}; use named=True for custom profiles"
            )

    @classmethod
    def resolve(
        cls, is_release: bool, release: str | None, debug: str | None
    ) -> Profile:
        """Pick the profile for a build, preferring a configured custom name."""
        if is_release:
            return cls(release, named=True) if release is not None else cls("release")
        return cls(debug, named=True) if debug is not None else cls("debug")

    def args(self) -> list[str]:
        """The cargo arguments that select this profile."""
        if self.named:
            return [f"--profile={self.name}"]
        if self.name == "release":
            return ["--release"]
        return []

    def __str__(self) -> str:
        return self.name