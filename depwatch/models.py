"""Data models shared across the depwatch layers."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path

from depwatch.errors import InputError


class UnitKind(enum.Enum):
    ENTRY_POINT = "entry_point"
    LIBRARY = "library"


class FileEvent(enum.Enum):
    WRITE = "write"
    CREATE = "create"
    REMOVE = "remove"
    RENAME = "rename"
    CHECK = "check"  # query only

    @property
    def is_removal(self) -> bool:
        return self in (FileEvent.REMOVE, FileEvent.RENAME)

    @classmethod
    def coerce(cls, value: "FileEvent | str") -> "FileEvent":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(e.value for e in cls)
            raise InputError(f"unknown event {value!r} (expected one of: {choices})") from None


@dataclass
class CompilationUnit:
    """One package as described by a catalog provider."""
    identity: str
    directory: Path | None
    kind: UnitKind = UnitKind.LIBRARY
    dependencies: list[str] = field(default_factory=list)
    files: list[Path] = field(default_factory=list)
    name: str = ""
    ignored_files: list[Path] = field(default_factory=list)  # excluded by build constraints

    @property
    def is_entry_point(self) -> bool:
        return self.kind is UnitKind.ENTRY_POINT

    @property
    def dependency_set(self) -> set[str]:
        return set(self.dependencies)


@dataclass
class FinderConfig:
    """Configuration for a resolver rooted at one module directory."""
    root_dir: Path = field(default_factory=lambda: Path("."))
    include_tests: bool = False
    build_tags: list[str] = field(default_factory=list)
    goos: str | None = None
    goarch: str | None = None
    go_version: str | None = None  # caps satisfied go1.N release tags
    skip_dirs: list[str] = field(default_factory=lambda: [
        "node_modules", ".git", "vendor", "testdata",
    ])


@dataclass
class FileImpactResult:
    """Outcome of an impact analysis for one changed file."""
    status: str
    reason: str = ""
    belongs_to_handler: bool = False
    affected_entry_points: list[str] = field(default_factory=list)
    impact: str = "none"

    def to_dict(self) -> dict:
        data = {
            "status": self.status,
            "belongs_to_handler": self.belongs_to_handler,
            "affected_entry_points": list(self.affected_entry_points),
            "impact": self.impact,
        }
        if self.reason:
            data["reason"] = self.reason
        return data
