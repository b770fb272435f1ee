"""File-to-unit lookup tables derived from a catalog snapshot."""

from __future__ import annotations

import os
from pathlib import Path


def normalize_path(path: Path | str) -> str:
    """Absolute, lexically normalised form used as the exact-path key."""
    return os.path.normpath(os.path.abspath(os.fspath(path)))


class FileIndex:
    """Exact-path index plus a by-name index for ambiguous fallbacks.

    The exact index maps one absolute path to exactly one unit. The by-name
    index maps a base name to every unit holding a file of that name, kept in
    lexicographic order so that the fallback's "first candidate" is stable
    across runs.
    """

    def __init__(self):
        self.by_path: dict[str, str] = {}
        self.by_name: dict[str, list[str]] = {}
        self._unit_files: dict[str, set[str]] = {}

    def __len__(self) -> int:
        return len(self.by_path)

    def record_file(self, abs_path: Path | str, unit: str) -> None:
        key = normalize_path(abs_path)
        previous = self.by_path.get(key)
        if previous == unit:
            return
        if previous is not None:
            self.forget_file(key)

        self.by_path[key] = unit
        self._unit_files.setdefault(unit, set()).add(key)

        candidates = self.by_name.setdefault(os.path.basename(key), [])
        if unit not in candidates:
            candidates.append(unit)
            candidates.sort()

    def forget_file(self, abs_path: Path | str) -> str | None:
        """Drop a file from both indices; returns the unit it belonged to."""
        key = normalize_path(abs_path)
        unit = self.by_path.pop(key, None)
        if unit is None:
            return None

        files = self._unit_files.get(unit)
        if files is not None:
            files.discard(key)
            if not files:
                del self._unit_files[unit]

        name = os.path.basename(key)
        still_named = any(os.path.basename(f) == name for f in self._unit_files.get(unit, ()))
        if not still_named:
            candidates = self.by_name.get(name, [])
            if unit in candidates:
                candidates.remove(unit)
            if not candidates:
                self.by_name.pop(name, None)
        return unit

    def forget_unit(self, unit: str) -> None:
        for key in list(self._unit_files.get(unit, ())):
            self.forget_file(key)

    def exact(self, abs_path: Path | str) -> str | None:
        key = normalize_path(abs_path)
        unit = self.by_path.get(key)
        if unit is None:
            unit = self.by_path.get(os.path.realpath(key))
        return unit

    def unit_for_file(self, abs_path: Path | str) -> str | None:
        """Exact lookup, falling back to the first by-name candidate."""
        unit = self.exact(abs_path)
        if unit is not None:
            return unit
        candidates = self.by_name.get(os.path.basename(normalize_path(abs_path)))
        if candidates:
            return candidates[0]
        return None

    def candidate_units_for_name(self, name: str) -> list[str]:
        return list(self.by_name.get(name, ()))

    def files_of(self, unit: str) -> set[str]:
        return set(self._unit_files.get(unit, ()))

    def clear(self) -> None:
        self.by_path.clear()
        self.by_name.clear()
        self._unit_files.clear()
