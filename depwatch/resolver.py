"""Ownership resolution: does handler H need to react to a change of file F?

A handler is identified by the path of its entry-point file relative to the
root directory, e.g. ``pwa/main.server.go``. Two handlers may share a
directory (alternate mains selected by build constraints); only the exact
entry-point file and the imports *it* declares decide what the handler owns.
"""

from __future__ import annotations

import logging
import os
import posixpath
from pathlib import Path

from depwatch.cache import UnitCache
from depwatch.catalog import BaseCatalog, GoFileValidator, get_catalog
from depwatch.errors import CatalogError, InputError, UnitResolutionError
from depwatch.graph.dependency_graph import DependencyGraph
from depwatch.graph.file_index import normalize_path
from depwatch.models import FileEvent, FinderConfig

logger = logging.getLogger(__name__)


class OwnershipResolver:
    """Public query surface over one root directory.

    One instance per root; it owns its ``UnitCache`` and must be fed events
    sequentially.
    """

    def __init__(
        self,
        catalog: BaseCatalog,
        validator: GoFileValidator | None = None,
        cache: UnitCache | None = None,
    ):
        self.catalog = catalog
        self.validator = validator if validator is not None else GoFileValidator()
        self.cache = cache if cache is not None else UnitCache(catalog)

    @classmethod
    def from_config(cls, config: FinderConfig) -> "OwnershipResolver":
        return cls(get_catalog(config))

    @property
    def root_dir(self) -> Path:
        return self.catalog.root_dir

    # ── Ownership ──────────────────────────────────────────

    def owns_file(
        self,
        handler_entry_point: str,
        changed_file: str | Path,
        event: FileEvent | str = FileEvent.WRITE,
    ) -> bool:
        """Decide whether ``handler_entry_point`` owns ``changed_file``.

        Raises ``InputError`` for empty paths, unknown events or a handler
        whose entry-point file is missing; ``UnitResolutionError`` or
        ``CatalogError`` when the cache cannot be brought up to date.
        Incomplete files and files outside every unit are simply not owned.
        """
        if not changed_file:
            raise InputError("changed file path cannot be empty")
        if not handler_entry_point:
            raise InputError("handler entry point path cannot be empty")
        event = FileEvent.coerce(event)

        file_path = self.absolute_path(changed_file)
        handler_path = self.absolute_path(handler_entry_point)
        if not handler_path.exists():
            raise InputError(f"handler entry point does not exist: {handler_entry_point}")

        if (not event.is_removal and self.catalog.handles(file_path)
                and not self.validator.is_complete(file_path)):
            logger.debug("skipping incomplete file %s", file_path)
            return False

        if self._relative(file_path) == self._relative(handler_path):
            self.cache.apply_event(file_path, event, handler_entry_point=handler_path)
            return True

        if event is FileEvent.REMOVE or (event is FileEvent.RENAME and not file_path.exists()):
            # Ownership of a vanished file is decided against the snapshot that still holds it.
            owned = self.claimed_by(handler_entry_point, file_path)
            self.cache.apply_event(file_path, event, handler_entry_point=handler_path)
            return owned

        self.cache.apply_event(file_path, event, handler_entry_point=handler_path)
        return self._owns_indexed_file(file_path, handler_path)

    def claimed_by(self, handler_entry_point: str, changed_file: str | Path) -> bool:
        """Ownership against the current snapshot, without applying any event.

        Used to decide removals for several handlers before the one shared
        event is applied.
        """
        if not changed_file or not handler_entry_point:
            raise InputError("handler and changed file paths cannot be empty")
        file_path = self.absolute_path(changed_file)
        handler_path = self.absolute_path(handler_entry_point)
        if not handler_path.exists():
            raise InputError(f"handler entry point does not exist: {handler_entry_point}")
        if self._relative(file_path) == self._relative(handler_path):
            return True
        return self._owns_indexed_file(file_path, handler_path)

    def _owns_indexed_file(self, file_path: Path, handler_path: Path) -> bool:
        unit = self.cache.unit_for_file(file_path)
        if unit is None:
            logger.debug("%s belongs to no known unit", file_path)
            return False
        return self._unit_belongs_to_handler(unit, handler_path)

    def _unit_belongs_to_handler(self, unit: str, handler_path: Path) -> bool:
        handler_dir = posixpath.dirname(self._relative(handler_path)) or "."

        if self.cache.is_entry_point(unit):
            described = self.cache.get_unit(unit)
            if described is not None and described.directory is not None:
                unit_dir = self._relative(described.directory)
                return unit_dir == handler_dir
            handler_base = self.root_dir.name if handler_dir == "." else posixpath.basename(handler_dir)
            return posixpath.basename(unit) == handler_base

        return self.handler_depends_on(handler_path, unit)

    def handler_depends_on(self, handler_entry_point: str | Path, unit: str) -> bool:
        """Whether the handler's own entry-point file imports ``unit``, directly or not."""
        handler_path = self.absolute_path(handler_entry_point)
        self.cache.ensure_populated()
        try:
            imports = self.catalog.file_dependencies(handler_path)
        except UnitResolutionError as exc:
            logger.debug("cannot read imports of %s: %s", handler_path, exc)
            return False

        if unit in imports:
            return True
        graph = self.cache.graph
        return any(graph.transitively_depends_on(dep, unit) for dep in imports)

    # ── Broader queries ────────────────────────────────────

    def units_depending_on_file(self, file_name: str) -> list[str]:
        """Entry-point units that depend on any unit holding ``file_name``."""
        self.cache.ensure_populated()
        candidates = self.cache.files.candidate_units_for_name(os.path.basename(file_name))
        if not candidates:
            return []

        graph = self.cache.graph
        result: list[str] = []
        for entry in self.cache.entry_points:
            if any(graph.transitively_depends_on(entry, unit) for unit in candidates):
                result.append(entry)
        return result

    def reverse_dependents(self, root_selector: str, target_selectors: list[str]) -> list[str]:
        """Units under ``root_selector`` that depend on any of the targets.

        Runs against a fresh listing, independent of the cache. Targets that
        are local selectors expand to the units they match; anything else
        (``fmt``, a third-party import path) is taken as a literal identity.
        Targets found in the source set count as their own dependents.
        """
        targets: set[str] = set()
        for selector in target_selectors:
            if self.catalog.is_local_selector(selector):
                matched = self.catalog.list_units(selector)
                if not matched:
                    raise CatalogError(f"target {selector!r} matched no packages")
                targets.update(unit.identity for unit in matched)
            else:
                targets.add(selector)

        units = self.catalog.list_units(root_selector)
        graph = DependencyGraph()
        for unit in units:
            graph.upsert_unit(unit.identity, unit.dependencies)

        reached = graph.transitive_dependents(targets)
        return sorted(unit.identity for unit in units if unit.identity in reached)

    # ── Paths ──────────────────────────────────────────────

    def absolute_path(self, path: str | Path) -> Path:
        path = Path(path)
        if not path.is_absolute():
            path = self.root_dir / path
        return Path(normalize_path(path))

    def _relative(self, path: str | Path) -> str:
        rel = os.path.relpath(normalize_path(path), self.root_dir)
        return Path(rel).as_posix()
