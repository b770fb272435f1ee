"""Unit cache: owns the graph and file index and keeps them in step with events."""

from __future__ import annotations

import logging
from pathlib import Path

from depwatch.catalog.base import BaseCatalog
from depwatch.errors import NoUnitError, UnitResolutionError
from depwatch.graph.dependency_graph import DependencyGraph
from depwatch.graph.file_index import FileIndex, normalize_path
from depwatch.models import CompilationUnit, FileEvent

logger = logging.getLogger(__name__)


class UnitCache:
    """Memory-resident snapshot of one source tree.

    Empty at construction, populated on first use, then mutated event by
    event. Editing a handler's own entry-point file triggers a full rebuild:
    it can change which units are reachable at all, and rebuilding is the one
    way to keep the entry-point set consistent with the graph. Every other
    event touches only the unit that owns the file.

    Not thread-safe; callers deliver events one at a time.
    """

    def __init__(self, catalog: BaseCatalog):
        self.catalog = catalog
        self.populated = False
        self.units: dict[str, CompilationUnit] = {}
        self.graph = DependencyGraph()
        self.files = FileIndex()
        self._entry_points: set[str] = set()
        self.rebuild_count = 0

    # ── Lifecycle ──────────────────────────────────────────

    def ensure_populated(self) -> None:
        if not self.populated:
            self.rebuild()

    def rebuild(self) -> None:
        """Rescan the whole tree; the previous snapshot survives a failure."""
        units = self.catalog.list_units("./...")

        graph = DependencyGraph()
        files = FileIndex()
        by_identity: dict[str, CompilationUnit] = {}
        entry_points: set[str] = set()
        for unit in units:
            by_identity[unit.identity] = unit
            graph.upsert_unit(unit.identity, unit.dependencies)
            for path in unit.files:
                files.record_file(path, unit.identity)
            if unit.is_entry_point:
                entry_points.add(unit.identity)

        self.units = by_identity
        self.graph = graph
        self.files = files
        self._entry_points = entry_points
        self.populated = True
        self.rebuild_count += 1
        logger.info(
            "cache rebuilt for %s: %d units, %d files, %d entry points",
            self.catalog.root_dir, len(by_identity), len(files), len(entry_points),
        )

    def apply_event(
        self,
        path: Path | str,
        event: FileEvent | str,
        handler_entry_point: Path | str | None = None,
    ) -> None:
        """Bring the snapshot up to date with one file-system event.

        Raises ``UnitResolutionError`` when the catalog cannot describe the
        affected unit; the snapshot is left as it was.
        """
        event = FileEvent.coerce(event)
        target = self._absolute(path)

        if (event is FileEvent.WRITE and handler_entry_point is not None
                and normalize_path(target) == normalize_path(self._absolute(handler_entry_point))):
            logger.info("entry point %s written, rebuilding cache", target)
            self.rebuild()
            return

        self.ensure_populated()
        if event is FileEvent.CHECK:
            return
        if not self.catalog.handles(target):
            logger.debug("ignoring %s event for non-source file %s", event.value, target)
            return

        if event is FileEvent.WRITE:
            self._handle_write(target)
        elif event is FileEvent.CREATE:
            self._handle_create(target)
        elif event is FileEvent.REMOVE:
            self._handle_remove(target)
        elif event is FileEvent.RENAME:
            self._handle_remove(target)
            self._handle_create(target)

    # ── Queries ────────────────────────────────────────────

    def unit_for_file(self, path: Path | str) -> str | None:
        self.ensure_populated()
        return self.files.unit_for_file(self._absolute(path))

    def get_unit(self, identity: str) -> CompilationUnit | None:
        return self.units.get(identity)

    @property
    def entry_points(self) -> list[str]:
        return sorted(self._entry_points)

    def is_entry_point(self, identity: str) -> bool:
        return identity in self._entry_points

    # ── Event handlers ─────────────────────────────────────

    def _handle_create(self, path: Path) -> None:
        try:
            unit = self.catalog.resolve_unit(path.parent)
        except NoUnitError as exc:
            logger.debug("create %s: %s", path, exc)
            return
        self._ingest(unit)

    def _handle_write(self, path: Path) -> None:
        identity = self.files.exact(path)
        unit = self.units.get(identity) if identity else None
        if unit is None:
            self._handle_create(path)
            return

        try:
            fresh = self.catalog.resolve_unit(unit.directory or path.parent)
        except NoUnitError:
            self._drop_unit(unit.identity)
            return
        self._ingest(fresh)

    def _handle_remove(self, path: Path) -> None:
        identity = self.files.forget_file(path)
        if identity is None:
            return
        if not self.files.files_of(identity):
            self._drop_unit(identity)
            return

        unit = self.units[identity]
        try:
            fresh = self.catalog.resolve_unit(unit.directory or path.parent)
        except NoUnitError:
            self._drop_unit(identity)
            return
        except UnitResolutionError as exc:
            logger.warning("keeping previous dependencies of %s: %s", identity, exc)
            return
        self._ingest(fresh)

    def _ingest(self, unit: CompilationUnit) -> None:
        previous = self.units.get(unit.identity)
        if previous is not None:
            current = {normalize_path(f) for f in unit.files}
            for stale in self.files.files_of(unit.identity) - current:
                self.files.forget_file(stale)

        self.units[unit.identity] = unit
        added, removed = self.graph.upsert_unit(unit.identity, unit.dependencies)
        for path in unit.files:
            self.files.record_file(path, unit.identity)

        if unit.is_entry_point:
            self._entry_points.add(unit.identity)
        else:
            self._entry_points.discard(unit.identity)

        if previous is None:
            self._relink_dependents(unit.identity)
        logger.debug(
            "ingested %s: +%d/-%d dependencies, %d files",
            unit.identity, len(added), len(removed), len(unit.files),
        )

    def _relink_dependents(self, identity: str) -> None:
        for other in self.units.values():
            if other.identity != identity and identity in other.dependency_set:
                self.graph.add_edge(other.identity, identity)

    def _drop_unit(self, identity: str) -> None:
        self.graph.remove_unit(identity)
        self.files.forget_unit(identity)
        self.units.pop(identity, None)
        self._entry_points.discard(identity)
        logger.debug("dropped unit %s", identity)

    def _absolute(self, path: Path | str) -> Path:
        path = Path(path)
        if not path.is_absolute():
            path = self.catalog.root_dir / path
        return Path(normalize_path(path))
