"""Catalog provider for Go modules, backed by tree-sitter."""

from __future__ import annotations

import fnmatch
import logging
import os
from pathlib import Path

from depwatch.catalog.base import BaseCatalog
from depwatch.catalog.buildtags import BuildContext
from depwatch.catalog.go_syntax import parse_go_source
from depwatch.catalog.gomod import read_module_path
from depwatch.errors import CatalogError, NoUnitError, UnitResolutionError
from depwatch.graph.file_index import normalize_path
from depwatch.models import CompilationUnit, FinderConfig, UnitKind

logger = logging.getLogger(__name__)

_DEFAULT_SKIP_DIRS = ["node_modules", ".git", "vendor", "testdata"]


class GoCatalog(BaseCatalog):
    """Packages of the Go module rooted at ``root_dir``.

    A unit is one directory. Its identity is the import path
    ``<module path>/<relative dir>``; it is an entry point when its package
    is ``main``. Files excluded by the build context are reported in
    ``ignored_files`` and contribute no dependencies.
    """

    extensions = (".go",)

    def __init__(
        self,
        root_dir: Path | str = ".",
        context: BuildContext | None = None,
        include_tests: bool = False,
        skip_dirs: list[str] | None = None,
    ):
        super().__init__(Path(normalize_path(root_dir or ".")))
        self.context = context or BuildContext.from_env()
        self.include_tests = include_tests
        self.skip_dirs = skip_dirs if skip_dirs is not None else list(_DEFAULT_SKIP_DIRS)
        self._module_path: str | None = None

    @classmethod
    def from_config(cls, config: FinderConfig) -> "GoCatalog":
        context = BuildContext.from_env(
            goos=config.goos, goarch=config.goarch, tags=config.build_tags,
            go_version=config.go_version,
        )
        return cls(
            root_dir=config.root_dir,
            context=context,
            include_tests=config.include_tests,
            skip_dirs=config.skip_dirs,
        )

    # ── Identity ───────────────────────────────────────────

    @property
    def module_path(self) -> str:
        if self._module_path is None:
            module = read_module_path(self.root_dir)
            if module is None:
                module = self.root_dir.name or "."
                logger.debug("no go.mod under %s, using %r as module path", self.root_dir, module)
            self._module_path = module
        return self._module_path

    def reload_module(self) -> None:
        self._module_path = None

    def identity_for_directory(self, directory: Path) -> str:
        rel = os.path.relpath(normalize_path(directory), self.root_dir)
        if rel == ".":
            return self.module_path
        return f"{self.module_path}/{Path(rel).as_posix()}"

    # ── Selectors ──────────────────────────────────────────

    def is_local_selector(self, selector: str) -> bool:
        return self.expand_selector(selector) is not None

    def expand_selector(self, selector: str) -> list[Path] | None:
        """Directories matched by ``selector``; ``None`` when it is not local.

        Accepted forms: ``./...``, ``./dir``, ``./dir/...``, absolute paths
        under the root, and import paths under the module path.
        """
        sel = selector.strip()
        recursive = sel == "..." or sel.endswith("/...")
        base = sel[:-3].rstrip("/") if recursive else sel.rstrip("/")

        if base in ("", "."):
            rel = "."
        elif base.startswith("./"):
            rel = base[2:]
        elif os.path.isabs(base):
            rel = os.path.relpath(normalize_path(base), self.root_dir)
            if rel == ".." or rel.startswith(".." + os.sep):
                return None
        elif base == self.module_path:
            rel = "."
        elif base.startswith(self.module_path + "/"):
            rel = base[len(self.module_path) + 1:]
        else:
            return None

        start = Path(normalize_path(self.root_dir / rel))
        if not start.is_dir():
            return []
        if not recursive:
            return [start]
        return list(self._walk(start))

    def _walk(self, start: Path):
        for dirpath, dirnames, filenames in os.walk(start):
            current = Path(dirpath)
            dirnames[:] = sorted(
                d for d in dirnames
                if not self._should_skip(d) and not (current / d / "go.mod").exists()
            )
            if any(f.endswith(".go") for f in filenames):
                yield current

    def _should_skip(self, name: str) -> bool:
        if name.startswith((".", "_")):
            return True
        return any(fnmatch.fnmatch(name, pattern) for pattern in self.skip_dirs)

    # ── Units ──────────────────────────────────────────────

    def list_units(self, selector: str = "./...") -> list[CompilationUnit]:
        self.reload_module()
        directories = self.expand_selector(selector)
        if directories is None:
            raise CatalogError(f"{selector!r} does not name packages under {self.root_dir}")

        units: list[CompilationUnit] = []
        failures: list[UnitResolutionError] = []
        for directory in directories:
            try:
                units.append(self.resolve_unit(directory))
            except NoUnitError:
                continue
            except UnitResolutionError as exc:
                logger.warning("skipping unresolvable package: %s", exc)
                failures.append(exc)

        if not units and failures:
            raise CatalogError(
                f"no resolvable packages for {selector!r}: {failures[0]}"
            )
        return units

    def resolve_unit(self, directory: Path) -> CompilationUnit:
        directory = Path(normalize_path(directory))
        if not directory.is_dir():
            raise NoUnitError(directory, "directory does not exist")

        files: list[Path] = []
        ignored: list[Path] = []
        dependencies: list[str] = []
        packages: dict[str, str] = {}  # package name -> first file declaring it
        test_packages: set[str] = set()

        for path in sorted(directory.glob("*.go")):
            name = path.name
            if name.startswith((".", "_")) or not path.is_file():
                continue
            is_test = name.endswith("_test.go")
            if is_test and not self.include_tests:
                ignored.append(path)
                continue
            if not self.context.match_file_name(name):
                ignored.append(path)
                continue

            try:
                source = path.read_bytes()
            except OSError as exc:
                raise UnitResolutionError(directory, f"cannot read {name}: {exc}") from exc

            try:
                if not self.context.match_source(source):
                    ignored.append(path)
                    continue
            except ValueError as exc:
                raise UnitResolutionError(directory, f"{name}: {exc}") from exc

            header = parse_go_source(source)
            if header.package is None:
                logger.debug("no package clause in %s, ignoring it", path)
                ignored.append(path)
                continue

            if is_test and header.package.endswith("_test"):
                test_packages.add(header.package)
            else:
                packages.setdefault(header.package, name)
            files.append(path)
            dependencies.extend(header.imports)

        if not files:
            raise NoUnitError(directory, "no buildable Go source files")
        if len(packages) > 1:
            found = ", ".join(f"{pkg} ({fname})" for pkg, fname in packages.items())
            raise UnitResolutionError(directory, f"found multiple packages: {found}")

        if packages:
            package_name = next(iter(packages))
        else:
            package_name = next(iter(test_packages))[:-len("_test")]

        return CompilationUnit(
            identity=self.identity_for_directory(directory),
            directory=directory,
            kind=UnitKind.ENTRY_POINT if package_name == "main" else UnitKind.LIBRARY,
            dependencies=list(dict.fromkeys(dependencies)),
            files=files,
            name=package_name,
            ignored_files=ignored,
        )

    def file_dependencies(self, path: Path) -> list[str]:
        """Imports of one file, regardless of its build constraints."""
        try:
            source = Path(path).read_bytes()
        except OSError as exc:
            raise UnitResolutionError(Path(path).parent, f"cannot read {Path(path).name}: {exc}") from exc
        return parse_go_source(source).imports
