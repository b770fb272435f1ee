"""Abstract catalog provider."""

from __future__ import annotations

import abc
from pathlib import Path

from depwatch.models import CompilationUnit


class BaseCatalog(abc.ABC):
    """Describes the compilation units of one source tree.

    Implementations discover units; the cache and resolver only consume the
    descriptions they return.
    """

    extensions: tuple[str, ...]

    def __init__(self, root_dir: Path):
        self.root_dir = root_dir

    @abc.abstractmethod
    def list_units(self, selector: str = "./...") -> list[CompilationUnit]:
        """List every resolvable unit matched by ``selector``.

        Units that fail to resolve are skipped as long as at least one unit
        resolves; total failure raises ``CatalogError``.
        """

    @abc.abstractmethod
    def resolve_unit(self, directory: Path) -> CompilationUnit:
        """Describe the unit living in ``directory`` or raise ``UnitResolutionError``."""

    @abc.abstractmethod
    def file_dependencies(self, path: Path) -> list[str]:
        """Dependencies declared by one file, ignoring its unit's other files."""

    @abc.abstractmethod
    def identity_for_directory(self, directory: Path) -> str:
        """Identity a unit in ``directory`` would have."""

    @abc.abstractmethod
    def is_local_selector(self, selector: str) -> bool:
        """Whether ``selector`` names units inside this tree."""

    def handles(self, path: Path) -> bool:
        return path.suffix in self.extensions

    def handles_name(self, file_name: str) -> bool:
        return Path(file_name).suffix in self.extensions
