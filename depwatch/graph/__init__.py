"""In-memory graph and file index used by the unit cache."""

from __future__ import annotations

from depwatch.graph.dependency_graph import DependencyGraph
from depwatch.graph.file_index import FileIndex, normalize_path

__all__ = [
    "DependencyGraph",
    "FileIndex",
    "normalize_path",
]
