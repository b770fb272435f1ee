"""Catalog providers and the file-validity collaborator."""

from __future__ import annotations

from depwatch.catalog.base import BaseCatalog
from depwatch.catalog.buildtags import BuildContext
from depwatch.catalog.go_catalog import GoCatalog
from depwatch.catalog.validator import GoFileValidator
from depwatch.models import FinderConfig


def get_catalog(config: FinderConfig) -> BaseCatalog:
    """Catalog provider for the tree described by ``config``."""
    return GoCatalog.from_config(config)


__all__ = [
    "BaseCatalog",
    "BuildContext",
    "GoCatalog",
    "GoFileValidator",
    "get_catalog",
]
