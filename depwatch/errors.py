"""Exception hierarchy shared by the cache, catalog and resolver layers."""

from __future__ import annotations


class DepwatchError(Exception):
    """Base class for every error raised by depwatch."""


class InputError(DepwatchError, ValueError):
    """A caller passed an empty path, an unknown event or a missing handler file."""


class UnitResolutionError(DepwatchError):
    """The catalog could not describe the unit living in a directory."""

    def __init__(self, directory, reason: str):
        self.directory = directory
        self.reason = reason
        super().__init__(f"cannot resolve unit in {directory}: {reason}")


class NoUnitError(UnitResolutionError):
    """The directory holds no buildable source files."""


class CatalogError(DepwatchError):
    """Listing units failed for every candidate directory."""
