"""Validation-gated helpers built on the resolver's public queries."""

from __future__ import annotations

import logging
import os

from depwatch.errors import InputError
from depwatch.models import FileEvent, FileImpactResult
from depwatch.resolver import OwnershipResolver

logger = logging.getLogger(__name__)


def validate_input_for_processing(
    resolver: OwnershipResolver,
    handler_entry_point: str,
    file_name: str,
    file_path: str = "",
) -> bool:
    """Decide whether a change is worth processing at all.

    Returns ``True`` to continue, ``False`` to skip quietly (the file is
    empty, truncated or still being written). Raises ``InputError`` when the
    handler path is empty.
    """
    if not handler_entry_point:
        raise InputError("handler entry point path cannot be empty")
    if not file_path or not resolver.catalog.handles_name(file_name):
        return True

    resolved = resolver.absolute_path(file_path)
    if resolver.validator.is_complete(resolved):
        return True
    if resolved.exists() and resolver.validator.is_file_being_written(resolved):
        logger.debug("%s is being written, skipping", resolved)
    return False


def find_reverse_deps_for_file(
    resolver: OwnershipResolver,
    handler_entry_point: str,
    file_name: str,
    file_path: str = "",
) -> list[str]:
    """Units anywhere in the tree that depend on the unit holding ``file_name``."""
    if not validate_input_for_processing(resolver, handler_entry_point, file_name, file_path):
        return []

    if file_path:
        unit = resolver.cache.unit_for_file(file_path)
    else:
        resolver.cache.ensure_populated()
        candidates = resolver.cache.files.candidate_units_for_name(os.path.basename(file_name))
        unit = candidates[0] if candidates else None
    if unit is None:
        return []
    return resolver.reverse_dependents("./...", [unit])


def check_file_ownership(
    resolver: OwnershipResolver,
    handler_entry_point: str,
    file_name: str,
    file_path: str,
) -> str:
    """``"owned"``, ``"not-owned"`` or ``"skipped"`` for a change to ``file_path``."""
    if not validate_input_for_processing(resolver, handler_entry_point, file_name, file_path):
        return "skipped"
    if resolver.owns_file(handler_entry_point, file_path, FileEvent.CHECK):
        return "owned"
    return "not-owned"


def analyze_file_impact(
    resolver: OwnershipResolver,
    handler_entry_point: str,
    file_name: str,
    file_path: str,
    event: FileEvent | str = FileEvent.WRITE,
) -> FileImpactResult:
    if not validate_input_for_processing(resolver, handler_entry_point, file_name, file_path):
        return FileImpactResult(
            status="skipped",
            reason="File is invalid, empty, or being written",
            impact="none",
        )

    belongs = resolver.owns_file(handler_entry_point, file_path, event)
    entry_points = resolver.units_depending_on_file(file_name)
    return FileImpactResult(
        status="analyzed",
        belongs_to_handler=belongs,
        affected_entry_points=entry_points,
        impact=calculate_impact(len(entry_points), belongs),
    )


def calculate_impact(entry_point_count: int, belongs_to_handler: bool) -> str:
    if entry_point_count == 0:
        return "none"
    if belongs_to_handler:
        return "low" if entry_point_count == 1 else "medium"
    return "high"
