"""Single dispatch loop that routes file-system changes to handlers."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

from watchfiles import Change, DefaultFilter, watch

from depwatch.errors import DepwatchError
from depwatch.models import FileEvent
from depwatch.resolver import OwnershipResolver

logger = logging.getLogger(__name__)

_CHANGE_EVENTS = {
    Change.added: FileEvent.CREATE,
    Change.modified: FileEvent.WRITE,
    Change.deleted: FileEvent.REMOVE,
}


@dataclass
class RoutedChange:
    """Verdict for one handler and one change."""
    handler: str
    path: Path
    event: FileEvent
    owned: bool
    error: str | None = None


class SourceFilter(DefaultFilter):
    """Default ignores plus an extension allow-list."""

    def __init__(self, extensions: Iterable[str], **kwargs):
        self.extensions = tuple(extensions)
        super().__init__(**kwargs)

    def __call__(self, change: Change, path: str) -> bool:
        return path.endswith(self.extensions) and super().__call__(change, path)


def route_changes(
    resolver: OwnershipResolver,
    handlers: list[str],
    changes: Iterable[tuple[Change, str]],
) -> list[RoutedChange]:
    """Feed a batch of changes through the resolver, one event at a time.

    Deletions are processed before additions so that a rename reported as a
    delete/add pair never leaves the old path resolvable. Resolution errors
    are attached to the verdict rather than aborting the batch.
    """
    ordered = sorted(
        changes,
        key=lambda c: (c[0] is not Change.deleted, c[1], c[0].value),
    )
    routed: list[RoutedChange] = []
    for change, raw_path in ordered:
        event = _CHANGE_EVENTS.get(change)
        if event is None:
            continue
        path = Path(raw_path)
        if event.is_removal:
            routed.extend(_route_removal(resolver, handlers, path, event))
        else:
            routed.extend(_route_update(resolver, handlers, path, event))
    return routed


def _route_update(
    resolver: OwnershipResolver,
    handlers: list[str],
    path: Path,
    event: FileEvent,
) -> list[RoutedChange]:
    # The event is applied once; every handler is then judged on the result.
    target = resolver.absolute_path(path)
    if resolver.catalog.handles(target) and not resolver.validator.is_complete(target):
        logger.debug("skipping incomplete file %s", target)
        return [RoutedChange(handler, path, event, False) for handler in handlers]

    is_entry_point = any(h and resolver.absolute_path(h) == target for h in handlers)
    entry_point = target if is_entry_point else None
    try:
        resolver.cache.apply_event(target, event, handler_entry_point=entry_point)
    except DepwatchError as exc:
        logger.warning("applying %s %s failed: %s", event.value, path, exc)
        return [RoutedChange(handler, path, event, False, str(exc)) for handler in handlers]

    return _judge(resolver, handlers, path, event)


def _route_removal(
    resolver: OwnershipResolver,
    handlers: list[str],
    path: Path,
    event: FileEvent,
) -> list[RoutedChange]:
    # Every handler is judged against the snapshot that still holds the file;
    # the event itself is applied once afterwards.
    routed = _judge(resolver, handlers, path, event)
    try:
        resolver.cache.apply_event(resolver.absolute_path(path), event)
    except DepwatchError as exc:
        logger.warning("applying %s %s failed: %s", event.value, path, exc)
    return routed


def _judge(
    resolver: OwnershipResolver,
    handlers: list[str],
    path: Path,
    event: FileEvent,
) -> list[RoutedChange]:
    routed: list[RoutedChange] = []
    for handler in handlers:
        try:
            owned = resolver.claimed_by(handler, path)
        except DepwatchError as exc:
            logger.warning("%s %s for %s failed: %s", event.value, path, handler, exc)
            routed.append(RoutedChange(handler, path, event, False, str(exc)))
            continue
        routed.append(RoutedChange(handler, path, event, owned))
    return routed


def watch_handlers(
    resolver: OwnershipResolver,
    handlers: list[str],
    callback: Callable[[RoutedChange], None],
    stop_event: threading.Event | None = None,
    debounce: int = 50,
) -> None:
    """Block watching the resolver's root, reporting every verdict to ``callback``."""
    resolver.cache.ensure_populated()
    watch_filter = SourceFilter(resolver.catalog.extensions)
    logger.info("watching %s for %d handler(s)", resolver.root_dir, len(handlers))

    for changes in watch(
        resolver.root_dir,
        watch_filter=watch_filter,
        debounce=debounce,
        stop_event=stop_event,
    ):
        for routed in route_changes(resolver, handlers, changes):
            callback(routed)
