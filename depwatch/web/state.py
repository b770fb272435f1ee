"""In-memory state for the HTTP API: one resolver per module root."""

from __future__ import annotations

import threading
from pathlib import Path

from depwatch.graph.file_index import normalize_path
from depwatch.models import FinderConfig
from depwatch.resolver import OwnershipResolver


class AppState:
    """Resolvers keyed by root directory.

    Resolvers are not thread-safe; ``lock`` serialises every call that
    reaches one, since FastAPI runs sync endpoints on a thread pool.
    Roots must live under one of ``allowed_roots`` (the home directory by
    default).
    """

    def __init__(self):
        self.resolvers: dict[str, OwnershipResolver] = {}
        self.allowed_roots: list[Path] = [Path.home().resolve()]
        self.lock = threading.Lock()

    def is_allowed(self, root: Path) -> bool:
        return any(root == allowed or allowed in root.parents for allowed in self.allowed_roots)

    def get_resolver(self, root: Path, build_tags: list[str] | None = None) -> OwnershipResolver:
        key = normalize_path(root)
        tags = sorted(build_tags or [])
        if tags:
            key = f"{key}|{','.join(tags)}"
        resolver = self.resolvers.get(key)
        if resolver is None:
            resolver = OwnershipResolver.from_config(FinderConfig(root_dir=root, build_tags=tags))
            self.resolvers[key] = resolver
        return resolver

    def drop_resolvers(self, root: Path) -> int:
        """Forget every resolver for ``root``, whatever its tags; returns how many."""
        key = normalize_path(root)
        with self.lock:
            stale = [k for k in self.resolvers if k == key or k.startswith(key + "|")]
            for k in stale:
                del self.resolvers[k]
        return len(stale)

    def reset(self) -> None:
        with self.lock:
            self.resolvers.clear()


state = AppState()
