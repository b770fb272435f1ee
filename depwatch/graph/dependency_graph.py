"""Dependency graph over unit identities with a maintained reverse index."""

from __future__ import annotations

from collections import deque
from typing import Iterable


class DependencyGraph:
    """Forward edges (declared dependencies) plus their transpose.

    Every forward edge ``A -> B`` has a matching reverse entry ``B -> A`` and
    vice versa. Dependencies may name identities that are not units of the
    graph (standard library imports, for instance); those simply have no
    forward entry of their own.
    """

    def __init__(self):
        self.forward: dict[str, set[str]] = {}   # unit -> {dependencies}
        self.reverse: dict[str, set[str]] = {}   # dependency -> {dependents}

    def __contains__(self, identity: object) -> bool:
        return identity in self.forward

    def __len__(self) -> int:
        return len(self.forward)

    @property
    def units(self) -> list[str]:
        return sorted(self.forward)

    def upsert_unit(self, identity: str, dependencies: Iterable[str]) -> tuple[set[str], set[str]]:
        """Replace the forward edges of ``identity``.

        Only the difference between the old and the new dependency sets
        touches the reverse index. Returns ``(added, removed)``.
        """
        old = self.forward.get(identity, set())
        new = {dep for dep in dependencies if dep}
        added = new - old
        removed = old - new

        for dep in removed:
            self._drop_reverse(dep, identity)
        for dep in added:
            self.reverse.setdefault(dep, set()).add(identity)

        self.forward[identity] = new
        return added, removed

    def add_edge(self, source: str, target: str) -> bool:
        if source not in self.forward:
            return False
        if target in self.forward[source]:
            return False
        self.forward[source].add(target)
        self.reverse.setdefault(target, set()).add(source)
        return True

    def remove_unit(self, identity: str) -> bool:
        """Drop a unit together with its outgoing and incoming edges."""
        if identity not in self.forward:
            return False

        for dep in self.forward.pop(identity):
            self._drop_reverse(dep, identity)

        for dependent in self.reverse.pop(identity, set()):
            deps = self.forward.get(dependent)
            if deps is not None:
                deps.discard(identity)
        return True

    def dependencies_of(self, identity: str) -> set[str]:
        return set(self.forward.get(identity, ()))

    def dependents_of(self, identity: str) -> set[str]:
        return set(self.reverse.get(identity, ()))

    def transitively_depends_on(self, root: str, target: str) -> bool:
        """Depth-first reachability from ``root`` over forward edges.

        The relation is reflexive. Cycles terminate through the visited set.
        """
        if root == target:
            return True

        visited: set[str] = set()
        stack = [root]
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)

            for dep in self.forward.get(current, ()):
                if dep == target:
                    return True
                if dep not in visited:
                    stack.append(dep)
        return False

    def transitive_dependents(self, targets: Iterable[str]) -> set[str]:
        """All identities that reach any target, targets included."""
        seen: set[str] = set()
        queue = deque(targets)
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            for dependent in self.reverse.get(current, ()):
                if dependent not in seen:
                    queue.append(dependent)
        return seen

    def find_cycles(self) -> list[list[str]]:
        """Elementary cycles reachable by DFS, each closed on its first node."""
        cycles: list[list[str]] = []
        visited: set[str] = set()

        for start in sorted(self.forward):
            if start in visited:
                continue
            path: list[str] = []
            on_path: set[str] = set()
            stack: list[tuple[str, Iterable[str]]] = [(start, iter(sorted(self.forward.get(start, ()))))]
            path.append(start)
            on_path.add(start)
            visited.add(start)

            while stack:
                node, children = stack[-1]
                advanced = False
                for child in children:
                    if child in on_path:
                        idx = path.index(child)
                        cycles.append(path[idx:] + [child])
                    elif child not in visited and child in self.forward:
                        visited.add(child)
                        path.append(child)
                        on_path.add(child)
                        stack.append((child, iter(sorted(self.forward[child]))))
                        advanced = True
                        break
                if not advanced:
                    stack.pop()
                    on_path.discard(path.pop())

        return cycles

    def clear(self) -> None:
        self.forward.clear()
        self.reverse.clear()

    def _drop_reverse(self, dependency: str, dependent: str) -> None:
        dependents = self.reverse.get(dependency)
        if dependents is None:
            return
        dependents.discard(dependent)
        if not dependents:
            del self.reverse[dependency]
