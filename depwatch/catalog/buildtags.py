"""Go build constraint evaluation (file-name suffixes and //go:build lines)."""

from __future__ import annotations

import os
import platform
import re
import sys
from dataclasses import dataclass, field
from typing import Callable

from depwatch.errors import InputError

KNOWN_OS = frozenset({
    "aix", "android", "darwin", "dragonfly", "freebsd", "hurd", "illumos",
    "ios", "js", "linux", "nacl", "netbsd", "openbsd", "plan9", "solaris",
    "wasip1", "windows", "zos",
})

KNOWN_ARCH = frozenset({
    "386", "amd64", "amd64p32", "arm", "armbe", "arm64", "arm64be",
    "loong64", "mips", "mipsle", "mips64", "mips64le", "mips64p32",
    "mips64p32le", "ppc", "ppc64", "ppc64le", "riscv", "riscv64", "s390",
    "s390x", "sparc", "sparc64", "wasm",
})

UNIX_OS = frozenset({
    "aix", "android", "darwin", "dragonfly", "freebsd", "hurd", "illumos",
    "ios", "linux", "netbsd", "openbsd", "solaris",
})

_MACHINE_TO_ARCH = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "armv7l": "arm",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
    "riscv64": "riscv64",
}

DEFAULT_GO_VERSION = "1.23"

_RELEASE_TAG = re.compile(r"^go1(?:\.(\d+))?$")
_GO_VERSION = re.compile(r"^(?:go)?1(?:\.(\d+))?(?:\.\d+)?$")
_TOKEN = re.compile(r"\s*(\(|\)|!|&&|\|\||[A-Za-z0-9_.]+)")


def _host_os() -> str:
    if sys.platform.startswith("linux"):
        return "linux"
    if sys.platform == "darwin":
        return "darwin"
    if sys.platform.startswith(("win32", "cygwin")):
        return "windows"
    if sys.platform.startswith("freebsd"):
        return "freebsd"
    return sys.platform


def _host_arch() -> str:
    machine = platform.machine().lower()
    return _MACHINE_TO_ARCH.get(machine, machine or "amd64")


@dataclass(frozen=True)
class BuildContext:
    """The subset of a Go build context that decides which files compile."""
    goos: str = field(default_factory=_host_os)
    goarch: str = field(default_factory=_host_arch)
    tags: frozenset[str] = frozenset()
    go_version: str = DEFAULT_GO_VERSION  # release tags up to this version are satisfied
    compiler: str = "gc"

    def __post_init__(self):
        if not _GO_VERSION.match(self.go_version):
            raise InputError(f"invalid Go version {self.go_version!r} (expected e.g. 1.22 or go1.22.3)")

    @property
    def release(self) -> int:
        """Minor release number of ``go_version``."""
        return int(_GO_VERSION.match(self.go_version).group(1) or 0)

    @classmethod
    def from_env(
        cls,
        goos: str | None = None,
        goarch: str | None = None,
        tags: list[str] | tuple[str, ...] = (),
        go_version: str | None = None,
    ) -> "BuildContext":
        """Explicit values win over ``$GOOS``/``$GOARCH``/``$GOVERSION``, which win over the defaults."""
        return cls(
            goos=goos or os.environ.get("GOOS") or _host_os(),
            goarch=goarch or os.environ.get("GOARCH") or _host_arch(),
            tags=frozenset(t.strip() for t in tags if t and t.strip()),
            go_version=go_version or os.environ.get("GOVERSION") or DEFAULT_GO_VERSION,
        )

    def satisfied(self, tag: str, allow_unix: bool = True) -> bool:
        if tag in self.tags or tag == self.compiler:
            return True
        if tag == self.goos or tag == self.goarch:
            return True
        if tag == "linux" and self.goos == "android":
            return True
        if tag == "solaris" and self.goos == "illumos":
            return True
        if tag == "darwin" and self.goos == "ios":
            return True
        if allow_unix and tag == "unix" and self.goos in UNIX_OS:
            return True
        release = _RELEASE_TAG.match(tag)
        if release:
            return int(release.group(1) or 0) <= self.release
        return False

    def match_file_name(self, name: str) -> bool:
        """Apply the ``_GOOS``, ``_GOARCH`` and ``_GOOS_GOARCH`` name suffixes."""
        stem = name[:-3] if name.endswith(".go") else name
        stem = stem[:-5] if stem.endswith("_test") else stem
        idx = stem.find("_")
        if idx < 0:
            return True
        parts = stem[idx:].split("_")
        n = len(parts)
        if n >= 2 and parts[n - 2] in KNOWN_OS and parts[n - 1] in KNOWN_ARCH:
            return (self.satisfied(parts[n - 2], allow_unix=False)
                    and self.satisfied(parts[n - 1], allow_unix=False))
        if n >= 1 and (parts[n - 1] in KNOWN_OS or parts[n - 1] in KNOWN_ARCH):
            return self.satisfied(parts[n - 1], allow_unix=False)
        return True

    def match_source(self, source: bytes | str) -> bool:
        """Evaluate the constraint comments of a file header.

        A ``//go:build`` line takes precedence over legacy ``// +build``
        lines. Raises ``ValueError`` for a malformed expression.
        """
        go_build, plus_build = constraint_lines(source)
        if go_build is not None:
            return evaluate(go_build, self.satisfied)
        return all(evaluate_plus_build(line, self.satisfied) for line in plus_build)


def constraint_lines(source: bytes | str) -> tuple[str | None, list[str]]:
    """Collect constraint comments that precede the package clause."""
    if isinstance(source, bytes):
        source = source.decode("utf-8", errors="replace")

    go_build: str | None = None
    plus_build: list[str] = []
    in_block = False
    for raw in source.splitlines():
        line = raw.strip()
        if in_block:
            if "*/" in line:
                in_block = False
            continue
        if not line:
            continue
        if line.startswith("/*"):
            in_block = "*/" not in line[2:]
            continue
        if not line.startswith("//"):
            break
        if line.startswith("//go:build"):
            if go_build is None:
                go_build = line[len("//go:build"):].strip()
        elif line[2:].lstrip().startswith("+build"):
            plus_build.append(line[2:].lstrip()[len("+build"):].strip())
    return go_build, plus_build


def evaluate(expr: str, is_satisfied: Callable[[str], bool]) -> bool:
    """Evaluate a ``//go:build`` boolean expression."""
    tokens = _tokenize(expr)
    if not tokens:
        raise ValueError("empty //go:build expression")
    pos = 0

    def parse_or() -> bool:
        nonlocal pos
        result = parse_and()
        while pos < len(tokens) and tokens[pos] == "||":
            pos += 1
            rhs = parse_and()
            result = result or rhs
        return result

    def parse_and() -> bool:
        nonlocal pos
        result = parse_not()
        while pos < len(tokens) and tokens[pos] == "&&":
            pos += 1
            rhs = parse_not()
            result = result and rhs
        return result

    def parse_not() -> bool:
        nonlocal pos
        if pos < len(tokens) and tokens[pos] == "!":
            pos += 1
            return not parse_not()
        return parse_atom()

    def parse_atom() -> bool:
        nonlocal pos
        if pos >= len(tokens):
            raise ValueError(f"unexpected end of //go:build expression: {expr!r}")
        token = tokens[pos]
        pos += 1
        if token == "(":
            result = parse_or()
            if pos >= len(tokens) or tokens[pos] != ")":
                raise ValueError(f"missing ')' in //go:build expression: {expr!r}")
            pos += 1
            return result
        if token in (")", "&&", "||", "!"):
            raise ValueError(f"unexpected {token!r} in //go:build expression: {expr!r}")
        return is_satisfied(token)

    result = parse_or()
    if pos != len(tokens):
        raise ValueError(f"trailing tokens in //go:build expression: {expr!r}")
    return result


def evaluate_plus_build(line: str, is_satisfied: Callable[[str], bool]) -> bool:
    """Legacy syntax: spaces are OR, commas are AND, ``!`` negates."""
    options = line.split()
    if not options:
        return True
    for option in options:
        terms = [t for t in option.split(",") if t]
        if terms and all(_plus_term(t, is_satisfied) for t in terms):
            return True
    return False


def _plus_term(term: str, is_satisfied: Callable[[str], bool]) -> bool:
    if term.startswith("!"):
        return not is_satisfied(term[1:])
    return is_satisfied(term)


def _tokenize(expr: str) -> list[str]:
    tokens: list[str] = []
    pos = 0
    expr = expr.rstrip()
    while pos < len(expr):
        match = _TOKEN.match(expr, pos)
        if not match:
            raise ValueError(f"invalid character in //go:build expression: {expr!r}")
        tokens.append(match.group(1))
        pos = match.end()
    return tokens
