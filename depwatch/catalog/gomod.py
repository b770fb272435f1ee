"""Minimal go.mod reading: only the module path is needed."""

from __future__ import annotations

import re
from pathlib import Path

_MODULE_RE = re.compile(r'^\s*module\s+("?)([^\s"]+)\1\s*(//.*)?$')


def read_module_path(root: Path) -> str | None:
    """Return the ``module`` directive of ``root/go.mod``, if any."""
    go_mod = root / "go.mod"
    try:
        text = go_mod.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    for line in text.splitlines():
        match = _MODULE_RE.match(line)
        if match:
            return match.group(2)
    return None
