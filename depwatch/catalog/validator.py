"""Checks that a Go file is complete enough to be analysed."""

from __future__ import annotations

import logging
from pathlib import Path

from depwatch.catalog.go_syntax import parse_go_source

logger = logging.getLogger(__name__)


class GoFileValidator:
    """Detects empty, truncated or mid-write Go files.

    Editors and formatters often write files in several steps; an event may
    fire while the file holds only part of its content. Such files are
    skipped rather than fed to the catalog.
    """

    def is_valid_go_file(self, file_path: Path | str) -> bool:
        """Non-empty ``.go`` file with a package clause and no syntax errors.

        Raises ``FileNotFoundError`` when the file does not exist.
        """
        path = Path(file_path)
        size = path.stat().st_size
        if size == 0:
            return False
        if path.suffix != ".go":
            return False
        return self.has_valid_go_syntax(path)

    def has_valid_go_syntax(self, file_path: Path | str) -> bool:
        header = parse_go_source(Path(file_path).read_bytes())
        return header.starts_with_package and not header.has_error

    def has_minimum_go_content(self, file_path: Path | str) -> bool:
        """True when the first significant line is a package declaration."""
        in_block = False
        with open(file_path, "r", encoding="utf-8", errors="replace") as f:
            for raw in f:
                line = raw.strip()
                if in_block:
                    if "*/" in line:
                        in_block = False
                    continue
                if not line or line.startswith("//"):
                    continue
                if line.startswith("/*"):
                    in_block = "*/" not in line[2:]
                    continue
                return line.startswith("package ")
        return False

    def is_file_being_written(self, file_path: Path | str) -> bool:
        """Heuristic: content present but not even a package clause yet."""
        if self.has_valid_go_syntax(file_path):
            return False
        if self.has_minimum_go_content(file_path):
            return False
        return Path(file_path).stat().st_size > 0

    def is_complete(self, file_path: Path | str) -> bool:
        """Folded check used by the resolver: missing files are incomplete."""
        try:
            valid = self.is_valid_go_file(file_path)
        except FileNotFoundError:
            logger.debug("%s does not exist", file_path)
            return False
        if not valid:
            logger.debug("%s is empty, truncated or being written", file_path)
        return valid
