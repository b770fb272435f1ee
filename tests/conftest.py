"""Shared fixtures: small Go module trees written into tmp_path."""

from __future__ import annotations

from pathlib import Path

import pytest

from depwatch.models import FinderConfig

SERVER_MAIN = """//go:build !wasm
// +build !wasm

package main

import "testproject/database"

func main() {
	database.Connect()
}
"""

WASM_MAIN = """//go:build wasm
// +build wasm

package main

import "testproject/dom"

func main() {
	dom.DomFunc()
}
"""

CMD_MAIN = """package main

import (
	"fmt"

	"testproject/cmdtool"
)

func main() {
	fmt.Println("cmd")
	cmdtool.Execute()
}
"""


def write(root: Path, rel: str, content: str) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def go_package(name: str, *imports: str, body: str = "func Run() {}\n") -> str:
    lines = [f"package {name}", ""]
    if imports:
        lines.append("import (")
        lines.extend(f'\t"{imp}"' for imp in imports)
        lines.append(")")
        lines.append("")
    lines.append(body)
    return "\n".join(lines)


@pytest.fixture
def routing_project(tmp_path) -> Path:
    """Two mains sharing ``pwa/`` (split by the wasm tag) plus a separate ``cmd/`` main."""
    root = tmp_path / "testproject"
    write(root, "go.mod", "module testproject\n\ngo 1.21\n")
    write(root, "pwa/main.server.go", SERVER_MAIN)
    write(root, "pwa/main.wasm.go", WASM_MAIN)
    write(root, "database/db.go", go_package("database", body="func Connect() {}\n"))
    write(root, "dom/dom.go", go_package("dom", body="func DomFunc() {}\n"))
    write(root, "cmd/main.go", CMD_MAIN)
    write(root, "cmdtool/cmd.go", go_package("cmdtool", body="func Execute() {}\n"))
    return root


@pytest.fixture
def linux_config(routing_project) -> FinderConfig:
    return FinderConfig(root_dir=routing_project, goos="linux", goarch="amd64")
