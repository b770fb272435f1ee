"""Tree-sitter helpers that read the header of a Go source file."""

from __future__ import annotations

from dataclasses import dataclass, field

try:
    from tree_sitter_language_pack import get_parser
except ImportError as _err:
    raise ImportError(
        "tree-sitter-language-pack is required. Install with: "
        "pip install tree-sitter-language-pack"
    ) from _err

_parser_cache: dict[str, object] = {}


def _get_parser():
    if "go" not in _parser_cache:
        _parser_cache["go"] = get_parser("go")
    return _parser_cache["go"]


@dataclass
class GoFileHeader:
    """Package clause and imports of a single Go file."""
    package: str | None = None
    imports: list[str] = field(default_factory=list)
    has_error: bool = False
    starts_with_package: bool = False


def parse_go_source(source: bytes) -> GoFileHeader:
    tree = _get_parser().parse(source)
    root = tree.root_node
    header = GoFileHeader(has_error=root.has_error)

    first_significant = True
    for child in root.children:
        if child.type == "comment":
            continue
        if child.type == "package_clause":
            header.package = _package_name(child)
            header.starts_with_package = first_significant and header.package is not None
        elif child.type == "import_declaration":
            header.imports.extend(_import_paths(child))
        first_significant = False
    return header


def _package_name(node) -> str | None:
    for child in node.children:
        if child.type == "package_identifier" and child.text:
            return child.text.decode("utf-8")
    return None


def _import_paths(node) -> list[str]:
    paths: list[str] = []
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type == "import_spec":
            path_node = current.child_by_field_name("path")
            if path_node is not None and path_node.text:
                path = path_node.text.decode("utf-8").strip().strip('"`')
                if path:
                    paths.append(path)
            continue
        stack.extend(reversed(current.children))
    return paths
