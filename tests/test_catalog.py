"""Tests for the Go catalog provider and go.mod reading."""

from pathlib import Path

import pytest

from depwatch.catalog import GoCatalog, get_catalog
from depwatch.catalog.buildtags import BuildContext
from depwatch.catalog.go_syntax import parse_go_source
from depwatch.catalog.gomod import read_module_path
from depwatch.errors import CatalogError, NoUnitError, UnitResolutionError
from depwatch.models import FinderConfig, UnitKind

from conftest import go_package, write

LINUX = BuildContext(goos="linux", goarch="amd64")


def _catalog(root, **kwargs) -> GoCatalog:
    kwargs.setdefault("context", LINUX)
    return GoCatalog(root, **kwargs)


# ── go.mod / syntax ──────────────────────────────────────────


def test_read_module_path(tmp_path):
    write(tmp_path, "go.mod", "// comment\nmodule example.com/app // trailing\n\ngo 1.21\n")
    assert read_module_path(tmp_path) == "example.com/app"


def test_read_module_path_quoted_and_missing(tmp_path):
    assert read_module_path(tmp_path) is None
    write(tmp_path, "go.mod", 'module "example.com/quoted"\n')
    assert read_module_path(tmp_path) == "example.com/quoted"


def test_parse_go_source_header():
    source = b"""// Package lib does things.
package lib

import "fmt"

import (
\tstr "strings"
\t_ "embed"
\t"example.com/app/util"
)

func F() { fmt.Println(str.ToUpper("x")) }
"""
    header = parse_go_source(source)
    assert header.package == "lib"
    assert header.imports == ["fmt", "strings", "embed", "example.com/app/util"]
    assert header.starts_with_package
    assert not header.has_error


def test_parse_go_source_without_package():
    header = parse_go_source(b"// just a comment\n")
    assert header.package is None
    assert not header.starts_with_package


# ── Units ────────────────────────────────────────────────────


def test_list_units(routing_project):
    catalog = _catalog(routing_project)
    units = {u.identity: u for u in catalog.list_units()}

    assert set(units) == {
        "testproject/pwa",
        "testproject/database",
        "testproject/dom",
        "testproject/cmd",
        "testproject/cmdtool",
    }
    assert units["testproject/pwa"].kind == UnitKind.ENTRY_POINT
    assert units["testproject/cmd"].is_entry_point
    assert units["testproject/database"].kind == UnitKind.LIBRARY
    assert units["testproject/cmd"].dependencies == ["fmt", "testproject/cmdtool"]


def test_build_constraints_select_files(routing_project):
    pwa = _catalog(routing_project).resolve_unit(routing_project / "pwa")
    assert [f.name for f in pwa.files] == ["main.server.go"]
    assert [f.name for f in pwa.ignored_files] == ["main.wasm.go"]
    assert pwa.dependencies == ["testproject/database"]

    wasm = _catalog(routing_project, context=BuildContext(goos="js", goarch="wasm"))
    pwa = wasm.resolve_unit(routing_project / "pwa")
    assert [f.name for f in pwa.files] == ["main.wasm.go"]
    assert pwa.dependencies == ["testproject/dom"]


def test_file_dependencies_ignore_constraints(routing_project):
    catalog = _catalog(routing_project)
    assert catalog.file_dependencies(routing_project / "pwa" / "main.wasm.go") == ["testproject/dom"]
    with pytest.raises(UnitResolutionError):
        catalog.file_dependencies(routing_project / "pwa" / "missing.go")


def test_file_name_suffixes(tmp_path):
    write(tmp_path, "go.mod", "module m\n")
    write(tmp_path, "lib/lib.go", go_package("lib"))
    write(tmp_path, "lib/lib_windows.go", go_package("lib", "syscall"))
    write(tmp_path, "lib/lib_linux.go", go_package("lib", "os"))

    unit = _catalog(tmp_path).resolve_unit(tmp_path / "lib")
    assert [f.name for f in unit.files] == ["lib.go", "lib_linux.go"]
    assert unit.dependencies == ["os"]


def test_tests_excluded_unless_requested(tmp_path):
    write(tmp_path, "go.mod", "module m\n")
    write(tmp_path, "lib/lib.go", go_package("lib"))
    write(tmp_path, "lib/lib_test.go", go_package("lib", "testing"))
    write(tmp_path, "lib/ext_test.go", go_package("lib_test", "testing", "m/lib"))

    unit = _catalog(tmp_path).resolve_unit(tmp_path / "lib")
    assert [f.name for f in unit.files] == ["lib.go"]
    assert unit.dependencies == []

    unit = _catalog(tmp_path, include_tests=True).resolve_unit(tmp_path / "lib")
    assert len(unit.files) == 3
    assert unit.name == "lib"
    assert unit.dependencies == ["testing", "m/lib"]


def test_multiple_packages_fail(tmp_path):
    write(tmp_path, "go.mod", "module m\n")
    write(tmp_path, "mixed/a.go", go_package("a"))
    write(tmp_path, "mixed/b.go", go_package("b"))

    with pytest.raises(UnitResolutionError, match="multiple packages"):
        _catalog(tmp_path).resolve_unit(tmp_path / "mixed")


def test_no_unit(tmp_path):
    (tmp_path / "empty").mkdir()
    write(tmp_path, "only_windows/x_windows.go", go_package("x"))
    catalog = _catalog(tmp_path)

    with pytest.raises(NoUnitError):
        catalog.resolve_unit(tmp_path / "empty")
    with pytest.raises(NoUnitError):
        catalog.resolve_unit(tmp_path / "only_windows")
    with pytest.raises(NoUnitError):
        catalog.resolve_unit(tmp_path / "missing")


def test_malformed_constraint_fails(tmp_path):
    write(tmp_path, "bad/bad.go", "//go:build linux &&\n\npackage bad\n")
    with pytest.raises(UnitResolutionError):
        _catalog(tmp_path).resolve_unit(tmp_path / "bad")


def test_list_units_skips_broken_packages(tmp_path, caplog):
    write(tmp_path, "go.mod", "module m\n")
    write(tmp_path, "good/good.go", go_package("good"))
    write(tmp_path, "mixed/a.go", go_package("a"))
    write(tmp_path, "mixed/b.go", go_package("b"))

    units = _catalog(tmp_path).list_units()
    assert [u.identity for u in units] == ["m/good"]
    assert "skipping unresolvable package" in caplog.text


def test_list_units_total_failure(tmp_path):
    write(tmp_path, "go.mod", "module m\n")
    write(tmp_path, "mixed/a.go", go_package("a"))
    write(tmp_path, "mixed/b.go", go_package("b"))

    with pytest.raises(CatalogError):
        _catalog(tmp_path).list_units()


def test_walk_skips_special_directories(tmp_path):
    write(tmp_path, "go.mod", "module m\n")
    write(tmp_path, "main.go", go_package("main", body="func main() {}\n"))
    for skipped in ("vendor/dep", "testdata", "_scratch", ".hidden", "node_modules/x"):
        write(tmp_path, f"{skipped}/x.go", go_package("x"))
    write(tmp_path, "nested/go.mod", "module other\n")
    write(tmp_path, "nested/n.go", go_package("n"))

    identities = [u.identity for u in _catalog(tmp_path).list_units()]
    assert identities == ["m"]


def test_module_path_defaults_to_root_name(tmp_path):
    root = tmp_path / "noproject"
    write(root, "lib/lib.go", go_package("lib"))
    catalog = _catalog(root)
    assert catalog.module_path == "noproject"
    assert [u.identity for u in catalog.list_units()] == ["noproject/lib"]


# ── Selectors ────────────────────────────────────────────────


def test_expand_selector(routing_project):
    catalog = _catalog(routing_project)
    db = routing_project / "database"

    assert catalog.expand_selector("./database") == [db]
    assert catalog.expand_selector("./database/...") == [db]
    assert catalog.expand_selector("testproject/database") == [db]
    assert catalog.expand_selector(str(db)) == [db]
    assert len(catalog.expand_selector("./...")) == 5
    assert catalog.expand_selector("./nothing") == []
    assert catalog.expand_selector("fmt") is None
    assert catalog.expand_selector("/definitely/elsewhere") is None

    assert catalog.is_local_selector("./cmd")
    assert not catalog.is_local_selector("github.com/x/y")


def test_list_units_rejects_foreign_selector(routing_project):
    with pytest.raises(CatalogError):
        _catalog(routing_project).list_units("fmt")


def test_identity_for_directory(routing_project):
    catalog = _catalog(routing_project)
    assert catalog.identity_for_directory(routing_project) == "testproject"
    assert catalog.identity_for_directory(routing_project / "a" / "b") == "testproject/a/b"


def test_get_catalog_from_config(linux_config):
    catalog = get_catalog(linux_config)
    assert isinstance(catalog, GoCatalog)
    assert catalog.context.goos == "linux"
    assert catalog.handles(Path("x.go"))
    assert not catalog.handles_name("README.md")


def test_from_config_tags(routing_project):
    config = FinderConfig(root_dir=routing_project, goos="linux", goarch="amd64", build_tags=["wasm"])
    pwa = GoCatalog.from_config(config).resolve_unit(routing_project / "pwa")
    assert pwa.dependencies == ["testproject/dom"]


def test_future_release_tag_excludes_file(tmp_path):
    write(tmp_path, "go.mod", "module m\n")
    write(tmp_path, "future/f.go", "//go:build go1.99\n\n" + go_package("future", "iter"))
    write(tmp_path, "future/compat.go", "//go:build !go1.99\n\n" + go_package("future"))

    unit = _catalog(tmp_path).resolve_unit(tmp_path / "future")
    assert [f.name for f in unit.files] == ["compat.go"]
    assert [f.name for f in unit.ignored_files] == ["f.go"]
    assert unit.dependencies == []

    config = FinderConfig(root_dir=tmp_path, goos="linux", goarch="amd64", go_version="1.99")
    unit = GoCatalog.from_config(config).resolve_unit(tmp_path / "future")
    assert [f.name for f in unit.files] == ["f.go"]
    assert unit.dependencies == ["iter"]
