"""Tests for the validation-gated impact helpers."""

import pytest

from depwatch.errors import InputError
from depwatch.impact import (
    analyze_file_impact,
    calculate_impact,
    check_file_ownership,
    find_reverse_deps_for_file,
    validate_input_for_processing,
)
from depwatch.resolver import OwnershipResolver

from conftest import write

SERVER = "pwa/main.server.go"


@pytest.fixture
def resolver(linux_config):
    return OwnershipResolver.from_config(linux_config)


@pytest.mark.parametrize("count, belongs, expected", [
    (0, True, "none"),
    (0, False, "none"),
    (1, True, "low"),
    (2, True, "medium"),
    (1, False, "high"),
    (3, False, "high"),
])
def test_calculate_impact(count, belongs, expected):
    assert calculate_impact(count, belongs) == expected


def test_validate_input(resolver, routing_project):
    write(routing_project, "database/partial.go", "pack")

    assert validate_input_for_processing(resolver, SERVER, "db.go", "database/db.go")
    assert not validate_input_for_processing(resolver, SERVER, "partial.go", "database/partial.go")
    # no path or a non-source name: nothing to validate
    assert validate_input_for_processing(resolver, SERVER, "db.go")
    assert validate_input_for_processing(resolver, SERVER, "notes.md", "database/notes.md")

    with pytest.raises(InputError):
        validate_input_for_processing(resolver, "", "db.go", "database/db.go")


def test_check_file_ownership(resolver, routing_project):
    write(routing_project, "database/empty.go", "")
    assert check_file_ownership(resolver, SERVER, "db.go", "database/db.go") == "owned"
    assert check_file_ownership(resolver, SERVER, "dom.go", "dom/dom.go") == "not-owned"
    assert check_file_ownership(resolver, SERVER, "empty.go", "database/empty.go") == "skipped"


def test_analyze_file_impact_owned(resolver):
    result = analyze_file_impact(resolver, SERVER, "db.go", "database/db.go")
    assert result.status == "analyzed"
    assert result.belongs_to_handler
    assert result.affected_entry_points == ["testproject/pwa"]
    assert result.impact == "low"
    assert "reason" not in result.to_dict()


def test_analyze_file_impact_not_owned(resolver):
    result = analyze_file_impact(resolver, "cmd/main.go", "db.go", "database/db.go")
    assert not result.belongs_to_handler
    assert result.impact == "high"


def test_analyze_file_impact_skipped(resolver, routing_project):
    write(routing_project, "database/partial.go", "pack")
    result = analyze_file_impact(resolver, SERVER, "partial.go", "database/partial.go")
    assert result.to_dict() == {
        "status": "skipped",
        "reason": "File is invalid, empty, or being written",
        "belongs_to_handler": False,
        "affected_entry_points": [],
        "impact": "none",
    }


def test_find_reverse_deps_for_file(resolver):
    assert find_reverse_deps_for_file(resolver, SERVER, "db.go", "database/db.go") == [
        "testproject/database",
        "testproject/pwa",
    ]
    # by-name lookup when no path is given
    assert find_reverse_deps_for_file(resolver, SERVER, "cmd.go") == [
        "testproject/cmd",
        "testproject/cmdtool",
    ]
    assert find_reverse_deps_for_file(resolver, SERVER, "unknown.go") == []
