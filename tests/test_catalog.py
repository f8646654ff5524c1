"""
Tests for the static test catalog.

Covers:
- TEST_CASES / EXECUTION_MAPPING contents and immutability.
- map_suite_to_ticket: total, pure lookup over spec names, paths and URLs.
"""

from __future__ import annotations

import dataclasses

import pytest

from xray_bridge.catalog import (
    EXECUTION_MAPPING,
    SPEC_TO_TEST_KEY,
    TEST_CASES,
    Step,
    get_execution_title,
    map_suite_to_ticket,
    spec_base_name,
)


class TestCatalogTables:
    """Tests for the catalog tables."""

    def test_test_case_keys(self) -> None:
        assert list(TEST_CASES) == ["TT-13", "TT-14", "TT-15", "TT-16"]

    def test_fixture_keys_match_table_keys(self) -> None:
        for key, fixture in TEST_CASES.items():
            assert fixture.key == key
            assert fixture.steps, f"{key} has no steps"

    def test_step_counts(self) -> None:
        assert [len(f.steps) for f in TEST_CASES.values()] == [5, 6, 6, 5]

    def test_step_order(self) -> None:
        steps = TEST_CASES["TT-14"].steps
        assert steps[0].action == "Locate the name input field"
        assert steps[1].data == "TestUser"
        assert steps[-1].action == "Capture screenshot evidence"

    def test_step_data_defaults_to_empty(self) -> None:
        assert Step("Do it", "It is done").data == ""

    def test_execution_mapping_references_known_tests(self) -> None:
        for execution_key, test_keys in EXECUTION_MAPPING.items():
            assert execution_key not in TEST_CASES
            for test_key in test_keys:
                assert test_key in TEST_CASES

    def test_spec_mapping_targets_known_tests(self) -> None:
        assert set(SPEC_TO_TEST_KEY.values()) == set(TEST_CASES)

    def test_tables_are_read_only(self) -> None:
        with pytest.raises(TypeError):
            TEST_CASES["TT-99"] = TEST_CASES["TT-13"]  # type: ignore[index]
        with pytest.raises(TypeError):
            SPEC_TO_TEST_KEY["new.spec.js"] = "TT-99"  # type: ignore[index]

    def test_fixtures_are_frozen(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            TEST_CASES["TT-13"].name = "changed"  # type: ignore[misc]

    def test_execution_title_fallback(self) -> None:
        assert get_execution_title("TT-13") == "Welcome Screen Verification"
        assert get_execution_title("TT-99") == "TT-99"


class TestMapSuiteToTicket:
    """Tests for spec file -> ticket mapping."""

    @pytest.mark.parametrize(
        "source, expected",
        [
            ("welcome-screen.spec.js", "TT-13"),
            ("greeting-workflow.spec.js", "TT-14"),
            ("external-links.spec.js", "TT-15"),
            ("input-validation.spec.js", "TT-16"),
        ],
    )
    def test_known_specs(self, source: str, expected: str) -> None:
        assert map_suite_to_ticket(source) == expected

    def test_unknown_spec_returns_none(self) -> None:
        assert map_suite_to_ticket("settings.spec.js") is None
        assert map_suite_to_ticket("") is None

    def test_file_url(self) -> None:
        url = "file:///D:/a/app/tests/e2e/external-links.spec.js"
        assert map_suite_to_ticket(url) == "TT-15"

    def test_windows_and_posix_paths(self) -> None:
        assert map_suite_to_ticket(r"C:\app\tests\e2e\welcome-screen.spec.js") == "TT-13"
        assert map_suite_to_ticket("/home/ci/app/tests/e2e/welcome-screen.spec.js") == "TT-13"

    def test_repeated_calls_are_stable(self) -> None:
        results = {map_suite_to_ticket("greeting-workflow.spec.js") for _ in range(5)}
        assert results == {"TT-14"}
        assert map_suite_to_ticket("nope.spec.js") is None
        assert map_suite_to_ticket("nope.spec.js") is None

    def test_spec_base_name(self) -> None:
        assert spec_base_name("file:///tmp/x/a.spec.js") == "a.spec.js"
        assert spec_base_name("a.spec.js") == "a.spec.js"
