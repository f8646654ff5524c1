"""
Tests for the Test Step Synchronizer.

The Xray client is fully mocked; these tests check call ordering and
the skip-and-continue behaviour of the batch.
"""

from __future__ import annotations

from typing import List
from unittest.mock import MagicMock, call

import pytest

from xray_bridge.catalog import Step, TestCaseFixture
from xray_bridge.jira_client.call_result import CallResult
from xray_bridge.jira_client.step_sync import StepSynchronizer, SyncSummary

STEPS = (
    Step("Launch the application", "Window opens"),
    Step("Type the name", "Name is entered", data="TestUser"),
    Step("Click Greet", "Greeting is shown"),
)

FIXTURE = TestCaseFixture(key="TT-14", name="Greeting Workflow", steps=STEPS)


def _resolver(known: dict):
    """Build a resolve_issue_id side effect from a key -> ID table."""

    def _resolve(ticket_key: str, kind: str = "test") -> CallResult:
        if ticket_key in known:
            return CallResult.ok(known[ticket_key])
        return CallResult.not_found(f"{ticket_key} not found")

    return _resolve


@pytest.fixture
def sync_client(mock_xray: MagicMock) -> MagicMock:
    mock_xray.remove_all_test_steps.return_value = CallResult.ok({"removeAllTestSteps": "ok"})
    mock_xray.add_test_step.side_effect = lambda issue_id, step: CallResult.ok(f"id-{step.action}")
    mock_xray.add_tests_to_test_execution.return_value = CallResult.ok(
        {"addedTests": ["10013"], "warning": None}
    )
    return mock_xray


class TestReplaceSteps:
    """Tests for replacing the steps of one Test."""

    def test_steps_added_in_order(self, sync_client: MagicMock) -> None:
        result = StepSynchronizer(sync_client).replace_steps("10014", STEPS)

        sync_client.remove_all_test_steps.assert_called_once_with("10014")
        assert sync_client.add_test_step.call_args_list == [call("10014", s) for s in STEPS]
        assert result.added == 3
        assert result.failed == 0
        assert result.removed

    def test_removal_happens_before_adding(self, sync_client: MagicMock) -> None:
        StepSynchronizer(sync_client).replace_steps("10014", STEPS)
        names = [c[0] for c in sync_client.method_calls]
        assert names[0] == "remove_all_test_steps"
        assert names[1:] == ["add_test_step"] * 3

    def test_removal_failure_is_not_fatal(self, sync_client: MagicMock, log_messages: List[str]) -> None:
        sync_client.remove_all_test_steps.return_value = CallResult.failure('[{"message":"x"}]')

        result = StepSynchronizer(sync_client).replace_steps("10014", STEPS)

        assert not result.removed
        assert sync_client.add_test_step.call_count == 3
        assert any("Could not remove existing steps" in m for m in log_messages)

    def test_step_failure_continues(self, sync_client: MagicMock, log_messages: List[str]) -> None:
        sync_client.add_test_step.side_effect = [
            CallResult.ok("a"),
            CallResult.failure("bad step"),
            CallResult.ok("c"),
        ]

        result = StepSynchronizer(sync_client).replace_steps("10014", STEPS)

        assert sync_client.add_test_step.call_count == 3
        assert result.added == 2
        assert result.failed == 1
        assert any("Failed step 2: bad step" in m for m in log_messages)


class TestSyncTestCase:
    """Tests for syncing one catalog entry."""

    def test_unknown_test_is_skipped(self, sync_client: MagicMock, log_messages: List[str]) -> None:
        sync_client.resolve_issue_id.side_effect = _resolver({})

        assert StepSynchronizer(sync_client).sync_test_case(FIXTURE) is None
        sync_client.remove_all_test_steps.assert_not_called()
        sync_client.add_test_step.assert_not_called()
        assert any("TT-14 not found in Xray" in m for m in log_messages)

    def test_lookup_failure_is_skipped(self, sync_client: MagicMock) -> None:
        sync_client.resolve_issue_id.return_value = CallResult.failure("500")
        assert StepSynchronizer(sync_client).sync_test_case(FIXTURE) is None
        sync_client.add_test_step.assert_not_called()

    def test_known_test_synced(self, sync_client: MagicMock) -> None:
        sync_client.resolve_issue_id.side_effect = _resolver({"TT-14": "10014"})
        result = StepSynchronizer(sync_client).sync_test_case(FIXTURE)
        assert result is not None
        assert result.issue_id == "10014"
        assert result.added == len(STEPS)


class TestLinkTestsToExecution:
    """Tests for Test Execution membership."""

    def test_links_resolved_tests(self, sync_client: MagicMock) -> None:
        sync_client.resolve_issue_id.side_effect = _resolver({"TT-17": "10017", "TT-13": "10013"})

        result = StepSynchronizer(sync_client).link_tests_to_execution("TT-17", ["TT-13"])

        assert result.is_success
        sync_client.add_tests_to_test_execution.assert_called_once_with("10017", ["10013"])
        sync_client.resolve_issue_id.assert_any_call("TT-17", kind="test_execution")

    def test_unknown_tests_filtered(self, sync_client: MagicMock) -> None:
        sync_client.resolve_issue_id.side_effect = _resolver({"TT-17": "10017", "TT-13": "10013"})
        StepSynchronizer(sync_client).link_tests_to_execution("TT-17", ["TT-99", "TT-13"])
        sync_client.add_tests_to_test_execution.assert_called_once_with("10017", ["10013"])

    def test_no_valid_tests_sends_nothing(self, sync_client: MagicMock, log_messages: List[str]) -> None:
        sync_client.resolve_issue_id.side_effect = _resolver({"TT-17": "10017"})

        result = StepSynchronizer(sync_client).link_tests_to_execution("TT-17", ["TT-98", "TT-99"])

        assert result.is_not_found
        sync_client.add_tests_to_test_execution.assert_not_called()
        assert any("No valid test IDs found" in m for m in log_messages)

    def test_unknown_execution_sends_nothing(self, sync_client: MagicMock) -> None:
        sync_client.resolve_issue_id.side_effect = _resolver({"TT-13": "10013"})
        result = StepSynchronizer(sync_client).link_tests_to_execution("TT-17", ["TT-13"])
        assert result.is_not_found
        sync_client.add_tests_to_test_execution.assert_not_called()

    def test_warning_is_logged(self, sync_client: MagicMock, log_messages: List[str]) -> None:
        sync_client.resolve_issue_id.side_effect = _resolver({"TT-17": "10017", "TT-13": "10013"})
        sync_client.add_tests_to_test_execution.return_value = CallResult.ok(
            {"addedTests": [], "warning": "Test already in execution"}
        )
        StepSynchronizer(sync_client).link_tests_to_execution("TT-17", ["TT-13"])
        assert any("Test already in execution" in m for m in log_messages)


class TestSyncAll:
    """Tests for the full sync run."""

    def test_summary_counts(self, sync_client: MagicMock) -> None:
        other = TestCaseFixture(key="TT-15", name="Missing", steps=(Step("a", "b"),))
        sync_client.resolve_issue_id.side_effect = _resolver(
            {"TT-14": "10014", "TT-18": "10018"}
        )
        synchronizer = StepSynchronizer(
            sync_client,
            test_cases={"TT-14": FIXTURE, "TT-15": other},
            execution_mapping={"TT-18": ["TT-14"], "TT-19": ["TT-15"]},
        )

        summary = synchronizer.sync_all()

        assert summary.tests_synced == 1
        assert summary.tests_skipped == 1
        assert summary.steps_added == 3
        assert summary.steps_failed == 0
        assert summary.executions_linked == 1
        assert summary.executions_skipped == 1
        assert summary.has_failures

    def test_default_catalog_is_used(self, sync_client: MagicMock) -> None:
        sync_client.resolve_issue_id.side_effect = _resolver({})
        summary = StepSynchronizer(sync_client).sync_all()
        assert summary.tests_skipped == 4
        assert summary.executions_skipped == 4
        sync_client.add_test_step.assert_not_called()

    def test_clean_summary(self) -> None:
        assert not SyncSummary(tests_synced=4, steps_added=22, executions_linked=4).has_failures
