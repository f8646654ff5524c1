"""
Test Step Synchronizer Module.

Pushes the hand-authored test steps from the catalog to Xray and links
Test issues to their Test Executions.

Sync is a best-effort batch update: Xray has no transaction spanning
these calls, so a failed step, an unknown test or an unknown execution
is logged and skipped while the rest of the batch continues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from loguru import logger

from xray_bridge.catalog import EXECUTION_MAPPING, TEST_CASES, Step, TestCaseFixture
from xray_bridge.jira_client.call_result import CallResult
from xray_bridge.jira_client.xray_client import XrayClient


@dataclass
class StepSyncResult:
    """
    Outcome of replacing the steps of one Test issue.

    Attributes:
        issue_id: Xray internal issue ID.
        removed: Whether removing the previous steps succeeded.
        step_results: One CallResult per step, in input order.
    """

    issue_id: str
    removed: bool = True
    step_results: List[CallResult] = field(default_factory=list)

    @property
    def added(self) -> int:
        return sum(1 for r in self.step_results if r.is_success)

    @property
    def failed(self) -> int:
        return len(self.step_results) - self.added


@dataclass
class SyncSummary:
    """Totals for a full sync run."""

    tests_synced: int = 0
    tests_skipped: int = 0
    steps_added: int = 0
    steps_failed: int = 0
    executions_linked: int = 0
    executions_skipped: int = 0

    @property
    def has_failures(self) -> bool:
        return bool(self.tests_skipped or self.steps_failed or self.executions_skipped)

    def to_dict(self) -> Dict[str, int]:
        return {
            "tests_synced": self.tests_synced,
            "tests_skipped": self.tests_skipped,
            "steps_added": self.steps_added,
            "steps_failed": self.steps_failed,
            "executions_linked": self.executions_linked,
            "executions_skipped": self.executions_skipped,
        }


class StepSynchronizer:
    """
    Makes Xray test steps and Test Execution membership match the catalog.

    Usage::

        client = XrayClient(project_key="TT")
        client.authenticate(client_id, client_secret)
        summary = StepSynchronizer(client).sync_all()
    """

    def __init__(
        self,
        client: XrayClient,
        test_cases: Mapping[str, TestCaseFixture] = TEST_CASES,
        execution_mapping: Mapping[str, Sequence[str]] = EXECUTION_MAPPING,
    ) -> None:
        self._client = client
        self._test_cases = test_cases
        self._execution_mapping = execution_mapping

    def resolve_issue_id(self, ticket_key: str, kind: str = "test") -> Optional[str]:
        """
        Resolve a Jira key to its Xray internal ID.

        Returns:
            The internal ID, or None when the issue is unknown or the
            lookup failed (both are logged and treated as "skip").
        """
        result = self._client.resolve_issue_id(ticket_key, kind=kind)
        if result.is_success:
            return result.data
        if result.is_not_found:
            logger.warning(f"  {ticket_key} not found in Xray")
        else:
            logger.warning(f"  Lookup of {ticket_key} failed: {result.error}")
        return None

    def replace_steps(self, issue_id: str, steps: Sequence[Step]) -> StepSyncResult:
        """
        Replace all steps of a Test issue, preserving order.

        Removes the existing steps (a failure is logged, not fatal), then
        adds each step with one call per step, continuing past failures.

        Args:
            issue_id: Xray internal issue ID of the Test.
            steps: Steps in the order they must appear in Xray.

        Returns:
            StepSyncResult with one CallResult per step.
        """
        sync_result = StepSyncResult(issue_id=issue_id)

        removal = self._client.remove_all_test_steps(issue_id)
        if not removal.is_success:
            sync_result.removed = False
            logger.warning(f"  Could not remove existing steps: {removal.error}")

        for index, step in enumerate(steps, start=1):
            result = self._client.add_test_step(issue_id, step)
            sync_result.step_results.append(result)
            if result.is_success:
                logger.info(f"  Step {index}: {step.action}")
            else:
                logger.warning(f"  Failed step {index}: {result.error}")

        return sync_result

    def sync_test_case(self, fixture: TestCaseFixture) -> Optional[StepSyncResult]:
        """
        Sync the steps of one test case.

        Returns:
            StepSyncResult, or None if the Test does not exist in Xray.
        """
        logger.info(f"{fixture.key}: {fixture.name}")
        issue_id = self.resolve_issue_id(fixture.key)
        if issue_id is None:
            return None

        logger.info(f"  Found test ID: {issue_id}")
        return self.replace_steps(issue_id, fixture.steps)

    def link_tests_to_execution(
        self,
        execution_key: str,
        test_case_keys: Sequence[str],
    ) -> CallResult:
        """
        Add Tests to a Test Execution.

        Unresolvable test keys are skipped. When the execution or every
        test is unknown, no mutation is sent.

        Args:
            execution_key: Jira key of the Test Execution.
            test_case_keys: Jira keys of the Tests to add.

        Returns:
            CallResult of the add mutation, or NOT_FOUND when nothing was sent.
        """
        logger.info(f"{execution_key}: Adding {len(test_case_keys)} test(s)...")

        execution_id = self.resolve_issue_id(execution_key, kind="test_execution")
        if execution_id is None:
            return CallResult.not_found(f"Test Execution {execution_key} not found")

        test_ids = []
        for test_key in test_case_keys:
            test_id = self.resolve_issue_id(test_key)
            if test_id is not None:
                test_ids.append(test_id)

        if not test_ids:
            logger.warning("  No valid test IDs found")
            return CallResult.not_found(f"No valid test IDs found for {execution_key}")

        result = self._client.add_tests_to_test_execution(execution_id, test_ids)
        if result.is_success:
            logger.info(f"  Added {len(result.data['addedTests'])} test(s)")
            if result.data.get("warning"):
                logger.warning(f"  Xray warning: {result.data['warning']}")
        else:
            logger.warning(f"  Error: {result.error}")
        return result

    def sync_all(self) -> SyncSummary:
        """
        Sync every test case, then every Test Execution mapping.

        Returns:
            SyncSummary with per-category counts.
        """
        summary = SyncSummary()

        for fixture in self._test_cases.values():
            step_result = self.sync_test_case(fixture)
            if step_result is None:
                summary.tests_skipped += 1
                continue
            summary.tests_synced += 1
            summary.steps_added += step_result.added
            summary.steps_failed += step_result.failed

        if self._execution_mapping:
            logger.info("Adding tests to test executions...")
            for execution_key, test_keys in self._execution_mapping.items():
                result = self.link_tests_to_execution(execution_key, list(test_keys))
                if result.is_success:
                    summary.executions_linked += 1
                else:
                    summary.executions_skipped += 1

        logger.info(f"Step sync finished: {summary.to_dict()}")
        return summary
