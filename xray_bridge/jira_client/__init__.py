"""
Jira Xray Client Module.

Provides integration with Xray Cloud and Jira Cloud for:
- Syncing hand-authored test steps to Xray Test issues.
- Linking Tests to Test Executions.
- Reporting E2E results as Test Executions with screenshot evidence.
"""

from xray_bridge.jira_client.call_result import CallResult, CallStatus
from xray_bridge.jira_client.jira_client import JiraClient
from xray_bridge.jira_client.result_reporter import (
    AggregatedResult,
    Evidence,
    ReportSummary,
    ResultFile,
    ResultReporter,
    SuiteResult,
    TestOutcome,
    aggregate,
    collect_results,
    load_result_files,
)
from xray_bridge.jira_client.step_sync import StepSynchronizer, SyncSummary
from xray_bridge.jira_client.xray_client import (
    XrayAuthenticationError,
    XrayClient,
    XrayClientError,
    escape_graphql,
)

__all__ = [
    "CallResult",
    "CallStatus",
    "JiraClient",
    "AggregatedResult",
    "Evidence",
    "ReportSummary",
    "ResultFile",
    "ResultReporter",
    "SuiteResult",
    "TestOutcome",
    "aggregate",
    "collect_results",
    "load_result_files",
    "StepSynchronizer",
    "SyncSummary",
    "XrayAuthenticationError",
    "XrayClient",
    "XrayClientError",
    "escape_graphql",
]
