"""
Result Reporter Module.

Turns the on-disk artifacts of one E2E run into Xray Test Executions:
- Reads the WebdriverIO JSON result files (one per worker).
- Maps each spec file to its Xray Test key.
- Aggregates outcomes into a PASSED/FAILED status per Test.
- Attaches the screenshot evidence found on disk.
- Imports the results into Xray, one Test Execution per Test (or one
  batched execution), and optionally attaches evidence in Jira.

Reporting is best-effort: apart from authentication, a failed remote call
is logged with its raw payload and the run moves on to the next item.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from xray_bridge.catalog import get_execution_title, map_suite_to_ticket, spec_base_name
from xray_bridge.config.settings import XrayCredentials
from xray_bridge.jira_client.call_result import CallResult
from xray_bridge.jira_client.jira_client import JiraClient
from xray_bridge.jira_client.xray_client import XrayClient

STATUS_PASSED = "PASSED"
STATUS_FAILED = "FAILED"

UPLOAD_MODES = ("per_test", "batched")


@dataclass
class TestOutcome:
    """A single test (``it`` block) reported by the automation framework."""

    __test__ = False

    name: str
    state: str
    duration_ms: float = 0.0

    @property
    def failed(self) -> bool:
        return self.state == "failed"


@dataclass
class SuiteResult:
    """All outcomes recorded for one spec source file."""

    source_file: str
    outcomes: List[TestOutcome] = field(default_factory=list)

    @property
    def spec_name(self) -> str:
        return spec_base_name(self.source_file)


def _entries(parent: Dict[str, Any], key: str, path: Path) -> List[Dict[str, Any]]:
    """Return the JSON objects listed under ``parent[key]``, skipping anything else."""
    value = parent.get(key) or []
    if not isinstance(value, list):
        logger.warning(f"Ignoring malformed '{key}' in {path.name}: not a list")
        return []

    entries = [entry for entry in value if isinstance(entry, dict)]
    if len(entries) != len(value):
        logger.warning(
            f"Ignoring {len(value) - len(entries)} malformed '{key}' entr(y/ies) in {path.name}"
        )
    return entries


def _duration(value: Any) -> float:
    try:
        return float(value or 0.0)
    except (TypeError, ValueError):
        return 0.0


@dataclass
class ResultFile:
    """
    One JSON result file written by a test worker.

    Attributes:
        path: Location of the file on disk.
        suites: Suites found in the file, grouped by spec source file.
    """

    path: Path
    suites: List[SuiteResult] = field(default_factory=list)

    @classmethod
    def from_dict(cls, path: Path, data: Dict[str, Any]) -> "ResultFile":
        """
        Build a ResultFile from WebdriverIO JSON reporter output.

        The spec source comes from ``specs[0]``; a suite carrying its own
        ``file`` entry is attributed to that file instead. Suite and test
        entries that are not JSON objects are logged and skipped.
        """
        specs = data.get("specs")
        default_source = str(specs[0]) if isinstance(specs, list) and specs else ""

        grouped: Dict[str, List[TestOutcome]] = {}
        for suite in _entries(data, "suites", path):
            source = str(suite.get("file") or default_source)
            outcomes = grouped.setdefault(source, [])
            for test in _entries(suite, "tests", path):
                outcomes.append(TestOutcome(
                    name=str(test.get("name", "")),
                    state=str(test.get("state", "")),
                    duration_ms=_duration(test.get("duration")),
                ))

        if not grouped and default_source:
            grouped[default_source] = []

        return cls(
            path=path,
            suites=[SuiteResult(source, outcomes) for source, outcomes in grouped.items()],
        )

    @classmethod
    def read(cls, path: Path) -> "ResultFile":
        """
        Read and parse a result file.

        Raises:
            OSError: If the file cannot be read.
            ValueError: If the file is not a JSON object.
        """
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        return cls.from_dict(path, data)


@dataclass
class Evidence:
    """A screenshot attached to a test result."""

    filename: str
    content: bytes
    content_type: str = "image/png"

    @classmethod
    def from_file(cls, path: Path, content_type: str = "image/png") -> "Evidence":
        return cls(filename=path.name, content=path.read_bytes(), content_type=content_type)

    def to_base64(self) -> str:
        return base64.b64encode(self.content).decode("ascii")

    def to_xray_dict(self) -> Dict[str, str]:
        """Convert to the Xray JSON ``evidence`` entry format."""
        return {
            "data": self.to_base64(),
            "filename": self.filename,
            "contentType": self.content_type,
        }


@dataclass
class AggregatedResult:
    """
    Result of one Xray Test in this run.

    Attributes:
        test_key: Xray Test issue key (e.g., "TT-14").
        status: "PASSED" or "FAILED".
        comment: Human-readable summary of the run.
        total_tests: Number of framework tests aggregated.
        evidence: Zero or one screenshot.
    """

    test_key: str
    status: str
    comment: str
    total_tests: int = 0
    evidence: List[Evidence] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.status == STATUS_PASSED

    def to_xray_dict(self) -> Dict[str, Any]:
        """Convert to Xray JSON format for a single test."""
        return {
            "testKey": self.test_key,
            "status": self.status,
            "comment": self.comment,
            "evidence": [e.to_xray_dict() for e in self.evidence],
        }


@dataclass
class UploadOutcome:
    """Outcome of one import call (one Test Execution)."""

    test_keys: List[str]
    execution_key: Optional[str] = None
    error: Optional[str] = None
    attachments: int = 0

    @property
    def is_success(self) -> bool:
        return self.execution_key is not None


@dataclass
class ReportSummary:
    """Statistics for a reporting pass."""

    result_files: int = 0
    results: List[AggregatedResult] = field(default_factory=list)
    uploads: List[UploadOutcome] = field(default_factory=list)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed(self) -> int:
        return len(self.results) - self.passed

    @property
    def execution_keys(self) -> List[str]:
        return [u.execution_key for u in self.uploads if u.execution_key]

    @property
    def failed_uploads(self) -> int:
        return sum(1 for u in self.uploads if not u.is_success)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "result_files": self.result_files,
            "tests": len(self.results),
            "passed": self.passed,
            "failed": self.failed,
            "executions": self.execution_keys,
            "failed_uploads": self.failed_uploads,
        }


# ---------------------------------------------------------------------------
# Parsing and aggregation
# ---------------------------------------------------------------------------


def load_result_files(directory: str | Path, prefix: str = "results-") -> List[ResultFile]:
    """
    Load every JSON result file whose name starts with ``prefix``.

    Args:
        directory: Results directory.
        prefix: Result file name prefix.

    Returns:
        Parsed result files in name order; empty when there is nothing
        to report. Unreadable files are logged and skipped.
    """
    results_dir = Path(directory)
    if not results_dir.is_dir():
        logger.warning(f"Results directory not found: {results_dir}")
        return []

    result_files = []
    for path in sorted(results_dir.glob(f"{prefix}*.json")):
        try:
            result_files.append(ResultFile.read(path))
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping unreadable result file {path.name}: {e}")

    logger.info(f"Loaded {len(result_files)} result file(s) from {results_dir}")
    return result_files


def evidence_filename(ticket_key: str, source_file: str) -> str:
    """
    Conventional screenshot name for a test.

    Example:
        ("TT-14", "greeting-workflow.spec.js") -> "TT-14-greeting-workflow.png"
    """
    name = spec_base_name(source_file)
    if ".spec." in name:
        stem = name.split(".spec.", 1)[0]
    else:
        stem = Path(name).stem
    return f"{ticket_key}-{stem}.png"


def aggregate(
    suite: SuiteResult,
    ticket_key: str,
    evidence_dir: Optional[str | Path] = None,
) -> AggregatedResult:
    """
    Aggregate a suite into a single Xray Test result.

    The status is FAILED if any outcome failed, PASSED otherwise (including
    an empty suite). Evidence is attached when the conventional screenshot
    exists at call time.

    Args:
        suite: Outcomes of one spec file.
        ticket_key: Xray Test key the spec maps to.
        evidence_dir: Directory holding screenshots, if any.

    Returns:
        AggregatedResult for the Test.
    """
    status = STATUS_FAILED if any(o.failed for o in suite.outcomes) else STATUS_PASSED
    total = len(suite.outcomes)

    evidence: List[Evidence] = []
    if evidence_dir is not None:
        evidence_path = Path(evidence_dir) / evidence_filename(ticket_key, suite.source_file)
        if evidence_path.is_file():
            try:
                evidence.append(Evidence.from_file(evidence_path))
                logger.info(f"  Found evidence: {evidence_path.name}")
            except OSError as e:
                logger.warning(f"  Could not read evidence {evidence_path.name}: {e}")

    return AggregatedResult(
        test_key=ticket_key,
        status=status,
        comment=f"Automated test run - {total} test(s) - {status}",
        total_tests=total,
        evidence=evidence,
    )


def collect_results(
    result_files: List[ResultFile],
    evidence_dir: Optional[str | Path] = None,
) -> List[AggregatedResult]:
    """
    Map and aggregate every suite of a run.

    Suites without a ticket mapping are skipped with a warning. Suites
    mapping to the same ticket (e.g. from several workers) are merged.

    Returns:
        One AggregatedResult per mapped ticket, in first-seen order.
    """
    merged: Dict[str, SuiteResult] = {}

    for result_file in result_files:
        for suite in result_file.suites:
            ticket_key = map_suite_to_ticket(suite.source_file)
            if ticket_key is None:
                logger.warning(f"  No mapping for spec: {suite.spec_name or '(unknown)'}")
                continue

            if ticket_key in merged:
                merged[ticket_key].outcomes.extend(suite.outcomes)
            else:
                merged[ticket_key] = SuiteResult(suite.source_file, list(suite.outcomes))

    return [aggregate(suite, key, evidence_dir) for key, suite in merged.items()]


# ---------------------------------------------------------------------------
# Reporter
# ---------------------------------------------------------------------------


class ResultReporter:
    """
    Uploads aggregated E2E results to Xray.

    Supports two upload modes:
    - ``per_test``: one new Test Execution per Test.
    - ``batched``: a single Test Execution holding every Test.

    Usage::

        reporter = ResultReporter(xray_client, project_key="TT",
                                  credentials=XrayCredentials.from_env())
        summary = reporter.report("./test-results")
    """

    def __init__(
        self,
        xray: XrayClient,
        project_key: str = "",
        jira: Optional[JiraClient] = None,
        upload_mode: str = "per_test",
        credentials: Optional[XrayCredentials] = None,
    ) -> None:
        """
        Initialize the result reporter.

        Args:
            xray: Xray client used for authentication and import.
            project_key: Jira project key for new Test Executions.
            jira: Jira client for evidence attachments (None disables them).
            upload_mode: "per_test" or "batched".
            credentials: Credentials used if the client is not yet authenticated.
        """
        if upload_mode not in UPLOAD_MODES:
            raise ValueError(f"Invalid upload mode '{upload_mode}'. Valid: {UPLOAD_MODES}")

        self._xray = xray
        self._jira = jira
        self._credentials = credentials
        self.project_key = project_key or xray.project_key
        self.upload_mode = upload_mode
        logger.info(
            f"ResultReporter initialized — project={self.project_key}, "
            f"mode={upload_mode}, attachments={'on' if jira else 'off'}"
        )

    def build_payloads(
        self,
        results: List[AggregatedResult],
        run_date: Optional[str] = None,
    ) -> List[Tuple[List[AggregatedResult], Dict[str, Any]]]:
        """
        Build the Xray import documents for a run.

        Every result appears in exactly one payload.

        Args:
            results: Aggregated results to upload.
            run_date: Date used in summaries (defaults to today, UTC).

        Returns:
            List of (results in payload, payload) pairs.
        """
        if not results:
            return []

        run_date = run_date or datetime.now(timezone.utc).date().isoformat()

        if self.upload_mode == "batched":
            keys = ", ".join(r.test_key for r in results)
            payload = self._payload(
                summary=f"Automated E2E Test Run - {run_date}",
                description=f"Automated E2E test execution for {keys}",
                results=results,
            )
            return [(list(results), payload)]

        return [
            (
                [result],
                self._payload(
                    summary=f"{get_execution_title(result.test_key)} - {run_date}",
                    description=f"Automated E2E test execution for {result.test_key}",
                    results=[result],
                ),
            )
            for result in results
        ]

    def _payload(
        self,
        summary: str,
        description: str,
        results: List[AggregatedResult],
    ) -> Dict[str, Any]:
        return {
            "info": {
                "summary": summary,
                "description": description,
                "project": self.project_key,
            },
            "tests": [r.to_xray_dict() for r in results],
        }

    def upload(self, results: List[AggregatedResult]) -> List[UploadOutcome]:
        """
        Import results into Xray, one call per payload, in order.

        Failed imports are logged with the raw error and do not stop the
        remaining payloads. Evidence is attached in Jira after a successful
        import when Jira credentials are configured.

        Returns:
            One UploadOutcome per payload.
        """
        outcomes: List[UploadOutcome] = []
        payloads = self.build_payloads(results)
        logger.info(f"Creating {len(payloads)} Test Execution(s) in Xray...")

        for payload_results, payload in payloads:
            keys = [r.test_key for r in payload_results]
            outcome = UploadOutcome(test_keys=keys)

            result = self._xray.import_execution(payload)
            if not result.is_success:
                outcome.error = result.error
                for r in payload_results:
                    logger.error(f"  FAIL {r.test_key}: Import failed - {result.error}")
                outcomes.append(outcome)
                continue

            outcome.execution_key = result.data
            for r in payload_results:
                marker = "OK" if r.passed else "FAIL"
                logger.info(f"  {marker} {r.test_key}: {r.status} -> {outcome.execution_key}")

            if self._jira is not None:
                for r in payload_results:
                    for evidence in r.evidence:
                        if self.attach_evidence(outcome.execution_key, evidence).is_success:
                            outcome.attachments += 1

            outcomes.append(outcome)

        return outcomes

    def attach_evidence(self, execution_key: str, evidence: Evidence) -> CallResult:
        """
        Attach a screenshot to a Test Execution issue in Jira.

        Only attempted when a Jira client is configured; failures are
        logged and never raised.
        """
        if self._jira is None:
            return CallResult.not_found("Jira credentials not configured")

        result = self._jira.attach_file(
            execution_key,
            evidence.filename,
            evidence.content,
            evidence.content_type,
        )
        if result.is_success:
            logger.info(f"    Attached: {evidence.filename}")
        else:
            logger.warning(f"    Attachment failed: {result.error}")
        return result

    def export_payloads(self, results: List[AggregatedResult], output_path: str | Path) -> Path:
        """
        Write the import payloads to a JSON file instead of uploading.

        Args:
            results: Aggregated results.
            output_path: Path to write the JSON file.

        Returns:
            Path to the written file.
        """
        path = Path(output_path)
        payloads = [payload for _, payload in self.build_payloads(results)]
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payloads, indent=2), encoding="utf-8")
        logger.info(f"Xray import payloads exported to: {path}")
        return path

    def _ensure_authenticated(self) -> None:
        if self._xray.is_authenticated or self._credentials is None:
            return
        self._xray.authenticate(self._credentials.client_id, self._credentials.client_secret)

    def report(
        self,
        results_dir: str | Path,
        evidence_subdir: str = "evidence",
        prefix: str = "results-",
    ) -> ReportSummary:
        """
        Run a full reporting pass over a results directory.

        Authenticates only when there is something to upload.

        Raises:
            XrayAuthenticationError: If authentication fails.
        """
        summary = ReportSummary()

        result_files = load_result_files(results_dir, prefix=prefix)
        summary.result_files = len(result_files)
        if not result_files:
            logger.warning("No results files found")
            return summary

        summary.results = collect_results(result_files, Path(results_dir) / evidence_subdir)
        if not summary.results:
            logger.warning("No test results mapped to Xray test cases")
            return summary

        self._ensure_authenticated()
        summary.uploads = self.upload(summary.results)

        logger.info(
            f"Report finished: {len(summary.results)} test(s), {summary.passed} passed, "
            f"{summary.failed} failed, executions={summary.execution_keys}"
        )
        return summary
