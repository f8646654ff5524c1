"""
Command-line interface.

Usage:
    xray-bridge sync-steps
    xray-bridge report --results-dir ./test-results
    xray-bridge report --mode batched --dry-run payloads.json
    xray-bridge run --config config/bridge.example.yaml

Credentials come from the environment (or a local .env file):
    XRAY_CLIENT_ID, XRAY_CLIENT_SECRET   required for sync-steps and report
    JIRA_BASE_URL, JIRA_EMAIL, JIRA_API_TOKEN   optional, enable attachments
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from loguru import logger

from xray_bridge.config.loader import ConfigurationError
from xray_bridge.config.settings import (
    BridgeSettings,
    JiraCredentials,
    XrayCredentials,
    load_settings,
)
from xray_bridge.jira_client.jira_client import JiraClient
from xray_bridge.jira_client.result_reporter import (
    ResultReporter,
    collect_results,
    load_result_files,
)
from xray_bridge.jira_client.step_sync import StepSynchronizer
from xray_bridge.jira_client.xray_client import XrayClient, XrayClientError
from xray_bridge.runner import E2ERunner

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | <white>{message}</white>"
)


def configure_logging(verbose: bool = False) -> None:
    """Replace loguru's default sink with a stderr sink at INFO (DEBUG if verbose)."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO", format=LOG_FORMAT)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="xray-bridge",
        description="Xray Bridge — test step sync and E2E result reporting",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a bridge configuration file (YAML/JSON)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser(
        "sync-steps",
        help="Push catalog test steps to Xray and link Tests to Test Executions",
    )

    report = subparsers.add_parser(
        "report",
        help="Upload E2E results from a results directory to Xray",
    )
    report.add_argument(
        "--results-dir",
        type=str,
        default=None,
        help="Directory holding the JSON result files (default: from config)",
    )
    report.add_argument(
        "--mode",
        choices=["per_test", "batched"],
        default=None,
        help="One Test Execution per Test, or one for the whole run",
    )
    report.add_argument(
        "--dry-run",
        metavar="PATH",
        type=str,
        default=None,
        help="Write the import payloads to PATH instead of uploading",
    )

    run = subparsers.add_parser(
        "run",
        help="Build the app, run the UI suites with the driver, then report",
    )
    run.add_argument(
        "--skip-build",
        action="store_true",
        help="Do not build the application first",
    )
    run.add_argument(
        "--no-report",
        action="store_true",
        help="Do not upload results to Xray after the run",
    )
    return parser.parse_args(argv)


def _xray_client(settings: BridgeSettings) -> XrayClient:
    return XrayClient(
        base_url=settings.xray.base_url,
        project_key=settings.xray.project_key,
        timeout_sec=settings.xray.timeout_sec,
    )


def cmd_sync_steps(settings: BridgeSettings) -> int:
    """Sync catalog test steps and execution membership to Xray."""
    credentials = XrayCredentials.from_env()

    with _xray_client(settings) as client:
        client.authenticate(credentials.client_id, credentials.client_secret)
        summary = StepSynchronizer(client).sync_all()

    if summary.has_failures:
        logger.warning(f"[Sync] Finished with skipped or failed items: {summary.to_dict()}")
    else:
        logger.info("[Sync] All test steps synced successfully!")
    return EXIT_OK


def cmd_report(settings: BridgeSettings, args: argparse.Namespace) -> int:
    """Upload (or export) the results of a finished run."""
    results = settings.results
    results_dir = args.results_dir or results.directory
    upload_mode = args.mode or results.upload_mode

    if args.dry_run:
        client = _xray_client(settings)
        reporter = ResultReporter(client, upload_mode=upload_mode)
        aggregated = collect_results(
            load_result_files(results_dir, prefix=results.file_prefix),
            evidence_dir=Path(results_dir) / results.evidence_subdir,
        )
        reporter.export_payloads(aggregated, args.dry_run)
        return EXIT_OK

    credentials = XrayCredentials.from_env()
    jira_credentials = JiraCredentials.from_env(settings.jira.base_url)
    if jira_credentials is None:
        logger.warning("[Report] JIRA_EMAIL/JIRA_API_TOKEN not set - attachments will only be in Xray")
    jira = JiraClient(jira_credentials, settings.xray.timeout_sec) if jira_credentials else None

    try:
        with _xray_client(settings) as client:
            reporter = ResultReporter(
                client,
                jira=jira,
                upload_mode=upload_mode,
                credentials=credentials,
            )
            summary = reporter.report(
                results_dir,
                evidence_subdir=results.evidence_subdir,
                prefix=results.file_prefix,
            )
    finally:
        if jira is not None:
            jira.close()

    logger.info(f"[Report] Summary: {summary.to_dict()}")
    return EXIT_OK


def cmd_run(settings: BridgeSettings, args: argparse.Namespace) -> int:
    """Perform a full E2E run."""
    runner = E2ERunner(settings, skip_build=args.skip_build, report=not args.no_report)
    return runner.run()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the xray-bridge CLI."""
    args = parse_args(argv)
    configure_logging(args.verbose)
    load_dotenv()

    try:
        settings = load_settings(args.config)
        if args.command == "sync-steps":
            return cmd_sync_steps(settings)
        if args.command == "report":
            return cmd_report(settings, args)
        return cmd_run(settings, args)
    except (ConfigurationError, FileNotFoundError) as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR
    except XrayClientError as e:
        logger.error(f"Error: {e}")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
