"""
E2E Runner — orchestrates one automated UI test run.

Sequence:
1. Build the application binary (skipped in CI, where it is prebuilt).
2. Create the results and evidence directories.
3. Start the automation driver and wait until it is ready.
4. Run the UI suites (WebdriverIO) against it.
5. Stop the driver.
6. Upload the results to Xray (best-effort).

Steps 3 to 5 run inside the driver's context manager, and SIGTERM is
turned into SystemExit for the duration of the run, so the driver is
stopped on normal completion, on errors and on external termination.
"""

from __future__ import annotations

import signal
import subprocess
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from loguru import logger

from xray_bridge.config.loader import ConfigurationError
from xray_bridge.config.settings import BridgeSettings, JiraCredentials, XrayCredentials, is_ci
from xray_bridge.driver.tauri_driver import DriverConfig, DriverError, DriverProcess
from xray_bridge.jira_client.jira_client import JiraClient
from xray_bridge.jira_client.result_reporter import ReportSummary, ResultReporter
from xray_bridge.jira_client.xray_client import XrayAuthenticationError, XrayClient


class RunnerError(Exception):
    """Raised when a run step (e.g. the app build) fails."""


@contextmanager
def terminate_on_sigterm() -> Iterator[None]:
    """Raise SystemExit on SIGTERM so pending cleanup runs."""

    def _handler(signum, frame):
        logger.warning(f"[Runner] Received signal {signum}, shutting down")
        raise SystemExit(128 + signum)

    previous = signal.signal(signal.SIGTERM, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


class E2ERunner:
    """
    Runs the UI suites against the app and reports the results.

    Usage::

        runner = E2ERunner(load_settings("config/bridge.yaml"))
        exit_code = runner.run()
    """

    def __init__(
        self,
        settings: BridgeSettings,
        skip_build: bool = False,
        report: bool = True,
    ) -> None:
        self.settings = settings
        self.skip_build = skip_build or settings.app.skip_build or is_ci()
        self.report_enabled = report

    def build_app(self) -> None:
        """
        Build the application binary.

        Raises:
            RunnerError: If the build command fails.
        """
        if self.skip_build:
            logger.info("[Runner] Skipping application build")
            return

        cmd = self.settings.app.build_command
        logger.info(f"[Runner] Building application: {' '.join(cmd)}")
        try:
            completed = subprocess.run(cmd)
        except OSError as e:
            raise RunnerError(f"Failed to run build command: {e}") from e
        if completed.returncode != 0:
            raise RunnerError(f"Application build failed with code {completed.returncode}")

    def prepare_directories(self) -> None:
        """Ensure the results and evidence directories exist."""
        results = self.settings.results
        Path(results.directory).mkdir(parents=True, exist_ok=True)
        results.evidence_dir.mkdir(parents=True, exist_ok=True)

    def _driver_config(self) -> DriverConfig:
        driver = self.settings.driver
        return DriverConfig(
            executable=driver.resolve_executable(),
            args=list(driver.args),
            host=driver.host,
            port=driver.port,
            startup_timeout_sec=driver.startup_timeout_sec,
            stop_timeout_sec=driver.stop_timeout_sec,
        )

    def run_suites(self) -> int:
        """
        Run the UI suites with the driver started.

        Returns:
            Exit code of the test command (1 if the driver died mid-run).
        """
        cmd = self.settings.app.test_command
        with DriverProcess(self._driver_config()) as driver:
            logger.info(f"[Runner] Running UI suites: {' '.join(cmd)}")
            try:
                completed = subprocess.run(cmd)
            except OSError as e:
                raise RunnerError(f"Failed to run test command: {e}") from e

            if driver.exited_unexpectedly:
                logger.error("[Runner] Driver exited unexpectedly during the run")
                return completed.returncode or 1

        logger.info(f"[Runner] UI suites finished with code {completed.returncode}")
        return completed.returncode

    def report(self) -> Optional[ReportSummary]:
        """
        Upload the run's results to Xray.

        Skipped (with a warning) when Xray credentials are not set.
        Authentication failures are logged and return None.
        """
        try:
            credentials = XrayCredentials.from_env()
        except ConfigurationError as e:
            logger.warning(f"[Runner] Xray credentials not set, skipping upload: {e}")
            return None

        xray_settings = self.settings.xray
        jira_credentials = JiraCredentials.from_env(self.settings.jira.base_url)
        if jira_credentials is None:
            logger.warning(
                "[Runner] JIRA_EMAIL/JIRA_API_TOKEN not set - attachments will only be in Xray"
            )
        jira = JiraClient(jira_credentials, xray_settings.timeout_sec) if jira_credentials else None

        results = self.settings.results
        with XrayClient(
            base_url=xray_settings.base_url,
            project_key=xray_settings.project_key,
            timeout_sec=xray_settings.timeout_sec,
        ) as client:
            reporter = ResultReporter(
                client,
                jira=jira,
                upload_mode=results.upload_mode,
                credentials=credentials,
            )
            try:
                return reporter.report(
                    results.directory,
                    evidence_subdir=results.evidence_subdir,
                    prefix=results.file_prefix,
                )
            except XrayAuthenticationError as e:
                logger.error(f"[Runner] Xray upload failed: {e}")
                return None
            finally:
                if jira is not None:
                    jira.close()

    def run(self) -> int:
        """
        Perform the full run.

        Returns:
            Process exit code: the UI suite's code, or 1 if the run could
            not be performed.
        """
        with terminate_on_sigterm():
            try:
                self.build_app()
                self.prepare_directories()
                exit_code = self.run_suites()
            except (RunnerError, DriverError) as e:
                logger.error(f"[Runner] {e}")
                return 1

        if self.report_enabled:
            try:
                self.report()
            except Exception as e:
                logger.error(f"[Runner] Reporting failed, results were not uploaded: {e}")

        logger.info(f"[Runner] Finished with exit code: {exit_code}")
        return exit_code
