"""
Automation Driver — manages the tauri-driver process.

tauri-driver is the WebDriver server that the UI suites talk to. It is
started before the suites run and must be stopped on every exit path:
normal completion, an exception or a termination signal.

Command:
    tauri-driver            (CI: on PATH)
    ~/.cargo/bin/tauri-driver   (local cargo install)
"""

from __future__ import annotations

import socket
import subprocess
import time
from dataclasses import dataclass, field
from typing import List, Optional

from loguru import logger


class DriverError(Exception):
    """Raised when the automation driver cannot be started."""


@dataclass
class DriverConfig:
    """Automation driver parameters."""
    executable: str = "tauri-driver"
    args: List[str] = field(default_factory=list)
    host: str = "127.0.0.1"
    port: int = 4444
    startup_timeout_sec: float = 10.0
    stop_timeout_sec: float = 5.0
    poll_interval_sec: float = 0.2


class DriverProcess:
    """
    Owns the automation driver subprocess.

    Use as a context manager so the process is released on every exit
    path::

        with DriverProcess(DriverConfig(port=4444)):
            subprocess.run(["npx", "wdio", "run", "wdio.conf.js"])

    ``stop()`` is idempotent: stopping a driver that was never started
    or is already stopped does nothing.
    """

    def __init__(self, config: DriverConfig) -> None:
        self.config = config
        self._process: Optional[subprocess.Popen] = None
        self._stopping = False
        logger.info(
            f"DriverProcess initialized — executable={config.executable}, "
            f"endpoint={config.host}:{config.port}"
        )

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    @property
    def exited_unexpectedly(self) -> bool:
        """True if the driver died on its own while we still owned it."""
        return (
            self._process is not None
            and not self._stopping
            and self._process.poll() is not None
        )

    def start(self) -> None:
        """
        Spawn the driver and wait until it accepts connections.

        Raises:
            DriverError: If the process cannot be spawned, exits early or
                does not open its port within ``startup_timeout_sec``.
        """
        if self.is_running:
            logger.warning("DriverProcess: driver already running")
            return

        cmd = [self.config.executable, *self.config.args]
        logger.info(f"DriverProcess: Starting {' '.join(cmd)}")
        self._stopping = False
        try:
            self._process = subprocess.Popen(cmd)
        except OSError as e:
            self._process = None
            raise DriverError(f"Failed to start {self.config.executable}: {e}") from e

        try:
            ready = self._wait_until_ready()
        except BaseException:
            # SIGTERM (as SystemExit) or Ctrl-C while waiting; __exit__ will not run
            self.stop()
            raise

        if not ready:
            exit_code = self._process.poll()
            self.stop()
            if exit_code is not None:
                raise DriverError(f"Driver exited during startup with code {exit_code}")
            raise DriverError(
                f"Driver did not accept connections on {self.config.host}:{self.config.port} "
                f"within {self.config.startup_timeout_sec}s"
            )

        logger.info(f"DriverProcess: ready (pid={self._process.pid})")

    def stop(self) -> None:
        """Stop the driver (terminate, then kill after ``stop_timeout_sec``)."""
        process = self._process
        if process is None:
            return

        self._stopping = True
        try:
            if process.poll() is None:
                process.terminate()
                try:
                    process.wait(timeout=self.config.stop_timeout_sec)
                    logger.info("DriverProcess: driver stopped")
                except subprocess.TimeoutExpired:
                    process.kill()
                    process.wait()
                    logger.warning("DriverProcess: driver force-killed")
            else:
                logger.debug(f"DriverProcess: driver already exited (code={process.returncode})")
        finally:
            self._process = None

    def _wait_until_ready(self) -> bool:
        """Poll the driver port until it accepts a TCP connection."""
        deadline = time.monotonic() + self.config.startup_timeout_sec
        while time.monotonic() < deadline:
            if self._process is None or self._process.poll() is not None:
                logger.error("DriverProcess: driver terminated unexpectedly")
                return False
            try:
                with socket.create_connection(
                    (self.config.host, self.config.port),
                    timeout=self.config.poll_interval_sec,
                ):
                    return True
            except OSError:
                time.sleep(self.config.poll_interval_sec)
        return False

    def __enter__(self) -> "DriverProcess":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
