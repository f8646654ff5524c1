"""
Bridge Settings Module.

Typed settings for the Xray bridge:
- Credentials read from environment variables (XRAY_*, JIRA_*).
- Bridge configuration (URLs, result locations, driver, app commands)
  read from an optional YAML/JSON file, with defaults for every field.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from xray_bridge.config.loader import ConfigLoader, ConfigurationError

DEFAULT_XRAY_URL = "https://xray.cloud.getxray.app"
DEFAULT_JIRA_URL = "https://revvity-dpx.atlassian.net"


def is_ci() -> bool:
    """Check whether we are running inside a CI job."""
    return os.environ.get("CI", "").lower() == "true"


@dataclass
class XrayCredentials:
    """Xray Cloud API client credentials."""

    client_id: str
    client_secret: str

    @classmethod
    def from_env(cls) -> "XrayCredentials":
        """
        Read XRAY_CLIENT_ID / XRAY_CLIENT_SECRET from the environment.

        Raises:
            ConfigurationError: If either variable is missing or empty.
        """
        client_id = os.environ.get("XRAY_CLIENT_ID", "")
        client_secret = os.environ.get("XRAY_CLIENT_SECRET", "")

        missing = [
            name for name, value in (
                ("XRAY_CLIENT_ID", client_id),
                ("XRAY_CLIENT_SECRET", client_secret),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Missing {' and '.join(missing)} environment variable(s). "
                f"Set XRAY_CLIENT_ID and XRAY_CLIENT_SECRET to talk to Xray."
            )
        return cls(client_id=client_id, client_secret=client_secret)


@dataclass
class JiraCredentials:
    """Jira Cloud credentials used for attachment upload."""

    base_url: str
    email: str
    api_token: str

    @classmethod
    def from_env(cls, default_base_url: str = DEFAULT_JIRA_URL) -> Optional["JiraCredentials"]:
        """
        Read JIRA_BASE_URL / JIRA_EMAIL / JIRA_API_TOKEN from the environment.

        Returns:
            JiraCredentials if both email and token are set, None otherwise.
        """
        base_url = os.environ.get("JIRA_BASE_URL") or default_base_url
        email = os.environ.get("JIRA_EMAIL", "")
        api_token = os.environ.get("JIRA_API_TOKEN", "")

        if email and api_token:
            return cls(base_url=base_url.rstrip("/"), email=email, api_token=api_token)

        if email or api_token:
            logger.warning(
                "Only one of JIRA_EMAIL/JIRA_API_TOKEN is set — both are required "
                "for attachment upload"
            )
        return None


@dataclass
class XraySettings:
    base_url: str = DEFAULT_XRAY_URL
    project_key: str = "TT"
    timeout_sec: int = 30


@dataclass
class JiraSettings:
    base_url: str = DEFAULT_JIRA_URL


@dataclass
class ResultsSettings:
    directory: str = "./test-results"
    file_prefix: str = "results-"
    evidence_subdir: str = "evidence"
    upload_mode: str = "per_test"  # "per_test" or "batched"

    @property
    def evidence_dir(self) -> Path:
        return Path(self.directory) / self.evidence_subdir


@dataclass
class DriverSettings:
    executable: str = ""
    args: List[str] = field(default_factory=list)
    host: str = "127.0.0.1"
    port: int = 4444
    startup_timeout_sec: float = 10.0
    stop_timeout_sec: float = 5.0

    def resolve_executable(self) -> str:
        """
        Resolve the tauri-driver executable.

        In CI the driver is expected on PATH; locally it is installed
        by cargo into ~/.cargo/bin.
        """
        if self.executable:
            return self.executable
        if is_ci():
            return "tauri-driver"
        cargo_bin = Path.home() / ".cargo" / "bin" / "tauri-driver"
        return str(cargo_bin) if cargo_bin.exists() else "tauri-driver"


@dataclass
class AppSettings:
    build_command: List[str] = field(
        default_factory=lambda: ["npm", "run", "tauri", "build", "--", "--debug", "--no-bundle"]
    )
    test_command: List[str] = field(
        default_factory=lambda: ["npx", "wdio", "run", "wdio.conf.js"]
    )
    skip_build: bool = False


@dataclass
class BridgeSettings:
    """Complete bridge configuration."""

    xray: XraySettings = field(default_factory=XraySettings)
    jira: JiraSettings = field(default_factory=JiraSettings)
    results: ResultsSettings = field(default_factory=ResultsSettings)
    driver: DriverSettings = field(default_factory=DriverSettings)
    app: AppSettings = field(default_factory=AppSettings)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BridgeSettings":
        """Build settings from a (validated) configuration dictionary."""
        return cls(
            xray=XraySettings(**data.get("xray", {})),
            jira=JiraSettings(**data.get("jira", {})),
            results=ResultsSettings(**data.get("results", {})),
            driver=DriverSettings(**data.get("driver", {})),
            app=AppSettings(**data.get("app", {})),
        )


def load_settings(config_path: Optional[str | Path] = None) -> BridgeSettings:
    """
    Load bridge settings.

    Args:
        config_path: Optional YAML/JSON config file. If None, defaults are used.

    Returns:
        BridgeSettings instance.

    Raises:
        ConfigurationError: If the file is invalid.
        FileNotFoundError: If an explicit config file does not exist.
    """
    if config_path is None:
        logger.debug("No config file given, using default bridge settings")
        return BridgeSettings()

    data = ConfigLoader().load(config_path)
    settings = BridgeSettings.from_dict(data)
    logger.info(
        f"Bridge settings loaded — project={settings.xray.project_key}, "
        f"results={settings.results.directory}, mode={settings.results.upload_mode}"
    )
    return settings
