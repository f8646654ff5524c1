"""
Configuration Management Module.

Handles loading and validation of:
- Xray / Jira credentials from environment variables.
- Bridge configuration files (JSON/YAML) with JSON Schema validation.
"""

from xray_bridge.config.loader import ConfigLoader, ConfigurationError
from xray_bridge.config.settings import (
    BridgeSettings,
    JiraCredentials,
    XrayCredentials,
    load_settings,
)

__all__ = [
    "ConfigLoader",
    "ConfigurationError",
    "BridgeSettings",
    "JiraCredentials",
    "XrayCredentials",
    "load_settings",
]
