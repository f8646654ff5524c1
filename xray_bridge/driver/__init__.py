"""
Automation Driver Module.

Lifecycle of the WebDriver automation driver and orchestration of E2E runs.
"""

from xray_bridge.driver.tauri_driver import DriverConfig, DriverError, DriverProcess

__all__ = ["DriverConfig", "DriverError", "DriverProcess"]
