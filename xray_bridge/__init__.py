"""
Xray Bridge - Core Source Package.

This package contains the core logic for:
- Catalog: Hand-authored test steps and ticket mappings.
- Jira Client: Xray Cloud API integration for step sync and result upload.
- Configuration: Credentials and bridge settings management.
- Driver: WebDriver automation driver lifecycle and E2E run orchestration.
"""

__version__ = "1.0.0"
