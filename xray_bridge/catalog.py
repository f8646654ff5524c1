"""
Test Catalog — hand-authored test cases and ticket mappings for project TT.

Defines the static tables shared by step sync and result reporting:
- TEST_CASES: Xray Test key -> ordered manual test steps.
- EXECUTION_MAPPING: Test Execution key -> Test keys it should contain.
- SPEC_TO_TEST_KEY: E2E spec file name -> Xray Test key.
- EXECUTION_TITLES: Test key -> title used for new Test Execution summaries.

All tables are read-only mappings; step order inside a test case is significant.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


@dataclass(frozen=True)
class Step:
    """A single manual test step as stored in Xray."""
    action: str
    result: str
    data: str = ""


@dataclass(frozen=True)
class TestCaseFixture:
    """A test case and its ordered steps."""
    key: str
    name: str
    steps: Tuple[Step, ...]

    __test__ = False  # not a pytest class


TEST_CASES: Mapping[str, TestCaseFixture] = MappingProxyType({
    "TT-13": TestCaseFixture(
        key="TT-13",
        name="Verify welcome screen displays with branding",
        steps=(
            Step("Launch the application", "Application window opens (800x600)"),
            Step("Verify header text is displayed",
                 '"Welcome to Tauri + React" text is visible'),
            Step("Verify Tauri logo is displayed", "Tauri SVG logo is visible"),
            Step("Verify React logo is displayed", "React SVG logo is visible"),
            Step("Verify layout is centered",
                 "Content is horizontally centered in window"),
        ),
    ),
    "TT-14": TestCaseFixture(
        key="TT-14",
        name="Verify complete greeting workflow",
        steps=(
            Step("Locate the name input field", "Text input field is visible and enabled"),
            Step("Enter a name in the input field", 'Input field displays "TestUser"',
                 data="TestUser"),
            Step("Click the Greet button", "Button click is registered"),
            Step("Wait for greeting response", "Response appears below the form"),
            Step("Verify greeting message content",
                 "Message displays \"Hello, TestUser! You've been greeted from Rust!\""),
            Step("Capture screenshot evidence",
                 "Screenshot saved showing successful greeting"),
        ),
    ),
    "TT-15": TestCaseFixture(
        key="TT-15",
        name="Verify external documentation links",
        steps=(
            Step("Locate the Tauri logo link", "Tauri logo is visible and clickable"),
            Step("Verify Tauri logo has correct href", "Link points to https://tauri.app"),
            Step("Locate the React logo link", "React logo is visible and clickable"),
            Step("Verify React logo has correct href", "Link points to https://react.dev"),
            Step("Click Tauri logo link", "External browser opens tauri.app"),
            Step("Verify application remains open", "Tauri application window still active"),
        ),
    ),
    "TT-16": TestCaseFixture(
        key="TT-16",
        name="Verify input validation handles edge cases",
        steps=(
            Step("Submit form with empty input", "Application handles gracefully, no crash",
                 data='"" (empty)'),
            Step("Clear and enter special characters",
                 "Characters displayed literally, no script execution",
                 data="<script>alert('xss')</script>"),
            Step("Clear and enter very long input", "Application handles without crash",
                 data="1000 character string"),
            Step("Clear and enter unicode characters",
                 "Characters processed correctly in greeting",
                 data="José María 日本語"),
            Step("Verify greeting with unicode",
                 "Greeting displays unicode characters properly"),
        ),
    ),
})

# Test Execution key -> Test keys it should contain
EXECUTION_MAPPING: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "TT-17": ("TT-13",),  # Welcome screen
    "TT-18": ("TT-14",),  # Greeting workflow
    "TT-19": ("TT-15",),  # External links
    "TT-20": ("TT-16",),  # Input validation
})

SPEC_TO_TEST_KEY: Mapping[str, str] = MappingProxyType({
    "welcome-screen.spec.js": "TT-13",
    "greeting-workflow.spec.js": "TT-14",
    "external-links.spec.js": "TT-15",
    "input-validation.spec.js": "TT-16",
})

EXECUTION_TITLES: Mapping[str, str] = MappingProxyType({
    "TT-13": "Welcome Screen Verification",
    "TT-14": "Greeting Workflow Verification",
    "TT-15": "External Links Verification",
    "TT-16": "Input Validation Verification",
})


def spec_base_name(source_file: str) -> str:
    """
    Return the bare file name of a spec reference.

    Accepts plain names, relative or absolute paths (POSIX or Windows)
    and ``file://`` URLs as written by the WebdriverIO JSON reporter.

    Examples:
        file:///D:/a/app/tests/e2e/welcome-screen.spec.js -> welcome-screen.spec.js
        tests\\e2e\\external-links.spec.js -> external-links.spec.js
    """
    reference = source_file
    if reference.startswith("file://"):
        reference = reference[len("file://"):]
    return PurePosixPath(reference.replace("\\", "/")).name


def map_suite_to_ticket(source_file_name: str) -> Optional[str]:
    """
    Map an E2E spec file to its Xray Test key.

    Args:
        source_file_name: Spec file name, path or file:// URL.

    Returns:
        The Test key, or None if the spec is not in SPEC_TO_TEST_KEY.
    """
    return SPEC_TO_TEST_KEY.get(spec_base_name(source_file_name))


def get_execution_title(test_key: str) -> str:
    """Get the Test Execution title for a test key, falling back to the key."""
    return EXECUTION_TITLES.get(test_key, test_key)
