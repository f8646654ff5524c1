"""
Test helpers — builders for mocked HTTP responses and WebdriverIO result documents.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-screenshot"


def make_response(
    status_code: int = 200,
    json_body: Any = None,
    text: Optional[str] = None,
) -> MagicMock:
    """Build a mock requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    if text is None:
        text = json.dumps(json_body) if json_body is not None else ""
    response.text = text
    if json_body is None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = json_body
    return response


def graphql_response(data: Any = None, errors: Optional[List[Dict[str, Any]]] = None) -> MagicMock:
    """Build a mock GraphQL HTTP 200 response."""
    body: Dict[str, Any] = {}
    if data is not None:
        body["data"] = data
    if errors is not None:
        body["errors"] = errors
    return make_response(200, body)


def wdio_result(spec_file: str, states: List[str], suite_name: str = "suite") -> Dict[str, Any]:
    """Build a WebdriverIO JSON reporter document for one spec."""
    return {
        "start": "2026-10-19T08:00:00.000Z",
        "end": "2026-10-19T08:00:05.000Z",
        "capabilities": {},
        "specs": [f"file:///D:/a/app/tests/e2e/{spec_file}"],
        "suites": [
            {
                "name": suite_name,
                "duration": 1000,
                "tests": [
                    {"name": f"test {i}", "state": state, "duration": 100 + i}
                    for i, state in enumerate(states)
                ],
            }
        ],
    }
