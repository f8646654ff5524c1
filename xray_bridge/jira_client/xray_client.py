"""
Xray Cloud API Client.

Provides a dedicated client for the Xray Cloud API (v2):
- Authentication (client credentials -> bearer token).
- GraphQL queries/mutations for test steps and Test Execution membership.
- Importing execution results (Xray JSON format).

Apart from authentication, every call returns a CallResult so callers can
keep going after an individual failure.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests
from loguru import logger

from xray_bridge.catalog import Step
from xray_bridge.jira_client.call_result import CallResult


class XrayClientError(Exception):
    """Raised when an Xray API request cannot be performed."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class XrayAuthenticationError(XrayClientError):
    """Raised when Xray rejects the client credentials."""


def escape_graphql(value: str) -> str:
    """
    Escape a string for embedding inside a double-quoted GraphQL literal.

    Only backslash, double quote and newline are escaped.
    """
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


@dataclass
class XrayConfig:
    """Configuration for the Xray API client."""

    base_url: str = "https://xray.cloud.getxray.app"
    project_key: str = ""
    timeout_sec: int = 30
    verify_ssl: bool = True


class XrayClient:
    """
    Client for the Xray Cloud REST and GraphQL API.

    Usage::

        client = XrayClient(project_key="TT")
        client.authenticate(client_id, client_secret)

        result = client.resolve_issue_id("TT-13")
        if result.is_success:
            client.add_test_step(result.data, step)
    """

    ENDPOINTS = {
        "authenticate": "/api/v2/authenticate",
        "graphql": "/api/v2/graphql",
        "import_execution": "/api/v2/import/execution",
    }

    # Issue kind -> GraphQL query returning {results {issueId}}
    LOOKUP_QUERIES = {
        "test": "getTests",
        "test_execution": "getTestExecutions",
    }

    def __init__(
        self,
        base_url: str = "https://xray.cloud.getxray.app",
        project_key: str = "",
        timeout_sec: int = 30,
        verify_ssl: bool = True,
        config: Optional[XrayConfig] = None,
    ) -> None:
        """
        Initialize the Xray client.

        Args:
            base_url: Xray Cloud base URL.
            project_key: Jira project key (e.g., "TT").
            timeout_sec: Request timeout in seconds.
            verify_ssl: Whether to verify SSL certificates.
            config: Optional XrayConfig dataclass (overrides individual params).
        """
        if config:
            self._config = config
            self._config.base_url = config.base_url.rstrip("/")
        else:
            self._config = XrayConfig(
                base_url=base_url.rstrip("/"),
                project_key=project_key,
                timeout_sec=timeout_sec,
                verify_ssl=verify_ssl,
            )

        self._session: Optional[requests.Session] = None
        self._token: Optional[str] = None
        logger.info(
            f"XrayClient initialized — project={self._config.project_key}, "
            f"url={self._config.base_url}"
        )

    @property
    def project_key(self) -> str:
        return self._config.project_key

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    def _get_session(self) -> requests.Session:
        """Get or create the HTTP session."""
        if self._session is None:
            self._session = requests.Session()
            self._session.verify = self._config.verify_ssl
            self._session.headers.update({
                "Content-Type": "application/json",
                "Accept": "application/json",
            })
        return self._session

    def _post(self, endpoint: str, **kwargs: Any) -> requests.Response:
        """
        POST to an API endpoint.

        Raises:
            XrayClientError: If no response could be obtained.
        """
        session = self._get_session()
        url = f"{self._config.base_url}{endpoint}"
        logger.debug(f"Xray API POST {url}")

        try:
            return session.post(url, timeout=self._config.timeout_sec, **kwargs)
        except requests.exceptions.Timeout as e:
            logger.error(f"Xray API timeout: {e}")
            raise XrayClientError(
                f"Xray API request timed out after {self._config.timeout_sec}s"
            ) from e
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Xray API connection error: {e}")
            raise XrayClientError(f"Cannot connect to Xray: {e}") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Xray API request error: {e}")
            raise XrayClientError(f"Xray API request failed: {e}") from e

    def _call(self, endpoint: str, **kwargs: Any) -> CallResult:
        """POST and wrap the JSON response (or the failure) in a CallResult."""
        try:
            response = self._post(endpoint, **kwargs)
        except XrayClientError as e:
            return CallResult.failure(str(e))

        if not response.ok:
            return CallResult.failure(response.text, status_code=response.status_code)

        try:
            body = response.json()
        except ValueError:
            return CallResult.failure(
                f"Invalid JSON response: {response.text}", status_code=response.status_code
            )
        return CallResult.ok(body, status_code=response.status_code)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def authenticate(self, client_id: str, client_secret: str) -> str:
        """
        Exchange client credentials for a bearer token.

        The token is installed on the session for all later calls.

        Args:
            client_id: Xray API client ID.
            client_secret: Xray API client secret.

        Returns:
            The bearer token.

        Raises:
            XrayAuthenticationError: If the credentials are rejected or Xray
                cannot be reached.
        """
        logger.info("Authenticating with Xray Cloud...")
        try:
            response = self._post(
                self.ENDPOINTS["authenticate"],
                json={"client_id": client_id, "client_secret": client_secret},
            )
        except XrayClientError as e:
            raise XrayAuthenticationError(f"Authentication failed: {e}") from e

        if not response.ok:
            raise XrayAuthenticationError(
                f"Authentication failed: {response.text}",
                status_code=response.status_code,
            )

        # The token comes back as a JSON string literal
        token = response.text.replace('"', "").strip()
        if not token:
            raise XrayAuthenticationError("Authentication failed: empty token in response")

        self._token = token
        self._get_session().headers["Authorization"] = f"Bearer {token}"
        logger.info("Authenticated with Xray")
        return token

    # ------------------------------------------------------------------
    # GraphQL
    # ------------------------------------------------------------------

    def graphql(self, query: str) -> CallResult:
        """
        Run a GraphQL query or mutation.

        Returns:
            CallResult with the ``data`` object on success, or the raw
            error body / JSON-encoded ``errors`` array on failure.
        """
        result = self._call(self.ENDPOINTS["graphql"], json={"query": query})
        if not result.is_success:
            return result

        body = result.data if isinstance(result.data, dict) else {}
        if body.get("errors"):
            return CallResult.failure(
                json.dumps(body["errors"]), status_code=result.status_code
            )
        return CallResult.ok(body.get("data") or {}, status_code=result.status_code)

    def resolve_issue_id(self, ticket_key: str, kind: str = "test") -> CallResult:
        """
        Look up the Xray internal issue ID for a Jira key.

        Args:
            ticket_key: Jira issue key (e.g., "TT-13").
            kind: "test" or "test_execution".

        Returns:
            CallResult with the issue ID, NOT_FOUND when there is no match,
            or FAILURE if the query failed or the match carries no ID.
        """
        operation = self.LOOKUP_QUERIES[kind]
        jql = escape_graphql(f"key = {ticket_key}")
        query = (
            f'query {{ {operation}(jql: "{jql}", limit: 1) '
            f"{{ results {{ issueId }} }} }}"
        )
        result = self.graphql(query)
        if not result.is_success:
            return result

        results = (result.data.get(operation) or {}).get("results") or []
        if not results:
            return CallResult.not_found(f"{kind} {ticket_key} not found in Xray")

        issue_id = results[0].get("issueId") if isinstance(results[0], dict) else None
        if not issue_id:
            return CallResult.failure(json.dumps(result.data), status_code=result.status_code)
        return CallResult.ok(issue_id, status_code=result.status_code)

    def remove_all_test_steps(self, issue_id: str) -> CallResult:
        """Remove every step of a Test issue."""
        mutation = f'mutation {{ removeAllTestSteps(issueId: "{escape_graphql(issue_id)}") }}'
        return self.graphql(mutation)

    def add_test_step(self, issue_id: str, step: Step) -> CallResult:
        """
        Append a step to a Test issue.

        Returns:
            CallResult with the created step ID; a response without an ID
            is reported as a failure.
        """
        mutation = (
            "mutation { addTestStep("
            f'issueId: "{escape_graphql(issue_id)}", '
            "step: { "
            f'action: "{escape_graphql(step.action)}", '
            f'data: "{escape_graphql(step.data or "")}", '
            f'result: "{escape_graphql(step.result)}"'
            " }) { id } }"
        )
        result = self.graphql(mutation)
        if not result.is_success:
            return result

        step_id = (result.data.get("addTestStep") or {}).get("id")
        if not step_id:
            return CallResult.failure(json.dumps(result.data), status_code=result.status_code)
        return CallResult.ok(step_id, status_code=result.status_code)

    def add_tests_to_test_execution(
        self,
        execution_id: str,
        test_ids: List[str],
    ) -> CallResult:
        """
        Add Test issues to a Test Execution.

        Returns:
            CallResult with ``{"addedTests": [...], "warning": ...}``.
        """
        test_id_list = ", ".join(f'"{escape_graphql(t)}"' for t in test_ids)
        mutation = (
            "mutation { addTestsToTestExecution("
            f'issueId: "{escape_graphql(execution_id)}", '
            f"testIssueIds: [{test_id_list}]"
            ") { addedTests warning } }"
        )
        result = self.graphql(mutation)
        if not result.is_success:
            return result

        added = result.data.get("addTestsToTestExecution")
        if added is None:
            return CallResult.failure(json.dumps(result.data), status_code=result.status_code)
        return CallResult.ok(
            {
                "addedTests": added.get("addedTests") or [],
                "warning": added.get("warning"),
            },
            status_code=result.status_code,
        )

    # ------------------------------------------------------------------
    # Test Execution Import
    # ------------------------------------------------------------------

    def import_execution(self, payload: Dict[str, Any]) -> CallResult:
        """
        Import execution results in Xray JSON format.

        A new Test Execution issue is created for the payload.

        Args:
            payload: ``{"info": {...}, "tests": [...]}`` document.

        Returns:
            CallResult with the created Test Execution key.
        """
        logger.debug(f"Importing execution with {len(payload.get('tests', []))} test(s)")
        result = self._call(self.ENDPOINTS["import_execution"], json=payload)
        if not result.is_success:
            return result

        body = result.data if isinstance(result.data, dict) else {}
        exec_key = body.get("key")
        if not exec_key:
            return CallResult.failure(
                f"Import response has no execution key: {json.dumps(result.data)}",
                status_code=result.status_code,
            )
        return CallResult.ok(exec_key, status_code=result.status_code)

    def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None:
            self._session.close()
            self._session = None
            self._token = None
            logger.debug("Xray client session closed")

    def __enter__(self) -> "XrayClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
