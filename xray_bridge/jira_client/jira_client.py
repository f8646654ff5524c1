"""
Jira Cloud Attachment Client.

Uploads evidence files (screenshots) to Jira issues through the
Jira REST API v3, using Basic auth with an account email and API token.
"""

from __future__ import annotations

from typing import Optional

import requests
from loguru import logger

from xray_bridge.config.settings import JiraCredentials
from xray_bridge.jira_client.call_result import CallResult


class JiraClient:
    """
    Minimal Jira Cloud client for issue attachments.

    Usage::

        jira = JiraClient(JiraCredentials.from_env())
        result = jira.attach_file("TT-42", "TT-14-greeting-workflow.png", png_bytes)
    """

    ATTACHMENTS_ENDPOINT = "/rest/api/3/issue/{issue_key}/attachments"

    def __init__(self, credentials: JiraCredentials, timeout_sec: int = 30) -> None:
        self._credentials = credentials
        self._timeout_sec = timeout_sec
        self._session: Optional[requests.Session] = None
        logger.info(f"JiraClient initialized — url={credentials.base_url}")

    def _get_session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
            self._session.auth = (self._credentials.email, self._credentials.api_token)
            # Attachment uploads are rejected without this header
            self._session.headers["X-Atlassian-Token"] = "no-check"
        return self._session

    def attach_file(
        self,
        issue_key: str,
        filename: str,
        content: bytes,
        content_type: str = "image/png",
    ) -> CallResult:
        """
        Attach a file to a Jira issue.

        The body is multipart/form-data with a single ``file`` field;
        requests generates a random boundary per call.

        Args:
            issue_key: Jira issue key (e.g., "TT-42").
            filename: Attachment file name.
            content: Raw file bytes.
            content_type: MIME type of the file.

        Returns:
            CallResult with the created attachment IDs, or the raw error body.
        """
        url = f"{self._credentials.base_url}{self.ATTACHMENTS_ENDPOINT.format(issue_key=issue_key)}"
        logger.debug(f"Jira API POST {url} ({filename}, {len(content)} bytes)")

        try:
            response = self._get_session().post(
                url,
                files={"file": (filename, content, content_type)},
                timeout=self._timeout_sec,
            )
        except requests.exceptions.RequestException as e:
            return CallResult.failure(f"Attachment request failed: {e}")

        if not response.ok:
            return CallResult.failure(response.text, status_code=response.status_code)

        try:
            attachments = response.json()
        except ValueError:
            attachments = []
        attachment_ids = [a.get("id") for a in attachments if isinstance(a, dict)]
        return CallResult.ok(attachment_ids, status_code=response.status_code)

    def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None:
            self._session.close()
            self._session = None
            logger.debug("Jira client session closed")
