"""
Remote Call Result Module.

Every Xray/Jira call wrapper returns a CallResult instead of raising, so
batch loops (step insertion, execution linking, result upload) can log a
failure and move on to the next item.

Outcomes:
- SUCCESS: the call succeeded; ``data`` carries the useful part of the response.
- NOT_FOUND: a lookup returned zero matches; the caller skips the item.
- FAILURE: non-success HTTP status, GraphQL ``errors`` array or transport
  error; ``error`` carries the raw payload for the log.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class CallStatus(Enum):
    """Outcome of a remote call."""

    SUCCESS = "success"
    NOT_FOUND = "not_found"
    FAILURE = "failure"


@dataclass
class CallResult:
    """
    Result of a single remote call.

    Attributes:
        status: Outcome of the call.
        data: Response data on success.
        error: Raw error payload or reason on not-found/failure.
        status_code: HTTP status code, if a response was received.
    """

    status: CallStatus = CallStatus.SUCCESS
    data: Any = None
    error: Optional[str] = None
    status_code: Optional[int] = None

    @classmethod
    def ok(cls, data: Any = None, status_code: Optional[int] = None) -> "CallResult":
        return cls(status=CallStatus.SUCCESS, data=data, status_code=status_code)

    @classmethod
    def not_found(cls, message: str) -> "CallResult":
        return cls(status=CallStatus.NOT_FOUND, error=message)

    @classmethod
    def failure(cls, error: str, status_code: Optional[int] = None) -> "CallResult":
        return cls(status=CallStatus.FAILURE, error=error, status_code=status_code)

    @property
    def is_success(self) -> bool:
        return self.status == CallStatus.SUCCESS

    @property
    def is_not_found(self) -> bool:
        return self.status == CallStatus.NOT_FOUND

    @property
    def is_failure(self) -> bool:
        return self.status == CallStatus.FAILURE

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the result for logs and summaries."""
        return {
            "status": self.status.value,
            "data": self.data,
            "error": self.error,
            "status_code": self.status_code,
        }
