"""Error taxonomy and error message sanitization."""

from __future__ import annotations

import re
from typing import Any

from kubernetes.client.exceptions import ApiException

from ..constants import REASON_DEPLOY_FAILED

# Patterns that might expose sensitive information
SENSITIVE_PATTERNS = [
    r"(\.dockerconfigjson)[:\s]+([A-Za-z0-9/+=]+)",
    r"(auth)[\"':\s]+([A-Za-z0-9/+=]{16,})",
    r"(bearer)\s+([A-Za-z0-9\-_\.]+)",
]

# Fields to redact completely
SENSITIVE_FIELDS = {
    "password",
    "token",
    "dockerconfigjson",
}

# HTTP statuses that are safe to retry without operator intervention
TRANSIENT_STATUSES = {408, 409, 429, 500, 502, 503, 504}


class OperatorError(Exception):
    """Base class for errors surfaced by a reconcile pass."""

    reason = "ReconcileError"

    def __init__(self, message: str, reason: str | None = None) -> None:
        super().__init__(message)
        if reason is not None:
            self.reason = reason


class ClusterError(OperatorError):
    """A call against the cluster API failed."""

    def __init__(self, message: str, status: int | None = None, reason: str | None = None) -> None:
        super().__init__(message, reason)
        self.status = status


class TransientClusterError(ClusterError):
    """Conflict, throttling or server-side failure; retry with backoff."""


class PermanentClusterError(ClusterError):
    """Validation or authorization failure; needs operator intervention."""

    reason = REASON_DEPLOY_FAILED


class ConfigurationError(OperatorError):
    """Missing or malformed operator configuration."""


class RenderError(ConfigurationError):
    """One or more manifest files could not be rendered."""

    def __init__(self, message: str, errors: list[str], reason: str | None = None) -> None:
        super().__init__(f"{message}: {merge_errors(errors)}", reason)
        self.errors = errors


class TeardownError(OperatorError):
    """A finalizer teardown stage failed."""

    def __init__(self, stage: str, cause: Exception) -> None:
        super().__init__(f"teardown stage {stage} failed: {cause}")
        self.stage = stage
        self.cause = cause


def merge_errors(errors: list[str]) -> str:
    """Join several error messages into one."""
    return "; ".join(errors)


def classify_api_exception(error: ApiException, action: str) -> ClusterError:
    """Translate a kubernetes API exception into the operator taxonomy.

    Args:
        error: Exception raised by the kubernetes client
        action: Short description of the failed call, used in the message

    Returns:
        TransientClusterError for retryable statuses, PermanentClusterError otherwise
    """
    status = error.status
    message = f"{action} failed ({status}): {sanitize_error_message(str(error.reason or error))}"
    if status is None or status in TRANSIENT_STATUSES or status >= 500:
        return TransientClusterError(message, status=status)
    return PermanentClusterError(message, status=status)


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove sensitive information.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = message

    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(pattern, r"\1 [REDACTED]", sanitized, flags=re.IGNORECASE)

    for field in SENSITIVE_FIELDS:
        sanitized = re.sub(
            rf"{field}[\"':\s]+([^\s,;\)\"']+)",
            rf"{field}: [REDACTED]",
            sanitized,
            flags=re.IGNORECASE,
        )

    return sanitized


def sanitize_exception(error: Exception) -> str:
    """Sanitize exception message."""
    return sanitize_error_message(str(error))


def sanitize_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Redact sensitive fields of a dict before it is logged."""
    sanitized: dict[str, Any] = {}
    for key, value in data.items():
        if any(sensitive in key.lower() for sensitive in SENSITIVE_FIELDS):
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value)
        elif isinstance(value, str):
            sanitized[key] = sanitize_error_message(value)
        else:
            sanitized[key] = value
    return sanitized
