"""
Error Taxonomy

Every failure that crosses the collector boundary is mapped to a single
ErrorKind by classify_error(). Retry, fallback and report logic switch on
the kind, never on the shape of the raised exception.

Kinds:
- transient:       HTTP 429 or >=500, retried by the Backoff Retrier
- permission:      access denied, one-shot fallback to the domain property
- auth:            credential invalid/expired, fatal
- quota:           explicit quota-exceeded signal
- validation:      malformed input
- not_configured:  optional capability absent (e.g. no CrUX API key)
- unknown:         anything else
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

logger = logging.getLogger(__name__)


class ErrorKind(Enum):
    """Closed set of failure classifications."""
    TRANSIENT = "transient"
    PERMISSION = "permission"
    AUTH = "auth"
    QUOTA = "quota"
    VALIDATION = "validation"
    NOT_CONFIGURED = "not_configured"
    UNKNOWN = "unknown"


class SearchConsoleError(Exception):
    """Custom exception for Search Console API errors."""
    def __init__(self, message: str, status_code: Optional[int] = None, response: Optional[dict] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class SectionNotConfigured(Exception):
    """Raised when an optional capability is not configured for this deployment."""
    def __init__(self, capability: str, hint: str = ""):
        super().__init__(f"{capability} is not configured" + (f": {hint}" if hint else ""))
        self.capability = capability
        self.hint = hint


class BatchTooLargeError(ValueError):
    """Raised instead of silently truncating an oversized batch."""
    def __init__(self, size: int, max_size: int):
        super().__init__(f"Batch of {size} items exceeds the maximum of {max_size}")
        self.size = size
        self.max_size = max_size


class RequiredSectionFailed(Exception):
    """Raised by the aggregator when a required section failed."""
    def __init__(self, sections: List[str], report: Any):
        super().__init__(f"Required section(s) failed: {', '.join(sections)}")
        self.sections = sections
        self.report = report


@dataclass(frozen=True)
class ClassifiedError:
    """Normalized error value with its kind, status and message."""
    kind: ErrorKind
    message: str
    status_code: Optional[int] = None

    @property
    def retryable(self) -> bool:
        return is_retryable(self.status_code)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "status_code": self.status_code,
        }


@dataclass(frozen=True)
class AuthContext:
    """Authentication mode in use, for remediation hints."""
    mode: str = "service_account"  # or "oauth2"
    identity: str = "unknown service account"


_AUTH_MARKERS = ("unauthenticated", "invalid_grant", "invalid credentials", "authentication")
_QUOTA_MARKERS = ("quota", "rate limit", "ratelimit")


def is_retryable(status_code: Optional[int]) -> bool:
    """429 and 5xx are transient; everything else, including no status, is not."""
    if status_code is None:
        return False
    return status_code == 429 or status_code >= 500


def get_status_code(exc: BaseException) -> Optional[int]:
    """Extract the HTTP status from a transport exception, if it carries one."""
    if isinstance(exc, SearchConsoleError):
        return exc.status_code
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code
    return None


def classify_error(exc: BaseException) -> ClassifiedError:
    """
    Map any raised exception to a ClassifiedError.

    Args:
        exc: Exception raised by the transport or a section coroutine

    Returns:
        ClassifiedError with kind, message and status code
    """
    message = str(exc) or exc.__class__.__name__
    status = get_status_code(exc)
    lowered = message.lower()

    if isinstance(exc, SectionNotConfigured):
        kind = ErrorKind.NOT_CONFIGURED
    elif isinstance(exc, (ValidationError, BatchTooLargeError)):
        kind = ErrorKind.VALIDATION
    elif status == 401 or any(m in lowered for m in _AUTH_MARKERS):
        kind = ErrorKind.AUTH
    elif any(m in lowered for m in _QUOTA_MARKERS):
        kind = ErrorKind.QUOTA
    elif "permission" in lowered or status == 403:
        kind = ErrorKind.PERMISSION
    elif is_retryable(status):
        kind = ErrorKind.TRANSIENT
    elif status in (400, 422):
        kind = ErrorKind.VALIDATION
    else:
        kind = ErrorKind.UNKNOWN

    return ClassifiedError(kind=kind, message=message, status_code=status)


def format_error(
    exc: BaseException,
    auth_context: AuthContext,
    site_url: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Format a failure as a structured result with a remediation hint.

    Args:
        exc: The failure to format
        auth_context: Auth mode and identity in use
        site_url: Property the call targeted (optional)

    Returns:
        Dict with error, kind, solution, steps and original_error
    """
    classified = classify_error(exc)
    kind = classified.kind

    if kind == ErrorKind.PERMISSION:
        if auth_context.mode == "oauth2":
            solution = "The OAuth2 user does not have access to this property"
            steps = [
                "1. Verify the authorized user has access to this property in Search Console",
                "2. Check if the siteUrl is correct",
                "3. Re-authorize if needed to get fresh tokens",
            ]
        else:
            solution = (
                f"Please add the service account as a user in Search Console: "
                f"{auth_context.identity}"
            )
            steps = [
                "1. Go to Google Search Console (search.google.com/search-console)",
                "2. Select the property",
                "3. Navigate to Settings > Users and permissions",
                f"4. Add {auth_context.identity} with Owner or Full access",
                "5. Try the query again",
            ]
        result = {"error": "Permission denied for this Search Console property"}
        result["site_url"] = site_url
        result["auth_mode"] = auth_context.mode

    elif kind == ErrorKind.AUTH:
        if auth_context.mode == "oauth2":
            result = {"error": "OAuth2 authentication failed", "auth_mode": "oauth2"}
            solution = "Check your OAuth2 credentials and tokens"
            steps = [
                "1. Verify GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET are set",
                "2. Check that the stored tokens are valid",
                "3. Re-authorize if tokens have expired or been revoked",
            ]
        else:
            result = {"error": "Service Account authentication failed", "auth_mode": "service_account"}
            solution = "Check your service account credentials"
            steps = [
                "1. Verify GOOGLE_APPLICATION_CREDENTIALS or GOOGLE_CREDENTIALS is set",
                "2. Ensure the JSON file contains a valid service account key",
                "3. Check the service account has not been deleted or disabled",
            ]

    elif kind == ErrorKind.QUOTA:
        result = {"error": "API quota exceeded"}
        solution = "Wait a moment and retry, or reduce request frequency"
        steps = [
            "1. Wait 60 seconds before retrying",
            "2. Reduce the frequency of API calls",
            "3. Check your Google Cloud Console quota limits",
        ]

    elif kind == ErrorKind.VALIDATION:
        result = {"error": "Invalid arguments"}
        if isinstance(exc, ValidationError):
            result["details"] = [
                {"path": ".".join(str(p) for p in e["loc"]), "message": e["msg"]}
                for e in exc.errors()
            ]
        solution = "Correct the request parameters and try again"
        steps = []

    elif kind == ErrorKind.NOT_CONFIGURED:
        result = {"error": "Capability not configured"}
        solution = getattr(exc, "hint", "") or "Configure the optional capability to enable it"
        steps = []

    elif kind == ErrorKind.TRANSIENT:
        result = {"error": "Search Console API temporarily unavailable"}
        solution = "Retries were exhausted; try again later"
        steps = []

    else:
        result = {"error": exc.__class__.__name__}
        solution = None
        steps = []

    result.update({
        "kind": kind.value,
        "status_code": classified.status_code,
        "solution": solution,
        "steps": steps,
        "original_error": classified.message,
    })
    return result
