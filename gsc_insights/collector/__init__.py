"""
GSC Insights - Data Collection Package

Turns unreliable, rate-limited, row-capped API calls into complete datasets:
- Backoff Retrier: transient failures (429, 5xx) retried with jitter
- Paginator: datasets beyond the 25,000 row ceiling
- Permission fallback: URL-prefix property -> sc-domain: property
- Rate-limited executor: per-second quotas (URL Inspection)
- Partial-failure aggregator: composite reports that survive failed sections
"""

from .client import SearchConsoleClient
from .errors import (
    ErrorKind,
    ClassifiedError,
    AuthContext,
    SearchConsoleError,
    SectionNotConfigured,
    BatchTooLargeError,
    RequiredSectionFailed,
    classify_error,
    format_error,
    is_retryable,
)
from .retry import RetryConfig, with_retry, rate_limited, ensure_batch_size
from .permissions import DOMAIN_PREFIX, normalize_site_url, with_permission_fallback
from .pagination import ROW_CEILING, paginate, paginate_search_analytics
from .aggregator import (
    Outcome,
    OutcomeStatus,
    BatchOutcome,
    AggregatedReport,
    gather_sections,
    settle,
)
from .context import RequestContext

__all__ = [
    # Client
    "SearchConsoleClient",
    "RequestContext",

    # Errors
    "ErrorKind",
    "ClassifiedError",
    "AuthContext",
    "SearchConsoleError",
    "SectionNotConfigured",
    "BatchTooLargeError",
    "RequiredSectionFailed",
    "classify_error",
    "format_error",
    "is_retryable",

    # Retry / rate limiting
    "RetryConfig",
    "with_retry",
    "rate_limited",
    "ensure_batch_size",

    # Permission fallback
    "DOMAIN_PREFIX",
    "normalize_site_url",
    "with_permission_fallback",

    # Pagination
    "ROW_CEILING",
    "paginate",
    "paginate_search_analytics",

    # Aggregation
    "Outcome",
    "OutcomeStatus",
    "BatchOutcome",
    "AggregatedReport",
    "gather_sections",
    "settle",
]
