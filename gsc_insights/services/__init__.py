"""
Insight operations: fetch complete datasets, then compute.

All operations take an explicit RequestContext as their first argument.
"""

from .insights import (
    SEARCH_TYPES,
    search_analytics,
    compare_periods,
    content_decay,
    drop_alerts,
    cannibalization,
    cannibalization_resolver,
    diff_keywords,
    ctr_analysis,
    quick_wins,
    search_type_breakdown,
    serp_feature_tracking,
)
from .health import (
    DASHBOARD_SECTIONS,
    batch_inspect,
    indexing_health_report,
    page_health_dashboard,
    summarize_batch,
    summarize_inspection,
    vitals_history,
)
from .sitemaps import (
    list_sitemaps,
    get_sitemap,
    submit_sitemap,
    delete_sitemap,
)

__all__ = [
    "SEARCH_TYPES",
    "search_analytics",
    "compare_periods",
    "content_decay",
    "drop_alerts",
    "cannibalization",
    "cannibalization_resolver",
    "diff_keywords",
    "ctr_analysis",
    "quick_wins",
    "search_type_breakdown",
    "serp_feature_tracking",
    "DASHBOARD_SECTIONS",
    "batch_inspect",
    "indexing_health_report",
    "page_health_dashboard",
    "summarize_batch",
    "summarize_inspection",
    "vitals_history",
    "list_sitemaps",
    "get_sitemap",
    "submit_sitemap",
    "delete_sitemap",
]
