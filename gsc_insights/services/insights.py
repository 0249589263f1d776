"""
Computed Insight Operations

Each operation fetches one or two complete datasets through the collector
and hands them to a pure transform from gsc_insights.analytics. Two-period
operations fetch both periods concurrently.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from gsc_insights.analytics import (
    CannibalizationGroup,
    CannibalizationResolution,
    ComparisonResult,
    CtrBenchmark,
    Dataset,
    DecaySignal,
    KeywordDiff,
    Period,
    QuickWin,
    ResolutionPolicy,
    compare_periods as compare_datasets,
    ctr_benchmark,
    detect_cannibalization,
    detect_decay,
    detect_drop_alerts,
    detect_quick_wins,
    diff_keywords as diff_datasets,
    resolve_cannibalization,
    summarize_search_types,
    track_serp_features,
)
from gsc_insights.collector import (
    AggregatedReport,
    RequestContext,
    gather_sections,
    paginate_search_analytics,
)

logger = logging.getLogger(__name__)

SEARCH_TYPES = ("web", "image", "video", "news", "discover")


async def search_analytics(
    ctx: RequestContext,
    site_url: str,
    period: Period,
    dimensions: Sequence[str] = ("query",),
    **kwargs,
) -> Dataset:
    """Fetch one complete Search Analytics dataset (auto-paginated)."""
    return await paginate_search_analytics(ctx, site_url, period, dimensions, **kwargs)


async def _fetch_pair(
    ctx: RequestContext,
    site_url: str,
    earlier: Period,
    later: Period,
    dimensions: Sequence[str],
    **kwargs,
) -> Tuple[Dataset, Dataset]:
    # Either failure propagates: a comparison needs both periods
    first, second = await asyncio.gather(
        paginate_search_analytics(ctx, site_url, earlier, dimensions, **kwargs),
        paginate_search_analytics(ctx, site_url, later, dimensions, **kwargs),
    )
    return first, second


async def compare_periods(
    ctx: RequestContext,
    site_url: str,
    period_a: Period,
    period_b: Period,
    dimensions: Sequence[str] = ("query",),
    limit: Optional[int] = None,
    **kwargs,
) -> ComparisonResult:
    """
    Compare two periods side by side.

    Args:
        ctx: RequestContext
        site_url: Property identifier
        period_a: Baseline period
        period_b: Comparison period
        dimensions: Dimensions to compare on
        limit: Maximum rows in the result

    Returns:
        ComparisonResult
    """
    a, b = await _fetch_pair(ctx, site_url, period_a, period_b, dimensions, **kwargs)
    return compare_datasets(a, b, limit=limit)


async def content_decay(
    ctx: RequestContext,
    site_url: str,
    earlier: Period,
    recent: Period,
    min_clicks: int = 10,
    limit: Optional[int] = None,
) -> List[DecaySignal]:
    """Pages losing clicks between two periods, largest loss first."""
    before, after = await _fetch_pair(ctx, site_url, earlier, recent, ("page",))
    return detect_decay(before, after, min_clicks=min_clicks, limit=limit)


async def drop_alerts(
    ctx: RequestContext,
    site_url: str,
    earlier: Period,
    recent: Period,
    threshold_pct: float = 50.0,
    min_clicks: int = 10,
    limit: Optional[int] = None,
) -> List[DecaySignal]:
    """Pages whose click loss meets the threshold (default 50%)."""
    before, after = await _fetch_pair(ctx, site_url, earlier, recent, ("page",))
    return detect_drop_alerts(
        before, after, threshold_pct=threshold_pct, min_clicks=min_clicks, limit=limit
    )


async def cannibalization(
    ctx: RequestContext,
    site_url: str,
    period: Period,
    sort_by: str = "variance",
    min_impressions: int = 10,
    limit: Optional[int] = None,
) -> List[CannibalizationGroup]:
    """Queries where several pages compete, with position variance."""
    dataset = await paginate_search_analytics(ctx, site_url, period, ("query", "page"))
    return detect_cannibalization(
        dataset, sort_by=sort_by, min_impressions=min_impressions, limit=limit
    )


async def cannibalization_resolver(
    ctx: RequestContext,
    site_url: str,
    period: Period,
    policy: ResolutionPolicy = ResolutionPolicy(),
    min_impressions: int = 10,
    limit: Optional[int] = None,
) -> List[CannibalizationResolution]:
    """Cannibalization groups with a winner and per-page recommendations."""
    dataset = await paginate_search_analytics(ctx, site_url, period, ("query", "page"))
    return resolve_cannibalization(
        dataset, policy=policy, min_impressions=min_impressions, limit=limit
    )


async def diff_keywords(
    ctx: RequestContext,
    site_url: str,
    earlier: Period,
    later: Period,
) -> KeywordDiff:
    """New and lost queries between two periods."""
    before, after = await _fetch_pair(ctx, site_url, earlier, later, ("query",))
    return diff_datasets(before, after)


async def ctr_analysis(
    ctx: RequestContext,
    site_url: str,
    period: Period,
    tolerance: float = 0.3,
    min_impressions: int = 100,
    limit: Optional[int] = 50,
) -> List[CtrBenchmark]:
    """Queries whose CTR is well below the benchmark for their position."""
    dataset = await paginate_search_analytics(ctx, site_url, period, ("query",))
    return ctr_benchmark(
        dataset, tolerance=tolerance, min_impressions=min_impressions, limit=limit
    )


async def quick_wins(
    ctx: RequestContext,
    site_url: str,
    period: Period,
    min_impressions: int = 100,
    max_ctr: float = 0.05,
    limit: Optional[int] = 50,
) -> List[QuickWin]:
    """High-impression, low-CTR queries in positions 4-10."""
    dataset = await paginate_search_analytics(ctx, site_url, period, ("query", "page"))
    return detect_quick_wins(
        dataset, min_impressions=min_impressions, max_ctr=max_ctr, limit=limit
    )


async def search_type_breakdown(
    ctx: RequestContext,
    site_url: str,
    period: Period,
    search_types: Sequence[str] = SEARCH_TYPES,
    dimensions: Sequence[str] = (),
) -> Dict[str, Any]:
    """
    Performance per search type in one call.

    Each search type is an independent section: a failing type is reported
    as failed and excluded from the summary, the rest still come back.

    Returns:
        Dict with the per-type report and a summary over successful types
    """
    def section(search_type: str):
        return lambda: paginate_search_analytics(
            ctx, site_url, period, dimensions, search_type=search_type
        )

    report: AggregatedReport = await gather_sections(
        {t: section(t) for t in search_types},
        concurrency=ctx.settings.AGGREGATOR_CONCURRENCY,
    )

    succeeded = {name: report[name].payload for name in report.succeeded}
    return {
        "period": str(period),
        "summary": summarize_search_types(succeeded),
        "report": report.to_dict(),
    }


async def serp_feature_tracking(
    ctx: RequestContext,
    site_url: str,
    period: Period,
) -> Dict[str, Any]:
    """Daily trends per SERP feature (searchAppearance)."""
    dataset = await paginate_search_analytics(
        ctx, site_url, period, ("date", "searchAppearance")
    )
    return track_serp_features(dataset)
