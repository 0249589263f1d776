"""
Page and Indexing Health

- batch_inspect: URL Inspection for many URLs, rate-limited to the
  per-second quota, one tagged outcome per URL
- indexing_health_report: top pages from analytics, inspected and counted
  by coverage state
- page_health_dashboard: inspection + analytics + PageSpeed + CrUX for one
  page as a partial-failure report
- vitals_history: weekly Core Web Vitals trend from the CrUX History API
"""

import logging
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Sequence

from gsc_insights.analytics import Period
from gsc_insights.analytics.helpers import aggregate_rows
from gsc_insights.collector import (
    AggregatedReport,
    BatchOutcome,
    BatchTooLargeError,
    Outcome,
    OutcomeStatus,
    RequestContext,
    ensure_batch_size,
    gather_sections,
    paginate_search_analytics,
    rate_limited,
    with_permission_fallback,
    with_retry,
)

logger = logging.getLogger(__name__)

DASHBOARD_SECTIONS = ("inspection", "analytics", "speed", "vitals")

CWV_METRICS = (
    "largest_contentful_paint",
    "cumulative_layout_shift",
    "interaction_to_next_paint",
    "first_contentful_paint",
    "experimental_time_to_first_byte",
)


# ============================================================================
# RESPONSE SUMMARIES
# ============================================================================

def summarize_inspection(result: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten the fields of an inspectionResult that matter for health checks."""
    index_status = result.get("indexStatusResult") or {}
    mobile = result.get("mobileUsabilityResult") or {}
    rich = result.get("richResultsResult") or {}
    return {
        "verdict": index_status.get("verdict"),
        "coverage_state": index_status.get("coverageState"),
        "indexing_state": index_status.get("indexingState"),
        "robots_txt_state": index_status.get("robotsTxtState"),
        "page_fetch_state": index_status.get("pageFetchState"),
        "last_crawl_time": index_status.get("lastCrawlTime"),
        "google_canonical": index_status.get("googleCanonical"),
        "user_canonical": index_status.get("userCanonical"),
        "mobile_usability": mobile.get("verdict"),
        "rich_results": rich.get("verdict"),
        "inspection_link": result.get("inspectionResultLink"),
    }


def summarize_pagespeed(result: Dict[str, Any]) -> Dict[str, Any]:
    """Lighthouse category scores (0-100) and field-data overall category."""
    lighthouse = result.get("lighthouseResult") or {}
    categories = lighthouse.get("categories") or {}
    scores = {}
    for name, category in categories.items():
        score = (category or {}).get("score")
        scores[name] = round(score * 100) if score is not None else None

    loading = result.get("loadingExperience") or {}
    return {
        "scores": scores,
        "field_data_category": loading.get("overall_category"),
        "strategy": (lighthouse.get("configSettings") or {}).get("emulatedFormFactor"),
    }


def summarize_crux(record: Dict[str, Any]) -> Dict[str, Any]:
    """p75 value per Core Web Vital."""
    metrics = record.get("metrics") or {}
    vitals = {}
    for name in CWV_METRICS:
        metric = metrics.get(name)
        if metric:
            vitals[name] = (metric.get("percentiles") or {}).get("p75")
    return {
        "key": record.get("key", {}),
        "p75": vitals,
    }


# ============================================================================
# BATCH INSPECTION
# ============================================================================

async def batch_inspect(
    ctx: RequestContext,
    site_url: str,
    urls: Sequence[str],
    language_code: str = "en-US",
) -> List[BatchOutcome]:
    """
    Inspect many URLs, one per INSPECTION_DELAY seconds.

    Args:
        ctx: RequestContext
        site_url: Property the URLs belong to
        urls: URLs to inspect (at most MAX_BATCH_SIZE)
        language_code: Language for translated messages

    Returns:
        One BatchOutcome per URL, in input order

    Raises:
        BatchTooLargeError: When len(urls) exceeds MAX_BATCH_SIZE
    """
    settings = ctx.settings
    ensure_batch_size(urls, settings.MAX_BATCH_SIZE)

    def inspect(url: str):
        async def attempt():
            return await with_permission_fallback(
                lambda site: ctx.client.inspect_url(site, url, language_code),
                site_url,
            )

        async def isolated() -> BatchOutcome:
            try:
                result = await with_retry(attempt, ctx.retry_config, sleep=ctx.sleep)
            except Exception as e:
                failure = Outcome.failure(e)
                logger.warning(f"Inspection failed for {url}: {failure.error.message}")
                return BatchOutcome(status=failure.status, error=failure.error, item=url)
            return BatchOutcome(
                status=OutcomeStatus.OK, payload=summarize_inspection(result), item=url
            )

        return isolated

    logger.info(f"Inspecting {len(urls)} URLs for {site_url}")
    return await rate_limited(
        [inspect(url) for url in urls], settings.INSPECTION_DELAY, sleep=ctx.sleep
    )


def summarize_batch(outcomes: Iterable[BatchOutcome]) -> Dict[str, Any]:
    """Counts by verdict and coverage state."""
    outcomes = list(outcomes)
    coverage = Counter()
    indexed = not_indexed = errors = 0

    for outcome in outcomes:
        if not outcome.ok:
            errors += 1
            continue
        if outcome.payload.get("verdict") == "PASS":
            indexed += 1
        else:
            not_indexed += 1
        coverage[outcome.payload.get("coverage_state") or "unknown"] += 1

    return {
        "inspected": len(outcomes),
        "indexed": indexed,
        "not_indexed": not_indexed,
        "errors": errors,
        "by_coverage_state": dict(coverage.most_common()),
    }


async def indexing_health_report(
    ctx: RequestContext,
    site_url: str,
    period: Period,
    limit: int = 50,
) -> Dict[str, Any]:
    """
    Indexing status of the site's top pages.

    Args:
        ctx: RequestContext
        site_url: Property identifier
        period: Period used to rank pages by clicks
        limit: Number of top pages to inspect (at most MAX_BATCH_SIZE)

    Returns:
        Dict with counts, coverage breakdown, per-page results and quota usage
    """
    if limit > ctx.settings.MAX_BATCH_SIZE:
        raise BatchTooLargeError(limit, ctx.settings.MAX_BATCH_SIZE)

    dataset = await paginate_search_analytics(ctx, site_url, period, ("page",), max_rows=limit)
    clicks = {row.get("page"): row.clicks for row in dataset.rows}
    urls = [page for page in clicks if page]

    outcomes = await batch_inspect(ctx, site_url, urls)

    pages = []
    for outcome in outcomes:
        entry = {"url": outcome.item, "clicks": clicks.get(outcome.item, 0)}
        if outcome.ok:
            entry.update({
                "verdict": outcome.payload.get("verdict"),
                "coverage_state": outcome.payload.get("coverage_state"),
            })
        else:
            entry["error"] = outcome.error.to_dict()
        pages.append(entry)

    return {
        "site_url": site_url,
        "period": str(period),
        **summarize_batch(outcomes),
        "quota_used": len(urls),
        "daily_quota": ctx.settings.DAILY_INSPECTION_QUOTA,
        "pages": pages,
    }


# ============================================================================
# PAGE HEALTH DASHBOARD
# ============================================================================

async def page_health_dashboard(
    ctx: RequestContext,
    site_url: str,
    page_url: str,
    period: Period,
    strategy: str = "mobile",
    required: Sequence[str] = (),
    top_queries: int = 10,
) -> AggregatedReport:
    """
    Inspection, analytics, PageSpeed and CrUX for one page.

    Sections settle independently. "vitals" is NOT_CONFIGURED when no
    Google Cloud API key is set.

    Args:
        ctx: RequestContext
        site_url: Property identifier
        page_url: Page to check
        period: Period for the analytics section
        strategy: PageSpeed strategy (mobile or desktop)
        required: Sections whose failure should raise RequiredSectionFailed
        top_queries: Number of top queries in the analytics section

    Returns:
        AggregatedReport with inspection, analytics, speed and vitals sections

    Raises:
        ValueError: When `required` names a section the dashboard does not have
        RequiredSectionFailed: When a required section failed
    """
    unknown = set(required) - set(DASHBOARD_SECTIONS)
    if unknown:
        raise ValueError(f"Unknown dashboard section(s): {sorted(unknown)}")

    retry_config = ctx.retry_config

    async def inspection():
        result = await with_retry(
            lambda: with_permission_fallback(
                lambda site: ctx.client.inspect_url(site, page_url), site_url
            ),
            retry_config,
            sleep=ctx.sleep,
        )
        return summarize_inspection(result)

    async def analytics():
        dataset = await paginate_search_analytics(
            ctx,
            site_url,
            period,
            ("query",),
            filters=[{"dimension": "page", "operator": "equals", "expression": page_url}],
        )
        totals = aggregate_rows(dataset.rows)
        ranked = sorted(dataset.rows, key=lambda r: (-r.clicks, -r.impressions))
        return {
            "period": str(period),
            "clicks": int(totals["clicks"]),
            "impressions": int(totals["impressions"]),
            "ctr": round(totals["ctr"], 4),
            "position": round(totals["position"], 2),
            "query_count": len(dataset),
            "top_queries": [r.to_dict() for r in ranked[:top_queries]],
        }

    async def speed():
        result = await with_retry(
            lambda: ctx.client.pagespeed(page_url, strategy=strategy),
            retry_config,
            sleep=ctx.sleep,
        )
        return summarize_pagespeed(result)

    async def vitals():
        record = await with_retry(
            lambda: ctx.client.crux_query(page_url), retry_config, sleep=ctx.sleep
        )
        return summarize_crux(record)

    sections: Dict[str, Optional[Any]] = {
        "inspection": inspection,
        "analytics": analytics,
        "speed": speed,
        "vitals": vitals if ctx.settings.has_crux else None,
    }

    logger.info(f"Page health dashboard for {page_url}")
    return await gather_sections(
        sections,
        concurrency=ctx.settings.AGGREGATOR_CONCURRENCY,
        required=required,
    )


# ============================================================================
# CORE WEB VITALS HISTORY
# ============================================================================

def _crux_date(value: Dict[str, int]) -> str:
    return f"{value['year']:04d}-{value['month']:02d}-{value['day']:02d}"


def summarize_crux_history(record: Dict[str, Any]) -> Dict[str, Any]:
    """Weekly p75 series per Core Web Vital, aligned with the collection periods."""
    periods = [
        _crux_date(p["lastDate"]) for p in record.get("collectionPeriods") or []
        if p.get("lastDate")
    ]
    metrics = record.get("metrics") or {}
    series = {}
    for name in CWV_METRICS:
        metric = metrics.get(name)
        if metric:
            series[name] = (metric.get("percentilesTimeseries") or {}).get("p75s", [])
    return {
        "key": record.get("key", {}),
        "periods": periods,
        "p75": series,
    }


async def vitals_history(
    ctx: RequestContext,
    page_url: str,
    form_factor: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Core Web Vitals trend for one page from the CrUX History API.

    Raises:
        SectionNotConfigured: When no Google Cloud API key is set
    """
    record = await with_retry(
        lambda: ctx.client.crux_history(page_url, form_factor),
        ctx.retry_config,
        sleep=ctx.sleep,
    )
    return summarize_crux_history(record)
