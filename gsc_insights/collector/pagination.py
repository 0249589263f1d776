"""
Search Analytics Pagination

A single Search Analytics request returns at most 25,000 rows. Larger
datasets are fetched page by page:

    start_row = 0
    while start_row < max_rows:
        limit = min(page_size, max_rows - start_row)
        rows = fetch(limit, start_row)[:limit]
        stop if len(rows) < limit
        start_row += len(rows)

Pages are fetched and appended strictly in offset order. Rows are not
deduplicated across pages.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from gsc_insights.analytics.models import Dataset, Period, Row

from .permissions import with_permission_fallback
from .retry import with_retry

logger = logging.getLogger(__name__)

ROW_CEILING = 25_000
DEFAULT_MAX_ROWS = 100_000

FetchPage = Callable[[int, int], Awaitable[List[Any]]]


async def paginate(
    fetch_page: FetchPage,
    max_rows: int = DEFAULT_MAX_ROWS,
    page_size: int = ROW_CEILING,
) -> List[Any]:
    """
    Fetch up to max_rows rows, one page at a time.

    Args:
        fetch_page: Coroutine function (row_limit, start_row) -> rows
        max_rows: Maximum rows to accumulate
        page_size: Rows per request, clamped to the 25,000 row ceiling

    Returns:
        Accumulated rows, never more than max_rows
    """
    page_size = max(1, min(page_size, ROW_CEILING))
    all_rows: List[Any] = []
    start_row = 0

    while start_row < max_rows:
        limit = min(page_size, max_rows - start_row)
        rows = await fetch_page(limit, start_row)
        logger.debug(f"Page at startRow={start_row}: {len(rows)}/{limit} rows")

        page = rows[:limit]
        all_rows.extend(page)

        # Fewer rows than requested: no more pages upstream
        if len(page) < limit:
            break
        # Advance by rows kept; an oversized page must not skip offsets
        start_row += len(page)

    return all_rows


async def paginate_search_analytics(
    ctx,
    site_url: str,
    period: Period,
    dimensions: Sequence[str] = ("query",),
    filters: Optional[List[Dict[str, Any]]] = None,
    search_type: Optional[str] = None,
    aggregation_type: Optional[str] = None,
    data_state: Optional[str] = None,
    max_rows: Optional[int] = None,
    page_size: Optional[int] = None,
) -> Dataset:
    """
    Fetch a complete Search Analytics dataset.

    Each page goes through the Backoff Retrier, and inside it the
    permission fallback to the domain property.

    Args:
        ctx: RequestContext
        site_url: Property identifier
        period: Date range
        dimensions: Dimensions to split rows by
        filters: dimensionFilterGroups[0].filters entries
        search_type: web, image, video, news, discover, googleNews
        aggregation_type: auto, byPage, byProperty
        data_state: final or all
        max_rows: Row cap (defaults to settings.MAX_ROWS)
        page_size: Rows per page (defaults to settings.PAGE_SIZE)

    Returns:
        Dataset of Row objects
    """
    settings = ctx.settings
    max_rows = settings.MAX_ROWS if max_rows is None else max_rows
    page_size = settings.page_size if page_size is None else page_size

    body: Dict[str, Any] = {**period.to_api(), "dimensions": list(dimensions)}
    if filters:
        body["dimensionFilterGroups"] = [{"filters": filters}]
    if search_type:
        body["type"] = search_type
    if aggregation_type:
        body["aggregationType"] = aggregation_type
    if data_state:
        body["dataState"] = data_state

    async def fetch_page(row_limit: int, start_row: int) -> List[Dict[str, Any]]:
        page_body = {**body, "rowLimit": row_limit, "startRow": start_row}

        async def attempt():
            return await with_permission_fallback(
                lambda url: ctx.client.search_analytics(url, page_body),
                site_url,
            )

        return await with_retry(attempt, ctx.retry_config, sleep=ctx.sleep)

    raw_rows = await paginate(fetch_page, max_rows=max_rows, page_size=page_size)
    logger.info(f"Fetched {len(raw_rows)} rows for {site_url} ({period}, {list(dimensions)})")

    return Dataset(
        period=period,
        dimensions=tuple(dimensions),
        rows=tuple(Row.from_api(r, dimensions) for r in raw_rows),
    )
