"""
Sitemap Operations

List, inspect, submit and delete sitemaps. Every call goes through the
Backoff Retrier and, inside it, the permission fallback to the domain
property, the same way Search Analytics pages do.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from gsc_insights.collector import RequestContext, with_permission_fallback, with_retry

logger = logging.getLogger(__name__)


async def _call(
    ctx: RequestContext,
    site_url: str,
    operation: Callable[[str], Awaitable[Any]],
) -> Any:
    async def attempt():
        return await with_permission_fallback(operation, site_url)

    return await with_retry(attempt, ctx.retry_config, sleep=ctx.sleep)


async def list_sitemaps(
    ctx: RequestContext,
    site_url: str,
    sitemap_index: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Sitemaps submitted for a property.

    Args:
        ctx: RequestContext
        site_url: Property identifier
        sitemap_index: Only list sitemaps contained in this sitemap index

    Returns:
        Raw sitemap resources (path, lastSubmitted, isPending, errors, ...)
    """
    return await _call(
        ctx, site_url, lambda site: ctx.client.list_sitemaps(site, sitemap_index)
    )


async def get_sitemap(ctx: RequestContext, site_url: str, feedpath: str) -> Dict[str, Any]:
    """Status of one sitemap."""
    return await _call(ctx, site_url, lambda site: ctx.client.get_sitemap(site, feedpath))


async def submit_sitemap(ctx: RequestContext, site_url: str, feedpath: str) -> Dict[str, Any]:
    """Submit a sitemap and return a confirmation."""
    await _call(ctx, site_url, lambda site: ctx.client.submit_sitemap(site, feedpath))
    logger.info(f"Submitted sitemap {feedpath} for {site_url}")
    return {"site_url": site_url, "feedpath": feedpath, "submitted": True}


async def delete_sitemap(ctx: RequestContext, site_url: str, feedpath: str) -> Dict[str, Any]:
    """Delete a sitemap and return a confirmation."""
    await _call(ctx, site_url, lambda site: ctx.client.delete_sitemap(site, feedpath))
    logger.info(f"Deleted sitemap {feedpath} from {site_url}")
    return {"site_url": site_url, "feedpath": feedpath, "deleted": True}
