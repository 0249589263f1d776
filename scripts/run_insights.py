#!/usr/bin/env python3
"""
Insights Runner

Runs one computed insight against a Search Console property and prints
the result as JSON.

Usage:
    # Set environment variables first:
    export GSC_ACCESS_TOKEN=ya29...
    export GOOGLE_CLOUD_API_KEY=your_key   # optional, enables CrUX

    # Compare the last 28 days with the 28 days before:
    python scripts/run_insights.py compare https://example.com/

    # Other commands:
    python scripts/run_insights.py decay sc-domain:example.com --days 28
    python scripts/run_insights.py cannibalization https://example.com/ --resolve
    python scripts/run_insights.py drop-alerts https://example.com/ --threshold 40
    python scripts/run_insights.py health https://example.com/ --page https://example.com/pricing
    python scripts/run_insights.py sitemaps https://example.com/
"""

import asyncio
import argparse
import json
import logging
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import List, Optional, Tuple

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from gsc_insights.analytics import Period, ResolutionPolicy
from gsc_insights.collector import RequestContext, format_error
from gsc_insights.services import (
    cannibalization,
    cannibalization_resolver,
    compare_periods,
    content_decay,
    drop_alerts,
    indexing_health_report,
    list_sitemaps,
    page_health_dashboard,
)
from gsc_insights.utils import get_settings

logger = logging.getLogger(__name__)

# Search Console data lags by ~3 days
DATA_LAG_DAYS = 3


def adjacent_periods(days: int, today: Optional[date] = None) -> Tuple[Period, Period]:
    """The last `days` days of final data and the `days` days before them."""
    today = today or date.today()
    recent_end = today - timedelta(days=DATA_LAG_DAYS)
    recent = Period(recent_end - timedelta(days=days - 1), recent_end)
    earlier_end = recent.start_date - timedelta(days=1)
    earlier = Period(earlier_end - timedelta(days=days - 1), earlier_end)
    return earlier, recent


def to_jsonable(result):
    if hasattr(result, "to_dict"):
        return result.to_dict()
    if isinstance(result, list):
        return [to_jsonable(r) for r in result]
    return result


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    earlier, recent = adjacent_periods(args.days)

    async with RequestContext.from_settings(settings) as ctx:
        try:
            if args.command == "compare":
                result = await compare_periods(
                    ctx, args.site_url, earlier, recent,
                    dimensions=args.dimensions, limit=args.limit,
                )
            elif args.command == "decay":
                result = await content_decay(ctx, args.site_url, earlier, recent, limit=args.limit)
            elif args.command == "drop-alerts":
                result = await drop_alerts(
                    ctx, args.site_url, earlier, recent,
                    threshold_pct=args.threshold, limit=args.limit,
                )
            elif args.command == "cannibalization" and args.resolve:
                result = await cannibalization_resolver(
                    ctx, args.site_url, recent, policy=ResolutionPolicy(), limit=args.limit,
                )
            elif args.command == "cannibalization":
                result = await cannibalization(ctx, args.site_url, recent, limit=args.limit)
            elif args.command == "sitemaps":
                result = await list_sitemaps(ctx, args.site_url)
            elif args.page:
                result = await page_health_dashboard(ctx, args.site_url, args.page, recent)
            else:
                result = await indexing_health_report(
                    ctx, args.site_url, recent, limit=args.limit or 50
                )
        except Exception as e:
            logger.error(f"{args.command} failed: {e}")
            print(json.dumps(format_error(e, ctx.auth, args.site_url), indent=2))
            return 1

    print(json.dumps(to_jsonable(result), indent=2, default=str))
    return 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a Search Console insight")
    parser.add_argument(
        "command",
        choices=["compare", "decay", "drop-alerts", "cannibalization", "health", "sitemaps"],
    )
    parser.add_argument("site_url", help="https://example.com/ or sc-domain:example.com")
    parser.add_argument("--days", type=int, default=28, help="Length of each period")
    parser.add_argument("--limit", type=int, default=None, help="Maximum results")
    parser.add_argument("--dimensions", nargs="+", default=["query"])
    parser.add_argument("--threshold", type=float, default=50.0, help="Drop alert %% cutoff")
    parser.add_argument("--resolve", action="store_true", help="Recommend cannibalization actions")
    parser.add_argument("--page", help="Page URL for the page health dashboard")
    args = parser.parse_args(argv)

    if args.days < 1:
        parser.error("--days must be at least 1")
    if args.limit is not None and args.limit < 1:
        parser.error("--limit must be at least 1")
    return args


def main():
    args = parse_args()

    load_dotenv()

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, get_settings().LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    # Quiet down chatty loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
