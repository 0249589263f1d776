"""
Period Comparison and Keyword Diff

Side-by-side comparison of two datasets with the same dimensions:
- Per-key delta and % change for clicks, impressions, CTR and position
- Keys present in only one period are paired with zero-valued metrics
- New / lost queries between an earlier and a later period
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from .helpers import aggregate_rows, group_rows, metric_delta, totals_by_key
from .models import (
    ComparisonResult,
    ComparisonRow,
    Dataset,
    KeywordChange,
    KeywordDiff,
)

logger = logging.getLogger(__name__)

_ZERO = {"clicks": 0, "impressions": 0, "ctr": 0.0, "position": 0.0}


def duplicate_keys(dataset: Dataset) -> int:
    """Number of dimension tuples that occur more than once."""
    counts = Counter(row.keys for row in dataset.rows)
    return sum(1 for c in counts.values() if c > 1)


def compare_periods(
    period_a: Dataset,
    period_b: Dataset,
    limit: Optional[int] = None,
) -> ComparisonResult:
    """
    Compare two datasets key by key.

    period_a is the baseline (earlier) period, so a drop from 10 to 5
    clicks reads as delta -5, -50%.

    Args:
        period_a: Baseline dataset
        period_b: Comparison dataset
        limit: Maximum number of rows to return (after sorting)

    Returns:
        ComparisonResult sorted by absolute click delta, descending.
        Rows sharing a dimension tuple are summed, and the number of such
        tuples per period is reported in duplicate_keys.
    """
    duplicates = {
        "period_a": duplicate_keys(period_a),
        "period_b": duplicate_keys(period_b),
    }
    for label, dupes in duplicates.items():
        if dupes:
            logger.warning(f"{label} contains {dupes} duplicate key(s); metrics are summed per key")

    totals_a = totals_by_key(period_a.rows)
    totals_b = totals_by_key(period_b.rows)

    rows: List[ComparisonRow] = []
    for keys in set(totals_a) | set(totals_b):
        a = totals_a.get(keys, _ZERO)
        b = totals_b.get(keys, _ZERO)
        rows.append(ComparisonRow(
            keys=keys,
            clicks=metric_delta(a["clicks"], b["clicks"]),
            impressions=metric_delta(a["impressions"], b["impressions"]),
            ctr=metric_delta(a["ctr"], b["ctr"]),
            position=metric_delta(a["position"], b["position"], precision=2),
            in_period_a=keys in totals_a,
            in_period_b=keys in totals_b,
        ))

    rows.sort(key=lambda r: (-abs(r.clicks.delta), r.keys))
    if limit is not None:
        rows = rows[:limit]

    overall_a = aggregate_rows(period_a.rows)
    overall_b = aggregate_rows(period_b.rows)
    totals = {
        "clicks": metric_delta(overall_a["clicks"], overall_b["clicks"]),
        "impressions": metric_delta(overall_a["impressions"], overall_b["impressions"]),
        "ctr": metric_delta(overall_a["ctr"], overall_b["ctr"]),
        "position": metric_delta(overall_a["position"], overall_b["position"], precision=2),
    }

    return ComparisonResult(
        period_a=period_a.period,
        period_b=period_b.period,
        dimensions=period_a.dimensions or period_b.dimensions,
        rows=rows,
        totals=totals,
        duplicate_keys=duplicates,
    )


def _keyword_changes(groups: Dict[str, list], queries) -> List[KeywordChange]:
    changes = []
    for query in queries:
        totals = aggregate_rows(groups[query])
        changes.append(KeywordChange(
            query=query,
            clicks=int(totals["clicks"]),
            impressions=int(totals["impressions"]),
            position=round(totals["position"], 2),
        ))
    changes.sort(key=lambda k: (-k.clicks, -k.impressions, k.query))
    return changes


def diff_keywords(earlier: Dataset, later: Dataset) -> KeywordDiff:
    """
    Find queries that appeared or disappeared between two periods.

    Queries present in both periods are excluded.

    Args:
        earlier: Dataset split by query for the earlier period
        later: Dataset split by query for the later period

    Returns:
        KeywordDiff with new and lost queries, highest traffic first
    """
    earlier_groups = group_rows(earlier.rows, lambda r: r.get("query"))
    later_groups = group_rows(later.rows, lambda r: r.get("query"))

    new_queries = set(later_groups) - set(earlier_groups)
    lost_queries = set(earlier_groups) - set(later_groups)

    return KeywordDiff(
        new=_keyword_changes(later_groups, new_queries),
        lost=_keyword_changes(earlier_groups, lost_queries),
    )


def summarize_search_types(datasets: Dict[str, Dataset]) -> Dict[str, Any]:
    """
    Totals per search type with each type's share of all clicks.

    Args:
        datasets: Search type (web, image, video, news, discover) -> dataset

    Returns:
        Dict with per-type totals and the overall click total
    """
    per_type = {name: aggregate_rows(ds.rows) for name, ds in datasets.items()}
    total_clicks = sum(t["clicks"] for t in per_type.values())

    return {
        "total_clicks": total_clicks,
        "search_types": {
            name: {
                "clicks": int(t["clicks"]),
                "impressions": int(t["impressions"]),
                "ctr": round(t["ctr"], 4),
                "position": round(t["position"], 2),
                "click_share": round(t["clicks"] / total_clicks, 4) if total_clicks else 0.0,
            }
            for name, t in per_type.items()
        },
    }
