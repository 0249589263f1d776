"""
Analytics Helper Functions and Constants

Contains the CTR benchmark curve, percent-change arithmetic and the
aggregation helpers used across all transforms.
"""

from collections import defaultdict
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .models import MetricDelta, PageMetrics, Row


# ============================================================================
# CTR CURVE (Based on industry benchmarks - Backlinko/Sistrix 2024 studies)
# ============================================================================

CTR_CURVE: Dict[int, float] = {
    1: 0.317,   # 31.7% CTR for position 1
    2: 0.247,   # 24.7%
    3: 0.187,   # 18.7%
    4: 0.133,   # 13.3%
    5: 0.095,   # 9.5%
    6: 0.069,   # 6.9%
    7: 0.051,   # 5.1%
    8: 0.038,   # 3.8%
    9: 0.029,   # 2.9%
    10: 0.022,  # 2.2%
}


def position_bucket(position: float) -> int:
    """Round an average position to its benchmark bucket (minimum 1)."""
    return max(1, int(round(position)))


def get_ctr_for_position(position: float) -> float:
    """
    Get expected CTR for an average position.

    Monotonically non-increasing in position.

    Args:
        position: Average SERP position (rounded to a bucket)

    Returns:
        Expected CTR as decimal (0.0 - 1.0)
    """
    if position <= 0:
        return 0.0
    bucket = position_bucket(position)
    if bucket <= 10:
        return CTR_CURVE[bucket]
    if bucket <= 20:
        # Page 2: ~0.5-1% CTR
        return 0.01 - (bucket - 10) * 0.0005
    if bucket <= 50:
        # Page 3-5: ~0.2-0.5% CTR
        return 0.005 - (bucket - 20) * 0.0001
    # Page 6+: negligible
    return 0.001


# ============================================================================
# PERCENT CHANGE
# ============================================================================

def percent_change(before: float, after: float) -> Optional[float]:
    """
    Percent change from before to after.

    Returns None (undefined) when before is zero, never NaN or inf.
    """
    if before == 0:
        return None
    return round((after - before) / before * 100, 2)


def metric_delta(before: float, after: float, precision: int = 4) -> MetricDelta:
    return MetricDelta(
        before=round(before, precision),
        after=round(after, precision),
        delta=round(after - before, precision),
        percent_change=percent_change(before, after),
    )


# ============================================================================
# AGGREGATION
# ============================================================================

def weighted_position(rows: Iterable[Row]) -> float:
    """
    Impression-weighted average position.

    Falls back to the plain mean when no row has impressions.
    """
    rows = list(rows)
    if not rows:
        return 0.0
    impressions = sum(r.impressions for r in rows)
    if impressions == 0:
        return sum(r.position for r in rows) / len(rows)
    return sum(r.position * r.impressions for r in rows) / impressions


def aggregate_rows(rows: Iterable[Row]) -> Dict[str, float]:
    """Sum clicks/impressions and derive CTR and average position."""
    rows = list(rows)
    clicks = sum(r.clicks for r in rows)
    impressions = sum(r.impressions for r in rows)
    return {
        "clicks": clicks,
        "impressions": impressions,
        "ctr": clicks / impressions if impressions else 0.0,
        "position": weighted_position(rows),
    }


def group_rows(
    rows: Iterable[Row],
    key: Callable[[Row], Optional[str]],
) -> Dict[str, List[Row]]:
    """Group rows by a key, skipping rows where the key is missing."""
    groups: Dict[str, List[Row]] = defaultdict(list)
    for row in rows:
        k = key(row)
        if k is None:
            continue
        groups[k].append(row)
    return groups


def page_metrics(page: str, rows: Iterable[Row]) -> PageMetrics:
    totals = aggregate_rows(rows)
    return PageMetrics(
        page=page,
        clicks=int(totals["clicks"]),
        impressions=int(totals["impressions"]),
        ctr=round(totals["ctr"], 4),
        position=round(totals["position"], 2),
    )


def population_variance(values: List[float]) -> float:
    """
    Population variance (divide by N).

    Args:
        values: Numeric values

    Returns:
        Variance, 0.0 for fewer than two values
    """
    if len(values) < 2:
        return 0.0
    mean = sum(values) / len(values)
    return sum((v - mean) ** 2 for v in values) / len(values)


def totals_by_key(
    rows: Iterable[Row],
) -> Dict[Tuple[str, ...], Dict[str, float]]:
    """Aggregate rows sharing the same dimension tuple."""
    grouped: Dict[Tuple[str, ...], List[Row]] = defaultdict(list)
    for row in rows:
        grouped[row.keys].append(row)
    return {k: aggregate_rows(v) for k, v in grouped.items()}
