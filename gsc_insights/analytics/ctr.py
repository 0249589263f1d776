"""
CTR Benchmarks

Compares each row's CTR against the expected CTR for its rounded average
position (see helpers.CTR_CURVE). Rows well below the benchmark are
candidates for title/description optimization.
"""

import logging
from typing import List, Optional

from .helpers import get_ctr_for_position, position_bucket
from .models import CtrBenchmark, Dataset, QuickWin

logger = logging.getLogger(__name__)


def ctr_benchmark(
    dataset: Dataset,
    tolerance: float = 0.3,
    min_impressions: int = 50,
    limit: Optional[int] = None,
) -> List[CtrBenchmark]:
    """
    Flag rows whose CTR is materially below the benchmark.

    A row is flagged when actual_ctr < expected_ctr × (1 - tolerance).

    Args:
        dataset: Any Search Analytics dataset
        tolerance: Fraction below the benchmark that is still acceptable
        min_impressions: Ignore rows with fewer impressions (noisy CTR)
        limit: Maximum number of rows to return

    Returns:
        CtrBenchmark list sorted by missed clicks, descending
    """
    flagged = []
    for row in dataset.rows:
        if row.impressions < min_impressions or row.position <= 0:
            continue

        expected = get_ctr_for_position(row.position)
        if row.ctr >= expected * (1 - tolerance):
            continue

        flagged.append(CtrBenchmark(
            keys=row.keys,
            position=round(row.position, 2),
            position_bucket=position_bucket(row.position),
            actual_ctr=round(row.ctr, 4),
            expected_ctr=expected,
            ctr_gap=round(expected - row.ctr, 4),
            clicks=row.clicks,
            impressions=row.impressions,
            missed_clicks=int(round((expected - row.ctr) * row.impressions)),
        ))

    flagged.sort(key=lambda b: (-b.missed_clicks, b.keys))
    if limit is not None:
        flagged = flagged[:limit]
    return flagged


def detect_quick_wins(
    dataset: Dataset,
    min_impressions: int = 100,
    max_ctr: float = 0.05,
    min_position: float = 4,
    max_position: float = 10,
    limit: Optional[int] = None,
) -> List[QuickWin]:
    """
    High-impression, low-CTR queries in striking distance (positions 4-10).

    Args:
        dataset: Dataset split by query (optionally also by page)
        min_impressions: Minimum impressions
        max_ctr: Maximum CTR
        min_position: Lower bound of the striking-distance window
        max_position: Upper bound of the striking-distance window
        limit: Maximum number of results

    Returns:
        QuickWin list sorted by potential additional clicks, descending
    """
    wins = []
    for row in dataset.rows:
        query = row.get("query")
        if query is None:
            continue
        if row.impressions < min_impressions or row.ctr > max_ctr:
            continue
        if not min_position <= row.position <= max_position:
            continue

        expected = get_ctr_for_position(row.position)
        wins.append(QuickWin(
            query=query,
            page=row.get("page"),
            clicks=row.clicks,
            impressions=row.impressions,
            ctr=round(row.ctr, 4),
            position=round(row.position, 2),
            expected_ctr=expected,
            potential_clicks=max(0, int(round(expected * row.impressions)) - row.clicks),
        ))

    wins.sort(key=lambda w: (-w.potential_clicks, -w.impressions, w.query))
    if limit is not None:
        wins = wins[:limit]
    return wins
