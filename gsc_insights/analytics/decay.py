"""
Content Decay Detection

Identifies pages that lost clicks between an earlier and a recent period.

    click_loss = earlier_clicks - recent_clicks
    loss_pct   = click_loss / earlier_clicks × 100

A page qualifies when loss_pct >= 0 (a gain is never a decay signal).
Drop alerts apply a caller-supplied loss_pct cutoff on top.
"""

import logging
from typing import List, Optional

from .helpers import aggregate_rows, group_rows
from .models import Dataset, DecaySignal

logger = logging.getLogger(__name__)

DEFAULT_DROP_THRESHOLD_PCT = 50.0


def detect_decay(
    earlier: Dataset,
    recent: Dataset,
    min_clicks: int = 0,
    limit: Optional[int] = None,
) -> List[DecaySignal]:
    """
    Find pages whose clicks did not grow.

    Args:
        earlier: Dataset split by page for the earlier period
        recent: Dataset split by page for the recent period
        min_clicks: Minimum earlier-period clicks for a page to be considered
        limit: Maximum number of signals to return

    Returns:
        DecaySignal list sorted by absolute click loss, descending
    """
    earlier_pages = group_rows(earlier.rows, lambda r: r.get("page"))
    recent_pages = group_rows(recent.rows, lambda r: r.get("page"))

    signals = []
    for page, rows in earlier_pages.items():
        before = aggregate_rows(rows)
        after = aggregate_rows(recent_pages.get(page, []))

        earlier_clicks = int(before["clicks"])
        recent_clicks = int(after["clicks"])

        # Nothing to lose
        if earlier_clicks == 0 or earlier_clicks < min_clicks:
            continue

        click_loss = earlier_clicks - recent_clicks
        if click_loss < 0:
            continue

        signals.append(DecaySignal(
            page=page,
            earlier_clicks=earlier_clicks,
            recent_clicks=recent_clicks,
            click_loss=click_loss,
            loss_pct=round(click_loss / earlier_clicks * 100, 2),
            earlier_impressions=int(before["impressions"]),
            recent_impressions=int(after["impressions"]),
            earlier_position=round(before["position"], 2),
            recent_position=round(after["position"], 2) if page in recent_pages else None,
        ))

    signals.sort(key=lambda s: (-s.click_loss, s.page))
    logger.debug(f"Decay detection: {len(signals)} of {len(earlier_pages)} pages decaying")

    if limit is not None:
        signals = signals[:limit]
    return signals


def detect_drop_alerts(
    earlier: Dataset,
    recent: Dataset,
    threshold_pct: float = DEFAULT_DROP_THRESHOLD_PCT,
    min_clicks: int = 0,
    limit: Optional[int] = None,
) -> List[DecaySignal]:
    """
    Pages whose click loss meets or exceeds threshold_pct.

    Args:
        earlier: Dataset split by page for the previous period
        recent: Dataset split by page for the recent period
        threshold_pct: Minimum percent loss to alert on (default 50%)
        min_clicks: Minimum earlier-period clicks for a page to be considered
        limit: Maximum number of alerts to return

    Returns:
        DecaySignal list sorted by absolute click loss, descending
    """
    alerts = [
        s for s in detect_decay(earlier, recent, min_clicks=min_clicks)
        if s.loss_pct >= threshold_pct
    ]
    if limit is not None:
        alerts = alerts[:limit]
    return alerts


def get_decay_summary(signals: List[DecaySignal]) -> dict:
    """
    Summary statistics for a list of decay signals.

    Args:
        signals: Output of detect_decay or detect_drop_alerts

    Returns:
        Summary dict with totals
    """
    if not signals:
        return {
            "total_pages": 0,
            "total_click_loss": 0,
            "avg_loss_pct": 0,
        }

    return {
        "total_pages": len(signals),
        "total_click_loss": sum(s.click_loss for s in signals),
        "avg_loss_pct": round(sum(s.loss_pct for s in signals) / len(signals), 2),
        "max_loss_pct": max(s.loss_pct for s in signals),
    }
