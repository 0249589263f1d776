"""
Keyword Cannibalization

Detection: queries where two or more distinct pages received impressions,
with the population variance of the per-page average positions. High
variance means one page clearly outranks the others; low variance means
the pages trade places.

Resolution: the page with the largest share of the group's clicks wins.
Every other page is graded by its clicks relative to the winner:

    share_of_winner <  redirect_below     -> redirect
    share_of_winner <  consolidate_below  -> consolidate
    otherwise                             -> differentiate

The thresholds are a tunable policy; the only fixed property is that the
recommendation is monotonic in click share.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from .helpers import group_rows, page_metrics, population_variance
from .models import (
    CannibalizationGroup,
    CannibalizationResolution,
    Dataset,
    PageMetrics,
    PageRecommendation,
    ResolutionAction,
)

logger = logging.getLogger(__name__)

SORT_KEYS = ("variance", "impressions")


@dataclass(frozen=True)
class ResolutionPolicy:
    """Click-share thresholds, relative to the winner's clicks."""
    redirect_below: float = 0.1
    consolidate_below: float = 0.5

    def __post_init__(self):
        if not 0 <= self.redirect_below <= self.consolidate_below:
            raise ValueError(
                "ResolutionPolicy requires 0 <= redirect_below <= consolidate_below"
            )

    def action_for(self, share_of_winner: float) -> ResolutionAction:
        if share_of_winner < self.redirect_below:
            return ResolutionAction.REDIRECT
        if share_of_winner < self.consolidate_below:
            return ResolutionAction.CONSOLIDATE
        return ResolutionAction.DIFFERENTIATE


def detect_cannibalization(
    dataset: Dataset,
    sort_by: str = "variance",
    min_impressions: int = 0,
    limit: Optional[int] = None,
) -> List[CannibalizationGroup]:
    """
    Find queries served by multiple pages.

    Args:
        dataset: Dataset split by query and page
        sort_by: "variance" or "impressions" (descending, ties by query)
        min_impressions: Minimum impressions for a page to count
        limit: Maximum number of groups to return

    Returns:
        CannibalizationGroup list
    """
    if sort_by not in SORT_KEYS:
        raise ValueError(f"sort_by must be one of {SORT_KEYS}, got {sort_by!r}")

    groups = []
    for query, rows in group_rows(dataset.rows, lambda r: r.get("query")).items():
        by_page = group_rows(rows, lambda r: r.get("page"))
        pages = [page_metrics(page, page_rows) for page, page_rows in by_page.items()]
        pages = [
            p for p in pages
            if p.impressions > 0 and p.impressions >= min_impressions
        ]
        if len(pages) < 2:
            continue

        pages.sort(key=lambda p: (-p.clicks, -p.impressions, p.page))
        groups.append(CannibalizationGroup(
            query=query,
            pages=pages,
            total_clicks=sum(p.clicks for p in pages),
            total_impressions=sum(p.impressions for p in pages),
            position_variance=round(population_variance([p.position for p in pages]), 4),
        ))

    if sort_by == "variance":
        groups.sort(key=lambda g: (-g.position_variance, g.query))
    else:
        groups.sort(key=lambda g: (-g.total_impressions, g.query))

    logger.debug(f"Cannibalization: {len(groups)} queries with competing pages")

    if limit is not None:
        groups = groups[:limit]
    return groups


def _share_of_winner(page: PageMetrics, winner: PageMetrics) -> float:
    # Zero-click groups are graded on impressions instead
    if winner.clicks:
        return page.clicks / winner.clicks
    if winner.impressions:
        return page.impressions / winner.impressions
    return 0.0


def resolve_group(
    group: CannibalizationGroup,
    policy: ResolutionPolicy = ResolutionPolicy(),
) -> CannibalizationResolution:
    """Pick the winner of one group and grade the other pages."""
    # Pages are already ordered clicks desc, impressions desc, page asc
    winner = group.pages[0]
    total = group.total_clicks

    recommendations = []
    for page in group.pages[1:]:
        share_of_winner = _share_of_winner(page, winner)
        recommendations.append(PageRecommendation(
            page=page.page,
            action=policy.action_for(share_of_winner),
            click_share=round(page.clicks / total, 4) if total else 0.0,
            share_of_winner=round(share_of_winner, 4),
            clicks=page.clicks,
            impressions=page.impressions,
            position=page.position,
        ))

    return CannibalizationResolution(
        query=group.query,
        winner=winner,
        winner_share=round(winner.clicks / total, 4) if total else 0.0,
        recommendations=recommendations,
        total_clicks=group.total_clicks,
        total_impressions=group.total_impressions,
    )


def resolve_cannibalization(
    dataset: Dataset,
    policy: ResolutionPolicy = ResolutionPolicy(),
    min_impressions: int = 0,
    limit: Optional[int] = None,
) -> List[CannibalizationResolution]:
    """
    Detect cannibalization and recommend an action for each competing page.

    Args:
        dataset: Dataset split by query and page
        policy: Click-share thresholds
        min_impressions: Minimum impressions for a page to count
        limit: Maximum number of queries to return

    Returns:
        CannibalizationResolution list, highest combined impressions first
    """
    groups = detect_cannibalization(
        dataset, sort_by="impressions", min_impressions=min_impressions, limit=limit
    )
    return [resolve_group(g, policy) for g in groups]
