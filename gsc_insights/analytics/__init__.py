"""
Computed Analytics for GSC Insights

Pure, deterministic transforms over one or two already-fetched datasets.
No network or clock access, so everything here is unit-testable offline.

1. **Period comparison** - per-key delta and % change across two periods
2. **Decay / drop alerts** - pages losing clicks, optionally thresholded
3. **Cannibalization** - queries served by several pages, plus resolution
4. **Keyword diff** - new and lost queries
5. **CTR benchmark / quick wins** - CTR against the expected-CTR curve

Example Usage:
    from gsc_insights.analytics import compare_periods, detect_decay

    result = compare_periods(earlier_dataset, recent_dataset)
    print(result.totals["clicks"].percent_change)
"""

from .models import (
    DIMENSIONS,
    Row,
    Period,
    Dataset,
    MetricDelta,
    ComparisonRow,
    ComparisonResult,
    DecaySignal,
    PageMetrics,
    CannibalizationGroup,
    CannibalizationResolution,
    PageRecommendation,
    ResolutionAction,
    KeywordChange,
    KeywordDiff,
    CtrBenchmark,
    QuickWin,
)
from .helpers import (
    CTR_CURVE,
    get_ctr_for_position,
    percent_change,
    population_variance,
)
from .comparison import compare_periods, diff_keywords, summarize_search_types
from .decay import detect_decay, detect_drop_alerts, get_decay_summary
from .cannibalization import (
    ResolutionPolicy,
    detect_cannibalization,
    resolve_cannibalization,
)
from .ctr import ctr_benchmark, detect_quick_wins
from .features import track_serp_features

__all__ = [
    # Models
    "DIMENSIONS",
    "Row",
    "Period",
    "Dataset",
    "MetricDelta",
    "ComparisonRow",
    "ComparisonResult",
    "DecaySignal",
    "PageMetrics",
    "CannibalizationGroup",
    "CannibalizationResolution",
    "PageRecommendation",
    "ResolutionAction",
    "KeywordChange",
    "KeywordDiff",
    "CtrBenchmark",
    "QuickWin",

    # Helpers
    "CTR_CURVE",
    "get_ctr_for_position",
    "percent_change",
    "population_variance",

    # Transforms
    "compare_periods",
    "diff_keywords",
    "summarize_search_types",
    "detect_decay",
    "detect_drop_alerts",
    "get_decay_summary",
    "ResolutionPolicy",
    "detect_cannibalization",
    "resolve_cannibalization",
    "ctr_benchmark",
    "detect_quick_wins",
    "track_serp_features",
]
