"""
Analytics Data Model

Rows and datasets are immutable once fetched. Result types are plain
dataclasses returned straight to the caller; to_dict() produces the
JSON-ready form.
"""

from dataclasses import dataclass, field, asdict
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple


DIMENSIONS = ("query", "page", "country", "device", "searchType", "searchAppearance", "date")


# ============================================================================
# ROWS, PERIODS, DATASETS
# ============================================================================

@dataclass(frozen=True)
class Row:
    """One Search Analytics record."""
    keys: Tuple[str, ...]
    clicks: int = 0
    impressions: int = 0
    ctr: float = 0.0
    position: float = 0.0
    dimensions: Tuple[str, ...] = ()

    def get(self, dimension: str) -> Optional[str]:
        """Value of a dimension, or None if the row was not split by it."""
        try:
            return self.keys[self.dimensions.index(dimension)]
        except (ValueError, IndexError):
            return None

    @classmethod
    def from_api(cls, raw: Dict[str, Any], dimensions: Sequence[str]) -> "Row":
        """Build a Row from a raw API row ({"keys": [...], "clicks": ...})."""
        return cls(
            keys=tuple(str(k) for k in raw.get("keys") or ()),
            clicks=int(raw.get("clicks") or 0),
            impressions=int(raw.get("impressions") or 0),
            ctr=float(raw.get("ctr") or 0.0),
            position=float(raw.get("position") or 0.0),
            dimensions=tuple(dimensions),
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {d: k for d, k in zip(self.dimensions, self.keys)}
        if not self.dimensions:
            result["keys"] = list(self.keys)
        result.update({
            "clicks": self.clicks,
            "impressions": self.impressions,
            "ctr": self.ctr,
            "position": self.position,
        })
        return result


@dataclass(frozen=True)
class Period:
    """Closed date range, both ends inclusive."""
    start_date: date
    end_date: date

    def __post_init__(self):
        if self.start_date > self.end_date:
            raise ValueError(
                f"Period start {self.start_date} is after end {self.end_date}"
            )

    @classmethod
    def parse(cls, start: str, end: str) -> "Period":
        return cls(date.fromisoformat(start), date.fromisoformat(end))

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def to_api(self) -> Dict[str, str]:
        return {
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
        }

    def __str__(self) -> str:
        return f"{self.start_date.isoformat()}..{self.end_date.isoformat()}"


@dataclass(frozen=True)
class Dataset:
    """Ordered rows for one period and one query shape."""
    period: Period
    dimensions: Tuple[str, ...]
    rows: Tuple[Row, ...] = ()

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self):
        return iter(self.rows)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": str(self.period),
            "dimensions": list(self.dimensions),
            "row_count": len(self.rows),
            "rows": [r.to_dict() for r in self.rows],
        }


# ============================================================================
# COMPARISON
# ============================================================================

@dataclass
class MetricDelta:
    """One metric in two periods. percent_change is None when before == 0."""
    before: float
    after: float
    delta: float
    percent_change: Optional[float]


@dataclass
class ComparisonRow:
    """Per-key comparison across two periods."""
    keys: Tuple[str, ...]
    clicks: MetricDelta
    impressions: MetricDelta
    ctr: MetricDelta
    position: MetricDelta
    in_period_a: bool = True
    in_period_b: bool = True


@dataclass
class ComparisonResult:
    """Side-by-side comparison of two datasets."""
    period_a: Period
    period_b: Period
    dimensions: Tuple[str, ...]
    rows: List[ComparisonRow] = field(default_factory=list)
    totals: Dict[str, MetricDelta] = field(default_factory=dict)
    # Dimension tuples seen more than once per period (their metrics were summed)
    duplicate_keys: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period_a": str(self.period_a),
            "period_b": str(self.period_b),
            "dimensions": list(self.dimensions),
            "totals": {k: asdict(v) for k, v in self.totals.items()},
            "duplicate_keys": dict(self.duplicate_keys),
            "rows": [
                {
                    **{d: k for d, k in zip(self.dimensions, r.keys)},
                    "clicks": asdict(r.clicks),
                    "impressions": asdict(r.impressions),
                    "ctr": asdict(r.ctr),
                    "position": asdict(r.position),
                    "in_period_a": r.in_period_a,
                    "in_period_b": r.in_period_b,
                }
                for r in self.rows
            ],
        }


# ============================================================================
# DECAY
# ============================================================================

@dataclass
class DecaySignal:
    """A page whose clicks did not grow between two periods."""
    page: str
    earlier_clicks: int
    recent_clicks: int
    click_loss: int
    loss_pct: float
    earlier_impressions: int = 0
    recent_impressions: int = 0
    earlier_position: Optional[float] = None
    recent_position: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ============================================================================
# CANNIBALIZATION
# ============================================================================

@dataclass
class PageMetrics:
    """Aggregate metrics for one page."""
    page: str
    clicks: int = 0
    impressions: int = 0
    ctr: float = 0.0
    position: float = 0.0


@dataclass
class CannibalizationGroup:
    """A query served by two or more distinct pages."""
    query: str
    pages: List[PageMetrics]
    total_clicks: int
    total_impressions: int
    position_variance: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ResolutionAction(Enum):
    """Recommended action for a competing page."""
    REDIRECT = "redirect"
    CONSOLIDATE = "consolidate"
    DIFFERENTIATE = "differentiate"


@dataclass
class PageRecommendation:
    """Action for one non-winning page in a cannibalization group."""
    page: str
    action: ResolutionAction
    click_share: float       # of the group's total clicks
    share_of_winner: float   # page clicks / winner clicks
    clicks: int = 0
    impressions: int = 0
    position: float = 0.0


@dataclass
class CannibalizationResolution:
    """Winner and per-page recommendations for one query."""
    query: str
    winner: PageMetrics
    winner_share: float
    recommendations: List[PageRecommendation]
    total_clicks: int
    total_impressions: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "winner": asdict(self.winner),
            "winner_share": self.winner_share,
            "total_clicks": self.total_clicks,
            "total_impressions": self.total_impressions,
            "recommendations": [
                {**asdict(r), "action": r.action.value}
                for r in self.recommendations
            ],
        }


# ============================================================================
# KEYWORDS & CTR
# ============================================================================

@dataclass
class KeywordChange:
    """A query that appeared or disappeared between two periods."""
    query: str
    clicks: int
    impressions: int
    position: float


@dataclass
class KeywordDiff:
    """New and lost queries between an earlier and a later period."""
    new: List[KeywordChange] = field(default_factory=list)
    lost: List[KeywordChange] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "new_count": len(self.new),
            "lost_count": len(self.lost),
            "new": [asdict(k) for k in self.new],
            "lost": [asdict(k) for k in self.lost],
        }


@dataclass
class CtrBenchmark:
    """A row whose CTR falls materially below the benchmark for its position."""
    keys: Tuple[str, ...]
    position: float
    position_bucket: int
    actual_ctr: float
    expected_ctr: float
    ctr_gap: float
    clicks: int
    impressions: int
    missed_clicks: int

    def to_dict(self) -> Dict[str, Any]:
        return {**asdict(self), "keys": list(self.keys)}


@dataclass
class QuickWin:
    """High-impression, low-CTR query in striking distance."""
    query: str
    page: Optional[str]
    clicks: int
    impressions: int
    ctr: float
    position: float
    expected_ctr: float
    potential_clicks: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
