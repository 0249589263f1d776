"""
Tests for the Computed Analytics Engine.

All transforms are pure, so every test builds datasets in memory.
"""

import pytest

from gsc_insights.analytics import (
    CTR_CURVE,
    ResolutionAction,
    ResolutionPolicy,
    compare_periods,
    ctr_benchmark,
    detect_cannibalization,
    detect_decay,
    detect_drop_alerts,
    detect_quick_wins,
    diff_keywords,
    get_ctr_for_position,
    get_decay_summary,
    percent_change,
    population_variance,
    resolve_cannibalization,
    summarize_search_types,
    track_serp_features,
)
from gsc_insights.analytics.helpers import weighted_position

from conftest import PERIOD_A, PERIOD_B, make_dataset


# ============================================================================
# HELPERS
# ============================================================================

class TestPercentChange:
    """Test percent change arithmetic."""

    def test_drop(self):
        assert percent_change(10, 5) == -50.0

    def test_growth(self):
        assert percent_change(4, 5) == 25.0

    def test_zero_baseline_is_undefined(self):
        """0 -> n has no percent change; never inf or NaN."""
        assert percent_change(0, 5) is None
        assert percent_change(0, 0) is None


class TestCtrCurve:
    """Test expected CTR by position."""

    def test_top_ten_from_curve(self):
        for position, ctr in CTR_CURVE.items():
            assert get_ctr_for_position(position) == ctr

    def test_average_position_rounds_to_bucket(self):
        assert get_ctr_for_position(1.4) == CTR_CURVE[1]
        assert get_ctr_for_position(2.6) == CTR_CURVE[3]

    def test_monotonically_non_increasing(self):
        positions = [p / 2 for p in range(2, 201)]
        values = [get_ctr_for_position(p) for p in positions]
        assert all(a >= b for a, b in zip(values, values[1:]))

    def test_beyond_page_one(self):
        assert 0 < get_ctr_for_position(15) < CTR_CURVE[10]
        assert get_ctr_for_position(80) == 0.001

    def test_no_position(self):
        assert get_ctr_for_position(0) == 0.0


class TestAggregationHelpers:
    """Test variance and weighted position."""

    def test_population_variance(self):
        assert population_variance([3.0, 9.0]) == 9.0
        assert population_variance([4.0]) == 0.0

    def test_weighted_position(self):
        ds = make_dataset(["page"], [
            {"page": "/a", "impressions": 300, "position": 2.0},
            {"page": "/b", "impressions": 100, "position": 6.0},
        ])
        assert weighted_position(ds.rows) == 3.0

    def test_weighted_position_without_impressions(self):
        ds = make_dataset(["page"], [
            {"page": "/a", "impressions": 0, "position": 2.0},
            {"page": "/b", "impressions": 0, "position": 6.0},
        ])
        assert weighted_position(ds.rows) == 4.0


# ============================================================================
# PERIOD COMPARISON
# ============================================================================

class TestComparePeriods:
    """Test side-by-side period comparison."""

    @pytest.fixture
    def result(self):
        a = make_dataset(["query"], [
            {"query": "a", "clicks": 10},
            {"query": "b", "clicks": 3},
        ], PERIOD_A)
        b = make_dataset(["query"], [
            {"query": "a", "clicks": 5},
            {"query": "c", "clicks": 4},
        ], PERIOD_B)
        return compare_periods(a, b)

    def test_drop_reads_as_negative(self, result):
        """10 -> 5 clicks is delta -5, -50%."""
        row = next(r for r in result.rows if r.keys == ("a",))
        assert row.clicks.before == 10
        assert row.clicks.after == 5
        assert row.clicks.delta == -5
        assert row.clicks.percent_change == -50.0

    def test_key_only_in_later_period(self, result):
        row = next(r for r in result.rows if r.keys == ("c",))
        assert row.clicks.before == 0
        assert row.clicks.delta == 4
        assert row.clicks.percent_change is None
        assert not row.in_period_a
        assert row.in_period_b

    def test_key_only_in_earlier_period(self, result):
        row = next(r for r in result.rows if r.keys == ("b",))
        assert row.clicks.after == 0
        assert row.clicks.percent_change == -100.0
        assert row.in_period_a
        assert not row.in_period_b

    def test_every_key_appears_once(self, result):
        assert sorted(r.keys for r in result.rows) == [("a",), ("b",), ("c",)]

    def test_sorted_by_absolute_click_delta(self, result):
        assert [r.keys[0] for r in result.rows] == ["a", "c", "b"]

    def test_totals(self, result):
        assert result.totals["clicks"].before == 13
        assert result.totals["clicks"].after == 9
        assert result.totals["clicks"].percent_change == -30.77

    def test_limit(self):
        a = make_dataset(["query"], [{"query": q, "clicks": 10} for q in "abcde"])
        b = make_dataset(["query"], [], PERIOD_B)
        assert len(compare_periods(a, b, limit=2).rows) == 2

    def test_empty_datasets(self):
        result = compare_periods(
            make_dataset(["query"], []), make_dataset(["query"], [], PERIOD_B)
        )
        assert result.rows == []
        assert result.totals["clicks"].percent_change is None

    def test_duplicate_keys_reported(self):
        """Repeated dimension tuples are summed and counted per period."""
        a = make_dataset(["query"], [
            {"query": "a", "clicks": 10},
            {"query": "a", "clicks": 10},
        ], PERIOD_A)
        b = make_dataset(["query"], [{"query": "a", "clicks": 5}], PERIOD_B)

        result = compare_periods(a, b)

        assert result.rows[0].clicks.before == 20
        assert result.duplicate_keys == {"period_a": 1, "period_b": 0}
        assert result.to_dict()["duplicate_keys"] == {"period_a": 1, "period_b": 0}

    def test_no_duplicates(self, result):
        assert result.duplicate_keys == {"period_a": 0, "period_b": 0}

    def test_to_dict_labels_dimensions(self, result):
        data = result.to_dict()
        assert data["period_a"] == "2024-01-01..2024-01-28"
        assert data["rows"][0]["query"] == "a"


# ============================================================================
# DECAY & DROP ALERTS
# ============================================================================

@pytest.fixture
def decay_datasets():
    earlier = make_dataset(["page"], [
        {"page": "/p1", "clicks": 100},
        {"page": "/p2", "clicks": 40},
        {"page": "/p3", "clicks": 20},
        {"page": "/p4", "clicks": 50},
        {"page": "/p5", "clicks": 0},
    ], PERIOD_A)
    recent = make_dataset(["page"], [
        {"page": "/p1", "clicks": 40},
        {"page": "/p2", "clicks": 100},
        {"page": "/p4", "clicks": 30},
        {"page": "/p5", "clicks": 7},
    ], PERIOD_B)
    return earlier, recent


class TestDetectDecay:
    """Test content decay detection."""

    def test_loss_and_percentage(self, decay_datasets):
        """100 -> 40 clicks is a loss of 60 (60%)."""
        signals = detect_decay(*decay_datasets)
        p1 = next(s for s in signals if s.page == "/p1")
        assert p1.click_loss == 60
        assert p1.loss_pct == 60.0

    def test_growth_is_not_decay(self, decay_datasets):
        pages = [s.page for s in detect_decay(*decay_datasets)]
        assert "/p2" not in pages

    def test_zero_click_baseline_skipped(self, decay_datasets):
        pages = [s.page for s in detect_decay(*decay_datasets)]
        assert "/p5" not in pages

    def test_page_missing_from_recent_period(self, decay_datasets):
        p3 = next(s for s in detect_decay(*decay_datasets) if s.page == "/p3")
        assert p3.recent_clicks == 0
        assert p3.loss_pct == 100.0
        assert p3.recent_position is None

    def test_sorted_by_loss_then_page(self, decay_datasets):
        pages = [s.page for s in detect_decay(*decay_datasets)]
        assert pages == ["/p1", "/p3", "/p4"]

    def test_min_clicks(self, decay_datasets):
        pages = [s.page for s in detect_decay(*decay_datasets, min_clicks=50)]
        assert pages == ["/p1", "/p4"]

    def test_summary(self, decay_datasets):
        summary = get_decay_summary(detect_decay(*decay_datasets))
        assert summary["total_pages"] == 3
        assert summary["total_click_loss"] == 100
        assert summary["max_loss_pct"] == 100.0

    def test_summary_empty(self):
        assert get_decay_summary([])["total_pages"] == 0


class TestDropAlerts:
    """Test threshold-based drop alerts."""

    def test_default_threshold_is_fifty_percent(self, decay_datasets):
        pages = [s.page for s in detect_drop_alerts(*decay_datasets)]
        # /p4 lost 40%
        assert pages == ["/p1", "/p3"]

    def test_threshold_is_inclusive(self, decay_datasets):
        pages = [s.page for s in detect_drop_alerts(*decay_datasets, threshold_pct=40)]
        assert "/p4" in pages

    def test_limit(self, decay_datasets):
        assert len(detect_drop_alerts(*decay_datasets, limit=1)) == 1


# ============================================================================
# CANNIBALIZATION
# ============================================================================

@pytest.fixture
def query_page_dataset():
    return make_dataset(["query", "page"], [
        {"query": "shoes", "page": "/a", "clicks": 30, "position": 3.0},
        {"query": "shoes", "page": "/b", "clicks": 10, "position": 9.0},
        {"query": "hats", "page": "/c", "clicks": 50, "position": 1.0},
        {"query": "socks", "page": "/d", "impressions": 500, "position": 4.0},
        {"query": "socks", "page": "/e", "impressions": 500, "position": 5.0},
        {"query": "belts", "page": "/f", "impressions": 100, "position": 2.0},
        {"query": "belts", "page": "/g", "impressions": 0, "position": 8.0},
    ])


class TestDetectCannibalization:
    """Test multi-page query detection."""

    def test_single_page_query_never_reported(self, query_page_dataset):
        queries = [g.query for g in detect_cannibalization(query_page_dataset)]
        assert "hats" not in queries

    def test_zero_impression_pages_do_not_count(self, query_page_dataset):
        queries = [g.query for g in detect_cannibalization(query_page_dataset)]
        assert "belts" not in queries

    def test_position_variance(self, query_page_dataset):
        """Positions 3.0 and 9.0 have population variance 9.0."""
        shoes = next(g for g in detect_cannibalization(query_page_dataset) if g.query == "shoes")
        assert shoes.position_variance == 9.0
        assert shoes.total_clicks == 40
        assert [p.page for p in shoes.pages] == ["/a", "/b"]

    def test_sort_by_variance(self, query_page_dataset):
        groups = detect_cannibalization(query_page_dataset, sort_by="variance")
        assert [g.query for g in groups] == ["shoes", "socks"]

    def test_sort_by_impressions(self, query_page_dataset):
        groups = detect_cannibalization(query_page_dataset, sort_by="impressions")
        assert [g.query for g in groups] == ["socks", "shoes"]

    def test_ties_break_by_query(self):
        ds = make_dataset(["query", "page"], [
            {"query": q, "page": p, "position": pos}
            for q in ("zeta", "alpha")
            for p, pos in (("/x", 2.0), ("/y", 4.0))
        ])
        assert [g.query for g in detect_cannibalization(ds)] == ["alpha", "zeta"]

    def test_min_impressions(self, query_page_dataset):
        groups = detect_cannibalization(query_page_dataset, min_impressions=200)
        assert [g.query for g in groups] == ["socks"]

    def test_invalid_sort_key(self, query_page_dataset):
        with pytest.raises(ValueError):
            detect_cannibalization(query_page_dataset, sort_by="clicks")


class TestResolveCannibalization:
    """Test winner selection and per-page recommendations."""

    @pytest.fixture
    def resolution(self):
        ds = make_dataset(["query", "page"], [
            {"query": "shoes", "page": "/c", "clicks": 20, "impressions": 1000},
            {"query": "shoes", "page": "/a", "clicks": 100, "impressions": 1000},
            {"query": "shoes", "page": "/d", "clicks": 5, "impressions": 1000},
            {"query": "shoes", "page": "/b", "clicks": 60, "impressions": 1000},
        ])
        return resolve_cannibalization(ds)[0]

    def test_winner_has_most_clicks(self, resolution):
        assert resolution.winner.page == "/a"
        assert resolution.winner_share == 0.5405

    def test_recommendations(self, resolution):
        actions = {r.page: r.action for r in resolution.recommendations}
        assert actions == {
            "/b": ResolutionAction.DIFFERENTIATE,
            "/c": ResolutionAction.CONSOLIDATE,
            "/d": ResolutionAction.REDIRECT,
        }

    def test_winner_not_in_recommendations(self, resolution):
        assert "/a" not in [r.page for r in resolution.recommendations]

    def test_zero_click_group_uses_impressions(self):
        ds = make_dataset(["query", "page"], [
            {"query": "rare", "page": "/a", "impressions": 1000},
            {"query": "rare", "page": "/b", "impressions": 50},
        ])
        resolution = resolve_cannibalization(ds)[0]
        assert resolution.winner.page == "/a"
        assert resolution.recommendations[0].action == ResolutionAction.REDIRECT

    def test_to_dict_serializes_action(self, resolution):
        data = resolution.to_dict()
        assert data["recommendations"][0]["action"] == "differentiate"


class TestResolutionPolicy:
    """Test policy thresholds."""

    def test_monotonic_in_share(self):
        policy = ResolutionPolicy()
        order = [ResolutionAction.REDIRECT, ResolutionAction.CONSOLIDATE, ResolutionAction.DIFFERENTIATE]
        ranks = [order.index(policy.action_for(s / 100)) for s in range(0, 101)]
        assert ranks == sorted(ranks)

    def test_custom_thresholds(self):
        policy = ResolutionPolicy(redirect_below=0.3, consolidate_below=0.8)
        assert policy.action_for(0.2) == ResolutionAction.REDIRECT
        assert policy.action_for(0.5) == ResolutionAction.CONSOLIDATE
        assert policy.action_for(0.8) == ResolutionAction.DIFFERENTIATE

    def test_inverted_thresholds_rejected(self):
        with pytest.raises(ValueError):
            ResolutionPolicy(redirect_below=0.6, consolidate_below=0.2)


# ============================================================================
# KEYWORDS, CTR, SERP FEATURES
# ============================================================================

class TestDiffKeywords:
    """Test new / lost query detection."""

    def test_new_and_lost(self):
        earlier = make_dataset(["query"], [
            {"query": "a", "clicks": 5},
            {"query": "b", "clicks": 5},
        ])
        later = make_dataset(["query"], [
            {"query": "b", "clicks": 5},
            {"query": "c", "clicks": 8},
        ], PERIOD_B)

        diff = diff_keywords(earlier, later)

        assert [k.query for k in diff.new] == ["c"]
        assert [k.query for k in diff.lost] == ["a"]
        assert diff.new[0].clicks == 8
        assert diff.to_dict()["new_count"] == 1


class TestCtrBenchmark:
    """Test CTR against the position benchmark."""

    @pytest.fixture
    def dataset(self):
        return make_dataset(["query"], [
            {"query": "under", "impressions": 1000, "ctr": 0.05, "clicks": 50, "position": 1.0},
            {"query": "fine", "impressions": 1000, "ctr": 0.30, "clicks": 300, "position": 1.0},
            {"query": "noisy", "impressions": 10, "ctr": 0.0, "position": 1.0},
        ])

    def test_flags_rows_below_benchmark(self, dataset):
        flagged = ctr_benchmark(dataset)
        assert [b.keys for b in flagged] == [("under",)]
        assert flagged[0].expected_ctr == CTR_CURVE[1]
        assert flagged[0].missed_clicks == 267

    def test_tolerance(self, dataset):
        # With no tolerance 0.30 < 0.317 is flagged too
        flagged = ctr_benchmark(dataset, tolerance=0.0)
        assert {b.keys for b in flagged} == {("under",), ("fine",)}


class TestQuickWins:
    """Test striking-distance opportunities."""

    def test_filters(self):
        ds = make_dataset(["query", "page"], [
            {"query": "win", "page": "/a", "impressions": 1000, "ctr": 0.02, "clicks": 20, "position": 6.0},
            {"query": "top", "page": "/a", "impressions": 1000, "ctr": 0.02, "position": 2.0},
            {"query": "good-ctr", "page": "/a", "impressions": 1000, "ctr": 0.10, "position": 6.0},
            {"query": "few", "page": "/a", "impressions": 50, "ctr": 0.02, "position": 6.0},
        ])

        wins = detect_quick_wins(ds)

        assert [w.query for w in wins] == ["win"]
        assert wins[0].page == "/a"
        assert wins[0].potential_clicks == 49


class TestSerpFeatures:
    """Test daily series per search appearance."""

    def test_daily_series(self):
        ds = make_dataset(["date", "searchAppearance"], [
            {"date": "2024-01-02", "searchAppearance": "VIDEO", "clicks": 1, "impressions": 10},
            {"date": "2024-01-01", "searchAppearance": "VIDEO", "clicks": 2, "impressions": 20},
            {"date": "2024-01-01", "searchAppearance": "FAQ_RICH_RESULT", "clicks": 5, "impressions": 100},
        ])

        result = track_serp_features(ds)

        assert list(result["features"]) == ["FAQ_RICH_RESULT", "VIDEO"]
        video = result["features"]["VIDEO"]
        assert video["total_clicks"] == 3
        assert [d["date"] for d in video["daily"]] == ["2024-01-01", "2024-01-02"]


class TestSearchTypeSummary:
    """Test per-search-type totals."""

    def test_click_share(self):
        summary = summarize_search_types({
            "web": make_dataset(["query"], [{"query": "a", "clicks": 90}]),
            "image": make_dataset(["query"], [{"query": "a", "clicks": 10}]),
        })

        assert summary["total_clicks"] == 100
        assert summary["search_types"]["web"]["click_share"] == 0.9
        assert summary["search_types"]["image"]["click_share"] == 0.1

    def test_no_clicks(self):
        summary = summarize_search_types({"news": make_dataset(["query"], [])})
        assert summary["search_types"]["news"]["click_share"] == 0.0
