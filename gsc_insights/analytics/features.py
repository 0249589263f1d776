"""
SERP Feature Tracking

Daily trends per search appearance (rich results, FAQ, video, AMP, ...)
from a dataset split by date and searchAppearance.
"""

from typing import Any, Dict

from .helpers import aggregate_rows, group_rows
from .models import Dataset


def track_serp_features(dataset: Dataset) -> Dict[str, Any]:
    """
    Build a daily series for every search appearance.

    Args:
        dataset: Dataset with "date" and "searchAppearance" dimensions

    Returns:
        Dict with one entry per feature, largest by impressions first
    """
    features = {}
    by_feature = group_rows(dataset.rows, lambda r: r.get("searchAppearance"))

    for feature, rows in by_feature.items():
        totals = aggregate_rows(rows)
        daily = []
        for day, day_rows in sorted(group_rows(rows, lambda r: r.get("date")).items()):
            t = aggregate_rows(day_rows)
            daily.append({
                "date": day,
                "clicks": int(t["clicks"]),
                "impressions": int(t["impressions"]),
                "ctr": round(t["ctr"], 4),
                "position": round(t["position"], 2),
            })
        features[feature] = {
            "total_clicks": int(totals["clicks"]),
            "total_impressions": int(totals["impressions"]),
            "days": len(daily),
            "daily": daily,
        }

    ordered = sorted(features.items(), key=lambda kv: (-kv[1]["total_impressions"], kv[0]))
    return {
        "period": str(dataset.period),
        "feature_count": len(ordered),
        "features": dict(ordered),
    }
