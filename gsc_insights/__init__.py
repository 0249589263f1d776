"""
GSC Insights

Resilient data acquisition and computed analytics on top of the
Google Search Console API:
1. Fetches complete, correctly paginated datasets (retry, permission fallback)
2. Derives insights (period comparison, decay, cannibalization, CTR benchmarks)
3. Builds composite reports that tolerate partial failure
"""

__version__ = "0.1.0"
