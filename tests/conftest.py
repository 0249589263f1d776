"""
Pytest Configuration and Shared Fixtures

Provides dataset builders, a recording sleep, and a RequestContext backed
by httpx.MockTransport so no test touches the network or the clock.
"""

import json
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx
import pytest

from gsc_insights.analytics import Dataset, Period, Row
from gsc_insights.collector import RequestContext, SearchConsoleClient
from gsc_insights.utils.config import Settings


# ============================================================================
# Time
# ============================================================================

class SleepRecorder:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float):
        self.delays.append(delay)


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()


# ============================================================================
# Datasets
# ============================================================================

PERIOD_A = Period(date(2024, 1, 1), date(2024, 1, 28))
PERIOD_B = Period(date(2024, 1, 29), date(2024, 2, 25))


def make_dataset(
    dimensions: Sequence[str],
    rows: List[Dict[str, Any]],
    period: Period = PERIOD_A,
) -> Dataset:
    """
    Build a Dataset from compact dicts.

    Example:
        make_dataset(["query"], [{"query": "a", "clicks": 10}])
    """
    built = []
    for r in rows:
        built.append(Row(
            keys=tuple(r[d] for d in dimensions),
            clicks=r.get("clicks", 0),
            impressions=r.get("impressions", 100),
            ctr=r.get("ctr", 0.0),
            position=r.get("position", 5.0),
            dimensions=tuple(dimensions),
        ))
    return Dataset(period=period, dimensions=tuple(dimensions), rows=tuple(built))


@pytest.fixture
def dataset_factory() -> Callable[..., Dataset]:
    return make_dataset


# ============================================================================
# HTTP
# ============================================================================

def json_response(status_code: int, body: Any) -> httpx.Response:
    return httpx.Response(status_code, json=body)


def google_error(status_code: int, message: str) -> httpx.Response:
    """Google API error envelope."""
    return json_response(status_code, {
        "error": {"code": status_code, "message": message, "status": "ERROR"},
    })


def request_body(request: httpx.Request) -> Dict[str, Any]:
    return json.loads(request.content) if request.content else {}


def make_context(
    handler: Callable[[httpx.Request], httpx.Response],
    sleep: Optional[SleepRecorder] = None,
    **settings,
) -> RequestContext:
    """RequestContext whose client answers every request with `handler`."""
    settings = Settings(**settings)
    client = SearchConsoleClient(
        access_token="test-token",
        api_key=settings.GOOGLE_CLOUD_API_KEY,
        transport=httpx.MockTransport(handler),
    )
    return RequestContext(client=client, settings=settings, sleep=sleep or SleepRecorder())


@pytest.fixture
def context_factory(sleep) -> Callable[..., RequestContext]:
    def factory(handler, **settings):
        return make_context(handler, sleep=sleep, **settings)
    return factory
