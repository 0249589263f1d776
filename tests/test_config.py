"""
Tests for configuration and the request context.
"""

import pytest

from gsc_insights.collector import RequestContext, RetryConfig
from gsc_insights.utils.config import ROW_CEILING, Settings


class TestSettings:
    """Test environment-based settings."""

    def test_defaults(self):
        settings = Settings(_env_file=None, GOOGLE_CLOUD_API_KEY=None)

        assert settings.RETRY_MAX_ATTEMPTS == 4
        assert settings.MAX_BATCH_SIZE == 100
        assert settings.INSPECTION_DELAY == 1.0
        assert settings.DAILY_INSPECTION_QUOTA == 2000
        assert not settings.has_crux

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("MAX_BATCH_SIZE", "10")
        monkeypatch.setenv("google_cloud_api_key", "abc")

        settings = Settings(_env_file=None)

        assert settings.MAX_BATCH_SIZE == 10
        assert settings.has_crux

    @pytest.mark.parametrize("configured,expected", [
        (1000, 1000),
        (ROW_CEILING, ROW_CEILING),
        (50_000, ROW_CEILING),
        (0, 1),
    ])
    def test_page_size_clamped(self, configured, expected):
        assert Settings(_env_file=None, PAGE_SIZE=configured).page_size == expected

    def test_retry_config(self):
        config = Settings(_env_file=None, RETRY_MAX_ATTEMPTS=2, RETRY_BASE_DELAY=0.5).retry_config

        assert config == RetryConfig(max_attempts=2, base_delay=0.5)


class TestRequestContext:
    """Test context construction from settings."""

    @pytest.mark.asyncio
    async def test_from_settings(self):
        settings = Settings(
            _env_file=None,
            GOOGLE_AUTH_MODE="OAuth2",
            GOOGLE_AUTH_IDENTITY="analyst@example.com",
            GSC_ACCESS_TOKEN="ya29.token",
            GOOGLE_CLOUD_API_KEY=None,
        )

        async with RequestContext.from_settings(settings) as ctx:
            assert ctx.auth.mode == "oauth2"
            assert ctx.auth.identity == "analyst@example.com"
            assert ctx.client.access_token == "ya29.token"
            assert ctx.client.api_key is None
            assert ctx.retry_config.max_attempts == settings.RETRY_MAX_ATTEMPTS

        assert ctx.client._closed
