"""
Request Context

Everything an operation needs, passed explicitly: the API client, the
settings, and the auth context used for remediation hints. The caller
owns the lifecycle (create, use, close).
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from gsc_insights.utils.config import Settings, get_settings

from .client import SearchConsoleClient
from .errors import AuthContext
from .retry import RetryConfig

logger = logging.getLogger(__name__)


@dataclass
class RequestContext:
    """Client handle + configuration for one caller."""
    client: SearchConsoleClient
    settings: Settings = field(default_factory=get_settings)
    auth: AuthContext = field(default_factory=AuthContext)
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep

    @property
    def retry_config(self) -> RetryConfig:
        return self.settings.retry_config

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RequestContext":
        """
        Build a context (and its client) from settings.

        Args:
            settings: Settings instance (defaults to get_settings())

        Returns:
            RequestContext; close it with `await ctx.close()`
        """
        settings = settings or get_settings()
        client = SearchConsoleClient(
            access_token=settings.GSC_ACCESS_TOKEN,
            api_key=settings.GOOGLE_CLOUD_API_KEY,
            timeout=settings.API_TIMEOUT,
        )
        auth = AuthContext(
            mode=settings.GOOGLE_AUTH_MODE.lower(),
            identity=settings.GOOGLE_AUTH_IDENTITY,
        )
        logger.info(
            f"Auth mode: {auth.mode} ({auth.identity}); "
            f"CrUX {'configured' if settings.has_crux else 'not configured'}"
        )
        return cls(client=client, settings=settings, auth=auth)

    async def close(self):
        await self.client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
