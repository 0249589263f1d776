"""
Search Console API Client

Async HTTP client with:
- Connection pooling
- Google error envelope parsing into SearchConsoleError (status + message)
- Request/response logging

Retry and permission fallback are deliberately not done here; see
retry.py and permissions.py. Credentials are acquired elsewhere and handed
in as a bearer token.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from .errors import SearchConsoleError, SectionNotConfigured

logger = logging.getLogger(__name__)


class SearchConsoleClient:
    """
    Async client for the Search Console, PageSpeed and CrUX APIs.

    Usage:
        async with SearchConsoleClient(access_token="ya29...") as client:
            rows = await client.search_analytics("https://example.com/", {
                "startDate": "2024-01-01",
                "endDate": "2024-01-31",
                "dimensions": ["query"],
                "rowLimit": 1000,
            })
    """

    WEBMASTERS_URL = "https://www.googleapis.com/webmasters/v3"
    SEARCH_CONSOLE_URL = "https://searchconsole.googleapis.com/v1"
    PAGESPEED_URL = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"
    CRUX_URL = "https://chromeuxreport.googleapis.com/v1/records:queryRecord"
    CRUX_HISTORY_URL = "https://chromeuxreport.googleapis.com/v1/records:queryHistoryRecord"

    def __init__(
        self,
        access_token: Optional[str] = None,
        api_key: Optional[str] = None,
        max_connections: int = 10,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Search Console client.

        Args:
            access_token: OAuth2 / service account bearer token
            api_key: Google Cloud API key (enables CrUX)
            max_connections: Maximum concurrent connections
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.access_token = access_token
        self.api_key = api_key

        self._client = httpx.AsyncClient(
            headers={"Content-Type": "application/json"},
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )
        self._closed = False

    # ========================================================================
    # TRANSPORT
    # ========================================================================

    async def request(
        self,
        method: str,
        url: str,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        authenticated: bool = True,
    ) -> Dict[str, Any]:
        """
        Make a single HTTP request.

        Args:
            method: HTTP method
            url: Absolute endpoint URL
            payload: JSON body
            params: Query string parameters
            authenticated: Send the bearer token

        Returns:
            Parsed JSON response (empty dict for empty bodies)

        Raises:
            SearchConsoleError: On non-2xx responses or transport failures
        """
        if self._closed:
            raise SearchConsoleError("Client is closed")

        headers = {}
        if authenticated and self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"

        logger.debug(f"{method} {url}")

        try:
            response = await self._client.request(
                method, url, json=payload, params=params, headers=headers
            )
        except httpx.TimeoutException as e:
            raise SearchConsoleError(f"Request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise SearchConsoleError(f"HTTP error: {e}") from e

        body = _parse_json(response)

        if response.status_code >= 400:
            raise SearchConsoleError(
                _error_message(body, response.status_code),
                status_code=response.status_code,
                response=body,
            )

        return body

    async def close(self):
        """Close the HTTP client."""
        if not self._closed:
            await self._client.aclose()
            self._closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ========================================================================
    # SEARCH CONSOLE
    # ========================================================================

    def _site_path(self, site_url: str) -> str:
        return f"{self.WEBMASTERS_URL}/sites/{quote(site_url, safe='')}"

    async def list_sites(self) -> List[Dict[str, Any]]:
        """List properties the credentials can access."""
        result = await self.request("GET", f"{self.WEBMASTERS_URL}/sites")
        return result.get("siteEntry", [])

    async def search_analytics(
        self,
        site_url: str,
        body: Dict[str, Any],
    ) -> List[Dict[str, Any]]:
        """
        Run one Search Analytics query (one page of at most rowLimit rows).

        Args:
            site_url: Property identifier (URL-prefix or sc-domain:)
            body: Query body (startDate, endDate, dimensions, rowLimit, startRow, ...)

        Returns:
            Raw row dicts ({"keys": [...], "clicks": ..., ...})
        """
        result = await self.request(
            "POST", f"{self._site_path(site_url)}/searchAnalytics/query", payload=body
        )
        return result.get("rows") or []

    async def inspect_url(
        self,
        site_url: str,
        inspection_url: str,
        language_code: str = "en-US",
    ) -> Dict[str, Any]:
        """Inspect a URL's index status (URL Inspection API)."""
        result = await self.request(
            "POST",
            f"{self.SEARCH_CONSOLE_URL}/urlInspection/index:inspect",
            payload={
                "inspectionUrl": inspection_url,
                "siteUrl": site_url,
                "languageCode": language_code,
            },
        )
        return result.get("inspectionResult", {})

    # ========================================================================
    # SITEMAPS
    # ========================================================================

    def _sitemap_path(self, site_url: str, feedpath: str) -> str:
        return f"{self._site_path(site_url)}/sitemaps/{quote(feedpath, safe='')}"

    async def list_sitemaps(
        self,
        site_url: str,
        sitemap_index: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """List sitemaps submitted for a property (optionally within one sitemap index)."""
        params = {"sitemapIndex": sitemap_index} if sitemap_index else None
        result = await self.request("GET", f"{self._site_path(site_url)}/sitemaps", params=params)
        return result.get("sitemap", [])

    async def get_sitemap(self, site_url: str, feedpath: str) -> Dict[str, Any]:
        """Status of one submitted sitemap."""
        return await self.request("GET", self._sitemap_path(site_url, feedpath))

    async def submit_sitemap(self, site_url: str, feedpath: str) -> Dict[str, Any]:
        """Submit (or resubmit) a sitemap. The API answers with an empty body."""
        return await self.request("PUT", self._sitemap_path(site_url, feedpath))

    async def delete_sitemap(self, site_url: str, feedpath: str) -> Dict[str, Any]:
        """Remove a sitemap from the property. The API answers with an empty body."""
        return await self.request("DELETE", self._sitemap_path(site_url, feedpath))

    # ========================================================================
    # PAGESPEED & CRUX
    # ========================================================================

    async def pagespeed(
        self,
        url: str,
        strategy: str = "mobile",
        categories: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Run PageSpeed Insights (Lighthouse). No auth required."""
        params: Dict[str, Any] = {
            "url": url,
            "strategy": strategy,
            "category": categories or ["performance", "seo"],
        }
        if self.api_key:
            params["key"] = self.api_key
        return await self.request("GET", self.PAGESPEED_URL, params=params, authenticated=False)

    async def _crux(self, endpoint: str, url: str, form_factor: Optional[str]) -> Dict[str, Any]:
        if not self.api_key:
            raise SectionNotConfigured(
                "crux",
                "Set GOOGLE_CLOUD_API_KEY to enable Core Web Vitals (CrUX) data",
            )
        payload: Dict[str, Any] = {"url": url}
        if form_factor:
            payload["formFactor"] = form_factor
        result = await self.request(
            "POST",
            endpoint,
            payload=payload,
            params={"key": self.api_key},
            authenticated=False,
        )
        return result.get("record", {})

    async def crux_query(
        self,
        url: str,
        form_factor: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Query Chrome UX Report field data for a URL.

        Raises:
            SectionNotConfigured: When no API key is configured
        """
        return await self._crux(self.CRUX_URL, url, form_factor)

    async def crux_history(
        self,
        url: str,
        form_factor: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Query the CrUX History API (weekly p75 series for the last ~6 months).

        Raises:
            SectionNotConfigured: When no API key is configured
        """
        return await self._crux(self.CRUX_HISTORY_URL, url, form_factor)


def _parse_json(response: httpx.Response) -> Dict[str, Any]:
    if not response.content:
        return {}
    try:
        body = response.json()
    except ValueError:
        return {"raw": response.text}
    return body if isinstance(body, dict) else {"data": body}


def _error_message(body: Dict[str, Any], status_code: int) -> str:
    """Extract the message from Google's {"error": {...}} envelope."""
    error = body.get("error")
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    if isinstance(error, str):
        return error
    return f"API request failed: {status_code}"
