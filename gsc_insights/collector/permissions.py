"""
Permission Fallback

A Search Console property is addressable as a URL-prefix property
(https://example.com/) or as a domain property (sc-domain:example.com).
Users often have access to only one of the two, so a permission failure
on one form is retried once against the domain form.
"""

import logging
from typing import Awaitable, Callable, TypeVar
from urllib.parse import urlparse

from .errors import ErrorKind, classify_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

DOMAIN_PREFIX = "sc-domain:"


def normalize_site_url(site_url: str) -> str:
    """
    Convert a URL-prefix property to its domain property form.

    Args:
        site_url: Property identifier, e.g. "https://example.com/blog/"

    Returns:
        "sc-domain:<host>", or site_url unchanged if it is already a
        domain property or cannot be parsed as a URL
    """
    if site_url.startswith(DOMAIN_PREFIX):
        return site_url

    try:
        host = urlparse(site_url).hostname
    except ValueError:
        return site_url

    if not host:
        return site_url
    return f"{DOMAIN_PREFIX}{host}"


def is_permission_error(exc: BaseException) -> bool:
    return classify_error(exc).kind == ErrorKind.PERMISSION


async def with_permission_fallback(
    operation: Callable[[str], Awaitable[T]],
    site_url: str,
) -> T:
    """
    Run an operation against site_url, retrying once on the domain form.

    Args:
        operation: Coroutine function taking the property identifier
        site_url: Property identifier as given by the caller

    Returns:
        The operation's result

    Raises:
        The original error when it is not a permission error or no
        distinct fallback identifier exists; the fallback's own error
        when the retry also fails.
    """
    try:
        return await operation(site_url)
    except Exception as e:
        if not is_permission_error(e):
            raise

        fallback_url = normalize_site_url(site_url)
        if fallback_url == site_url:
            raise

        logger.warning(
            f"Permission denied for {site_url}, retrying as {fallback_url}"
        )
        return await operation(fallback_url)
