"""
Source fetcher for the IANA feeds.

This module provides an async downloader with TLS enforcement and HTTP
conditional caching: it sends If-Modified-Since or If-None-Match when the
previous download recorded them, skips the request entirely while a
Cache-Control max-age is still fresh, and treats 304 as "unchanged".
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlparse

import httpx

from .enums import FetchErrorCode
from .exceptions import NetworkError
from .models import DownloadMetadata


MAX_AGE_PATTERN = re.compile(r"max-age=(\d+)")


@dataclass
class FetchResult:
    """Outcome of one download attempt."""

    url: str
    unchanged: bool
    content: Optional[bytes] = None
    metadata: Optional[DownloadMetadata] = None
    status_code: int = 0


def parse_cache_max_age(cache_control: Optional[str]) -> Optional[int]:
    """
    Extract max-age seconds from a Cache-Control header.

    Args:
        cache_control: Header value, e.g. "public, max-age=3600"

    Returns:
        The max-age in seconds, or None if absent
    """
    if not cache_control:
        return None
    match = MAX_AGE_PATTERN.search(cache_control)
    if match:
        return int(match.group(1))
    return None


def _parse_timestamp(value: str) -> Optional[datetime]:
    try:
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def is_cache_fresh(metadata: DownloadMetadata, now: Optional[datetime] = None) -> bool:
    """
    Check whether a previous download is still within its max-age.

    Args:
        metadata: Metadata of the previous download
        now: Current time (defaults to the current UTC time)

    Returns:
        True if a max-age was recorded and has not elapsed yet
    """
    if not metadata.cache_max_age or not metadata.downloaded_at:
        return False
    downloaded_at = _parse_timestamp(metadata.downloaded_at)
    if downloaded_at is None:
        return False
    now = now or datetime.now(timezone.utc)
    age_seconds = (now - downloaded_at).total_seconds()
    return age_seconds < metadata.cache_max_age


def metadata_from_response(
    url: str,
    response: httpx.Response,
    now: Optional[datetime] = None,
) -> DownloadMetadata:
    """
    Record the caching headers of a successful download.

    Args:
        url: Requested URL
        response: The HTTP response
        now: Download time (defaults to the current UTC time)

    Returns:
        DownloadMetadata for the metadata store
    """
    now = now or datetime.now(timezone.utc)
    return DownloadMetadata(
        url=url,
        downloaded_at=now.isoformat().replace("+00:00", "Z"),
        etag=response.headers.get("etag") or None,
        last_modified=response.headers.get("last-modified") or None,
        cache_max_age=parse_cache_max_age(response.headers.get("cache-control")),
    )


def conditional_headers(metadata: Optional[DownloadMetadata]) -> dict[str, str]:
    """
    Build conditional request headers from a previous download.

    Last-Modified takes precedence over the ETag; only one is sent.
    """
    if metadata is None:
        return {}
    if metadata.last_modified:
        return {"If-Modified-Since": metadata.last_modified}
    if metadata.etag:
        return {"If-None-Match": metadata.etag}
    return {}


class SourceFetcher:
    """
    Async downloader with TLS enforcement and conditional caching.

    Use as an async context manager, or pass an existing httpx.AsyncClient
    (for example one built on httpx.MockTransport in tests).
    """

    def __init__(
        self,
        timeout: float = 30.0,
        user_agent: str = "tld-reconciler",
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize the fetcher.

        Args:
            timeout: Request timeout in seconds
            user_agent: User-Agent header sent with every request
            client: Optional preconfigured client; it is not closed by the fetcher
        """
        self._timeout = timeout
        self._user_agent = user_agent
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "SourceFetcher":
        """Async context manager entry."""
        if self._client is None:
            self._client = self._create_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    def _create_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            verify=True,  # TLS certificate verification enforced
            timeout=httpx.Timeout(self._timeout),
            follow_redirects=True,
            headers={"User-Agent": self._user_agent},
        )

    def _validate_url(self, url: str) -> None:
        """
        Validate that the source URL uses HTTPS.

        Raises:
            NetworkError: If the URL does not use HTTPS
        """
        parsed = urlparse(url)
        if parsed.scheme.lower() != "https":
            raise NetworkError(
                code=FetchErrorCode.TLS_ERROR.value,
                message=f"Source URL must use HTTPS: {url}",
                details={"url": url, "scheme": parsed.scheme},
            )

    async def fetch(
        self,
        url: str,
        metadata: Optional[DownloadMetadata] = None,
    ) -> FetchResult:
        """
        Download a source, honoring previous caching metadata.

        Args:
            url: HTTPS URL of the source
            metadata: Metadata recorded for the previous download, if any

        Returns:
            FetchResult; ``unchanged`` is True for 304 or a fresh cache

        Raises:
            NetworkError: On non-HTTPS URLs, transport failures, timeouts
                and non-success status codes
        """
        self._validate_url(url)

        headers = conditional_headers(metadata)
        if not headers and metadata is not None and is_cache_fresh(metadata):
            return FetchResult(url=url, unchanged=True)

        if self._client is None:
            self._client = self._create_client()
            self._owns_client = True

        try:
            response = await self._client.get(url, headers=headers)
        except httpx.TimeoutException as e:
            raise NetworkError(
                code=FetchErrorCode.TIMEOUT.value,
                message=f"Request to {url} timed out after {self._timeout}s",
                details={"url": url},
            ) from e
        except httpx.ConnectError as e:
            error_msg = str(e)
            code = FetchErrorCode.NETWORK_ERROR
            if "ssl" in error_msg.lower() or "certificate" in error_msg.lower():
                code = FetchErrorCode.TLS_ERROR
            raise NetworkError(
                code=code.value,
                message=f"Connection error downloading from {url}: {error_msg}",
                details={"url": url},
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(
                code=FetchErrorCode.NETWORK_ERROR.value,
                message=f"Network error downloading from {url}: {e}",
                details={"url": url},
            ) from e

        if response.status_code == 304:
            return FetchResult(url=url, unchanged=True, status_code=304)

        if response.status_code == 429:
            raise NetworkError(
                code=FetchErrorCode.RATE_LIMITED.value,
                message=f"Rate limited downloading from {url}",
                details={"url": url, "status_code": 429},
            )

        if response.status_code >= 500:
            raise NetworkError(
                code=FetchErrorCode.SERVER_ERROR.value,
                message=f"Failed to download file from {url}: {response.status_code} {response.reason_phrase}",
                details={"url": url, "status_code": response.status_code},
            )

        if not response.is_success:
            raise NetworkError(
                code=FetchErrorCode.HTTP_ERROR.value,
                message=f"Failed to download file from {url}: {response.status_code} {response.reason_phrase}",
                details={"url": url, "status_code": response.status_code},
            )

        return FetchResult(
            url=url,
            unchanged=False,
            content=response.content,
            metadata=metadata_from_response(url, response),
            status_code=response.status_code,
        )

    async def close(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._client and self._owns_client:
            await self._client.aclose()
        self._client = None
