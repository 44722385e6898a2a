"""Async HTTP transport shared by provider adapters, transcription and collaborators."""

import logging
from typing import Any

import httpx

from meal_analyzer.core.config import AnalyzerConfig
from meal_analyzer.core.exceptions import (
    UpstreamStatusError,
    UpstreamTimeoutError,
    UpstreamUnreachableError,
)

logger = logging.getLogger(__name__)


def _timeout(config: AnalyzerConfig) -> httpx.Timeout:
    return httpx.Timeout(config.timeout_s, connect=config.connect_timeout_s)


def _check_status(response: httpx.Response, url: str, upstream: str) -> httpx.Response:
    if not response.is_success:
        body = response.text[:300]
        logger.error("Upstream %s answered %d: %s", url, response.status_code, body)
        raise UpstreamStatusError(
            f"Upstream returned HTTP {response.status_code}",
            upstream=upstream,
            upstream_status=response.status_code,
        )
    return response


async def post_json(
    url: str,
    body: dict[str, Any],
    config: AnalyzerConfig,
    headers: dict[str, str] | None = None,
    upstream: str | None = None,
) -> httpx.Response:
    """
    POST a JSON body to an upstream service.

    Args:
        url: Full endpoint URL
        body: JSON-serializable request body
        config: Analyzer configuration for timeout settings
        headers: Extra headers (auth) to send along
        upstream: Name used in errors and logs instead of the URL

    Returns:
        httpx.Response with a 2xx status

    Raises:
        UpstreamUnreachableError: If connection to upstream fails
        UpstreamTimeoutError: If upstream request times out
        UpstreamStatusError: If upstream answers with a non-2xx status
    """
    upstream = upstream or url
    request_headers = {"Content-Type": "application/json", **(headers or {})}

    try:
        async with httpx.AsyncClient(timeout=_timeout(config)) as client:
            logger.debug(f"POST {url}")
            response = await client.post(url, json=body, headers=request_headers)

    except (httpx.ConnectError, httpx.NetworkError) as e:
        logger.error(f"Connection error to upstream {upstream}: {e}")
        raise UpstreamUnreachableError(
            f"Connection to upstream failed: {str(e)}",
            upstream=upstream,
        ) from e

    except httpx.TimeoutException as e:
        logger.error(f"Timeout error to upstream {upstream}: {e}")
        raise UpstreamTimeoutError(
            "Upstream did not respond in time",
            upstream=upstream,
        ) from e

    except httpx.HTTPError as e:
        logger.error(f"HTTP error talking to upstream {upstream}: {e}")
        raise UpstreamUnreachableError(
            f"Request to upstream failed: {str(e)}",
            upstream=upstream,
        ) from e

    return _check_status(response, url, upstream)


async def post_multipart(
    url: str,
    files: dict[str, tuple[str, bytes, str]],
    data: dict[str, str],
    config: AnalyzerConfig,
    headers: dict[str, str] | None = None,
    upstream: str | None = None,
) -> httpx.Response:
    """POST a multipart form (file upload) to an upstream service.

    Raises the same errors as :func:`post_json`.
    """
    upstream = upstream or url

    try:
        async with httpx.AsyncClient(timeout=_timeout(config)) as client:
            logger.debug(f"POST multipart {url}")
            response = await client.post(url, files=files, data=data, headers=headers or {})

    except (httpx.ConnectError, httpx.NetworkError) as e:
        logger.error(f"Connection error to upstream {upstream}: {e}")
        raise UpstreamUnreachableError(
            f"Connection to upstream failed: {str(e)}",
            upstream=upstream,
        ) from e

    except httpx.TimeoutException as e:
        logger.error(f"Timeout error to upstream {upstream}: {e}")
        raise UpstreamTimeoutError(
            "Upstream did not respond in time",
            upstream=upstream,
        ) from e

    except httpx.HTTPError as e:
        logger.error(f"HTTP error talking to upstream {upstream}: {e}")
        raise UpstreamUnreachableError(
            f"Request to upstream failed: {str(e)}",
            upstream=upstream,
        ) from e

    return _check_status(response, url, upstream)


async def fetch_bytes(url: str, config: AnalyzerConfig) -> tuple[bytes, str | None]:
    """
    Download a remote resource (meal photo, voice note).

    Returns:
        Tuple of (content bytes, content type header or None)

    Raises:
        UpstreamUnreachableError: If the resource host cannot be reached
        UpstreamTimeoutError: If the download times out
        UpstreamStatusError: If the host answers with a non-2xx status
    """
    try:
        async with httpx.AsyncClient(timeout=_timeout(config), follow_redirects=True) as client:
            logger.debug(f"GET {url}")
            response = await client.get(url)

    except httpx.TimeoutException as e:
        logger.error(f"Timeout fetching {url}: {e}")
        raise UpstreamTimeoutError("Remote resource did not respond in time", upstream=url) from e

    except httpx.HTTPError as e:
        logger.error(f"Failed to fetch {url}: {e}")
        raise UpstreamUnreachableError(f"Failed to fetch remote resource: {str(e)}", upstream=url) from e

    _check_status(response, url, url)
    content_type = response.headers.get("content-type")
    if content_type:
        content_type = content_type.split(";")[0].strip()
    return response.content, content_type or None
