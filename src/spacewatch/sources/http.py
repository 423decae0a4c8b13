"""Shared HTTP GET for feed adapters."""

from __future__ import annotations

import logging

import httpx

from spacewatch.errors import FetchError

logger = logging.getLogger(__name__)

USER_AGENT = "spacewatch/0.1"


def fetch_url(url: str, *, timeout: float, params: dict | None = None) -> httpx.Response:
    """GET *url* and return the response. Raises FetchError on any HTTP failure."""
    try:
        resp = httpx.get(
            url,
            params=params,
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )
        resp.raise_for_status()
    except httpx.TimeoutException as exc:
        raise FetchError(f"Timed out after {timeout}s fetching {url}") from exc
    except httpx.HTTPError as exc:
        raise FetchError(f"Failed to fetch {url}: {exc}") from exc
    logger.debug("Fetched %s (%d bytes)", url, len(resp.content))
    return resp


def fetch_json(url: str, *, timeout: float) -> object:
    """GET *url* and decode the body as JSON. Raises FetchError on failure."""
    resp = fetch_url(url, timeout=timeout)
    try:
        return resp.json()
    except ValueError as exc:
        raise FetchError(f"Invalid JSON from {url}: {exc}") from exc
