"""Shared HTTP helper for the data fetchers."""

from __future__ import annotations

from typing import Any

import requests

from goldfinger.errors import FetchError, FetchTimeoutError, HttpStatusError, ParseError


def get_json(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout: float,
) -> dict[str, Any]:
    """GET ``url`` and decode the JSON body, mapping failures to FetchError."""
    try:
        response = requests.get(url, params=params, headers=headers, timeout=timeout)
    except requests.Timeout as exc:
        raise FetchTimeoutError(f"Request to {url} timed out after {timeout}s") from exc
    except requests.RequestException as exc:
        raise FetchError(f"Request to {url} failed: {exc}") from exc

    if response.status_code != 200:
        raise HttpStatusError(response.status_code, response.text.strip())

    try:
        body = response.json()
    except ValueError as exc:
        raise ParseError(f"Response from {url} was not valid JSON") from exc
    if not isinstance(body, dict):
        raise ParseError(f"Response from {url} was not a JSON object")
    return body


__all__ = ["get_json"]
