"""Thin helpers shared by the Storage and Management API clients."""

from __future__ import annotations

from typing import Any

import requests
from requests.adapters import HTTPAdapter

from supabase_migrator.utils.logging import (
    is_debug_api_enabled,
    log_api_request,
    log_api_response,
)


def create_session() -> requests.Session:
    """Create a pooled HTTP session sized for concurrent transfers."""
    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=16, pool_maxsize=64)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def is_success(response: requests.Response) -> bool:
    return 200 <= response.status_code < 300


def response_text(response: requests.Response) -> str:
    """Return the response body as text, or an empty string if unreadable."""
    try:
        return response.text or ""
    except (UnicodeDecodeError, requests.RequestException):
        return ""


def send(
    session: requests.Session,
    method: str,
    url: str,
    *,
    json_body: dict[str, Any] | None = None,
    **kwargs: Any,
) -> requests.Response:
    """Issue a request, logging it when API debug mode is on."""
    log_api_request(method, url, json_body)
    if json_body is not None:
        kwargs["json"] = json_body
    response = session.request(method, url, **kwargs)
    # Decoding the body is skipped unless it will be logged
    body = response_text(response) if is_debug_api_enabled() else None
    log_api_response(response.status_code, url, body)
    return response
