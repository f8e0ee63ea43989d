"""Remote imagery service clients."""
from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from ..errors import ServiceError

log = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 20  # seconds


def fetch_json(
    url: str,
    *,
    error_cls: type = ServiceError,
    session: Optional[requests.Session] = None,
    timeout: float = _DEFAULT_TIMEOUT,
) -> Any:
    """GET *url* and return the decoded JSON body.

    Connection errors, timeouts, non-2xx responses and undecodable bodies
    are all raised as *error_cls*.  There is no retry: a later viewport
    change issues a fresh request.
    """
    getter = session.get if session is not None else requests.get
    try:
        resp = getter(url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        log.warning("Request failed for %s: %s", url[:120], exc)
        raise error_cls(f"Request failed: {exc}") from exc

    try:
        return resp.json()
    except ValueError as exc:
        log.warning("Invalid JSON from %s: %s", url[:120], exc)
        raise error_cls(f"Invalid response body: {exc}") from exc
