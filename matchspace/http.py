"""
Transport for the event store's REST endpoints.

Row windows are requested with ``Range`` headers rather than query parameters,
and a window that starts past the last row (HTTP 416) is an empty page. Sessions
are per thread; the comparison loader fetches two matches at once.
"""
from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional

import requests
from requests import Response
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import EngineSettings
from .exceptions import EventStoreError, EventStoreNotFoundError, EventStoreRateLimitError

RETRY_STATUSES = (429, 500, 502, 503, 504)
RANGE_NOT_SATISFIABLE = 416


def build_retry(settings: EngineSettings) -> Retry:
    """Retry idempotent reads on throttling and server errors with exponential backoff."""
    retries = settings.event_store_max_retries
    return Retry(
        total=retries,
        read=retries,
        connect=retries,
        backoff_factor=settings.event_store_backoff_factor,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=("GET",),
        respect_retry_after_header=True,
        raise_on_status=False,
    )


def range_headers(offset: int, limit: int) -> Dict[str, str]:
    """``Range`` header selecting rows ``offset`` .. ``offset + limit - 1``."""
    if limit < 1:
        raise ValueError(f"Page limit must be positive, got {limit}")
    return {"Range-Unit": "items", "Range": f"{int(offset)}-{int(offset) + int(limit) - 1}"}


class EventStoreTransport:
    """
    Per-thread sessions against one event store, with retries and error mapping.
    """

    def __init__(self, settings: EngineSettings):
        self.settings = settings
        self.base_url = settings.event_store_base_url.rstrip("/")
        self.timeout = settings.event_store_timeout
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._new_session()
            self._local.session = session
        return session

    def _new_session(self) -> requests.Session:
        session = requests.Session()
        adapter = HTTPAdapter(max_retries=build_retry(self.settings))
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        session.headers.update({"Accept": "application/json"})
        token = self.settings.event_store_token
        if token:
            session.headers.update({"apikey": token, "Authorization": f"Bearer {token}"})
        return session

    def get_json(self, path: str, *, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET a resource and return the decoded body, or None for an empty body.
        """
        response = self._send(path, params=params)
        self._raise_for_status(response, path)
        return self._decode(response, path)

    def get_rows(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        GET a list resource, optionally restricted to one window of rows.
        """
        headers = range_headers(offset, limit) if limit is not None else None
        response = self._send(path, params=params, headers=headers)
        if headers is not None and response.status_code == RANGE_NOT_SATISFIABLE:
            return []
        self._raise_for_status(response, path)
        payload = self._decode(response, path)
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise EventStoreError(f"Expected a list from '{path}', got {type(payload).__name__}")
        return payload

    def _send(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Response:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            return self.session.request(
                method="GET",
                url=url,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise EventStoreError(f"Event store request to '{path}' failed: {exc}") from exc

    @staticmethod
    def _decode(response: Response, path: str) -> Any:
        if not response.content:
            return None
        content_type = response.headers.get("Content-Type", "").lower()
        if "json" not in content_type:
            raise EventStoreError(
                f"Unexpected content type '{content_type or 'unknown'}' from '{path}'"
            )
        try:
            return response.json()
        except ValueError as exc:
            raise EventStoreError(f"Failed to parse JSON from '{path}'") from exc

    @staticmethod
    def _raise_for_status(response: Response, path: str) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return
        message = f"Event store request to '{path}' failed with status {status}"
        detail = _error_detail(response)
        if detail:
            message = f"{message}: {detail}"
        if status == 404:
            raise EventStoreNotFoundError(message, status_code=status)
        if status == 429:
            raise EventStoreRateLimitError(message, status_code=status)
        raise EventStoreError(message, status_code=status)


def _error_detail(response: Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        detail = body.get("message") or body.get("error") or body.get("hint")
        return str(detail) if detail else None
    return None
