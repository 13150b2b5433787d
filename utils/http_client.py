"""Outbound HTTP for JSON API calls and binary image downloads."""

from __future__ import annotations

import json
from typing import Any

from curl_cffi import requests
from loguru import logger

from utils.constants import REQUEST_TIMEOUT


class UpstreamError(RuntimeError):
    """Base class for failures talking to a remote collaborator."""


class TransientUpstreamError(UpstreamError):
    """Non-2xx response or network failure; worth retrying."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ParseError(UpstreamError):
    """The response body was not well-formed JSON."""


class HttpTransport:
    """Thin wrapper over curl_cffi with a mandatory timeout.

    Each call issues an independent request so the transport is safe to share
    between worker threads.
    """

    def __init__(
        self,
        timeout: float = REQUEST_TIMEOUT,
        headers: dict[str, str] | None = None,
        impersonate: str = "chrome",
    ) -> None:
        self.timeout = timeout
        self.headers = dict(headers or {})
        self.impersonate = impersonate

    def _get(self, url: str, params: dict[str, Any] | None = None):
        try:
            resp = requests.get(
                url,
                params=params,
                headers=self.headers or None,
                impersonate=self.impersonate,
                timeout=self.timeout,
            )
        except Exception as exc:
            raise TransientUpstreamError(f"Request to {url} failed: {exc}") from exc
        if not 200 <= resp.status_code < 300:
            raise TransientUpstreamError(f"HTTP {resp.status_code}: {url}", resp.status_code)
        return resp

    def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """GET a JSON document."""
        resp = self._get(url, params)
        try:
            return json.loads(resp.text)
        except ValueError as exc:
            raise ParseError(f"Malformed JSON from {url}: {exc}") from exc

    def get_bytes(self, url: str) -> bytes:
        """GET a binary payload such as a card image."""
        resp = self._get(url)
        content = resp.content
        logger.debug(f"Fetched {len(content)} bytes from {url}")
        return content


__all__ = ["HttpTransport", "ParseError", "TransientUpstreamError", "UpstreamError"]
