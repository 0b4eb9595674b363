"""
zkpredicates.artifacts
======================

Fetch circuit artifacts (witness program, proving key, verification key) as
bytes from a local path, a ``file://`` URL, or an ``http(s)://`` URL.

Every failure surfaces as :class:`~zkpredicates.errors.ArtifactLoadFailure`
carrying the reference that failed. A loader may keep an in-memory copy of
what it fetched (``cache=True``); the cache belongs to the instance.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import unquote, urlparse

import httpx

from .errors import ArtifactLoadFailure
from .logging import get_logger

log = get_logger(__name__)

__all__ = ["ArtifactLoader"]


class ArtifactLoader:
    def __init__(
        self,
        *,
        timeout: float = 30.0,
        cache: bool = False,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.timeout = timeout
        self._client = client
        self._cache: Optional[Dict[str, bytes]] = {} if cache else None
        self._lock = threading.Lock()

    # -- public ---------------------------------------------------------------

    def fetch(self, ref: str) -> bytes:
        """Return the artifact bytes for `ref`."""
        if self._cache is not None:
            with self._lock:
                hit = self._cache.get(ref)
            if hit is not None:
                return hit

        data = self._fetch_uncached(ref)
        if not data:
            raise ArtifactLoadFailure(ref, "empty artifact")
        log.debug("artifact_loaded", ref=ref, size=len(data))

        if self._cache is not None:
            with self._lock:
                self._cache[ref] = data
        return data

    def load_json(self, ref: str) -> Any:
        raw = self.fetch(ref)
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise ArtifactLoadFailure(ref, f"invalid JSON: {e}") from e

    def clear(self) -> None:
        if self._cache is not None:
            with self._lock:
                self._cache.clear()

    # -- internals ------------------------------------------------------------

    def _fetch_uncached(self, ref: str) -> bytes:
        parsed = urlparse(ref)
        if parsed.scheme in ("http", "https"):
            return self._fetch_http(ref)
        if parsed.scheme == "file":
            return self._read_file(Path(unquote(parsed.path)), ref)
        if parsed.scheme and len(parsed.scheme) > 1:
            raise ArtifactLoadFailure(ref, f"unsupported scheme {parsed.scheme!r}")
        return self._read_file(Path(ref), ref)

    def _read_file(self, path: Path, ref: str) -> bytes:
        try:
            return path.read_bytes()
        except OSError as e:
            raise ArtifactLoadFailure(ref, e.strerror or str(e)) from e

    def _fetch_http(self, url: str) -> bytes:
        try:
            if self._client is not None:
                resp = self._client.get(url, timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout, follow_redirects=True) as client:
                    resp = client.get(url)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ArtifactLoadFailure(url, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ArtifactLoadFailure(url, str(e) or e.__class__.__name__) from e
        return resp.content
