"""Shared HTTP helpers used by the index fetchers, checksum fetchers and
signature downloads.

Encapsulates timeout, retry and caching behaviour so callers only deal with
parsed results or a ``NetworkUnavailable`` error.

Timeouts come from an ``HttpSettings`` value passed per call. ``total`` is a
wall-clock deadline for one attempt, body included: requests' own read
timeout only bounds each socket read, so every attempt runs in a worker
thread that the caller stops waiting for once the deadline passes.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

import requests

from constants import Constants
from common.errors import NetworkUnavailable
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)

_TEXT_CHUNK = 8192
_FILE_CHUNK = 65536


@dataclass(frozen=True)
class HttpSettings:
    """Network limits for one caller: connect/total seconds and attempts."""
    connect: float = Constants.CONNECT_TIMEOUT
    total: float = Constants.REQUEST_TIMEOUT
    retries: int = Constants.HTTP_RETRY_MAX

    def bounded(self) -> "HttpSettings":
        """Clamp to the documented upper bounds."""
        return HttpSettings(
            connect=max(0.1, min(float(self.connect), Constants.CONNECT_TIMEOUT)),
            total=max(0.1, min(float(self.total), Constants.REQUEST_TIMEOUT)),
            retries=max(1, int(self.retries)),
        )

    @property
    def timeout(self) -> Tuple[float, float]:
        """(connect, read) tuple for requests."""
        return (self.connect, self.total)


DEFAULT_SETTINGS = HttpSettings()


def _resolve(settings: Optional[HttpSettings]) -> HttpSettings:
    return (settings or DEFAULT_SETTINGS).bounded()


# Simple in-memory cache for HTTP responses
_http_cache: Dict[str, Tuple[Any, float]] = {}
_cache_lock = threading.Lock()


def _get_cache_key(method: str, url: str, headers: Optional[Dict[str, str]] = None) -> str:
    """Generate cache key from request parameters."""
    headers_str = str(sorted(headers.items())) if headers else ""
    return f"{method}:{url}:{headers_str}"


def _is_cache_valid(cache_entry: Tuple[Any, float]) -> bool:
    """Check if cache entry is still valid."""
    _, cached_time = cache_entry
    return time.time() - cached_time < Constants.HTTP_CACHE_TTL_SEC


def clear_cache() -> None:
    with _cache_lock:
        _http_cache.clear()


def _backoff(attempt: int) -> None:
    time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** attempt))


class _Attempt(threading.Thread):
    """Runs ``func(cancelled, *args)`` on a daemon thread."""

    def __init__(self, func: Callable[..., Any], *args: Any):
        super().__init__(name="vergate-http", daemon=True)
        self.cancelled = threading.Event()
        self._func = func
        self._args = args
        self.result: Any = None
        self.error: Optional[Exception] = None

    def run(self) -> None:
        try:
            self.result = self._func(self.cancelled, *self._args)
        except Exception as exc:  # re-raised on the calling thread
            self.error = exc


def _call_with_deadline(seconds: float, func: Callable[..., Any], *args: Any) -> Any:
    """Return ``func``'s result, or raise ``requests.Timeout`` after ``seconds``.

    A worker still running at the deadline is told to stop at its next chunk
    and left behind; it never touches the caller's state afterwards.
    """
    attempt = _Attempt(func, *args)
    attempt.start()
    attempt.join(seconds)
    if attempt.is_alive():
        attempt.cancelled.set()
        raise requests.Timeout(f"no complete response within {seconds:g}s")
    if attempt.error is not None:
        raise attempt.error
    return attempt.result


def _decode(body: bytes, encoding: Optional[str]) -> str:
    try:
        return body.decode(encoding or "utf-8", errors="replace")
    except LookupError:
        return body.decode("utf-8", errors="replace")


def _get_text(
    cancelled: threading.Event,
    url: str,
    headers: Dict[str, str],
    timeout: Tuple[float, float],
    kwargs: Dict[str, Any],
) -> Tuple[int, Dict[str, str], str]:
    response = requests.get(url, timeout=timeout, headers=headers, stream=True, **kwargs)
    try:
        body = bytearray()
        for chunk in response.iter_content(chunk_size=_TEXT_CHUNK):
            if cancelled.is_set():
                raise requests.Timeout("abandoned after deadline")
            body.extend(chunk)
        return response.status_code, dict(response.headers), _decode(bytes(body), response.encoding)
    finally:
        response.close()


def robust_get(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    settings: Optional[HttpSettings] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], str]:
    """Perform GET request with timeout, retries, and caching with DEBUG traces.

    Returns ``(0, {}, message)`` when every attempt failed at the transport
    level or ran past the deadline; HTTP error statuses are returned as-is.
    """
    settings = _resolve(settings)
    cache_key = _get_cache_key("GET", url, headers)
    safe_target = safe_url(url)

    with _cache_lock:
        entry = _http_cache.get(cache_key)
        if entry is not None and _is_cache_valid(entry):
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP cache hit",
                    extra=extra_context(
                        event="cache_hit",
                        component="http_client",
                        action="GET",
                        target=safe_target
                    )
                )
            return entry[0]

    merged_headers = {"User-Agent": Constants.USER_AGENT}
    if headers:
        merged_headers.update(headers)

    last_exception = None
    for attempt in range(settings.retries):
        if attempt:
            _backoff(attempt - 1)
        with Timer() as t:
            try:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request",
                        extra=extra_context(
                            event="http_request",
                            component="http_client",
                            action="GET",
                            target=safe_target,
                            attempt=attempt + 1
                        )
                    )

                result = _call_with_deadline(
                    settings.total, _get_text, url, merged_headers, settings.timeout, kwargs
                )
            except requests.Timeout:
                last_exception = "timeout"
                logger.debug("HTTP timeout (attempt %d) for %s", attempt + 1, safe_target)
                continue
            except requests.RequestException as exc:
                last_exception = str(exc)
                logger.debug("HTTP request exception (attempt %d) for %s: %s",
                             attempt + 1, safe_target, exc)
                continue

            status_code = result[0]
            if status_code >= 500 and attempt + 1 < settings.retries:
                last_exception = f"HTTP {status_code}"
                continue

            if status_code < 500:  # Don't cache server errors
                with _cache_lock:
                    _http_cache[cache_key] = (result, time.time())

            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response",
                    extra=extra_context(
                        event="http_response",
                        component="http_client",
                        action="GET",
                        status_code=status_code,
                        duration_ms=t.duration_ms(),
                        target=safe_target
                    )
                )
            return result

    # All retries failed
    return 0, {}, f"Request failed after {settings.retries} attempts: {last_exception}"


def fetch_text(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    settings: Optional[HttpSettings] = None,
) -> str:
    """GET ``url`` and return the body, raising NetworkUnavailable otherwise."""
    status_code, _, text = robust_get(url, headers=headers, settings=settings)
    if status_code != 200:
        raise NetworkUnavailable(
            f"Fetching {safe_url(url)} failed",
            context={"status": str(status_code), "detail": text[:200] if status_code == 0 else ""},
        )
    if not text or not text.strip():
        raise NetworkUnavailable(f"Empty response from {safe_url(url)}")
    return text


def get_json(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    settings: Optional[HttpSettings] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], Optional[Any]]:
    """Perform GET request and parse JSON response with DEBUG traces.

    Args:
        url: Target URL
        headers: Optional request headers
        settings: Timeouts and retries for this call
        **kwargs: Additional requests.get parameters

    Returns:
        Tuple of (status_code, headers_dict, parsed_json_or_none)
    """
    status_code, response_headers, text = robust_get(url, headers=headers, settings=settings, **kwargs)

    if status_code == 200 and text:
        try:
            return status_code, response_headers, json.loads(text)
        except json.JSONDecodeError:
            logger.debug("JSON decode error for %s", safe_url(url))
            return status_code, response_headers, None

    return status_code, response_headers, None


def _stream_to_file(
    cancelled: threading.Event,
    url: str,
    destination: str,
    timeout: Tuple[float, float],
) -> int:
    """Write the body to a private temp file, renamed over ``destination`` on success."""
    response = requests.get(
        url,
        timeout=timeout,
        headers={"User-Agent": Constants.USER_AGENT},
        stream=True,
    )
    try:
        if response.status_code != 200:
            return response.status_code
        directory = os.path.dirname(os.path.abspath(destination))
        fd, partial = tempfile.mkstemp(dir=directory, prefix=".vergate-", suffix=".part")
        try:
            with os.fdopen(fd, "wb") as handle:
                for chunk in response.iter_content(chunk_size=_FILE_CHUNK):
                    if cancelled.is_set():
                        raise requests.Timeout("abandoned after deadline")
                    if chunk:
                        handle.write(chunk)
            if cancelled.is_set():
                raise requests.Timeout("abandoned after deadline")
            os.replace(partial, destination)
        finally:
            if os.path.exists(partial):
                os.remove(partial)
        return response.status_code
    finally:
        response.close()


def download_file(
    url: str,
    destination: str,
    *,
    settings: Optional[HttpSettings] = None,
    max_seconds: Optional[float] = None,
) -> str:
    """Stream ``url`` to ``destination``; NetworkUnavailable on any failure.

    Each attempt must finish within ``max_seconds`` (default: the settings'
    total). Downloads are not cached and no partial file is left behind.
    """
    settings = _resolve(settings)
    deadline = max_seconds if max_seconds is not None else settings.total
    safe_target = safe_url(url)
    last_error = ""
    for attempt in range(settings.retries):
        if attempt:
            _backoff(attempt - 1)
        try:
            status_code = _call_with_deadline(
                deadline, _stream_to_file, url, destination, settings.timeout
            )
        except requests.RequestException as exc:
            last_error = str(exc)
            logger.debug("Download attempt %d failed for %s: %s", attempt + 1, safe_target, exc)
            continue
        if status_code == 200:
            logger.debug("Downloaded %s to %s", safe_target, destination)
            return destination
        last_error = f"HTTP {status_code}"
        if status_code < 500:
            break
    raise NetworkUnavailable(
        f"Download of {safe_target} failed",
        context={"detail": last_error},
    )
