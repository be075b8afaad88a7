"""Publisher checksum retrieval backing Tier 3 verification.

Two shapes exist upstream: a per-file checksum next to the artifact
(``<url>.sha256``) and an aggregate manifest listing many files (a
``SHA256SUMS`` text file, go.dev's JSON release index, the ruby-lang.org
downloads page). Parsers are pure functions; fetch helpers raise
``NetworkUnavailable`` when the publisher cannot be reached.
"""
from __future__ import annotations

import logging
import re
import threading
from functools import partial
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from common.errors import InvalidChecksumFormat, NetworkUnavailable, VergateError
from common.hashing import algorithm_for_digest, first_token
from common.http_client import HttpSettings, fetch_text, get_json
from common.logging_utils import safe_url
from constants import Category, Constants
from ecosystems import (
    GO_RELEASES_JSON,
    HASHICORP_RELEASES,
    KUBERNETES_RELEASE,
    NODEJS_DIST,
    PYTHON_FTP,
    RUBY_DOWNLOADS_PAGE,
    get_strategy,
    map_arch,
)
from versioning.models import Ecosystem, normalize_ecosystem, to_ecosystem

logger = logging.getLogger(__name__)

# fn(version, arch) -> digest or None
ToolChecksumFetcher = Callable[[str, str], Optional[str]]


@dataclass(frozen=True)
class PublishedChecksum:
    digest: str
    algorithm: str
    source: str


@dataclass(frozen=True)
class ChecksumQuery:
    """What Tier 3 knows about the artifact being verified."""
    name: str
    version: str
    filename: Optional[str] = None
    url: Optional[str] = None
    arch: str = Constants.DEFAULT_ARCH


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------

def parse_checksum_file(text: str) -> str:
    """Digest from a per-file checksum (``<hex>`` or ``<hex>  <name>``).

    Raises:
        InvalidChecksumFormat: the first token is not a 64/128 hex digest.
    """
    digest = first_token(text)
    algorithm_for_digest(digest)
    return digest.lower()


def parse_checksums_manifest(text: str, filename: str) -> Optional[str]:
    """Digest listed for ``filename`` in a ``<hex>  <name>`` manifest."""
    for line in (text or "").splitlines():
        parts = line.strip().split()
        if len(parts) < 2:
            continue
        name = parts[-1].lstrip("*")
        if name.startswith("./"):
            name = name[2:]
        if name == filename:
            return parts[0].lower()
    return None


def parse_go_release_index(data: Any, version: str, filename: str) -> Optional[str]:
    """SHA-256 for ``filename`` of release ``go<version>`` in go.dev's JSON."""
    if not isinstance(data, list):
        return None
    for release in data:
        if not isinstance(release, dict) or release.get("version") != f"go{version}":
            continue
        for item in release.get("files") or []:
            if isinstance(item, dict) and item.get("filename") == filename:
                digest = item.get("sha256")
                return digest if isinstance(digest, str) and digest else None
    return None


def parse_ruby_downloads(html: str, version: str) -> Optional[str]:
    """SHA-256 shown under ``Ruby <version>`` on ruby-lang.org's downloads page."""
    marker = re.compile(r">Ruby " + re.escape(version) + r"(?![\d.])")
    match = marker.search(html or "")
    if match is None:
        return None
    window = html[match.end():match.end() + 2000]
    digest = re.search(r"sha256:\s*([0-9a-fA-F]{64})", window)
    return digest.group(1).lower() if digest else None


# ---------------------------------------------------------------------------
# Fetch helpers, also used by registered tool fetchers
# ---------------------------------------------------------------------------

def fetch_checksum_file(url: str, settings: Optional[HttpSettings] = None) -> str:
    """Fetch and parse a per-file checksum."""
    return parse_checksum_file(fetch_text(url, settings=settings))


def fetch_checksums_manifest(
    url: str, filename: str, settings: Optional[HttpSettings] = None
) -> Optional[str]:
    """Fetch a ``checksums.txt``/``SHA256SUMS`` manifest and pick ``filename``."""
    return parse_checksums_manifest(fetch_text(url, settings=settings), filename)


# ---------------------------------------------------------------------------
# Built-in strategies: (query, filename, settings) -> (digest, source) or None
# ---------------------------------------------------------------------------

def _python(query: ChecksumQuery, filename: str, settings: Optional[HttpSettings]):
    url = f"{PYTHON_FTP}/{query.version}/{filename}.sha256"
    return fetch_checksum_file(url, settings), url


def _nodejs(query: ChecksumQuery, filename: str, settings: Optional[HttpSettings]):
    url = f"{NODEJS_DIST}/v{query.version}/SHASUMS256.txt"
    return fetch_checksums_manifest(url, filename, settings), url


def _golang(query: ChecksumQuery, filename: str, settings: Optional[HttpSettings]):
    status, _, data = get_json(GO_RELEASES_JSON, settings=settings)
    if status != 200 or data is None:
        raise NetworkUnavailable("go.dev release index unavailable", context={"status": str(status)})
    return parse_go_release_index(data, query.version, filename), GO_RELEASES_JSON


def _ruby(query: ChecksumQuery, filename: str, settings: Optional[HttpSettings]):
    page = fetch_text(RUBY_DOWNLOADS_PAGE, settings=settings)
    return parse_ruby_downloads(page, query.version), RUBY_DOWNLOADS_PAGE


def _terraform(query: ChecksumQuery, filename: str, settings: Optional[HttpSettings]):
    url = f"{HASHICORP_RELEASES}/{query.version}/terraform_{query.version}_SHA256SUMS"
    return fetch_checksums_manifest(url, filename, settings), url


def _kubectl(query: ChecksumQuery, filename: str, settings: Optional[HttpSettings]):
    arch = map_arch(query.arch, "amd64", "arm64")
    url = f"{KUBERNETES_RELEASE}/v{query.version}/bin/linux/{arch}/kubectl.sha256"
    return fetch_checksum_file(url, settings), url


def _suffix_strategy(suffix: str):
    def strategy(query: ChecksumQuery, filename: str, settings: Optional[HttpSettings]):
        if not query.url:
            return None
        url = query.url + suffix
        return fetch_checksum_file(url, settings), url
    return strategy


_STRATEGIES: Dict[Ecosystem, Callable] = {
    Ecosystem.PYTHON: _python,
    Ecosystem.NODEJS: _nodejs,
    Ecosystem.GOLANG: _golang,
    Ecosystem.RUBY: _ruby,
    Ecosystem.RUST: _suffix_strategy(".sha256"),
    Ecosystem.JAVA: _suffix_strategy(".sha256.txt"),
    Ecosystem.TERRAFORM: _terraform,
    Ecosystem.KUBECTL: _kubectl,
}


def _terraform_tool(version: str, arch: str, settings: Optional[HttpSettings] = None) -> Optional[str]:
    filename = f"terraform_{version}_linux_{map_arch(arch, 'amd64', 'arm64')}.zip"
    return _terraform(ChecksumQuery("terraform", version, arch=arch), filename, settings)[0]


def _kubectl_tool(version: str, arch: str, settings: Optional[HttpSettings] = None) -> Optional[str]:
    return _kubectl(ChecksumQuery("kubectl", version, arch=arch), "kubectl", settings)[0]


class PublishedChecksumFetcher:
    """Tier 3 source: built-in ecosystem strategies plus a tool registry.

    Returns None when no source applies or the publisher does not list the
    artifact; raises ``NetworkUnavailable`` when the publisher is unreachable
    or a registered tool fetcher fails, and ``InvalidChecksumFormat`` when a
    malformed digest comes back.
    """

    def __init__(self, settings: Optional[HttpSettings] = None) -> None:
        self.settings = settings
        self._tools: Dict[str, ToolChecksumFetcher] = {}
        self._lock = threading.Lock()
        self.register_tool_checksum_fetcher("terraform", partial(_terraform_tool, settings=settings))
        self.register_tool_checksum_fetcher("kubectl", partial(_kubectl_tool, settings=settings))

    def register_tool_checksum_fetcher(self, name: str, fetcher: ToolChecksumFetcher) -> None:
        """Register ``fetcher(version, arch) -> Optional[str]`` for tool ``name``."""
        with self._lock:
            self._tools[normalize_ecosystem(name)] = fetcher

    def has_tool_fetcher(self, name: str) -> bool:
        with self._lock:
            return normalize_ecosystem(name) in self._tools

    def fetch(self, category: Category, query: ChecksumQuery) -> Optional[PublishedChecksum]:
        if category is Category.TOOL:
            return self._fetch_tool(query)
        return self._fetch_builtin(query)

    def _fetch_tool(self, query: ChecksumQuery) -> Optional[PublishedChecksum]:
        with self._lock:
            fetcher = self._tools.get(normalize_ecosystem(query.name))
        if fetcher is None:
            return None
        try:
            digest = fetcher(query.version, query.arch)
        except VergateError:
            raise
        except Exception as exc:
            logger.warning("Checksum fetcher for %s failed: %s", query.name, exc)
            raise NetworkUnavailable(
                f"Checksum fetcher for {query.name} failed",
                context={"detail": f"{type(exc).__name__}: {exc}"},
            ) from exc
        if not digest:
            return None
        if not isinstance(digest, str):
            raise InvalidChecksumFormat(
                f"Checksum fetcher for {query.name} returned {type(digest).__name__}, not a hex digest"
            )
        return PublishedChecksum(
            digest=digest.strip().lower(),
            algorithm=algorithm_for_digest(digest),
            source=f"registered fetcher for {query.name}",
        )

    def _fetch_builtin(self, query: ChecksumQuery) -> Optional[PublishedChecksum]:
        ecosystem = to_ecosystem(query.name)
        strategy = _STRATEGIES.get(ecosystem) if ecosystem else None
        if strategy is None:
            return None
        filename = query.filename
        if not filename:
            eco_strategy = get_strategy(ecosystem)
            filename = eco_strategy.default_filename(query.version, query.arch) if eco_strategy else None
        result = strategy(query, filename or "", self.settings)
        if result is None:
            return None
        digest, source = result
        if not digest:
            logger.info("Publisher does not list %s at %s", filename, safe_url(source))
            return None
        return PublishedChecksum(
            digest=digest.lower(),
            algorithm=algorithm_for_digest(digest),
            source=source,
        )
