"""Base class for remote release index fetchers."""

from abc import ABC, abstractmethod
import logging
from typing import Iterable, Optional, Set

from common.errors import NetworkUnavailable
from common.http_client import HttpSettings
from constants import Constants

from ..cache import TTLCache
from ..comparator import is_plain_version
from ..models import VersionSpec

logger = logging.getLogger(__name__)


class IndexFetcher(ABC):
    """Abstract base for one upstream index format.

    Subclasses implement ``_fetch_raw`` (network + parse). Filtering to plain
    numeric versions, caching and the "no candidates" error live here.
    """

    def __init__(self, cache: Optional[TTLCache] = None, settings: Optional[HttpSettings] = None):
        """Initialize fetcher with optional cache.

        Args:
            cache: Optional cache instance for index results
            settings: Timeouts and retries for index requests
        """
        self.cache = cache
        self.settings = settings

    @property
    @abstractmethod
    def source(self) -> str:
        """Stable description of the upstream source, used as cache key."""

    @abstractmethod
    def _fetch_raw(self, spec: VersionSpec) -> Iterable[str]:
        """Fetch and parse the upstream index into raw version strings."""

    def _cache_key(self, spec: VersionSpec) -> str:
        return self.source

    def fetch_candidates(self, spec: VersionSpec) -> Set[str]:
        """Return the set of plain release versions published upstream.

        Raises:
            NetworkUnavailable: fetch failed or nothing parseable came back.
        """
        key = self._cache_key(spec)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return set(cached)

        candidates = {v for v in self._fetch_raw(spec) if is_plain_version(v)}
        if not candidates:
            raise NetworkUnavailable(
                f"Resolution unavailable: no versions parsed from {self.source}",
                hint="Pin an exact version to build without network access.",
            )
        logger.debug("Fetched %d candidates from %s", len(candidates), self.source)
        if self.cache is not None:
            self.cache.set(key, frozenset(candidates), Constants.INDEX_CACHE_TTL_SEC)
        return candidates
