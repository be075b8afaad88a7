"""Version resolution service: specifier in, concrete upstream release out."""

import logging
import threading
from typing import Dict, List, Optional, Union

from common.errors import VersionNotFound
from common.http_client import HttpSettings
from common.logging_utils import extra_context

from .cache import TTLCache
from .comparator import max_version
from .models import Ecosystem, ResolvedVersion, normalize_ecosystem
from .parser import parse_version_spec
from .resolvers.base import IndexFetcher

logger = logging.getLogger(__name__)


class VersionResolutionService:
    """Resolve partial version specifiers against upstream release indices.

    Exact specifiers never touch the network. Partial ones (``3.12``, ``20``)
    are matched by prefix against the ecosystem's published releases and the
    numerically greatest match is returned. Every resolution is recorded so
    later verification steps reuse it.
    """

    def __init__(
        self,
        fetchers: Optional[Dict[str, IndexFetcher]] = None,
        cache: Optional[TTLCache] = None,
        settings: Optional[HttpSettings] = None,
    ):
        self.cache = cache if cache is not None else TTLCache()
        if fetchers is None:
            from ecosystems import build_index_fetchers  # pylint: disable=import-outside-toplevel
            fetchers = build_index_fetchers(self.cache, settings)
        self._fetchers: Dict[str, IndexFetcher] = {
            normalize_ecosystem(k): v for k, v in fetchers.items()
        }
        self._resolved: Dict[str, ResolvedVersion] = {}
        self._history: List[ResolvedVersion] = []
        self._lock = threading.Lock()

    def register_index_fetcher(self, name: str, fetcher: IndexFetcher) -> None:
        """Add or replace the index fetcher used for ``name``."""
        self._fetchers[normalize_ecosystem(name)] = fetcher

    def resolve(self, ecosystem: Union[str, Ecosystem], specifier: str) -> ResolvedVersion:
        """Resolve ``specifier`` for ``ecosystem``.

        Raises:
            InvalidVersionSpecifier: specifier is not N, N.N or N.N.N.
            NetworkUnavailable: the release index could not be fetched.
            VersionNotFound: no published release matches.
        """
        key = normalize_ecosystem(ecosystem)
        spec = parse_version_spec(specifier)

        if spec.is_exact:
            return self._record(ResolvedVersion(key, spec.raw, specifier))

        fetcher = self._fetchers.get(key)
        if fetcher is None:
            raise VersionNotFound(
                f"No release index for '{key}'; only exact versions are accepted",
                hint="Specify the full version, e.g. 1.2.3.",
            )

        candidates = fetcher.fetch_candidates(spec)
        prefix = spec.raw + "."
        best = max_version(c for c in candidates if c.startswith(prefix))
        if best is None:
            raise VersionNotFound(
                f"No {key} release matches '{spec.raw}'",
                context={"candidates": str(len(candidates))},
            )

        logger.info(
            "Resolved %s %s -> %s",
            key,
            spec.raw,
            best,
            extra=extra_context(event="resolve", component="versioning", target=key),
        )
        return self._record(ResolvedVersion(key, best, specifier))

    def _record(self, resolved: ResolvedVersion) -> ResolvedVersion:
        with self._lock:
            self._resolved[resolved.ecosystem] = resolved
            self._history.append(resolved)
        return resolved

    def last_resolved(self, ecosystem: Union[str, Ecosystem]) -> Optional[ResolvedVersion]:
        with self._lock:
            return self._resolved.get(normalize_ecosystem(ecosystem))

    @property
    def resolutions(self) -> List[ResolvedVersion]:
        with self._lock:
            return list(self._history)
