"""Fetcher for JSON release indices (Node.js, Go, Adoptium)."""

from typing import Any, List, Optional

from common.errors import NetworkUnavailable
from common.http_client import HttpSettings, get_json
from common.logging_utils import safe_url

from ..cache import TTLCache
from ..models import VersionSpec
from .base import IndexFetcher


def _dig(item: Any, path: str) -> Any:
    """Follow a dotted field path through nested dicts."""
    for part in path.split("."):
        if not isinstance(item, dict):
            return None
        item = item.get(part)
    return item


def parse_json_index(data: Any, field: str, strip_prefix: str = "") -> List[str]:
    """Pull version strings out of a JSON array of release objects.

    ``strip_prefix`` is removed from the front (``v20.1.0`` -> ``20.1.0``,
    ``go1.23.4`` -> ``1.23.4``) and build metadata after ``+`` is dropped.
    """
    if not isinstance(data, list):
        return []
    versions: List[str] = []
    for item in data:
        value = _dig(item, field)
        if not isinstance(value, str):
            continue
        if strip_prefix and value.startswith(strip_prefix):
            value = value[len(strip_prefix):]
        versions.append(value.split("+", 1)[0])
    return versions


class JsonIndexFetcher(IndexFetcher):
    """JSON array endpoint; ``url`` may reference ``{major}``."""

    def __init__(
        self,
        url: str,
        field: str = "version",
        strip_prefix: str = "",
        cache: Optional[TTLCache] = None,
        settings: Optional[HttpSettings] = None,
    ):
        super().__init__(cache, settings)
        self.url = url
        self.field = field
        self.strip_prefix = strip_prefix

    @property
    def source(self) -> str:
        return self.url

    def _url_for(self, spec: VersionSpec) -> str:
        if "{major}" in self.url:
            return self.url.format(major=spec.major)
        return self.url

    def _cache_key(self, spec: VersionSpec) -> str:
        return self._url_for(spec)

    def _fetch_raw(self, spec: VersionSpec) -> List[str]:
        url = self._url_for(spec)
        status_code, _, data = get_json(url, settings=self.settings)
        if status_code != 200 or data is None:
            raise NetworkUnavailable(
                f"Resolution unavailable: {safe_url(url)} returned no JSON",
                context={"status": str(status_code)},
            )
        return parse_json_index(data, self.field, self.strip_prefix)
