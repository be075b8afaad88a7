"""Fetcher for the paginated GitHub releases API.

Supports optional authentication via the GITHUB_TOKEN environment variable,
which raises the anonymous rate limit.
"""
from __future__ import annotations

import logging
import os
import re
from typing import Any, Dict, List, Optional

from requests.utils import parse_header_links

from common.errors import NetworkUnavailable
from common.http_client import HttpSettings, get_json
from constants import Constants

from ..cache import TTLCache
from ..models import VersionSpec
from .base import IndexFetcher

logger = logging.getLogger(__name__)

_TAG_PREFIX = re.compile(r"^[^\d]+")


def parse_release_tags(data: Any) -> List[str]:
    """Tag names from one page of releases, non-numeric prefix removed.

    Drafts and pre-releases are skipped; ``v1.31.2`` becomes ``1.31.2``.
    """
    if not isinstance(data, list):
        return []
    tags: List[str] = []
    for release in data:
        if not isinstance(release, dict):
            continue
        if release.get("draft") or release.get("prerelease"):
            continue
        tag = release.get("tag_name")
        if isinstance(tag, str) and tag:
            tags.append(_TAG_PREFIX.sub("", tag))
    return tags


def next_page_url(headers: Dict[str, str]) -> Optional[str]:
    """Return the ``rel="next"`` target of a Link header, if any."""
    link = headers.get("Link") or headers.get("link")
    if not link:
        return None
    for entry in parse_header_links(link):
        if entry.get("rel") == "next":
            return entry.get("url")
    return None


class GithubReleasesFetcher(IndexFetcher):
    """Releases of one ``owner/repo``, following pagination up to a bound."""

    def __init__(
        self,
        repo: str,
        cache: Optional[TTLCache] = None,
        token: Optional[str] = None,
        max_pages: int = Constants.REPO_API_MAX_PAGES,
        settings: Optional[HttpSettings] = None,
    ):
        super().__init__(cache, settings)
        self.repo = repo
        self.token = token or os.environ.get(Constants.ENV_GITHUB_TOKEN)
        self.max_pages = max_pages

    @property
    def source(self) -> str:
        return f"{Constants.GITHUB_API_BASE}/repos/{self.repo}/releases"

    def _get_headers(self) -> Dict[str, str]:
        """Get request headers including authorization if token is available."""
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _fetch_raw(self, spec: VersionSpec) -> List[str]:
        results: List[str] = []
        current_url: Optional[str] = f"{self.source}?per_page={Constants.REPO_API_PER_PAGE}"
        pages = 0

        while current_url and pages < self.max_pages:
            status, headers, data = get_json(current_url, headers=self._get_headers(), settings=self.settings)
            if status != 200 or data is None:
                if pages == 0:
                    raise NetworkUnavailable(
                        f"Resolution unavailable: GitHub releases for {self.repo}",
                        context={"status": str(status)},
                    )
                logger.warning("Stopping GitHub pagination for %s at page %d (status %s)",
                               self.repo, pages + 1, status)
                break
            results.extend(parse_release_tags(data))
            pages += 1
            current_url = next_page_url(headers)

        return results
