"""Fetcher for HTML directory listings and release pages."""

import re
from typing import List, Optional, Pattern, Union

from common.http_client import HttpSettings, fetch_text

from ..cache import TTLCache
from ..models import VersionSpec
from .base import IndexFetcher


def parse_html_listing(html: str, pattern: Union[str, Pattern[str]]) -> List[str]:
    """Extract the first capture group of every ``pattern`` match in ``html``."""
    regex = re.compile(pattern) if isinstance(pattern, str) else pattern
    return [m.group(1) for m in regex.finditer(html or "")]


class HtmlListingFetcher(IndexFetcher):
    """Regex-driven scrape of an HTML page listing releases.

    Used for the python.org FTP index, the ruby-lang.org releases page and the
    HashiCorp releases index.
    """

    def __init__(
        self,
        url: str,
        pattern: str,
        cache: Optional[TTLCache] = None,
        settings: Optional[HttpSettings] = None,
    ):
        super().__init__(cache, settings)
        self.url = url
        self.pattern = re.compile(pattern)

    @property
    def source(self) -> str:
        return self.url

    def _fetch_raw(self, spec: VersionSpec) -> List[str]:
        return parse_html_listing(fetch_text(self.url, settings=self.settings), self.pattern)
