"""Remote index fetchers, one per upstream source format."""

from .base import IndexFetcher
from .html_listing import HtmlListingFetcher
from .json_index import JsonIndexFetcher
from .github_releases import GithubReleasesFetcher

__all__ = [
    "IndexFetcher",
    "HtmlListingFetcher",
    "JsonIndexFetcher",
    "GithubReleasesFetcher",
]
