"""Tests for VersionResolutionService."""

from typing import Iterable, List

import pytest

from common.errors import InvalidVersionSpecifier, NetworkUnavailable, VersionNotFound
from common.http_client import HttpSettings
from ecosystems import build_index_fetchers
from versioning.models import VersionSpec
from versioning.resolvers.base import IndexFetcher
from versioning.service import VersionResolutionService


class FakeFetcher(IndexFetcher):
    """Static candidate list; counts network-equivalent calls."""

    def __init__(self, versions: Iterable[str], fail: bool = False):
        super().__init__(cache=None)
        self.versions = list(versions)
        self.fail = fail
        self.calls: List[str] = []

    @property
    def source(self) -> str:
        return "fake"

    def _fetch_raw(self, spec: VersionSpec):
        self.calls.append(spec.raw)
        if self.fail:
            raise NetworkUnavailable("offline")
        return self.versions


@pytest.fixture
def golang():
    return FakeFetcher(["1.22.9", "1.23.0", "1.23.4", "1.23.10", "1.24rc1"])


@pytest.fixture
def service(golang):
    return VersionResolutionService(fetchers={"golang": golang})


class TestResolve:
    def test_exact_makes_no_network_call(self, service, golang):
        resolved = service.resolve("golang", "1.23.4")
        assert resolved.version == "1.23.4"
        assert golang.calls == []

    def test_major_minor_picks_numeric_max(self, service):
        assert service.resolve("golang", "1.23").version == "1.23.10"

    def test_major_picks_numeric_max(self, service):
        assert service.resolve("go", "1").version == "1.23.10"

    def test_prefix_requires_dot_boundary(self):
        service = VersionResolutionService(fetchers={"python": FakeFetcher(["3.1.5", "3.12.7", "3.13.0"])})
        assert service.resolve("python", "3.1").version == "3.1.5"

    def test_no_match(self, service):
        with pytest.raises(VersionNotFound):
            service.resolve("golang", "2.0")

    def test_invalid_specifier(self, service):
        with pytest.raises(InvalidVersionSpecifier):
            service.resolve("golang", "latest")

    def test_network_failure_propagates(self):
        service = VersionResolutionService(fetchers={"nodejs": FakeFetcher([], fail=True)})
        with pytest.raises(NetworkUnavailable):
            service.resolve("node", "20")

    def test_tool_without_index_accepts_exact_only(self, service):
        assert service.resolve("helm", "3.16.2").version == "3.16.2"
        with pytest.raises(VersionNotFound):
            service.resolve("helm", "3.16")

    def test_registered_tool_fetcher(self, service):
        service.register_index_fetcher("helm", FakeFetcher(["3.16.1", "3.16.2"]))
        assert service.resolve("helm", "3.16").version == "3.16.2"


class TestResolutionRecords:
    def test_last_resolved_and_history(self, service):
        service.resolve("golang", "1.23")
        service.resolve("golang", "1.22.9")
        assert service.last_resolved("go").version == "1.22.9"
        assert [r.version for r in service.resolutions] == ["1.23.10", "1.22.9"]
        assert service.resolutions[0].requested == "1.23"

    def test_unresolved(self, service):
        assert service.last_resolved("python") is None


def test_default_fetchers_cover_builtin_ecosystems():
    fetchers = build_index_fetchers()
    assert set(fetchers) == {"python", "nodejs", "golang", "rust", "ruby", "java", "terraform", "kubectl"}


def test_default_fetchers_carry_settings():
    settings = HttpSettings(connect=2, total=5, retries=1)
    fetchers = build_index_fetchers(settings=settings)
    assert all(fetcher.settings is settings for fetcher in fetchers.values())
