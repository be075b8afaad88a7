"""Per-ecosystem strategy table.

Each built-in ecosystem names its release index, its default artifact file
name and the GPG keyring directory holding its publisher keys. Published
checksum strategies and signature plans key off the same ``Ecosystem`` enum.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional

from common.http_client import HttpSettings
from versioning.cache import TTLCache
from versioning.models import Ecosystem, to_ecosystem
from versioning.resolvers import (
    GithubReleasesFetcher,
    HtmlListingFetcher,
    IndexFetcher,
    JsonIndexFetcher,
)

PYTHON_FTP = "https://www.python.org/ftp/python"
NODEJS_DIST = "https://nodejs.org/dist"
GO_DL = "https://go.dev/dl"
GO_RELEASES_JSON = "https://go.dev/dl/?mode=json&include=all"
RUBY_RELEASES_PAGE = "https://www.ruby-lang.org/en/downloads/releases/"
RUBY_DOWNLOADS_PAGE = "https://www.ruby-lang.org/en/downloads/"
ADOPTIUM_RELEASES = "https://api.adoptium.net/v3/assets/feature_releases/{major}/ga"
HASHICORP_RELEASES = "https://releases.hashicorp.com/terraform"
KUBERNETES_RELEASE = "https://dl.k8s.io/release"


def map_arch(arch: str, amd64: str, arm64: str) -> str:
    """Translate a Docker-style architecture into an upstream naming scheme."""
    if arch in ("arm64", "aarch64"):
        return arm64
    return amd64


@dataclass(frozen=True)
class EcosystemStrategy:
    """How one ecosystem is resolved and where its trust material lives."""
    ecosystem: Ecosystem
    index_fetcher: Optional[Callable[[Optional[TTLCache], Optional[HttpSettings]], IndexFetcher]]
    filename: Optional[Callable[[str, str], str]] = None
    keyring: Optional[str] = None

    def default_filename(self, version: str, arch: str) -> Optional[str]:
        if self.filename is None:
            return None
        return self.filename(version, arch)


STRATEGIES: Dict[Ecosystem, EcosystemStrategy] = {
    Ecosystem.PYTHON: EcosystemStrategy(
        Ecosystem.PYTHON,
        lambda cache, settings: HtmlListingFetcher(
            f"{PYTHON_FTP}/", r">(\d+(?:\.\d+)+)/", cache=cache, settings=settings
        ),
        lambda v, arch: f"Python-{v}.tgz",
        keyring="python",
    ),
    Ecosystem.NODEJS: EcosystemStrategy(
        Ecosystem.NODEJS,
        lambda cache, settings: JsonIndexFetcher(
            f"{NODEJS_DIST}/index.json", "version", "v", cache=cache, settings=settings
        ),
        lambda v, arch: f"node-v{v}-linux-{map_arch(arch, 'x64', 'arm64')}.tar.xz",
        keyring="nodejs",
    ),
    Ecosystem.GOLANG: EcosystemStrategy(
        Ecosystem.GOLANG,
        lambda cache, settings: JsonIndexFetcher(
            GO_RELEASES_JSON, "version", "go", cache=cache, settings=settings
        ),
        lambda v, arch: f"go{v}.linux-{map_arch(arch, 'amd64', 'arm64')}.tar.gz",
        keyring="golang",
    ),
    Ecosystem.RUST: EcosystemStrategy(
        Ecosystem.RUST,
        lambda cache, settings: GithubReleasesFetcher("rust-lang/rust", cache=cache, settings=settings),
    ),
    Ecosystem.RUBY: EcosystemStrategy(
        Ecosystem.RUBY,
        lambda cache, settings: HtmlListingFetcher(
            RUBY_RELEASES_PAGE, r"Ruby (\d+\.\d+\.\d+)", cache=cache, settings=settings
        ),
        lambda v, arch: f"ruby-{v}.tar.gz",
    ),
    Ecosystem.JAVA: EcosystemStrategy(
        Ecosystem.JAVA,
        lambda cache, settings: JsonIndexFetcher(
            ADOPTIUM_RELEASES, "version_data.semver", cache=cache, settings=settings
        ),
    ),
    Ecosystem.TERRAFORM: EcosystemStrategy(
        Ecosystem.TERRAFORM,
        lambda cache, settings: HtmlListingFetcher(
            f"{HASHICORP_RELEASES}/", r"/terraform/(\d+\.\d+\.\d+)/", cache=cache, settings=settings
        ),
        lambda v, arch: f"terraform_{v}_linux_{map_arch(arch, 'amd64', 'arm64')}.zip",
        keyring="hashicorp",
    ),
    Ecosystem.KUBECTL: EcosystemStrategy(
        Ecosystem.KUBECTL,
        lambda cache, settings: GithubReleasesFetcher(
            "kubernetes/kubernetes", cache=cache, settings=settings
        ),
        lambda v, arch: "kubectl",
    ),
}


def get_strategy(name) -> Optional[EcosystemStrategy]:
    """Strategy for a built-in ecosystem name or alias; None for tools."""
    ecosystem = to_ecosystem(name)
    if ecosystem is None:
        return None
    return STRATEGIES.get(ecosystem)


def build_index_fetchers(
    cache: Optional[TTLCache] = None,
    settings: Optional[HttpSettings] = None,
) -> Dict[str, IndexFetcher]:
    """Instantiate one index fetcher per built-in ecosystem sharing ``cache``."""
    return {
        eco.value: strategy.index_fetcher(cache, settings)
        for eco, strategy in STRATEGIES.items()
        if strategy.index_fetcher is not None
    }
