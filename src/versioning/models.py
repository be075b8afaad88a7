"""Data models for versioning and release resolution."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class Ecosystem(Enum):
    """Enum for built-in ecosystems."""
    PYTHON = "python"
    NODEJS = "nodejs"
    GOLANG = "golang"
    RUST = "rust"
    RUBY = "ruby"
    JAVA = "java"
    TERRAFORM = "terraform"
    KUBECTL = "kubectl"


_ALIASES = {
    "node": Ecosystem.NODEJS,
    "go": Ecosystem.GOLANG,
}


def normalize_ecosystem(name: Union[str, Ecosystem]) -> str:
    """Map a user-facing name (or alias) to its canonical key.

    Names that are not built-in ecosystems are returned lowercased; they are
    treated as opaque tool names.
    """
    if isinstance(name, Ecosystem):
        return name.value
    key = name.strip().lower()
    if key in _ALIASES:
        return _ALIASES[key].value
    return key


def to_ecosystem(name: Union[str, Ecosystem]) -> Optional[Ecosystem]:
    key = normalize_ecosystem(name)
    try:
        return Ecosystem(key)
    except ValueError:
        return None


class SpecKind(Enum):
    """Shape of a version specifier."""
    EXACT = "exact"
    MAJOR_MINOR = "major_minor"
    MAJOR = "major"


@dataclass(frozen=True)
class VersionSpec:
    """Normalized representation of a version specifier."""
    raw: str
    kind: SpecKind

    @property
    def is_exact(self) -> bool:
        return self.kind is SpecKind.EXACT

    @property
    def major(self) -> int:
        return int(self.raw.split(".")[0])


@dataclass(frozen=True)
class ResolvedVersion:
    """Resolution outcome handed to the download and verification steps."""
    ecosystem: str
    version: str
    requested: str
