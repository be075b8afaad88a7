"""Version specifier parsing utilities."""

import re

from common.errors import InvalidVersionSpecifier

from .models import SpecKind, VersionSpec

_EXACT = re.compile(r"^\d+\.\d+\.\d+$")
_MAJOR_MINOR = re.compile(r"^\d+\.\d+$")
_MAJOR = re.compile(r"^\d+$")


def _determine_kind(spec: str) -> SpecKind:
    """Determine the specifier shape, rejecting anything else."""
    if _EXACT.match(spec):
        return SpecKind.EXACT
    if _MAJOR_MINOR.match(spec):
        return SpecKind.MAJOR_MINOR
    if _MAJOR.match(spec):
        return SpecKind.MAJOR
    raise InvalidVersionSpecifier(
        f"Unsupported version specifier '{spec}'",
        hint="Use an exact version (1.2.3), major.minor (1.2) or major (1).",
    )


def parse_version_spec(raw: str) -> VersionSpec:
    """Classify a raw specifier string.

    A leading ``v`` is tolerated (``v20`` is treated as ``20``).
    """
    if raw is None:
        raise InvalidVersionSpecifier("Version specifier is required")
    spec = raw.strip()
    if spec[:1] in ("v", "V") and spec[1:2].isdigit():
        spec = spec[1:]
    return VersionSpec(raw=spec, kind=_determine_kind(spec))
