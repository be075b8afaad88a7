"""Numeric version ordering backed by ``packaging.version``."""

import re
from typing import Iterable, Optional

from packaging.version import InvalidVersion, Version

_PLAIN = re.compile(r"^\d+(\.\d+)*$")


def is_plain_version(value: str) -> bool:
    """True for dot-separated non-negative integers only (no pre-release tags)."""
    return bool(value) and bool(_PLAIN.match(value))


def compare_versions(a: str, b: str) -> int:
    """Compare two dotted versions component by component.

    Missing trailing components count as zero, so ``1.2`` equals ``1.2.0``.

    Returns:
        Negative if a < b, zero if equal, positive if a > b.

    Raises:
        ValueError: either side is not a plain numeric version.
    """
    try:
        left, right = Version(a), Version(b)
    except InvalidVersion as exc:
        raise ValueError(f"Not a numeric version: {exc}") from exc
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def max_version(candidates: Iterable[str]) -> Optional[str]:
    """Return the highest plain version in ``candidates``, or None if empty."""
    plain = [c for c in candidates if is_plain_version(c)]
    if not plain:
        return None
    return max(plain, key=Version)
