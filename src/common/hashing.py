"""Digest helpers shared by every verification tier."""
from __future__ import annotations

import hashlib
import re
from typing import Optional

from common.errors import InvalidChecksumFormat

SHA256 = "sha256"
SHA512 = "sha512"

_HEX = re.compile(r"^[0-9a-fA-F]+$")
_LENGTHS = {64: SHA256, 128: SHA512}


def algorithm_for_digest(digest: str) -> str:
    """Infer the algorithm from a hex digest's length.

    Raises:
        InvalidChecksumFormat: digest is not 64 or 128 hex characters.
    """
    value = (digest or "").strip()
    algorithm = _LENGTHS.get(len(value))
    if algorithm is None or not _HEX.match(value):
        raise InvalidChecksumFormat(
            "Checksum is not a SHA-256 or SHA-512 hex digest",
            context={"digest": value[:140], "length": str(len(value))},
        )
    return algorithm


def normalize_digest(digest: str) -> str:
    """Validate and lowercase a digest."""
    algorithm_for_digest(digest)
    return digest.strip().lower()


def compute_digest(path: str, algorithm: str = SHA256) -> str:
    hasher = hashlib.new(algorithm)
    with open(path, "rb") as handle:
        for block in iter(lambda: handle.read(65536), b""):
            hasher.update(block)
    return hasher.hexdigest()


def first_token(text: Optional[str]) -> str:
    """Return the first whitespace-separated token of a checksum file."""
    if not text:
        return ""
    parts = text.strip().split()
    return parts[0] if parts else ""


def digests_match(expected: str, actual: str) -> bool:
    return expected.strip().lower() == actual.strip().lower()
