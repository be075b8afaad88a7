"""Download a file and check it against a known digest before moving it into place."""
from __future__ import annotations

import logging
import os
from typing import Optional

from common.errors import ChecksumMismatch, NetworkUnavailable
from common.hashing import algorithm_for_digest, compute_digest, digests_match
from common.http_client import HttpSettings, download_file
from common.logging_utils import safe_url
from constants import Constants

logger = logging.getLogger(__name__)


def download_and_verify(
    url: str,
    expected_digest: str,
    destination: str,
    settings: Optional[HttpSettings] = None,
) -> bool:
    """Fetch ``url`` to ``<destination>.tmp``, verify, then rename.

    The algorithm follows the digest length (SHA-256 or SHA-512). Returns
    True on success and False when the download failed or the digest did
    not match; the temporary file never survives a failure. ``settings``
    governs connect timeout and retries; each attempt may run for
    ``Constants.DOWNLOAD_TIMEOUT`` seconds.

    Raises:
        InvalidChecksumFormat: ``expected_digest`` is malformed.
    """
    algorithm = algorithm_for_digest(expected_digest)
    temp_path = f"{destination}.tmp"
    try:
        download_file(url, temp_path, settings=settings, max_seconds=Constants.DOWNLOAD_TIMEOUT)
        actual = compute_digest(temp_path, algorithm)
        if not digests_match(expected_digest, actual):
            raise ChecksumMismatch(
                f"Checksum mismatch for {safe_url(url)}",
                context={"expected": expected_digest.lower(), "actual": actual},
            )
        os.replace(temp_path, destination)
    except (NetworkUnavailable, ChecksumMismatch) as exc:
        logger.error("%s", exc)
        return False
    finally:
        if os.path.exists(temp_path):
            os.remove(temp_path)
    logger.info("Downloaded and verified %s (%s)", os.path.basename(destination), algorithm)
    return True
