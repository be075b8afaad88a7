"""Pinned checksum database (JSON or YAML) backing Tier 2 verification.

Layout::

    {
      "metadata": {"generated": "...", "description": "..."},
      "languages": {"python": {"versions": {"3.12.7": {"sha256": "...", "url": "...", "added": "..."}}}},
      "tools":     {"kubectl": {"versions": {...}}}
    }
"""
from __future__ import annotations

import datetime
import json
import logging
import os
import tempfile
import threading
from typing import Any, Dict, Optional

import yaml

from common.errors import ConfigError
from common.hashing import SHA256, SHA512, algorithm_for_digest, normalize_digest
from constants import Category, Constants
from versioning.models import normalize_ecosystem

from .models import ChecksumRecord

logger = logging.getLogger(__name__)

_YAML_SUFFIXES = (".yaml", ".yml")


def is_sentinel(value: Any) -> bool:
    """True for values that mean "no checksum recorded yet"."""
    if value is None:
        return True
    return isinstance(value, str) and value.strip() in Constants.CHECKSUM_SENTINELS


def _empty_document() -> Dict[str, Any]:
    return {"metadata": {}, "languages": {}, "tools": {}}


class ChecksumDatabase:
    """Read-mostly view over the pinned checksum file.

    The document is loaded once on first use and is not mutated by lookups,
    so one instance can be shared by concurrent verifications.
    """

    def __init__(self, path: str):
        self.path = path
        self._data: Optional[Dict[str, Any]] = None
        self._lock = threading.Lock()

    @property
    def is_yaml(self) -> bool:
        return self.path.lower().endswith(_YAML_SUFFIXES)

    def _load(self) -> Dict[str, Any]:
        with self._lock:
            if self._data is not None:
                return self._data
            if not os.path.exists(self.path):
                logger.warning("Checksum database not found at %s; Tier 2 disabled", self.path)
                self._data = _empty_document()
                return self._data
            try:
                with open(self.path, "r", encoding="utf-8") as handle:
                    if self.is_yaml:
                        data = yaml.safe_load(handle)
                    else:
                        data = json.load(handle)
            except (OSError, ValueError, yaml.YAMLError) as exc:
                raise ConfigError(
                    f"Unable to read checksum database {self.path}",
                    context={"detail": str(exc)},
                ) from exc
            if data is None:
                data = _empty_document()
            if not isinstance(data, dict):
                raise ConfigError(f"Checksum database {self.path} must be a mapping")
            for section in ("metadata", "languages", "tools"):
                data.setdefault(section, {})
            self._data = data
            return self._data

    def _versions(self, category: Category, name: str) -> Dict[str, Any]:
        section = self._load().get(category.section) or {}
        entry = section.get(normalize_ecosystem(name)) or section.get(name) or {}
        versions = entry.get("versions") if isinstance(entry, dict) else None
        return versions if isinstance(versions, dict) else {}

    def lookup(self, category: Category, name: str, version: str) -> Optional[ChecksumRecord]:
        """Return the pinned record, or None when absent or a placeholder.

        Raises:
            InvalidChecksumFormat: a non-placeholder digest is malformed.
        """
        entry = self._versions(category, name).get(version)
        if not isinstance(entry, dict):
            return None
        for algorithm in (SHA256, SHA512):
            value = entry.get(algorithm)
            if is_sentinel(value):
                continue
            digest = str(value).strip()
            return ChecksumRecord(
                category=category,
                name=name,
                version=version,
                digest=digest.lower(),
                algorithm=algorithm_for_digest(digest),
                url=entry.get("url"),
                added=str(entry["added"]) if entry.get("added") is not None else None,
            )
        return None

    def pin(
        self,
        category: Category,
        name: str,
        version: str,
        digest: str,
        url: Optional[str] = None,
    ) -> ChecksumRecord:
        """Record a digest in memory; call ``save()`` to persist it."""
        algorithm = algorithm_for_digest(digest)
        record = ChecksumRecord(
            category=category,
            name=normalize_ecosystem(name),
            version=version,
            digest=normalize_digest(digest),
            algorithm=algorithm,
            url=url,
            added=datetime.date.today().isoformat(),
        )
        data = self._load()
        with self._lock:
            section = data.setdefault(category.section, {})
            versions = section.setdefault(record.name, {}).setdefault("versions", {})
            versions[version] = record.to_entry()
        logger.info("Pinned %s %s %s=%s", record.name, version, algorithm, record.digest)
        return record

    def save(self) -> None:
        """Write the document atomically (temp file in the same directory)."""
        data = self._load()
        with self._lock:
            data.setdefault("metadata", {})["generated"] = (
                datetime.datetime.now(datetime.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
            )
            directory = os.path.dirname(os.path.abspath(self.path))
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".checksums.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    if self.is_yaml:
                        yaml.safe_dump(data, handle, sort_keys=False)
                    else:
                        json.dump(data, handle, indent=2)
                        handle.write("\n")
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
